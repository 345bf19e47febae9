"""
Schema validation for sequence node identifiers.
"""

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError as SchemaViolation

from shared.errors import ValidationError
from shared.logging import get_logger

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schema" / "reqseqnode.schema.json"


def load_identifier_schema(path: Path = SCHEMA_PATH) -> Dict[str, Any]:
    """Load the identifier JSON Schema shipped with the service."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@dataclass
class ValidationReport:
    """Result of validating an identifier document."""
    valid: bool
    errors: List[Dict[str, str]] = field(default_factory=list)


class SequenceNodeSchemaValidator:
    """Validates identifier documents against the request schema.

    ``url`` is only required when there is no default upstream URL to fall
    back on; pass ``require_url=False`` in that case.
    """

    def __init__(self, schema: Optional[Dict[str, Any]] = None, require_url: bool = True):
        self.logger = get_logger("seqnode.validation")
        self.require_url = require_url

        schema = copy.deepcopy(schema if schema is not None else load_identifier_schema())
        if require_url and "url" not in schema.get("required", []):
            schema["required"] = list(schema.get("required", [])) + ["url"]

        Draft7Validator.check_schema(schema)
        self.schema = schema
        self._validator = Draft7Validator(schema)

    def validate(self, document: Any) -> ValidationReport:
        """Validate a document, collecting every violation."""
        if not isinstance(document, Mapping):
            return ValidationReport(
                valid=False,
                errors=[{"field": "identifier", "message": "Identifier must be a JSON object"}]
            )

        errors = [
            {"field": _field_of(violation), "message": violation.message}
            for violation in self._validator.iter_errors(document)
        ]
        errors.sort(key=lambda e: (e["field"], e["message"]))

        if errors:
            self.logger.debug("Identifier failed validation", error_count=len(errors))

        return ValidationReport(valid=not errors, errors=errors)

    def ensure_valid(self, document: Any) -> ValidationReport:
        """Validate a document and raise ``ValidationError`` when it fails."""
        report = self.validate(document)
        if not report.valid:
            raise ValidationError(violations=report.errors)
        return report


def _field_of(violation: SchemaViolation) -> str:
    """Dotted path of the field a violation refers to."""
    path = [str(p) for p in violation.absolute_path]

    # "required" errors point at the parent object; name the missing member
    if violation.validator == "required" and isinstance(violation.instance, Mapping):
        for name in violation.validator_value:
            if name not in violation.instance and repr(name) in violation.message:
                path.append(name)
                break

    return ".".join(path) or "identifier"
