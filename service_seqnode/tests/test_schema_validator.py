"""
Unit tests for the sequence node schema validator.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_seqnode.app.validation import SequenceNodeSchemaValidator, ValidationReport
from service_seqnode.app.validation.schema_validator import load_identifier_schema
from shared.errors import ValidationError
from shared.test_helpers import TestDataFactory


class TestSequenceNodeSchemaValidator:
    """Test cases for SequenceNodeSchemaValidator."""

    @pytest.fixture
    def validator(self):
        return SequenceNodeSchemaValidator()

    @pytest.fixture
    def identifier(self):
        return TestDataFactory.create_identifier()

    def test_valid_identifier(self, validator, identifier):
        report = validator.validate(identifier)
        assert isinstance(report, ValidationReport)
        assert report.valid is True
        assert report.errors == []

    def test_node_index_is_optional(self, validator):
        identifier = TestDataFactory.create_identifier(node_index=None)
        assert validator.validate(identifier).valid is True

    def test_hub_session_header_is_optional(self, validator):
        identifier = TestDataFactory.create_identifier(hub_session=None)
        assert validator.validate(identifier).valid is True

    @pytest.mark.parametrize("path,value,field", [
        ("content.@type", "Activity", "content.@type"),
        ("content.@context", "", "content.@context"),
        ("content.targetBinding", "", "content.targetBinding"),
        ("content.nodeIndex", "first", "content.nodeIndex"),
        ("method", "DELETE", "method"),
        ("url", "", "url"),
        ("header", "Hub-Session: abc", "header"),
    ])
    def test_invalid_field(self, validator, identifier, path, value, field):
        report = validator.validate(TestDataFactory.mutate(identifier, path, value))
        assert report.valid is False
        assert [e["field"] for e in report.errors] == [field]

    @pytest.mark.parametrize("path", [
        "header", "content", "method", "url",
        "content.@context", "content.@type", "content.targetBinding",
    ])
    def test_missing_field(self, validator, identifier, path):
        report = validator.validate(TestDataFactory.remove(identifier, path))
        assert report.valid is False
        assert [e["field"] for e in report.errors] == [path]
        assert "required" in report.errors[0]["message"]

    def test_reports_every_violation(self, validator, identifier):
        broken = TestDataFactory.remove(identifier, "method")
        broken = TestDataFactory.mutate(broken, "content.@type", "Activity")
        broken = TestDataFactory.mutate(broken, "content.targetBinding", "")

        report = validator.validate(broken)

        assert report.valid is False
        assert [e["field"] for e in report.errors] == [
            "content.@type",
            "content.targetBinding",
            "method",
        ]

    def test_non_object_document(self, validator):
        report = validator.validate(["not", "an", "object"])
        assert report.valid is False
        assert report.errors[0]["field"] == "identifier"

    def test_url_optional_when_not_required(self, identifier):
        validator = SequenceNodeSchemaValidator(require_url=False)
        assert validator.validate(TestDataFactory.remove(identifier, "url")).valid is True
        # Present but empty is still rejected
        assert validator.validate(TestDataFactory.mutate(identifier, "url", "")).valid is False

    def test_ensure_valid_raises_with_violations(self, validator, identifier):
        broken = TestDataFactory.remove(identifier, "header")
        broken = TestDataFactory.mutate(broken, "content.@type", "Activity")

        with pytest.raises(ValidationError) as exc_info:
            validator.ensure_valid(broken)

        error = exc_info.value
        assert error.status_code == 400
        assert error.code == "VALIDATION_ERROR"
        assert {v["field"] for v in error.violations} == {"header", "content.@type"}
        assert error.details["errors"] == error.violations

    def test_ensure_valid_returns_report(self, validator, identifier):
        assert validator.ensure_valid(identifier).valid is True

    def test_shipped_schema_not_modified(self):
        SequenceNodeSchemaValidator(require_url=True)
        assert "url" not in load_identifier_schema()["required"]
