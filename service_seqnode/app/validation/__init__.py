"""
Validation package for Sequence Node Service.

Identifier documents are checked against a JSON Schema before any
upstream request is made.
"""

from .schema_validator import SequenceNodeSchemaValidator, ValidationReport

__all__ = ["SequenceNodeSchemaValidator", "ValidationReport"]
