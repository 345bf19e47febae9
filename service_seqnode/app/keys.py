"""Sequence node key derivation.

A sequence node key is the MD5 hex digest of the canonical JSON
serialization of the whole identifier (header, content, url and method).
Keys are used across components to address a sequence node, so the
canonical form must never change.
"""

import hashlib
import json
from typing import Any, Mapping

from shared.errors import ValidationError

from .models import IdentifierInput, identifier_document

SEQUENCE_NODE_KEY_LENGTH = 32


def canonicalize(document: Mapping[str, Any]) -> bytes:
    """Serialize a document to a deterministic byte sequence.

    Keys are sorted at every depth and whitespace is removed, so two
    documents with the same keys and values produce the same bytes
    whatever their insertion order.

    Raises:
        TypeError: The document holds values JSON cannot represent.
        ValueError: The document holds NaN or infinite floats.
        UnicodeEncodeError: A string holds a lone surrogate.
    """
    return json.dumps(
        document,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def derive_sequence_node_key(identifier: IdentifierInput) -> str:
    """Return the sequence node key for an identifier.

    Raises:
        ValidationError: The identifier holds strings that are not valid
            Unicode, such as a lone surrogate escaped in JSON text.
    """
    document = identifier_document(identifier)
    try:
        canonical = canonicalize(document)
    except UnicodeEncodeError as e:
        raise ValidationError(
            violations=[{"field": "identifier", "message": f"Invalid Unicode text: {e.reason}"}]
        ) from e
    return hashlib.md5(canonical).hexdigest()
