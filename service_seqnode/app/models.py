"""
Sequence node data models.
"""

import json
from enum import Enum
from typing import Dict, Any, Optional, Union, Mapping, Literal

from pydantic import BaseModel, ConfigDict, Field

from shared.errors import ValidationError


HUB_SESSION_HEADER = "Hub-Session"


class HttpMethod(str, Enum):
    """Methods accepted for the upstream sequence node request."""
    GET = "GET"
    POST = "POST"


class SequenceNodeContent(BaseModel):
    """The ``content`` part of an identifier, sent verbatim upstream."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    context: str = Field(alias="@context", min_length=1)
    type: Literal["SequenceNode"] = Field(alias="@type")
    target_binding: str = Field(alias="targetBinding", min_length=1)
    node_index: Optional[int] = Field(default=None, alias="nodeIndex")


class SequenceNodeIdentifier(BaseModel):
    """Identifier of a sequence node as sent by the activity manager."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    header: Dict[str, str]
    content: SequenceNodeContent
    url: Optional[str] = None
    method: HttpMethod

    @property
    def hub_session(self) -> Optional[str]:
        return find_header(self.header, HUB_SESSION_HEADER)

    def to_document(self) -> Dict[str, Any]:
        """Return the JSON document this identifier was built from.

        An explicit ``url=None`` is dropped so it derives the same key as a
        document with no ``url`` member.
        """
        document = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        if document.get("url") is None:
            document.pop("url", None)
        return document


class CacheEntry(BaseModel):
    """Value stored in the cache for a sequence node key."""

    model_config = ConfigDict(populate_by_name=True)

    hub_session: Optional[str] = Field(default=None, alias="hubSession")
    sequence_node_content: Any = Field(alias="sequenceNodeContent")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_wire(cls, raw: Union[str, bytes]) -> "CacheEntry":
        return cls.model_validate_json(raw)


class RetrievalResult(BaseModel):
    """Outcome of a sequence node retrieval."""

    model_config = ConfigDict(populate_by_name=True)

    sequence_node_key: str = Field(alias="sequenceNodeKey")
    sequence_node_content: Any = Field(alias="sequenceNodeContent")
    # Observability only; never affects correctness
    from_cache: bool = Field(alias="fromCache")


IdentifierInput = Union[SequenceNodeIdentifier, Mapping[str, Any], str, bytes]


def find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def identifier_document(identifier: IdentifierInput) -> Dict[str, Any]:
    """Normalize any accepted identifier form into a plain JSON document.

    Raises:
        ValidationError: JSON text that is malformed or not an object.
        TypeError: Unsupported identifier type.
    """
    if isinstance(identifier, SequenceNodeIdentifier):
        return identifier.to_document()

    if isinstance(identifier, (str, bytes)):
        try:
            document = json.loads(identifier)
        except ValueError as e:
            raise ValidationError(
                violations=[{"field": "identifier", "message": f"Invalid JSON: {e}"}]
            ) from e
        if not isinstance(document, dict):
            raise ValidationError(
                violations=[{"field": "identifier", "message": "Identifier must be a JSON object"}]
            )
        return document

    if isinstance(identifier, Mapping):
        return dict(identifier)

    raise TypeError(
        f"Unsupported identifier type: {type(identifier).__name__}. "
        f"Expected SequenceNodeIdentifier, mapping or JSON text."
    )
