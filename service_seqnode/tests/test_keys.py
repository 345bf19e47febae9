"""
Unit tests for sequence node key derivation.
"""

import hashlib
import json
import re

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_seqnode.app.keys import canonicalize, derive_sequence_node_key, SEQUENCE_NODE_KEY_LENGTH
from service_seqnode.app.models import SequenceNodeIdentifier
from shared.errors import ValidationError
from shared.test_helpers import TestDataFactory


HEX_KEY = re.compile(r"^[0-9a-f]{32}$")


class TestKeyDerivation:
    """Test cases for derive_sequence_node_key."""

    @pytest.fixture
    def identifier(self):
        return TestDataFactory.create_identifier()

    def test_key_is_32_lowercase_hex(self, identifier):
        key = derive_sequence_node_key(identifier)
        assert len(key) == SEQUENCE_NODE_KEY_LENGTH
        assert HEX_KEY.match(key)

    def test_key_is_deterministic(self, identifier):
        assert derive_sequence_node_key(identifier) == derive_sequence_node_key(identifier)

    def test_key_ignores_field_order(self, identifier):
        reordered = {
            "method": identifier["method"],
            "url": identifier["url"],
            "content": dict(reversed(list(identifier["content"].items()))),
            "header": identifier["header"],
        }
        assert derive_sequence_node_key(reordered) == derive_sequence_node_key(identifier)

    @pytest.mark.parametrize("path,value", [
        ("content.targetBinding", "activity-2/item-9"),
        ("content.nodeIndex", 1),
        ("url", "http://ams.local/other"),
        ("method", "GET"),
        ("header.Hub-Session", "another-session"),
    ])
    def test_changing_any_field_changes_key(self, identifier, path, value):
        changed = TestDataFactory.mutate(identifier, path, value)
        assert derive_sequence_node_key(changed) != derive_sequence_node_key(identifier)

    def test_json_text_and_mapping_agree(self, identifier):
        text = json.dumps(identifier, indent=2)
        assert derive_sequence_node_key(text) == derive_sequence_node_key(identifier)

    def test_typed_identifier_and_mapping_agree(self, identifier):
        typed = SequenceNodeIdentifier.model_validate(identifier)
        assert derive_sequence_node_key(typed) == derive_sequence_node_key(identifier)

    def test_malformed_json_text_rejected(self):
        with pytest.raises(ValidationError):
            derive_sequence_node_key("{not json")

    def test_unsupported_type_rejected(self):
        with pytest.raises(TypeError):
            derive_sequence_node_key(42)

    def test_non_finite_numbers_rejected(self, identifier):
        broken = TestDataFactory.mutate(identifier, "content.nodeIndex", float("nan"))
        with pytest.raises(ValueError):
            derive_sequence_node_key(broken)


class TestCanonicalize:
    """Test cases for canonicalize."""

    def test_sorted_compact_utf8(self):
        assert canonicalize({"b": 1, "a": {"d": "é", "c": [2, 1]}}) == \
            '{"a":{"c":[2,1],"d":"é"},"b":1}'.encode("utf-8")

    def test_key_is_md5_of_canonical_form(self):
        document = {"b": [1, 2], "a": "x"}
        expected = hashlib.md5(b'{"a":"x","b":[1,2]}').hexdigest()
        assert derive_sequence_node_key(document) == expected

    def test_lone_surrogate_in_json_text_rejected(self):
        text = json.dumps(TestDataFactory.create_identifier(target_binding="\ud800"))
        assert "\\ud800" in text

        with pytest.raises(ValidationError) as exc_info:
            derive_sequence_node_key(text)

        assert exc_info.value.status_code == 400
        assert exc_info.value.violations[0]["field"] == "identifier"

    def test_explicit_null_url_matches_missing_url(self):
        without_url = TestDataFactory.create_identifier(url=None)
        typed = SequenceNodeIdentifier.model_validate({**without_url, "url": None})

        assert "url" not in typed.to_document()
        assert derive_sequence_node_key(typed) == derive_sequence_node_key(without_url)
