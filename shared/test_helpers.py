"""
Test helper functions and factory methods for the Access Layer.
"""

import copy
from typing import Dict, Any, Optional, List, Tuple

from redis.exceptions import ConnectionError as RedisConnectionError


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis``.

    Implements the handful of commands the sequence node cache issues.
    Set ``fail_reads`` / ``fail_writes`` to make the matching commands
    raise ``redis.exceptions.ConnectionError``.
    """

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.expirations: Dict[str, int] = {}
        self.calls: List[Tuple[str, tuple]] = []
        self.fail_reads = False
        self.fail_writes = False
        self.closed = False
        self.hits = 0
        self.misses = 0

    def _check(self, failing: bool):
        if failing:
            raise RedisConnectionError("Connection refused")

    async def ping(self) -> bool:
        self.calls.append(("ping", ()))
        self._check(self.fail_reads)
        return True

    async def get(self, name: str) -> Optional[str]:
        self.calls.append(("get", (name,)))
        self._check(self.fail_reads)
        if name in self.store:
            self.hits += 1
            return self.store[name]
        self.misses += 1
        return None

    async def set(self, name: str, value: str) -> bool:
        self.calls.append(("set", (name, value)))
        self._check(self.fail_writes)
        self.store[name] = value
        self.expirations.pop(name, None)
        return True

    async def setex(self, name: str, time: int, value: str) -> bool:
        self.calls.append(("setex", (name, time, value)))
        self._check(self.fail_writes)
        self.store[name] = value
        self.expirations[name] = time
        return True

    async def delete(self, *names: str) -> int:
        self.calls.append(("delete", names))
        self._check(self.fail_writes)
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
            self.expirations.pop(name, None)
        return removed

    async def info(self) -> Dict[str, Any]:
        self.calls.append(("info", ()))
        self._check(self.fail_reads)
        return {
            "redis_version": "7.2.0-fake",
            "used_memory_human": "1M",
            "keyspace_hits": self.hits,
            "keyspace_misses": self.misses,
        }

    async def aclose(self):
        self.closed = True

    def count(self, command: str) -> int:
        """Number of times ``command`` was issued."""
        return sum(1 for name, _ in self.calls if name == command)


class TestDataFactory:
    """Factory for creating test data."""

    @staticmethod
    def create_identifier(
        hub_session: Optional[str] = "hub-session-123",
        target_binding: str = "activity-1/item-1",
        node_index: Optional[int] = 0,
        url: Optional[str] = "http://ams.local/seqnode",
        method: str = "POST",
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Create a valid sequence node identifier document."""
        header: Dict[str, str] = {}
        if hub_session is not None:
            header["Hub-Session"] = hub_session
        header.update(extra_headers or {})

        content: Dict[str, Any] = {
            "@context": "http://purl.imsglobal.org/ctx/caliper/v1p1",
            "@type": "SequenceNode",
            "targetBinding": target_binding,
        }
        if node_index is not None:
            content["nodeIndex"] = node_index

        identifier: Dict[str, Any] = {
            "header": header,
            "content": content,
            "method": method,
        }
        if url is not None:
            identifier["url"] = url
        return identifier

    @staticmethod
    def create_sequence_node_content() -> Dict[str, Any]:
        """Create upstream sequence node content."""
        return {
            "nodeIndex": 0,
            "targetBinding": "activity-1/item-1",
            "items": [
                {"id": "item-1", "type": "question", "scoringType": "automatic"},
                {"id": "item-2", "type": "question", "scoringType": "manual"},
            ],
        }

    @staticmethod
    def mutate(document: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
        """Return a deep copy of ``document`` with the dotted ``path`` set to ``value``."""
        result = copy.deepcopy(document)
        *parents, leaf = path.split(".")
        target = result
        for part in parents:
            target = target[part]
        target[leaf] = value
        return result

    @staticmethod
    def remove(document: Dict[str, Any], path: str) -> Dict[str, Any]:
        """Return a deep copy of ``document`` without the dotted ``path``."""
        result = copy.deepcopy(document)
        *parents, leaf = path.split(".")
        target = result
        for part in parents:
            target = target[part]
        del target[leaf]
        return result
