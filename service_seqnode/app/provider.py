"""
Sequence node provider.

Encapsulates retrieval of sequence node content. A sequence node is
addressed either by its identifier (the JSON document sent by the activity
manager) or by its key (the hash of that identifier). Retrieval by
identifier reads through the cache to the upstream service; retrieval by
key only reads the cache.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from shared.errors import (
    CacheMissError,
    CacheTransportError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .adapters.upstream_client import UpstreamClient
from .cache.redis_cache import SequenceNodeCache
from .keys import derive_sequence_node_key
from .models import (
    CacheEntry,
    IdentifierInput,
    RetrievalResult,
    SequenceNodeIdentifier,
    identifier_document,
)
from .validation.schema_validator import SequenceNodeSchemaValidator

MergeStrategy = Callable[[CacheEntry, Any], CacheEntry]


def keep_existing(existing: CacheEntry, data: Any) -> CacheEntry:
    """Ignore the update and keep the cached entry as is."""
    return existing


def replace_content(existing: CacheEntry, data: Any) -> CacheEntry:
    """Replace the cached content, keeping the hub session."""
    return CacheEntry(hub_session=existing.hub_session, sequence_node_content=data)


def merge_content(existing: CacheEntry, data: Any) -> CacheEntry:
    """Shallow-merge a mapping update into mapping content."""
    if not isinstance(existing.sequence_node_content, dict) or not isinstance(data, dict):
        raise ValidationError(
            "Cannot merge update",
            violations=[{"field": "data", "message": "merge_content requires object content and an object update"}],
        )
    merged = {**existing.sequence_node_content, **data}
    return CacheEntry(hub_session=existing.hub_session, sequence_node_content=merged)


MERGE_STRATEGIES: Dict[str, MergeStrategy] = {
    "keep_existing": keep_existing,
    "replace_content": replace_content,
    "merge_content": merge_content,
}


def get_merge_strategy(name: str) -> MergeStrategy:
    """Look up a merge strategy by its configured name."""
    try:
        return MERGE_STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown merge strategy {name!r}; expected one of {sorted(MERGE_STRATEGIES)}"
        ) from None


class SequenceNodeProvider:
    """Get-or-fetch-and-populate access to sequence node content."""

    def __init__(
        self,
        cache: SequenceNodeCache,
        upstream: UpstreamClient,
        *,
        default_url: Optional[str] = None,
        validator: Optional[SequenceNodeSchemaValidator] = None,
        merge_strategy: MergeStrategy = keep_existing,
        single_flight: bool = False,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache = cache
        self.upstream = upstream
        self.default_url = default_url
        self.validator = validator or SequenceNodeSchemaValidator(require_url=default_url is None)
        self.merge_strategy = merge_strategy
        self.single_flight = single_flight
        self.metrics = metrics
        self.logger = get_logger("seqnode.provider")

        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}

    @property
    def cache_key_prefix(self) -> str:
        return self.cache.key_prefix

    def obtain_sequence_node_key(self, identifier: IdentifierInput) -> str:
        """Return the key that addresses the node named by ``identifier``."""
        return derive_sequence_node_key(identifier)

    async def get_sequence_node(self, identifier: IdentifierInput) -> RetrievalResult:
        """Return sequence node content for an identifier.

        Cached content is returned without validation. Otherwise the
        identifier is validated, the upstream service is queried and the
        result is cached on a best-effort basis.

        Raises:
            ValidationError: The identifier violates the request schema.
            UpstreamError: The upstream request failed.
        """
        document = identifier_document(identifier)
        key = derive_sequence_node_key(document)

        entry = await self._lookup(key)
        if entry is not None:
            return RetrievalResult(
                sequence_node_key=key,
                sequence_node_content=entry.sequence_node_content,
                from_cache=True,
            )

        self.validator.ensure_valid(document)
        try:
            typed = SequenceNodeIdentifier.model_validate(document)
        except PydanticValidationError as e:
            raise ValidationError(
                violations=[
                    {"field": ".".join(str(p) for p in err["loc"]) or "identifier", "message": err["msg"]}
                    for err in e.errors()
                ]
            ) from e

        if self.single_flight:
            content = await self._shared_fetch(key, document, typed)
        else:
            content = await self._fetch_and_store(key, document, typed)

        return RetrievalResult(
            sequence_node_key=key,
            sequence_node_content=content,
            from_cache=False,
        )

    async def get_sequence_node_by_key(self, sequence_node_key: str) -> CacheEntry:
        """Return the cached entry for a key. Never queries upstream.

        Raises:
            NotFoundError: Key not in the cache.
            CacheTransportError: Cache unreachable.
        """
        try:
            return await self.cache.get(sequence_node_key)
        except CacheMissError:
            raise NotFoundError(
                f"Key {sequence_node_key} not in the cache.",
                details={"sequenceNodeKey": sequence_node_key},
            ) from None

    async def update_sequence_node_in_cache(self, sequence_node_key: str, data: Any) -> CacheEntry:
        """Apply ``data`` to a cached entry through the merge strategy.

        Raises:
            NotFoundError: Key not in the cache.
            CacheTransportError: Cache unreachable.
        """
        existing = await self.get_sequence_node_by_key(sequence_node_key)
        updated = self.merge_strategy(existing, data)
        if updated.sequence_node_content is None:
            raise ValidationError(
                "Cannot update sequence node",
                violations=[{"field": "data", "message": "Update leaves the entry without content"}],
            )
        if updated != existing:
            await self.cache.set(sequence_node_key, updated)
            self.logger.info("Sequence node updated in cache", sequence_node_key=sequence_node_key)
        return updated

    async def remove_sequence_node_from_cache(self, sequence_node_key: str) -> str:
        """Delete a cached entry and return its key.

        Raises:
            NotFoundError: Key not in the cache.
            CacheTransportError: Cache unreachable.
        """
        if not await self.cache.delete(sequence_node_key):
            raise NotFoundError(
                f"Key {sequence_node_key} not in the cache.",
                details={"sequenceNodeKey": sequence_node_key},
            )
        self.logger.info("Sequence node removed from cache", sequence_node_key=sequence_node_key)
        return sequence_node_key

    async def get_upstream_health(self) -> Dict[str, Any]:
        """Health document of the upstream service."""
        return await self.upstream.health()

    async def _lookup(self, key: str) -> Optional[CacheEntry]:
        # Misses and store errors both fall through to upstream
        try:
            entry = await self.cache.get(key)
        except CacheMissError:
            self._count("seqnode_cache_lookups_total", result="miss")
            self.logger.debug("Sequence node cache miss", sequence_node_key=key)
            return None
        except CacheTransportError as e:
            self._count("seqnode_cache_lookups_total", result="error")
            self.logger.warning(
                "Sequence node cache unavailable, falling back to upstream",
                sequence_node_key=key,
                error=e.message,
            )
            return None

        self._count("seqnode_cache_lookups_total", result="hit")
        self.logger.debug("Sequence node cache hit", sequence_node_key=key)
        return entry

    async def _shared_fetch(
        self,
        key: str,
        document: Dict[str, Any],
        identifier: SequenceNodeIdentifier,
    ) -> Any:
        """Join an in-flight fetch for ``key`` or start one."""
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fetch_and_store(key, document, identifier))
            self._inflight[key] = future

            def _forget(done: "asyncio.Future[Any]", key: str = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]
                # Mark a failure as retrieved even if every waiter was cancelled
                if not done.cancelled():
                    done.exception()

            future.add_done_callback(_forget)
        else:
            self.logger.debug("Joining in-flight sequence node fetch", sequence_node_key=key)

        return await asyncio.shield(future)

    async def _fetch_and_store(
        self,
        key: str,
        document: Dict[str, Any],
        identifier: SequenceNodeIdentifier,
    ) -> Any:
        url = identifier.url or self.default_url
        method = identifier.method.value

        start_time = time.time()
        try:
            data = await self.upstream.fetch(method, url, identifier.header, document["content"])
        except UpstreamError:
            self._count("seqnode_upstream_requests_total", outcome="error")
            self.logger.error("Unable to retrieve sequence node", method=method, url=url, sequence_node_key=key)
            raise
        finally:
            if self.metrics:
                self.metrics.observe_histogram("seqnode_upstream_duration_seconds", time.time() - start_time)

        self._count("seqnode_upstream_requests_total", outcome="ok")
        await self._store(key, identifier.hub_session, data)
        return data

    async def _store(self, key: str, hub_session: Optional[str], data: Any) -> None:
        """Best-effort cache write; failures are logged, never raised."""
        if data is None:
            self.logger.warning("Upstream returned no content, not caching", sequence_node_key=key)
            self._count("seqnode_cache_writes_total", result="skipped")
            return

        entry = CacheEntry(hub_session=hub_session, sequence_node_content=data)
        try:
            await self.cache.set(key, entry)
        except CacheTransportError as e:
            self._count("seqnode_cache_writes_total", result="error")
            self.logger.warning("Failed to cache sequence node", sequence_node_key=key, error=e.message)
            return

        self._count("seqnode_cache_writes_total", result="ok")

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)
