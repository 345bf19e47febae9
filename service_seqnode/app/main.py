"""
Sequence Node service for the activity-delivery Access Layer.
"""

from typing import Dict, Any, Optional

import redis.asyncio as redis
from fastapi import Body, Query

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.retry import RetryConfig

from .adapters.upstream_client import UpstreamClient
from .cache.redis_cache import SequenceNodeCache
from .provider import SequenceNodeProvider, get_merge_strategy

SERVICE_NAME = "seqnode"
SERVICE_PORT = 8020


class SequenceNodeService(BaseService):
    """Sequence node service implementation.

    The Redis client and upstream client can be supplied for embedding and
    tests; otherwise both are built from configuration.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        redis_client: Optional[redis.Redis] = None,
        upstream: Optional[UpstreamClient] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        self.cache = SequenceNodeCache(
            self.config.redis_url,
            client=redis_client,
            key_prefix=self.config.seqnode_cache_prefix,
            ttl_seconds=self.config.seqnode_cache_ttl_seconds,
        )
        self.upstream = upstream or UpstreamClient(
            self.config.ams_base_url,
            timeout=self.config.upstream_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=self.config.upstream_retry_attempts,
                base_delay=self.config.upstream_retry_base_delay,
            ),
            pass_through_error_status=self.config.upstream_pass_through_error_status,
        )
        self.provider = SequenceNodeProvider(
            self.cache,
            self.upstream,
            default_url=self.config.default_seqnode_url,
            merge_strategy=get_merge_strategy(self.config.seqnode_merge_strategy),
            single_flight=self.config.seqnode_single_flight,
            metrics=self.metrics,
        )

        self._setup_seqnode_routes()

    def _setup_seqnode_routes(self):
        """Set up sequence node routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Access Layer - Sequence Node Service",
                "version": "1.0.0",
                "capabilities": ["read_through_cache", "upstream_fetch", "cache_maintenance"]
            }

        @self.app.post("/seqnode")
        async def retrieve_sequence_node(identifier: Dict[str, Any] = Body(...)):
            """Retrieve a sequence node by identifier."""
            result = await self.provider.get_sequence_node(identifier)
            return result.model_dump(by_alias=True)

        @self.app.get("/seqnode")
        async def retrieve_sequence_node_by_param(
            seqNodeRequestParam: str = Query(..., description="Sequence node identifier as JSON text")
        ):
            """Retrieve a sequence node by identifier passed in the query string."""
            result = await self.provider.get_sequence_node(seqNodeRequestParam)
            return result.model_dump(by_alias=True)

        @self.app.get("/seqnode/cache/stats")
        async def get_cache_stats():
            """Get sequence node cache statistics."""
            return {
                "key_prefix": self.provider.cache_key_prefix,
                "redis": await self.cache.get_cache_stats(),
            }

        @self.app.get("/seqnode/{sequence_node_key}")
        async def retrieve_sequence_node_by_key(sequence_node_key: str):
            """Retrieve a cached sequence node by key."""
            entry = await self.provider.get_sequence_node_by_key(sequence_node_key)
            return entry.model_dump(by_alias=True)

        @self.app.put("/seqnode/{sequence_node_key}")
        async def update_sequence_node(sequence_node_key: str, data: Any = Body(...)):
            """Apply an update to a cached sequence node."""
            entry = await self.provider.update_sequence_node_in_cache(sequence_node_key, data)
            return entry.model_dump(by_alias=True)

        @self.app.delete("/seqnode/{sequence_node_key}")
        async def remove_sequence_node(sequence_node_key: str):
            """Remove a cached sequence node."""
            removed = await self.provider.remove_sequence_node_from_cache(sequence_node_key)
            return {"sequenceNodeKey": removed}

        @self.app.get("/healthInfo")
        async def upstream_health():
            """Health of the upstream sequence node source."""
            return await self.provider.get_upstream_health()

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check sequence node service dependencies."""
        return {"redis": "ok" if await self.cache.health_check() else "error"}

    async def start(self):
        """Start sequence node service components."""
        await self.cache.start()
        self.logger.info("Sequence node service started")

    async def stop(self):
        """Stop sequence node service components."""
        await self.cache.stop()
        self.logger.info("Sequence node service stopped")


def create_app():
    """Create sequence node service application."""
    service = SequenceNodeService()
    return service.app


if __name__ == "__main__":
    service = SequenceNodeService()
    service.run()
