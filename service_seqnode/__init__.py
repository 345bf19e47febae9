"""
Sequence Node Service package for the activity-delivery Access Layer.

This package retrieves sequence node content on behalf of activity players
and keeps a shared read-through cache of it. It provides:

- app.main: API surface for sequence node retrieval, cache maintenance and health.
- app.provider: The get-or-fetch-and-populate orchestration.
- app.keys: Stable sequence node key derivation.
- app.validation: Structural validation of sequence node identifiers.
- app.adapters: HTTP client for the upstream (AMS) service.
- app.cache: Redis-backed sequence node cache.

Guidelines:
- The service is stateless; rely on the external cache.
- Cached entries change only through explicit update or removal; writes are upserts.
"""
