"""
Sequence Node Service application.

Modules:
- main: FastAPI service wiring and routes
- provider: SequenceNodeProvider orchestration
- models: Identifier, cache entry and retrieval result models
- keys: Sequence node key derivation
"""
