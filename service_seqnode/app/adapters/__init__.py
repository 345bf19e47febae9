"""
Adapters package for the Sequence Node Service.

Contains the HTTP client for the upstream source of sequence node
content (the AMS). The adapter encapsulates:

- Base URL and request shape
- Timeout and transport retry policy
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .upstream_client import UpstreamClient

__all__ = ["UpstreamClient"]
