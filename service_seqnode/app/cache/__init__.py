"""
Cache package for Sequence Node Service.

Provides a Redis-backed read-through cache of sequence node content,
addressed by sequence node key under a fixed namespace prefix.
"""

from .redis_cache import SequenceNodeCache, DEFAULT_KEY_PREFIX

__all__ = ["SequenceNodeCache", "DEFAULT_KEY_PREFIX"]
