"""Cache: in-process request cache.

Used by the pending evaluations service, the roster manager and the
response synchronizer. Key format lives in evalsync.core.cache_keys.
"""

from evalsync.infrastructure.cache.request_cache import CacheEntry, RequestCache

__all__ = [
    "CacheEntry",
    "RequestCache",
]
