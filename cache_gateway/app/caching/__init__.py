"""
Gateway caching package.

Redis-backed cache-aside retrieval: canonical key derivation, a JSON store
adapter with a fixed TTL, and the get-or-fetch-and-populate service.
"""

from .cache_aside import CacheAsideService
from .cache_keys import derive_cache_key
from .redis_cache import RedisCache

__all__ = ["CacheAsideService", "RedisCache", "derive_cache_key"]
