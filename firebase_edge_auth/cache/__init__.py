"""
Cache backends for the OAuth token and provider public keys.
"""

from .base import Cache
from .memory import InMemoryCache
from .redis_cache import RedisCache

__all__ = ["Cache", "InMemoryCache", "RedisCache"]
