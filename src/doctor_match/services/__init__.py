"""Supporting services shared by the search and matching layers."""

from .ttl_cache import CacheEntry, TTLCache, make_cache_key


__all__ = [
    "CacheEntry",
    "TTLCache",
    "make_cache_key",
]
