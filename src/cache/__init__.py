"""Name-keyed in-memory store with lazy TTL expiry."""

from src.cache.memory import CacheItem, MemoryCache


__all__ = ["CacheItem", "MemoryCache"]
