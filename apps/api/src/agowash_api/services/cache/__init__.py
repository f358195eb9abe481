"""Cache store used exclusively by the ledger gateway."""

from .store import CacheKeys, CacheStore, cache_key

__all__ = ["CacheKeys", "CacheStore", "cache_key"]
