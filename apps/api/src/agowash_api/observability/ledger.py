from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class LedgerSnapshot:
    cache: Dict[str, int]
    chain_calls: Dict[str, int]
    chain_failures: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "cache": dict(self.cache),
            "chain_calls": dict(self.chain_calls),
            "chain_failures": dict(self.chain_failures),
        }


class LedgerObservabilityStore:
    """Collect cache and chain telemetry for readiness checks and dashboards."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._cache: Dict[str, int] = defaultdict(int)
        self._chain_calls: Dict[str, int] = defaultdict(int)
        self._chain_failures: Dict[str, int] = defaultdict(int)

    def record_cache_hit(self, prefix: str) -> None:
        with self._lock:
            self._cache["hits"] += 1
            self._cache[f"hits:{prefix}"] += 1

    def record_cache_miss(self, prefix: str) -> None:
        with self._lock:
            self._cache["misses"] += 1
            self._cache[f"misses:{prefix}"] += 1

    def record_cache_error(self, operation: str) -> None:
        with self._lock:
            self._cache["errors"] += 1
            self._cache[f"errors:{operation}"] += 1

    def record_invalidation(self, count: int = 1) -> None:
        with self._lock:
            self._cache["invalidations"] += count

    def record_chain_call(self, operation: str) -> None:
        with self._lock:
            self._chain_calls[operation] += 1

    def record_chain_failure(self, operation: str) -> None:
        with self._lock:
            self._chain_failures[operation] += 1

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                cache=dict(self._cache),
                chain_calls=dict(self._chain_calls),
                chain_failures=dict(self._chain_failures),
            )

    def reset(self) -> None:
        with self._lock:
            self._cache.clear()
            self._chain_calls.clear()
            self._chain_failures.clear()


_STORE = LedgerObservabilityStore()


def get_ledger_store() -> LedgerObservabilityStore:
    return _STORE


__all__ = ["get_ledger_store", "LedgerObservabilityStore", "LedgerSnapshot"]
