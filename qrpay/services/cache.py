from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, NamedTuple, Optional, TypeVar

from qrpay.models.amounts import AmountTriple
from qrpay.models.payment import QRFormat
from qrpay.services.money import stable_amount

"""Rendered QR image cache.

Purpose:
    Avoid re-rendering images for (amount, format) combinations already seen.

Design:
    - One OrderedDict holds the entries; its order is the recency order
      (least recent first), so touch and evict are both O(1).
    - capacity=None means unbounded. Eviction is purely capacity driven;
      entries never expire by time.
    - Hit / miss counters and a byte estimate are kept for monitoring and
      persisted by the stats flusher.
    - Two renders racing for the same key both insert; the later insert
      overwrites, which is harmless because the artifacts are equivalent.

Not thread-safe: all mutation happens on the event loop that owns the session.
"""

logger = logging.getLogger("qrpay.cache")

A = TypeVar("A")


class CacheKey(NamedTuple):
    amount_a: str
    amount_b: str
    fmt: QRFormat
    # Contract reference baked into the purpose text; "" when the clause is off
    contract: str = ""


def make_cache_key(triple: AmountTriple, fmt: QRFormat, contract: str = "") -> CacheKey:
    # Truncated like the encoded Sum: equal keys always mean equal payloads
    return CacheKey(
        stable_amount(triple.amount_a), stable_amount(triple.amount_b), fmt, contract
    )


@dataclass
class CacheEntry(Generic[A]):
    key: CacheKey
    artifact: A
    size_bytes: int


@dataclass(frozen=True)
class CacheStatistics:
    hits: int
    misses: int
    total_bytes: int
    count: int
    capacity: Optional[int]

    def as_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "total_bytes": self.total_bytes,
            "count": self.count,
            "capacity": self.capacity,
        }


class PayloadCache(Generic[A]):
    """LRU cache of rendered artifacts with hit/miss accounting."""

    def __init__(self, capacity: Optional[int] = None):
        if capacity is not None and capacity <= 0:
            raise ValueError("capacity must be positive or None for unbounded")
        self._capacity = capacity
        self._entries: "OrderedDict[CacheKey, CacheEntry[A]]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._total_bytes = 0

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Membership test only; does not count or touch
        return key in self._entries

    def lookup(self, key: CacheKey) -> Optional[A]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            logger.debug(
                "cache miss",
                extra={"fields": {"hits": self._hits, "misses": self._misses}},
            )
            return None
        self._hits += 1
        self._entries.move_to_end(key)
        logger.debug(
            "cache hit",
            extra={"fields": {"hits": self._hits, "misses": self._misses}},
        )
        return entry.artifact

    def insert(self, key: CacheKey, artifact: A, size_bytes: int) -> None:
        if size_bytes < 0:
            raise ValueError("size_bytes cannot be negative")
        existing = self._entries.get(key)
        if existing is not None:
            self._total_bytes -= existing.size_bytes
            self._entries.move_to_end(key)
        elif self._capacity is not None and len(self._entries) >= self._capacity:
            evicted_key, evicted = self._entries.popitem(last=False)
            self._total_bytes -= evicted.size_bytes
            logger.debug(
                "cache evict",
                extra={
                    "fields": {
                        "amount_a": evicted_key.amount_a,
                        "amount_b": evicted_key.amount_b,
                        "format": evicted_key.fmt.value,
                    }
                },
            )
        self._entries[key] = CacheEntry(key=key, artifact=artifact, size_bytes=size_bytes)
        self._total_bytes += size_bytes
        logger.debug(
            "cache store",
            extra={
                "fields": {
                    "count": len(self._entries),
                    "total_kb": self._total_bytes // 1024,
                }
            },
        )

    def statistics(self) -> CacheStatistics:
        return CacheStatistics(
            hits=self._hits,
            misses=self._misses,
            total_bytes=self._total_bytes,
            count=len(self._entries),
            capacity=self._capacity,
        )

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._total_bytes = 0
        logger.info("cache cleared")

    def restore_counters(self, hits: int, misses: int) -> None:
        """Seed hit/miss counters from persisted state at startup."""
        self._hits = max(0, int(hits))
        self._misses = max(0, int(misses))

    def keys(self) -> list:
        """Keys from least to most recently used."""
        return list(self._entries.keys())
