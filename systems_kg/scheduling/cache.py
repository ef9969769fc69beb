"""
Bounded Cache

Byte-budgeted, thread-safe cache for intermediate results (chunk extraction
outcomes, mostly). Entries are evicted oldest-inserted first when a new entry
would push the total over budget, and expire after an optional TTL.

Example:
    >>> cache = BoundedCache(max_bytes=1024, ttl_seconds=60)
    >>> cache.set("k", {"entities": []})
    True
    >>> cache.get("k")
    {'entities': []}
    >>> cache.get("missing") is MISSING
    True
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Returned by ``get`` for absent or expired keys (``None`` is a valid value)."""


@dataclass
class CacheEntry:
    key: str
    value: Any
    size: int
    inserted_at: float
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


def estimate_size(value: Any) -> int:
    """Approximate in-memory size: twice the JSON-serialized length."""
    if isinstance(value, BaseModel):
        serialized = value.model_dump_json()
    else:
        serialized = json.dumps(value, default=_json_default)
    return len(serialized) * 2


def _json_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


def hash_key(*parts: str) -> str:
    """Stable SHA-256 key from arbitrary string parts."""
    raw = "||".join(parts)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class BoundedCache:
    """
    Insertion-ordered cache with a byte budget and optional TTL.

    Args:
        max_bytes: Total size budget. Never exceeded.
        ttl_seconds: Entry lifetime, or None for no expiry
        clock: Monotonic time source (seconds), injectable for tests
    """

    def __init__(
        self,
        max_bytes: int,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self.max_bytes = max_bytes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._total_bytes = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return MISSING
            if entry.is_expired(self._clock()):
                self._remove(key)
                self.misses += 1
                return MISSING
            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any, approx_size: int | None = None) -> bool:
        """
        Store a value.

        Returns:
            False if the entry alone is larger than the whole budget (nothing
            is stored and nothing is evicted), True otherwise.
        """
        size = approx_size if approx_size is not None else estimate_size(value)
        if size < 0:
            raise ValueError("approx_size must be non-negative")
        if size > self.max_bytes:
            logger.debug("Cache entry %s rejected: %d bytes exceeds budget", key[:12], size)
            return False

        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            if key in self._entries:
                self._remove(key)

            while self._entries and self._total_bytes + size > self.max_bytes:
                oldest = next(iter(self._entries))
                self._remove(oldest)
                self.evictions += 1

            expires_at = now + self.ttl_seconds if self.ttl_seconds is not None else None
            self._entries[key] = CacheEntry(
                key=key, value=value, size=size, inserted_at=now, expires_at=expires_at
            )
            self._total_bytes += size
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._entries:
                return False
            self._remove(key)
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_bytes = 0

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total_bytes

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # Callers hold the lock

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._total_bytes -= entry.size

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            self._remove(k)
