"""Fixed-TTL result cache.

Deep module with a minimal interface:
- Hides timestamping, lazy expiry and hit/miss accounting
- Simple interface: get(key) / set(key, payload) / clear()

Entries are only evicted when an expired key is read; there is no
background sweeper and no size bound. Payloads are stored and returned
by identity, so callers must treat them as read-only.
"""

from collections.abc import Callable
from dataclasses import dataclass
import logging
import time
from typing import Any, Generic, TypeVar

import orjson
from pydantic import BaseModel

from doctor_match.observability.metrics import CACHE_EVENTS


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached payload and the monotonic time it was stored at."""

    key: str
    payload: T
    stored_at: float


def _key_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Unsupported cache key part: {type(value).__name__}")


def make_cache_key(prefix: str, *parts: Any) -> str:
    """Deterministic cache key from JSON-serializable parts.

    Mapping keys are sorted so ``{"a": 1, "b": 2}`` and ``{"b": 2, "a": 1}``
    produce the same key.

    Examples:
        >>> make_cache_key("search", "cardio", {"b": 2, "a": 1}, 20)
        'search:["cardio",{"a":1,"b":2},20]'
    """
    encoded = orjson.dumps(list(parts), default=_key_default, option=orjson.OPT_SORT_KEYS)
    return f"{prefix}:{encoded.decode('utf-8')}"


class TTLCache(Generic[T]):
    """In-memory cache whose entries expire a fixed number of seconds after being stored."""

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            name: Label used in logs and the cache metrics
            ttl_seconds: Lifetime of every entry
            clock: Monotonic time source, injectable for tests
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> T | None:
        """Return the live payload for ``key`` or None, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.stored_at < self.ttl_seconds:
            self._record(hit=True)
            return entry.payload

        if entry is not None:
            self._entries.pop(key, None)
            logger.debug("Cache entry expired in %s", self.name)
        self._record(hit=False)
        return None

    def set(self, key: str, payload: T) -> None:
        self._entries[key] = CacheEntry(key=key, payload=payload, stored_at=self._clock())

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.debug("Cleared %d entries from %s", count, self.name)

    def _record(self, *, hit: bool) -> None:
        if hit:
            self.hits += 1
        else:
            self.misses += 1
        CACHE_EVENTS.labels(cache=self.name, result="hit" if hit else "miss").inc()
