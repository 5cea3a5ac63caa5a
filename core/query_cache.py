"""
Query Cache

Keyed in-process cache with a staleness window and explicit invalidation.
Entries live for the process lifetime only; nothing is persisted.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _CacheEntry(Generic[T]):
    value: T
    stored_at: float


class QueryCache(Generic[T]):
    """
    Cache of query results keyed by an arbitrary hashable key.

    A stored value is served until it is older than ``stale_after`` seconds
    or until ``invalidate`` drops it.
    """

    def __init__(
        self,
        name: str,
        stale_after: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.stale_after = stale_after
        self._clock = clock
        self._entries: Dict[Hashable, _CacheEntry[T]] = {}

    def get(self, key: Hashable) -> Optional[T]:
        """Return the cached value for key, or None if missing or stale"""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.stale_after:
            return None
        return entry.value

    def put(self, key: Hashable, value: T) -> None:
        self._entries[key] = _CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or every key when key is None"""
        if key is None:
            dropped = len(self._entries)
            self._entries.clear()
        else:
            dropped = 1 if self._entries.pop(key, None) is not None else 0
        logger.debug(f"Cache {self.name}: invalidated {dropped} entr{'y' if dropped == 1 else 'ies'}")

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
