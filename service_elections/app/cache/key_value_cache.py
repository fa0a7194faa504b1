"""
In-process key/value cache for Elections Service.
"""

import threading
from typing import Any, Dict, Generic, List, Optional, TypeVar

from shared.logging import get_logger

V = TypeVar("V")


class KeyValueCache(Generic[V]):
    """Thread-safe string-keyed cache holding values of a single type.

    There is no TTL, no eviction and no size bound: an entry lives until it
    is overwritten, invalidated or cleared. Every operation takes the same
    lock, so a put is visible to any later get from any thread and a prefix
    scan never observes a half-applied removal. Nothing is coordinated across
    separate calls; racing put/invalidate on one key leaves whichever ran last.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self.logger = get_logger(f"elections.cache.{name}")
        self._entries: Dict[str, V] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: V) -> None:
        """Store or overwrite `key`. None is reserved for misses and cannot be stored."""
        if value is None:
            raise ValueError("KeyValueCache cannot store None")
        with self._lock:
            self._entries[key] = value
        self.logger.debug("Cached", key=key)

    def get(self, key: str) -> Optional[V]:
        """Return the value under `key`, or None on a miss."""
        with self._lock:
            value = self._entries.get(key)

        if value is None:
            self.logger.debug("Cache miss", key=key)
        else:
            self.logger.debug("Cache hit", key=key)
        return value

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def invalidate(self, key: str) -> None:
        """Remove `key` if present."""
        with self._lock:
            self._entries.pop(key, None)
        self.logger.debug("Cache invalidated", key=key)

    def invalidate_pattern(self, prefix: str) -> int:
        """Remove every key starting with `prefix`; returns how many were removed."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]

        self.logger.debug("Cache pattern invalidated", prefix=prefix, removed=len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        self.logger.info("Cache cleared", cache=self.name)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Diagnostic snapshot of the cache."""
        with self._lock:
            keys = sorted(self._entries)
        return {"name": self.name, "size": len(keys), "keys": keys}
