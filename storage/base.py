"""Key-value store interface used by the event store and catalog."""
import copy
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional


class KeyValueStore(ABC):
    """String-keyed store of JSON-compatible values with optional expiry."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value for ``key``, or None if absent or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Write ``value`` under ``key``, replacing any previous value."""

    def set_many(self, items: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """Write several keys with the same expiry."""
        for key, value in items.items():
            self.set(key, value, ttl_seconds=ttl_seconds)


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for local runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._items: Dict[str, tuple] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._items[key]
                return None

            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._items[key] = (copy.deepcopy(value), expires_at)
