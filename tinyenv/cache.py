"""Lock-guarded key/value cache shared by env stores.

A cache is an explicit object that can be injected into any number of
``EnvStore`` instances. ``helpers.default_store()`` wires up the single
process-wide instance for callers that do not pass one around.
"""
from __future__ import annotations

import threading
from typing import Dict, Mapping, Optional, Tuple

from .values import EnvValue

_MISSING = object()


class EnvCache:
    """Typed key/value table. Every mutating operation holds the lock."""

    def __init__(self, initial: Optional[Mapping[str, EnvValue]] = None):
        self._lock = threading.RLock()
        self._data: Dict[str, EnvValue] = dict(initial or {})

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def lookup(self, key: str) -> Tuple[bool, EnvValue]:
        """Return ``(found, value)`` so stored ``None`` values stay distinguishable."""
        with self._lock:
            value = self._data.get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    def get(self, key: str, default: EnvValue = None) -> EnvValue:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: EnvValue) -> None:
        with self._lock:
            self._data[key] = value

    def update(self, values: Mapping[str, EnvValue]) -> None:
        """Commit several entries at once."""
        with self._lock:
            self._data.update(values)

    def discard(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def snapshot(self) -> Dict[str, EnvValue]:
        with self._lock:
            return dict(self._data)


_default_cache = EnvCache()


def default_cache() -> EnvCache:
    """The process-wide cache used by stores created without an explicit one."""
    return _default_cache
