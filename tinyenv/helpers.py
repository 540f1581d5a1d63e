"""Global accessor functions over a process-wide default store.

These mirror the free functions applications call from anywhere::

    from tinyenv import env, s_env

    debug = env("APP_DEBUG", False)
    port = s_env("PORT")
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Optional

from .cache import default_cache
from .config import get_settings
from .store import EnvStore
from .values import to_env_string

logger = logging.getLogger(__name__)

_UNSET = object()

_store_lock = threading.Lock()
_default_store: Optional[EnvStore] = None


def default_store() -> EnvStore:
    """Return the process-wide store, creating it from the settings on first use.

    The store is created but not loaded; call ``default_store().load()``.
    """
    global _default_store
    with _store_lock:
        if _default_store is None:
            settings = get_settings()
            EnvStore.set_allow_file_writes(settings.allow_file_writes)
            _default_store = EnvStore(
                settings.root_dirs,
                cache=default_cache(),
                files=settings.files,
                populate_environ=settings.populate_environ,
            )
            logger.debug("Created default env store")
        return _default_store


def set_default_store(store: EnvStore) -> None:
    """Replace the process-wide store used by the helpers."""
    global _default_store
    with _store_lock:
        _default_store = store


def reset_default_store() -> None:
    """Drop the process-wide store (useful for testing)."""
    global _default_store
    with _store_lock:
        _default_store = None


def env(key: Optional[str] = None, default: Any = _UNSET) -> Any:
    """Get a value by key, or every value when ``key`` is None.

    When ``default`` is passed and the key is absent, the coerced default is
    stored and returned by later calls too.
    """
    store = default_store()
    if key is None or default is _UNSET:
        return store.get(key)
    return store.get_or_insert(key, default)


def s_env(key: Optional[str] = None, default: Any = _UNSET) -> Any:
    """Like ``env()`` but forces values to strings (True -> "1", False/None -> "")."""
    value = env(key, default)
    if key is None:
        return {k: to_env_string(v) for k, v in value.items()}
    return to_env_string(value)


def setenv(key: str, value: Any = None) -> None:
    """Set a value on the default store and persist it to its base env file."""
    default_store().setenv(key, value)


def sysenv(key: Optional[str] = None) -> Any:
    """Read the process environment, bypassing the cache.

    Returns the whole environment as a dict when ``key`` is None, otherwise
    the memoized string value ("" when unset).
    """
    if key is None:
        return dict(os.environ)
    return EnvStore.system_get(key)
