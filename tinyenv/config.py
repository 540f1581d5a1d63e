"""
Default Store Configuration Module

Reads the bootstrap settings of the process-wide default store from the
process environment. Kept apart from store.py so the facade itself never
reads its own configuration from ambient state.
"""
import os
import warnings
import logging
from typing import List

from .values import coerce

logger = logging.getLogger(__name__)


class StoreSettings:
    """Default store settings read from ``TINYENV_*`` environment variables.

    Each instance is independent; ``configure()`` reads the environment once.
    """

    def __init__(self):
        """Initialize with defaults (does not read the environment yet)."""
        self._configured = False
        self.root_dirs: List[str] = [os.getcwd()]
        self.files: List[str] = [".env"]
        self.populate_environ = False
        self.tolerant = False
        self.allow_file_writes = True

    def configure(self) -> "StoreSettings":
        """Read settings from the environment.

        Idempotent: calling it again after the first time has no effect.
        """
        if self._configured:
            return self

        root_dirs = os.getenv("TINYENV_ROOT_DIRS", "")
        if root_dirs.strip():
            self.root_dirs = [d for d in root_dirs.split(os.pathsep) if d.strip()]
        else:
            self.root_dirs = [os.getcwd()]

        files = os.getenv("TINYENV_FILES", "")
        if files.strip():
            self.files = [f.strip() for f in files.split(",") if f.strip()]

        self.populate_environ = _flag("TINYENV_POPULATE_ENV", False)
        self.tolerant = _flag("TINYENV_TOLERANT", False)
        self.allow_file_writes = _flag("TINYENV_ALLOW_FILE_WRITES", True)

        self._configured = True
        logger.debug(f"Default store settings: roots={self.root_dirs} files={self.files}")
        return self


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = coerce(raw)
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    warnings.warn(
        f"{name}={raw!r} is not a boolean (true/false, yes/no, on/off, 1/0); using {default}",
        UserWarning,
    )
    return default


# Global instance for the default store
_global_settings = StoreSettings()


def get_settings() -> StoreSettings:
    """Return the configured global settings."""
    return _global_settings.configure()


def reset_settings() -> None:
    """Reset global settings (useful for testing)."""
    global _global_settings
    _global_settings = StoreSettings()
