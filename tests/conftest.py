"""
Pytest configuration and shared fixtures for tinyenv tests.

This module provides fixtures and configuration that are shared across all tests.
"""
import pytest

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def write_env(tmp_path):
    """Fixture writing env files into a temporary root directory.

    Usage: ``write_env("A=1\\nB=2\\n")`` or ``write_env("X=1", name=".env.local")``.
    Returns the root directory.
    """
    def _write(content: str, name: str = ".env", root: Path = None) -> Path:
        directory = root or tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        (directory / name).write_text(content, encoding="utf-8")
        return directory

    return _write


@pytest.fixture
def make_store():
    """Fixture building an EnvStore isolated from the process cache and os.environ."""
    from tinyenv.cache import EnvCache
    from tinyenv.store import EnvStore

    def _make(root_dirs, **kwargs):
        kwargs.setdefault("cache", EnvCache())
        kwargs.setdefault("environ", {})
        return EnvStore(root_dirs, **kwargs)

    return _make


@pytest.fixture
def resolver():
    """Fixture providing a Resolver over an empty cache and superglobal table."""
    from tinyenv.cache import EnvCache
    from tinyenv.interpolation import Resolver

    return Resolver(EnvCache(), environ={})


@pytest.fixture(autouse=True)
def reset_global_state():
    """Automatically reset process-wide state so tests do not leak into each other."""
    from tinyenv.cache import default_cache
    from tinyenv.config import reset_settings
    from tinyenv.helpers import reset_default_store
    from tinyenv.store import EnvStore, clear_system_memo

    yield
    default_cache().clear()
    reset_default_store()
    reset_settings()
    clear_system_memo()
    EnvStore.set_allow_file_writes(True)
