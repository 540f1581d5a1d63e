"""Env store facade: file discovery, loading and value access."""
from __future__ import annotations

import logging
import os
import re
import threading
from pathlib import Path
from typing import Any, Container, Dict, Iterable, List, MutableMapping, Optional, Sequence, Set, Union

from .cache import EnvCache, default_cache
from .errors import DangerousValueError, FileAccessError, InvalidKeyError, NoFileFoundError
from .interpolation import Resolver
from .loader import FileLoader
from .parser import LineParser
from .persistence import persist_value
from .values import EnvValue, coerce, is_dangerous, render

logger = logging.getLogger(__name__)

BASE_FILE = ".env"

_SETENV_KEY_RE = re.compile(r"^[A-Z0-9_]+$")
_SCALARS = (str, int, float, bool)

_system_lock = threading.Lock()
_system_memo: Dict[str, str] = {}


class _PrefixFilter:
    """Container matching keys that contain any of the given prefixes."""

    def __init__(self, prefixes: Iterable[str]):
        self.prefixes = tuple(prefixes)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and any(prefix in key for prefix in self.prefixes)


class EnvStore:
    """Loads env files from root directories and exposes their values.

    The store starts ``unloaded``; ``load()`` moves it to ``loaded`` and is a
    no-op afterwards unless ``force_reload`` is set. ``unload()`` removes the
    keys the store committed and returns it to ``unloaded``.

    Args:
        root_dirs: Directory or directories to look for env files in. They
            are expected to exist; missing files are handled per load mode.
        cache: Cache to commit into. Defaults to the process-wide cache.
        environ: Superglobal table consulted for lookups and mirrored into
            when enabled. Defaults to ``os.environ``.
        populate_environ: Mirror committed values into ``environ``.
        files: Ordered env file names to probe per directory.
        fast_load: Load immediately.
        lazy_prefixes: Run ``lazy()`` with these prefixes immediately.
        line_cache: Cache file lines per path across loads.
    """

    _allow_file_writes = True

    def __init__(
        self,
        root_dirs: Union[str, os.PathLike, Sequence[Union[str, os.PathLike]]],
        *,
        cache: Optional[EnvCache] = None,
        environ: Optional[MutableMapping[str, Any]] = None,
        populate_environ: bool = False,
        files: Optional[Sequence[str]] = None,
        fast_load: bool = False,
        lazy_prefixes: Optional[Sequence[str]] = None,
        line_cache: bool = True,
    ):
        if isinstance(root_dirs, (str, os.PathLike)):
            root_dirs = [root_dirs]
        self.root_dirs: List[str] = [str(d) for d in root_dirs]
        self.cache = cache if cache is not None else default_cache()
        self.environ = environ if environ is not None else os.environ
        self.files: List[str] = [BASE_FILE]
        if files is not None:
            self.configure_files(files)

        self.resolver = Resolver(self.cache, self.environ)
        self.loader = FileLoader(LineParser(self.resolver), line_cache=line_cache)

        self._lock = threading.RLock()
        self._populate = populate_environ
        self._loaded = False
        self._owned: Set[str] = set()
        self._mirrored: Set[str] = set()

        if fast_load and lazy_prefixes is None:
            self.load()
        elif lazy_prefixes is not None:
            self.lazy(lazy_prefixes)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @classmethod
    def set_allow_file_writes(cls, allow: bool) -> None:
        """Enable or disable persisting ``setenv()`` into env files."""
        cls._allow_file_writes = allow

    def configure_files(self, names: Sequence[str]) -> "EnvStore":
        """Set the ordered env file names probed in each root directory.

        ``.env`` is moved to the front when present and duplicates are
        dropped. Later files override earlier ones for shared keys.
        """
        ordered: List[str] = []
        for name in names:
            if name not in ordered:
                ordered.append(name)
        if not ordered:
            raise ValueError("at least one env file name is required")
        if BASE_FILE in ordered:
            ordered.remove(BASE_FILE)
            ordered.insert(0, BASE_FILE)
        self.files = ordered
        return self

    envfiles = configure_files

    def populate_environ(self, enable: bool = True) -> "EnvStore":
        """Mirror committed values into the superglobal table (off by default)."""
        self._populate = enable
        return self

    def load(
        self,
        keys: Optional[Union[str, Iterable[str]]] = None,
        force_reload: bool = False,
        tolerant: bool = False,
    ) -> "EnvStore":
        """Load every configured file from every root directory.

        Args:
            keys: Only commit these keys (all keys when None or empty); a
                single name may be passed as a string.
            force_reload: Re-read files even if already loaded.
            tolerant: Skip malformed lines, unreadable files and the
                no-file condition instead of raising.

        Returns:
            self

        Raises:
            NoFileFoundError: no configured file exists anywhere (strict).
            FileAccessError: a file exists but cannot be read (strict).
            MalformedLineError: a line breaks the grammar (strict).
            DangerousValueError, SubstitutionError: always.
        """
        with self._lock:
            if self._loaded and not force_reload:
                return self
            if force_reload:
                self.loader.invalidate()
            if isinstance(keys, str):
                keys = [keys]
            allowed = set(keys) if keys else None
            self._load_files(allowed, tolerant=tolerant, use_cache=not force_reload)
            self._loaded = True
        return self

    def safe_load(self, keys: Optional[Union[str, Iterable[str]]] = None, force_reload: bool = False) -> "EnvStore":
        return self.load(keys, force_reload=force_reload, tolerant=True)

    def lazy(self, prefixes: Sequence[str], reset: bool = False) -> "EnvStore":
        """Load only keys whose name contains one of ``prefixes``."""
        with self._lock:
            if reset:
                self.unload()
            self._load_files(_PrefixFilter(prefixes))
        return self

    def only(self, keys: Union[str, Sequence[str]], reset: bool = False) -> "EnvStore":
        """Load only the given keys, regardless of the loaded state."""
        if isinstance(keys, str):
            keys = [keys]
        with self._lock:
            if reset:
                self.unload()
            self._load_files(set(keys))
        return self

    def unload(self) -> "EnvStore":
        """Remove every key this store committed, from the cache and the mirror."""
        with self._lock:
            for key in self._owned:
                self.cache.discard(key)
            for key in self._mirrored:
                self.environ.pop(key, None)
            logger.info(f"Unloaded {len(self._owned)} keys")
            self._owned.clear()
            self._mirrored.clear()
            self._loaded = False
        return self

    def refresh(self) -> "EnvStore":
        """Unload, then reload from disk."""
        return self.unload().load(force_reload=True)

    def _load_files(
        self,
        allowed_keys: Optional[Container[str]],
        tolerant: bool = False,
        use_cache: bool = True,
    ) -> int:
        found = 0
        for directory in self.root_dirs:
            for name in self.files:
                path = Path(directory) / name
                if not path.exists():
                    logger.debug(f"Env file not present: {path}")
                    continue
                found += 1
                try:
                    values = self.loader.load_file(path, allowed_keys, tolerant=tolerant, use_cache=use_cache)
                except FileAccessError as e:
                    if not tolerant:
                        raise
                    logger.warning(f"Skipping unreadable env file: {e}")
                    continue
                self._commit(values)
                logger.info(f"Loaded {len(values)} keys from {path}")

        if not found:
            if not tolerant:
                raise NoFileFoundError(self.root_dirs, self.files)
            logger.warning(f"No env file found in {', '.join(self.root_dirs)}")
        return found

    def _commit(self, values: Dict[str, EnvValue]) -> None:
        self.cache.update(values)
        self._owned.update(values)
        for key, value in values.items():
            self._mirror(key, value)

    def _mirror(self, key: str, value: EnvValue) -> None:
        if not self._populate:
            return
        self.environ[key] = render(value)
        self._mirrored.add(key)

    def get(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Read a value without side effects.

        Returns the cached value, else the superglobal table's (coerced)
        copy, else ``default``. With ``key=None`` returns a snapshot dict of
        the cache, merged over the superglobal table when mirroring.
        """
        if key is None:
            snapshot = self.cache.snapshot()
            if self._populate:
                merged = {k: coerce(v) for k, v in self.environ.items()}
                merged.update(snapshot)
                return merged
            return snapshot

        found, value = self.cache.lookup(key)
        if found:
            return value
        if key in self.environ:
            return coerce(self.environ[key])
        return default

    def get_or_insert(self, key: str, default: Any) -> Any:
        """Like ``get()``, but persists the coerced ``default`` when the key is absent."""
        found, value = self.cache.lookup(key)
        if found:
            return value
        if key in self.environ:
            return coerce(self.environ[key])

        value = coerce(default)
        if isinstance(value, str) and is_dangerous(value):
            raise DangerousValueError(key)
        self.cache.set(key, value)
        self._mirror(key, value)
        return value

    def set_cache_entry(self, key: str, value: Any) -> None:
        """Write straight into the cache, bypassing file parsing.

        String values go through coercion and the safety filter like parsed ones.
        """
        value = coerce(value)
        if isinstance(value, str) and is_dangerous(value):
            raise DangerousValueError(key)
        self.cache.set(key, value)

    def clear_cache(self, key: Optional[str] = None) -> None:
        """Remove one entry, or flush the cache and file-lines cache entirely."""
        with self._lock:
            if key is not None:
                self.cache.discard(key)
                self._owned.discard(key)
                if key in self._mirrored:
                    self.environ.pop(key, None)
                    self._mirrored.discard(key)
                return

            self.cache.clear()
            self.loader.invalidate()
            for mirrored in self._mirrored:
                self.environ.pop(mirrored, None)
            self._owned.clear()
            self._mirrored.clear()
            self._loaded = False

    def setenv(self, key: str, value: Any = None) -> None:
        """Set a value at runtime and persist it into the base env file.

        Persistence targets ``.env`` in the first root directory and is
        skipped when file writes are disabled.

        Raises:
            InvalidKeyError: key is not upper-case ``[A-Z0-9_]+``.
            TypeError: value is not a scalar or None.
            ValueError: value contains a line break.
            FileAccessError: the file cannot be written.
        """
        key = key.strip()
        if not _SETENV_KEY_RE.match(key):
            raise InvalidKeyError(f"invalid key {key!r}")
        if value is not None and not isinstance(value, _SCALARS):
            raise TypeError(f"cannot cast value for {key!r}: {type(value).__name__}")
        if isinstance(value, str) and ("\n" in value or "\r" in value):
            raise ValueError(f"value for {key!r} must be a single line")
        if isinstance(value, str) and is_dangerous(value):
            raise DangerousValueError(key)

        self.cache.set(key, coerce(value))
        self._mirror(key, coerce(value))

        if not EnvStore._allow_file_writes:
            return
        base = Path(self.root_dirs[0]) if self.root_dirs else Path.cwd()
        persist_value(base / BASE_FILE, key, value)

    @staticmethod
    def system_get(key: str) -> str:
        """Read a process environment variable, memoized for the process lifetime."""
        with _system_lock:
            if key not in _system_memo:
                _system_memo[key] = os.environ.get(key, "")
            return _system_memo[key]


def clear_system_memo() -> None:
    """Forget memoized ``system_get`` reads."""
    with _system_lock:
        _system_memo.clear()
