"""Reads env files and drives the line parser over them."""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Container, Dict, List, Optional

from .errors import FileAccessError, MalformedLineError
from .parser import LineParser, build_raw_map
from .utils.file_lock import read_lines
from .values import EnvValue

logger = logging.getLogger(__name__)


class FileLoader:
    """Loads one env file at a time.

    Lines are optionally cached per absolute path so repeated loads in the
    same process do not re-read unchanged files.
    """

    def __init__(self, parser: LineParser, line_cache: bool = True):
        self.parser = parser
        self.line_cache = line_cache
        self._lines_lock = threading.Lock()
        self._lines: Dict[str, List[str]] = {}

    def read_lines(self, path, use_cache: bool = True) -> List[str]:
        """Return the lines of ``path``.

        Raises:
            FileAccessError: if the file is missing or unreadable.
        """
        p = Path(path)
        if not p.is_file():
            raise FileAccessError(p, "cannot read")
        if not os.access(p, os.R_OK):
            raise FileAccessError(p, "not readable")

        cache_key = str(p.resolve())
        if self.line_cache and use_cache:
            with self._lines_lock:
                cached = self._lines.get(cache_key)
            if cached is not None:
                return cached

        try:
            lines = read_lines(p)
        except (OSError, UnicodeDecodeError) as e:
            raise FileAccessError(p, f"failed to read ({e})") from e

        if self.line_cache:
            with self._lines_lock:
                self._lines[cache_key] = lines
        return lines

    def invalidate(self, path=None) -> None:
        """Drop cached lines for ``path``, or for every file."""
        with self._lines_lock:
            if path is None:
                self._lines.clear()
            else:
                self._lines.pop(str(Path(path).resolve()), None)

    def load_file(
        self,
        path,
        allowed_keys: Optional[Container[str]] = None,
        tolerant: bool = False,
        use_cache: bool = True,
    ) -> Dict[str, EnvValue]:
        """Parse a whole file into an ordered dict of typed values.

        Nothing is committed here: the caller commits the returned dict only
        after the whole file parsed, so a broken file never lands half-way.

        Args:
            path: Path to the env file.
            allowed_keys: Optional container of keys to keep.
            tolerant: Skip malformed lines instead of aborting.
            use_cache: Allow serving lines from the per-path cache.

        Returns:
            Dict of key -> typed value, in file order.
        """
        lines = self.read_lines(path, use_cache=use_cache)
        raw_map = build_raw_map(lines)
        staged: Dict[str, EnvValue] = {}

        for line_number, line in enumerate(lines, start=1):
            try:
                parsed = self.parser.parse_line(
                    line,
                    allowed_keys=allowed_keys,
                    raw_map=raw_map,
                    overlay=staged,
                )
            except MalformedLineError as e:
                error = MalformedLineError(e.reason, line=line, line_number=line_number, path=str(path))
                if not tolerant:
                    raise error from e
                logger.warning(f"Skipping malformed line: {error}")
                continue

            if parsed is not None:
                staged[parsed.key] = parsed.value

        logger.debug(f"Parsed {len(staged)} keys from {path}")
        return staged
