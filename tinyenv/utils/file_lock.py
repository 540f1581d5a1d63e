"""Advisory file locking for env file reads and writes.

Readers take a shared lock so they never observe a half-written file while an
external writer holds the exclusive lock. On platforms without ``fcntl`` the
locks are no-ops.
"""

from __future__ import annotations

import contextlib
import logging
from typing import IO, Iterator

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def locked(handle: IO, exclusive: bool = False) -> Iterator[IO]:
    """Hold an advisory lock on ``handle`` for the duration of the block."""
    if fcntl is None:
        yield handle
        return

    mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
    fcntl.flock(handle.fileno(), mode)
    try:
        yield handle
    finally:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def read_lines(path, encoding: str = "utf-8-sig") -> list:
    """Read a text file under a shared lock, without line terminators or a leading BOM."""
    with open(path, "r", encoding=encoding) as handle:
        with locked(handle):
            return handle.read().splitlines()


def write_text(path, content: str, encoding: str = "utf-8") -> None:
    """Replace a file's content under an exclusive lock."""
    # "a+" creates the file without truncating it before the lock is held.
    with open(path, "a+", encoding=encoding) as handle:
        with locked(handle, exclusive=True):
            handle.seek(0)
            handle.truncate()
            handle.write(content)
            handle.flush()
    logger.debug(f"Wrote {len(content)} bytes to {path}")
