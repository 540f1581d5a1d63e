"""Writes a single KEY=value declaration back into an env file."""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from .errors import FileAccessError
from .utils.file_lock import write_text

logger = logging.getLogger(__name__)


def format_value(value) -> str:
    """Serialize a scalar for an env file. Booleans become true/false."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return ""
    raw = str(value)
    if "\n" in raw or "\r" in raw:
        raise ValueError("env file values must be a single line")
    text = raw.strip()
    if "#" in text or text != raw:
        return f'"{text}"'
    return text


def persist_value(path, key: str, value) -> None:
    """Replace the ``KEY=`` line in ``path`` or append one, creating the file if needed.

    Raises:
        FileAccessError: if the file cannot be written or created.
        ValueError: if the value spans several lines.
    """
    p = Path(path)
    line = f"{key}={format_value(value)}"
    try:
        if p.exists():
            if not os.access(p, os.W_OK):
                raise FileAccessError(p, "not writable")
            content = p.read_text(encoding="utf-8-sig")
            pattern = re.compile(rf"^[ \t]*(?:export[ \t]+)?{re.escape(key)}[ \t]*=.*$", re.MULTILINE)
            if pattern.search(content):
                content = pattern.sub(lambda _: line, content)
            else:
                if content and not content.endswith("\n"):
                    content += "\n"
                content += line + "\n"
        elif os.access(p.parent, os.W_OK):
            content = line + "\n"
        else:
            raise FileAccessError(p, "cannot create")
        write_text(p, content)
    except FileAccessError as e:
        logger.error(str(e))
        raise
    except OSError as e:
        logger.error(f"Failed to write {p}: {e}")
        raise FileAccessError(p, "failed to write") from e
    logger.info(f"Persisted {key} to {p}")
