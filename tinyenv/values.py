"""Value-level helpers: type coercion, comment stripping and the safety filter.

The coercion table below is the single source of truth for how a raw string
from an env file becomes a runtime value:

    true / yes / on      -> True
    false / no / off     -> False
    null / (empty)       -> None
    12, -3, +7           -> int
    8.7, -0.5, .5        -> float
    /anything/           -> "anything" (forced string, no coercion)
    everything else      -> unchanged string

A legitimate string that collides with a keyword (e.g. the literal word
``off``) is coerced like any other; wrap it as ``/off/`` to keep it a string.
"""
import re
from typing import Any, Optional, Union

EnvValue = Optional[Union[bool, int, float, str]]

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})
_NULL_WORDS = frozenset({"null", ""})

_NUMERIC_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)$")

# Resource-wrapper schemes used for local/remote inclusion and side-channel reads,
# plus data URIs carrying a base64 payload.
_DANGEROUS_PATTERNS = (
    re.compile(
        r"(?<![A-Za-z0-9+.\-])"
        r"(?:php|phar|expect|zip|glob|rar|ogg|compress\.zlib|compress\.bzip2|ssh2\.[a-z]+)://",
        re.IGNORECASE,
    ),
    re.compile(r"(?<![A-Za-z0-9+.\-])data:[^,;]*(?:;[^,;]*)*;base64,", re.IGNORECASE),
)


def is_forced_string(raw: str) -> bool:
    """Return True if ``raw`` uses the ``/value/`` escape."""
    trimmed = raw.strip()
    return len(trimmed) >= 2 and trimmed[0] == "/" and trimmed[-1] == "/"


def coerce(raw: Any) -> EnvValue:
    """Convert a raw string token into a typed value.

    Args:
        raw: Raw value text. Non-string inputs are returned unchanged.

    Returns:
        bool, int, float, None or str according to the coercion table.
    """
    if not isinstance(raw, str):
        return raw

    if is_forced_string(raw):
        return raw.strip()[1:-1]

    lowered = raw.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    if lowered in _NULL_WORDS:
        return None
    if _NUMERIC_RE.match(lowered):
        if "." in lowered:
            return float(lowered)
        return int(lowered)
    return raw


def strip_comment(value: str) -> str:
    """Cut ``value`` at the first ``#`` that is not inside quotes.

    Quote characters toggle state but are kept. An unterminated quote never
    closes, so no later ``#`` truncates.
    """
    in_single = False
    in_double = False
    for index, char in enumerate(value):
        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double
        elif char == "#" and not in_single and not in_double:
            return value[:index].rstrip()
    return value


def is_dangerous(value: str) -> bool:
    """Return True if ``value`` looks like a dangerous URI-scheme payload."""
    if not value:
        return False
    return any(pattern.search(value) for pattern in _DANGEROUS_PATTERNS)


def render(value: EnvValue) -> str:
    """Render a typed value back to the text spliced into placeholders."""
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def to_env_string(value: Any) -> str:
    """String-forcing representation: True -> "1", False/None -> ""."""
    if value is None or value is False:
        return ""
    if value is True:
        return "1"
    return str(value)
