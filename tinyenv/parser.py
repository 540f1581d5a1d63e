"""Line-level parsing of KEY=value declarations."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Container, Dict, Iterable, Mapping, Optional

from .errors import DangerousValueError, MalformedLineError
from .interpolation import Resolver
from .values import EnvValue, coerce, is_dangerous, strip_comment

KEY_RE = re.compile(r"^[A-Z_][A-Z0-9_]*$", re.IGNORECASE)

_EXPORT_PREFIX = "export "
_QUOTES = ("'", '"')


@dataclass(frozen=True)
class ParsedLine:
    """A successfully parsed declaration."""
    key: str
    value: EnvValue


def is_skippable(line: str) -> bool:
    """Blank lines and ``#`` comments carry no declaration."""
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


def split_declaration(line: str):
    """Split a non-comment line into ``(key, rhs)``.

    Raises:
        MalformedLineError: if the line has no ``=``, an invalid key, or an
            unquoted ``KEY==`` shape.
    """
    stripped = line.strip()
    if stripped.startswith(_EXPORT_PREFIX):
        stripped = stripped[len(_EXPORT_PREFIX):].lstrip()

    if "=" not in stripped:
        raise MalformedLineError("missing '=' in declaration", line=line)

    key, rhs = stripped.split("=", 1)
    key = key.strip()
    if not KEY_RE.match(key):
        raise MalformedLineError(f"invalid key {key!r}", line=line)

    if rhs.startswith("=") and rhs[1:2] not in _QUOTES:
        raise MalformedLineError(f"unexpected '==' after key {key}", line=line)

    return key, rhs


def clean_value(rhs: str) -> str:
    """Strip the trailing comment, surrounding whitespace and one layer of double quotes."""
    value = strip_comment(rhs.lstrip()).strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1]
    return value


def build_raw_map(lines: Iterable[str]) -> Dict[str, str]:
    """First pass over a file: ``key -> cleaned rhs`` for every well-formed line.

    Malformed lines are ignored here; the second pass reports them.
    """
    raw_map: Dict[str, str] = {}
    for line in lines:
        if is_skippable(line):
            continue
        try:
            key, rhs = split_declaration(line)
        except MalformedLineError:
            continue
        raw_map[key] = clean_value(rhs)
    return raw_map


class LineParser:
    """Turns one raw line into a typed key/value pair."""

    def __init__(self, resolver: Resolver):
        self.resolver = resolver

    def parse_line(
        self,
        line: str,
        allowed_keys: Optional[Container[str]] = None,
        raw_map: Optional[Mapping[str, str]] = None,
        overlay: Optional[Mapping[str, EnvValue]] = None,
    ) -> Optional[ParsedLine]:
        """Parse a single line.

        Args:
            line: Raw text line.
            allowed_keys: If given, keys not contained in it are skipped.
            raw_map: Raw right-hand sides of the owning file.
            overlay: Values already parsed from the owning file.

        Returns:
            ParsedLine, or None if the line is blank, a comment, or filtered out.

        Raises:
            MalformedLineError: on structural violations.
            DangerousValueError: if the final text matches the safety filter.
            SubstitutionError: on interpolation failures.
        """
        if is_skippable(line):
            return None

        key, rhs = split_declaration(line)
        if allowed_keys is not None and key not in allowed_keys:
            return None

        value = clean_value(rhs)
        resolved = self.resolver.resolve(value, key=key, raw_map=raw_map, overlay=overlay)
        if is_dangerous(resolved):
            raise DangerousValueError(key)

        # An expansion that came out empty is a defined empty string, not null.
        if resolved == "" and value != "":
            return ParsedLine(key, "")
        return ParsedLine(key, coerce(resolved))
