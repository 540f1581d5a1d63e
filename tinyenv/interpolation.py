"""Shell-style ${VAR} interpolation for env values.

Supported placeholder forms::

    ${VAR}            value of VAR, or "" when undefined
    ${VAR:-default}   default when VAR is undefined or empty
    ${VAR-default}    default only when VAR is undefined
    ${VAR?message}    error when VAR is undefined or empty
    ${VAR:?message}   error when VAR is undefined
    $VAR, $VAR-default

Defaults may contain placeholders themselves (``${A:-${B}}``).

Variables are looked up in the values already parsed from the current file,
then the cache, then the superglobal table, and finally in the raw text of
the file being loaded, which allows forward references. Raw text is expanded
recursively; the chain of names being expanded is an immutable tuple, so
sibling placeholders never see each other's traversal.
"""
from __future__ import annotations

import logging
import re
from typing import Mapping, Optional, Tuple

from .cache import EnvCache
from .errors import (
    DangerousValueError,
    InvalidSubstitutionOperatorError,
    RecursiveSubstitutionError,
    RequiredVariableMissingError,
    SubstitutionDepthExceededError,
)
from .values import EnvValue, coerce, is_dangerous, render

logger = logging.getLogger(__name__)

MAX_SUBSTITUTION_DEPTH = 10

_BRACED_RE = re.compile(r"^([A-Za-z0-9_]+)(:-|:\?|-|\?)?(.*)$", re.DOTALL)
_BARE_RE = re.compile(r"([A-Za-z0-9_]+)(?:-([^\s$]*))?")

Chain = Tuple[str, ...]


class Resolver:
    """Expands placeholders against a cache and an optional superglobal table."""

    def __init__(
        self,
        cache: EnvCache,
        environ: Optional[Mapping[str, str]] = None,
        max_depth: int = MAX_SUBSTITUTION_DEPTH,
    ):
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.cache = cache
        self.environ = environ if environ is not None else {}
        self.max_depth = max_depth

    def resolve(
        self,
        value: str,
        key: Optional[str] = None,
        raw_map: Optional[Mapping[str, str]] = None,
        overlay: Optional[Mapping[str, EnvValue]] = None,
    ) -> str:
        """Expand every placeholder in ``value``.

        Args:
            value: Value text, already comment-stripped and unquoted.
            key: Name of the variable that owns ``value``; it starts the chain
                so self references are reported as recursion.
            raw_map: Raw right-hand sides of the file being loaded.
            overlay: Values already parsed from the file being loaded.

        Returns:
            Fully substituted text.
        """
        chain: Chain = (key,) if key else ()
        return self._expand(value, chain, raw_map or {}, overlay or {})

    def _expand(
        self,
        text: str,
        chain: Chain,
        raw_map: Mapping[str, str],
        overlay: Mapping[str, EnvValue],
    ) -> str:
        if "$" not in text:
            return text

        parts = []
        pos = 0
        while pos < len(text):
            start = text.find("$", pos)
            if start == -1:
                parts.append(text[pos:])
                break
            parts.append(text[pos:start])

            if text.startswith("${", start):
                end = _closing_brace(text, start + 2)
                if end == -1:
                    raise InvalidSubstitutionOperatorError(text[start:], "unterminated placeholder")
                name, operator, argument = _split_braced(text[start + 2:end], text[start:end + 1])
                pos = end + 1
            else:
                match = _BARE_RE.match(text, start + 1)
                if match is None:
                    # Lone "$" is literal.
                    parts.append("$")
                    pos = start + 1
                    continue
                name = match.group(1)
                argument = match.group(2)
                operator = "-" if argument is not None else None
                pos = match.end()

            parts.append(self._substitute(name, operator, argument or "", chain, raw_map, overlay))
        return "".join(parts)

    def _substitute(
        self,
        name: str,
        operator: Optional[str],
        argument: str,
        chain: Chain,
        raw_map: Mapping[str, str],
        overlay: Mapping[str, EnvValue],
    ) -> str:
        if name in chain:
            raise RecursiveSubstitutionError(chain + (name,))
        if len(chain) >= self.max_depth:
            raise SubstitutionDepthExceededError(chain + (name,), self.max_depth)

        found, current = self._lookup(name, chain, raw_map, overlay)

        if operator is None:
            text = current if found else ""
        elif operator == ":-":
            text = current if found and current != "" else self._expand(argument, chain, raw_map, overlay)
        elif operator == "-":
            text = current if found else self._expand(argument, chain, raw_map, overlay)
        elif operator == "?":
            if not found or current == "":
                raise RequiredVariableMissingError(name, argument)
            text = current
        else:  # ":?"
            if not found:
                raise RequiredVariableMissingError(name, argument)
            text = current

        if is_dangerous(text):
            raise DangerousValueError(chain[0] if chain else name)
        return text

    def _lookup(
        self,
        name: str,
        chain: Chain,
        raw_map: Mapping[str, str],
        overlay: Mapping[str, EnvValue],
    ) -> Tuple[bool, str]:
        if name in overlay:
            return True, render(overlay[name])

        found, value = self.cache.lookup(name)
        if found:
            return True, render(value)

        if name in self.environ:
            return True, render(self.environ[name])

        if name in raw_map:
            logger.debug(f"Resolving forward reference {name} (depth {len(chain) + 1})")
            expanded = self._expand(raw_map[name], chain + (name,), raw_map, overlay)
            return True, render(coerce(expanded))

        return False, ""


def _closing_brace(text: str, index: int) -> int:
    """Index of the ``}`` closing a ``${`` whose body starts at ``index``."""
    depth = 1
    while index < len(text):
        if text.startswith("${", index):
            depth += 1
            index += 2
            continue
        if text[index] == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def _split_braced(body: str, placeholder: str) -> Tuple[str, Optional[str], str]:
    match = _BRACED_RE.match(body)
    if match is None:
        raise InvalidSubstitutionOperatorError(placeholder, "invalid placeholder")
    name, operator, argument = match.groups()
    if operator is None and argument:
        raise InvalidSubstitutionOperatorError(placeholder)
    return name, operator, argument
