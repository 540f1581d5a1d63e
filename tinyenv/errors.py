"""Exception types raised while loading and resolving env files."""
from typing import Optional, Sequence


class TinyEnvError(Exception):
    """Base class for every error raised by tinyenv."""


class FileAccessError(TinyEnvError, RuntimeError):
    """An env file is missing or cannot be read (or written)."""

    def __init__(self, path, reason: str = "cannot read"):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class NoFileFoundError(TinyEnvError, RuntimeError):
    """None of the configured env files exists in any root directory."""

    def __init__(self, root_dirs: Sequence[str], files: Sequence[str]):
        self.root_dirs = list(root_dirs)
        self.files = list(files)
        super().__init__(
            f"no env file found (looked for {', '.join(self.files)} "
            f"in {', '.join(self.root_dirs) or '<no directories>'})"
        )


class MalformedLineError(TinyEnvError):
    """A line violates the KEY=value grammar."""

    def __init__(
        self,
        message: str,
        line: Optional[str] = None,
        line_number: Optional[int] = None,
        path: Optional[str] = None,
    ):
        self.reason = message
        self.line = line
        self.line_number = line_number
        self.path = path
        location = ""
        if path is not None:
            location = f" ({path}" + (f", line {line_number})" if line_number is not None else ")")
        elif line_number is not None:
            location = f" (line {line_number})"
        super().__init__(f"{message}{location}")


class InvalidKeyError(MalformedLineError):
    """A key passed to setenv() is not a valid variable name."""


class DangerousValueError(TinyEnvError):
    """A value matched the unsafe URI-scheme patterns."""

    def __init__(self, key: Optional[str] = None):
        self.key = key
        suffix = f" for key {key}" if key else ""
        super().__init__(f"rejected dangerous env value{suffix}")


class SubstitutionError(TinyEnvError):
    """Base class for failures while expanding ${...} placeholders."""


class RecursiveSubstitutionError(SubstitutionError):
    """A placeholder chain revisits a variable that is still being expanded."""

    def __init__(self, chain: Sequence[str]):
        self.chain = tuple(chain)
        super().__init__(f"recursive variable substitution: {' -> '.join(self.chain)}")


class SubstitutionDepthExceededError(SubstitutionError):
    def __init__(self, chain: Sequence[str], max_depth: int):
        self.chain = tuple(chain)
        self.max_depth = max_depth
        super().__init__(
            f"substitution depth exceeded ({max_depth}): {' -> '.join(self.chain)}"
        )


class RequiredVariableMissingError(SubstitutionError):
    """A ${VAR?msg} or ${VAR:?msg} placeholder found its variable unset."""

    def __init__(self, name: str, message: str = ""):
        self.name = name
        self.message = message or f"{name} is required"
        super().__init__(f"required variable {name} is missing: {self.message}")


class InvalidSubstitutionOperatorError(SubstitutionError):
    """A ${...} placeholder is malformed or uses an unknown operator."""

    def __init__(self, placeholder: str, detail: str = "invalid substitution operator"):
        self.placeholder = placeholder
        super().__init__(f"{detail}: {placeholder}")
