"""tinyenv - .env loading with typed values and ${VAR} interpolation"""
__version__ = "0.1.0"

# Core (lightweight - import directly)
from .errors import (
    TinyEnvError,
    FileAccessError,
    NoFileFoundError,
    MalformedLineError,
    InvalidKeyError,
    DangerousValueError,
    SubstitutionError,
    RecursiveSubstitutionError,
    SubstitutionDepthExceededError,
    RequiredVariableMissingError,
    InvalidSubstitutionOperatorError,
)
from .values import coerce, strip_comment, is_dangerous, to_env_string
from .cache import EnvCache, default_cache
from .interpolation import Resolver, MAX_SUBSTITUTION_DEPTH
from .parser import LineParser, ParsedLine
from .loader import FileLoader
from .store import EnvStore

# Global accessors
from .helpers import env, s_env, setenv, sysenv, default_store, set_default_store, reset_default_store

__all__ = [
    # Errors
    "TinyEnvError",
    "FileAccessError",
    "NoFileFoundError",
    "MalformedLineError",
    "InvalidKeyError",
    "DangerousValueError",
    "SubstitutionError",
    "RecursiveSubstitutionError",
    "SubstitutionDepthExceededError",
    "RequiredVariableMissingError",
    "InvalidSubstitutionOperatorError",
    # Values
    "coerce",
    "strip_comment",
    "is_dangerous",
    "to_env_string",
    # Components
    "EnvCache",
    "default_cache",
    "Resolver",
    "MAX_SUBSTITUTION_DEPTH",
    "LineParser",
    "ParsedLine",
    "FileLoader",
    "EnvStore",
    # Helpers
    "env",
    "s_env",
    "setenv",
    "sysenv",
    "default_store",
    "set_default_store",
    "reset_default_store",
]


def __getattr__(name: str):
    """Lazy access to the CLI entry point so importing tinyenv stays cheap."""
    if name == "main":
        from .cli import main
        globals()[name] = main
        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
