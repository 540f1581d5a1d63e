#!/usr/bin/env python3
"""CLI interface for tinyenv - inspect and validate .env files"""
import argparse
import json
import logging
import sys

from .errors import TinyEnvError
from .store import EnvStore
from .cache import EnvCache
from .config import get_settings
from .values import render, to_env_string

_MISSING = object()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyenv",
        description="tinyenv - load, resolve and inspect .env files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tinyenv check
  tinyenv --root ./config --file .env --file .env.local get DB_URL
  tinyenv dump --json
        """
    )

    parser.add_argument(
        "--root",
        action="append",
        default=None,
        help="Directory to look for env files in (repeatable, default: TINYENV_ROOT_DIRS or cwd)"
    )

    parser.add_argument(
        "--file",
        action="append",
        default=None,
        help="Env file name to load from each root, in override order (repeatable, default: .env)"
    )

    parser.add_argument(
        "--tolerant",
        action="store_true",
        help="Skip malformed lines and missing files instead of failing"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log which files are loaded"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get", help="Print one resolved value")
    get_parser.add_argument("key", type=str, help="Variable name")
    get_parser.add_argument("--default", type=str, default=None, help="Value to print when the key is missing")
    get_parser.add_argument(
        "--string",
        action="store_true",
        help="Print the string-forced form (true -> 1, false/null -> empty)"
    )

    dump_parser = subparsers.add_parser("dump", help="Print every resolved value")
    dump_parser.add_argument("--json", action="store_true", help="Print a JSON object instead of KEY=value lines")

    subparsers.add_parser("check", help="Load the files and report problems")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    tolerant = args.tolerant or settings.tolerant
    store = EnvStore(
        args.root or settings.root_dirs,
        cache=EnvCache(),
        files=args.file or settings.files,
    )

    try:
        store.load(tolerant=tolerant)
    except TinyEnvError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "get":
        value = store.get(args.key, _MISSING)
        if value is _MISSING:
            if args.default is None:
                print(f"Error: {args.key} is not defined", file=sys.stderr)
                return 1
            value = args.default
        print(to_env_string(value) if args.string else render(value))
    elif args.command == "dump":
        values = store.get()
        if args.json:
            print(json.dumps(values, indent=2, ensure_ascii=False))
        else:
            for key, value in values.items():
                print(f"{key}={render(value)}")
    else:
        print(f"OK: {len(store.cache)} keys loaded", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
