#!/usr/bin/env python3
"""
Simple tinyenv example - loads examples/config/.env and .env.local
"""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tinyenv import EnvStore, EnvCache, TinyEnvError, env, s_env, set_default_store


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config_dir = Path(__file__).parent / "config"
    store = EnvStore(config_dir, cache=EnvCache(), files=[".env", ".env.local"])
    try:
        store.load()
    except TinyEnvError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    set_default_store(store)

    print(f"APP_NAME      = {env('APP_NAME')!r}")
    print(f"APP_DEBUG     = {env('APP_DEBUG')!r}  (overridden by .env.local)")
    print(f"PORT          = {env('PORT')!r}")
    print(f"DB_URL        = {env('DB_URL')!r}")
    print(f"BUILD_NUMBER  = {env('BUILD_NUMBER')!r}")
    print(f"s_env(APP_DEBUG) = {s_env('APP_DEBUG')!r}")

    if env("APP_DEBUG"):
        print("Debug mode is ON")
    else:
        print("Debug mode is OFF")


if __name__ == "__main__":
    main()
