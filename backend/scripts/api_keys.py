#!/usr/bin/env python3
"""Manage market data and chain explorer API keys in the OS keychain.

Keys stored here are picked up by ``config.Settings`` ahead of ``.env``.

Usage (from ``backend/``):
    python -m scripts.api_keys set ETHERSCAN_API_KEY          # prompts for the value
    python -m scripts.api_keys delete COINGECKO_API_KEY
    python -m scripts.api_keys migrate                       # copy keys from .env
    python -m scripts.api_keys migrate --clean               # ...and remove them from .env
"""

import argparse
import getpass
import re
import sys
from pathlib import Path

from dotenv import dotenv_values

from services.credential_manager import (
    CREDENTIAL_KEYS,
    delete_credential,
    get_credential,
    set_credential,
)

DEFAULT_ENV_FILE = Path(__file__).parent.parent / ".env"


def migrate(env_path: Path, *, clean: bool = False) -> int:
    """Store every non-empty API key found in ``env_path`` in the keychain.

    Args:
        env_path: Path to the ``.env`` file.
        clean: If ``True``, rewrite the ``.env`` file without the
            migrated key lines.

    Returns:
        Process exit code.
    """
    if not env_path.exists():
        print(f"No .env file found at {env_path}")
        return 1

    values = dotenv_values(env_path)

    migrated: list[str] = []
    already: list[str] = []
    failed: list[str] = []

    for key in sorted(CREDENTIAL_KEYS):
        value = values.get(key)
        if not value:
            continue
        if get_credential(key) == value:
            already.append(key)
        elif set_credential(key, value):
            migrated.append(key)
        else:
            failed.append(key)

    for label, keys, mark in (
        ("Stored in keychain", migrated, "+"),
        ("Already in keychain", already, "="),
        ("Failed", failed, "!"),
    ):
        if keys:
            print(f"{label} ({len(keys)}):")
            for key in keys:
                print(f"  {mark} {key}")

    if not (migrated or already or failed):
        print(f"No API keys set in {env_path}")

    if clean and (migrated or already):
        _clean_env_file(env_path, migrated + already)
    return 1 if failed else 0


def _clean_env_file(env_path: Path, keys_to_remove: list[str]) -> None:
    """Remove key lines from .env, preserving everything else."""
    lines = env_path.read_text().splitlines(keepends=True)
    pattern = re.compile(
        r"^(" + "|".join(re.escape(k) for k in keys_to_remove) + r")\s*="
    )
    env_path.write_text("".join(line for line in lines if not pattern.match(line)))
    print(f"Removed {len(keys_to_remove)} key(s) from {env_path}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manage API keys in the OS keychain")
    sub = parser.add_subparsers(dest="command", required=True)

    set_parser = sub.add_parser("set", help="Store one API key")
    set_parser.add_argument("key", choices=sorted(CREDENTIAL_KEYS))

    delete_parser = sub.add_parser("delete", help="Remove one API key")
    delete_parser.add_argument("key", choices=sorted(CREDENTIAL_KEYS))

    migrate_parser = sub.add_parser("migrate", help="Copy API keys from .env")
    migrate_parser.add_argument(
        "--clean",
        action="store_true",
        help="Remove migrated keys from .env after storing them",
    )
    migrate_parser.add_argument(
        "--env-file",
        type=Path,
        default=DEFAULT_ENV_FILE,
        help="Path to .env file (default: backend/.env)",
    )

    args = parser.parse_args(argv)

    if args.command == "set":
        value = getpass.getpass(f"{args.key}: ")
        return 0 if set_credential(args.key, value) else 1
    if args.command == "delete":
        return 0 if delete_credential(args.key) else 1
    return migrate(args.env_file, clean=args.clean)


if __name__ == "__main__":
    sys.exit(main())
