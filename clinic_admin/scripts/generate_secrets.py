#!/usr/bin/env python3
"""
Secret generator for the clinic agenda backend.
Prints fresh values for JWT_SECRET, JWT_REFRESH_SECRET and ADMIN_PASSWORD_HASH
ready to be pasted into the .env file.
"""

import argparse
import secrets
import sys

from ..core.security import get_password_hash

DEFAULT_PASSWORD = "admin123"


def generate_secrets(password: str = DEFAULT_PASSWORD) -> dict:
    """Return a new pair of signing secrets and the bcrypt hash of ``password``."""
    return {
        "JWT_SECRET": secrets.token_hex(32),
        "JWT_REFRESH_SECRET": secrets.token_hex(32),
        "ADMIN_PASSWORD_HASH": get_password_hash(password),
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Generate secure values for the .env file"
    )
    parser.add_argument(
        "password",
        nargs="?",
        default=DEFAULT_PASSWORD,
        help=f"admin password to hash (default: {DEFAULT_PASSWORD})",
    )
    args = parser.parse_args(argv)

    if args.password == DEFAULT_PASSWORD:
        print(
            f"WARNING: hashing the default password '{DEFAULT_PASSWORD}'. "
            "Pass a real password for production.",
            file=sys.stderr,
        )

    values = generate_secrets(args.password)

    print()
    print("Generated values for .env:")
    print()
    for name, value in values.items():
        print(f"{name}={value}")
    print()
    print("Copy the lines above into your .env file.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
