#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0

"""
Script to generate an RSA key pair for JWT signing.
Prints the keys in the escaped form accepted by JWT_PRIVATE_KEY and JWT_PUBLIC_KEY.
"""

from ..services.auth import generate_dev_key_pair


def env_lines(private_key: str, public_key: str) -> list:
    newline = "\\n"
    return [
        f'JWT_PRIVATE_KEY="{private_key.replace(chr(10), newline)}"',
        f'JWT_PUBLIC_KEY="{public_key.replace(chr(10), newline)}"',
    ]


if __name__ == "__main__":
    private_key, public_key = generate_dev_key_pair()

    print("=== JWT PRIVATE KEY ===")
    print(private_key)
    print("\n=== JWT PUBLIC KEY ===")
    print(public_key)

    print("\n=== Environment Variables ===")
    for line in env_lines(private_key, public_key):
        print(line)
