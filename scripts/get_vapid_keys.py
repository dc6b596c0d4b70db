#!/usr/bin/env python3
"""
One-time script to generate the VAPID key pair used for Web Push.

Run this once, put the private key in your .env as VAPID_PRIVATE_KEY and
give the public key to the client that creates push subscriptions.

Usage:
    python scripts/get_vapid_keys.py [--output-dir=DIR]
"""
import argparse
import base64
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid


def main():
    parser = argparse.ArgumentParser(description="Generate a VAPID key pair")
    parser.add_argument("--output-dir", default=".", help="Where to write private_key.pem")
    args = parser.parse_args()

    vapid = Vapid()
    vapid.generate_keys()

    output = Path(args.output_dir) / "private_key.pem"
    vapid.save_key(str(output))

    public_raw = vapid.public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    public_key = base64.urlsafe_b64encode(public_raw).rstrip(b"=").decode()

    print("\n" + "=" * 60)
    print("SUCCESS! Add this to your .env file:")
    print("=" * 60)
    print(f"\nVAPID_PRIVATE_KEY={output.resolve()}")
    print("\nClient applicationServerKey (public key):")
    print(public_key)
    print("=" * 60)


if __name__ == "__main__":
    main()
