#!/usr/bin/env python
"""Script to sign a development access token for calling the API locally."""
from __future__ import annotations

import argparse
import base64
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue an access token for the image API")
    parser.add_argument("--private_key", type=Path, required=True, help="PEM encoded private key")
    parser.add_argument("--sub", required=True, help="Caller identity")
    parser.add_argument("--name")
    parser.add_argument("--email")
    parser.add_argument("--algorithm", default="RS256")
    parser.add_argument("--expires_minutes", type=int, default=60)
    parser.add_argument(
        "--print_public_key",
        type=Path,
        help="Also print ACCESS_TOKEN_PUBLIC_KEY for this PEM public key",
    )
    args = parser.parse_args()

    claims = {
        "sub": args.sub,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=args.expires_minutes),
    }
    if args.name:
        claims["name"] = args.name
    if args.email:
        claims["email"] = args.email

    token = jwt.encode(claims, args.private_key.read_text(), algorithm=args.algorithm)
    print(token)

    if args.print_public_key:
        encoded = base64.b64encode(args.print_public_key.read_bytes()).decode("ascii")
        print(f"ACCESS_TOKEN_PUBLIC_KEY={encoded}")


if __name__ == "__main__":
    main()
