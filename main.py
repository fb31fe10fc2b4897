#!/usr/bin/env python3
"""
Credential Service -- user registration and password login over HTTP.

Usage:
  python main.py
  python main.py --port 9000
  python main.py --host 0.0.0.0 --port 8080
  python main.py --reload

Environment variables (see core/config.py for the full list):
  STORE_URL       SQLAlchemy URL for a persistent store. Empty = in-memory.
  BCRYPT_ROUNDS   bcrypt cost factor (default 10).
  LOG_LEVEL       Logging level (default INFO).
"""

import argparse
import sys

import uvicorn

from core.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Credential Service -- register users and verify passwords.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart the server when source files change")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not 1 <= args.port <= 65535:
        print(f"  [!] Invalid port: {args.port}")
        return 2
    print(f"  Starting server on {args.host}:{args.port}")
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
