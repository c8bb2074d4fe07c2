#!/usr/bin/env python3
"""
Trip Widget Engine: launch the dashboard API.

Usage:
    python main.py                          # http://localhost:8000
    python main.py --port 9000              # http://localhost:9000
    python main.py --host 127.0.0.1         # bind to localhost only
    python main.py --db /path/to/trips.sqlite
    python main.py --memory                 # keep everything in process memory
    python main.py --tier premium           # unlock every item type
    python main.py --reload                 # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Launch the Trip Widget Engine API.",
    )
    parser.add_argument(
        "--host", default=os.getenv("APP_HOST", "127.0.0.1"),
        help="Bind address (default: 127.0.0.1 or APP_HOST env var)",
    )
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("APP_PORT", "8000")),
        help="Port to listen on (default: 8000 or APP_PORT env var)",
    )
    parser.add_argument(
        "--db", type=Path, default=None,
        help="Path to the SQLite key-value file (default: trip_widgets.sqlite or APP_DB_PATH env var)",
    )
    parser.add_argument(
        "--memory", action="store_true",
        help="Use the in-memory store; nothing survives a restart",
    )
    parser.add_argument(
        "--tier", choices=["anonymous", "standard", "premium"], default=None,
        help="User tier for capability checks (default: standard or APP_USER_TIER env var)",
    )
    parser.add_argument(
        "--autosave-delay-ms", type=int, default=None,
        help="Debounce window for drafts (default: 1000 or AUTOSAVE_DELAY_MS env var)",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    args = parser.parse_args()

    # CLI flags override the environment read by AppConfig
    if args.db is not None:
        os.environ["APP_DB_PATH"] = str(args.db)
    if args.memory:
        os.environ["APP_STORAGE_BACKEND"] = "memory"
    if args.tier is not None:
        os.environ["APP_USER_TIER"] = args.tier
    if args.autosave_delay_ms is not None:
        os.environ["AUTOSAVE_DELAY_MS"] = str(args.autosave_delay_ms)

    backend = os.getenv("APP_STORAGE_BACKEND", "sqlite")
    where = "memory" if backend == "memory" else os.getenv("APP_DB_PATH", "trip_widgets.sqlite")
    print(f"Starting Trip Widget Engine at http://{args.host}:{args.port}")
    print(f"Storage: {where}")
    print()

    uvicorn.run(
        "api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
