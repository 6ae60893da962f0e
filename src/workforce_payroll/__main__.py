"""Command line entry point.

Usage:
    python -m workforce_payroll serve
    python -m workforce_payroll init-db [--database-url URL]
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import uvicorn

from workforce_payroll.config import configure_logging, get_settings
from workforce_payroll.database import create_schema, get_engine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m workforce_payroll",
        description="Workforce payroll service",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")

    init_db = subparsers.add_parser("init-db", help="Create missing database tables")
    init_db.add_argument("--database-url", help="Override DATABASE_URL")
    return parser


async def _init_db(database_url: str | None) -> None:
    engine = get_engine(database_url)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def serve() -> None:
    settings = get_settings()
    uvicorn.run(
        "workforce_payroll.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "init-db":
        configure_logging()
        asyncio.run(_init_db(args.database_url))
        print("Schema is up to date")
        return 0
    serve()
    return 0


if __name__ == "__main__":
    sys.exit(main())
