"""Command line entry point: run the API or create the schema."""

import argparse
import asyncio
import logging

import uvicorn

from payroll_tracker.config import get_settings
from payroll_tracker.database import create_schema, dispose_db


async def _init_db() -> None:
    try:
        await create_schema()
    finally:
        await dispose_db()


def main(argv: list[str] | None = None) -> None:
    """Run the application."""
    parser = argparse.ArgumentParser(prog="payroll-tracker")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve", "init-db"],
        default="serve",
        help="serve the API (default) or create missing tables",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "init-db":
        asyncio.run(_init_db())
        return

    uvicorn.run(
        "payroll_tracker.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
