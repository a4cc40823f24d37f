"""Cron entry point: draft spotlight articles for links that have none published."""

import argparse
import asyncio
import logging

from sqlmodel import Session

from app.agent.orchestrator import run_scheduled_generation
from app.core.config import settings
from app.core.db import engine, init_db
from app.main import build_cache

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--limit",
        type=int,
        default=settings.AUTOGENERATE_LIMIT,
        help="maximum number of links to generate for",
    )
    args = parser.parse_args(argv)

    with Session(engine) as session:
        init_db(session)
        try:
            report = asyncio.run(
                run_scheduled_generation(session, build_cache(), limit=args.limit)
            )
        except Exception:
            logger.exception("Auto-generate batch failed")
            return 1

    logger.info(
        "Auto-generate finished: %s generated, %s failed",
        len(report.generated),
        len(report.errors),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
