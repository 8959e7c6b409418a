"""
LP Market - Application Entrypoint

Initializes the async SQLAlchemy engine, configures structlog, and starts the
scheduler, or runs a single job and exits.

Run via:
    python -m lpmarket.main                     # scheduler, runs until SIGTERM
    python -m lpmarket.main --run-now           # one sync pass + one sweep
    python -m lpmarket.main --refresh <id>      # force-refresh one product
    python -m lpmarket.main --sweep-only        # one sweep
    python -m lpmarket.main --sweep-only --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lpmarket.config import settings
from lpmarket.pipeline.catalog_store import SqlCatalogStore
from lpmarket.pipeline.cleanup import IntegritySweep
from lpmarket.pipeline.scheduler import run_scheduler
from lpmarket.pipeline.sync import SyncOrchestrator


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Database Setup
# ---------------------------------------------------------------------------


async def create_db_engine() -> tuple[Any, async_sessionmaker[AsyncSession]]:
    """
    Create SQLAlchemy async engine and session factory.

    Returns:
        (engine, session_factory) tuple.
    """
    logger = structlog.get_logger(__name__)
    logger.info("database_engine_initializing")

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("database_engine_ready")
    return engine, session_factory


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lpmarket",
        description="LP price aggregation: scheduled sync and integrity sweep.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--run-now", action="store_true", help="Run one sync pass and one sweep, then exit")
    mode.add_argument("--refresh", metavar="PRODUCT_ID", help="Force-refresh one product, then exit")
    mode.add_argument("--sweep-only", action="store_true", help="Run one integrity sweep, then exit")
    parser.add_argument("--dry-run", action="store_true", help="Sweep reports deletions without deleting")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    return parser.parse_args(argv)


async def run_once(args: argparse.Namespace, session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Execute the one-shot job selected on the command line."""
    logger = structlog.get_logger(__name__)
    store = SqlCatalogStore(session_factory)

    if args.refresh:
        report = await SyncOrchestrator(store).refresh_product(args.refresh)
        logger.info("cli_refresh_complete", product_id=args.refresh, **report.model_dump(mode="json"))
        return

    if args.run_now:
        sync_report = await SyncOrchestrator(store).run()
        logger.info("cli_sync_complete", **sync_report.model_dump(mode="json"))

    sweep_report = await IntegritySweep(store).run(dry_run=args.dry_run)
    logger.info(
        "cli_sweep_complete",
        total_deleted=sweep_report.total_deleted,
        **sweep_report.model_dump(mode="json"),
    )


# ---------------------------------------------------------------------------
# Application Startup
# ---------------------------------------------------------------------------


async def main(argv: list[str] | None = None) -> None:
    """
    Application entrypoint.

    Execution order:
    1. Configure logging (structlog JSON)
    2. Create async database engine and session factory
    3. Verify database connection (health check)
    4. Run the selected one-shot job, or the scheduler until shutdown signal
    """
    args = parse_args(argv)
    _configure_logging(log_level=args.log_level)
    logger = structlog.get_logger(__name__)

    logger.info("lp_market_startup_begin", version="0.1.0")

    if not settings.NAVER_CLIENT_ID or not settings.NAVER_CLIENT_SECRET:
        logger.warning("config_naver_credentials_missing", note="naver vendor disabled")
    if not settings.ALADIN_TTB_KEY:
        logger.warning("config_aladin_ttb_key_missing", note="aladin vendor disabled")

    try:
        engine, session_factory = await create_db_engine()
    except Exception as e:
        logger.error(
            "database_engine_creation_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    # Health check: verify database connection
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        logger.info("database_health_check_passed")
    except Exception as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        await engine.dispose()
        raise

    try:
        if args.run_now or args.refresh or args.sweep_only:
            await run_once(args, session_factory)
        else:
            await run_scheduler(engine, session_factory)
    except KeyboardInterrupt:
        logger.info("lp_market_interrupted_by_user")
    except Exception as e:
        logger.error(
            "lp_market_fatal_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await engine.dispose()
        logger.info("lp_market_shutdown_complete")


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
