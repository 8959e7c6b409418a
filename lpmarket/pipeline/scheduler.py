"""
LP Market - Job Scheduler

Runs the sync orchestrator and the integrity sweep on independent cadences.

Cadences:
- Price sync: every SYNC_INTERVAL_MINUTES (60 by default); each pass only
  touches products whose offers are older than SYNC_STALE_AFTER_HOURS
- Integrity sweep: every CLEANUP_INTERVAL_HOURS (24 by default)

A sync pass aborted by a vendor block is not retried early; the next pass
waits for the regular cadence.
"""

from __future__ import annotations

import asyncio
import signal
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lpmarket.config import settings
from lpmarket.pipeline.catalog_store import SqlCatalogStore
from lpmarket.pipeline.cleanup import IntegritySweep, SweepReport
from lpmarket.pipeline.sync import SyncOrchestrator, SyncReport

logger = structlog.get_logger(__name__)


class Scheduler:
    """
    Async scheduler for the sync and sweep jobs.

    Both jobs are due immediately on start. Each keeps its own clock; one
    job failing never stops the other.
    """

    def __init__(
        self,
        db_engine: Any,
        session_factory: async_sessionmaker[AsyncSession],
        orchestrator: SyncOrchestrator | None = None,
        sweep: IntegritySweep | None = None,
    ):
        self.db_engine = db_engine
        self.session_factory = session_factory
        self._shutdown_event = asyncio.Event()

        store = SqlCatalogStore(session_factory)
        self.orchestrator = orchestrator or SyncOrchestrator(store)
        self.sweep = sweep or IntegritySweep(store)

        self._sync_last_run: datetime | None = None
        self._sync_cadence_minutes = settings.SYNC_INTERVAL_MINUTES

        self._sweep_last_run: datetime | None = None
        self._sweep_cadence_minutes = settings.CLEANUP_INTERVAL_HOURS * 60

    def request_shutdown(self) -> None:
        """Signal graceful shutdown to the scheduler loop. Safe from signal handlers."""
        logger.info("scheduler_shutdown_requested")
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        self.request_shutdown()

    def _should_run_sync(self) -> bool:
        """Check if the sync window has elapsed."""
        if self._sync_last_run is None:
            return True
        elapsed_minutes = (datetime.now(timezone.utc) - self._sync_last_run).total_seconds() / 60
        return elapsed_minutes >= self._sync_cadence_minutes

    def _should_run_sweep(self) -> bool:
        """Check if the sweep window has elapsed."""
        if self._sweep_last_run is None:
            return True
        elapsed_minutes = (datetime.now(timezone.utc) - self._sweep_last_run).total_seconds() / 60
        return elapsed_minutes >= self._sweep_cadence_minutes

    async def _run_sync(self) -> SyncReport | None:
        logger.info("scheduler_sync_start")
        report: SyncReport | None = None
        try:
            report = await self.orchestrator.run()
        except Exception as e:
            logger.error("scheduler_sync_failed", error=str(e), error_type=type(e).__name__)
        finally:
            self._sync_last_run = datetime.now(timezone.utc)

        if report is not None:
            logger.info(
                "scheduler_sync_complete",
                processed=report.processed,
                updated=report.updated,
                aborted=report.aborted,
                next_run_in_minutes=self._sync_cadence_minutes,
            )
        return report

    async def _run_sweep(self) -> SweepReport | None:
        logger.info("scheduler_sweep_start")
        report: SweepReport | None = None
        try:
            report = await self.sweep.run()
        except Exception as e:
            logger.error("scheduler_sweep_failed", error=str(e), error_type=type(e).__name__)
        finally:
            self._sweep_last_run = datetime.now(timezone.utc)

        if report is not None:
            logger.info(
                "scheduler_sweep_complete",
                total_deleted=report.total_deleted,
                next_run_in_hours=settings.CLEANUP_INTERVAL_HOURS,
            )
        return report

    async def run(self) -> None:
        """
        Main scheduler loop. Runs indefinitely until shutdown is signaled.
        """
        logger.info(
            "scheduler_started",
            sync_cadence_minutes=self._sync_cadence_minutes,
            sweep_cadence_hours=settings.CLEANUP_INTERVAL_HOURS,
        )

        poll_check_interval = settings.SCHEDULER_POLL_CHECK_SECONDS

        try:
            while not self._shutdown_event.is_set():
                try:
                    if self._should_run_sync():
                        await self._run_sync()

                    if self._should_run_sweep():
                        await self._run_sweep()

                    # Sleep before next check
                    await asyncio.wait_for(
                        self._shutdown_event.wait(),
                        timeout=poll_check_interval,
                    )
                except asyncio.TimeoutError:
                    # Expected: timeout means no shutdown signal, continue loop
                    continue
                except Exception as e:
                    logger.error(
                        "scheduler_unknown_error",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    await asyncio.sleep(poll_check_interval)

        except asyncio.CancelledError:
            logger.info("scheduler_cancelled")
            raise
        finally:
            logger.info("scheduler_stopped")


async def run_scheduler(db_engine: Any, session_factory: async_sessionmaker[AsyncSession]) -> None:
    """
    Initialize and run the scheduler with graceful shutdown handling.

    Registers SIGTERM/SIGINT handlers to trigger shutdown.
    """
    scheduler = Scheduler(db_engine, session_factory)

    def handle_signal(_signum: int, _frame: Any) -> None:
        """Called by SIGTERM/SIGINT."""
        logger.info("scheduler_signal_received")
        scheduler.request_shutdown()

    loop = asyncio.get_running_loop()

    try:
        loop.add_signal_handler(signal.SIGTERM, handle_signal, signal.SIGTERM, None)
        loop.add_signal_handler(signal.SIGINT, handle_signal, signal.SIGINT, None)
    except NotImplementedError:
        # Windows doesn't support add_signal_handler for all signals
        logger.warning("signal_handlers_not_supported_on_platform")

    try:
        await scheduler.run()
    except Exception as e:
        logger.error("scheduler_fatal_error", error=str(e), error_type=type(e).__name__)
        raise
