"""Background job for periodic scheduled-notification sweeps.

This module provides a background task that periodically runs
EscalationEngine.process_due() so delayed escalation steps are dispatched
once they fall due.

The sweep runs every escalation_sweep_interval_seconds (60 by default) and:
- Opens a fresh database session per sweep
- Dispatches due pending notifications, oldest first, up to the batch size
- Commits the session when the sweep completes

Usage:
    # Start the sweep job
    sweep_job = get_escalation_sweep_job()
    await sweep_job.start()

    # Stop the sweep job
    await sweep_job.stop()

As a standalone worker or cron entry:
    escalation-sweep            # loop forever
    escalation-sweep --once     # single sweep, then exit
"""

from __future__ import annotations

import argparse
import asyncio
from typing import TYPE_CHECKING

from alert_escalation.core.config import get_settings
from alert_escalation.core.database import close_db, get_session, init_db
from alert_escalation.core.logging import get_logger, setup_logging
from alert_escalation.services.escalation_engine import EscalationEngine, SweepReport

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession

    from alert_escalation.services.email_transport import EmailSender

logger = get_logger(__name__)


class EscalationSweepJob:
    """Background job that periodically processes due scheduled notifications.

    Attributes:
        sweep_interval: Seconds between sweeps.
        is_running: Whether the sweep loop is currently running.
    """

    def __init__(
        self,
        session_scope: Callable[[], AbstractAsyncContextManager[AsyncSession]] = get_session,
        email_sender: EmailSender | None = None,
        http_client: httpx.AsyncClient | None = None,
        sweep_interval: int | None = None,
    ) -> None:
        """Initialize the sweep job.

        Args:
            session_scope: Factory for a transactional session context.
                Defaults to get_session (commit on success, rollback on error).
            email_sender: Optional email transport passed to the engine.
            http_client: Optional shared httpx client passed to the engine.
            sweep_interval: Seconds between sweeps. Defaults to
                escalation_sweep_interval_seconds from settings.
        """
        self._session_scope = session_scope
        self._email_sender = email_sender
        self._http_client = http_client
        self._sweep_interval = sweep_interval or get_settings().escalation_sweep_interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def sweep_interval(self) -> int:
        """Get the sweep interval in seconds."""
        return self._sweep_interval

    @property
    def is_running(self) -> bool:
        """Check if the sweep job is running."""
        return self._running

    async def start(self) -> None:
        """Start the sweep background task.

        If already running, this is a no-op.
        """
        if self._running:
            logger.warning("Escalation sweep job already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())

        logger.info(
            "Started escalation sweep job",
            extra={"sweep_interval_seconds": self._sweep_interval},
        )

    async def stop(self) -> None:
        """Stop the sweep background task."""
        if not self._running:
            return

        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped escalation sweep job")

    async def run_forever(self) -> None:
        """Run the sweep loop in the current task until stopped or cancelled."""
        self._running = True
        try:
            await self._run_loop()
        finally:
            self._running = False

    async def _run_loop(self) -> None:
        """Main loop that periodically sweeps due notifications."""
        logger.info(
            "Escalation sweep loop starting",
            extra={"interval_seconds": self._sweep_interval},
        )

        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(
                    "Error in escalation sweep loop",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )

            try:
                await asyncio.sleep(self._sweep_interval)
            except asyncio.CancelledError:
                break

        logger.info("Escalation sweep loop stopped")

    async def run_once(self) -> SweepReport:
        """Run a single sweep (useful for testing, cron or manual triggering).

        Returns:
            SweepReport for the sweep.
        """
        async with self._session_scope() as session:
            engine = EscalationEngine(
                session, email_sender=self._email_sender, http_client=self._http_client
            )
            report = await engine.process_due()

        if report.due:
            logger.info(
                "Escalation sweep completed",
                extra={
                    "due": report.due,
                    "dispatched": report.dispatched,
                    "failed": report.failed,
                    "errors": report.errors,
                },
            )
        else:
            logger.debug("Escalation sweep completed - nothing due")
        return report


# Module-level singleton
_escalation_sweep_job: EscalationSweepJob | None = None


def get_escalation_sweep_job(sweep_interval: int | None = None) -> EscalationSweepJob:
    """Get or create the singleton sweep job instance.

    Args:
        sweep_interval: Seconds between sweeps.

    Returns:
        The sweep job singleton.
    """
    global _escalation_sweep_job  # noqa: PLW0603
    if _escalation_sweep_job is None:
        _escalation_sweep_job = EscalationSweepJob(sweep_interval=sweep_interval)
    return _escalation_sweep_job


def reset_escalation_sweep_job() -> None:
    """Reset the sweep job singleton. Used for testing."""
    global _escalation_sweep_job  # noqa: PLW0603
    if _escalation_sweep_job is not None and _escalation_sweep_job.is_running:
        _escalation_sweep_job._running = False
    _escalation_sweep_job = None


async def _run(once: bool) -> None:
    await init_db()
    try:
        job = EscalationSweepJob()
        if once:
            await job.run_once()
        else:
            await job.run_forever()
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point for the sweep worker."""
    parser = argparse.ArgumentParser(description="Dispatch due scheduled escalation notifications")
    parser.add_argument("--once", action="store_true", help="run a single sweep and exit")
    args = parser.parse_args(argv)

    setup_logging()
    asyncio.run(_run(args.once))


if __name__ == "__main__":
    main()
