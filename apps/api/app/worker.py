"""
Background worker that triggers reminder ticks on a fixed cadence.

Usage:
    python -m app.worker

Runs only when ENABLE_REMINDERS is true. Each tick is the same
synchronous pass the "run now" endpoint performs; it executes in a
worker thread and the loop sleeps REMINDER_INTERVAL_SECONDS between ticks.
For production, run this as a separate process (e.g., systemd service, Docker container).
"""

import asyncio
import logging

from app.core.config import settings
from app.core.migrations import ensure_reminder_schema
from app.core.structured_logging import build_log_context
from app.db.session import SessionLocal, engine
from app.services import reminder_scheduler_service

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def worker_loop(max_ticks: int | None = None) -> int:
    """Run reminder ticks until cancelled (or max_ticks reached). Returns ticks run."""
    interval = settings.REMINDER_INTERVAL_SECONDS
    logger.info("Reminder worker starting (interval: %ss)", interval)

    if not settings.smtp_configured:
        logger.warning("SMTP not configured - email reminders will be skipped")
    if not settings.twilio_configured:
        logger.warning("Twilio not configured - SMS/WhatsApp reminders will be skipped")

    ensure_reminder_schema(engine)

    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        try:
            await asyncio.to_thread(
                reminder_scheduler_service.run_tick, session_factory=SessionLocal
            )
        except reminder_scheduler_service.TickAlreadyRunning:
            logger.warning("Previous reminder tick still running; skipping this cycle")
        except Exception as e:
            logger.error(
                "Reminder tick failed: %s",
                type(e).__name__,
                exc_info=True,
                extra=build_log_context(route="worker", method="background"),
            )
        ticks += 1

        if max_ticks is not None and ticks >= max_ticks:
            break
        await asyncio.sleep(interval)

    return ticks


def main() -> None:
    """Entry point for the worker."""
    configure_logging()
    if not settings.ENABLE_REMINDERS:
        logger.info("ENABLE_REMINDERS is off; reminder worker not started")
        return
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")


if __name__ == "__main__":
    main()
