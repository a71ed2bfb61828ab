"""Worker process for the daily entitlement renewal.

Runs an asyncio loop that executes the renewal once a day at
``renewal_run_hour`` (UTC).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta

from hr_portal.config import get_settings
from hr_portal.db import dispose_engine, get_session_factory
from hr_portal.exceptions import SchedulerBusyError
from hr_portal.models.base import now_utc

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime, run_hour: int) -> float:
    """Seconds from ``now`` until the next ``run_hour``:00, strictly in the future."""
    next_run = now.replace(hour=run_hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def run_once(target_date: date) -> None:
    """Run the renewal for one day, logging instead of raising."""
    from hr_portal.services.renewal import run_renewal

    session_factory = get_session_factory()
    logger.info("Running entitlement renewal for %s", target_date)
    try:
        async with session_factory() as session:
            result = await run_renewal(session, target_date)
        logger.info(
            "Renewal complete for %s: created=%d expired=%d skipped=%d errors=%d",
            target_date,
            result.periods_created,
            result.periods_expired,
            result.skipped,
            result.errors,
        )
    except SchedulerBusyError:
        logger.warning("Renewal for %s skipped: another run holds the lease", target_date)
    except Exception:
        logger.exception("Renewal run failed for %s", target_date)


async def run_renewal_loop() -> None:
    """Main worker loop: one renewal at startup, then one per day at the configured hour."""
    settings = get_settings()
    logger.info("Renewal worker started, daily run at %02d:00", settings.renewal_run_hour)

    try:
        while True:
            await run_once(now_utc().date())
            delay = seconds_until_next_run(now_utc(), settings.renewal_run_hour)
            logger.debug("Next renewal in %.0f seconds", delay)
            await asyncio.sleep(delay)
    finally:
        await dispose_engine()


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_renewal_loop())


if __name__ == "__main__":
    main()
