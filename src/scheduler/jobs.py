"""
Background job definitions using APScheduler.

Jobs include:
- Recompute of the current month's payouts
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.config import settings
from src.db import AsyncSessionLocal
from src.services.errors import CommissionError
from src.services.orchestrator import PayoutOrchestrator

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def payout_recompute_job():
    """Recompute payouts of the current month."""
    now = datetime.now(timezone.utc)
    logger.debug(f"Running payout recompute job for {now.month:02d}/{now.year}")
    try:
        report = await PayoutOrchestrator(AsyncSessionLocal).recompute(now.month, now.year)
    except CommissionError as e:
        logger.warning(f"Payout recompute job skipped: {e.message}")
        return
    except Exception as e:
        logger.error(f"Payout recompute job error: {e}")
        return

    if report.failures:
        logger.warning(
            f"Payout recompute job: {report.summary}; failed sellers: "
            f"{', '.join(str(f.seller_id) for f in report.failures)}"
        )
    else:
        logger.info(f"Payout recompute job: {report.summary}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    if not settings.recompute_schedule_enabled:
        logger.info("Scheduled payout recompute disabled")
        return

    scheduler.add_job(
        payout_recompute_job,
        trigger=IntervalTrigger(minutes=settings.recompute_interval_minutes),
        id="payout_recompute",
        name="Recompute current month payouts",
        replace_existing=True,
        max_instances=1,
    )

    logger.info("Scheduler configured with jobs")
