from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from engagement import database
from engagement.config import settings
from engagement.services.admin_stats_service import admin_stats_service
import logging

scheduler = AsyncIOScheduler()

logger = logging.getLogger(__name__)

RECONCILE_JOB_ID = "reconcile_editorial_stats"


async def reconcile_editorial_stats():
    """Recompute all editorial aggregates so lost background recomputes heal."""
    async with database.session_factory()() as db:
        result = await admin_stats_service.recompute_all_stats(db)
    logger.info(f"[Scheduler] Reconciled stats for {result['recomputed']} blog posts")


def schedule_stats_reconciliation(interval_minutes: int | None = None) -> bool:
    interval_minutes = settings.stats_reconcile_interval_minutes if interval_minutes is None else interval_minutes
    if interval_minutes <= 0:
        logger.info("[Scheduler] Stats reconciliation disabled")
        return False

    scheduler.add_job(
        reconcile_editorial_stats,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id=RECONCILE_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(f"[Scheduler] Stats reconciliation every {interval_minutes} minutes")
    return True
