"""Pulse — Scheduler Jobs.

APScheduler daily job that refreshes the current month's ads cache.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from app.config import settings
from app.connectors.meta.sync import sync_ads_month
from app.core.logging import get_logger
from app.core.months import current_month
from app.database import engine

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler(timezone="UTC")


async def daily_ads_sync_job():
    """Sync this month's Meta Ads insights into the ads cache."""
    month = current_month().key
    logger.info(f"Scheduled ads sync starting for {month}...")
    try:
        with Session(engine) as session:
            payload = await sync_ads_month(session=session, month=month)
        logger.info(
            f"Scheduled ads sync complete. {len(payload.campaigns)} campaigns cached"
        )
    except Exception as e:
        logger.error(f"Scheduled ads sync failed: {e}", exc_info=True)


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return
    if not settings.meta_access_token:
        logger.warning("META_ACCESS_TOKEN not set — ads sync not scheduled")
        return

    scheduler.add_job(
        daily_ads_sync_job,
        "cron",
        hour=settings.ads_sync_hour,
        minute=0,
        id="daily_ads_sync",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Scheduler started. Daily ads sync at {settings.ads_sync_hour}:00 UTC")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
