from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from bloodlink.config import settings
from bloodlink.database import async_session as async_sessionmaker
from bloodlink.services.inventory import InventoryLedger
from bloodlink.utils.logging_config import get_logger

logger = get_logger(__name__)

# Global scheduler instance
scheduler = None


async def sweep_expired_inventory() -> int:
    """Drop lots past their expiry date, recording an ``expired`` movement for each"""
    try:
        async with async_sessionmaker() as session:
            removed = await InventoryLedger(session).sweep_expired()
        logger.info(
            "Expiry sweep finished",
            extra={"event_type": "expiry_sweep_finished", "lots_removed": removed},
        )
        return removed
    except Exception as e:
        logger.error(f"Error sweeping expired inventory: {e}", exc_info=True)
        return 0


def start_scheduler():
    """Start the inventory expiry scheduler"""
    global scheduler

    if scheduler is not None:
        logger.info("Scheduler already running")
        return

    scheduler = AsyncIOScheduler(
        executors={"default": AsyncIOExecutor()},
        job_defaults={
            "coalesce": True,
            "max_instances": 1,  # Prevent overlapping sweeps
            "misfire_grace_time": 30,
        },
    )

    scheduler.add_job(
        sweep_expired_inventory,
        trigger="interval",
        minutes=settings.EXPIRY_SWEEP_INTERVAL_MINUTES,
        id="inventory_expiry_sweep",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Inventory expiry scheduler started")


def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=True)
        scheduler = None
        logger.info("Inventory expiry scheduler stopped")
