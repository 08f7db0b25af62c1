"""
Scheduled tasks for the inventory system.
Runs the weekly sales report and a nightly stock-level reconcile inside the
FastAPI process.
"""

import logging
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR

from cake_stock.core.config import Settings, get_settings
from cake_stock.database import async_session
from cake_stock.services.cache import TTLCache
from cake_stock.services.sales_aggregator import SalesAggregator
from cake_stock.services.stock_reconciler import StockReconciler

logger = logging.getLogger(__name__)


async def weekly_report_task(cache: TTLCache):
    """Generate and store the weekly sales report"""
    logger.info("=== SCHEDULED WEEKLY REPORT STARTING ===")
    async with async_session() as db:
        report = await SalesAggregator(db, cache).generate_weekly_report()
    logger.info(f"Scheduled weekly report: {report.total_sales} sales, {report.products_reported} products")


async def reconcile_task(cache: TTLCache):
    """Add stock-level rows for any catalog product missing one"""
    async with async_session() as db:
        result = await StockReconciler(db, cache).reconcile()
    logger.info(f"Scheduled reconcile: {result.message}")


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler(cache: TTLCache, settings: Optional[Settings] = None) -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    settings = settings or get_settings()
    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    if settings.SCHEDULER_ENABLED:
        scheduler.add_job(
            weekly_report_task,
            CronTrigger.from_crontab(settings.WEEKLY_REPORT_SCHEDULE),
            args=[cache],
            id="weekly_report",
            name="Weekly Sales Report",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=3600  # 1 hour grace time
        )
        scheduler.add_job(
            reconcile_task,
            CronTrigger.from_crontab(settings.RECONCILE_SCHEDULE),
            args=[cache],
            id="reconcile_stock_levels",
            name="Reconcile Stock Levels",
            replace_existing=True,
            max_instances=1
        )
        logger.info(
            f"Scheduled jobs added: weekly report ({settings.WEEKLY_REPORT_SCHEDULE}), "
            f"reconcile ({settings.RECONCILE_SCHEDULE})"
        )
    else:
        logger.info("Scheduler is disabled. Set SCHEDULER_ENABLED=true to enable")

    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler):
    """Start the scheduler"""
    if not scheduler.running:
        scheduler.start()
        jobs = scheduler.get_jobs()
        logger.info(f"Scheduler started with {len(jobs)} job(s)")
        for job in jobs:
            logger.info(f"  - {job.name}: {job.trigger}")


def stop_scheduler(scheduler: Optional[AsyncIOScheduler]):
    """Stop the scheduler gracefully"""
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped successfully")


def get_scheduler_status(scheduler: Optional[AsyncIOScheduler]) -> dict:
    """Get current scheduler status and job information"""
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs_info = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": next_run.isoformat() if next_run else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs_info
    }
