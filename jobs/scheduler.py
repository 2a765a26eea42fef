"""
Background Job Scheduler - Expiry Sweep

Two jobs on an hourly cron (minute 0, UTC):
1. Trade Expiry - completes past-due trades and credits principal + profit
2. Subscription Expiry - deactivates bot subscriptions past their end date

Owned by the API server lifespan: started after the database check passes,
stopped on shutdown.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore

from jobs.expiry_sweep import run_trade_expiry, run_subscription_expiry
from config import Config

logger = logging.getLogger(__name__)

TRADE_EXPIRY_JOB_ID = "trade_expiry_sweep"
SUBSCRIPTION_EXPIRY_JOB_ID = "bot_subscription_expiry_sweep"


class ExpiryScheduler:
    """AsyncIO scheduler running the expiry sweep jobs"""

    def __init__(self):
        jobstores = {
            'default': MemoryJobStore()
        }
        executors = {
            'default': AsyncIOExecutor()
        }
        job_defaults = {
            'coalesce': True,  # Prevent job pileup
            'max_instances': 1,  # Single instance enforcement
            'misfire_grace_time': Config.EXPIRY_SWEEP_MISFIRE_GRACE_SECONDS
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone='UTC'
        )

    def setup_jobs(self):
        """Register the expiry sweep jobs"""
        minute = Config.EXPIRY_SWEEP_CRON_MINUTE

        self.scheduler.add_job(
            run_trade_expiry,
            trigger=CronTrigger(minute=minute, timezone='UTC'),
            id=TRADE_EXPIRY_JOB_ID,
            name="📈 Trade Expiry - complete past-due trades",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=Config.EXPIRY_SWEEP_MISFIRE_GRACE_SECONDS,
            replace_existing=True
        )
        logger.info(f"✅ Trade Expiry scheduled hourly at minute {minute}")

        self.scheduler.add_job(
            run_subscription_expiry,
            trigger=CronTrigger(minute=minute, timezone='UTC'),
            id=SUBSCRIPTION_EXPIRY_JOB_ID,
            name="🤖 Subscription Expiry - deactivate expired bot subscriptions",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=Config.EXPIRY_SWEEP_MISFIRE_GRACE_SECONDS,
            replace_existing=True
        )
        logger.info(f"✅ Subscription Expiry scheduled hourly at minute {minute}")

    def start(self):
        """Register jobs and start; must be called from inside the running event loop"""
        self.setup_jobs()
        self.scheduler.start()

        for job in self.scheduler.get_jobs():
            logger.info(f"📋 Active job: {job.name} ({job.id})")

    def stop(self):
        """Stop the scheduler without waiting for a running sweep"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("📴 Expiry scheduler stopped")

    @property
    def running(self) -> bool:
        return self.scheduler.running


_global_scheduler = None

def get_expiry_scheduler_instance():
    """Get the global expiry scheduler instance"""
    global _global_scheduler
    if _global_scheduler is None:
        _global_scheduler = ExpiryScheduler()
    return _global_scheduler


__all__ = [
    "ExpiryScheduler",
    "get_expiry_scheduler_instance"
]
