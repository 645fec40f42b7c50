"""
Background jobs: daily devotional refresh and search-cache pruning
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import load_config
from .devotional_pipeline import fetch_daily_devotional
from .search_cache import prune_search_cache

logger = logging.getLogger(__name__)


def run_devotional_job() -> dict:
    """Scheduled devotional fetch; the pipeline never raises, so just log the outcome."""
    result = fetch_daily_devotional()
    if result.get("success"):
        logger.info(
            "Devotional job finished: %s",
            "skipped" if result.get("skipped") else result.get("action", "saved"),
        )
    else:
        logger.error("Devotional job failed: %s", result.get("error"))
    return result


def run_prune_job() -> int:
    cfg = load_config().get("search_cache", {})
    deleted = prune_search_cache(cfg.get("ttl_days", 30), cfg.get("max_entries", 5000))
    logger.info("Pruned %s search cache entries", deleted)
    return deleted


class JobScheduler:
    """Owns the APScheduler instance used by the web app."""

    def __init__(self):
        self.scheduler: Optional[BackgroundScheduler] = None

    def start(self) -> bool:
        cfg = load_config().get("devotional", {})
        if not cfg.get("scheduler_enabled", True):
            logger.info("Devotional scheduler disabled")
            return False
        if self.scheduler is not None and self.scheduler.running:
            return True
        self.scheduler = BackgroundScheduler(timezone="UTC")
        self._register_jobs(cfg)
        self.scheduler.start()
        logger.info("Job scheduler started")
        return True

    def _register_jobs(self, cfg: dict) -> None:
        hour = cfg.get("hour_utc", 0)
        minute = cfg.get("minute_utc", 0)
        self.scheduler.add_job(
            func=run_devotional_job,
            trigger=CronTrigger(hour=hour, minute=minute, timezone="UTC"),
            id="daily_devotional",
            name="Fetch daily devotional",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self.scheduler.add_job(
            func=run_prune_job,
            trigger=CronTrigger(hour=(hour + 3) % 24, minute=minute, timezone="UTC"),
            id="prune_search_cache",
            name="Prune search cache",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info("Background jobs registered (devotional at %02d:%02d UTC)", hour, minute)

    def shutdown(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Job scheduler stopped")
        self.scheduler = None


job_scheduler = JobScheduler()
