"""
Incentives Background Scheduler

Runs periodic tasks:
- Expire punishments whose block has ended (hourly)
- Expire TOP CLEANER badges past their 30 days (hourly)
- Score and rank the previous month (1st of each month, 03:00 UTC)

Only starts when ENABLE_SCHEDULER=true to prevent running on multiple instances.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.errors import IncentiveError
from app.models import utcnow
from app.services import get_engines
from app.services.base import previous_period

logger = logging.getLogger(__name__)


def _expire_punishments(app):
    """Flip ended punishments to expired."""
    with app.app_context():
        try:
            count = get_engines().punishment.expire_punishments()
            if count:
                logger.info("Scheduler: expired %d punishments", count)
        except IncentiveError:
            logger.exception("Scheduler: punishment expiry failed")


def _expire_badges(app):
    """Clear TOP CLEANER badges that ran out."""
    with app.app_context():
        try:
            count = get_engines().bonus.expire_top_cleaner_badges()
            if count:
                logger.info("Scheduler: expired %d badges", count)
        except IncentiveError:
            logger.exception("Scheduler: badge expiry failed")


def _monthly_ranking(app):
    """Store every cleaner's snapshot for last month, then rank it."""
    with app.app_context():
        year, month = previous_period(utcnow())
        engines = get_engines()
        try:
            engines.agility.save_all_monthly_metrics(year, month)
            result = engines.ranking.calculate_monthly_ranking(year, month)
            logger.info("Scheduler: ranked %d cleaners for %02d/%d",
                        result["total_cleaners"], month, year)
        except IncentiveError:
            logger.exception("Scheduler: monthly ranking for %02d/%d failed", month, year)


def init_scheduler(app):
    """Initialize and start the background scheduler.

    Only runs if ENABLE_SCHEDULER is set in the app config.
    """
    if not app.config.get("ENABLE_SCHEDULER"):
        logger.info("Scheduler disabled (set ENABLE_SCHEDULER=true to enable)")
        return None

    scheduler = BackgroundScheduler(daemon=True, timezone=app.config.get("TIMEZONE", "UTC"))

    scheduler.add_job(
        _expire_punishments,
        "interval",
        hours=1,
        args=[app],
        id="expire_punishments",
        name="Expire ended punishments",
    )

    scheduler.add_job(
        _expire_badges,
        "interval",
        hours=1,
        args=[app],
        id="expire_top_cleaner_badges",
        name="Expire TOP CLEANER badges",
    )

    scheduler.add_job(
        _monthly_ranking,
        "cron",
        day=1,
        hour=3,
        args=[app],
        id="monthly_ranking",
        name="Score and rank the previous month",
    )

    scheduler.start()
    logger.info("Background scheduler started with %d jobs", len(scheduler.get_jobs()))
    return scheduler
