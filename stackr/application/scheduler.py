"""
Background scheduler: periodically *calls* the pull-based engine operations.

Jobs:
  - Weekly summary (Monday 08:00)
  - Monthly summary (1st of the month 08:00)
  - Reminder sweep (every 15 minutes)
  - Guardrail sweep (daily 09:00)
  - Scorecard regeneration check (daily 06:00)

Each job walks every user known to the store; one user's failure is logged
and the sweep continues.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from stackr.application.services import Services
from stackr.utils.dates import start_of_month, utcnow

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _for_each_user(services: Services, job_name: str, action: Callable[[str], object]) -> int:
    done = 0
    for user_id in services.known_user_ids():
        try:
            action(user_id)
            done += 1
        except Exception:
            logger.exception("%s failed for user_id=%s", job_name, user_id)
    logger.info("%s: processed %d users", job_name, done)
    return done


def run_weekly_summaries(services: Services) -> int:
    return _for_each_user(services, "Weekly summary job", services.summaries.weekly_from_transactions)


def run_monthly_summaries(services: Services, timezone: str = "UTC") -> int:
    # runs on the 1st: report the calendar month that just closed
    closed = start_of_month(utcnow().astimezone(ZoneInfo(timezone))) - timedelta(microseconds=1)
    return _for_each_user(
        services,
        "Monthly summary job",
        lambda user_id: services.summaries.monthly_from_transactions(user_id, now=closed),
    )


def run_reminders(services: Services) -> int:
    return _for_each_user(services, "Reminder job", services.reminders.process_due)


def run_guardrail_sweep(services: Services) -> int:
    def sweep(user_id: str) -> None:
        snapshot = asyncio.run(services.snapshots.fetch(user_id))
        services.guardrails.check_all(user_id, snapshot.spending_limits)

    return _for_each_user(services, "Guardrail sweep job", sweep)


def run_scorecard_check(services: Services) -> int:
    return _for_each_user(
        services,
        "Scorecard check job",
        lambda user_id: asyncio.run(services.scorecards.generate_if_due(user_id)),
    )


def start_scheduler(services: Services, timezone: str = "UTC") -> None:
    """Start the background scheduler with all periodic jobs."""
    scheduler.add_job(
        run_weekly_summaries,
        CronTrigger(day_of_week="mon", hour=8, minute=0, timezone=timezone),
        args=[services],
        id="weekly_summary",
        replace_existing=True,
    )
    scheduler.add_job(
        run_monthly_summaries,
        CronTrigger(day=1, hour=8, minute=0, timezone=timezone),
        args=[services, timezone],
        id="monthly_summary",
        replace_existing=True,
    )
    scheduler.add_job(
        run_reminders,
        "interval",
        minutes=15,
        args=[services],
        id="reminders",
        replace_existing=True,
    )
    scheduler.add_job(
        run_guardrail_sweep,
        CronTrigger(hour=9, minute=0, timezone=timezone),
        args=[services],
        id="guardrail_sweep",
        replace_existing=True,
    )
    scheduler.add_job(
        run_scorecard_check,
        CronTrigger(hour=6, minute=0, timezone=timezone),
        args=[services],
        id="scorecard_check",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: weekly_summary (Mon 08:00), monthly_summary (1st 08:00), "
        "reminders (every 15 min), guardrail_sweep (09:00), scorecard_check (06:00) [%s]", timezone,
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
