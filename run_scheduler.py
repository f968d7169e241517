"""
Run the periodic engine jobs (summaries, reminders, guardrail sweep,
scorecard check) in the foreground.

    STORE_BACKEND=sql DATABASE_URL=postgresql://... python run_scheduler.py
"""
import logging
import time

from stackr.application.scheduler import shutdown_scheduler, start_scheduler
from stackr.application.services import build_services
from stackr.config import get_settings


def main():
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    start_scheduler(build_services(settings), timezone=settings.TIMEZONE)
    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        shutdown_scheduler()


if __name__ == "__main__":
    main()
