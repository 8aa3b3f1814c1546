from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .service import NotificationService

logger = logging.getLogger(__name__)

DATE_SWEEP_JOB_ID = "check_date_notifications"


def create_date_sweep_scheduler(service: NotificationService, *, hour: int = 0, minute: int = 5) -> BackgroundScheduler:
    """Scheduler running the daily reminder sweep; the caller owns start/shutdown."""
    sched = BackgroundScheduler()
    sched.add_job(
        service.check_date_notifications,
        CronTrigger(hour=hour, minute=minute),
        id=DATE_SWEEP_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return sched


def start_date_sweep(service: NotificationService, *, hour: int = 0, minute: int = 5) -> BackgroundScheduler:
    sched = create_date_sweep_scheduler(service, hour=hour, minute=minute)
    sched.start()
    logger.info("Date notification sweep scheduled daily at %02d:%02d", hour, minute)
    return sched
