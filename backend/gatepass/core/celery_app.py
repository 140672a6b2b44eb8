from celery import Celery
from celery.schedules import crontab

from gatepass.core.config import settings


def crontab_from_string(expression: str) -> crontab:
    """Build a celery crontab from 'minute hour day_of_month month day_of_week'"""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Invalid cron expression '{expression}': expected 5 fields")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


# Create Celery app
celery_app = Celery(
    "campusgate",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "gatepass.modules.passes.tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
    task_soft_time_limit=settings.CELERY_TASK_TIME_LIMIT - 60,
    result_expires=settings.CELERY_RESULT_EXPIRES,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    broker_connection_retry_on_startup=True,
)

# Celery beat schedule for the pass sweeps
celery_app.conf.beat_schedule = {
    "pass-reminders": {
        "task": "gatepass.modules.passes.tasks.send_pass_reminders",
        "schedule": crontab_from_string(settings.REMINDER_CRON),
    },
    "overdue-sweep": {
        "task": "gatepass.modules.passes.tasks.mark_overdue_passes",
        "schedule": crontab_from_string(settings.OVERDUE_SWEEP_CRON),
    },
    "expired-pass-cleanup": {
        "task": "gatepass.modules.passes.tasks.expire_unused_passes",
        "schedule": crontab_from_string(settings.EXPIRY_SWEEP_CRON),
    },
    "overdue-notifications": {
        "task": "gatepass.modules.passes.tasks.alert_security_overdue",
        "schedule": crontab_from_string(settings.OVERDUE_ALERT_CRON),
    },
}
