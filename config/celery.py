import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("stay_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Open quotes past their TTL become unusable - every 10 minutes
    "expire-stale-quotes": {
        "task": "bookings.expire_stale_quotes",
        "schedule": 600.0,
        "options": {"expires": 540},
    },
    # Confirmed stays whose check-out has passed - hourly
    "complete-finished-reservations": {
        "task": "bookings.complete_finished_reservations",
        "schedule": crontab(minute=15),
    },
}
