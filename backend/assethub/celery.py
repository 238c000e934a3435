import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "assethub.settings")

app = Celery("assethub")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Queue per app
app.conf.task_routes = {
    "accounts.tasks.expire_activation_codes": {"queue": "maintenance"},
    "audit.tasks.verify_audit_log_guards": {"queue": "audit"},
    # Default queue
    "*": {"queue": "default"},
}

app.conf.task_default_queue = "default"

app.conf.update(
    # Serialization settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone settings
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Retry settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    task_queues={
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "audit": {
            "exchange": "audit",
            "routing_key": "audit",
        },
        "maintenance": {
            "exchange": "maintenance",
            "routing_key": "maintenance",
        },
    },
)

# Celery Beat schedule configuration
app.conf.beat_schedule = {
    "audit_verify_log_guards_daily": {
        "task": "audit.tasks.verify_audit_log_guards",
        "schedule": crontab(hour=2, minute=0),
        "options": {"queue": "audit"},
    },
    "accounts_expire_activation_codes_hourly": {
        "task": "accounts.tasks.expire_activation_codes",
        "schedule": crontab(minute=15),
        "options": {"queue": "maintenance"},
    },
}
