"""
Celery application configuration for scheduled sync jobs.
"""
from datetime import timedelta

from celery import Celery
from cio.core.config import settings

celery_app = Celery(
    "cio",
    include=[
        "cio.tasks.sync",
    ],
)


def _every(job: str, interval: timedelta) -> dict:
    return {
        "task": "cio.tasks.sync.run_job_task",
        "schedule": interval,
        "args": (job,),
    }


celery_app.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer=settings.celery_task_serializer,
    result_serializer=settings.celery_result_serializer,
    accept_content=settings.celery_accept_content,
    timezone=settings.celery_timezone,
    enable_utc=settings.celery_enable_utc,
    beat_schedule={
        "sync-companies": _every("sync-companies", timedelta(hours=1)),
        "sync-api-tokens": _every("sync-api-tokens", timedelta(hours=1)),
        "sync-functions": _every("sync-functions", timedelta(hours=1)),
        "sync-finance": _every("sync-finance", timedelta(hours=6)),
        "sync-travel": _every("sync-travel", timedelta(hours=6)),
        "sync-recorded-meetings": _every("sync-recorded-meetings", timedelta(hours=3)),
        "sync-mailing-lists": _every("sync-mailing-lists", timedelta(hours=3)),
        "sync-background-checks": _every("sync-background-checks", timedelta(hours=3)),
        "sync-zoho": _every("sync-zoho", timedelta(hours=12)),
    },
    task_track_started=True,
    task_time_limit=3600,  # 1 hour hard limit for tasks
    task_soft_time_limit=3300,  # 55 minutes soft limit
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,
)

celery_app.autodiscover_tasks(["cio.tasks"])


def get_celery_app() -> Celery:
    """Get Celery app instance."""
    return celery_app
