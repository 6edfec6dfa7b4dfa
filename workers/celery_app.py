"""Celery app factory."""

from celery import Celery

celery_app = Celery(
    "jobboard",
    include=[
        "workers.tasks.notifications",
        "workers.tasks.reconciliation",
    ],
)
celery_app.config_from_object("workers.celery_config")
