"""Applicant notification tasks."""

import asyncio
import logging

from celery import Task

from api.dependencies import get_notification_sender
from api.services.applications import notify_status_change
from core.exceptions import NotFound, UpstreamError
from workers.celery_app import celery_app
from workers.db import task_session

logger = logging.getLogger(__name__)


async def _notify(application_id: int) -> dict:
    async with task_session() as session:
        return await notify_status_change(session, get_notification_sender(), application_id)


@celery_app.task(
    name="workers.tasks.notifications.send_application_status_notification",
    bind=True,
    max_retries=5,
)
def send_application_status_notification(self: Task, application_id: int) -> dict:
    """
    Email (and WhatsApp, when verified) the applicant about an accepted or
    rejected application.

    Args:
        application_id: Application whose status changed

    Returns:
        Channels used
    """
    try:
        channels = asyncio.run(_notify(application_id))
    except NotFound:
        logger.warning(f"Application {application_id} disappeared before notification")
        return {"status": "skipped", "application_id": application_id}
    except UpstreamError as exc:
        logger.error(f"Notification for application {application_id} failed: {exc.message}")
        # Retry with exponential backoff
        raise self.retry(exc=exc, countdown=2**self.request.retries)

    return {"status": "sent", "application_id": application_id, **channels}
