"""Periodic consistency checks."""

import asyncio
import logging
from typing import Optional

from api.services import jobs as job_service
from workers.celery_app import celery_app
from workers.db import task_session

logger = logging.getLogger(__name__)


async def _reconcile(job_id: Optional[int]) -> list:
    async with task_session() as session:
        return await job_service.reconcile_application_counts(session, job_id)


@celery_app.task(name="workers.tasks.reconciliation.reconcile_application_counts")
def reconcile_application_counts(job_id: Optional[int] = None) -> dict:
    """Recompute each job's applications_count from its applications."""
    corrections = asyncio.run(_reconcile(job_id))
    if corrections:
        logger.warning(f"Corrected applications_count on {len(corrections)} job(s)")
    return {"corrected": len(corrections), "corrections": corrections}
