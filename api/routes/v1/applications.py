"""
Application endpoints.

Seekers apply to active jobs with answers and a PDF résumé; recruiters
review applications to their jobs.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status
from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_blob_store, read_upload, require_actor, require_permission
from api.schemas.applications import ApplicationResponse, ApplicationStatusUpdate
from api.services import applications as application_service
from core.exceptions import ValidationError
from core.middleware.authentication import Actor
from core.middleware.authorization import Permission
from core.storage.base import BlobStore
from database.engine import get_db
from workers.tasks.notifications import send_application_status_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["applications"])


def parse_answers(raw: Optional[str]) -> list:
    """Answers arrive as a JSON array in a multipart form field."""
    if not raw:
        return []
    try:
        answers = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Answers must be a JSON array")
    if not isinstance(answers, list) or not all(isinstance(a, dict) for a in answers):
        raise ValidationError("Answers must be a JSON array of objects")
    return answers


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply To Job",
    description="Multipart form: job_id, answers (JSON array of {question_id, value}) and resume (PDF).",
)
async def submit_application(
    job_id: int = Form(...),
    answers: Optional[str] = Form(None),
    resume: Optional[UploadFile] = File(None),
    actor: Actor = Depends(require_permission(Permission.APPLICATION_CREATE)),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    return await application_service.submit_application(
        db,
        blob_store,
        actor,
        job_id=job_id,
        answers=parse_answers(answers),
        resume=await read_upload(resume),
    )


@router.get(
    "/mine",
    response_model=list[ApplicationResponse],
    summary="List My Applications",
)
async def list_my_applications(
    actor: Actor = Depends(require_permission(Permission.APPLICATION_LIST_OWN)),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.list_applications_for_applicant(db, actor)


@router.get(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Get Application",
    description="Visible to the applicant and to the job's employer.",
)
async def get_application(
    application_id: int = Path(..., description="Application ID"),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.get_application(db, actor, application_id)


@router.patch(
    "/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Update Application Status",
    description="Review workflow. Requires application:review permission. Accepted and rejected notify the applicant.",
)
async def update_application_status(
    body: ApplicationStatusUpdate,
    application_id: int = Path(..., description="Application ID"),
    actor: Actor = Depends(require_permission(Permission.APPLICATION_REVIEW)),
    db: AsyncSession = Depends(get_db),
):
    application = await application_service.update_application_status(
        db, actor, application_id, body.status, notes=body.notes
    )

    if application_service.should_notify(application["status"]):
        try:
            # Publishing is blocking broker I/O
            await run_in_threadpool(send_application_status_notification.delay, application["id"])
        except BrokerError:
            # The status change is committed; the notification is lost, not the update
            logger.error(
                f"Could not enqueue notification for application {application['id']}",
                exc_info=True,
            )

    return application
