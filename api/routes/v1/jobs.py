"""
Job posting endpoints.

Active jobs are public. Recruiters create jobs, list their own, edit
them and toggle them between active and inactive.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_actor, require_actor, require_permission
from api.schemas.applications import ApplicationResponse
from api.schemas.jobs import JobCreate, JobResponse, JobUpdate
from api.services import applications as application_service
from api.services import jobs as job_service
from core.middleware.authentication import Actor
from core.middleware.authorization import Permission
from database.engine import get_db

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get(
    "",
    response_model=list[JobResponse],
    summary="List Active Jobs",
    description="Public listing of active jobs, newest first.",
)
async def list_jobs(db: AsyncSession = Depends(get_db)):
    return await job_service.list_active_jobs(db)


@router.get(
    "/mine",
    response_model=list[JobResponse],
    summary="List My Jobs",
    description="All of the recruiter's jobs in every status. Requires job:list_own permission.",
)
async def list_my_jobs(
    actor: Actor = Depends(require_permission(Permission.JOB_LIST_OWN)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.list_owned_jobs(db, actor)


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Job",
    description="Create an active job. Requires job:create permission.",
)
async def create_job(
    body: JobCreate,
    actor: Actor = Depends(require_permission(Permission.JOB_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.create_job(
        db,
        actor,
        title=body.title,
        description=body.description,
        location=body.location,
        salary=body.salary,
        custom_questions=[q.model_dump(mode="json") for q in body.custom_questions],
        requirements=body.requirements,
    )


@router.get("/{job_id}", response_model=JobResponse, summary="Get Job")
async def get_job(
    job_id: int = Path(..., description="Job ID"),
    actor: Optional[Actor] = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Active jobs for everyone; inactive and closed ones for their owner only."""
    return await job_service.get_job(db, job_id, actor)


@router.patch(
    "/{job_id}",
    response_model=JobResponse,
    summary="Update Job",
    description="Edit title, description, location, salary, requirements or questions. Owner only.",
)
async def update_job(
    body: JobUpdate,
    job_id: int = Path(..., description="Job ID"),
    actor: Actor = Depends(require_permission(Permission.JOB_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.update_job(
        db, actor, job_id, body.model_dump(mode="json", exclude_unset=True)
    )


@router.patch(
    "/{job_id}/toggle-status",
    response_model=JobResponse,
    summary="Toggle Job Status",
    description="Switch between active and inactive. Requires job:update permission.",
)
async def toggle_job_status(
    job_id: int = Path(..., description="Job ID"),
    actor: Actor = Depends(require_permission(Permission.JOB_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.toggle_job_status(db, actor, job_id)


@router.get(
    "/{job_id}/applications",
    response_model=list[ApplicationResponse],
    summary="List Job Applications",
    description="Applications to one of the recruiter's jobs, with applicant profiles.",
)
async def list_job_applications(
    job_id: int = Path(..., description="Job ID"),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.list_applications_for_job(db, actor, job_id)
