"""Job service functions."""

from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InvalidTransition, NotFound, ValidationError, Conflict
from core.middleware.authentication import Actor
from core.middleware.authorization import authorize, HasRole, Owns
from core.utils.datetime import ensure_aware
from database.models.users import UserRole
from database.models.jobs import Job, JobQuestion, JobStatus, QuestionType, CHOICE_QUESTION_TYPES
from database.models.applications import Application

logger = logging.getLogger(__name__)

# Newest first; id breaks ties between rows created in the same instant
NEWEST_FIRST = (Job.created_at.desc(), Job.id.desc())

EDITABLE_JOB_FIELDS = {"title", "description", "location", "salary", "requirements", "custom_questions"}


def question_to_dict(question: JobQuestion) -> Dict[str, Any]:
    return {
        "id": question.id,
        "question": question.question,
        "type": question.question_type.value,
        "options": list(question.options or []),
        "required": question.required,
    }


def job_to_dict(job: Job) -> Dict[str, Any]:
    """Serialize a job with its questions and owner display fields."""
    employer = job.employer
    return {
        "id": job.id,
        "title": job.title,
        "organization_name": job.organization_name,
        "description": job.description,
        "location": job.location,
        "salary": job.salary,
        "requirements": list(job.requirements or []),
        "custom_questions": [question_to_dict(q) for q in job.questions],
        "status": job.status.value,
        "applications_count": job.applications_count,
        "employer_id": job.employer_id,
        "employer_name": employer.name if employer else None,
        "created_at": ensure_aware(job.created_at),
        "updated_at": ensure_aware(job.updated_at),
    }


async def _load_job(session: AsyncSession, job_id: int) -> Optional[Job]:
    # Bulk updates bypass the identity map, so always re-read the row
    result = await session.execute(
        select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _clean_requirements(requirements: Optional[Iterable[str]]) -> List[str]:
    return [r.strip() for r in (requirements or []) if r and r.strip()]


def _build_questions(custom_questions: Optional[Iterable[Mapping[str, Any]]]) -> List[JobQuestion]:
    """
    Validate question definitions and build ordered child rows.

    Raises:
        ValidationError: On empty text, unknown type or a choice question without options
    """
    questions = []
    for position, raw in enumerate(custom_questions or []):
        text = (raw.get("question") or "").strip()
        if not text:
            raise ValidationError(f"Question {position + 1} has no text")

        raw_type = raw.get("type") or QuestionType.TEXT.value
        try:
            question_type = QuestionType(raw_type)
        except ValueError:
            raise ValidationError(f"Question {position + 1} has unknown type '{raw_type}'")

        options = [str(o).strip() for o in (raw.get("options") or []) if str(o).strip()]
        if question_type in CHOICE_QUESTION_TYPES:
            if not options:
                raise ValidationError(
                    f"Question {position + 1} ({question_type.value}) needs at least one option"
                )
            if len(set(options)) != len(options):
                raise ValidationError(f"Question {position + 1} has duplicate options")
        else:
            options = []

        questions.append(
            JobQuestion(
                position=position,
                question=text,
                question_type=question_type,
                options=options,
                required=bool(raw.get("required", False)),
            )
        )
    return questions


async def list_active_jobs(session: AsyncSession) -> List[Dict[str, Any]]:
    """Public listing: active jobs only, newest first."""
    result = await session.execute(
        select(Job).where(Job.status == JobStatus.ACTIVE).order_by(*NEWEST_FIRST)
    )
    return [job_to_dict(job) for job in result.scalars().all()]


async def list_owned_jobs(session: AsyncSession, actor: Optional[Actor]) -> List[Dict[str, Any]]:
    """All of a recruiter's jobs in every status, newest first."""
    authorize(actor, HasRole(UserRole.RECRUITER))

    result = await session.execute(
        select(Job).where(Job.employer_id == actor.id).order_by(*NEWEST_FIRST)
    )
    return [job_to_dict(job) for job in result.scalars().all()]


async def get_job(
    session: AsyncSession,
    job_id: int,
    actor: Optional[Actor] = None,
) -> Dict[str, Any]:
    """
    Job detail. Active jobs are public; the owner also sees inactive and
    closed ones. Everyone else gets NotFound.
    """
    job = await _load_job(session, job_id)
    if not job:
        raise NotFound("Job not found")

    if job.status != JobStatus.ACTIVE and (actor is None or actor.id != job.employer_id):
        raise NotFound("Job not found")

    return job_to_dict(job)


async def create_job(
    session: AsyncSession,
    actor: Optional[Actor],
    title: str,
    description: str,
    location: Optional[str] = None,
    salary: Optional[str] = None,
    custom_questions: Optional[Iterable[Mapping[str, Any]]] = None,
    requirements: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Create an active job owned by the recruiter.

    Args:
        session: Database session
        actor: Authenticated recruiter
        title: Job title
        description: Job description
        location: Optional location
        salary: Optional free-text salary
        custom_questions: Ordered question definitions (question, type, options, required)
        requirements: Free-text requirement bullets

    Returns:
        The created job

    Raises:
        Forbidden: If the actor is not a recruiter
        ValidationError: On empty title/description or invalid questions
    """
    authorize(actor, HasRole(UserRole.RECRUITER))

    title = (title or "").strip()
    description = (description or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if not description:
        raise ValidationError("Description is required")

    questions = _build_questions(custom_questions)

    job = Job(
        employer_id=actor.id,
        title=title,
        organization_name=actor.organization_name or actor.name,
        description=description,
        location=(location or "").strip() or None,
        salary=(salary or "").strip() or None,
        requirements=_clean_requirements(requirements),
        status=JobStatus.ACTIVE,
        applications_count=0,
        questions=questions,
    )
    session.add(job)
    await session.commit()

    logger.info(f"User {actor.id} created job {job.id} with {len(questions)} questions")

    job = await _load_job(session, job.id)
    return job_to_dict(job)


async def update_job(
    session: AsyncSession,
    actor: Optional[Actor],
    job_id: int,
    changes: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Edit a job's content.

    Only the owner may edit, and missing or not-owned jobs are both
    NotFound. Owner, status, counter and the organization snapshot are not
    editable here. Replacing the questions does not touch existing
    applications, whose answers keep the question text they were given.

    Args:
        session: Database session
        actor: Authenticated recruiter
        job_id: Job to edit
        changes: Subset of title, description, location, salary,
            requirements and custom_questions

    Raises:
        NotFound: Job missing or not owned by the actor
        ValidationError: Non-editable field, empty title/description or invalid questions
    """
    authorize(actor, HasRole(UserRole.RECRUITER))

    job = await _load_job(session, job_id)
    authorize(actor, Owns(job, field="employer_id", conceal=True))

    blocked = set(changes) - EDITABLE_JOB_FIELDS
    if blocked:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(blocked))}")

    values: Dict[str, Any] = {}
    for field in ("title", "description"):
        if field in changes:
            values[field] = (changes[field] or "").strip()
            if not values[field]:
                raise ValidationError(f"{field.capitalize()} is required")

    for field in ("location", "salary"):
        if field in changes:
            values[field] = (changes[field] or "").strip() or None

    if "requirements" in changes:
        values["requirements"] = _clean_requirements(changes["requirements"])

    questions = None
    if "custom_questions" in changes:
        questions = _build_questions(changes["custom_questions"])

    for field, value in values.items():
        setattr(job, field, value)

    if questions is not None:
        # Old rows must be gone before new ones reuse their positions
        job.questions.clear()
        await session.flush()
        job.questions.extend(questions)

    await session.commit()
    logger.info(f"User {actor.id} updated job {job.id}: {', '.join(sorted(changes)) or 'no changes'}")

    job = await _load_job(session, job.id)
    return job_to_dict(job)


async def toggle_job_status(
    session: AsyncSession,
    actor: Optional[Actor],
    job_id: int,
) -> Dict[str, Any]:
    """
    Flip a job between active and inactive.

    Missing and not-owned jobs are indistinguishable (NotFound). Closed jobs
    cannot be toggled. The write is conditional on the status observed here.

    Raises:
        NotFound: Job missing or not owned by the actor
        InvalidTransition: Job is closed
        Conflict: Status changed concurrently
    """
    authorize(actor, HasRole(UserRole.RECRUITER))

    job = await _load_job(session, job_id)
    authorize(actor, Owns(job, field="employer_id", conceal=True))

    if job.status == JobStatus.CLOSED:
        raise InvalidTransition("Closed jobs cannot be reopened or deactivated")

    observed = job.status
    new_status = JobStatus.INACTIVE if observed == JobStatus.ACTIVE else JobStatus.ACTIVE

    result = await session.execute(
        update(Job)
        .where(Job.id == job.id, Job.employer_id == actor.id, Job.status == observed)
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise Conflict("Job status was changed by another request, please retry")

    await session.commit()
    logger.info(f"User {actor.id} changed job {job.id} status {observed.value} -> {new_status.value}")

    job = await _load_job(session, job.id)
    return job_to_dict(job)


async def reconcile_application_counts(
    session: AsyncSession,
    job_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Recompute applications_count from the applications table and fix drift.

    Args:
        session: Database session
        job_id: Restrict to one job

    Returns:
        One entry per corrected job: job_id, previous and actual counts
    """
    counts_query = select(Application.job_id, func.count(Application.id)).group_by(
        Application.job_id
    )
    jobs_query = select(Job.id, Job.applications_count)
    if job_id is not None:
        counts_query = counts_query.where(Application.job_id == job_id)
        jobs_query = jobs_query.where(Job.id == job_id)

    actual_counts = dict((await session.execute(counts_query)).all())
    corrections = []

    for current_id, stored in (await session.execute(jobs_query)).all():
        actual = actual_counts.get(current_id, 0)
        if stored == actual:
            continue

        await session.execute(
            update(Job)
            .where(Job.id == current_id)
            .values(applications_count=actual)
            .execution_options(synchronize_session=False)
        )
        corrections.append({"job_id": current_id, "previous": stored, "actual": actual})
        logger.warning(f"Job {current_id} applications_count drifted: {stored} -> {actual}")

    await session.commit()
    return corrections
