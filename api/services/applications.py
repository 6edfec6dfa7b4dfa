"""
Application service functions for API endpoints.

Covers submission (one per seeker per job), listings for both sides and
the recruiter-driven status workflow.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import Conflict, InvalidTransition, NotFound, ValidationError
from core.integrations.email import EmailTemplates
from core.integrations.notifications import NotificationSender
from core.middleware.authentication import Actor
from core.middleware.authorization import authorize, Authenticated, HasRole, Owns
from core.storage.base import BlobStore, UploadedFile, discard_blob
from core.utils.datetime import ensure_aware
from core.utils.timeouts import call_collaborator
from core.utils.validators import validate_resume
from database.models.users import User, UserRole
from database.models.jobs import Job, JobQuestion, JobStatus, QuestionType
from database.models.applications import Application, ApplicationStatus, can_transition

logger = logging.getLogger(__name__)

NEWEST_FIRST = (Application.created_at.desc(), Application.id.desc())

# Statuses that trigger an applicant notification
NOTIFY_STATUSES = {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED}


def applicant_to_dict(user: User) -> Dict[str, Any]:
    """Public applicant profile shown to the employer. Never includes credentials."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "verified_phone": user.verified_phone if user.phone_verified else None,
        "phone_verified": user.phone_verified,
        "bio": user.bio,
        "location": user.location,
        "website": user.website,
    }


def job_snapshot(job: Job) -> Dict[str, Any]:
    employer = job.employer
    return {
        "id": job.id,
        "title": job.title,
        "organization_name": job.organization_name,
        "location": job.location,
        "salary": job.salary,
        "status": job.status.value,
        "created_at": ensure_aware(job.created_at),
        "employer_name": employer.name if employer else None,
    }


def application_to_dict(
    application: Application,
    include_applicant: bool = False,
    include_job: bool = False,
) -> Dict[str, Any]:
    data = {
        "id": application.id,
        "job_id": application.job_id,
        "applicant_id": application.applicant_id,
        "employer_id": application.employer_id,
        "answers": list(application.answers or []),
        "resume": {
            "id": application.resume_blob_id,
            "url": application.resume_url,
            "filename": application.resume_filename,
            "uploaded_at": ensure_aware(application.resume_uploaded_at),
        },
        "status": application.status.value,
        "notes": application.notes,
        "created_at": ensure_aware(application.created_at),
        "updated_at": ensure_aware(application.updated_at),
    }
    if include_applicant:
        data["applicant"] = applicant_to_dict(application.applicant)
    if include_job:
        data["job"] = job_snapshot(application.job)
    return data


async def _load_application(session: AsyncSession, application_id: int) -> Optional[Application]:
    result = await session.execute(
        select(Application)
        .where(Application.id == application_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _normalize_value(question: JobQuestion, value: Any) -> Any:
    """Trimmed string, or list of trimmed strings for checkbox questions."""
    if value is None:
        return [] if question.question_type == QuestionType.CHECKBOX else ""

    if question.question_type == QuestionType.CHECKBOX:
        values = value if isinstance(value, list) else [value]
        if not all(isinstance(v, str) for v in values):
            raise ValidationError(f'Answer to "{question.question}" must be a list of strings')
        return [v.strip() for v in values if v.strip()]

    if not isinstance(value, str):
        raise ValidationError(f'Answer to "{question.question}" must be text')
    return value.strip()


def validate_answers(
    questions: List[JobQuestion],
    answers: Optional[Iterable[Mapping[str, Any]]],
) -> List[Dict[str, Any]]:
    """
    Check answers against a job's questions.

    Args:
        questions: The job's questions, in order
        answers: Items with ``question_id`` and ``value``

    Returns:
        Answers in question order, each with a snapshot of the question text

    Raises:
        ValidationError: Unknown or duplicate question, missing required
            answer, or a choice outside the options
    """
    by_id = {q.id: q for q in questions}
    provided: Dict[int, Any] = {}

    for answer in answers or []:
        try:
            question_id = int(answer.get("question_id"))
        except (TypeError, ValueError):
            raise ValidationError("Each answer needs a numeric question_id")
        if question_id not in by_id:
            raise ValidationError(f"Answer refers to unknown question {question_id}")
        if question_id in provided:
            raise ValidationError(f"Question {question_id} answered more than once")
        provided[question_id] = answer.get("value")

    normalized = []
    for question in questions:
        value = _normalize_value(question, provided.get(question.id))

        if not value:
            if question.required:
                raise ValidationError(f'Question "{question.question}" is required')
            continue

        if question.is_choice:
            chosen = value if isinstance(value, list) else [value]
            invalid = [v for v in chosen if v not in question.options]
            if invalid:
                raise ValidationError(
                    f'Invalid option for "{question.question}": {", ".join(invalid)}'
                )

        normalized.append(
            {"question_id": question.id, "question": question.question, "value": value}
        )

    return normalized


async def submit_application(
    session: AsyncSession,
    blob_store: BlobStore,
    actor: Optional[Actor],
    job_id: int,
    answers: Optional[Iterable[Mapping[str, Any]]],
    resume: Optional[UploadedFile],
) -> Dict[str, Any]:
    """
    Apply to an active job.

    The résumé is uploaded before anything is written. The insert and the
    job counter increment share one transaction; a concurrent duplicate is
    caught by the (job, applicant) unique constraint and the uploaded blob
    is deleted.

    Raises:
        Forbidden: Actor is not a seeker
        NotFound: Job missing or not active
        Conflict: Already applied
        ValidationError: Bad answers or résumé
        UpstreamError: Blob store failed or timed out
    """
    authorize(actor, HasRole(UserRole.SEEKER))

    result = await session.execute(
        select(Job).where(Job.id == job_id, Job.status == JobStatus.ACTIVE)
    )
    job = result.scalar_one_or_none()
    if not job:
        raise NotFound("Job not found")

    existing = await session.execute(
        select(Application.id).where(
            Application.job_id == job.id, Application.applicant_id == actor.id
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise Conflict("You have already applied for this job")

    normalized_answers = validate_answers(list(job.questions), answers)

    if resume is None:
        raise ValidationError("Resume file is required")
    validate_resume(resume.filename, resume.content_type, resume.data)

    blob = await call_collaborator(
        blob_store.upload(
            resume.data,
            resume.filename,
            content_type=resume.content_type,
            metadata={"job_id": job.id, "applicant_id": actor.id},
        ),
        "Resume upload",
    )

    application = Application(
        job_id=job.id,
        applicant_id=actor.id,
        employer_id=job.employer_id,
        answers=normalized_answers,
        resume_blob_id=blob.id,
        resume_url=blob.url,
        resume_filename=resume.filename,
        status=ApplicationStatus.PENDING,
    )

    try:
        session.add(application)
        await session.flush()
        await session.execute(
            update(Job)
            .where(Job.id == job.id)
            .values(applications_count=Job.applications_count + 1)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        await discard_blob(blob_store, blob.id)
        logger.info(f"Duplicate application by user {actor.id} for job {job_id} rejected at commit")
        raise Conflict("You have already applied for this job")
    except Exception:
        await session.rollback()
        await discard_blob(blob_store, blob.id)
        raise

    logger.info(f"User {actor.id} applied to job {job.id} (application {application.id})")

    application = await _load_application(session, application.id)
    return application_to_dict(application, include_job=True)


async def list_applications_for_job(
    session: AsyncSession,
    actor: Optional[Actor],
    job_id: int,
) -> List[Dict[str, Any]]:
    """Applications to one of the actor's jobs, newest first, with applicant profiles."""
    authorize(actor, Authenticated())

    result = await session.execute(select(Job).where(Job.id == job_id))
    job = result.scalar_one_or_none()
    authorize(actor, Owns(job, field="employer_id", conceal=True))

    result = await session.execute(
        select(Application).where(Application.job_id == job.id).order_by(*NEWEST_FIRST)
    )
    return [
        application_to_dict(a, include_applicant=True) for a in result.scalars().all()
    ]


async def list_applications_for_applicant(
    session: AsyncSession,
    actor: Optional[Actor],
) -> List[Dict[str, Any]]:
    """The seeker's own applications, newest first, with a job snapshot."""
    authorize(actor, HasRole(UserRole.SEEKER))

    result = await session.execute(
        select(Application).where(Application.applicant_id == actor.id).order_by(*NEWEST_FIRST)
    )
    return [application_to_dict(a, include_job=True) for a in result.scalars().all()]


async def get_application(
    session: AsyncSession,
    actor: Optional[Actor],
    application_id: int,
) -> Dict[str, Any]:
    """Single application, visible to its applicant and its employer only."""
    authorize(actor, Authenticated())

    application = await _load_application(session, application_id)
    owner_field = (
        "applicant_id"
        if application is not None and application.applicant_id == actor.id
        else "employer_id"
    )
    authorize(actor, Owns(application, field=owner_field, conceal=True))

    return application_to_dict(application, include_applicant=True, include_job=True)


async def update_application_status(
    session: AsyncSession,
    actor: Optional[Actor],
    application_id: int,
    new_status: str | ApplicationStatus,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Move an application along the review workflow.

    pending -> reviewed | accepted | rejected, reviewed -> accepted | rejected.
    Accepted and rejected are terminal. The write only succeeds if the
    status is still the one read here, so concurrent reviewers cannot both win.

    Raises:
        NotFound: Application missing or not owned by the actor
        ValidationError: Unknown status value
        InvalidTransition: Not an edge of the workflow, or lost a concurrent update
    """
    authorize(actor, Authenticated())

    try:
        target = ApplicationStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown application status '{new_status}'")

    application = await _load_application(session, application_id)
    authorize(actor, Owns(application, field="employer_id", conceal=True))

    observed = application.status
    if not can_transition(observed, target):
        raise InvalidTransition(
            f"Cannot change application status from {observed.value} to {target.value}"
        )

    values: Dict[str, Any] = {"status": target}
    if notes is not None:
        values["notes"] = notes.strip() or None

    result = await session.execute(
        update(Application)
        .where(
            Application.id == application.id,
            Application.employer_id == actor.id,
            Application.status == observed,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise InvalidTransition("Application status was changed by another request")

    await session.commit()
    logger.info(
        f"User {actor.id} moved application {application.id} {observed.value} -> {target.value}"
    )

    application = await _load_application(session, application.id)
    return application_to_dict(application, include_applicant=True, include_job=True)


def should_notify(status: str | ApplicationStatus) -> bool:
    return ApplicationStatus(status) in NOTIFY_STATUSES


async def notify_status_change(
    session: AsyncSession,
    sender: NotificationSender,
    application_id: int,
) -> Dict[str, bool]:
    """
    Tell the applicant their application was accepted or rejected.

    Email always; WhatsApp as well when the applicant has a verified phone.

    Returns:
        Which channels were used

    Raises:
        NotFound: Application missing
        UpstreamError: A channel failed
    """
    application = await _load_application(session, application_id)
    if not application:
        raise NotFound("Application not found")

    if application.status not in NOTIFY_STATUSES:
        logger.info(f"Application {application_id} is {application.status.value}, nothing to notify")
        return {"email": False, "whatsapp": False}

    applicant = application.applicant
    job = application.job
    template = EmailTemplates.application_status(
        applicant.name,
        job.title,
        job.organization_name,
        application.status.value,
        application.notes,
    )

    await call_collaborator(
        sender.send_email(applicant.email, template["subject"], template["body"], html=True),
        "Status email",
    )

    sent_whatsapp = False
    if applicant.phone_verified and applicant.verified_phone:
        verdict = "accepted" if application.status == ApplicationStatus.ACCEPTED else "rejected"
        text = (
            f"Hi {applicant.name}, your application for {job.title} "
            f"at {job.organization_name} has been {verdict}."
        )
        if application.notes:
            text += f"\n\nNotes: {application.notes}"
        await call_collaborator(
            sender.send_whatsapp_message(applicant.verified_phone, text),
            "Status WhatsApp message",
        )
        sent_whatsapp = True

    logger.info(f"Notified applicant of application {application_id} ({application.status.value})")
    return {"email": True, "whatsapp": sent_whatsapp}
