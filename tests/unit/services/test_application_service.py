"""
Tests for application submission, visibility and the review workflow.
"""

import asyncio
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select, update

from api.services import applications as application_service
from api.services import jobs as job_service
from core.exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    UpstreamError,
    ValidationError,
)
from core.middleware.authentication import Actor
from core.storage.base import UploadedFile
from database.models.applications import Application, ApplicationStatus, can_transition
from database.models.jobs import Job, JobStatus
from database.models.users import UserRole


def answers_for(job, experience="5 years", stack=None, tools=None):
    questions = job["custom_questions"]
    answers = [{"question_id": questions[0]["id"], "value": experience}]
    if stack is not None:
        answers.append({"question_id": questions[1]["id"], "value": stack})
    if tools is not None:
        answers.append({"question_id": questions[2]["id"], "value": tools})
    return answers


async def stored_count(session, job_id):
    return (await session.execute(
        select(Job.applications_count).where(Job.id == job_id).execution_options(populate_existing=True)
    )).scalar_one()


async def application_rows(session, job_id):
    return (await session.execute(
        select(func.count(Application.id)).where(Application.job_id == job_id)
    )).scalar_one()


class TestSubmitApplication:
    """Test the submission pipeline."""

    async def test_creates_pending_application_and_increments_count(
        self, session, blob_store, seeker, job, resume
    ):
        application = await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job, stack="Python"), resume
        )

        assert application["status"] == "pending"
        assert application["applicant_id"] == seeker.id
        assert application["employer_id"] == job["employer_id"]
        assert application["resume"]["filename"] == "cv.pdf"
        assert application["resume"]["url"].startswith("https://files.test/")
        assert application["job"]["title"] == "Backend Engineer"
        assert await stored_count(session, job["id"]) == 1
        blob_store.upload.assert_awaited_once()

    async def test_count_matches_number_of_submissions(self, session, blob_store, make_user, job, resume):
        seekers = [Actor.from_user(await make_user(UserRole.SEEKER)) for _ in range(4)]

        for n, applicant in enumerate(seekers, start=1):
            await application_service.submit_application(
                session, blob_store, applicant, job["id"], answers_for(job), resume
            )
            assert await stored_count(session, job["id"]) == n

        assert await application_rows(session, job["id"]) == len(seekers)
        assert (await job_service.get_job(session, job["id"]))["applications_count"] == len(seekers)

    async def test_answers_are_snapshotted_in_question_order(self, session, blob_store, seeker, job, resume):
        questions = job["custom_questions"]
        answers = [
            {"question_id": questions[2]["id"], "value": [" Git ", "Docker"]},
            {"question_id": questions[0]["id"], "value": "  3 years "},
        ]

        application = await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers, resume
        )

        assert application["answers"] == [
            {"question_id": questions[0]["id"], "question": "Years of experience?", "value": "3 years"},
            {"question_id": questions[2]["id"], "question": "Tools you use", "value": ["Git", "Docker"]},
        ]

    async def test_missing_required_answer_rejected(self, session, blob_store, seeker, job, resume):
        questions = job["custom_questions"]
        with pytest.raises(ValidationError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"],
                [{"question_id": questions[1]["id"], "value": "Go"}],
                resume,
            )

        blob_store.upload.assert_not_awaited()
        assert await application_rows(session, job["id"]) == 0
        assert await stored_count(session, job["id"]) == 0

    async def test_required_question_scenario(self, session, blob_store, recruiter, seeker, resume):
        job = await job_service.create_job(
            session,
            recruiter,
            title="Backend Engineer",
            description="...",
            custom_questions=[{"question": "Years of experience?", "type": "text", "required": True}],
        )
        assert job["status"] == "active" and job["applications_count"] == 0

        with pytest.raises(ValidationError):
            await application_service.submit_application(session, blob_store, seeker, job["id"], [], resume)

        application = await application_service.submit_application(
            session, blob_store, seeker, job["id"],
            [{"question_id": job["custom_questions"][0]["id"], "value": "4"}],
            resume,
        )
        assert application["status"] == "pending"
        assert await stored_count(session, job["id"]) == 1

    async def test_choice_outside_options_rejected(self, session, blob_store, seeker, job, resume):
        with pytest.raises(ValidationError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job, stack="Rust"), resume
            )

    async def test_checkbox_value_outside_options_rejected(self, session, blob_store, seeker, job, resume):
        with pytest.raises(ValidationError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job, tools=["Git", "Excel"]), resume
            )

    async def test_unknown_question_rejected(self, session, blob_store, seeker, job, resume):
        answers = answers_for(job) + [{"question_id": 999999, "value": "x"}]
        with pytest.raises(ValidationError):
            await application_service.submit_application(session, blob_store, seeker, job["id"], answers, resume)

    async def test_duplicate_answer_rejected(self, session, blob_store, seeker, job, resume):
        answers = answers_for(job) + answers_for(job)
        with pytest.raises(ValidationError):
            await application_service.submit_application(session, blob_store, seeker, job["id"], answers, resume)

    async def test_second_application_is_a_conflict(self, session, blob_store, seeker, job, resume):
        await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )

        with pytest.raises(Conflict):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), resume
            )

        assert await application_rows(session, job["id"]) == 1
        assert await stored_count(session, job["id"]) == 1
        assert blob_store.upload.await_count == 1

    async def test_duplicate_caught_at_commit_discards_blob(
        self, session, blob_store, seeker, job, resume, monkeypatch
    ):
        await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )

        # A concurrent request passed the pre-check before the first insert landed
        original_execute = session.execute
        calls = {"n": 0}

        async def execute_hiding_existing(statement, *args, **kwargs):
            calls["n"] += 1
            result = await original_execute(statement, *args, **kwargs)
            if calls["n"] == 2:
                return SimpleNamespace(scalar_one_or_none=lambda: None)
            return result

        monkeypatch.setattr(session, "execute", execute_hiding_existing)

        with pytest.raises(Conflict):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), resume
            )

        monkeypatch.undo()
        blob_store.delete.assert_awaited_once_with("resumes/2/cv.pdf")
        assert await application_rows(session, job["id"]) == 1
        assert await stored_count(session, job["id"]) == 1

    @pytest.mark.parametrize("status", [JobStatus.INACTIVE, JobStatus.CLOSED])
    async def test_non_active_job_not_found(self, session, blob_store, seeker, job, resume, status):
        await session.execute(update(Job).where(Job.id == job["id"]).values(status=status))
        await session.commit()

        with pytest.raises(NotFound):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), resume
            )
        blob_store.upload.assert_not_awaited()

    async def test_missing_job_not_found(self, session, blob_store, seeker, resume):
        with pytest.raises(NotFound):
            await application_service.submit_application(session, blob_store, seeker, 4040, [], resume)

    async def test_recruiter_cannot_apply(self, session, blob_store, other_recruiter, job, resume):
        with pytest.raises(Forbidden):
            await application_service.submit_application(
                session, blob_store, other_recruiter, job["id"], answers_for(job), resume
            )

    @pytest.mark.parametrize("upload", [
        None,
        UploadedFile(filename="cv.docx", content_type="application/msword", data=b"PK\x03\x04"),
        UploadedFile(filename="cv.pdf", content_type="application/pdf", data=b"not a pdf"),
        UploadedFile(filename="cv.pdf", content_type="application/pdf", data=b""),
    ])
    async def test_invalid_resume_rejected(self, session, blob_store, seeker, job, upload):
        with pytest.raises(ValidationError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), upload
            )
        blob_store.upload.assert_not_awaited()

    async def test_oversized_resume_rejected(self, session, blob_store, seeker, job, pdf_bytes):
        from core.config import settings

        big = UploadedFile(
            filename="cv.pdf",
            content_type="application/pdf",
            data=pdf_bytes + b"0" * settings.resume_max_bytes,
        )
        with pytest.raises(ValidationError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), big
            )

    async def test_upload_failure_leaves_nothing_behind(self, session, blob_store, seeker, job, resume):
        blob_store.upload.side_effect = ConnectionError("store unreachable")

        with pytest.raises(UpstreamError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), resume
            )

        assert await application_rows(session, job["id"]) == 0
        assert await stored_count(session, job["id"]) == 0

    async def test_upload_timeout_is_upstream_error(self, session, blob_store, seeker, job, resume, monkeypatch):
        from core.config import settings

        async def hang(*args, **kwargs):
            await asyncio.sleep(5)

        blob_store.upload.side_effect = hang
        monkeypatch.setattr(settings, "collaborator_timeout_seconds", 0.01)

        with pytest.raises(UpstreamError):
            await application_service.submit_application(
                session, blob_store, seeker, job["id"], answers_for(job), resume
            )
        assert await application_rows(session, job["id"]) == 0


class TestListApplications:
    async def test_employer_sees_applicants_newest_first(
        self, session, blob_store, recruiter, seeker, other_seeker, job, resume
    ):
        first = await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )
        second = await application_service.submit_application(
            session, blob_store, other_seeker, job["id"], answers_for(job), resume
        )

        listed = await application_service.list_applications_for_job(session, recruiter, job["id"])

        assert [a["id"] for a in listed] == [second["id"], first["id"]]
        assert listed[1]["applicant"]["name"] == "Sari Seeker"
        assert "password_hash" not in listed[1]["applicant"]

    async def test_other_recruiter_gets_not_found(self, session, other_recruiter, job):
        with pytest.raises(NotFound):
            await application_service.list_applications_for_job(session, other_recruiter, job["id"])

    async def test_seeker_gets_not_found(self, session, seeker, job):
        with pytest.raises(NotFound):
            await application_service.list_applications_for_job(session, seeker, job["id"])

    async def test_applicant_listing_has_job_snapshot(
        self, session, blob_store, recruiter, seeker, make_job, job, resume
    ):
        other_job = await make_job(recruiter, title="Data Engineer")
        await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )
        await application_service.submit_application(session, blob_store, seeker, other_job["id"], [], resume)

        listed = await application_service.list_applications_for_applicant(session, seeker)

        assert [a["job"]["title"] for a in listed] == ["Data Engineer", "Backend Engineer"]
        assert listed[0]["job"]["organization_name"] == "Acme Corp"
        assert listed[0]["job"]["employer_name"] == "Rina Recruiter"

    async def test_applicant_listing_is_private(self, session, blob_store, seeker, other_seeker, job, resume):
        await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )
        assert await application_service.list_applications_for_applicant(session, other_seeker) == []

    async def test_recruiter_has_no_applicant_listing(self, session, recruiter):
        with pytest.raises(Forbidden):
            await application_service.list_applications_for_applicant(session, recruiter)


class TestGetApplication:
    async def test_visible_to_applicant_and_employer(self, session, blob_store, recruiter, seeker, job, resume):
        created = await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )

        for actor in (seeker, recruiter):
            fetched = await application_service.get_application(session, actor, created["id"])
            assert fetched["id"] == created["id"]

    async def test_hidden_from_everyone_else(
        self, session, blob_store, other_recruiter, seeker, other_seeker, job, resume
    ):
        created = await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )

        for actor in (other_seeker, other_recruiter):
            with pytest.raises(NotFound):
                await application_service.get_application(session, actor, created["id"])


class TestUpdateApplicationStatus:
    """Test the review workflow."""

    @pytest.fixture
    async def application(self, session, blob_store, seeker, job, resume):
        return await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )

    @pytest.mark.parametrize("path", [
        ["reviewed"],
        ["accepted"],
        ["rejected"],
        ["reviewed", "accepted"],
        ["reviewed", "rejected"],
    ])
    async def test_legal_paths(self, session, recruiter, application, path):
        for status in path:
            updated = await application_service.update_application_status(
                session, recruiter, application["id"], status
            )
            assert updated["status"] == status

    @pytest.mark.parametrize("path,illegal", [
        (["accepted"], "rejected"),
        (["accepted"], "reviewed"),
        (["rejected"], "accepted"),
        (["rejected"], "pending"),
        (["reviewed"], "pending"),
        ([], "pending"),
    ])
    async def test_illegal_transitions(self, session, recruiter, application, path, illegal):
        for status in path:
            await application_service.update_application_status(session, recruiter, application["id"], status)

        with pytest.raises(InvalidTransition):
            await application_service.update_application_status(session, recruiter, application["id"], illegal)

    async def test_terminal_status_is_stable(self, session, recruiter, application):
        await application_service.update_application_status(session, recruiter, application["id"], "accepted")
        with pytest.raises(InvalidTransition):
            await application_service.update_application_status(session, recruiter, application["id"], "accepted")

        fetched = await application_service.get_application(session, recruiter, application["id"])
        assert fetched["status"] == "accepted"

    async def test_unknown_status_is_validation_error(self, session, recruiter, application):
        with pytest.raises(ValidationError):
            await application_service.update_application_status(session, recruiter, application["id"], "hired")

    async def test_notes_are_saved(self, session, recruiter, application):
        updated = await application_service.update_application_status(
            session, recruiter, application["id"], "rejected", notes="  Position filled  "
        )
        assert updated["notes"] == "Position filled"

    async def test_other_recruiter_gets_not_found(self, session, other_recruiter, application):
        with pytest.raises(NotFound):
            await application_service.update_application_status(
                session, other_recruiter, application["id"], "accepted"
            )

    async def test_applicant_cannot_review_own_application(self, session, seeker, application):
        with pytest.raises(NotFound):
            await application_service.update_application_status(session, seeker, application["id"], "accepted")

    async def test_lost_race_is_invalid_transition(self, session, recruiter, application, monkeypatch):
        # Another reviewer accepted it after this request read it as pending
        await application_service.update_application_status(session, recruiter, application["id"], "accepted")

        async def stale_load(db, application_id):
            return SimpleNamespace(
                id=application_id, employer_id=recruiter.id, status=ApplicationStatus.PENDING
            )

        monkeypatch.setattr(application_service, "_load_application", stale_load)

        with pytest.raises(InvalidTransition):
            await application_service.update_application_status(
                session, recruiter, application["id"], "rejected"
            )

    def test_transition_table(self):
        assert can_transition(ApplicationStatus.PENDING, ApplicationStatus.REVIEWED)
        assert can_transition(ApplicationStatus.REVIEWED, ApplicationStatus.ACCEPTED)
        assert not can_transition(ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED)
        assert not can_transition(ApplicationStatus.REVIEWED, ApplicationStatus.PENDING)
        assert not can_transition(ApplicationStatus.PENDING, ApplicationStatus.PENDING)


class TestNotifyStatusChange:
    @pytest.fixture
    async def application(self, session, blob_store, seeker, job, resume):
        return await application_service.submit_application(
            session, blob_store, seeker, job["id"], answers_for(job), resume
        )

    async def test_accepted_sends_email_only_without_verified_phone(
        self, session, sender, recruiter, application
    ):
        await application_service.update_application_status(session, recruiter, application["id"], "accepted")

        channels = await application_service.notify_status_change(session, sender, application["id"])

        assert channels == {"email": True, "whatsapp": False}
        sender.send_email.assert_awaited_once()
        address, subject, body = sender.send_email.await_args.args
        assert subject == "Application update: Backend Engineer"
        assert "has been accepted" in body
        sender.send_whatsapp_message.assert_not_awaited()

    async def test_verified_phone_also_gets_whatsapp(
        self, session, sender, recruiter, make_user, make_job, blob_store, resume
    ):
        user = await make_user(UserRole.SEEKER, phone_verified=True, verified_phone="628123456789")

        job = await make_job(recruiter)
        created = await application_service.submit_application(
            session, blob_store, Actor.from_user(user), job["id"], [], resume
        )
        await application_service.update_application_status(
            session, recruiter, created["id"], "rejected", notes="Not a fit"
        )

        channels = await application_service.notify_status_change(session, sender, created["id"])

        assert channels == {"email": True, "whatsapp": True}
        phone, text = sender.send_whatsapp_message.await_args.args
        assert phone == "628123456789"
        assert "rejected" in text and "Not a fit" in text

    async def test_pending_sends_nothing(self, session, sender, application):
        channels = await application_service.notify_status_change(session, sender, application["id"])
        assert channels == {"email": False, "whatsapp": False}
        sender.send_email.assert_not_awaited()

    async def test_sender_failure_is_upstream_error(self, session, sender, recruiter, application):
        await application_service.update_application_status(session, recruiter, application["id"], "accepted")
        sender.send_email.side_effect = OSError("smtp down")

        with pytest.raises(UpstreamError):
            await application_service.notify_status_change(session, sender, application["id"])

        fetched = await application_service.get_application(session, recruiter, application["id"])
        assert fetched["status"] == "accepted"

    async def test_missing_application(self, session, sender):
        with pytest.raises(NotFound):
            await application_service.notify_status_change(session, sender, 12345)

    @pytest.mark.parametrize("status,expected", [
        ("accepted", True),
        ("rejected", True),
        ("reviewed", False),
        ("pending", False),
    ])
    def test_should_notify(self, status, expected):
        assert application_service.should_notify(status) is expected
