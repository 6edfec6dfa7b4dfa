"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment is prepared first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("STORAGE_BACKEND", "s3")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_S3_BUCKET", "test-bucket")
os.environ.setdefault("WHATSAPP_RELAY_URL", "http://relay.test")
os.environ.setdefault("WHATSAPP_RELAY_API_KEY", "relay-test-key")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("JSON_LOGS", "false")

import itertools
import uuid
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.services import jobs as job_service
from core.middleware.authentication import Actor
from core.security import create_access_token, hash_password
from core.storage.base import StoredBlob, UploadedFile
from database.engine import Base
from database.models.users import User, UserRole

# Registers every table on Base.metadata
import database.models.users  # noqa: F401
import database.models.jobs  # noqa: F401
import database.models.applications  # noqa: F401


MINIMAL_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
    b"2 0 obj<</Type/Pages/Kids[3 0 R]/Count 1>>endobj\n"
    b"3 0 obj<</Type/Page/Parent 2 0 R/MediaBox[0 0 612 792]>>endobj\n"
    b"trailer<</Size 4/Root 1 0 R>>\n%%EOF"
)

TEST_PASSWORD = "correct-horse-battery"


# ==================== Database ==================== #

@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as db:
        yield db


# ==================== Users ==================== #

async def create_user(
    session: AsyncSession,
    role: UserRole = UserRole.SEEKER,
    name: str = None,
    email: str = None,
    organization_name: str = None,
    **fields,
) -> User:
    """Insert a user row directly, bypassing registration rules."""
    n = uuid.uuid4().hex[:8]
    user = User(
        name=name or f"{role.value.title()} {n}",
        email=email or f"{role.value}{n}@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        organization_name=organization_name
        or (f"Org {n}" if role == UserRole.RECRUITER else None),
        **fields,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def recruiter(session) -> Actor:
    user = await create_user(session, UserRole.RECRUITER, name="Rina Recruiter", organization_name="Acme Corp")
    return Actor.from_user(user)


@pytest.fixture
async def other_recruiter(session) -> Actor:
    user = await create_user(session, UserRole.RECRUITER, name="Oscar Other", organization_name="Globex")
    return Actor.from_user(user)


@pytest.fixture
async def seeker(session) -> Actor:
    user = await create_user(session, UserRole.SEEKER, name="Sari Seeker")
    return Actor.from_user(user)


@pytest.fixture
async def other_seeker(session) -> Actor:
    user = await create_user(session, UserRole.SEEKER, name="Tono Tester")
    return Actor.from_user(user)


# ==================== Jobs ==================== #

async def create_job(session: AsyncSession, actor: Actor, **overrides) -> dict:
    """Create a job through the service with sensible defaults."""
    data = {
        "title": "Backend Engineer",
        "description": "Build and run our APIs",
        "location": "Jakarta",
        "salary": "IDR 20-30M",
    }
    data.update(overrides)
    return await job_service.create_job(session, actor, **data)


@pytest.fixture
async def job(session, recruiter) -> dict:
    return await create_job(
        session,
        recruiter,
        custom_questions=[
            {"question": "Years of experience?", "type": "text", "required": True},
            {"question": "Preferred stack", "type": "select", "options": ["Python", "Go"]},
            {"question": "Tools you use", "type": "checkbox", "options": ["Git", "Docker", "K8s"]},
        ],
    )


# ==================== Collaborators ==================== #

@pytest.fixture
def resume() -> UploadedFile:
    return UploadedFile(filename="cv.pdf", content_type="application/pdf", data=MINIMAL_PDF)


@pytest.fixture
def blob_store():
    """Blob store fake: every upload gets a unique key."""
    counter = itertools.count(1)

    async def upload(data, filename, content_type=None, metadata=None):
        n = next(counter)
        return StoredBlob(id=f"resumes/{n}/{filename}", url=f"https://files.test/resumes/{n}/{filename}")

    store = AsyncMock()
    store.upload = AsyncMock(side_effect=upload)
    store.delete = AsyncMock(return_value=True)
    store.url_for = AsyncMock(side_effect=lambda blob_id: f"https://files.test/{blob_id}")
    return store


@pytest.fixture
def sender():
    """Notification sender fake recording every call."""
    fake = AsyncMock()
    fake.send_code = AsyncMock(return_value=None)
    fake.send_email = AsyncMock(return_value=None)
    fake.send_whatsapp_message = AsyncMock(return_value=None)
    return fake


@pytest.fixture
def make_user(session):
    async def factory(role: UserRole = UserRole.SEEKER, **fields) -> User:
        return await create_user(session, role, **fields)
    return factory


@pytest.fixture
def make_job(session):
    async def factory(actor: Actor, **overrides) -> dict:
        return await create_job(session, actor, **overrides)
    return factory


@pytest.fixture
def pdf_bytes() -> bytes:
    return MINIMAL_PDF


# ==================== HTTP ==================== #

@pytest.fixture
async def client(session_factory, blob_store, sender):
    """HTTP client against the app, wired to the test database and fakes."""
    from api.dependencies import get_blob_store, get_notification_sender
    from api.main import app
    from database.engine import get_db

    async def override_get_db():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notification_sender] = lambda: sender

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def headers(actor: Actor) -> dict:
        token = create_access_token(actor.id, actor.role.value)
        return {"Authorization": f"Bearer {token}"}
    return headers
