"""FastAPI dependencies for dependency injection."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import Unauthenticated
from core.integrations.notifications import NotificationSender, RelayNotificationSender
from core.middleware.authentication import Actor, extract_token, resolve_actor
from core.middleware.authorization import HasPermission, Permission, authorize
from core.storage.base import BlobStore, UploadedFile
from core.storage.local import LocalBlobStore
from core.storage.s3 import S3BlobStore
from database.engine import get_db


async def get_current_actor(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[Actor]:
    """
    Resolve the bearer token to an actor.
    Returns None for anonymous requests; an invalid token is rejected.
    """
    actor = await resolve_actor(db, extract_token(request))
    request.state.actor = actor
    return actor


async def require_actor(
    actor: Optional[Actor] = Depends(get_current_actor),
) -> Actor:
    """Require an authenticated actor."""
    if actor is None:
        raise Unauthenticated()
    return actor


def require_permission(permission: Permission):
    """Dependency factory: the actor's role must grant ``permission``."""

    async def checker(actor: Optional[Actor] = Depends(get_current_actor)) -> Actor:
        return authorize(actor, HasPermission(permission))

    return checker


@lru_cache
def get_blob_store() -> BlobStore:
    """Résumé store configured by STORAGE_BACKEND."""
    if settings.storage_backend == "local":
        return LocalBlobStore()
    return S3BlobStore()


@lru_cache
def get_notification_sender() -> NotificationSender:
    return RelayNotificationSender()


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Read a multipart upload into memory for the service layer."""
    if upload is None:
        return None
    data = await upload.read()
    return UploadedFile(
        filename=upload.filename or "",
        content_type=upload.content_type or "",
        data=data,
    )
