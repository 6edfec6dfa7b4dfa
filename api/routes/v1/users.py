"""
Profile endpoints for the current user.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_blob_store, read_upload, require_permission
from api.schemas.users import ProfileUpdate, UserResponse
from api.services import users as user_service
from core.middleware.authentication import Actor
from core.middleware.authorization import Permission
from core.storage.base import BlobStore
from database.engine import get_db

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse, summary="Get Profile")
async def get_profile(
    actor: Actor = Depends(require_permission(Permission.PROFILE_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_profile(db, actor)


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update Profile",
    description="Partial update of profile fields. Role, email and verification state are not editable.",
)
async def update_profile(
    body: ProfileUpdate,
    actor: Actor = Depends(require_permission(Permission.PROFILE_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_profile(db, actor, body.model_dump(exclude_unset=True))


@router.post(
    "/me/resume",
    response_model=UserResponse,
    summary="Upload Profile Resume",
    description="Store or replace the seeker's PDF résumé.",
)
async def upload_resume(
    resume: UploadFile = File(...),
    actor: Actor = Depends(require_permission(Permission.RESUME_MANAGE)),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    return await user_service.upload_profile_resume(
        db, blob_store, actor, await read_upload(resume)
    )


@router.delete("/me/resume", response_model=UserResponse, summary="Delete Profile Resume")
async def delete_resume(
    actor: Actor = Depends(require_permission(Permission.RESUME_MANAGE)),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    return await user_service.delete_profile_resume(db, blob_store, actor)
