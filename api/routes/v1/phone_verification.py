"""
Phone verification endpoints (WhatsApp one-time codes).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_notification_sender, require_permission
from api.schemas.auth import (
    PhoneCodeConfirm,
    PhoneCodeRequest,
    PhoneCodeSent,
    PhoneVerificationResult,
    PhoneVerificationStatus,
)
from api.services import phone_verification as phone_service
from core.integrations.notifications import NotificationSender
from core.middleware.authentication import Actor
from core.middleware.authorization import Permission
from database.engine import get_db

router = APIRouter(prefix="/phone-verification", tags=["phone verification"])


@router.post(
    "/request",
    response_model=PhoneCodeSent,
    summary="Send Verification Code",
    description="Send a six digit code to the number over WhatsApp. Replaces any pending code.",
)
async def request_code(
    body: PhoneCodeRequest,
    actor: Actor = Depends(require_permission(Permission.PHONE_VERIFY)),
    db: AsyncSession = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    return await phone_service.request_code(db, sender, actor, body.phone_number)


@router.post("/confirm", response_model=PhoneVerificationResult, summary="Confirm Code")
async def confirm_code(
    body: PhoneCodeConfirm,
    actor: Actor = Depends(require_permission(Permission.PHONE_VERIFY)),
    db: AsyncSession = Depends(get_db),
):
    return await phone_service.confirm_code(db, actor, body.code)


@router.get("/status", response_model=PhoneVerificationStatus, summary="Verification Status")
async def get_status(
    actor: Actor = Depends(require_permission(Permission.PHONE_VERIFY)),
    db: AsyncSession = Depends(get_db),
):
    return await phone_service.get_status(db, actor)
