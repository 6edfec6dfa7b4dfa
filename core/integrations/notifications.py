"""Notification sender: verification codes, emails and WhatsApp messages."""

import asyncio
import logging
from typing import Optional, Protocol

from core.config import settings
from core.exceptions import UpstreamError
from core.integrations.email import EmailService
from core.integrations.whatsapp import WhatsAppRelayClient

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    async def send_code(self, phone_number: str, code: str) -> None:
        ...

    async def send_email(self, address: str, subject: str, body: str, html: bool = False) -> None:
        ...

    async def send_whatsapp_message(self, phone_number: str, text: str) -> None:
        ...


def format_code_message(code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return (
        f"Your {settings.app_name} verification code is {code}. "
        f"It expires in {minutes} minutes. Do not share this code with anyone."
    )


class RelayNotificationSender:
    """Sends WhatsApp traffic through the relay and email over SMTP."""

    def __init__(
        self,
        relay: Optional[WhatsAppRelayClient] = None,
        email: Optional[EmailService] = None,
    ):
        self.relay = relay or WhatsAppRelayClient()
        self.email = email or EmailService()

    async def send_code(self, phone_number: str, code: str) -> None:
        await self.relay.send_message(
            phone_number, format_code_message(code, settings.phone_code_ttl_seconds)
        )

    async def send_whatsapp_message(self, phone_number: str, text: str) -> None:
        await self.relay.send_message(phone_number, text)

    async def send_email(self, address: str, subject: str, body: str, html: bool = False) -> None:
        sent = await asyncio.to_thread(self.email.send_email, address, subject, body, html)
        if not sent:
            raise UpstreamError("Email could not be delivered")
