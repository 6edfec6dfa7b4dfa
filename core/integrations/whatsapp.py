"""WhatsApp relay integration for sending messages through the relay service."""

from typing import Optional, Dict
import httpx
import logging

from core.config import settings
from core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class WhatsAppRelayClient:
    """Client for the standalone WhatsApp relay service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize relay client.

        Args:
            base_url: Relay base URL
            api_key: Relay API key, sent as X-API-Key
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = (base_url or settings.whatsapp_relay_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.whatsapp_relay_api_key
        self.timeout = timeout or settings.collaborator_timeout_seconds
        self.transport = transport

        if not self.api_key:
            logger.warning("WHATSAPP_RELAY_API_KEY is not set, relay requests will likely fail")

    def _get_headers(self) -> Dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def _post(self, endpoint: str, payload: Dict) -> Dict:
        url = f"{self.base_url}/api/whatsapp/{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, headers=self._get_headers(), json=payload)
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp relay request to {endpoint} failed: {e}")
            raise UpstreamError("Messaging relay is unavailable") from e

        if response.status_code >= 400:
            logger.error(
                f"WhatsApp relay rejected {endpoint}: status={response.status_code}"
            )
            raise UpstreamError("Messaging relay rejected the message")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if isinstance(data, dict) and data.get("success") is False:
            logger.error(f"WhatsApp relay reported failure for {endpoint}: {data.get('error')}")
            raise UpstreamError("Messaging relay could not deliver the message")

        return data if isinstance(data, dict) else {}

    async def send_message(self, phone_number: str, message: str) -> Dict:
        """
        Send a text message.

        Args:
            phone_number: Canonical country-coded digits
            message: Message text

        Returns:
            Relay response body

        Raises:
            UpstreamError: On transport failure or a non-success response
        """
        result = await self._post(
            "send-message", {"phoneNumber": phone_number, "message": message}
        )
        logger.info("WhatsApp message delivered to relay")
        return result
