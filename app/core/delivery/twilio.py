"""Twilio SMS delivery adapter."""

import logging

import httpx

from app.core.automation.types import DeliveryResult
from app.core.logging import mask_phone

logger = logging.getLogger(__name__)


class TwilioSmsSender:
    """Send SMS through the Twilio Messages REST endpoint."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the sender.

        Args:
            account_sid: Twilio Account SID
            auth_token: Twilio Auth Token
            from_number: Sending phone number (E.164)
            api_base: Twilio API root
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.endpoint = f"{api_base}/Accounts/{account_sid}/Messages.json"
        self.timeout = timeout
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send_sms(self, to: str, body: str) -> DeliveryResult:
        if not self.is_configured():
            return DeliveryResult(success=False, error="Twilio is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint,
                    data={"To": to, "From": self.from_number, "Body": body},
                    auth=(self.account_sid, self.auth_token),
                )
        except httpx.HTTPError as e:
            logger.error(f"Twilio request failed for {mask_phone(to)}: {e}")
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code not in (200, 201):
            error = payload.get("message") or f"Twilio returned {response.status_code}"
            logger.warning(f"Twilio rejected SMS to {mask_phone(to)}: {error}")
            return DeliveryResult(success=False, error=error)

        return DeliveryResult(success=True, message_id=payload.get("sid"))
