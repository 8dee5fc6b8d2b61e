from __future__ import annotations

from typing import Optional

import httpx

from marketplace.config import settings
from marketplace.errors import DeliveryError
from marketplace.utils.logger import logger


class EmailService:
    """Interface for OTP delivery.

    Implementations raise ``DeliveryError`` when the transport rejects the
    message; callers never see transport-specific exceptions.
    """

    async def send_otp(self, email: str, code: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class ConsoleEmailService(EmailService):
    """Development transport: writes the code to the application log."""

    async def send_otp(self, email: str, code: str) -> None:
        logger.info(f"[console-email] OTP for {email}: {code}")


class HttpEmailService(EmailService):
    """POSTs a JSON message to a transactional e-mail API."""

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str] = None,
        sender: str = settings.EMAIL_FROM,
        timeout: float = settings.EMAIL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.transport = transport

    def _build_message(self, email: str, code: str) -> dict:
        return {
            "from": self.sender,
            "to": [email],
            "subject": "Your login code",
            "text": (
                f"Your one-time login code is {code}.\n\n"
                f"It expires in {settings.OTP_TTL_MINUTES} minutes. "
                "If you did not request it, you can ignore this email."
            ),
        }

    async def send_otp(self, email: str, code: str) -> None:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                transport=self.transport,
            ) as client:
                resp = await client.post(self.api_url, json=self._build_message(email, code), headers=headers)
        except httpx.RequestError as exc:
            logger.error("Email API request error: %s", exc, exc_info=True)
            raise DeliveryError("Email server connection failed") from exc

        if resp.status_code >= 400:
            logger.error(
                "Email API rejected message status=%s body=%s",
                resp.status_code,
                resp.text,
            )
            raise DeliveryError()


def build_email_service() -> EmailService:
    provider = (settings.EMAIL_PROVIDER or "console").strip().lower()
    if provider == "http":
        if not settings.EMAIL_API_URL:
            raise RuntimeError("EMAIL_API_URL is required when EMAIL_PROVIDER=http")
        return HttpEmailService(settings.EMAIL_API_URL, settings.EMAIL_API_KEY)
    return ConsoleEmailService()


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = build_email_service()
    return _email_service
