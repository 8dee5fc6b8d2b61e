from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import PersistenceError, ValidationError
from marketplace.models_sqlalchemy.models import OtpCode, User
from marketplace.services.email_service import EmailService
from marketplace.services.user_service import UserService
from marketplace.utils.logger import logger

OTP_LENGTH = 6

INCORRECT_CODE_MESSAGE = "Incorrect OTP code. Please check the code and try again."
INCORRECT_CODE_HINT = "Enter the 6-digit code exactly as it appears in your email"


def generate_otp() -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(OTP_LENGTH))


def normalize_email(email: str) -> str:
    try:
        result = validate_email(email or "", check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Invalid email format")
    return result.normalized.lower()


@dataclass(frozen=True)
class OtpVerification:
    """Outcome of ``verify_code``.

    Exactly one of three shapes: not found (``found`` False), loginable
    (``user`` set) or requires registration (``email`` set, ``user`` None).
    """

    found: bool
    email: Optional[str] = None
    user: Optional[User] = None
    message: str = INCORRECT_CODE_MESSAGE
    hint: Optional[str] = INCORRECT_CODE_HINT

    @property
    def loginable(self) -> bool:
        return self.found and self.user is not None

    @property
    def requires_registration(self) -> bool:
        return self.found and self.user is None


class OtpService:

    def __init__(self, db: Session, email_service: EmailService, ttl_minutes: int = settings.OTP_TTL_MINUTES):
        self.db = db
        self.email_service = email_service
        self.ttl = timedelta(minutes=ttl_minutes)

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every expired code, regardless of e-mail."""
        now = now or datetime.utcnow()
        result = self.db.execute(delete(OtpCode).where(OtpCode.expires_at < now))
        return result.rowcount or 0

    async def request_code(self, email: str, now: Optional[datetime] = None) -> OtpCode:
        email = normalize_email(email)
        now = now or datetime.utcnow()
        logger.info(f"Processing OTP request for email: {email}")

        try:
            swept = self.sweep_expired(now)
            otp = OtpCode(
                id=str(uuid.uuid4()),
                email=email,
                code=generate_otp(),
                expires_at=now + self.ttl,
                used=False,
                created_at=now,
            )
            self.db.add(otp)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Failed to persist OTP for {email}: {type(exc).__name__}: {exc}")
            raise PersistenceError("Failed to send OTP") from exc

        if swept:
            logger.info(f"Swept {swept} expired OTP code(s)")

        await self.email_service.send_otp(email, otp.code)
        logger.info(f"OTP email sent to {email}")
        return otp

    def verify_code(self, email: str, code: str, now: Optional[datetime] = None) -> OtpVerification:
        now = now or datetime.utcnow()
        try:
            email = normalize_email(email)
        except ValidationError:
            return OtpVerification(found=False)
        code = (code or "").strip()
        if len(code) != OTP_LENGTH or not code.isdigit():
            return OtpVerification(found=False)

        otp = (
            self.db.query(OtpCode)
            .filter(
                OtpCode.email == email,
                OtpCode.code == code,
                OtpCode.used.is_(False),
                OtpCode.expires_at > now,
            )
            .order_by(OtpCode.created_at.desc())
            .first()
        )
        if otp is None:
            logger.info(f"OTP verification failed for {email}")
            return OtpVerification(found=False)

        # Conditional update: of two concurrent verifications only one flips the flag.
        result = self.db.execute(
            update(OtpCode)
            .where(OtpCode.id == otp.id, OtpCode.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:
            logger.info(f"OTP for {email} was consumed concurrently")
            return OtpVerification(found=False)

        user = UserService(self.db).get_user_by_email(email)
        if user is not None:
            return OtpVerification(found=True, email=email, user=user, message="Login successful", hint=None)
        return OtpVerification(found=True, email=email, message="OTP verified", hint=None)
