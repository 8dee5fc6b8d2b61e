import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from marketplace.errors import DeliveryError, ValidationError
from marketplace.models_sqlalchemy.models import OtpCode, UserRole
from marketplace.services.email_service import HttpEmailService
from marketplace.services.otp_service import (
    INCORRECT_CODE_MESSAGE,
    OtpService,
    generate_otp,
    normalize_email,
)

from conftest import RecordingEmailService, make_user


def test_generate_otp_is_six_digits():
    for _ in range(20):
        code = generate_otp()
        assert len(code) == 6 and code.isdigit()


def test_normalize_email():
    assert normalize_email("  Someone@Example.COM ") == "someone@example.com"
    with pytest.raises(ValidationError):
        normalize_email("not-an-email")


def test_request_code_stores_and_sends(db):
    mailer = RecordingEmailService()
    otp = asyncio.run(OtpService(db, mailer).request_code("New@Example.com"))

    assert otp.email == "new@example.com"
    assert mailer.sent == [("new@example.com", otp.code)]
    assert db.query(OtpCode).count() == 1


def test_request_code_sweeps_expired_codes(db):
    service = OtpService(db, RecordingEmailService())
    old = datetime.utcnow() - timedelta(hours=1)
    asyncio.run(service.request_code("a@example.com", now=old))
    asyncio.run(service.request_code("b@example.com"))

    emails = [row.email for row in db.query(OtpCode).all()]
    assert emails == ["b@example.com"]


def test_delivery_failure_surfaces(db):
    mailer = RecordingEmailService()
    mailer.send_otp = AsyncMock(side_effect=DeliveryError())

    with pytest.raises(DeliveryError):
        asyncio.run(OtpService(db, mailer).request_code("a@example.com"))


def test_code_is_single_use(db):
    make_user(db, "buyer@example.com")
    service = OtpService(db, RecordingEmailService())
    otp = asyncio.run(service.request_code("buyer@example.com"))

    first = service.verify_code("buyer@example.com", otp.code)
    assert first.loginable
    assert first.user.email == "buyer@example.com"

    second = service.verify_code("buyer@example.com", otp.code)
    assert not second.found
    assert second.message == INCORRECT_CODE_MESSAGE


def test_expired_code_is_rejected(db):
    service = OtpService(db, RecordingEmailService(), ttl_minutes=5)
    issued = datetime.utcnow() - timedelta(minutes=6)
    otp = asyncio.run(service.request_code("late@example.com", now=issued))

    result = service.verify_code("late@example.com", otp.code)
    assert not result.found
    assert result.message == INCORRECT_CODE_MESSAGE


def test_wrong_code_and_wrong_email(db):
    service = OtpService(db, RecordingEmailService())
    otp = asyncio.run(service.request_code("a@example.com"))
    wrong = "000000" if otp.code != "000000" else "111111"

    assert not service.verify_code("a@example.com", wrong).found
    assert not service.verify_code("b@example.com", otp.code).found
    assert not service.verify_code("a@example.com", "12ab56").found
    # The right code still works afterwards.
    assert service.verify_code("a@example.com", otp.code).found


def test_unknown_email_requires_registration(db):
    service = OtpService(db, RecordingEmailService())
    otp = asyncio.run(service.request_code("fresh@example.com"))

    result = service.verify_code("FRESH@example.com", otp.code)
    assert result.requires_registration
    assert result.email == "fresh@example.com"
    assert result.user is None


def test_seller_login_via_code(db):
    make_user(db, "seller@example.com", role=UserRole.seller)
    service = OtpService(db, RecordingEmailService())
    otp = asyncio.run(service.request_code("seller@example.com"))
    assert service.verify_code("seller@example.com", otp.code).user.role == UserRole.seller


def test_http_email_service_posts_message():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = request.content.decode()
        return httpx.Response(202, json={"id": "msg-1"})

    service = HttpEmailService(
        "https://mail.example.com/send",
        api_key="key-123",
        sender="shop@example.com",
        transport=httpx.MockTransport(handler),
    )
    asyncio.run(service.send_otp("to@example.com", "123456"))

    assert seen["auth"] == "Bearer key-123"
    assert "123456" in seen["body"]
    assert "to@example.com" in seen["body"]


def test_http_email_service_maps_rejection_to_delivery_error():
    service = HttpEmailService(
        "https://mail.example.com/send",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
    )
    with pytest.raises(DeliveryError):
        asyncio.run(service.send_otp("to@example.com", "123456"))


def test_http_email_service_maps_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    service = HttpEmailService("https://mail.example.com/send", transport=httpx.MockTransport(handler))
    with pytest.raises(DeliveryError) as exc:
        asyncio.run(service.send_otp("to@example.com", "123456"))
    assert exc.value.message == "Email server connection failed"
