from marketplace.models_sqlalchemy.models import User, UserRole

from conftest import auth_headers, bearer, make_user


def request_code(client, email_service, email):
    resp = client.post("/api/auth/send-otp", json={"email": email})
    assert resp.status_code == 200
    return email_service.last_code(email.lower())


def test_existing_user_logs_in_with_code(client, db, email_service):
    make_user(db, "buyer@example.com")
    code = request_code(client, email_service, "buyer@example.com")

    resp = client.post("/api/auth/verify-otp", json={"email": "buyer@example.com", "code": code})
    assert resp.status_code == 200
    body = resp.json()
    assert body["requiresRegistration"] is False
    assert body["user"]["email"] == "buyer@example.com"
    assert body["token"]

    me = client.get("/api/auth/user", headers=bearer(body["token"]))
    assert me.status_code == 200
    assert me.json()["email"] == "buyer@example.com"
    assert me.json()["isImpersonating"] is False
    assert me.json()["lastLoginAt"] is not None


def test_code_cannot_be_reused(client, db, email_service):
    make_user(db, "buyer@example.com")
    code = request_code(client, email_service, "buyer@example.com")

    first = client.post("/api/auth/verify-otp", json={"email": "buyer@example.com", "code": code})
    assert first.status_code == 200
    second = client.post("/api/auth/verify-otp", json={"email": "buyer@example.com", "code": code})
    assert second.status_code == 400
    assert second.json()["message"].startswith("Incorrect OTP code")


def test_wrong_code_is_generic_failure(client, email_service):
    code = request_code(client, email_service, "someone@example.com")
    wrong = "000000" if code != "000000" else "999999"

    resp = client.post("/api/auth/verify-otp", json={"email": "someone@example.com", "code": wrong})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Incorrect OTP code. Please check the code and try again."


def test_malformed_codes_get_the_same_failure(client, email_service):
    request_code(client, email_service, "someone@example.com")

    for bad in ("12345", "12a456", "1234567", ""):
        resp = client.post("/api/auth/verify-otp", json={"email": "someone@example.com", "code": bad})
        assert resp.status_code == 400
        assert resp.json() == {
            "message": "Incorrect OTP code. Please check the code and try again.",
            "hint": "Enter the 6-digit code exactly as it appears in your email",
        }


def test_new_email_registers_after_verification(client, db, email_service):
    code = request_code(client, email_service, "Fresh@Example.com")

    verified = client.post("/api/auth/verify-otp", json={"email": "fresh@example.com", "code": code})
    assert verified.status_code == 200
    assert verified.json()["requiresRegistration"] is True
    assert verified.json()["email"] == "fresh@example.com"

    resp = client.post(
        "/api/auth/register",
        json={"email": "fresh@example.com", "firstName": "Fran", "lastName": "Fresh"},
        headers=bearer(verified.json()["token"]),
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["role"] == "buyer"
    assert user["firstName"] == "Fran"
    assert user["isEmailVerified"] is True

    me = client.get("/api/auth/user", headers=bearer(resp.json()["token"]))
    assert me.json()["email"] == "fresh@example.com"


def test_register_requires_verified_email(client, db, email_service):
    resp = client.post("/api/auth/register", json={"email": "sneaky@example.com"})
    assert resp.status_code == 401
    assert db.query(User).filter(User.email == "sneaky@example.com").first() is None

    code = request_code(client, email_service, "real@example.com")
    verified = client.post("/api/auth/verify-otp", json={"email": "real@example.com", "code": code})
    resp = client.post(
        "/api/auth/register",
        json={"email": "other@example.com"},
        headers=bearer(verified.json()["token"]),
    )
    assert resp.status_code == 401


def test_invalid_email_is_rejected(client):
    resp = client.post("/api/auth/send-otp", json={"email": "nope"})
    assert resp.status_code == 400
    assert "message" in resp.json()


def test_unknown_fields_are_rejected(client):
    resp = client.post("/api/auth/send-otp", json={"email": "a@example.com", "role": "super_admin"})
    assert resp.status_code == 400


def test_user_endpoint_requires_session(client, db):
    assert client.get("/api/auth/user").status_code == 401
    assert client.get("/api/auth/user", headers=bearer("garbage")).status_code == 401

    inactive = make_user(db, "gone@example.com", is_active=False)
    assert client.get("/api/auth/user", headers=auth_headers(inactive)).status_code == 403


def test_logout_clears_cookie(client, db):
    buyer = make_user(db, "buyer@example.com", role=UserRole.buyer)
    resp = client.post("/api/auth/logout", headers=auth_headers(buyer))
    assert resp.status_code == 200
    assert "marketplace_session" in resp.headers.get("set-cookie", "")


def test_health_endpoints(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/healthz/db").json()["database"] == "connected"
    assert client.get("/healthz").headers["X-Request-ID"]
