import os
import uuid
from datetime import datetime
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("EMAIL_PROVIDER", "console")

import pytest
from fastapi.testclient import TestClient

from marketplace.main import app
from marketplace.models_sqlalchemy import Base, SessionLocal, engine, get_db
from marketplace.models_sqlalchemy.models import Category, Product, User, UserRole, Vendor
from marketplace.services.auth import create_session_token
from marketplace.services.email_service import EmailService, get_email_service
from marketplace.services.session_state import Authenticated
from marketplace.services.tenancy import Actor
from marketplace.utils.logger import audit_logger


class RecordingEmailService(EmailService):
    """Keeps every code it is asked to send."""

    def __init__(self):
        self.sent = []

    async def send_otp(self, email, code):
        self.sent.append((email, code))

    def last_code(self, email=None):
        for sent_to, code in reversed(self.sent):
            if email is None or sent_to == email:
                return code
        return None


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        audit_logger.clear_logs()


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def client(db, email_service):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, email, role=UserRole.buyer, is_deletable=True, is_active=True):
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        role=role,
        is_email_verified=True,
        is_deletable=is_deletable,
        is_active=is_active,
        created_at=datetime.utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_vendor(db, owner, name="Acme", domain=None):
    vendor = Vendor(
        id=str(uuid.uuid4()),
        owner_id=owner.id,
        name=name,
        domain=domain,
        created_at=datetime.utcnow(),
    )
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return vendor


def make_product(db, vendor, name="Widget", price="10.50", stock=10, category=None):
    product = Product(
        id=str(uuid.uuid4()),
        vendor_id=vendor.id,
        category_id=category.id if category else None,
        name=name,
        price=Decimal(price),
        stock=stock,
        created_at=datetime.utcnow(),
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def make_category(db, name, vendor=None):
    category = Category(
        id=str(uuid.uuid4()),
        name=name,
        vendor_id=vendor.id if vendor else None,
        is_global=vendor is None,
        created_at=datetime.utcnow(),
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def actor_for(user, vendor=None):
    return Actor(id=user.id, role=user.role, vendor_id=vendor.id if vendor else None)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_session_token(Authenticated(user_id=user.id))}"}


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
