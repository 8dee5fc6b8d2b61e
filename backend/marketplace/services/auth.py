from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request, Response
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import AuthenticationError, PermissionDenied
from marketplace.models_sqlalchemy import get_db
from marketplace.models_sqlalchemy.models import User, Vendor, UserRole
from marketplace.services.session_state import (
    Anonymous,
    Authenticated,
    Impersonating,
    SessionState,
    effective_user_id,
    original_user_id,
)
from marketplace.services.tenancy import Action, Actor, authorize
from marketplace.utils.logger import logger

_TOKEN_TYPE = "session"


def create_session_token(state: SessionState, expires_delta: Optional[timedelta] = None) -> str:
    """Serialize a session value into a signed token.

    Claims: ``sub`` effective user, ``orig`` original user while
    impersonating, ``verified_email`` for a pending registration.
    """
    to_encode = {"typ": _TOKEN_TYPE}
    if isinstance(state, Impersonating):
        to_encode["sub"] = state.impersonated_user_id
        to_encode["orig"] = state.original_user_id
    elif isinstance(state, Authenticated):
        to_encode["sub"] = state.user_id
    elif state.verified_email:
        to_encode["verified_email"] = state.verified_email

    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.SESSION_TTL_MINUTES))
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.ALGORITHM)


def decode_session_token(token: Optional[str]) -> SessionState:
    """Parse a session token; anything unreadable or expired is Anonymous."""
    if not token:
        return Anonymous()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"Session token rejected: {str(e)}")
        return Anonymous()

    if payload.get("typ") != _TOKEN_TYPE:
        return Anonymous()

    user_id = payload.get("sub")
    orig = payload.get("orig")
    if user_id and orig:
        return Impersonating(original_user_id=orig, impersonated_user_id=user_id)
    if user_id:
        return Authenticated(user_id=user_id)
    return Anonymous(verified_email=payload.get("verified_email"))


def get_session_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.replace("Bearer ", "", 1).strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def write_session(response: Response, state: SessionState) -> str:
    token = create_session_token(state)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_cookie_max_age,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    return token


def clear_session(response: Response) -> None:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)


def resolve_actor(db: Session, user: Optional[User]) -> Optional[Actor]:
    """Build the tenancy actor, attaching the vendor a seller owns."""
    if user is None:
        return None
    vendor_id = None
    if user.role == UserRole.seller:
        vendor = (
            db.query(Vendor)
            .filter(Vendor.owner_id == user.id)
            .order_by(Vendor.created_at.asc())
            .first()
        )
        vendor_id = vendor.id if vendor else None
    return Actor(id=user.id, role=user.role, vendor_id=vendor_id)


@dataclass
class RequestContext:
    state: SessionState
    user: Optional[User] = None
    original_user: Optional[User] = None
    actor: Optional[Actor] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_impersonating(self) -> bool:
        return isinstance(self.state, Impersonating)


async def get_request_context(request: Request, db: Session = Depends(get_db)) -> RequestContext:
    state = decode_session_token(get_session_token(request))
    user_id = effective_user_id(state)
    if user_id is None:
        return RequestContext(state=state)

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.warning(f"Session references unknown user: {user_id}")
        return RequestContext(state=Anonymous())

    original_user = None
    orig_id = original_user_id(state)
    if orig_id is not None:
        original_user = db.query(User).filter(User.id == orig_id).first()
        if original_user is None or not original_user.is_active:
            logger.warning(f"Impersonation session with unknown or inactive original user: {orig_id}")
            return RequestContext(state=Anonymous())

    return RequestContext(
        state=state,
        user=user,
        original_user=original_user,
        actor=resolve_actor(db, user),
    )


async def get_current_context(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not ctx.is_authenticated:
        raise AuthenticationError("Unauthorized")
    if not ctx.user.is_active:
        logger.warning(f"Inactive user attempted access: {ctx.user.email}")
        raise PermissionDenied("Account is inactive")
    return ctx


async def admin_required(ctx: RequestContext = Depends(get_current_context)) -> RequestContext:
    decision = authorize(ctx.actor, Action.admin_access)
    if not decision:
        logger.warning(f"Non-admin user attempted admin action: {ctx.user.email}")
        raise PermissionDenied(decision.reason)
    return ctx


async def super_admin_required(ctx: RequestContext = Depends(get_current_context)) -> RequestContext:
    decision = authorize(ctx.actor, Action.platform_manage)
    if not decision:
        logger.warning(f"Non-super-admin user attempted platform action: {ctx.user.email}")
        raise PermissionDenied("Admin access required")
    return ctx
