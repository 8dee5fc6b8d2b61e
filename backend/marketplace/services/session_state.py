"""Session state machine.

A session is one of three immutable values:

    Anonymous -> Authenticated(user_id) -> Impersonating(original_user_id, impersonated_user_id)

Transitions return a new value; nothing here touches the database or the
transport. ``marketplace.services.auth`` serializes the value into the signed
session token and loads the identities it references.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from marketplace.errors import (
    AuthenticationError,
    InvalidStateError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from marketplace.models_sqlalchemy.models import UserRole

IMPERSONATOR_ROLES = {UserRole.admin, UserRole.super_admin}


@dataclass(frozen=True)
class Anonymous:
    # Set after a successful OTP check for an e-mail with no account yet;
    # registration is only accepted for this address.
    verified_email: Optional[str] = None


@dataclass(frozen=True)
class Authenticated:
    user_id: str


@dataclass(frozen=True)
class Impersonating:
    original_user_id: str
    impersonated_user_id: str


SessionState = Union[Anonymous, Authenticated, Impersonating]


def effective_user_id(state: SessionState) -> Optional[str]:
    """Identity every authorization check runs against."""
    if isinstance(state, Impersonating):
        return state.impersonated_user_id
    if isinstance(state, Authenticated):
        return state.user_id
    return None


def original_user_id(state: SessionState) -> Optional[str]:
    if isinstance(state, Impersonating):
        return state.original_user_id
    return None


def is_impersonating(state: SessionState) -> bool:
    return isinstance(state, Impersonating)


def login(state: SessionState, user_id: str) -> Authenticated:
    if isinstance(state, Impersonating):
        raise InvalidStateError("Exit impersonation before logging in as another user")
    return Authenticated(user_id=user_id)


def start_impersonation(state: SessionState, actor, target) -> Impersonating:
    """Begin acting as ``target``.

    ``actor`` is the effective user of ``state``; ``target`` is the loaded
    user record or None when the id did not resolve.
    """
    if isinstance(state, Anonymous):
        raise AuthenticationError()
    if isinstance(state, Impersonating):
        raise InvalidStateError("Already impersonating a user; exit impersonation first")
    if actor is None or actor.role not in IMPERSONATOR_ROLES:
        raise PermissionDenied()
    if target is None:
        raise NotFoundError("Target user not found")
    if target.id == actor.id:
        raise ValidationError("Cannot impersonate yourself")
    if not target.is_active:
        raise PermissionDenied("Cannot impersonate an inactive user")
    if target.role == UserRole.super_admin and actor.role != UserRole.super_admin:
        raise PermissionDenied("Only super admins can impersonate super admins")
    return Impersonating(original_user_id=state.user_id, impersonated_user_id=target.id)


def exit_impersonation(state: SessionState) -> Authenticated:
    if not isinstance(state, Impersonating):
        raise InvalidStateError("No active impersonation session")
    return Authenticated(user_id=state.original_user_id)


def logout(state: SessionState) -> Anonymous:
    return Anonymous()
