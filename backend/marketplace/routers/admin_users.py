from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from marketplace.models.common import MessageResponse
from marketplace.models.user import ImpersonationResponse, RoleUpdateRequest, UserResponse
from marketplace.models_sqlalchemy import get_db
from marketplace.services import session_state
from marketplace.services.auth import (
    RequestContext,
    admin_required,
    get_current_context,
    super_admin_required,
    write_session,
)
from marketplace.services.user_service import UserService
from marketplace.utils.logger import audit_logger

router = APIRouter(prefix="/api/admin", tags=["admin-users"])


@router.get("/users", response_model=List[UserResponse])
async def list_users(_: RequestContext = Depends(admin_required), db: Session = Depends(get_db)):
    return UserService(db).list_users()


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    payload: RoleUpdateRequest,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_role(ctx.actor, user_id, payload.role)
    audit_logger.log_event(
        "role_change",
        f"Role of {user.email} set to {payload.role.value}",
        actor_id=ctx.user.id,
        target_id=user.id,
    )
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    UserService(db).delete_user(ctx.actor, user_id)
    audit_logger.log_event("user_delete", f"User {user_id} deleted", actor_id=ctx.user.id, target_id=user_id)
    return MessageResponse(message="User deleted successfully")


@router.post("/impersonate/{user_id}", response_model=ImpersonationResponse)
async def start_impersonation(
    user_id: str,
    response: Response,
    ctx: RequestContext = Depends(get_current_context),
    db: Session = Depends(get_db),
):
    target = UserService(db).get_user_by_id(user_id)
    new_state = session_state.start_impersonation(ctx.state, ctx.user, target)
    token = write_session(response, new_state)
    audit_logger.log_event(
        "impersonation_start",
        f"{ctx.user.email} started impersonating {target.email}",
        actor_id=ctx.user.id,
        target_id=target.id,
    )
    return ImpersonationResponse(
        message="Impersonation started successfully",
        target_user=UserResponse.model_validate(target),
        token=token,
    )


@router.post("/exit-impersonation", response_model=ImpersonationResponse)
async def exit_impersonation(response: Response, ctx: RequestContext = Depends(get_current_context)):
    new_state = session_state.exit_impersonation(ctx.state)
    token = write_session(response, new_state)
    audit_logger.log_event(
        "impersonation_end",
        f"{ctx.original_user.email} stopped impersonating {ctx.user.email}",
        actor_id=ctx.original_user.id,
        target_id=ctx.user.id,
    )
    return ImpersonationResponse(message="Impersonation ended successfully", token=token)


@router.get("/audit-log")
async def get_audit_log(
    limit: Optional[int] = Query(100, ge=1, le=1000),
    _: RequestContext = Depends(super_admin_required),
):
    return {"logs": audit_logger.get_logs(limit)}
