from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from marketplace.errors import AuthenticationError
from marketplace.models.common import MessageResponse
from marketplace.models.user import (
    AuthResponse,
    CurrentUserResponse,
    OtpFailureResponse,
    RegisterRequest,
    SendOtpRequest,
    UserResponse,
    VerifyOtpRequest,
)
from marketplace.models_sqlalchemy import get_db
from marketplace.models_sqlalchemy.models import UserRole
from marketplace.services import session_state
from marketplace.services.auth import (
    RequestContext,
    clear_session,
    get_current_context,
    get_request_context,
    write_session,
)
from marketplace.services.email_service import EmailService, get_email_service
from marketplace.services.otp_service import OtpService
from marketplace.services.user_service import UserService
from marketplace.utils.logger import audit_logger, logger

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def build_current_user(ctx: RequestContext) -> CurrentUserResponse:
    data = UserResponse.model_validate(ctx.user).model_dump()
    original = UserResponse.model_validate(ctx.original_user) if ctx.original_user is not None else None
    return CurrentUserResponse(**data, is_impersonating=ctx.is_impersonating, original_user=original)


@router.post("/send-otp", response_model=MessageResponse)
async def send_otp(
    payload: SendOtpRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    await OtpService(db, email_service).request_code(payload.email)
    return MessageResponse(message="OTP sent successfully")


@router.post("/verify-otp", response_model=AuthResponse, responses={400: {"model": OtpFailureResponse}})
async def verify_otp(
    payload: VerifyOtpRequest,
    request: Request,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    rid = getattr(request.state, "rid", "unknown")
    result = OtpService(db, email_service).verify_code(payload.email, payload.code)

    if not result.found:
        # Same answer for wrong, expired and already-used codes.
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": result.message, "hint": result.hint},
        )

    if result.loginable:
        new_state = session_state.login(ctx.state, result.user.id)
        user = UserService(db).record_login(result.user)
        token = write_session(response, new_state)
        audit_logger.log_event("login", f"User {user.email} logged in via OTP rid={rid}", actor_id=user.id)
        return AuthResponse(
            message="Login successful",
            user=UserResponse.model_validate(user),
            requires_registration=False,
            token=token,
        )

    logger.info(f"New user registration required for: {result.email}")
    token = write_session(response, session_state.Anonymous(verified_email=result.email))
    return AuthResponse(message="OTP verified", requires_registration=True, email=result.email, token=token)


@router.post("/register", response_model=AuthResponse)
async def register(
    payload: RegisterRequest,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    users = UserService(db)
    email = payload.email.strip().lower()
    logger.info(f"Registration attempt for email: {email}")

    verified_email = getattr(ctx.state, "verified_email", None)
    if verified_email != email:
        # Only the address proven by OTP in this session may be registered.
        raise AuthenticationError("Verify your email before registering")

    user = users.create_user(
        email=email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        role=UserRole.buyer,
        is_email_verified=True,
    )
    user = users.record_login(user)
    token = write_session(response, session_state.login(ctx.state, user.id))
    audit_logger.log_event("register", f"User {user.email} registered", actor_id=user.id)
    return AuthResponse(
        message="Registration successful",
        user=UserResponse.model_validate(user),
        token=token,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, ctx: RequestContext = Depends(get_request_context)):
    session_state.logout(ctx.state)
    clear_session(response)
    if ctx.user is not None:
        audit_logger.log_event("logout", f"User {ctx.user.email} logged out", actor_id=ctx.user.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/user", response_model=CurrentUserResponse)
async def get_user(ctx: RequestContext = Depends(get_current_context)):
    return build_current_user(ctx)
