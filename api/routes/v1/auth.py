"""
api/routes/v1/auth.py -- Login, token refresh, logout, and password recovery.

Routes:
  POST /api/v1/auth/admin/login       -- admin email/password login
  POST /api/v1/auth/dealer/login      -- dealer email/password login (+ requiresPasswordChange)
  POST /api/v1/auth/refresh           -- refresh token -> new access token
  POST /api/v1/auth/forgot-password   -- always the same answer; work happens in the background
  POST /api/v1/auth/logout            -- audit only; tokens are stateless (requires auth)
  GET  /api/v1/auth/me                -- current account (requires auth)

Security:
  Login and forgot-password carry LOGIN_RATE_LIMIT on top of the default limit.
  authenticate_user() (via AccountService.login) equalizes timing -- never
  inline get_by_email() + verify_password().
  Cache-Control: no-store on every response that carries a token.
  forgot-password answers before looking the email up, so the response is
  identical for registered and unknown addresses.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response

from api.limiter import limiter
from api.models import (
    Envelope,
    ForgotPasswordRequest,
    LoginData,
    LoginRequest,
    RefreshRequest,
    TokenData,
    UserData,
    UserResponse,
)
from auth.dependencies import get_identity
from auth.models import ROLE_ADMIN, ROLE_DEALER, Identity
from core.config import get_settings
from services import Services

_settings = get_settings()

FORGOT_PASSWORD_MESSAGE = "If a user with that email exists, a password reset link has been sent."

router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/admin/login", response_model=Envelope[LoginData])
def admin_login(request: Request, response: Response, body: LoginRequest) -> Envelope[LoginData]:
    services: Services = request.app.state.services
    result = services.accounts.login(body.email, body.password, ROLE_ADMIN)
    response.headers["Cache-Control"] = "no-store"
    return Envelope[LoginData](
        data=LoginData(
            user=UserResponse.model_validate(result.user),
            token=result.access_token,
            refresh_token=result.refresh_token,
        )
    )


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/dealer/login", response_model=Envelope[LoginData])
def dealer_login(request: Request, response: Response, body: LoginRequest) -> Envelope[LoginData]:
    """Dealer login. requiresPasswordChange is true while the account still has a temporary password."""
    services: Services = request.app.state.services
    result = services.accounts.login(body.email, body.password, ROLE_DEALER)
    response.headers["Cache-Control"] = "no-store"
    return Envelope[LoginData](
        data=LoginData(
            user=UserResponse.model_validate(result.user),
            token=result.access_token,
            refresh_token=result.refresh_token,
            requires_password_change=result.user.temp_pass,
        )
    )


@router.post("/auth/refresh", response_model=Envelope[TokenData])
def refresh(request: Request, response: Response, body: RefreshRequest) -> Envelope[TokenData]:
    services: Services = request.app.state.services
    token = services.accounts.refresh(body.refresh_token)
    response.headers["Cache-Control"] = "no-store"
    return Envelope[TokenData](data=TokenData(token=token))


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/forgot-password", response_model=Envelope[None])
def forgot_password(request: Request, body: ForgotPasswordRequest, background_tasks: BackgroundTasks) -> Envelope[None]:
    """Queue a password reset for this email and answer immediately.

    The lookup, temp-password write, and audit entry run after the response
    is sent, so neither timing nor status reveals whether the account exists.
    """
    services: Services = request.app.state.services
    background_tasks.add_task(services.accounts.request_password_reset, body.email)
    return Envelope[None](message=FORGOT_PASSWORD_MESSAGE)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=Envelope[None])
def logout(request: Request, identity: Identity = Depends(get_identity)) -> Envelope[None]:
    services: Services = request.app.state.services
    services.accounts.logout(identity)
    return Envelope[None](message="Logged out successfully")


@router.get("/auth/me", response_model=Envelope[UserData])
def me(request: Request, identity: Identity = Depends(get_identity)) -> Envelope[UserData]:
    services: Services = request.app.state.services
    user = services.accounts.get_profile(identity)
    return Envelope[UserData](data=UserData(user=UserResponse.model_validate(user)))
