# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/login            - Get a session token
#   POST /auth/register         - Create account
#   GET  /auth/me               - Current user
#   POST /auth/verify           - Current user (session check for clients)
#   POST /auth/logout           - Client discards its token
#   POST /auth/forgot-password  - Request password reset
#   POST /auth/reset-password   - Reset password with token
#   GET  /auth/google           - Start Google sign-in
#   GET  /auth/google/callback  - Finish Google sign-in, set session cookie
#
#   PUT  /settings/change-password - Change password (authenticated)
#
# Request bodies use camelCase keys (newPassword, confirmPassword ...).
# Every field is optional at the schema level so that missing fields get
# the flow's own message rather than a generic validation error.
#
# Protected endpoints accept the bearer header or the session cookie.
#
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from crewbase.api.dependencies import ServiceContainer, get_container
from crewbase.auth.policies import optional_session, require_session
from crewbase.config import Settings
from crewbase.core.errors import NotFound, Unauthenticated
from crewbase.core.models import UserSummary
from crewbase.integrations.oauth import OAuthError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
settings_router = APIRouter(prefix="/settings", tags=["settings"])


# =============================================================================
# Request Models
# =============================================================================


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class RegisterRequest(CamelModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None


class ForgotPasswordRequest(CamelModel):
    email: str | None = None


class ResetPasswordRequest(CamelModel):
    token: str | None = None
    new_password: str | None = None


class ChangePasswordRequest(CamelModel):
    current_password: str | None = None
    new_password: str | None = None
    confirm_password: str | None = None


# =============================================================================
# Session Cookie
# =============================================================================


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.jwt_access_token_expire_minutes * 60,
        path="/",
    )


def _clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        samesite="lax",
        secure=settings.is_production,
    )


def _login_redirect(settings: Settings, error: str | None = None) -> RedirectResponse:
    url = f"{settings.frontend_url.rstrip('/')}/login"
    if error:
        url += f"?error={error}"
    return RedirectResponse(url, status_code=302)


# =============================================================================
# Public Endpoints
# =============================================================================


@router.post("/login")
async def login(
    data: LoginRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Authenticate and get a token."""
    token, user = await container.auth.login(data.email, data.password)
    return {"success": True, "token": token, "user": user.model_dump()}


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Create a new account."""
    user = await container.auth.register(data.name, data.email, data.password, data.role)
    return {
        "success": True,
        "message": "User registered successfully.",
        "user": user.model_dump(),
    }


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    container: ServiceContainer = Depends(get_container),
):
    """
    Request password reset email.

    Always returns the same body to prevent email enumeration.
    """
    message = await container.passwords.request_reset(data.email)
    return {"success": True, "message": message}


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Reset password using the token from the email."""
    await container.passwords.complete_reset(data.token, data.new_password)
    return {"success": True, "message": "Password has been reset successfully"}


@router.post("/logout")
async def logout(
    response: Response,
    user: UserSummary | None = Depends(optional_session),
    container: ServiceContainer = Depends(get_container),
):
    """
    Logout (client should discard its token).

    Clears the session cookie. Tokens are self-contained; a change of
    password is what revokes them.
    """
    _clear_session_cookie(response, container.settings)
    if user is not None:
        logger.info(f"User {user.id} logged out")
    return {"success": True, "message": "Logged out successfully"}


# =============================================================================
# Google Sign-In
# =============================================================================


@router.get("/google")
async def google_login(container: ServiceContainer = Depends(get_container)):
    """Redirect the browser to Google's account chooser."""
    oauth = container.google_oauth
    if not oauth.is_configured:
        raise NotFound("Google sign-in is not configured")
    return RedirectResponse(oauth.get_authorize_url(), status_code=302)


@router.get("/google/callback")
async def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    container: ServiceContainer = Depends(get_container),
):
    """
    Finish Google sign-in and send the browser back to the frontend.

    Only existing users can sign in this way. On success the session token
    is set as an httpOnly cookie and never placed in the URL; on failure the
    login page gets an `error` query parameter.
    """
    settings = container.settings
    oauth = container.google_oauth

    if error or not code or not oauth.validate_state(state):
        logger.info(f"Google callback rejected (provider error: {error or 'none'})")
        return _login_redirect(settings, error="oauth-failed")

    try:
        info = await oauth.authenticate(code)
        token, _ = await container.auth.login_with_google(info)
    except OAuthError as e:
        logger.warning(f"Google sign-in failed: {e}")
        return _login_redirect(settings, error="oauth-failed")
    except NotFound:
        return _login_redirect(settings, error="user-not-found")
    except Unauthenticated:
        return _login_redirect(settings, error="email-not-verified")

    response = _login_redirect(settings)
    _set_session_cookie(response, settings, token)
    return response


# =============================================================================
# Protected Endpoints
# =============================================================================


@router.get("/me")
async def get_current_user(user: UserSummary = Depends(require_session)):
    """Get the current authenticated user."""
    return {"success": True, "user": user.model_dump()}


@router.post("/verify")
async def verify(user: UserSummary = Depends(require_session)):
    """Confirm the session is still valid and echo its user."""
    return {"success": True, "user": user.model_dump()}


@settings_router.put("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    user: UserSummary = Depends(require_session),
    container: ServiceContainer = Depends(get_container),
):
    """Change the password of the authenticated user."""
    await container.passwords.change_password(
        user.id,
        data.current_password,
        data.new_password,
        data.confirm_password,
    )
    return {"success": True, "message": "Password updated successfully."}
