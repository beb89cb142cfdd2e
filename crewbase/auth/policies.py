"""
Policies - route authorization as FastAPI dependencies.

Usage in a route:
    user: UserSummary = Depends(require_session)
    user: UserSummary = Depends(require_roles(Role.ADMIN))

require_roles builds on require_session, so a gated route never needs
both. Gates stack: list several in `dependencies=[...]` and every one must
pass. FastAPI caches require_session per request, so the token is verified
once however many gates a route carries.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from crewbase.api.dependencies import ServiceContainer, get_container
from crewbase.core.errors import Forbidden, NotFound, Unauthenticated
from crewbase.core.models import Role, UserSummary
from crewbase.integrations.sentry import set_user


# Don't let HTTPBearer answer 403 on its own; missing tokens are ours to report
optional_bearer = HTTPBearer(auto_error=False)


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    container: ServiceContainer,
) -> str | None:
    """Bearer token from the Authorization header, else the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(container.settings.session_cookie_name) or None


# =============================================================================
# Session Verification
# =============================================================================


async def require_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    container: ServiceContainer = Depends(get_container),
) -> UserSummary:
    """
    Authenticate the session token and attach the user to request.state.user.

    The token comes from `Authorization: Bearer` or, failing that, the
    session cookie set by Google sign-in.

    Raises Unauthenticated (401), NotFound (404) or InternalError (500).
    """
    token = extract_token(request, credentials, container)
    if token is None:
        raise Unauthenticated("Unauthorized: No token provided")

    user = await container.auth.authenticate(token)
    request.state.user = user
    set_user(user.id, user.role.value)
    return user


async def optional_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    container: ServiceContainer = Depends(get_container),
) -> UserSummary | None:
    """Like require_session, but None instead of an error."""
    token = extract_token(request, credentials, container)
    if token is None:
        return None
    try:
        user = await container.auth.authenticate(token)
    except (Unauthenticated, NotFound):
        return None
    request.state.user = user
    return user


# =============================================================================
# Authorization Gate
# =============================================================================


def require_roles(*roles: Role) -> Callable:
    """
    Require the session user to hold one of the given roles.

    Usage:
        @router.post("/companies")
        async def create_company(user: UserSummary = Depends(require_roles(Role.ADMIN))):
            ...
    """
    if not roles:
        raise ValueError("require_roles needs at least one role")
    allowed = frozenset(Role(r) for r in roles)

    async def dependency(user: UserSummary = Depends(require_session)) -> UserSummary:
        if user.role not in allowed:
            raise Forbidden("Access denied")
        return user

    return dependency


require_admin = require_roles(Role.ADMIN)
