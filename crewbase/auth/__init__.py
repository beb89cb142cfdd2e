"""
Authentication - session tokens, password lifecycle and role gates.

Route handlers only need the policies:
    user: UserSummary = Depends(require_session)
    user: UserSummary = Depends(require_roles(Role.ADMIN))
"""

from crewbase.auth.passwords import PasswordHasher
from crewbase.auth.policies import (
    optional_session,
    require_admin,
    require_roles,
    require_session,
)
from crewbase.auth.reset_tokens import ResetTokenGenerator
from crewbase.auth.service import AuthService, PasswordService
from crewbase.auth.tokens import (
    TokenClaims,
    TokenCodec,
    TokenError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
)
from crewbase.auth.routes import router as auth_router, settings_router

__all__ = [
    # Policies
    "require_session",
    "optional_session",
    "require_roles",
    "require_admin",
    # Tokens
    "TokenCodec",
    "TokenClaims",
    "TokenError",
    "TokenExpiredError",
    "TokenSignatureError",
    "TokenMalformedError",
    # Passwords
    "PasswordHasher",
    "ResetTokenGenerator",
    # Services
    "AuthService",
    "PasswordService",
    # Routers
    "auth_router",
    "settings_router",
]
