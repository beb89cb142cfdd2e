# =============================================================================
# Session Tokens (JWT)
# =============================================================================
#
# Signed, self-contained access tokens:
#   - sub   user id
#   - role  role at issue time
#   - ver   user's token_version at issue time
#   - iat / exp / jti / type
#
# No server-side session table; the lifetime is JWT_ACCESS_TOKEN_EXPIRE_MINUTES.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from pydantic import BaseModel

from crewbase.core.models import Role
from crewbase.core.utils import generate_id, utc_now


class TokenClaims(BaseModel):
    """Validated claims from an access token."""

    sub: str  # user_id
    role: Role
    ver: int = 0
    exp: datetime
    iat: datetime
    jti: str = ""


# =============================================================================
# Errors
# =============================================================================


class TokenError(Exception):
    """Base exception for token errors."""


class TokenExpiredError(TokenError):
    """Token has expired."""


class TokenSignatureError(TokenError):
    """Signature does not verify against the configured secret."""


class TokenMalformedError(TokenError):
    """Token cannot be parsed or is missing required claims."""


# =============================================================================
# Codec
# =============================================================================


class TokenCodec:
    """Issues and verifies access tokens with one secret and algorithm."""

    TOKEN_TYPE = "access"

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 60 * 24 * 10):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=ttl_minutes)

    def issue(self, user_id: str, role: Role, token_version: int = 0) -> str:
        """Create a signed access token."""
        now = utc_now()
        payload = {
            "sub": user_id,
            "role": Role(role).value,
            "ver": token_version,
            "iat": now,
            "exp": now + self.ttl,
            "jti": generate_id("tok"),
            "type": self.TOKEN_TYPE,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate an access token.

        Raises:
            TokenExpiredError: exp is in the past
            TokenSignatureError: signed with a different secret
            TokenMalformedError: anything else wrong with the token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidSignatureError as e:
            raise TokenSignatureError("Token signature is invalid") from e
        except jwt.InvalidTokenError as e:
            raise TokenMalformedError(f"Invalid token: {e}") from e

        if payload.get("type") != self.TOKEN_TYPE:
            raise TokenMalformedError(f"Expected {self.TOKEN_TYPE} token, got {payload.get('type')}")

        try:
            return TokenClaims(
                sub=payload["sub"],
                role=payload.get("role"),
                ver=payload.get("ver", 0),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                jti=payload.get("jti", ""),
            )
        except ValueError as e:
            raise TokenMalformedError(f"Invalid token claims: {e}") from e
