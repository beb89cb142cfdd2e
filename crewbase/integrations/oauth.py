# =============================================================================
# Google Sign-In (OAuth 2.0 authorization code flow)
# =============================================================================
#
# Setup:
#   1. Go to https://console.cloud.google.com/apis/credentials
#   2. Create OAuth 2.0 Client ID (Web application)
#   3. Add authorized redirect URI: https://api.yourdomain.com/auth/google/callback
#   4. Set env vars:
#      - GOOGLE_OAUTH_CLIENT_ID=...
#      - GOOGLE_OAUTH_CLIENT_SECRET=...
#      - GOOGLE_OAUTH_REDIRECT_URI=...
#
# Sign-in only: a Google account is matched to an existing user by email.
# No account is created here.
#
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from crewbase.config import Settings, get_settings
from crewbase.core.utils import generate_id

logger = logging.getLogger(__name__)


class OAuthUserInfo(BaseModel):
    """User info retrieved from Google."""
    provider_user_id: str
    email: str
    name: str
    email_verified: bool = False


class OAuthError(Exception):
    """OAuth flow error."""
    pass


class GoogleOAuth:
    """Google OAuth 2.0 client."""

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

        # State tokens for CSRF protection; single process only
        self._pending_states: set[str] = set()

    @property
    def is_configured(self) -> bool:
        return self.settings.google_oauth_enabled

    def create_state(self) -> str:
        state = generate_id("oauth")
        self._pending_states.add(state)
        return state

    def validate_state(self, state: str | None) -> bool:
        """Consume a state token. False if it was never issued or already used."""
        if not state or state not in self._pending_states:
            return False
        self._pending_states.discard(state)
        return True

    def get_authorize_url(self) -> str:
        """URL to send the browser to for Google sign-in, with a fresh state."""
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        params = {
            "client_id": self.settings.google_oauth_client_id,
            "redirect_uri": self.settings.google_oauth_redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "prompt": "select_account",
            "state": self.create_state(),
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=10.0)

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for tokens."""
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        async with self._client() as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "client_id": self.settings.google_oauth_client_id,
                    "client_secret": self.settings.google_oauth_client_secret,
                    "code": code,
                    "redirect_uri": self.settings.google_oauth_redirect_uri,
                    "grant_type": "authorization_code",
                },
            )

        if response.status_code != 200:
            logger.error(f"Google token exchange failed: {response.status_code}")
            raise OAuthError(f"Token exchange failed: {response.status_code}")
        return response.json()

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        async with self._client() as client:
            response = await client.get(
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if response.status_code != 200:
            logger.error(f"Google userinfo failed: {response.status_code}")
            raise OAuthError(f"Failed to get user info: {response.status_code}")

        data = response.json()
        if not data.get("email"):
            raise OAuthError("Google account has no email")

        return OAuthUserInfo(
            provider_user_id=data["id"],
            email=data["email"],
            name=data.get("name", data["email"].split("@")[0]),
            email_verified=data.get("verified_email", False),
        )

    async def authenticate(self, code: str) -> OAuthUserInfo:
        """Complete the flow: exchange the code and fetch the profile."""
        tokens = await self.exchange_code(code)
        try:
            access_token = tokens["access_token"]
        except KeyError as e:
            raise OAuthError("Token response has no access_token") from e
        return await self.get_user_info(access_token)
