"""
Authentication and credential-lifecycle services.

AuthService covers login, registration and session resolution.
PasswordService covers the two ways a password changes: an authenticated
change, and the forgot/reset handshake by email.
"""

from __future__ import annotations

import logging

from crewbase.auth.passwords import PasswordHasher, exceeds_limit, too_long_message
from crewbase.auth.reset_tokens import ResetTokenGenerator
from crewbase.auth.tokens import TokenCodec, TokenError
from crewbase.config import Settings
from crewbase.core.errors import (
    AuthFailed,
    InternalError,
    InvalidOrExpiredToken,
    NotFound,
    StoreError,
    StoreErrorKind,
    Unauthenticated,
    ValidationError,
)
from crewbase.core.models import Role, UserRecord, UserSummary
from crewbase.core.utils import utc_now
from crewbase.integrations.email import Mailer, MailerError
from crewbase.integrations.oauth import OAuthUserInfo
from crewbase.storage.base import StorageProvider

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a reset link has been sent"

# Admins come from the seed command, never from public registration
SELF_SERVICE_ROLES = frozenset({Role.MANAGER, Role.EMPLOYEE})


# =============================================================================
# Auth Service
# =============================================================================


class AuthService:
    """Login, registration and bearer-token session resolution."""

    def __init__(
        self,
        storage: StorageProvider,
        codec: TokenCodec,
        hasher: PasswordHasher,
        settings: Settings,
    ):
        self.storage = storage
        self.codec = codec
        self.hasher = hasher
        self.settings = settings
        self._dummy_hash: str | None = None

    async def summarize(self, user: UserRecord) -> UserSummary:
        """Outward view of a user, with the company name resolved."""
        company_name = None
        if user.company_id:
            company = await self.storage.companies.get(user.company_id)
            company_name = company.name if company else None
        return UserSummary.from_record(user, company_name)

    async def authenticate(self, token: str) -> UserSummary:
        """
        Resolve a bearer token to the user it was issued for.

        Raises:
            Unauthenticated: token invalid, expired or issued before the
                user's last password change
            NotFound: the user no longer exists
            InternalError: the store failed
        """
        try:
            claims = self.codec.verify(token)
        except TokenError as e:
            logger.info(f"Rejected bearer token: {type(e).__name__}")
            raise Unauthenticated() from e

        try:
            user = await self.storage.users.get_by_id(claims.sub)
            if user is None:
                raise NotFound("User not found")
            if (
                self.settings.revoke_sessions_on_password_change
                and claims.ver < user.token_version
            ):
                logger.info(f"Rejected superseded token for user {user.id}")
                raise Unauthenticated()
            return await self.summarize(user)
        except StoreError as e:
            logger.error(f"Session lookup failed ({e.kind.value}): {e.message}")
            raise InternalError() from e

    async def login(self, email: str | None, password: str | None) -> tuple[str, UserSummary]:
        """Check credentials and issue a session token."""
        if not email or not password:
            raise ValidationError("Email and password are required.")

        user = await self.storage.users.get_by_email(email)
        if user is None:
            # Same bcrypt cost as a real comparison
            await self.hasher.compare(password, await self._get_dummy_hash())
            raise Unauthenticated("Invalid email or password")

        if not await self.hasher.compare(password, user.password_hash):
            logger.info(f"Failed login for user {user.id}")
            raise Unauthenticated("Invalid email or password")

        token = self.codec.issue(user.id, user.role, user.token_version)
        logger.info(f"User {user.id} logged in")
        return token, await self.summarize(user)

    async def register(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        role: str | None,
    ) -> UserSummary:
        """Create a Manager or Employee account with a hashed password."""
        if not name or not email or not password or not role:
            raise ValidationError("All fields are required.")

        try:
            parsed_role = Role(role)
        except ValueError as e:
            raise ValidationError("Invalid role") from e
        if parsed_role not in SELF_SERVICE_ROLES:
            logger.warning(f"Registration attempted with role {parsed_role.value}")
            raise ValidationError("Invalid role")

        return await self._create_user(name, email, password, parsed_role)

    async def create_admin(self, name: str, email: str, password: str) -> UserSummary:
        """Create an Admin account. Only reachable from the seed command."""
        if not name or not email or not password:
            raise ValidationError("All fields are required.")
        return await self._create_user(name, email, password, Role.ADMIN)

    async def login_with_google(self, info: OAuthUserInfo) -> tuple[str, UserSummary]:
        """
        Issue a session for the existing user behind a Google profile.

        Raises:
            Unauthenticated: Google has not verified the email
            NotFound: no user has that email
        """
        if not info.email_verified:
            logger.info("Google sign-in rejected: email not verified")
            raise Unauthenticated("Google account email is not verified")

        user = await self.storage.users.get_by_email(info.email)
        if user is None:
            logger.info("Google sign-in rejected: no matching user")
            raise NotFound("User not found")

        token = self.codec.issue(user.id, user.role, user.token_version)
        logger.info(f"User {user.id} logged in with Google")
        return token, await self.summarize(user)

    async def _create_user(self, name: str, email: str, password: str, role: Role) -> UserSummary:
        if exceeds_limit(password):
            raise ValidationError(too_long_message())

        if await self.storage.users.get_by_email(email) is not None:
            raise ValidationError("User already exists.")

        user = UserRecord(
            name=name,
            email=email,
            password_hash=await self.hasher.hash(password),
            role=role,
        )
        try:
            user = await self.storage.users.create(user)
        except StoreError as e:
            if e.kind == StoreErrorKind.CONFLICT:
                raise ValidationError("User already exists.") from e
            raise

        logger.info(f"Created user {user.id} ({role.value})")
        return UserSummary.from_record(user)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self.hasher.hash("not-a-real-password")
        return self._dummy_hash


# =============================================================================
# Password Service
# =============================================================================


class PasswordService:
    """Password change (authenticated) and reset (by email link)."""

    def __init__(
        self,
        storage: StorageProvider,
        hasher: PasswordHasher,
        reset_tokens: ResetTokenGenerator,
        mailer: Mailer,
        settings: Settings,
    ):
        self.storage = storage
        self.hasher = hasher
        self.reset_tokens = reset_tokens
        self.mailer = mailer
        self.settings = settings

    @property
    def min_length(self) -> int:
        return self.settings.password_min_length

    async def change_password(
        self,
        user_id: str,
        current_password: str | None,
        new_password: str | None,
        confirm_password: str | None,
    ) -> None:
        """
        Replace the password of an authenticated user.

        Checks run in order: presence, length bounds, confirmation, user lookup,
        current password. Bumping token_version on persist invalidates
        sessions issued before the change.
        """
        if not current_password or not new_password or not confirm_password:
            raise ValidationError("All fields are required.")
        if len(new_password) < self.min_length:
            raise ValidationError(f"Password must be at least {self.min_length} characters long.")
        if exceeds_limit(new_password):
            raise ValidationError(too_long_message())
        if new_password != confirm_password:
            raise ValidationError("Passwords do not match.")

        user = await self.storage.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found.")

        if not await self.hasher.compare(current_password, user.password_hash):
            logger.info(f"Password change for user {user_id} rejected: wrong current password")
            raise AuthFailed("Current password is incorrect.")

        if not await self.storage.users.update_password(user_id, await self.hasher.hash(new_password)):
            raise NotFound("User not found.")
        logger.info(f"Password changed for user {user_id}")

    async def request_reset(self, email: str | None) -> str:
        """
        Open a reset window and email the link.

        The returned message is the same whether or not the account exists.
        """
        if not email:
            raise ValidationError("Email is required.")

        user = await self.storage.users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        token, expires_at = self.reset_tokens.generate()
        await self.storage.users.set_reset_token(user.id, token, expires_at)

        reset_url = f"{self.settings.frontend_url.rstrip('/')}/reset-password?token={token}"
        try:
            await self.mailer.send_password_reset(user.email, reset_url)
        except MailerError as e:
            logger.error(f"Reset email for user {user.id} could not be sent: {e}")
            raise InternalError() from e

        logger.info(f"Password reset issued for user {user.id}")
        return FORGOT_PASSWORD_MESSAGE

    async def complete_reset(self, token: str | None, new_password: str | None) -> None:
        """
        Redeem a reset token and set the new password.

        Length is checked before the token is looked up, so a short password
        gets the same answer whether or not the token exists. The match on
        token and expiry, the new hash and clearing the token happen in one
        conditional store write.
        """
        if not token or not new_password:
            raise ValidationError("Token and new password are required.")
        if len(new_password) < self.min_length:
            raise ValidationError(f"Password must be at least {self.min_length} characters long")
        if exceeds_limit(new_password):
            raise ValidationError(too_long_message(period=False))

        password_hash = await self.hasher.hash(new_password)
        user = await self.storage.users.consume_reset_token(token, password_hash, utc_now())
        if user is None:
            raise InvalidOrExpiredToken()

        logger.info(f"Password reset completed for user {user.id}")
