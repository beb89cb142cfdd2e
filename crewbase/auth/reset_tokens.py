"""
Password-reset token generation.

Tokens are 32 random bytes rendered as 64 lowercase hex characters and are
valid for a fixed window from the moment they are issued.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from crewbase.core.utils import utc_now

RESET_TOKEN_BYTES = 32


class ResetTokenGenerator:
    """Produces (token, expires_at) pairs."""

    def __init__(self, window: timedelta = timedelta(hours=1)):
        self.window = window

    def generate(self, now: datetime | None = None) -> tuple[str, datetime]:
        issued = now or utc_now()
        return secrets.token_hex(RESET_TOKEN_BYTES), issued + self.window
