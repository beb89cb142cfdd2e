# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=us-east-1
#
# Without that configuration nothing is sent; the attempt is logged without
# the reset link so tokens never reach the logs.
#
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from crewbase.config import Settings, get_settings

logger = logging.getLogger(__name__)

_THROTTLING_CODES = {"Throttling", "ThrottlingException", "ServiceUnavailable"}


class MailerError(Exception):
    """Email could not be handed to the provider."""


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return True
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code") in _THROTTLING_CODES
    return False


# =============================================================================
# Email Templates
# =============================================================================

TEMPLATES = {
    "password_reset": {
        "subject": "Password Reset Request",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Reset Your Password</h1>
            <p>You requested a password reset. Click the button below to choose a new password:</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{reset_url}" style="background: #2563EB; color: white; padding: 12px 30px; text-decoration: none; border-radius: 6px; display: inline-block;">
                    Reset Password
                </a>
            </p>
            <p style="color: #666; font-size: 14px;">Or copy this link: {reset_url}</p>
            <p style="color: #666; font-size: 14px;">This link will expire in 1 hour.</p>
            <p style="color: #666; font-size: 14px;">If you didn't request this, please ignore this email.</p>
        </body>
        </html>
        """,
        "text": """
Reset Your Password

You requested a password reset. Visit this link to choose a new password:
{reset_url}

This link will expire in 1 hour.

If you didn't request this, please ignore this email.
        """,
    },
}


# =============================================================================
# Mailer interface
# =============================================================================


class Mailer(ABC):
    """Outbound email. Implementations raise MailerError on failure."""

    @abstractmethod
    async def send_password_reset(self, email: str, reset_url: str) -> None:
        """Deliver the reset link to one recipient."""


# =============================================================================
# Email Service
# =============================================================================


class EmailService(Mailer):
    """Send emails via AWS SES."""

    def __init__(self, settings: Settings | None = None, client=None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        if not self.settings.aws_ses_from_email:
            return False
        return self._client is not None or self.settings.use_aws

    async def send(self, to: str, template: str, data: dict[str, Any]) -> None:
        """
        Send an email using a template.

        Raises:
            MailerError: unknown template, missing variable or SES rejected it
        """
        if not self.is_configured:
            logger.warning(f"Email not configured - would send '{template}' to {to}")
            return

        if template not in TEMPLATES:
            raise MailerError(f"Unknown email template: {template}")

        tpl = TEMPLATES[template]
        try:
            message = {
                "Subject": {"Data": tpl["subject"], "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": tpl["html"].format(**data), "Charset": "UTF-8"},
                    "Text": {"Data": tpl["text"].format(**data), "Charset": "UTF-8"},
                },
            }
        except KeyError as e:
            raise MailerError(f"Missing template variable for '{template}': {e}") from e

        try:
            response = await self._send_with_retry(to, message)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send '{template}' email to {to}: {e}")
            raise MailerError(f"Failed to send '{template}' email") from e

        logger.info(f"Email sent to {to}: {template} (MessageId: {response['MessageId']})")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _send_with_retry(self, to: str, message: dict[str, Any]) -> dict[str, Any]:
        """SES send_email with retry on throttling and connection errors."""

        def send_sync():
            return self.client.send_email(
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message=message,
            )

        return await asyncio.get_running_loop().run_in_executor(None, send_sync)

    async def send_password_reset(self, email: str, reset_url: str) -> None:
        """Send password reset email."""
        await self.send(to=email, template="password_reset", data={"reset_url": reset_url})
