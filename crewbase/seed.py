"""
Create an Admin account (idempotent).

Public registration only hands out Manager and Employee roles, so the first
Admin comes from here:

    crewbase-create-admin --email root@example.com --name Root

The password is prompted for when --password is omitted.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging

from crewbase.api.dependencies import ServiceContainer
from crewbase.config import get_settings

logger = logging.getLogger(__name__)


def _prompt_password() -> str:
    password = getpass.getpass("Password: ")
    if not password:
        raise SystemExit("Password is required.")
    confirm = getpass.getpass("Confirm password: ")
    if password != confirm:
        raise SystemExit("Passwords do not match.")
    return password


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an Admin account (idempotent).")
    parser.add_argument("--email", required=True, help="Admin email")
    parser.add_argument("--name", default="Admin", help="Display name (default: Admin)")
    parser.add_argument("--password", help="Password (omit to be prompted securely)")
    return parser.parse_args(argv)


async def create_admin(container: ServiceContainer, name: str, email: str, password: str) -> bool:
    """Create the Admin unless the email is taken. True if one was created."""
    existing = await container.storage.users.get_by_email(email)
    if existing is not None:
        logger.info(f"User already exists: id={existing.id} role={existing.role.value}")
        return False

    admin = await container.auth.create_admin(name, email, password)
    logger.info(f"Created admin: id={admin.id}")
    return True


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = _parse_args(argv)

    settings = get_settings()
    if settings.storage_backend == "memory":
        raise SystemExit("STORAGE_BACKEND=memory does not persist; point it at dynamodb first.")

    password = args.password or _prompt_password()
    asyncio.run(create_admin(ServiceContainer(settings), args.name, args.email.strip(), password))


if __name__ == "__main__":
    main()
