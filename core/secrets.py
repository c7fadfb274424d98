"""Kopia server password lookup: OS keyring first, then the environment.

Only the server control password is handled here. Repository passwords are
typed by the user for each attempt and never stored.
"""

import asyncio
import logging
import os

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)
SERVICE_NAME = "kopia-connect"
DEFAULT_SECRET_NAME = "KOPIA_SERVER_PASSWORD"


def is_keyring_available() -> bool:
    """True when a real OS keyring backend is active (not the fail stub)."""
    try:
        from keyring.backends.fail import Keyring as FailKeyring

        return not isinstance(keyring.get_keyring(), FailKeyring)
    except Exception:
        return False


async def get_secret_async(name: str) -> str | None:
    """Keyring entry ``name`` under SERVICE_NAME, else os.environ[name].

    Keyring I/O runs in a thread since some backends block on D-Bus or a prompt.
    """
    try:
        value = await asyncio.to_thread(keyring.get_password, SERVICE_NAME, name)
        if value:
            return value
    except KeyringError:
        logger.debug("keyring lookup failed for %s, falling back to env", name)
    return os.environ.get(name)


def _server_secret_name(settings: dict) -> str:
    server = settings.get("server") or {}
    return server.get("password_secret") or DEFAULT_SECRET_NAME


async def resolve_server_password(settings: dict) -> str | None:
    """Control password for the Kopia server named by settings.server.password_secret."""
    name = _server_secret_name(settings)
    value = await get_secret_async(name)
    if not value:
        logger.warning("No server password found in keyring or env (%s)", name)
    return value or None


async def remember_server_password(settings: dict, value: str) -> bool:
    """Store the server control password in the keyring. Returns False when unavailable."""
    name = _server_secret_name(settings)
    if not is_keyring_available():
        logger.warning("Keyring unavailable (headless/CI). Set %s in .env instead.", name)
        return False
    try:
        await asyncio.to_thread(keyring.set_password, SERVICE_NAME, name, value)
    except KeyringError as e:
        logger.warning("Failed to store server password in keyring: %s", e)
        return False
    logger.info("Server password stored in keyring as %s", name)
    return True
