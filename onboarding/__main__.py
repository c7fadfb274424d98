"""Entry point for the repository setup wizard: python -m onboarding."""

import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from core.connection import build_orchestrator
from core.engine import KopiaClient
from core.logging_config import setup_logging
from core.secrets import resolve_server_password
from core.settings import load_settings
from onboarding.constants import SETUP_FAILED, SETUP_QUIT, SETUP_SUCCESS
from onboarding.steps.server_step import run_server_step
from onboarding.wizard import WizardResult, run_wizard

logger = logging.getLogger(__name__)


async def _run(settings: dict) -> WizardResult:
    password = await resolve_server_password(settings)
    if password is None:
        password = await run_server_step(settings)
        if password is None:
            return WizardResult(success=False)
    async with await KopiaClient.from_settings(settings, password=password) as client:
        orchestrator = build_orchestrator(client, settings)
        return await run_wizard(client, orchestrator)


def main() -> int:
    """Run the setup wizard. Returns the process exit code."""
    project_root = Path.cwd()
    load_dotenv(project_root / ".env")
    settings = load_settings(project_root / "config")
    setup_logging(project_root, settings)

    try:
        result = asyncio.run(_run(settings))
    except KeyboardInterrupt:
        print("\n\nSetup cancelled.")
        return SETUP_QUIT

    if result.success:
        print("\nSetup complete.\n")
        return SETUP_SUCCESS

    if result.outcome is not None and not result.outcome.ok:
        logger.info("Setup ended after failed attempt: %s", result.outcome.result.value)
        return SETUP_FAILED

    print("\nSetup cancelled.")
    return SETUP_QUIT


if __name__ == "__main__":
    sys.exit(main())
