"""Storage provider selection step."""

import questionary
from questionary import Choice

from core.engine.models import target_class
from onboarding.state import Nav
from onboarding.ui import STYLE
from onboarding.wizard import SetupWizard

# Display order in the provider menu
PROVIDERS = [
    "filesystem",
    "s3",
    "b2",
    "gcs",
    "azureBlob",
    "sftp",
    "webdav",
    "rclone",
]


def provider_label(provider_id: str) -> str:
    return target_class(provider_id).label or provider_id


async def run_provider_step(wizard: SetupWizard) -> Nav | None:
    """Ask where the repository lives. Returns None if cancelled."""
    print("\nRepository setup\n")

    default = wizard.state.provider if wizard.state.provider in PROVIDERS else None
    choice = await questionary.select(
        "Where should backups be stored?",
        choices=[Choice(provider_label(pid), pid) for pid in PROVIDERS],
        default=default,
        style=STYLE,
    ).ask_async()
    if choice is None:
        return None

    wizard.select_provider(choice)
    return Nav.NEXT
