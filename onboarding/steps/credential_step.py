"""Credential entry step: password, and for new repositories description and algorithms."""

import questionary
from questionary import Choice

from core.connection import ConnectionIntent
from core.engine.models import BlockFormat
from onboarding.state import Nav
from onboarding.steps.config_step import ask_until_nonempty
from onboarding.ui import STYLE, hint, notify
from onboarding.wizard import SetupWizard


async def _ask_block_format(wizard: SetupWizard) -> BlockFormat | None:
    """Optional advanced options. Returns None if cancelled."""
    customize = await questionary.confirm(
        "Configure advanced options (hash, encryption, splitter)?",
        default=False,
        style=STYLE,
    ).ask_async()
    if customize is None:
        return None
    supported = await wizard.supported_algorithms()
    if not customize:
        return supported.default_block_format()

    selected: dict[str, str] = {}
    for name, options, default in (
        ("hash", supported.hash, supported.default_hash),
        ("encryption", supported.encryption, supported.default_encryption),
        ("splitter", supported.splitter, supported.default_splitter),
    ):
        choices = [
            Choice(f"{opt} (recommended)" if opt == default else opt, opt) for opt in options
        ]
        value = await questionary.select(
            f"{name.capitalize()} algorithm:",
            choices=choices,
            default=default if default in options else None,
            style=STYLE,
        ).ask_async()
        if value is None:
            return None
        selected[name] = value
    return BlockFormat(**selected)


async def _collect(wizard: SetupWizard) -> bool:
    """Ask for credentials and store them on the wizard. Returns False if cancelled."""
    creating = wizard.state.intent is ConnectionIntent.CREATE
    if creating:
        print(
            "\nImportant: there is NO way to recover a lost repository password. "
            "Store it securely.\n"
        )
    else:
        print("\nEnter the repository password.\n")

    password = await ask_until_nonempty("Repository password:", is_password=True)
    if password is None:
        return False
    if not creating:
        wizard.set_credentials(password)
        return True

    confirm = await questionary.password("Confirm password:", style=STYLE).ask_async()
    if confirm is None:
        return False
    description = await questionary.text(
        "Description (optional):", default=wizard.state.description, style=STYLE
    ).ask_async()
    if description is None:
        return False
    block_format = await _ask_block_format(wizard)
    if block_format is None:
        return False
    wizard.set_credentials(password, confirm, description, block_format)
    return True


async def run_credential_step(wizard: SetupWizard) -> Nav | None:
    """Collect credentials and submit. Stays on this step after a failed attempt."""
    intent = wizard.state.intent
    if intent is None:
        return Nav.BACK
    if not await _collect(wizard):
        return None

    if not wizard.can_submit:
        for problem in wizard.credential_problems() or ["Cannot submit yet"]:
            print(f"  ✗ {problem}")
        return Nav.NEXT

    verb = "Create repository" if intent is ConnectionIntent.CREATE else "Connect"
    action = await questionary.select(
        "Ready?", choices=[Choice(verb, "submit"), Choice("Back", "back")], style=STYLE
    ).ask_async()
    if action is None:
        return None
    if action == "back":
        return Nav.BACK

    hint("\nCreating repository..." if intent is ConnectionIntent.CREATE else "\nConnecting...")
    outcome = await wizard.submit()
    notify(intent, outcome)
    if outcome.ok:
        return Nav.NEXT

    again = await questionary.select(
        "What would you like to do?",
        choices=[
            Choice("Try again", "retry"),
            Choice("Back", "back"),
            Choice("Quit", "quit"),
        ],
        style=STYLE,
    ).ask_async()
    if again == "retry":
        return Nav.NEXT
    if again == "back":
        return Nav.BACK
    return None
