"""Storage verification step: offer Connect, Create or a retry of the check."""

import questionary
from questionary import Choice

from core.connection import ConnectionIntent
from onboarding.state import Nav, StorageCheck
from onboarding.ui import STYLE, hint
from onboarding.wizard import SetupWizard

_MESSAGES = {
    StorageCheck.EXISTS: "✓ Found an existing repository at this location.",
    StorageCheck.NOT_EXISTS: "No repository found here. A new one can be created.",
}


async def run_verify_step(wizard: SetupWizard) -> Nav | None:
    """Show the existence check result and let the user pick the next action."""
    state = wizard.state
    if state.storage_check is StorageCheck.PENDING:
        hint("\nChecking storage location...")
        await wizard.check_storage()

    choices: list[Choice] = []
    if state.storage_check is StorageCheck.ERROR:
        print(f"\n✗ Storage check failed: {state.storage_error}")
        choices.append(Choice("Try again", "retry"))
    else:
        print(f"\n{_MESSAGES[state.storage_check]}")
        if state.storage_check is StorageCheck.EXISTS:
            choices.append(Choice("Connect to repository", ConnectionIntent.CONNECT.value))
        else:
            choices.append(Choice("Create new repository", ConnectionIntent.CREATE.value))
    choices.append(Choice("Back", "back"))

    action = await questionary.select(
        "What would you like to do?", choices=choices, style=STYLE
    ).ask_async()
    if action is None:
        return None
    if action == "back":
        return Nav.BACK
    if action == "retry":
        hint("\nChecking storage location...")
        await wizard.check_storage()
        return Nav.NEXT

    wizard.choose_intent(ConnectionIntent(action))
    return Nav.NEXT
