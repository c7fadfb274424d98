"""Server password step: asked only when neither the keyring nor .env has one."""

import questionary

from core.secrets import is_keyring_available, remember_server_password
from core.settings import get_setting
from onboarding.ui import STYLE


async def run_server_step(settings: dict) -> str | None:
    """Ask for the Kopia server control password. Returns None if cancelled.

    An empty answer means the server runs without authentication.
    """
    url = get_setting(settings, "server.url", "")
    user = get_setting(settings, "server.username", "kopia")
    print(f"\nKopia server {url} (user {user!r})\n")

    password = await questionary.password("Server password:", style=STYLE).ask_async()
    if password is None:
        return None
    if not password or not is_keyring_available():
        return password

    save = await questionary.confirm(
        "Save server password in the OS keyring?", default=True, style=STYLE
    ).ask_async()
    if save:
        if await remember_server_password(settings, password):
            print("✓ Saved to keyring.")
        else:
            print("Could not save to keyring; it will be asked again next time.")
    return password
