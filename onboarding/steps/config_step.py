"""Provider configuration step: collect the storage fields for the chosen provider.

Prompts are derived from the storage target model, so each provider asks for
exactly the fields it declares. Required fields are re-asked until non-empty;
optional ones may be left blank.
"""

import questionary
from questionary import Choice

from core.engine.models import target_class
from onboarding.state import Nav
from onboarding.ui import STYLE, hint
from onboarding.wizard import SetupWizard, WizardError

_LABELS: dict[str, str] = {
    "path": "Path",
    "bucket": "Bucket",
    "access_key_id": "Access key ID",
    "secret_access_key": "Secret access key",
    "endpoint": "Endpoint (e.g. s3.amazonaws.com)",
    "region": "Region",
    "session_token": "Session token",
    "prefix": "Object name prefix",
    "credentials_file": "Service account credentials file",
    "container": "Container",
    "storage_account": "Storage account",
    "storage_key": "Storage access key",
    "storage_domain": "Storage domain",
    "key_id": "Application key ID",
    "key": "Application key",
    "host": "Host",
    "port": "Port",
    "username": "Username",
    "password": "Password",
    "keyfile": "Private key file",
    "known_hosts_file": "Known hosts file",
    "url": "Server URL",
    "remote_path": "Rclone remote path (remote:path)",
    "rclone_exe": "Rclone executable",
}

_SECRET_FIELDS = frozenset(
    {"secret_access_key", "session_token", "storage_key", "key", "password"}
)
_PATH_FIELDS = frozenset({"path", "credentials_file", "keyfile", "known_hosts_file", "rclone_exe"})


async def ask_until_nonempty(
    prompt: str, is_password: bool = False, default: str = ""
) -> str | None:
    """Prompt until non-empty input or user cancelled. Returns None on cancel."""
    while True:
        if is_password:
            val = await questionary.password(prompt, style=STYLE).ask_async()
        else:
            val = await questionary.text(prompt, default=default, style=STYLE).ask_async()
        if val is None:
            return None
        if val and val.strip():
            return val.strip()
        print("This field cannot be empty. Try again.\n")


async def _ask_field(name: str, required: bool, current: object) -> str | None:
    label = _LABELS.get(name, name.replace("_", " ").capitalize())
    default = "" if current is None else str(current)
    if required:
        if name in _SECRET_FIELDS:
            return await ask_until_nonempty(f"{label}:", is_password=True)
        return await ask_until_nonempty(f"{label}:", default=default)

    prompt = f"{label} (optional):"
    if name in _SECRET_FIELDS:
        return await questionary.password(prompt, style=STYLE).ask_async()
    if name in _PATH_FIELDS:
        return await questionary.path(prompt, default=default, style=STYLE).ask_async()
    return await questionary.text(prompt, default=default, style=STYLE).ask_async()


async def run_config_step(wizard: SetupWizard) -> Nav | None:
    """Collect provider fields, then run the storage existence check."""
    provider = wizard.state.provider
    if provider is None:
        return Nav.BACK
    cls = target_class(provider)
    print(f"\n{cls.label}\n")

    fields: dict[str, object] = {}
    for name, info in cls.model_fields.items():
        if name == "type":
            continue
        current = wizard.state.storage_fields.get(name)
        if current is None and not info.is_required() and info.default is not None:
            current = info.default
        value = await _ask_field(name, info.is_required(), current)
        if value is None:
            return None
        fields[name] = value.strip()
    wizard.update_fields(**fields)

    action = await questionary.select(
        "Continue?",
        choices=[Choice("Check storage", "next"), Choice("Back", "back")],
        style=STYLE,
    ).ask_async()
    if action is None:
        return None
    if action == "back":
        return Nav.BACK

    hint("\nChecking storage location...")
    try:
        await wizard.submit_configuration()
    except WizardError as e:
        print(f"\n{e}\n")
    return Nav.NEXT
