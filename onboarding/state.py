"""Shared wizard state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.connection import AttemptOutcome, ConnectionIntent
from core.engine.models import BlockFormat


class WizardStep(Enum):
    PROVIDER_SELECTION = "provider"
    PROVIDER_CONFIGURATION = "config"
    STORAGE_VERIFICATION = "verify"
    CREDENTIAL_ENTRY = "password"
    COMPLETE = "complete"


# Back affordance: each step returns to its immediate predecessor
PREVIOUS_STEP: dict[WizardStep, WizardStep] = {
    WizardStep.PROVIDER_CONFIGURATION: WizardStep.PROVIDER_SELECTION,
    WizardStep.STORAGE_VERIFICATION: WizardStep.PROVIDER_CONFIGURATION,
    WizardStep.CREDENTIAL_ENTRY: WizardStep.STORAGE_VERIFICATION,
}


class StorageCheck(Enum):
    """Result of the repository existence check at the configured target."""

    PENDING = "pending"
    EXISTS = "exists"
    NOT_EXISTS = "not-exists"
    ERROR = "error"


class Nav(Enum):
    """Navigation choice returned by interactive steps."""

    NEXT = "next"
    BACK = "back"


@dataclass
class WizardState:
    """Mutable state collected during one setup flow."""

    step: WizardStep = WizardStep.PROVIDER_SELECTION
    provider: str | None = None
    storage_fields: dict[str, Any] = field(default_factory=dict)
    storage_check: StorageCheck = StorageCheck.PENDING
    storage_error: str | None = None
    intent: ConnectionIntent | None = None
    password: str = ""
    confirm_password: str = ""
    description: str = ""
    block_format: BlockFormat = field(default_factory=BlockFormat)
    busy: bool = False
    last_outcome: AttemptOutcome | None = None

    def clear_credentials(self) -> None:
        self.password = ""
        self.confirm_password = ""

    def __repr__(self) -> str:
        return (
            f"WizardState(step={self.step.name}, provider={self.provider!r}, "
            f"storage_check={self.storage_check.name}, intent={self.intent}, busy={self.busy})"
        )
