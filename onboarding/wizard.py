"""Setup wizard: step sequencing and the interactive driver.

``SetupWizard`` is the state machine (no I/O besides engine calls), so it can be
driven by the terminal front-end below or by tests. Step order:

    provider selection -> provider configuration -> storage verification
    -> credential entry -> submit
"""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from core.connection import (
    AttemptOutcome,
    ConnectionAttempt,
    ConnectionIntent,
    ConnectionOrchestrator,
    Credentials,
    classify,
)
from core.engine.models import (
    BlockFormat,
    SupportedAlgorithms,
    build_target,
    is_submittable,
    missing_fields,
    target_class,
)
from core.engine.protocol import RepositoryEngine
from onboarding.state import PREVIOUS_STEP, Nav, StorageCheck, WizardState, WizardStep

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Which intent each existence-check result offers
_OFFERED_INTENT: dict[StorageCheck, ConnectionIntent] = {
    StorageCheck.EXISTS: ConnectionIntent.CONNECT,
    StorageCheck.NOT_EXISTS: ConnectionIntent.CREATE,
}


class WizardError(Exception):
    """Invalid wizard action (wrong step, incomplete input). Raised before any engine call."""


class SetupWizard:
    """State machine for one repository setup flow."""

    def __init__(
        self,
        engine: RepositoryEngine,
        orchestrator: ConnectionOrchestrator,
        state: WizardState | None = None,
    ) -> None:
        self._engine = engine
        self._orchestrator = orchestrator
        self.state = state or WizardState()

    @property
    def step(self) -> WizardStep:
        return self.state.step

    def _require(self, step: WizardStep) -> None:
        if self.state.step is not step:
            raise WizardError(f"expected step {step.name}, wizard is at {self.state.step.name}")

    # -- provider selection / configuration ---------------------------------

    def select_provider(self, provider: str) -> None:
        self._require(WizardStep.PROVIDER_SELECTION)
        try:
            target_class(provider)
        except KeyError:
            raise WizardError(f"unknown storage provider {provider!r}") from None
        self.state.provider = provider
        self.state.storage_fields = {}
        self.state.step = WizardStep.PROVIDER_CONFIGURATION

    def update_fields(self, **fields: object) -> None:
        self._require(WizardStep.PROVIDER_CONFIGURATION)
        self.state.storage_fields.update(fields)

    def missing_fields(self) -> list[str]:
        if self.state.provider is None:
            return []
        return missing_fields(self.state.provider, self.state.storage_fields)

    async def submit_configuration(self) -> StorageCheck:
        """Move to storage verification and run the existence check."""
        self._require(WizardStep.PROVIDER_CONFIGURATION)
        if not is_submittable(self.state.provider, self.state.storage_fields):
            missing = ", ".join(self.missing_fields()) or "invalid values"
            raise WizardError(f"storage configuration incomplete: {missing}")
        self.state.step = WizardStep.STORAGE_VERIFICATION
        return await self.check_storage()

    # -- storage verification ----------------------------------------------

    async def check_storage(self) -> StorageCheck:
        """Run one existence check. An error only offers retrying this check."""
        self._require(WizardStep.STORAGE_VERIFICATION)
        state = self.state
        state.storage_check = StorageCheck.PENDING
        state.storage_error = None
        target = self._target()
        try:
            exists = await self._engine.exists(target)
        except Exception as e:
            error = classify(e)
            logger.warning("Existence check failed for %s: %s", target.describe(), error.detail)
            state.storage_check = StorageCheck.ERROR
            state.storage_error = error.detail or error.message
            return state.storage_check
        state.storage_check = StorageCheck.EXISTS if exists else StorageCheck.NOT_EXISTS
        logger.info("Existence check for %s: %s", target.describe(), state.storage_check.value)
        return state.storage_check

    def offered_intent(self) -> ConnectionIntent | None:
        return _OFFERED_INTENT.get(self.state.storage_check)

    def choose_intent(self, intent: ConnectionIntent) -> None:
        """Fix the intent from the user's choice; only the offered intent is accepted."""
        self._require(WizardStep.STORAGE_VERIFICATION)
        offered = self.offered_intent()
        if offered is None:
            raise WizardError("storage check has not found whether a repository exists")
        if intent is not offered:
            raise WizardError(
                f"{intent.value} is not available; storage check offers {offered.value}"
            )
        self.state.intent = intent
        self.state.clear_credentials()
        self.state.step = WizardStep.CREDENTIAL_ENTRY

    async def supported_algorithms(self) -> SupportedAlgorithms:
        """Algorithms the engine offers for new repositories; built-in defaults if unavailable."""
        fetch = getattr(self._engine, "algorithms", None)
        if fetch is None:
            return SupportedAlgorithms()
        try:
            return await fetch()
        except Exception as e:
            logger.info("Could not load supported algorithms, using defaults: %s", e)
            return SupportedAlgorithms()

    # -- credential entry ----------------------------------------------------

    def set_credentials(
        self,
        password: str,
        confirm_password: str = "",
        description: str = "",
        block_format: BlockFormat | None = None,
    ) -> None:
        self._require(WizardStep.CREDENTIAL_ENTRY)
        self.state.password = password
        self.state.confirm_password = confirm_password
        self.state.description = description
        if block_format is not None:
            self.state.block_format = block_format

    def credential_problems(self) -> list[str]:
        """Reasons the credential form cannot be submitted yet (empty when ready)."""
        state = self.state
        problems: list[str] = []
        if not state.password:
            problems.append("Password is required")
            return problems
        if state.intent is ConnectionIntent.CREATE:
            if len(state.password) < MIN_PASSWORD_LENGTH:
                problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
            if state.password != state.confirm_password:
                problems.append("Passwords do not match")
        return problems

    @property
    def can_submit(self) -> bool:
        return (
            self.state.step is WizardStep.CREDENTIAL_ENTRY
            and not self.state.busy
            and self.state.intent is not None
            and is_submittable(self.state.provider, self.state.storage_fields)
            and not self.credential_problems()
        )

    async def submit(self) -> AttemptOutcome:
        """Run the connection attempt once. Stays on credential entry unless it succeeds."""
        self._require(WizardStep.CREDENTIAL_ENTRY)
        state = self.state
        if state.busy:
            raise WizardError("a submission is already in progress")
        if state.intent is None:
            raise WizardError("no connection intent chosen")
        problems = self.credential_problems()
        if problems:
            raise WizardError("; ".join(problems))

        description = None
        if state.intent is ConnectionIntent.CREATE:
            description = state.description.strip() or None
        attempt = ConnectionAttempt(
            intent=state.intent,
            target=self._target(),
            credentials=Credentials(password=state.password, description=description),
            block_format=state.block_format,
        )
        state.busy = True
        try:
            outcome = await self._orchestrator.run(attempt)
        finally:
            state.busy = False

        state.last_outcome = outcome
        if outcome.ok:
            state.clear_credentials()
            state.step = WizardStep.COMPLETE
        return outcome

    # -- navigation ------------------------------------------------------------

    def back(self) -> WizardStep:
        state = self.state
        if state.busy:
            raise WizardError("cannot go back while a submission is in progress")
        previous = PREVIOUS_STEP.get(state.step)
        if previous is None:
            raise WizardError(f"no step before {state.step.name}")
        if state.step is WizardStep.CREDENTIAL_ENTRY:
            state.clear_credentials()
            state.intent = None
        elif state.step is WizardStep.STORAGE_VERIFICATION:
            state.storage_check = StorageCheck.PENDING
            state.storage_error = None
        elif state.step is WizardStep.PROVIDER_CONFIGURATION:
            state.storage_fields = {}
        state.step = previous
        return previous

    def _target(self):
        try:
            return build_target(self.state.provider or "", self.state.storage_fields)
        except ValidationError as e:
            raise WizardError(f"invalid storage configuration: {e}") from e


@dataclass
class WizardResult:
    """Result of running the interactive wizard."""

    success: bool
    outcome: AttemptOutcome | None = None


async def run_wizard(
    engine: RepositoryEngine, orchestrator: ConnectionOrchestrator
) -> WizardResult:
    """Drive SetupWizard from the terminal until it completes or the user quits."""
    from onboarding.steps import (
        run_config_step,
        run_credential_step,
        run_provider_step,
        run_verify_step,
    )

    wizard = SetupWizard(engine, orchestrator)
    steps = {
        WizardStep.PROVIDER_SELECTION: run_provider_step,
        WizardStep.PROVIDER_CONFIGURATION: run_config_step,
        WizardStep.STORAGE_VERIFICATION: run_verify_step,
        WizardStep.CREDENTIAL_ENTRY: run_credential_step,
    }

    while wizard.step is not WizardStep.COMPLETE:
        nav = await steps[wizard.step](wizard)
        if nav is None:
            return WizardResult(success=False, outcome=wizard.state.last_outcome)
        if nav is Nav.BACK:
            wizard.back()

    return WizardResult(success=True, outcome=wizard.state.last_outcome)
