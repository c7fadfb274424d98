"""Repository connection orchestration.

One attempt runs four steps in strict order:

1. pre-flight: if the engine reports a connected repository, disconnect it and
   let the engine settle. A failed disconnect ends the attempt; create/connect
   never runs while the previous session's state is unknown.
2. provision (create + settle) or attach (connect).
3. verify: poll status on a fixed schedule (see verifier).
4. report: an AttemptOutcome. Engine failures never escape as exceptions.

The create/connect call is never re-issued within an attempt, including after a
verification timeout, because the repository may already be provisioned.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from core.connection.errors import (
    AttemptInProgressError,
    ClassifiedError,
    ConnectionFailure,
    ErrorKind,
    classify,
)
from core.connection.verifier import (
    Sleep,
    VerificationResult,
    VerificationSchedule,
    verify_connection,
)
from core.engine.models import BlockFormat, RepositoryStatus, StorageTarget
from core.engine.protocol import RepositoryEngine
from core.settings import get_setting

logger = logging.getLogger(__name__)

__all__ = [
    "AttemptOutcome",
    "AttemptResult",
    "ConnectionAttempt",
    "ConnectionIntent",
    "ConnectionOrchestrator",
    "Credentials",
    "SettleDelays",
    "build_orchestrator",
]


class ConnectionIntent(Enum):
    CREATE = "create"
    CONNECT = "connect"


@dataclass(frozen=True)
class Credentials:
    """Repository password, plus a description used only when creating."""

    password: str
    description: str | None = None

    def __repr__(self) -> str:
        return f"Credentials(password='***', description={self.description!r})"


class AttemptResult(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class AttemptOutcome:
    """Terminal outcome: Succeeded(status) | Failed(kind, message) | TimedOut."""

    result: AttemptResult
    status: RepositoryStatus | None = None
    kind: ErrorKind | None = None
    message: str = ""
    detail: str = ""

    @classmethod
    def succeeded(cls, status: RepositoryStatus) -> "AttemptOutcome":
        return cls(AttemptResult.SUCCEEDED, status=status)

    @classmethod
    def failed(cls, error: ClassifiedError) -> "AttemptOutcome":
        return cls(
            AttemptResult.FAILED, kind=error.kind, message=error.message, detail=error.detail
        )

    @classmethod
    def timed_out(cls) -> "AttemptOutcome":
        kind = ErrorKind.VERIFICATION_TIMED_OUT
        return cls(AttemptResult.TIMED_OUT, kind=kind, message=kind.message)

    @property
    def ok(self) -> bool:
        return self.result is AttemptResult.SUCCEEDED


@dataclass
class ConnectionAttempt:
    """State of one user-initiated submission. Never persisted."""

    intent: ConnectionIntent
    target: StorageTarget
    credentials: Credentials
    block_format: BlockFormat = field(default_factory=BlockFormat)
    retries: int = 0
    outcome: AttemptOutcome | None = None

    @property
    def finished(self) -> bool:
        return self.outcome is not None


@dataclass(frozen=True)
class SettleDelays:
    """Fixed waits after remote calls that have no completion signal.

    These are heuristics, not acknowledgements from the engine.
    """

    disconnect: float = 0.5
    provision: float = 2.0

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "SettleDelays":
        return cls(
            disconnect=float(get_setting(settings, "connection.disconnect_settle", cls.disconnect)),
            provision=float(get_setting(settings, "connection.provision_settle", cls.provision)),
        )


class ConnectionOrchestrator:
    """Runs connection attempts against one engine, one at a time.

    The only component that calls disconnect/create/connect on the engine.
    """

    def __init__(
        self,
        engine: RepositoryEngine,
        *,
        settle: SettleDelays | None = None,
        schedule: VerificationSchedule | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._engine = engine
        self._settle = settle or SettleDelays()
        self._schedule = schedule or VerificationSchedule()
        self._sleep = sleep
        self._busy = False

    @property
    def busy(self) -> bool:
        """True while an attempt is in flight."""
        return self._busy

    async def run_connection_attempt(
        self,
        target: StorageTarget,
        intent: ConnectionIntent,
        credentials: Credentials,
        block_format: BlockFormat | None = None,
    ) -> AttemptOutcome:
        """Create an attempt and run it. Raises only AttemptInProgressError."""
        attempt = ConnectionAttempt(
            intent=intent,
            target=target,
            credentials=credentials,
            block_format=block_format or BlockFormat(),
        )
        return await self.run(attempt)

    async def run(self, attempt: ConnectionAttempt) -> AttemptOutcome:
        """Run a caller-owned attempt to its terminal outcome.

        The outcome is also stored on ``attempt.outcome``; no reference to the
        attempt is kept afterwards.
        """
        if self._busy:
            raise AttemptInProgressError("a connection attempt is already in progress")
        if attempt.finished:
            raise ValueError("attempt already has an outcome; start a new attempt")
        self._busy = True
        try:
            outcome = await self._run_steps(attempt)
        except Exception as e:
            # Anything not handled by a step still ends the attempt with an outcome
            logger.exception("Connection attempt failed unexpectedly")
            outcome = AttemptOutcome.failed(classify(e))
        finally:
            self._busy = False
        attempt.outcome = outcome
        self._log_outcome(attempt, outcome)
        return outcome

    async def _run_steps(self, attempt: ConnectionAttempt) -> AttemptOutcome:
        logger.info(
            "Starting %s attempt for %s", attempt.intent.value, attempt.target.describe()
        )

        failure = await self._preflight()
        if failure is not None:
            return failure

        failure = await self._provision_or_attach(attempt)
        if failure is not None:
            return failure

        return await self._verify(attempt)

    async def _preflight(self) -> AttemptOutcome | None:
        """Disconnect a previous session. Returns a terminal outcome on failure."""
        try:
            current = await self._engine.status()
        except Exception as e:
            # Status is unavailable (e.g. server still starting); create/connect will report it
            logger.info("Pre-flight status unavailable, assuming not connected: %s", e)
            return None

        if not current.connected:
            return None

        logger.info("Repository already connected (%s); disconnecting first", current.storage)
        try:
            await self._disconnect()
        except ConnectionFailure as e:
            logger.warning("Disconnect failed, repository state unknown: %s", e.detail)
            return AttemptOutcome.failed(classify(e))
        await self._sleep(self._settle.disconnect)
        return None

    async def _disconnect(self) -> None:
        try:
            await self._engine.disconnect()
        except Exception as e:
            raise ConnectionFailure(ErrorKind.DISCONNECT_FAILED, str(e)) from e

    async def _provision_or_attach(self, attempt: ConnectionAttempt) -> AttemptOutcome | None:
        try:
            if attempt.intent is ConnectionIntent.CREATE:
                await self._engine.create(
                    attempt.target,
                    attempt.credentials.password,
                    attempt.credentials.description or None,
                    attempt.block_format,
                )
                logger.info(
                    "Create request accepted; waiting %.1fs for provisioning",
                    self._settle.provision,
                )
                await self._sleep(self._settle.provision)
            else:
                await self._engine.connect(attempt.target, attempt.credentials.password)
                logger.info("Connect request accepted")
        except Exception as e:
            error = classify(e)
            logger.warning(
                "%s failed: %s (%s)",
                attempt.intent.value.capitalize(),
                error.kind.name,
                error.detail,
            )
            return AttemptOutcome.failed(error)
        return None

    async def _verify(self, attempt: ConnectionAttempt) -> AttemptOutcome:
        def count(_: int) -> None:
            attempt.retries += 1

        verified = await verify_connection(
            self._engine.status,
            self._schedule,
            sleep=self._sleep,
            on_attempt=count,
        )
        if verified.result is VerificationResult.SUCCEEDED and verified.status is not None:
            return AttemptOutcome.succeeded(verified.status)
        if verified.result is VerificationResult.FAILED and verified.error is not None:
            return AttemptOutcome.failed(verified.error)
        return AttemptOutcome.timed_out()

    @staticmethod
    def _log_outcome(attempt: ConnectionAttempt, outcome: AttemptOutcome) -> None:
        if outcome.ok:
            logger.info(
                "%s attempt succeeded after %d status check(s)",
                attempt.intent.value.capitalize(),
                attempt.retries,
            )
        else:
            logger.warning(
                "%s attempt ended %s: %s",
                attempt.intent.value.capitalize(),
                outcome.result.value,
                outcome.kind.name if outcome.kind else "-",
            )


def build_orchestrator(
    engine: RepositoryEngine, settings: dict[str, Any]
) -> ConnectionOrchestrator:
    """Orchestrator with settle delays and verification schedule from settings.connection."""
    return ConnectionOrchestrator(
        engine,
        settle=SettleDelays.from_settings(settings),
        schedule=VerificationSchedule.from_settings(settings),
    )
