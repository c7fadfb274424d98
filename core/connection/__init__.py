"""Repository connection core: error classification, verification, orchestration."""

from core.connection.errors import (
    AttemptInProgressError,
    ClassifiedError,
    ConnectionFailure,
    ErrorKind,
    classify,
)
from core.connection.orchestrator import (
    AttemptOutcome,
    AttemptResult,
    ConnectionAttempt,
    ConnectionIntent,
    ConnectionOrchestrator,
    Credentials,
    SettleDelays,
    build_orchestrator,
)
from core.connection.verifier import VerificationResult, VerificationSchedule, verify_connection

__all__ = [
    "AttemptInProgressError",
    "AttemptOutcome",
    "AttemptResult",
    "ClassifiedError",
    "ConnectionAttempt",
    "ConnectionFailure",
    "ConnectionIntent",
    "ConnectionOrchestrator",
    "Credentials",
    "ErrorKind",
    "SettleDelays",
    "VerificationResult",
    "VerificationSchedule",
    "build_orchestrator",
    "classify",
    "verify_connection",
]
