"""Error classification for repository connection attempts.

``classify`` turns any failure value into exactly one ``ErrorKind`` with a fixed
user-facing message. It never raises: values it cannot recognise become
``ErrorKind.UNKNOWN``.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto

import httpx

from core.engine.errors import ApiErrorCode, EngineError, ErrorCode

logger = logging.getLogger(__name__)

__all__ = [
    "AttemptInProgressError",
    "ClassifiedError",
    "ConnectionFailure",
    "ErrorKind",
    "classify",
]


class ErrorKind(Enum):
    """Closed set of connection failure kinds, each with one fixed user message."""

    ALREADY_CONNECTED = auto()
    REPOSITORY_NOT_FOUND = auto()
    CONNECTION_REFUSED = auto()
    SERVER_NOT_RUNNING = auto()
    INVALID_PASSWORD = auto()
    VERIFICATION_TIMED_OUT = auto()
    DISCONNECT_FAILED = auto()
    UNKNOWN = auto()

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def recoverable(self) -> bool:
        """True when resubmitting after fixing the environment is expected to help."""
        return self in (ErrorKind.CONNECTION_REFUSED, ErrorKind.SERVER_NOT_RUNNING)


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.ALREADY_CONNECTED: (
        "Already connected to a repository. Disconnect first and try again."
    ),
    ErrorKind.REPOSITORY_NOT_FOUND: "Repository not found or not initialized at this location.",
    ErrorKind.CONNECTION_REFUSED: (
        "Could not reach the storage or server. Check the address and network."
    ),
    ErrorKind.SERVER_NOT_RUNNING: "The Kopia server is not running. Start it and try again.",
    ErrorKind.INVALID_PASSWORD: "Invalid repository password.",
    ErrorKind.VERIFICATION_TIMED_OUT: (
        "The operation completed but the connection could not be verified. "
        "Check the repository status before trying again."
    ),
    ErrorKind.DISCONNECT_FAILED: (
        "Could not disconnect from the current repository; its state is unknown. "
        "Resolve this before connecting again."
    ),
    ErrorKind.UNKNOWN: "An unexpected error occurred.",
}


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    detail: str = ""


class ConnectionFailure(Exception):
    """A failure synthesised by the connection core with a known kind."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        super().__init__(detail or kind.message)
        self.kind = kind
        self.detail = detail


class AttemptInProgressError(RuntimeError):
    """A connection attempt was started while another one is still running."""


# Priority order: first matching rule wins.
_CODE_RULES: tuple[tuple[ErrorKind, frozenset[str]], ...] = (
    (
        ErrorKind.ALREADY_CONNECTED,
        frozenset(
            {
                ApiErrorCode.ALREADY_CONNECTED,
                ApiErrorCode.ALREADY_INITIALIZED,
                ErrorCode.REPOSITORY_ALREADY_CONNECTED,
                "REPOSITORY_ALREADY_EXISTS",
            }
        ),
    ),
    (
        ErrorKind.REPOSITORY_NOT_FOUND,
        frozenset(
            {
                ApiErrorCode.NOT_INITIALIZED,
                ApiErrorCode.NOT_CONNECTED,
                ErrorCode.REPOSITORY_NOT_FOUND,
                ErrorCode.REPOSITORY_NOT_CONNECTED,
            }
        ),
    ),
    (
        ErrorKind.CONNECTION_REFUSED,
        frozenset(
            {
                ErrorCode.CONNECTION_REFUSED,
                ApiErrorCode.STORAGE_CONNECTION,
                ErrorCode.STORAGE_CONNECTION_FAILED,
            }
        ),
    ),
    (ErrorKind.SERVER_NOT_RUNNING, frozenset({ErrorCode.SERVER_NOT_RUNNING})),
    (
        ErrorKind.INVALID_PASSWORD,
        frozenset(
            {
                ApiErrorCode.INVALID_PASSWORD,
                ApiErrorCode.INVALID_TOKEN,
                ApiErrorCode.ACCESS_DENIED,
            }
        ),
    ),
)


def _codes_of(failure: object) -> tuple[set[str], int | None]:
    """Extract (codes, http_status) from a failure value. Never raises."""
    if isinstance(failure, EngineError):
        codes = {c for c in (failure.code, failure.api_error_code) if isinstance(c, str)}
        return codes, failure.status_code
    if isinstance(failure, httpx.ConnectError | ConnectionRefusedError):
        return {ErrorCode.CONNECTION_REFUSED}, None
    if isinstance(failure, httpx.HTTPStatusError):
        return set(), failure.response.status_code
    if isinstance(failure, dict):
        # Serialised error: {"type": CODE, "data": {"api_error_code": ..., "status_code": ...}}
        codes: set[str] = set()
        for key in ("type", "code"):
            if isinstance(failure.get(key), str):
                codes.add(failure[key])
        data = failure.get("data")
        status = None
        if isinstance(data, dict):
            if isinstance(data.get("api_error_code"), str):
                codes.add(data["api_error_code"])
            if isinstance(data.get("status_code"), int):
                status = data["status_code"]
        return codes, status
    return set(), None


def _detail_of(failure: object) -> str:
    try:
        return str(failure) if failure is not None else ""
    except Exception:
        return repr(type(failure))


def classify(failure: object) -> ClassifiedError:
    """Map any failure to a ClassifiedError. Pure and total."""
    if isinstance(failure, ConnectionFailure):
        return ClassifiedError(failure.kind, failure.kind.message, failure.detail)

    try:
        codes, status = _codes_of(failure)
    except Exception:
        logger.debug("Could not inspect failure %r", type(failure), exc_info=True)
        codes, status = set(), None

    kind = ErrorKind.UNKNOWN
    for candidate, rule_codes in _CODE_RULES:
        if codes & rule_codes:
            kind = candidate
            break
    else:
        if isinstance(failure, EngineError):
            auth = failure.is_auth_error()
        else:
            auth = status in (401, 403)
        if auth:
            kind = ErrorKind.INVALID_PASSWORD

    return ClassifiedError(kind, kind.message, _detail_of(failure))
