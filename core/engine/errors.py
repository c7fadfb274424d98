"""Errors raised by the repository engine client.

The engine replies to failed calls with ``{"code": "...", "error": "..."}``.
``EngineError.from_api_response`` maps the known API codes to local codes and
keeps the raw API code and HTTP status so callers can classify further.
"""

import json
from typing import Any

__all__ = ["EngineError", "ErrorCode", "ApiErrorCode"]


class ApiErrorCode:
    """Error codes returned in the engine's JSON error body."""

    INTERNAL = "INTERNAL"
    ALREADY_CONNECTED = "ALREADY_CONNECTED"
    ALREADY_INITIALIZED = "ALREADY_INITIALIZED"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    INVALID_TOKEN = "INVALID_TOKEN"
    MALFORMED_REQUEST = "MALFORMED_REQUEST"
    NOT_CONNECTED = "NOT_CONNECTED"
    NOT_FOUND = "NOT_FOUND"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    STORAGE_CONNECTION = "STORAGE_CONNECTION"
    ACCESS_DENIED = "ACCESS_DENIED"


class ErrorCode:
    """Local error codes assigned by the client."""

    SERVER_NOT_RUNNING = "SERVER_NOT_RUNNING"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    TIMEOUT = "TIMEOUT"
    REPOSITORY_NOT_FOUND = "REPOSITORY_NOT_FOUND"
    REPOSITORY_NOT_CONNECTED = "REPOSITORY_NOT_CONNECTED"
    REPOSITORY_ALREADY_CONNECTED = "REPOSITORY_ALREADY_CONNECTED"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    HTTP_REQUEST_FAILED = "HTTP_REQUEST_FAILED"
    RESPONSE_PARSE_ERROR = "RESPONSE_PARSE_ERROR"


_API_TO_LOCAL: dict[str, str] = {
    ApiErrorCode.NOT_INITIALIZED: ErrorCode.REPOSITORY_NOT_FOUND,
    ApiErrorCode.INVALID_PASSWORD: ErrorCode.INVALID_PASSWORD,
    ApiErrorCode.ALREADY_CONNECTED: ErrorCode.REPOSITORY_ALREADY_CONNECTED,
    ApiErrorCode.NOT_CONNECTED: ErrorCode.REPOSITORY_NOT_CONNECTED,
    ApiErrorCode.STORAGE_CONNECTION: ErrorCode.STORAGE_CONNECTION_FAILED,
}

_AUTH_API_CODES = frozenset(
    {ApiErrorCode.INVALID_PASSWORD, ApiErrorCode.INVALID_TOKEN, ApiErrorCode.ACCESS_DENIED}
)


class EngineError(Exception):
    """A failed call to the repository engine."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        status_code: int | None = None,
        api_error_code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.api_error_code = api_error_code
        self.details = details

    def __repr__(self) -> str:
        return (
            f"EngineError({self.message!r}, code={self.code!r}, "
            f"status_code={self.status_code!r}, api_error_code={self.api_error_code!r})"
        )

    def is_code(self, *codes: str) -> bool:
        """True if the local or the API error code is one of codes."""
        return self.code in codes or self.api_error_code in codes

    def is_auth_error(self) -> bool:
        if self.is_code(ErrorCode.INVALID_PASSWORD, *_AUTH_API_CODES):
            return True
        return self.status_code in (401, 403)

    @classmethod
    def from_api_response(cls, status: int, body: str, operation: str) -> "EngineError":
        """Build an error from a non-2xx engine response."""
        try:
            data = json.loads(body) if body else None
        except ValueError:
            data = None

        if not isinstance(data, dict):
            return cls(
                f"{operation}: {status} - {body}".rstrip(" -"),
                ErrorCode.HTTP_REQUEST_FAILED,
                status_code=status,
            )

        api_code = data.get("code")
        message = data.get("error") or data.get("message") or "Unknown error"
        local = _API_TO_LOCAL.get(api_code) if isinstance(api_code, str) else None
        if local is None:
            return cls(
                f"{operation}: {message}",
                ErrorCode.HTTP_REQUEST_FAILED,
                status_code=status,
                api_error_code=api_code,
                details=data,
            )
        return cls(message, local, status_code=status, api_error_code=api_code, details=data)
