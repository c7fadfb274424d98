"""HTTP client for the Kopia server repository API."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from core.engine.errors import ApiErrorCode, EngineError, ErrorCode
from core.engine.models import BlockFormat, RepositoryStatus, StorageTarget, SupportedAlgorithms
from core.secrets import resolve_server_password
from core.settings import get_setting

logger = logging.getLogger(__name__)

_API = "/api/v1/repo"


class KopiaClient:
    """RepositoryEngine backed by a running Kopia server.

    One client holds one connection pool; use it as an async context manager or
    call aclose() when done.
    """

    def __init__(
        self,
        base_url: str | None,
        username: str = "kopia",
        password: str | None = None,
        timeout: float = 30.0,
        verify: bool | str = False,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._auth = httpx.BasicAuth(username, password) if password else None
        self._timeout = timeout
        self._verify = verify
        self._client: httpx.AsyncClient | None = None

    @classmethod
    async def from_settings(
        cls, settings: dict[str, Any], password: str | None = None
    ) -> "KopiaClient":
        """Build a client from settings.server.

        Without an explicit password, it is resolved from the keyring or env.
        """
        if password is None:
            password = await resolve_server_password(settings)
        return cls(
            base_url=get_setting(settings, "server.url"),
            username=get_setting(settings, "server.username", "kopia"),
            password=password,
            timeout=float(get_setting(settings, "server.timeout", 30.0)),
            verify=get_setting(settings, "server.verify_tls", False),
        )

    async def __aenter__(self) -> "KopiaClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._base_url is None:
            raise EngineError("Kopia server is not running", ErrorCode.SERVER_NOT_RUNNING)
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self._timeout,
                verify=self._verify,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = self._http()
        try:
            return await client.request(method, _API + path, json=payload)
        except httpx.TimeoutException as e:
            raise EngineError(f"{operation}: request timed out", ErrorCode.TIMEOUT) from e
        except httpx.ConnectError as e:
            raise EngineError(f"{operation}: {e}", ErrorCode.CONNECTION_REFUSED) from e
        except httpx.HTTPError as e:
            raise EngineError(f"{operation}: {e}", ErrorCode.HTTP_REQUEST_FAILED) from e

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        raise EngineError.from_api_response(response.status_code, response.text, operation)

    async def status(self) -> RepositoryStatus:
        operation = "Get repository status"
        resp = await self._request("GET", "/status", operation)
        self._check(resp, operation)
        try:
            return RepositoryStatus.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise EngineError(
                f"{operation}: unexpected response: {e}", ErrorCode.RESPONSE_PARSE_ERROR
            ) from e

    async def disconnect(self) -> None:
        operation = "Disconnect from repository"
        resp = await self._request("POST", "/disconnect", operation)
        self._check(resp, operation)

    async def create(
        self,
        target: StorageTarget,
        password: str,
        description: str | None,
        block_format: BlockFormat,
    ) -> None:
        operation = "Create repository"
        payload: dict[str, Any] = {
            "storage": target.storage_config(),
            "password": password,
            "options": {"blockFormat": block_format.model_dump()},
        }
        if description:
            payload["clientOptions"] = {"description": description}
        logger.debug("Creating repository at %s", target.describe())
        resp = await self._request("POST", "/create", operation, payload)
        self._check(resp, operation)

    async def connect(self, target: StorageTarget, password: str) -> None:
        operation = "Connect to repository"
        payload = {"storage": target.storage_config(), "password": password}
        logger.debug("Connecting to repository at %s", target.describe())
        resp = await self._request("POST", "/connect", operation, payload)
        self._check(resp, operation)

    async def exists(self, target: StorageTarget) -> bool:
        """True on 200; False when the location is reachable but NOT_INITIALIZED."""
        operation = "Check repository exists"
        resp = await self._request(
            "POST", "/exists", operation, {"storage": target.storage_config()}
        )
        try:
            self._check(resp, operation)
        except EngineError as e:
            if e.is_code(ApiErrorCode.NOT_INITIALIZED):
                return False
            raise
        return True

    async def algorithms(self) -> SupportedAlgorithms:
        operation = "Get algorithms"
        resp = await self._request("GET", "/algorithms", operation)
        self._check(resp, operation)
        try:
            return SupportedAlgorithms.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise EngineError(
                f"{operation}: unexpected response: {e}", ErrorCode.RESPONSE_PARSE_ERROR
            ) from e
