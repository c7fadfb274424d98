"""Test doubles: an in-memory repository engine and a recording sleep."""

from typing import Any

from core.engine.models import BlockFormat, RepositoryStatus, SupportedAlgorithms


class FakeEngine:
    """In-memory RepositoryEngine.

    ``statuses`` is consumed one item per status() call; the last item repeats.
    Items are bools (connected flag), RepositoryStatus objects or exceptions.
    """

    def __init__(
        self,
        statuses: list[Any] | None = None,
        *,
        exists: bool | Exception = False,
        disconnect_error: Exception | None = None,
        create_error: Exception | None = None,
        connect_error: Exception | None = None,
    ) -> None:
        self._statuses = list(statuses if statuses is not None else [False])
        self._exists = exists
        self._disconnect_error = disconnect_error
        self._create_error = create_error
        self._connect_error = connect_error
        self.calls: list[str] = []
        self.created: list[dict[str, Any]] = []
        self.connected_with: list[dict[str, Any]] = []

    def count(self, name: str) -> int:
        return self.calls.count(name)

    async def status(self) -> RepositoryStatus:
        self.calls.append("status")
        item = self._statuses.pop(0) if len(self._statuses) > 1 else self._statuses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, RepositoryStatus):
            return item
        return RepositoryStatus(connected=bool(item), storage="filesystem" if item else None)

    async def disconnect(self) -> None:
        self.calls.append("disconnect")
        if self._disconnect_error is not None:
            raise self._disconnect_error

    async def create(
        self, target: Any, password: str, description: str | None, block_format: BlockFormat
    ) -> None:
        self.calls.append("create")
        self.created.append(
            {
                "target": target,
                "password": password,
                "description": description,
                "block_format": block_format,
            }
        )
        if self._create_error is not None:
            raise self._create_error

    async def connect(self, target: Any, password: str) -> None:
        self.calls.append("connect")
        self.connected_with.append({"target": target, "password": password})
        if self._connect_error is not None:
            raise self._connect_error

    async def exists(self, target: Any) -> bool:
        self.calls.append("exists")
        if isinstance(self._exists, Exception):
            raise self._exists
        return self._exists

    async def algorithms(self) -> SupportedAlgorithms:
        return SupportedAlgorithms()


class RecordingSleep:
    """Sleep replacement that records requested waits instead of waiting."""

    def __init__(self) -> None:
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.waits)
