"""Repository engine protocol: the remote capability the connection core depends on."""

from typing import Protocol, runtime_checkable

from core.engine.models import BlockFormat, RepositoryStatus, StorageTarget


@runtime_checkable
class RepositoryEngine(Protocol):
    """Contract for the external repository engine.

    Every method either returns its typed result or raises. Failures are
    classified by core.connection.errors.classify, so implementations may raise
    anything; EngineError carries the most information.
    """

    async def status(self) -> RepositoryStatus:
        """Current repository status."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the current repository."""
        ...

    async def create(
        self,
        target: StorageTarget,
        password: str,
        description: str | None,
        block_format: BlockFormat,
    ) -> None:
        """Start provisioning a repository. Completion is only visible via status()."""
        ...

    async def connect(self, target: StorageTarget, password: str) -> None:
        """Attach to an existing repository."""
        ...

    async def exists(self, target: StorageTarget) -> bool:
        """True if a repository is already initialized at target."""
        ...
