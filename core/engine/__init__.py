"""Repository engine boundary: storage models, errors, protocol and Kopia HTTP client."""

from core.engine.client import KopiaClient
from core.engine.errors import ApiErrorCode, EngineError, ErrorCode
from core.engine.models import (
    BlockFormat,
    RepositoryStatus,
    StorageTarget,
    SupportedAlgorithms,
    build_target,
    is_submittable,
)
from core.engine.protocol import RepositoryEngine

__all__ = [
    "ApiErrorCode",
    "BlockFormat",
    "EngineError",
    "ErrorCode",
    "KopiaClient",
    "RepositoryEngine",
    "RepositoryStatus",
    "StorageTarget",
    "SupportedAlgorithms",
    "build_target",
    "is_submittable",
]
