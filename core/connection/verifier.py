"""Connection verification: poll repository status until it reports connected.

The schedule is fixed rather than adaptive so the worst-case wait is known in
advance: 15 polls, 0.5 s after the first, 1 s after each later one, nothing
after the last (13.5 s of waiting in total).
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from core.connection.errors import ClassifiedError, classify
from core.engine.models import RepositoryStatus
from core.settings import get_setting

logger = logging.getLogger(__name__)

__all__ = [
    "Sleep",
    "VerificationResult",
    "VerificationSchedule",
    "VerifyOutcome",
    "verify_connection",
]

Sleep = Callable[[float], Awaitable[Any]]
StatusQuery = Callable[[], Awaitable[RepositoryStatus]]


@dataclass(frozen=True)
class VerificationSchedule:
    """Polling schedule. Defaults give 15 polls and 13.5 s of waiting."""

    max_attempts: int = 15
    first_delay: float = 0.5
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.first_delay < 0 or self.delay < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> "VerificationSchedule":
        cfg = get_setting(settings, "connection.verification", {})
        if not isinstance(cfg, dict):
            logger.warning("Ignoring connection.verification=%r, expected a mapping", cfg)
            cfg = {}
        return cls(
            max_attempts=int(cfg.get("max_attempts", cls.max_attempts)),
            first_delay=float(cfg.get("first_delay", cls.first_delay)),
            delay=float(cfg.get("delay", cls.delay)),
        )

    def wait_after(self, attempt: int) -> float | None:
        """Seconds to wait after 0-indexed attempt, or None if it was the last one."""
        if attempt >= self.max_attempts - 1:
            return None
        return self.first_delay if attempt == 0 else self.delay

    def total_wait(self) -> float:
        """Worst-case time spent waiting before giving up."""
        return sum(self.wait_after(i) or 0.0 for i in range(self.max_attempts))


class VerificationResult(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class VerifyOutcome:
    """What the verifier observed. ``attempts`` is the number of status queries made."""

    result: VerificationResult
    attempts: int
    status: RepositoryStatus | None = None
    error: ClassifiedError | None = None


async def verify_connection(
    query_status: StatusQuery,
    schedule: VerificationSchedule | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    on_attempt: Callable[[int], None] | None = None,
) -> VerifyOutcome:
    """Poll query_status until connected or the schedule is exhausted.

    Only "not yet connected" is retried. A failed status query is classified and
    returned immediately as FAILED.
    """
    schedule = schedule or VerificationSchedule()
    for attempt in range(schedule.max_attempts):
        if on_attempt is not None:
            on_attempt(attempt + 1)
        try:
            status = await query_status()
        except Exception as e:
            error = classify(e)
            logger.warning(
                "Status query failed on attempt %d/%d: %s (%s)",
                attempt + 1,
                schedule.max_attempts,
                error.kind.name,
                error.detail,
            )
            return VerifyOutcome(VerificationResult.FAILED, attempt + 1, error=error)

        if status.connected:
            logger.info("Repository connected after %d status check(s)", attempt + 1)
            return VerifyOutcome(VerificationResult.SUCCEEDED, attempt + 1, status=status)

        wait = schedule.wait_after(attempt)
        logger.debug(
            "Repository not connected yet (attempt %d/%d)", attempt + 1, schedule.max_attempts
        )
        if wait is not None:
            await sleep(wait)

    logger.warning(
        "Repository not connected after %d status checks (%.1fs waiting)",
        schedule.max_attempts,
        schedule.total_wait(),
    )
    return VerifyOutcome(VerificationResult.TIMED_OUT, schedule.max_attempts)
