from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Optional

from .errors import AuthorizationTimeout


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


class Deadline:
    """
    Monotonic time budget for a single authorization pass.

    WHY: Identity resolution and ownership repair must finish in hundreds of
    milliseconds. When the budget is spent the caller gets an
    AuthorizationTimeout, never a silently substituted result.

    Usage:
        deadline = Deadline(300)
        ...
        deadline.check("profile lookup")
    """

    def __init__(self, budget_ms: int, clock: Callable[[], float] = time.monotonic):
        self.budget_ms = budget_ms
        self._clock = clock
        self._started = clock()

    @property
    def elapsed_ms(self) -> float:
        return (self._clock() - self._started) * 1000

    @property
    def remaining_ms(self) -> float:
        return max(0.0, self.budget_ms - self.elapsed_ms)

    @property
    def expired(self) -> bool:
        return self.elapsed_ms >= self.budget_ms

    def check(self, stage: str) -> None:
        if self.expired:
            raise AuthorizationTimeout(
                f"Authorization budget of {self.budget_ms}ms exceeded during {stage}"
            )

    def child(self, budget_ms: int) -> "Deadline":
        """A nested budget that never outlives this one."""
        return Deadline(int(min(budget_ms, self.remaining_ms)), clock=self._clock)
