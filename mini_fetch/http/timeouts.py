"""
Deadline bookkeeping for a single request.

A request's timeout is turned into an absolute Deadline once, when sending
starts. Before each blocking phase the remaining budget is recomputed from it,
so time spent connecting is taken out of what is left for writing and reading.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from ..exceptions import DeadlineExceededError


@dataclass(frozen=True)
class Deadline:
    """An absolute point on the monotonic clock."""

    at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        """Deadline ``seconds`` from now."""
        return cls(time.monotonic() + seconds)

    @classmethod
    def from_timeout(cls, timeout: Optional[float]) -> Optional["Deadline"]:
        """Deadline for ``timeout`` seconds, or None for an unbounded request."""
        if timeout is None:
            return None
        return cls.after(timeout)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.at


def calibrate_timeout(
    timeout: Optional[float],
    deadline: Optional[Deadline],
    phase: str = "the initial connection",
) -> Optional[float]:
    """
    Recompute the remaining budget from the deadline.

    Args:
        timeout: The budget used by the previous phase
        deadline: The request deadline
        phase: What consumed the time, used in the error message

    Returns:
        Seconds left, or ``timeout`` unchanged when there is no deadline

    Raises:
        DeadlineExceededError: If the deadline has already been reached
    """
    if timeout is None or deadline is None:
        return timeout

    balance = deadline.at - time.monotonic()
    if balance <= 0:
        # A zero or negative socket timeout would mean "non-blocking" or
        # "invalid", never "already late"
        raise DeadlineExceededError(
            f"the request's timeout was reached during {phase}",
            timeout_value=timeout,
        )
    return balance
