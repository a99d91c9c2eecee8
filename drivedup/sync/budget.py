# drivedup Time Budget
# Wall-clock deadline for one execution

import time
from collections.abc import Callable


class TimeBudget:
    """
    Deadline of the current execution.

    The deadline is fixed when the budget is created. `expired()` is cheap
    and is meant to be called before every unit of work.
    """

    def __init__(self, limit_seconds: float, clock: Callable[[], float] = time.monotonic):
        if limit_seconds <= 0:
            raise ValueError("limit_seconds must be positive")
        self.limit_seconds = limit_seconds
        self._clock = clock
        self.started_at = clock()
        self.deadline = self.started_at + limit_seconds

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self.deadline - self._clock())

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def expired(self) -> bool:
        return self._clock() >= self.deadline
