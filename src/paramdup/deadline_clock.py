"""Check budgets for rewrite runs.

Every ``check_deadline`` call spends one unit of the budget in scope: one per
visited declaration, one per planned file and one per written file. Unlike a
wall-clock deadline, a budget stops a run at the same point on every machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from typing import Protocol

from paramdup.invariants import never


class DeadlineClock(Protocol):
    def consume(self, ticks: int = 1) -> None:
        """Spend ``ticks`` units of the run's budget."""


class DeadlineClockExhausted(RuntimeError):
    """Raised by a clock once its budget is spent."""


@dataclass
class CheckBudget:
    limit: int
    spent: int = field(default=0, init=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or int(self.limit) <= 0:
            never("invalid check budget", limit=self.limit)
        self.limit = int(self.limit)

    @property
    def remaining(self) -> int:
        with self._lock:
            return max(self.limit - self.spent, 0)

    def consume(self, ticks: int = 1) -> None:
        ticks_value = int(ticks)
        if ticks_value <= 0:
            never("invalid check budget ticks", ticks=ticks)
        # The worker threads of one rewrite-tree run share a single budget.
        with self._lock:
            self.spent += ticks_value
            spent = self.spent
        if spent > self.limit:
            raise DeadlineClockExhausted(
                f"Check budget exhausted: {spent}/{self.limit}"
            )
