from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TypeVar
import time

from paramdup.deadline_clock import DeadlineClock, DeadlineClockExhausted
from paramdup.invariants import never

_LoopItem = TypeVar("_LoopItem")


class TimeoutExceeded(TimeoutError):
    def __init__(self, site: str = "") -> None:
        message = "Rewrite timed out."
        if site:
            message = f"Rewrite timed out at {site}."
        super().__init__(message)
        self.site = site


@dataclass(frozen=True)
class Deadline:
    deadline_ns: int

    @classmethod
    def from_timeout_ticks(cls, ticks: int, tick_ns: int) -> "Deadline":
        ticks_value = int(ticks)
        tick_ns_value = int(tick_ns)
        if ticks_value < 0:
            never("invalid timeout ticks", ticks=ticks)
        if tick_ns_value <= 0:
            never("invalid timeout tick_ns", tick_ns=tick_ns)
        total_ns = ticks_value * tick_ns_value
        return cls(deadline_ns=time.monotonic_ns() + total_ns)

    @classmethod
    def from_timeout_ms(cls, milliseconds: int) -> "Deadline":
        return cls.from_timeout_ticks(milliseconds, 1_000_000)

    def expired(self) -> bool:
        return time.monotonic_ns() >= self.deadline_ns

    def check(self, site: str = "") -> None:
        if self.expired():
            raise TimeoutExceeded(site)


_deadline_var: ContextVar[Deadline | None] = ContextVar(
    "paramdup_deadline", default=None
)
_deadline_clock_var: ContextVar[DeadlineClock | None] = ContextVar(
    "paramdup_deadline_clock", default=None
)


def set_deadline(deadline: Deadline):
    if deadline is None:
        never("deadline carrier missing")
    return _deadline_var.set(deadline)


def reset_deadline(token) -> None:
    _deadline_var.reset(token)


def get_deadline() -> Deadline | None:
    return _deadline_var.get()


def set_deadline_clock(clock: DeadlineClock):
    if clock is None:
        never("deadline clock missing")
    return _deadline_clock_var.set(clock)


def reset_deadline_clock(token) -> None:
    _deadline_clock_var.reset(token)


def get_deadline_clock() -> DeadlineClock | None:
    return _deadline_clock_var.get()


@contextmanager
def deadline_scope(deadline: Deadline):
    token = set_deadline(deadline)
    try:
        yield
    finally:
        reset_deadline(token)


@contextmanager
def deadline_clock_scope(clock: DeadlineClock):
    token = set_deadline_clock(clock)
    try:
        yield
    finally:
        reset_deadline_clock(token)


def check_deadline(site: str = "") -> None:
    """Raise TimeoutExceeded once the run-wide deadline or gas budget is spent.

    Outside of any deadline or clock scope this is a no-op, so the rewriter
    can be used as a plain library.
    """
    deadline = _deadline_var.get()
    if deadline is not None:
        deadline.check(site)
    clock = _deadline_clock_var.get()
    if clock is None:
        return
    try:
        clock.consume(1)
    except DeadlineClockExhausted as exc:
        raise TimeoutExceeded(site) from exc


def deadline_loop_iter(values: Iterable[_LoopItem]) -> Iterator[_LoopItem]:
    for value in values:
        check_deadline()
        yield value
