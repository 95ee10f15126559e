"""Bounded polling primitive shared by every readiness wait.

A wait is a zero-argument predicate evaluated on a fixed interval until it
returns something truthy, the timeout elapses, or the caller cancels. The
result is a :class:`WaitOutcome` rather than an exception so callers can tell
"slow but working" apart from "broken selector"; ``raise_for_status`` turns it
into the matching :mod:`src.readiness.errors` exception.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from src.readiness.errors import SelectorInvalid, WaitCancelled, WaitTimeout


DEFAULT_TIMEOUT_MS = 30000
DEFAULT_POLL_INTERVAL_MS = 100


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


class WaitStatus(str, Enum):
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    SELECTOR_INVALID = "selector_invalid"
    CANCELLED = "cancelled"


@dataclass
class WaitOutcome:
    """Tagged result of a single wait call."""

    status: WaitStatus
    description: str
    waited_ms: float
    timeout_ms: Optional[float] = None
    value: Any = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is WaitStatus.RESOLVED

    def raise_for_status(self) -> "WaitOutcome":
        if self.status is WaitStatus.TIMED_OUT:
            raise WaitTimeout(self.description, self.waited_ms, self.timeout_ms)
        if self.status is WaitStatus.SELECTOR_INVALID:
            raise SelectorInvalid(self.description, self.detail or "unparseable selector")
        if self.status is WaitStatus.CANCELLED:
            raise WaitCancelled(self.description, self.waited_ms)
        return self


def _sleep_ms(ms: float) -> None:
    time.sleep(ms / 1000)


def poll_until(
    predicate: Callable[[], Any],
    *,
    description: str,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    sleep: Optional[Callable[[float], None]] = None,
    clock: Optional[Callable[[], float]] = None,
    cancel: Optional[CancelSignal] = None,
) -> WaitOutcome:
    """Evaluate ``predicate`` until it holds or ``timeout_ms`` elapses.

    ``timeout_ms=None`` polls without an upper bound; only ``cancel`` can stop
    it then. ``sleep`` receives milliseconds, so a Playwright page can supply
    ``page.wait_for_timeout`` and keep its event loop serviced between checks.
    """
    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")
    sleep = sleep or _sleep_ms
    clock = clock or time.monotonic
    start = clock()

    def elapsed() -> float:
        return (clock() - start) * 1000

    while True:
        try:
            value = predicate()
        except SelectorInvalid as exc:
            return WaitOutcome(
                WaitStatus.SELECTOR_INVALID, description, elapsed(), timeout_ms, detail=exc.reason
            )
        waited = elapsed()
        if value:
            return WaitOutcome(WaitStatus.RESOLVED, description, waited, timeout_ms, value=value)
        if timeout_ms is not None and waited >= timeout_ms:
            return WaitOutcome(WaitStatus.TIMED_OUT, description, waited, timeout_ms)
        if cancel is not None and cancel.is_set():
            return WaitOutcome(WaitStatus.CANCELLED, description, waited, timeout_ms)
        pause = interval_ms if timeout_ms is None else min(interval_ms, timeout_ms - waited)
        sleep(pause)
