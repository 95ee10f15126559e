"""Failures raised by readiness waits."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class WaitError(Exception):
    """Base class for every failed wait."""

    def __init__(self, message: str, selector: Optional[str] = None) -> None:
        super().__init__(message)
        self.selector = selector
        # Set once a failure screenshot and record have been written.
        self.artifact_path: Optional[Path] = None


class WaitTimeout(WaitError):
    """The condition never held within the timeout window."""

    def __init__(self, selector: str, waited_ms: float, timeout_ms: Optional[float] = None) -> None:
        limit = f" (timeout {timeout_ms:.0f}ms)" if timeout_ms is not None else ""
        super().__init__(f"Timed out after {waited_ms:.0f}ms waiting for {selector}{limit}", selector)
        self.waited_ms = waited_ms
        self.timeout_ms = timeout_ms


class SelectorInvalid(WaitError):
    """The selector or lookup key can never match because it is malformed."""

    def __init__(self, selector: str, reason: str) -> None:
        super().__init__(f"Invalid selector {selector!r}: {reason}", selector)
        self.reason = reason


class WaitCancelled(WaitError):
    def __init__(self, selector: str, waited_ms: float) -> None:
        super().__init__(f"Wait for {selector} cancelled after {waited_ms:.0f}ms", selector)
        self.waited_ms = waited_ms
