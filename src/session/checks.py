"""Named readiness checks parsed from ``KIND[:ARG]`` strings for the CLI."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from playwright.sync_api import Page

from src.readiness import app_state, waits
from src.readiness.poll import WaitOutcome

KINDS = (
    "app-ready",
    "network-idle",
    "auth-ready",
    "data-load",
    "suspense",
    "event",
    "attribute",
    "app-state",
)
_NEEDS_ARG = {"data-load", "event", "attribute", "app-state"}


@dataclass
class WaitSpec:
    kind: str
    arg: Optional[str] = None
    attribute: Optional[str] = None
    value: Optional[str] = None

    def __str__(self) -> str:
        if self.kind == "attribute":
            return f"attribute:{self.arg}:{self.attribute}={self.value}"
        return f"{self.kind}:{self.arg}" if self.arg else self.kind


def parse_wait_spec(text: str) -> WaitSpec:
    """Parse ``app-ready``, ``data-load:widget``, ``attribute:row:status=done`` etc."""
    kind, _, arg = text.strip().partition(":")
    if kind not in KINDS:
        raise ValueError(f"unknown wait {kind!r}; expected one of {', '.join(KINDS)}")
    if kind in _NEEDS_ARG and not arg:
        raise ValueError(f"wait {kind!r} needs an argument, e.g. {kind}:name")
    if kind == "attribute":
        test_id, _, assignment = arg.partition(":")
        attribute, eq, value = assignment.partition("=")
        if not test_id or not attribute or not eq:
            raise ValueError("attribute waits look like attribute:TEST_ID:ATTR=VALUE")
        return WaitSpec(kind, test_id, attribute, value)
    return WaitSpec(kind, arg or None)


def run_wait(page: Page, spec: WaitSpec, timeout_ms: float) -> WaitOutcome:
    """Run one parsed check; failures raise :class:`WaitError`."""
    if spec.kind == "app-ready":
        return waits.wait_for_app_ready(page, timeout_ms=timeout_ms)
    if spec.kind == "network-idle":
        return waits.wait_for_network_idle(page, timeout_ms=timeout_ms)
    if spec.kind == "auth-ready":
        return waits.wait_for_auth_ready(page, timeout_ms=timeout_ms)
    if spec.kind == "data-load":
        return waits.wait_for_data_load(page, spec.arg, timeout_ms=timeout_ms)
    if spec.kind == "suspense":
        return waits.wait_for_suspense_resolved(
            page, spec.arg or waits.DEFAULT_LOADING_TEST_ID, timeout_ms=timeout_ms
        )
    if spec.kind == "event":
        return waits.wait_for_custom_event(page, spec.arg, timeout_ms=timeout_ms)
    if spec.kind == "attribute":
        return waits.wait_for_data_attribute(page, spec.arg, spec.attribute, spec.value, timeout_ms=timeout_ms)
    if spec.kind == "app-state":
        return app_state.poll_app_state(page, spec.arg, timeout_ms=timeout_ms)
    raise ValueError(f"unknown wait {spec.kind!r}")
