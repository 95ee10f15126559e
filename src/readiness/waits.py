"""Deterministic readiness waits against markers rendered by the app under test.

Every wait here is a predicate over the live DOM evaluated by
:func:`src.readiness.poll.poll_until`. Waits raise on failure unless called
with ``raise_on_failure=False``, in which case the :class:`WaitOutcome` is
returned for the caller to inspect.
"""
from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from playwright.sync_api import Page

from src.readiness.errors import SelectorInvalid
from src.readiness.poll import (
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_TIMEOUT_MS,
    CancelSignal,
    WaitOutcome,
    WaitStatus,
    poll_until,
)
from src.readiness.selectors import AttrValue, data_attribute_selector, selector_state, test_id_selector

logger = logging.getLogger(__name__)

APP_READY_SELECTOR = 'body[data-app-ready="true"]'
NETWORK_IDLE_SELECTOR = 'body[data-network-active="false"]'
AUTH_READY_SELECTOR = '[data-auth-ready="true"]'
DEFAULT_LOADING_TEST_ID = "app-loading"

_event_tokens = itertools.count(1)

_ARM_EVENT_JS = """
([name, token]) => {
  const store = (window.__readinessEvents = window.__readinessEvents || {});
  const listeners = (window.__readinessListeners = window.__readinessListeners || {});
  store[token] = null;
  listeners[token] = [name, (event) => {
    let detail = null;
    try { detail = JSON.parse(JSON.stringify(event.detail ?? null)); } catch (e) {}
    store[token] = { type: event.type, detail };
  }];
  window.addEventListener(name, listeners[token][1], { once: true });
}
"""

_READ_EVENT_JS = "token => (window.__readinessEvents || {})[token] || null"

_DISARM_EVENT_JS = """
token => {
  const listeners = window.__readinessListeners || {};
  if (listeners[token]) {
    window.removeEventListener(listeners[token][0], listeners[token][1]);
    delete listeners[token];
  }
  if (window.__readinessEvents) delete window.__readinessEvents[token];
}
"""


def _finish(outcome: WaitOutcome, raise_on_failure: bool) -> WaitOutcome:
    if outcome.ok:
        logger.debug("resolved %s after %.0fms", outcome.description, outcome.waited_ms)
        return outcome
    logger.warning(
        "wait for %s ended %s after %.0fms", outcome.description, outcome.status.value, outcome.waited_ms
    )
    if raise_on_failure:
        outcome.raise_for_status()
    return outcome


def _wait(
    page: Page,
    predicate: Callable[[], Any],
    description: str,
    *,
    timeout_ms: Optional[float],
    interval_ms: float,
    raise_on_failure: bool,
    cancel: Optional[CancelSignal] = None,
) -> WaitOutcome:
    logger.debug("waiting for %s (timeout=%sms)", description, timeout_ms)
    outcome = poll_until(
        predicate,
        description=description,
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        sleep=page.wait_for_timeout,
        cancel=cancel,
    )
    return _finish(outcome, raise_on_failure)


def _selector_wait(
    page: Page,
    build_selector: Callable[[], str],
    state: str,
    *,
    timeout_ms: Optional[float],
    interval_ms: float,
    raise_on_failure: bool,
) -> WaitOutcome:
    try:
        selector = build_selector()
    except SelectorInvalid as exc:
        outcome = WaitOutcome(
            WaitStatus.SELECTOR_INVALID, exc.selector or "", 0.0, timeout_ms, detail=exc.reason
        )
        return _finish(outcome, raise_on_failure)
    return _wait(
        page,
        selector_state(page, selector, state),
        selector,
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
    )


def wait_for_selector_state(
    page: Page,
    selector: str,
    state: str = "attached",
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait until ``selector`` is attached, detached, visible or hidden."""
    return _selector_wait(
        page,
        lambda: selector,
        state,
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
    )


def wait_for_app_ready(
    page: Page,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait for ``<body data-app-ready="true">``."""
    return wait_for_selector_state(
        page, APP_READY_SELECTOR, timeout_ms=timeout_ms, interval_ms=interval_ms, raise_on_failure=raise_on_failure
    )


def wait_for_data_load(
    page: Page,
    test_id: str,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait until the component ``test_id`` reports ``data-loaded="true"``."""
    return _selector_wait(
        page,
        lambda: test_id_selector(test_id, loaded=True),
        "attached",
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
    )


def wait_for_network_idle(
    page: Page,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait for ``<body data-network-active="false">``.

    This is the application's own in-flight counter, not Playwright's
    ``networkidle`` load state.
    """
    return wait_for_selector_state(
        page, NETWORK_IDLE_SELECTOR, timeout_ms=timeout_ms, interval_ms=interval_ms, raise_on_failure=raise_on_failure
    )


def wait_for_suspense_resolved(
    page: Page,
    test_id: str = DEFAULT_LOADING_TEST_ID,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait for the loading indicator ``test_id`` to leave the document.

    A page that never rendered the indicator resolves on the first check.
    """
    return _selector_wait(
        page,
        lambda: test_id_selector(test_id),
        "detached",
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
    )


def wait_for_auth_ready(
    page: Page,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    return wait_for_selector_state(
        page, AUTH_READY_SELECTOR, timeout_ms=timeout_ms, interval_ms=interval_ms, raise_on_failure=raise_on_failure
    )


def wait_for_data_attribute(
    page: Page,
    test_id: str,
    attribute: str,
    value: AttrValue,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait for ``[data-testid=test_id][data-<attribute>=value]``.

    ``attribute`` is given without the ``data-`` prefix, e.g. ``"status"``.
    """
    return _selector_wait(
        page,
        lambda: test_id_selector(test_id) + data_attribute_selector(attribute, value),
        "attached",
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
    )


def _arm_event(page: Page, name: str) -> str:
    if not name:
        raise ValueError("event name may not be empty")
    token = f"evt-{next(_event_tokens)}"
    page.evaluate(_ARM_EVENT_JS, [name, token])
    return token


def _await_event(
    page: Page,
    name: str,
    token: str,
    *,
    timeout_ms: Optional[float],
    interval_ms: float,
    raise_on_failure: bool,
    cancel: Optional[CancelSignal],
) -> WaitOutcome:
    try:
        return _wait(
            page,
            lambda: page.evaluate(_READ_EVENT_JS, token),
            f"event {name}",
            timeout_ms=timeout_ms,
            interval_ms=interval_ms,
            raise_on_failure=raise_on_failure,
            cancel=cancel,
        )
    finally:
        if not page.is_closed():
            page.evaluate(_DISARM_EVENT_JS, token)


def wait_for_custom_event(
    page: Page,
    name: str,
    *,
    timeout_ms: Optional[float] = None,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    cancel: Optional[CancelSignal] = None,
    raise_on_failure: bool = True,
) -> WaitOutcome:
    """Wait for the first ``name`` event dispatched on ``window`` after this call.

    Unbounded unless ``timeout_ms`` or ``cancel`` is given. Events fired before
    the listener is installed are missed; use :func:`expect_custom_event` when
    the caller itself triggers the event. The outcome's ``value`` holds the
    event ``type`` and its JSON-serialisable ``detail``.
    """
    token = _arm_event(page, name)
    return _await_event(
        page,
        name,
        token,
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
        cancel=cancel,
    )


@dataclass
class EventExpectation:
    name: str
    outcome: Optional[WaitOutcome] = None

    @property
    def value(self) -> Any:
        if self.outcome is None:
            raise RuntimeError(f"event {self.name} has not been awaited yet")
        return self.outcome.value


@contextmanager
def expect_custom_event(
    page: Page,
    name: str,
    *,
    timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    cancel: Optional[CancelSignal] = None,
    raise_on_failure: bool = True,
) -> Iterator[EventExpectation]:
    """Arm a listener for ``name``, run the block, then wait for the event.

    ::

        with expect_custom_event(page, "app:data-loaded") as loaded:
            click_test_id(page, "refresh")
        print(loaded.value["detail"])
    """
    token = _arm_event(page, name)
    expectation = EventExpectation(name)
    try:
        yield expectation
    except BaseException:
        if not page.is_closed():
            page.evaluate(_DISARM_EVENT_JS, token)
        raise
    expectation.outcome = _await_event(
        page,
        name,
        token,
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        raise_on_failure=raise_on_failure,
        cancel=cancel,
    )
