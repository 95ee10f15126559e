"""Waits on the ``window.__appState`` instrumentation object.

Apps that expose their boot sequence as a plain object, e.g.
``{initialized, authChecked, userLoaded, onboardingChecked, error}``, can be
awaited flag by flag instead of through DOM markers.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from playwright.sync_api import Page

from src.readiness.poll import DEFAULT_POLL_INTERVAL_MS, DEFAULT_TIMEOUT_MS, WaitOutcome, poll_until

logger = logging.getLogger(__name__)

STAGE_TIMEOUT_MS = 10000

_READ_STATE_JS = "() => window.__appState || {}"
_FLAG_SET_JS = "flag => Boolean(window.__appState && window.__appState[flag])"


def read_app_state(page: Page) -> Dict[str, Any]:
    return page.evaluate(_READ_STATE_JS) or {}


def poll_app_state(
    page: Page,
    flag: str = "initialized",
    *,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> WaitOutcome:
    """Wait for ``window.__appState[flag]``; the resolved outcome's ``value`` is the state.

    On timeout the partial state is logged before :class:`WaitTimeout` is raised.
    """
    logger.debug("waiting for __appState.%s", flag)
    outcome = poll_until(
        lambda: page.evaluate(_FLAG_SET_JS, flag),
        description=f"window.__appState.{flag}",
        timeout_ms=timeout_ms,
        interval_ms=interval_ms,
        sleep=page.wait_for_timeout,
    )
    if not outcome.ok:
        logger.warning("__appState.%s never set; partial state: %s", flag, read_app_state(page))
        outcome.raise_for_status()
    state = read_app_state(page)
    logger.info(
        "app state %s: authChecked=%s userLoaded=%s onboardingChecked=%s error=%s",
        flag,
        state.get("authChecked"),
        state.get("userLoaded"),
        state.get("onboardingChecked"),
        state.get("error"),
    )
    outcome.value = state
    return outcome


def wait_for_app_state(
    page: Page,
    flag: str = "initialized",
    *,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> Dict[str, Any]:
    """Wait for ``window.__appState[flag]`` to be truthy and return the state."""
    return poll_app_state(page, flag, timeout_ms=timeout_ms, interval_ms=interval_ms).value


def wait_for_auth_check(page: Page, timeout_ms: float = STAGE_TIMEOUT_MS) -> Dict[str, Any]:
    return wait_for_app_state(page, "authChecked", timeout_ms=timeout_ms)


def wait_for_user_load(page: Page, timeout_ms: float = STAGE_TIMEOUT_MS) -> Dict[str, Any]:
    return wait_for_app_state(page, "userLoaded", timeout_ms=timeout_ms)


def wait_for_onboarding_check(page: Page, timeout_ms: float = STAGE_TIMEOUT_MS) -> Dict[str, Any]:
    return wait_for_app_state(page, "onboardingChecked", timeout_ms=timeout_ms)
