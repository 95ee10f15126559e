"""Element helpers keyed by ``data-testid``."""
from __future__ import annotations

from typing import Dict, Optional

from playwright.sync_api import Page

from src.readiness.poll import DEFAULT_POLL_INTERVAL_MS, DEFAULT_TIMEOUT_MS, WaitOutcome
from src.readiness.selectors import test_id_selector
from src.readiness.waits import wait_for_data_attribute, wait_for_selector_state

__all__ = [
    "click_test_id",
    "type_in_test_id",
    "has_test_id",
    "get_test_id_text",
    "wait_for_test_id_visible",
    "wait_for_test_id_hidden",
    "get_data_attributes",
    "wait_for_data_attribute",
]

_DATA_ATTRIBUTES_JS = """
(element) => {
  const attrs = {};
  for (const attr of element.attributes) {
    if (attr.name.startsWith('data-')) attrs[attr.name] = attr.value;
  }
  return attrs;
}
"""


def click_test_id(page: Page, test_id: str, timeout_ms: float = DEFAULT_TIMEOUT_MS) -> None:
    page.locator(test_id_selector(test_id)).first.click(timeout=timeout_ms)


def type_in_test_id(page: Page, test_id: str, text: str, timeout_ms: float = DEFAULT_TIMEOUT_MS) -> None:
    """Replace the value of the input ``test_id`` with ``text``."""
    page.locator(test_id_selector(test_id)).first.fill(text, timeout=timeout_ms)


def has_test_id(page: Page, test_id: str) -> bool:
    return page.locator(test_id_selector(test_id)).count() > 0


def get_test_id_text(page: Page, test_id: str, timeout_ms: float = DEFAULT_TIMEOUT_MS) -> Optional[str]:
    return page.locator(test_id_selector(test_id)).first.text_content(timeout=timeout_ms)


def wait_for_test_id_visible(
    page: Page,
    test_id: str,
    *,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> WaitOutcome:
    return wait_for_selector_state(
        page, test_id_selector(test_id), "visible", timeout_ms=timeout_ms, interval_ms=interval_ms
    )


def wait_for_test_id_hidden(
    page: Page,
    test_id: str,
    *,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
) -> WaitOutcome:
    """Wait until ``test_id`` is invisible or gone from the document."""
    return wait_for_selector_state(
        page, test_id_selector(test_id), "hidden", timeout_ms=timeout_ms, interval_ms=interval_ms
    )


def get_data_attributes(page: Page, test_id: str) -> Optional[Dict[str, str]]:
    """All ``data-*`` attributes of the first ``test_id`` match, or None if absent."""
    locator = page.locator(test_id_selector(test_id))
    if locator.count() == 0:
        return None
    return locator.first.evaluate(_DATA_ATTRIBUTES_JS)
