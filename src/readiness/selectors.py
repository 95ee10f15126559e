"""Selector builders and DOM predicates for test-id based lookups."""
from __future__ import annotations

import re
from typing import Callable, Union

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from src.readiness.errors import SelectorInvalid


STATES = ("attached", "detached", "visible", "hidden")

_ATTRIBUTE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
_UNSAFE_VALUE = re.compile(r'["\\\n]')
# Playwright reports selector parse failures with one of these phrasings.
# Phrasings are those of the playwright 1.40 selector parser (the pinned floor)
# and Chromium's querySelectorAll; test_invalid_selector_is_not_a_timeout in
# tests/test_browser.py fails if a later release rewords them.
_PARSE_FAILURE = re.compile(
    r"not a valid selector|while parsing|unexpected token|unknown engine|malformed", re.IGNORECASE
)

AttrValue = Union[str, bool, int]


def _format_value(value: AttrValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _checked_value(value: AttrValue, what: str) -> str:
    text = _format_value(value)
    if _UNSAFE_VALUE.search(text):
        raise SelectorInvalid(text, f"{what} may not contain quotes, backslashes or newlines")
    return text


def data_attribute_selector(attribute: str, value: AttrValue) -> str:
    """``[data-<attribute>="<value>"]``; ``attribute`` may omit the ``data-`` prefix."""
    name = attribute[len("data-"):] if attribute.startswith("data-") else attribute
    if not _ATTRIBUTE_NAME.match(name):
        raise SelectorInvalid(attribute, "not a valid data attribute name")
    return f'[data-{name}="{_checked_value(value, "attribute value")}"]'


def test_id_selector(test_id: str, **data_attrs: AttrValue) -> str:
    """Build ``[data-testid="id"]`` plus one ``[data-x="v"]`` per keyword.

    Keyword names use underscores where the attribute uses hyphens, so
    ``network_active=False`` becomes ``[data-network-active="false"]``.
    """
    if not test_id:
        raise SelectorInvalid(test_id, "test id may not be empty")
    parts = [f'[data-testid="{_checked_value(test_id, "test id")}"]']
    for name, value in data_attrs.items():
        parts.append(data_attribute_selector(name.replace("_", "-"), value))
    return "".join(parts)


def selector_state(page: Page, selector: str, state: str = "attached") -> Callable[[], bool]:
    """Predicate reporting whether ``selector`` is currently in ``state``.

    An element that is not in the document counts as both ``detached`` and
    ``hidden``, so "never rendered" and "rendered then removed" look the same.
    """
    if state not in STATES:
        raise ValueError(f"state must be one of {STATES}, got {state!r}")
    locator = page.locator(selector)

    def check() -> bool:
        try:
            if state == "attached":
                return locator.count() > 0
            if state == "detached":
                return locator.count() == 0
            visible = locator.first.is_visible()
            return visible if state == "visible" else not visible
        except PlaywrightError as exc:
            message = str(exc)
            if _PARSE_FAILURE.search(message):
                raise SelectorInvalid(selector, message.splitlines()[0]) from exc
            raise

    return check
