"""Fakes and fixtures shared by the readiness tests."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from playwright.sync_api import Error as PlaywrightError

from src.readiness import app_state, poll, waits


class FakeClock:
    def __init__(self) -> None:
        self.now_ms = 0.0

    def monotonic(self) -> float:
        return self.now_ms / 1000

    def advance(self, ms: float) -> None:
        self.now_ms += ms


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self.page = page
        self.selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    def _check(self) -> None:
        if self.selector in self.page.invalid_selectors:
            raise PlaywrightError(f'Unexpected token "{self.selector}" while parsing css selector')
        if self.page.crash:
            raise PlaywrightError("Target page, context or browser has been closed")

    def count(self) -> int:
        self._check()
        return 1 if self.selector in self.page.dom else 0

    def is_visible(self) -> bool:
        self._check()
        return self.page.dom.get(self.selector, False)

    def click(self, timeout=None) -> None:
        self.page.actions.append(("click", self.selector, timeout))

    def fill(self, text: str, timeout=None) -> None:
        self.page.actions.append(("fill", self.selector, text))

    def text_content(self, timeout=None) -> Optional[str]:
        return self.page.texts.get(self.selector)

    def evaluate(self, expression: str):
        return dict(self.page.attributes.get(self.selector, {}))


class FakePage:
    """Selector-keyed stand-in for a Playwright page driven by a fake clock.

    ``dom`` maps exact selector strings to their visibility; a selector that is
    not a key is not attached.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.dom: Dict[str, bool] = {}
        self.invalid_selectors = set()
        self.crash = False
        self.app_state: Dict[str, object] = {}
        self.listeners: Dict[str, str] = {}
        self.events: Dict[str, Optional[dict]] = {}
        self.sleeps: List[float] = []
        self.actions: List[tuple] = []
        self.texts: Dict[str, str] = {}
        self.attributes: Dict[str, Dict[str, str]] = {}
        self._scheduled: List[Tuple[float, Callable[[], None]]] = []
        self._closed = False

    def at(self, ms: float, action: Callable[[], None]) -> None:
        """Run ``action`` once the fake clock reaches ``ms``."""
        self._scheduled.append((ms, action))

    def _apply_due(self) -> None:
        due = [item for item in self._scheduled if item[0] <= self.clock.now_ms]
        self._scheduled = [item for item in self._scheduled if item[0] > self.clock.now_ms]
        for _, action in sorted(due, key=lambda item: item[0]):
            action()

    def wait_for_timeout(self, ms: float) -> None:
        self.sleeps.append(ms)
        self.clock.advance(ms)
        self._apply_due()

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def dispatch(self, name: str, detail=None) -> None:
        for token, listened in list(self.listeners.items()):
            if listened == name:
                self.events[token] = {"type": name, "detail": detail}
                del self.listeners[token]

    def evaluate(self, expression: str, arg=None):
        if expression == waits._ARM_EVENT_JS:
            name, token = arg
            self.listeners[token] = name
            self.events[token] = None
            return None
        if expression == waits._READ_EVENT_JS:
            return self.events.get(arg)
        if expression == waits._DISARM_EVENT_JS:
            self.listeners.pop(arg, None)
            self.events.pop(arg, None)
            return None
        if expression == app_state._FLAG_SET_JS:
            return bool(self.app_state.get(arg))
        if expression == app_state._READ_STATE_JS:
            return dict(self.app_state)
        raise AssertionError(f"unexpected evaluate: {expression!r}")

    def close(self) -> None:
        self._closed = True

    def is_closed(self) -> bool:
        return self._closed


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(
        poll,
        "time",
        SimpleNamespace(monotonic=fake.monotonic, sleep=lambda seconds: fake.advance(seconds * 1000)),
    )
    return fake


@pytest.fixture
def page(clock) -> FakePage:
    return FakePage(clock)
