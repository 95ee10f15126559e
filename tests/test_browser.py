"""Readiness waits against real Chromium pages built with ``set_content``."""
import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from src.readiness import testid, waits
from src.readiness.errors import SelectorInvalid, WaitTimeout

pytestmark = pytest.mark.browser


@pytest.fixture(scope="module")
def browser():
    with sync_playwright() as p:
        try:
            browser = p.chromium.launch(headless=True)
        except PlaywrightError as exc:
            pytest.skip(f"chromium unavailable: {exc}")
        yield browser
        browser.close()


@pytest.fixture
def browser_page(browser):
    context = browser.new_context()
    page = context.new_page()
    yield page
    context.close()


def _after(ms: int, script: str) -> str:
    return f"<script>setTimeout(() => {{ {script} }}, {ms});</script>"


def test_app_ready_fails_while_marker_stays_false(browser_page):
    browser_page.set_content('<body data-app-ready="false"></body>')
    with pytest.raises(WaitTimeout):
        waits.wait_for_app_ready(browser_page, timeout_ms=300)


def test_app_ready_resolves_after_marker_flips(browser_page):
    browser_page.set_content(
        '<body data-app-ready="false">' + _after(200, "document.body.dataset.appReady = 'true';") + "</body>"
    )
    outcome = waits.wait_for_app_ready(browser_page, timeout_ms=2000)
    assert outcome.ok
    assert outcome.waited_ms < 2000


def test_data_load_waits_for_loaded_toggle(browser_page):
    browser_page.set_content(
        '<div data-testid="widget" data-loaded="false"></div>'
        + _after(300, "document.querySelector('[data-testid=widget]').dataset.loaded = 'true';")
    )
    early = waits.wait_for_data_load(browser_page, "widget", timeout_ms=100, raise_on_failure=False)
    assert not early.ok
    assert waits.wait_for_data_load(browser_page, "widget", timeout_ms=3000).ok
    assert testid.get_data_attributes(browser_page, "widget") == {
        "data-testid": "widget",
        "data-loaded": "true",
    }


def test_suspense_absent_resolves_immediately(browser_page):
    browser_page.set_content("<main>done</main>")
    outcome = waits.wait_for_suspense_resolved(browser_page, timeout_ms=1000)
    assert outcome.ok
    assert outcome.waited_ms < 1000


def test_suspense_resolves_when_indicator_removed(browser_page):
    browser_page.set_content(
        '<div data-testid="app-loading">Loading</div>'
        + _after(200, "document.querySelector('[data-testid=app-loading]').remove();")
    )
    assert waits.wait_for_suspense_resolved(browser_page, timeout_ms=3000).ok


def test_network_idle_and_auth_markers(browser_page):
    browser_page.set_content('<body data-network-active="false"><div data-auth-ready="true"></div></body>')
    assert waits.wait_for_network_idle(browser_page, timeout_ms=1000).ok
    assert waits.wait_for_auth_ready(browser_page, timeout_ms=1000).ok


def test_custom_event_first_occurrence_only(browser_page):
    browser_page.set_content("<body></body>")
    with waits.expect_custom_event(browser_page, "app:data-loaded", timeout_ms=3000) as loaded:
        browser_page.evaluate(
            """() => {
              setTimeout(() => window.dispatchEvent(new CustomEvent('app:other')), 50);
              setTimeout(() => window.dispatchEvent(
                new CustomEvent('app:data-loaded', { detail: { rows: 3 } })), 150);
              setTimeout(() => window.dispatchEvent(
                new CustomEvent('app:data-loaded', { detail: { rows: 4 } })), 400);
            }"""
        )
    assert loaded.value == {"type": "app:data-loaded", "detail": {"rows": 3}}


def test_custom_event_other_names_do_not_resolve(browser_page):
    browser_page.set_content("<body></body>")
    browser_page.evaluate("() => setTimeout(() => window.dispatchEvent(new Event('app:other')), 50)")
    with pytest.raises(WaitTimeout):
        waits.wait_for_custom_event(browser_page, "app:data-loaded", timeout_ms=400)


def test_interaction_helpers(browser_page):
    browser_page.set_content(
        '<input data-testid="email"><button data-testid="go" '
        "onclick=\"document.querySelector('[data-testid=out]').textContent = "
        "document.querySelector('[data-testid=email]').value\">Go</button>"
        '<span data-testid="out"></span>'
    )
    testid.type_in_test_id(browser_page, "email", "dev@example.com")
    testid.click_test_id(browser_page, "go")
    assert testid.get_test_id_text(browser_page, "out") == "dev@example.com"
    assert testid.has_test_id(browser_page, "go")
    assert not testid.has_test_id(browser_page, "missing")
    assert testid.wait_for_test_id_hidden(browser_page, "missing", timeout_ms=500).ok


def test_invalid_selector_is_not_a_timeout(browser_page):
    browser_page.set_content("<body></body>")
    with pytest.raises(SelectorInvalid):
        waits.wait_for_selector_state(browser_page, "div[", timeout_ms=500)
