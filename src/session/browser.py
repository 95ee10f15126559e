"""Launch a Playwright browser with stored auth state for readiness checks."""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from playwright.sync_api import Browser, BrowserContext, ConsoleMessage, Page, sync_playwright

from src.readiness.errors import WaitError
from src.readiness.poll import DEFAULT_TIMEOUT_MS
from src.session.artifacts import capture_failure

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_STATE = Path(".auth/user-state.json")
# Console noise every framed page emits; never an application error.
IGNORED_CONSOLE_ERRORS = ("X-Frame-Options",)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class SessionConfig:
    """Runtime parameters for one browser session."""

    base_url: Optional[str] = None
    storage_state: Optional[Path] = DEFAULT_STORAGE_STATE
    viewport_width: int = 1920
    viewport_height: int = 1080
    headless: bool = True
    use_chrome: bool = False
    artifacts_dir: Path = Path("artifacts")
    default_timeout_ms: float = DEFAULT_TIMEOUT_MS

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "SessionConfig":
        """Build a config from ``READINESS_*`` variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: Dict[str, object] = {}
        if env.get("READINESS_BASE_URL"):
            values["base_url"] = env["READINESS_BASE_URL"]
        if env.get("READINESS_STORAGE_STATE"):
            values["storage_state"] = Path(env["READINESS_STORAGE_STATE"])
        if env.get("READINESS_HEADLESS"):
            values["headless"] = env["READINESS_HEADLESS"].strip().lower() in _TRUTHY
        if env.get("READINESS_ARTIFACTS_DIR"):
            values["artifacts_dir"] = Path(env["READINESS_ARTIFACTS_DIR"])
        values.update(overrides)
        return cls(**values)


@dataclass
class Session:
    page: Page
    context: BrowserContext
    console_errors: List[str] = field(default_factory=list)


def build_context(browser: Browser, config: SessionConfig) -> BrowserContext:
    args = {
        "viewport": config.viewport,
        "device_scale_factor": 1.0,
    }
    if config.base_url:
        args["base_url"] = config.base_url
    if config.storage_state and Path(config.storage_state).is_file():
        args["storage_state"] = str(config.storage_state)
        logger.info("using stored auth state %s", config.storage_state)
    elif config.storage_state:
        logger.warning("no auth state at %s; running unauthenticated", config.storage_state)
    return browser.new_context(**args)


def _console_listener(errors: List[str]):
    def on_console(message: ConsoleMessage) -> None:
        if message.type != "error":
            return
        if any(noise in message.text for noise in IGNORED_CONSOLE_ERRORS):
            return
        logger.debug("browser console error: %s", message.text)
        errors.append(message.text)

    return on_console


@contextmanager
def browser_session(config: SessionConfig, name: str = "session") -> Iterator[Session]:
    """Yield a :class:`Session`; a :class:`WaitError` escaping the block is
    recorded under ``config.artifacts_dir`` before it propagates."""
    with sync_playwright() as p:
        launch_kwargs = {"headless": config.headless}
        if config.use_chrome:
            launch_kwargs["channel"] = "chrome"
        if not config.headless:
            launch_kwargs["args"] = [
                "--window-position=0,0",
                f"--window-size={config.viewport_width},{config.viewport_height}",
            ]
        browser = p.chromium.launch(**launch_kwargs)
        try:
            context = build_context(browser, config)
            context.set_default_timeout(config.default_timeout_ms)
            page = context.new_page()
            session = Session(page=page, context=context)
            page.on("console", _console_listener(session.console_errors))
            try:
                yield session
            except WaitError as exc:
                if not page.is_closed():
                    exc.artifact_path = capture_failure(page, config.artifacts_dir, name, exc)
                raise
            finally:
                context.close()
        finally:
            browser.close()
