"""Screenshots and JSON records captured when a wait fails."""
from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from src.readiness.errors import WaitError

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".failure.json"


@dataclass
class FailureRecord:
    """What a script was waiting for when it gave up."""

    name: str
    error: str
    selector: Optional[str]
    waited_ms: Optional[float]
    url: str
    timestamp: float
    screenshot: Optional[str]
    bounding_box: Optional[Dict[str, float]] = None


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "failure"


def _bounding_box(page: Page, selector: Optional[str]) -> Optional[Dict[str, float]]:
    if not selector:
        return None
    try:
        locator = page.locator(selector)
        if locator.count() == 0:
            return None
        return locator.first.bounding_box()
    except PlaywrightError:
        return None


def capture_failure(page: Page, artifacts_dir: Path, name: str, error: WaitError) -> Path:
    """Save a screenshot plus ``<name>.failure.json`` and return the JSON path.

    Artifact capture is best effort: a page that cannot be screenshotted
    still gets its JSON record.
    """
    artifacts_dir.mkdir(parents=True, exist_ok=True)
    base = f"{int(time.time() * 1000)}_{_slug(name)}"
    screenshot: Optional[str] = f"{base}.png"
    try:
        page.screenshot(path=str(artifacts_dir / screenshot), full_page=False, scale="css")
    except PlaywrightError as exc:
        logger.warning("could not screenshot %s: %s", name, exc)
        screenshot = None
    record = FailureRecord(
        name=name,
        error=str(error),
        selector=error.selector,
        waited_ms=getattr(error, "waited_ms", None),
        url=page.url,
        timestamp=time.time(),
        screenshot=screenshot,
        bounding_box=_bounding_box(page, error.selector),
    )
    log_path = artifacts_dir / f"{base}{RECORD_SUFFIX}"
    with log_path.open("w", encoding="utf-8") as fp:
        json.dump(asdict(record), fp, indent=2)
    logger.info("saved failure artifacts to %s", log_path)
    return log_path


def load_failure_records(artifacts_dir: Path) -> List[FailureRecord]:
    records = []
    for path in sorted(artifacts_dir.glob(f"*{RECORD_SUFFIX}")):
        with path.open("r", encoding="utf-8") as fp:
            records.append(FailureRecord(**json.load(fp)))
    return records
