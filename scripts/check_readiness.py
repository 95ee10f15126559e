#!/usr/bin/env python3
"""CLI that loads a page and runs readiness waits against it in order."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from screeninfo import get_monitors

from src.readiness.errors import SelectorInvalid, WaitError
from src.session.browser import DEFAULT_STORAGE_STATE, SessionConfig, browser_session
from src.session.checks import KINDS, parse_wait_spec, run_wait

EXIT_TIMEOUT = 1
EXIT_INVALID_SELECTOR = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Wait for readiness markers on a page")
    parser.add_argument("url", help="Page to open")
    parser.add_argument(
        "--wait",
        dest="waits",
        action="append",
        type=parse_wait_spec,
        default=[],
        metavar="KIND[:ARG]",
        help=f"Readiness check to run, repeatable. Kinds: {', '.join(KINDS)}",
    )
    parser.add_argument("--storage-state", type=Path, dest="storage_state", default=None, help=f"Playwright login state JSON (default {DEFAULT_STORAGE_STATE})")
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser headless (default) or, with --no-headless, show the window",
    )
    parser.add_argument("--chrome", action="store_true", help="Use the locally installed Google Chrome instead of bundled Chromium")
    parser.add_argument("--monitor-index", type=int, default=0, help="Monitor index for viewport auto-detect")
    parser.add_argument("--viewport-width", type=int, default=1920)
    parser.add_argument("--viewport-height", type=int, default=1080)
    parser.add_argument("--timeout-ms", type=float, default=30000, dest="timeout_ms")
    parser.add_argument("--artifacts-dir", type=Path, dest="artifacts_dir", default=None, help="Where failure screenshots are written (default artifacts/)")
    parser.add_argument("--debug", action="store_true", help="Log every poll start and result")
    return parser.parse_args(argv)


def _resolve_viewport(args: argparse.Namespace, headless: bool) -> tuple[int, int]:
    if headless:
        return args.viewport_width, args.viewport_height
    try:
        monitors = get_monitors()
        if monitors:
            idx = max(0, min(args.monitor_index, len(monitors) - 1))
            monitor = monitors[idx]
            return monitor.width, monitor.height
    except Exception:
        pass
    return args.viewport_width, args.viewport_height


def build_config(args: argparse.Namespace) -> SessionConfig:
    """READINESS_* environment settings apply unless the flag was given."""
    overrides = {
        "storage_state": args.storage_state,
        "headless": args.headless,
        "artifacts_dir": args.artifacts_dir,
    }
    config = SessionConfig.from_env(
        use_chrome=args.chrome,
        default_timeout_ms=args.timeout_ms,
        **{key: value for key, value in overrides.items() if value is not None},
    )
    config.viewport_width, config.viewport_height = _resolve_viewport(args, config.headless)
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = build_config(args)
    waits = args.waits or [parse_wait_spec("app-ready")]
    try:
        with browser_session(config, name="check-readiness") as session:
            session.page.goto(args.url, wait_until="domcontentloaded")
            for spec in waits:
                outcome = run_wait(session.page, spec, args.timeout_ms)
                print(f"ok   {spec} ({outcome.waited_ms:.0f}ms)")
            if session.console_errors:
                print(f"{len(session.console_errors)} console error(s) during checks")
    except SelectorInvalid as exc:
        print(f"bad  {exc}")
        return EXIT_INVALID_SELECTOR
    except WaitError as exc:
        print(f"fail {exc}")
        if exc.artifact_path is not None:
            print(f"Failure artifacts in {exc.artifact_path}")
        return EXIT_TIMEOUT
    return 0


if __name__ == "__main__":
    sys.exit(main())
