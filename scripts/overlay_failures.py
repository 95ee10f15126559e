#!/usr/bin/env python3
"""Draw the awaited element's box onto each failure screenshot."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

from PIL import Image, ImageDraw

from src.session.artifacts import load_failure_records


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Overlay failure records on their screenshots")
    parser.add_argument("artifacts_dir", type=Path, help="Directory containing *.failure.json and screenshots")
    parser.add_argument("--output-dir", type=Path, default=None, help="Defaults to <artifacts_dir>/overlays")
    return parser.parse_args()


def overlay(artifacts_dir: Path, dest_dir: Path) -> List[Path]:
    records = [record for record in load_failure_records(artifacts_dir) if record.screenshot]
    if not records:
        raise ValueError(f"No failure records with screenshots in {artifacts_dir}")
    dest_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for record in records:
        image = Image.open(artifacts_dir / record.screenshot).convert("RGB")
        draw = ImageDraw.Draw(image)
        box = record.bounding_box
        if box:
            x0, y0 = box["x"], box["y"]
            x1, y1 = x0 + box["width"], y0 + box["height"]
            draw.rectangle([x0, y0, x1, y1], outline="red", width=4)
            draw.text((x0 + 6, y0 + 6), record.name, fill="yellow")
        draw.text((8, 8), record.error, fill="red")
        target = dest_dir / record.screenshot
        image.save(target)
        written.append(target)
        print(f"Saved overlay to {target}")
    return written


def main() -> None:
    args = parse_args()
    overlay(args.artifacts_dir, args.output_dir or args.artifacts_dir / "overlays")


if __name__ == "__main__":
    main()
