"""Placeholder images shown until a dashboard has been captured once."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import List, Sequence

from PIL import Image, ImageDraw, ImageFont

from ..browser.interface import ClipRegion
from ..file_sync_utils import atomic_write_bytes
from ..logging_utils import get_module_logger
from ..targets import Target

BACKGROUND = "#1e2836"
FOREGROUND = "#c8d2dc"
ACCENT = "#3c6e9f"

logger = get_module_logger("Placeholder")


def render_placeholder(target: Target, width: int, height: int) -> bytes:
    """PNG bytes with a dark background and a "Loading <id>" caption."""
    image = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default(size=max(12, height // 12))

    caption = f"Loading {target.id}"
    left, top, right, bottom = draw.textbbox((0, 0), caption, font=font)
    x = (width - (right - left)) / 2
    y = (height - (bottom - top)) / 2
    draw.text((x, y), caption, fill=FOREGROUND, font=font)

    # Thin bar under the caption
    bar_width = width // 4
    bar_y = y + (bottom - top) + height // 30
    draw.rectangle(
        ((width - bar_width) / 2, bar_y, (width + bar_width) / 2, bar_y + max(2, height // 150)),
        fill=ACCENT,
    )

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _write_missing(targets: Sequence[Target], shots_dir: Path, clip: ClipRegion) -> List[Path]:
    written: List[Path] = []
    shots_dir.mkdir(parents=True, exist_ok=True)
    for target in targets:
        path = shots_dir / target.image_name
        if path.exists():
            continue
        try:
            data = render_placeholder(target, clip.width, clip.height)
            written.append(atomic_write_bytes(path, data))
        except OSError as exc:
            logger.warning("Could not write placeholder for %s: %s", target.id, exc)
    return written


async def ensure_placeholders(targets: Sequence[Target], shots_dir: Path, clip: ClipRegion) -> List[Path]:
    """Write a placeholder for every target that has no image yet."""
    written = await asyncio.to_thread(_write_missing, targets, Path(shots_dir), clip)
    if written:
        logger.info("Created %d placeholder image(s)", len(written))
    return written


__all__ = ["render_placeholder", "ensure_placeholders"]
