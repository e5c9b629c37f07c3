from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import cairosvg


def svg_to_png(src: Path, width: int) -> Path:
    """Write a PNG next to ``src`` scaled to ``width`` pixels and return its path."""
    dst = src.with_suffix(".png")
    cairosvg.svg2png(url=str(src), write_to=str(dst), output_width=width)
    return dst


async def rasterize(src: Path, width: int) -> Path | None:
    """Rasterize in a worker thread; failures are logged and return None."""
    try:
        dst = await asyncio.to_thread(svg_to_png, src, width)
    except Exception as e:
        logging.error("Failed to rasterize %s: %s", src, e)
        return None
    logging.info("Converting %s -> %s", src.name, dst.name)
    return dst
