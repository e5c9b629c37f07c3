from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

from diagrams.config import Settings, load_settings
from diagrams.converter import convert_all


def setup_logging(settings: Settings) -> None:
    # Console always; optional rotating file
    log_format = "%(asctime)s %(levelname)s %(name)s %(message)s"
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=log_format)
    if settings.log_file:
        try:
            settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backups,
                encoding="utf-8",
            )
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(log_format))
            root = logging.getLogger()
            root.addHandler(fh)
        except Exception:
            logging.exception("Failed to set up file logging")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render Mermaid diagram sources into site assets.")
    parser.add_argument("--src", type=Path, help="Directory with diagram sources (DIAGRAM_SRC_DIR).")
    parser.add_argument("--out", type=Path, help="Directory for rendered images (DIAGRAM_OUT_DIR).")
    parser.add_argument("--log-level", help="Logging level (LOG_LEVEL).")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates: dict[str, object] = {}
    if args.src is not None:
        updates["src_dir"] = args.src
    if args.out is not None:
        updates["out_dir"] = args.out
    if args.log_level:
        updates["log_level"] = args.log_level.upper()
    return settings.model_copy(update=updates) if updates else settings


async def build(settings: Settings) -> int:
    results = await convert_all(settings)
    ok = sum(1 for r in results if r.ok)
    logging.info("Converted %d/%d diagrams into %s", ok, len(results), settings.assets_dir)
    # Per-file failures are already logged; they do not change the exit status.
    return 0


def main(argv: list[str] | None = None) -> int:
    # Load .env if present
    load_dotenv()
    args = parse_args(argv)
    try:
        settings = apply_overrides(load_settings(), args)
    except RuntimeError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(settings)
    logging.debug("Rendering %s with %s", settings.source_dir, settings.renderer)
    try:
        return asyncio.run(build(settings))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
