from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings
from .raster import rasterize
from .utils import CmdResult, first_line, human_bytes, run_command

Runner = Callable[..., Awaitable[CmdResult]]


@dataclass(frozen=True)
class RenderCommand:
    program: str
    args: tuple[str, ...]
    source: Path
    output: Path

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


@dataclass
class ConversionResult:
    source: Path
    output: Path
    ok: bool
    returncode: int
    error: str | None = None
    png: Path | None = field(default=None)


def discover_sources(source_dir: Path, pattern: str = "*.mmd") -> list[Path]:
    """Return the files directly under ``source_dir`` matching ``pattern``."""
    if not source_dir.is_dir():
        return []
    return sorted(p for p in source_dir.glob(pattern) if p.is_file())


def derive_output_path(source: Path, out_dir: Path, extension: str) -> Path:
    return out_dir / f"{Path(source).stem}{extension}"


def build_command(source: Path, settings: Settings) -> RenderCommand:
    output = derive_output_path(source, settings.assets_dir, settings.extension)
    args = (
        "-i",
        str(source),
        "-o",
        str(output),
        "-t",
        settings.theme,
        "-b",
        settings.background,
    )
    return RenderCommand(program=settings.renderer, args=args, source=source, output=output)


async def convert_one(
    command: RenderCommand,
    settings: Settings,
    runner: Runner = run_command,
) -> ConversionResult:
    """Run the renderer for one file. Failures are logged, never raised."""
    res = await runner(command.argv, settings.command_timeout_sec)
    if res.returncode != 0:
        reason = first_line(res.stderr) or first_line(res.stdout) or "no output"
        logging.error(
            "Failed to compile %s (exit %s): %s", command.source, res.returncode, reason
        )
        return ConversionResult(
            source=command.source,
            output=command.output,
            ok=False,
            returncode=res.returncode,
            error=reason,
        )

    logging.info("Compiled %s", command.source)
    if command.output.exists():
        logging.debug(
            "Wrote %s (%s)", command.output, human_bytes(command.output.stat().st_size)
        )

    result = ConversionResult(
        source=command.source, output=command.output, ok=True, returncode=0
    )
    if settings.png_width and settings.output_format == "svg" and command.output.exists():
        result.png = await rasterize(command.output, settings.png_width)
    return result


async def convert_all(
    settings: Settings,
    runner: Runner = run_command,
) -> list[ConversionResult]:
    """Launch one conversion per matching file and wait for all of them."""
    sources = discover_sources(settings.source_dir, settings.pattern)
    if not sources:
        logging.info("No files matching %s in %s", settings.pattern, settings.source_dir)
        return []

    settings.assets_dir.mkdir(parents=True, exist_ok=True)
    commands = [build_command(src, settings) for src in sources]
    tasks = [asyncio.create_task(convert_one(cmd, settings, runner)) for cmd in commands]
    outcomes = await asyncio.gather(*tasks, return_exceptions=True)

    results: list[ConversionResult] = []
    for cmd, res in zip(commands, outcomes):
        if isinstance(res, BaseException):
            logging.error("Failed to compile %s: %s", cmd.source, repr(res))
            res = ConversionResult(
                source=cmd.source, output=cmd.output, ok=False, returncode=-1, error=repr(res)
            )
        results.append(res)
    return results
