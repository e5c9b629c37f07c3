from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass
class CmdResult:
    returncode: int
    stdout: bytes
    stderr: bytes


async def run_command(argv: Sequence[str], timeout_sec: float | None = None) -> CmdResult:
    """Run a program without a shell, returning stdout/stderr as bytes.

    A program that cannot be started yields returncode 127; a timeout kills the
    process and yields returncode 124.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return CmdResult(returncode=127, stdout=b"", stderr=f"{argv[0]}: {e}".encode())

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        # The process may exit between the timeout and the kill
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        return CmdResult(
            returncode=124, stdout=b"", stderr=f"Timeout after {timeout_sec}s".encode()
        )

    return CmdResult(returncode=proc.returncode or 0, stdout=stdout or b"", stderr=stderr or b"")


def first_line(data: bytes) -> str:
    """First non-empty line of process output, for one-line log messages."""
    text = data.decode("utf-8", errors="replace")
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def human_bytes(n: int) -> str:
    step = 1024.0
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    v = float(n)
    while v >= step and i < len(units) - 1:
        v /= step
        i += 1
    return f"{v:.2f} {units[i]}"
