"""Async runner for the external command-line tools (ffmpeg, ffprobe, arecord...)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from ..errors import ToolExecutionError

LOGGER = logging.getLogger("voxline.process")


@dataclass(slots=True)
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ToolRunner:
    """Run a tool to completion and collect both output streams."""

    async def run(self, args: Sequence[str]) -> ProcessResult:
        args = [str(arg) for arg in args]
        LOGGER.debug("exec: %s", " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ToolExecutionError(args[0], f"failed to launch ({exc})", args=args) from exc
        stdout, stderr = await process.communicate()
        return ProcessResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def run_checked(self, args: Sequence[str]) -> ProcessResult:
        result = await self.run(args)
        if not result.ok:
            raise ToolExecutionError(
                str(args[0]),
                f"exited with code {result.exit_code}",
                exit_code=result.exit_code,
                stderr=result.stderr,
                args=args,
            )
        return result


__all__ = ["ProcessResult", "ToolRunner"]
