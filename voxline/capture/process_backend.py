"""Capture through an external recorder process writing raw PCM to stdout."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..audio.process import ToolRunner
from ..audio.types import AudioFormat
from ..errors import CaptureError
from .base import CaptureBackend

LOGGER = logging.getLogger("voxline.capture")

READ_SIZE = 4096


class ProcessCaptureBackend(CaptureBackend):
    name = "process"

    def __init__(self, runner: ToolRunner | None = None, stop_timeout: float = 2.0) -> None:
        super().__init__(runner)
        self.stop_timeout = stop_timeout
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader: Optional[asyncio.Task] = None

    def capture_command(self, device_id: str, fmt: AudioFormat) -> List[str]:
        raise NotImplementedError

    async def _start(self, device_id: str, fmt: AudioFormat) -> None:
        args = self.capture_command(device_id, fmt)
        LOGGER.debug("exec: %s", " ".join(args))
        try:
            self._process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise CaptureError(f"could not launch {args[0]}: {exc}") from exc
        self._reader = asyncio.create_task(self._pump(self._process))

    async def _pump(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        while True:
            data = await process.stdout.read(READ_SIZE)
            if not data:
                break
            self._emit(data)
        code = await process.wait()
        if code not in (0, None) and self.is_capturing:
            LOGGER.warning("%s recorder exited with code %s", self.name, code)

    async def _stop(self) -> None:
        process, reader = self._process, self._reader
        self._process, self._reader = None, None
        if process is not None and process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
            except asyncio.TimeoutError:
                LOGGER.warning("%s recorder did not exit in %.1fs; killing", self.name, self.stop_timeout)
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                LOGGER.warning("%s reader ended with error: %s", self.name, exc)


__all__ = ["ProcessCaptureBackend"]
