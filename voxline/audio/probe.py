"""Media duration lookup through ffprobe."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import ToolExecutionError
from .process import ToolRunner

LOGGER = logging.getLogger("voxline.probe")


class DurationProbe:
    def __init__(self, runner: ToolRunner | None = None, ffprobe: str = "ffprobe") -> None:
        self.runner = runner or ToolRunner()
        self.ffprobe = ffprobe

    async def probe(self, path: Path | str) -> float | None:
        """Return the duration of ``path`` in seconds, or ``None`` if unknown."""
        args = [
            self.ffprobe,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            result = await self.runner.run(args)
        except ToolExecutionError as exc:
            LOGGER.error("Duration probe could not run for %s: %s", path, exc)
            return None
        try:
            return float(result.stdout.strip())
        except ValueError:
            if result.stderr.strip():
                LOGGER.warning("ffprobe stderr for %s: %s", path, result.stderr.strip())
            return None
