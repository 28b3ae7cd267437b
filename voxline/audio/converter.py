"""Conversion of arbitrary input audio into canonical 16 kHz mono PCM WAV."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import ConversionError, ToolExecutionError
from .process import ToolRunner
from .types import CANONICAL_FORMAT

LOGGER = logging.getLogger("voxline.converter")


class FFmpegConverter:
    def __init__(self, runner: ToolRunner | None = None, ffmpeg: str = "ffmpeg") -> None:
        self.runner = runner or ToolRunner()
        self.ffmpeg = ffmpeg

    async def to_pcm(self, source: Path | str, target: Path | str) -> Path:
        args = [
            self.ffmpeg,
            "-y",
            "-i",
            str(source),
            "-acodec",
            "pcm_s16le",
            "-ar",
            str(CANONICAL_FORMAT.sample_rate),
            "-ac",
            str(CANONICAL_FORMAT.channels),
            str(target),
        ]
        LOGGER.info("Converting %s -> %s", source, target)
        try:
            await self.runner.run_checked(args)
        except ToolExecutionError as exc:
            LOGGER.error("ffmpeg conversion failed for %s:\n%s", source, exc.stderr_tail())
            raise ConversionError(f"could not convert {source}: {exc}") from exc
        return Path(target)
