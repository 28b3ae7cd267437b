"""Extract one speech segment of a PCM file into its own temporary WAV."""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path

from ..errors import SegmentExtractionFailure, ToolExecutionError
from .process import ToolRunner
from .types import CANONICAL_FORMAT, AudioSegment

LOGGER = logging.getLogger("voxline.segments")


class SegmentStream(io.FileIO):
    """Read-only file that removes itself from disk when closed."""

    def __init__(self, path: Path | str) -> None:
        self._released = True
        super().__init__(str(path), "rb")
        self.path = Path(path)
        self._released = False

    @property
    def length(self) -> int:
        if self.closed:
            return 0
        return os.fstat(self.fileno()).st_size

    def close(self) -> None:
        try:
            super().close()
        finally:
            if not self._released:
                self._released = True
                try:
                    self.path.unlink(missing_ok=True)
                except OSError as exc:
                    LOGGER.warning("Could not remove segment file %s: %s", self.path, exc)


class SegmentExtractor:
    def __init__(
        self,
        temp_dir: Path | str,
        runner: ToolRunner | None = None,
        ffmpeg: str = "ffmpeg",
    ) -> None:
        self.segments_dir = Path(temp_dir) / "_segments"
        self.runner = runner or ToolRunner()
        self.ffmpeg = ffmpeg

    def segment_path(self, parent: Path | str, index: int, total: int) -> Path:
        stem = Path(parent).stem
        return self.segments_dir / f"{stem}_segment_{index + 1:04d}_of_{total:04d}.wav"

    async def get_segment_stream(
        self, parent: Path | str, segment: AudioSegment, index: int, total: int
    ) -> SegmentStream | None:
        """Return a self-deleting, non-empty stream for ``segment``, or ``None`` when it cannot be produced."""
        if segment.length <= 0:
            LOGGER.warning(
                "Segment %d/%d has non-positive length (%s); not extracting", index + 1, total, segment
            )
            return None
        try:
            path = await self.extract(parent, segment, index, total)
        except SegmentExtractionFailure as exc:
            LOGGER.error("Segment %d/%d (%s) of %s skipped: %s", index + 1, total, segment, parent, exc)
            return None
        return SegmentStream(path)

    async def extract(self, parent: Path | str, segment: AudioSegment, index: int, total: int) -> Path:
        target = self.segment_path(parent, index, total)
        self.segments_dir.mkdir(parents=True, exist_ok=True)
        if target.exists():
            LOGGER.debug("Removing stale segment file %s", target)
            target.unlink()

        LOGGER.info("Extracting segment %d/%d: %s", index + 1, total, segment)
        args = [
            self.ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-y",
            "-i",
            str(parent),
            "-ss",
            f"{segment.start:.3f}",
            "-to",
            f"{segment.end:.3f}",
            "-ar",
            str(CANONICAL_FORMAT.sample_rate),
            "-ac",
            str(CANONICAL_FORMAT.channels),
            "-sample_fmt",
            "s16",
            str(target),
        ]
        try:
            await self.runner.run_checked(args)
        except ToolExecutionError as exc:
            target.unlink(missing_ok=True)
            raise SegmentExtractionFailure(f"{exc}\n{exc.stderr_tail()}") from exc
        if not target.exists() or target.stat().st_size == 0:
            target.unlink(missing_ok=True)
            raise SegmentExtractionFailure(f"ffmpeg produced no output at {target}")
        return target


__all__ = ["SegmentExtractor", "SegmentStream"]
