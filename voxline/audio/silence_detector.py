"""Speech segmentation driven by ffmpeg's ``silencedetect`` filter."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

from ..errors import DurationUnavailableError, ToolExecutionError
from .probe import DurationProbe
from .process import ToolRunner
from .types import AudioSegment, VADParameters

LOGGER = logging.getLogger("voxline.vad")

_SILENCE_RE = re.compile(r"silence_(start|end):\s*(-?\d+(?:\.\d+)?)")


def parse_silence_boundaries(lines: Iterable[str]) -> list[float]:
    """Collect silence start/end timestamps from ffmpeg diagnostic lines."""
    points: list[float] = []
    for line in lines:
        match = _SILENCE_RE.search(line)
        if match:
            points.append(max(0.0, float(match.group(2))))
    return points


def build_speech_segments(
    boundaries: Sequence[float], duration: float, params: VADParameters
) -> list[AudioSegment]:
    """Turn alternating silence start/end points into padded speech segments."""
    points = sorted(boundaries)
    pad = params.padding_seconds

    if not points:
        if duration > params.min_speech_seconds:
            return [AudioSegment(0.0, duration)]
        LOGGER.info(
            "No silence detected and duration %.3fs is below the %.3fs minimum; no segments",
            duration,
            params.min_speech_seconds,
        )
        return []

    candidates: list[tuple[float, float]] = []
    cursor = 0.0
    for idx in range(0, len(points), 2):
        silence_start = points[idx]
        silence_end = points[idx + 1] if idx + 1 < len(points) else duration
        if silence_start > cursor:
            candidates.append((cursor, silence_start))
        cursor = silence_end
    if cursor < duration:
        candidates.append((cursor, duration))

    segments: list[AudioSegment] = []
    for speech_start, speech_end in candidates:
        start = max(0.0, speech_start - pad)
        end = min(duration, speech_end + pad)
        if end <= start:
            continue
        if end - start >= params.min_speech_seconds:
            segments.append(AudioSegment(start, end))
        else:
            LOGGER.debug("Skipped short speech span %.3fs -> %.3fs", start, end)

    if params.merge_overlaps:
        segments = _merge_overlaps(segments)
    return segments


def _merge_overlaps(segments: list[AudioSegment]) -> list[AudioSegment]:
    if not segments:
        return []
    merged: list[AudioSegment] = []
    current = segments[0]
    for segment in segments[1:]:
        if segment.start < current.end:
            current = AudioSegment(current.start, max(current.end, segment.end))
        else:
            merged.append(current)
            current = segment
    merged.append(current)
    return merged


class SilenceDetector:
    """Detect speech windows in a canonical PCM file."""

    def __init__(
        self,
        runner: ToolRunner | None = None,
        probe: DurationProbe | None = None,
        ffmpeg: str = "ffmpeg",
    ) -> None:
        self.runner = runner or ToolRunner()
        self.probe = probe or DurationProbe(self.runner)
        self.ffmpeg = ffmpeg

    async def detect_speech_segments(
        self, pcm_path: Path | str, params: VADParameters
    ) -> list[AudioSegment]:
        name = Path(pcm_path).name
        LOGGER.info(
            "Detecting speech in %s (noise=%s, min_silence=%.2fs, min_speech=%.2fs, padding=%.2fs)",
            name,
            params.noise_db,
            params.min_silence_seconds,
            params.min_speech_seconds,
            params.padding_seconds,
        )
        boundaries = await self._silence_boundaries(pcm_path, params)
        LOGGER.debug(
            "Raw silence points (%d): %s",
            len(boundaries),
            ", ".join(f"{point:.3f}" for point in boundaries),
        )

        duration = await self.probe.probe(pcm_path)
        if duration is None:
            raise DurationUnavailableError(f"could not determine the duration of {pcm_path}")

        segments = build_speech_segments(boundaries, duration, params)
        if segments:
            LOGGER.info("Detected %d speech segment(s) in %s (%.3fs)", len(segments), name, duration)
        else:
            LOGGER.warning("No speech segments derived for %s", name)
        return segments

    async def _silence_boundaries(self, pcm_path: Path | str, params: VADParameters) -> list[float]:
        args = [
            self.ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-i",
            str(pcm_path),
            "-af",
            f"silencedetect=noise={params.noise_db}:duration={params.min_silence_seconds}",
            "-f",
            "null",
            "-",
        ]
        try:
            result = await self.runner.run_checked(args)
        except ToolExecutionError as exc:
            LOGGER.error("silencedetect failed for %s:\n%s", pcm_path, exc.stderr_tail())
            raise
        return parse_silence_boundaries(result.stderr.splitlines())


__all__ = ["SilenceDetector", "build_speech_segments", "parse_silence_boundaries"]
