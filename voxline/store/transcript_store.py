"""Transcript and segment-plan files written next to each processed input."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, List

from pydantic import BaseModel, TypeAdapter

from ..audio.types import AudioSegment


class SegmentWindow(BaseModel):
    start_time: float
    end_time: float


_PLAN_ADAPTER = TypeAdapter(List[SegmentWindow])


def write_segment_plan(path: Path, segments: Iterable[AudioSegment]) -> Path:
    windows = [SegmentWindow(**segment.to_dict()) for segment in segments]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_PLAN_ADAPTER.dump_json(windows, indent=2))
    return path


def read_segment_plan(path: Path) -> list[AudioSegment]:
    windows = _PLAN_ADAPTER.validate_json(path.read_bytes())
    return [AudioSegment(window.start_time, window.end_time) for window in windows]


class TranscriptStore:
    """Owns the full and per-segment transcript files for one input."""

    def __init__(self, output_dir: Path, stem: str, model_name: str) -> None:
        self.output_dir = Path(output_dir)
        self.stem = stem
        self.model_name = model_name
        self._started: set[int] = set()

    @property
    def full_path(self) -> Path:
        return self.output_dir / f"{self.stem}_{self.model_name}.txt"

    def segment_path(self, index: int) -> Path:
        return self.output_dir / f"{self.stem}_{self.model_name}_segment-{index + 1:04d}.txt"

    def append_segment_text(self, index: int, text: str) -> Path:
        """Write one recognized piece; the first write for a segment truncates the file."""
        path = self.segment_path(index)
        mode = "a" if index in self._started else "w"
        with path.open(mode, encoding="utf-8") as handle:
            handle.write(text.strip() + "\n")
        self._started.add(index)
        return path

    def write_full(self, text: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.full_path.write_text(text.strip(), encoding="utf-8")
        return self.full_path


def live_transcript_path(output_dir: Path, model_name: str, now: datetime | None = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    return Path(output_dir) / f"LiveTranscript_{stamp}_{model_name}.txt"


__all__ = [
    "SegmentWindow",
    "TranscriptStore",
    "live_transcript_path",
    "read_segment_plan",
    "write_segment_plan",
]
