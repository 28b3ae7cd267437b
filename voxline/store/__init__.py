"""Transcript and segment-plan persistence."""

from .transcript_store import (
    SegmentWindow,
    TranscriptStore,
    live_transcript_path,
    read_segment_plan,
    write_segment_plan,
)

__all__ = [
    "SegmentWindow",
    "TranscriptStore",
    "live_transcript_path",
    "read_segment_plan",
    "write_segment_plan",
]
