"""Audio helpers: external tools, segmentation and PCM conversion."""

from .converter import FFmpegConverter
from .pcm import pcm16_to_float32
from .probe import DurationProbe
from .process import ProcessResult, ToolRunner
from .segment_extractor import SegmentExtractor, SegmentStream
from .silence_detector import SilenceDetector, build_speech_segments, parse_silence_boundaries
from .types import (
    CANONICAL_FORMAT,
    AudioFormat,
    AudioInputDevice,
    AudioSegment,
    RecognizedSegment,
    VADParameters,
)

__all__ = [
    "AudioFormat",
    "AudioInputDevice",
    "AudioSegment",
    "CANONICAL_FORMAT",
    "DurationProbe",
    "FFmpegConverter",
    "ProcessResult",
    "RecognizedSegment",
    "SegmentExtractor",
    "SegmentStream",
    "SilenceDetector",
    "ToolRunner",
    "VADParameters",
    "build_speech_segments",
    "parse_silence_boundaries",
    "pcm16_to_float32",
]
