"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class AudioSegment:
    """Speech window within a parent file (seconds from the start)."""

    start: float
    end: float

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"segment end {self.end} precedes start {self.start}")

    @property
    def length(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, float]:
        return {"start_time": round(self.start, 3), "end_time": round(self.end, 3)}

    def __str__(self) -> str:
        return f"{self.start:.3f}s -> {self.end:.3f}s ({self.length:.3f}s)"


@dataclass(frozen=True, slots=True)
class VADParameters:
    noise_db: str = "-30dB"
    min_silence_seconds: float = 0.8
    min_speech_seconds: float = 0.3
    padding_seconds: float = 0.15
    merge_overlaps: bool = True

    def __post_init__(self) -> None:
        for name in ("min_silence_seconds", "min_speech_seconds", "padding_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True, slots=True)
class AudioFormat:
    sample_rate: int
    bits_per_sample: int
    channels: int

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample // 8

    @property
    def bytes_per_second(self) -> int:
        return self.sample_rate * self.bytes_per_sample * self.channels

    def bytes_for(self, seconds: float) -> int:
        frame = self.bytes_per_sample * self.channels
        return int(self.bytes_per_second * seconds) // frame * frame


CANONICAL_FORMAT = AudioFormat(sample_rate=16_000, bits_per_sample=16, channels=1)


@dataclass(frozen=True, slots=True)
class AudioInputDevice:
    """Capture device; two devices are the same when their ids match."""

    id: str
    display_name: str = field(compare=False)


@dataclass(frozen=True, slots=True)
class RecognizedSegment:
    start: float
    end: float
    text: str


__all__ = [
    "AudioFormat",
    "AudioInputDevice",
    "AudioSegment",
    "CANONICAL_FORMAT",
    "RecognizedSegment",
    "VADParameters",
]
