"""Lazy Whisper (faster-whisper) loader + mock mode."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Callable, Iterable, Iterator, Protocol

import numpy as np
import soundfile as sf
from faster_whisper import WhisperModel

from ..audio.types import CANONICAL_FORMAT, RecognizedSegment
from ..errors import RecognitionChunkError
from ..settings import AppSettings

LOGGER = logging.getLogger("voxline.whisper")

_DONE = object()


class Recognizer(Protocol):
    def transcribe_stream(self, stream: BinaryIO) -> Iterator[RecognizedSegment]:
        ...

    def transcribe_samples(self, samples: np.ndarray) -> Iterator[RecognizedSegment]:
        ...


class WhisperEngine:
    """Thin wrapper that loads Whisper on demand, with a fixed language."""

    def __init__(self, model: str, settings: AppSettings) -> None:
        self.model_ref = model
        self.settings = settings
        self.language = settings.language
        self._lock = threading.Lock()
        self._model: WhisperModel | None = None
        self._mock = settings.whisper_mock_transcriber
        if self._mock:
            LOGGER.warning(
                "Whisper mock mode enabled (set WHISPER_USE_MOCK=0 to run real transcription)."
            )

    @classmethod
    def from_path(cls, model_path: Path | str, settings: AppSettings) -> "WhisperEngine":
        return cls(str(model_path), settings)

    @property
    def model_name(self) -> str:
        return Path(self.model_ref).name

    def _load_model(self) -> WhisperModel:
        if self._mock:
            raise RuntimeError("Mock mode does not load real Whisper models")
        if self._model is None:
            with self._lock:
                if self._model is None:
                    LOGGER.info(
                        "Loading Whisper model %s (device=%s, compute_type=%s, language=%s)",
                        self.model_ref,
                        self.settings.whisper_device,
                        self.settings.whisper_compute_type,
                        self.language,
                    )
                    try:
                        self._model = WhisperModel(
                            self.model_ref,
                            device=self.settings.whisper_device,
                            compute_type=self.settings.whisper_compute_type,
                        )
                    except Exception as exc:  # pragma: no cover - hardware/env dep
                        LOGGER.error("Failed to load Whisper model '%s': %s", self.model_ref, exc)
                        raise
        return self._model

    def transcribe_stream(self, stream: BinaryIO) -> Iterator[RecognizedSegment]:
        """Decode a canonical WAV stream and transcribe it."""
        try:
            audio, sample_rate = sf.read(stream, dtype="float32")
        except (RuntimeError, TypeError) as exc:
            raise RecognitionChunkError(f"could not decode audio stream: {exc}") from exc
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        if sample_rate != CANONICAL_FORMAT.sample_rate:
            raise RecognitionChunkError(
                f"expected {CANONICAL_FORMAT.sample_rate} Hz audio, got {sample_rate} Hz"
            )
        return self.transcribe_samples(audio)

    def transcribe_samples(self, samples: np.ndarray) -> Iterator[RecognizedSegment]:
        if self._mock:
            return _mock_segments(samples)
        model = self._load_model()
        segments, _info = model.transcribe(
            np.asarray(samples, dtype=np.float32),
            language=self.language,
            beam_size=self.settings.whisper_beam_size,
        )
        return _to_recognized(segments)


def _to_recognized(segments: Iterable) -> Iterator[RecognizedSegment]:
    for segment in segments:
        yield RecognizedSegment(
            start=float(getattr(segment, "start", 0.0) or 0.0),
            end=float(getattr(segment, "end", 0.0) or 0.0),
            text=segment.text or "",
        )


def _mock_segments(samples: np.ndarray) -> Iterator[RecognizedSegment]:
    duration = len(samples) / float(CANONICAL_FORMAT.sample_rate)
    yield RecognizedSegment(0.0, duration, f" [mock transcript {len(samples)} samples]")


async def iterate_in_thread(
    factory: Callable[[], Iterator[RecognizedSegment]],
) -> AsyncIterator[RecognizedSegment]:
    """Drive a blocking recognizer iterator from worker threads, one piece at a time."""
    iterator = await asyncio.to_thread(factory)
    while True:
        piece = await asyncio.to_thread(next, iterator, _DONE)
        if piece is _DONE:
            return
        yield piece


__all__ = ["Recognizer", "WhisperEngine", "iterate_in_thread"]
