"""Live microphone transcription: capture -> fixed-size chunks -> recognizer."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from ..audio.pcm import pcm16_to_float32, peak_level
from ..audio.types import CANONICAL_FORMAT, AudioInputDevice
from ..capture.base import CaptureBackend
from ..metrics import CHUNK_LATENCY, LIVE_CHUNKS_COUNTER
from ..settings import AppSettings, FeatureToggles
from ..store.transcript_store import live_transcript_path
from .whisper_engine import Recognizer, WhisperEngine, iterate_in_thread

LOGGER = logging.getLogger("voxline.live")

DeviceSelector = Callable[[Sequence[AudioInputDevice]], Awaitable[AudioInputDevice]]
EngineFactory = Callable[[Path, AppSettings], Recognizer]


class ChunkAccumulator:
    """Byte buffer filled by the capture callback and drained by the poll loop."""

    def __init__(self, threshold_bytes: int, max_bytes: int = 0) -> None:
        self.threshold_bytes = threshold_bytes
        self.max_bytes = max(max_bytes, threshold_bytes) if max_bytes else 0
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self.dropped_bytes = 0

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._buffer)

    def append(self, data: bytes) -> None:
        with self._lock:
            self._buffer.extend(data)
            if self.max_bytes and len(self._buffer) > self.max_bytes:
                overflow = len(self._buffer) - self.max_bytes
                overflow += overflow % 2
                del self._buffer[:overflow]
                self.dropped_bytes += overflow
                LOGGER.warning("Live buffer full; dropped %d oldest bytes", overflow)

    def drain(self) -> Optional[bytes]:
        """Swap out the buffer once it holds a full chunk, else ``None``."""
        with self._lock:
            if len(self._buffer) < self.threshold_bytes:
                return None
            chunk = bytes(self._buffer)
            self._buffer = bytearray()
        return chunk


@dataclass
class LiveSessionResult:
    device: Optional[AudioInputDevice] = None
    text: str = ""
    chunks: int = 0
    failed_chunks: int = 0
    transcript_path: Optional[Path] = None
    cancelled: bool = False
    segments: list[str] = field(default_factory=list)


class LiveTranscriptionService:
    def __init__(
        self,
        settings: AppSettings,
        engine_factory: EngineFactory = WhisperEngine.from_path,
    ) -> None:
        self.settings = settings
        self.engine_factory = engine_factory

    async def start_live_transcription(
        self,
        model_path: Path | str,
        toggles: FeatureToggles,
        capture_backend: CaptureBackend,
        select_device: DeviceSelector,
        on_segment: Callable[[str], None],
        output_dir: Optional[Path | str],
        model_name: str,
        cancel_event: asyncio.Event,
    ) -> LiveSessionResult:
        result = LiveSessionResult()
        try:
            recognizer = self.engine_factory(Path(model_path), self.settings)
            devices = await capture_backend.list_devices()
            if not devices:
                LOGGER.error("No audio input devices found; live transcription not started")
                return result
            if len(devices) == 1:
                device = devices[0]
                LOGGER.info("Using the only input device: %s", device.display_name)
            else:
                device = await select_device(devices)
            result.device = device
            await self._capture_loop(
                device, recognizer, toggles, capture_backend, on_segment, output_dir, model_name, cancel_event, result
            )
        finally:
            await capture_backend.aclose()
        return result

    async def _capture_loop(
        self,
        device: AudioInputDevice,
        recognizer: Recognizer,
        toggles: FeatureToggles,
        capture_backend: CaptureBackend,
        on_segment: Callable[[str], None],
        output_dir: Optional[Path | str],
        model_name: str,
        cancel_event: asyncio.Event,
        result: LiveSessionResult,
    ) -> None:
        accumulator = ChunkAccumulator(
            CANONICAL_FORMAT.bytes_for(self.settings.live_chunk_seconds),
            CANONICAL_FORMAT.bytes_for(self.settings.live_max_buffer_seconds),
        )

        def on_data(data: bytes) -> None:
            if toggles.log_audio_data_received:
                LOGGER.debug("Audio data received: %d bytes", len(data))
            accumulator.append(data)

        capture_backend.subscribe(on_data)
        try:
            await capture_backend.start_capture(device.id, CANONICAL_FORMAT)
            LOGGER.info("Listening on %s (%s)", device.display_name, device.id)
            while not cancel_event.is_set():
                chunk = accumulator.drain()
                if chunk is not None:
                    await self._process_chunk(chunk, recognizer, toggles, on_segment, result, cancel_event)
                if cancel_event.is_set():
                    break
                try:
                    await asyncio.wait_for(cancel_event.wait(), timeout=self.settings.live_poll_interval)
                except asyncio.TimeoutError:
                    pass
            result.cancelled = cancel_event.is_set()
            if result.cancelled:
                LOGGER.info("Live transcription cancelled")
        finally:
            capture_backend.unsubscribe(on_data)
            try:
                await capture_backend.stop_capture()
            finally:
                result.text = "".join(result.segments)
                result.transcript_path = self._write_transcript(result.text, output_dir, model_name)

    async def _process_chunk(
        self,
        chunk: bytes,
        recognizer: Recognizer,
        toggles: FeatureToggles,
        on_segment: Callable[[str], None],
        result: LiveSessionResult,
        cancel_event: asyncio.Event,
    ) -> None:
        result.chunks += 1
        if toggles.log_processing_chunk_messages:
            LOGGER.info("Processing chunk %d (%d bytes)", result.chunks, len(chunk))
        samples = pcm16_to_float32(chunk)
        gate = self.settings.live_silence_gate
        if gate > 0 and peak_level(samples) < gate:
            if toggles.enable_diagnostic_logging:
                LOGGER.debug("Chunk %d below silence gate %.3f; skipped", result.chunks, gate)
            LIVE_CHUNKS_COUNTER.labels(status="silent").inc()
            return

        started = time.perf_counter()
        received = 0
        try:
            async for piece in iterate_in_thread(lambda: recognizer.transcribe_samples(samples)):
                received += 1
                if toggles.enable_diagnostic_logging:
                    LOGGER.debug("Segment received: %r", piece.text)
                if piece.text.strip():
                    result.segments.append(piece.text)
                    on_segment(piece.text)
                if cancel_event.is_set():
                    LOGGER.info("Cancellation requested during recognition")
                    break
        except Exception as exc:
            result.failed_chunks += 1
            LIVE_CHUNKS_COUNTER.labels(status="failed").inc()
            LOGGER.error("Error transcribing live chunk %d: %s", result.chunks, exc)
            return
        CHUNK_LATENCY.observe(time.perf_counter() - started)
        LIVE_CHUNKS_COUNTER.labels(status="transcribed").inc()
        if received == 0 and toggles.enable_diagnostic_logging:
            LOGGER.debug("Chunk %d produced no segments", result.chunks)

    @staticmethod
    def _write_transcript(text: str, output_dir: Optional[Path | str], model_name: str) -> Optional[Path]:
        if not text or output_dir is None:
            return None
        path = live_transcript_path(Path(output_dir), model_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            LOGGER.error("Could not save live transcript %s: %s", path, exc)
            return None
        LOGGER.info("Live transcript saved to %s", path)
        return path


__all__ = ["ChunkAccumulator", "LiveSessionResult", "LiveTranscriptionService"]
