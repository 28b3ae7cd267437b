"""Wires settings, tools and services together for one working directory."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from ..audio.converter import FFmpegConverter
from ..audio.probe import DurationProbe
from ..audio.process import ToolRunner
from ..audio.segment_extractor import SegmentExtractor
from ..audio.silence_detector import SilenceDetector
from ..audio.types import AudioInputDevice
from ..capture import CaptureBackend, select_backend
from ..errors import CaptureError, VoxlineError
from ..settings import AppSettings
from .batch_service import BatchTranscriptionService, ConfirmOverwrite, FileTranscriptionResult
from .live_service import DeviceSelector, LiveSessionResult, LiveTranscriptionService
from .whisper_engine import Recognizer, WhisperEngine

LOGGER = logging.getLogger("voxline.workspace")


def list_models(models_dir: Path | str) -> List[Path]:
    """Non-hidden files in ``models_dir``, sorted by name."""
    models_dir = Path(models_dir)
    if not models_dir.is_dir():
        return []
    return sorted(
        (item for item in models_dir.iterdir() if item.is_file() and not item.name.startswith(".")),
        key=lambda item: item.name,
    )


def list_recordings(input_dir: Path | str, extensions: Iterable[str] = (".mp3",)) -> List[Path]:
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        return []
    wanted = {ext.lower() for ext in extensions}
    return sorted(
        (item for item in input_dir.iterdir() if item.is_file() and item.suffix.lower() in wanted),
        key=lambda item: item.name,
    )


class Workspace:
    def __init__(
        self,
        settings: AppSettings,
        *,
        runner: ToolRunner | None = None,
        recognizer_factory: Callable[[Path, AppSettings], Recognizer] = WhisperEngine.from_path,
        backend_factory: Callable[[], Optional[CaptureBackend]] | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner or ToolRunner()
        self.recognizer_factory = recognizer_factory
        self.backend_factory = backend_factory or (
            lambda: select_backend(runner=self.runner, stop_timeout=settings.capture_stop_timeout)
        )
        self.model_path: Optional[Path] = None
        self.model_name: Optional[str] = None

    @property
    def is_initialised(self) -> bool:
        return self.model_path is not None and bool(self.model_name)

    def load_model(self, model_path: Path | str) -> Path:
        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model not found: {model_path}")
        input_dir = Path(self.settings.input_dir)
        if not input_dir.exists():
            input_dir.mkdir(parents=True, exist_ok=True)
            LOGGER.warning("Created input directory %s; place recordings there", input_dir)
        self.model_path = model_path
        self.model_name = model_path.name
        LOGGER.info("Selected model %s", model_path)
        return model_path

    def _require_model(self) -> None:
        if not self.is_initialised:
            raise VoxlineError("Load a model before transcribing")

    def build_batch_service(
        self, confirm_overwrite: ConfirmOverwrite | None = None
    ) -> BatchTranscriptionService:
        settings = self.settings
        probe = DurationProbe(self.runner, ffprobe=settings.ffprobe_path)
        detector = SilenceDetector(self.runner, probe, ffmpeg=settings.ffmpeg_path)
        extractor = SegmentExtractor(settings.temp_dir, self.runner, ffmpeg=settings.ffmpeg_path)
        kwargs = {"confirm_overwrite": confirm_overwrite} if confirm_overwrite else {}
        return BatchTranscriptionService(detector, extractor, settings.vad_parameters(), **kwargs)

    async def transcribe_all(
        self,
        files: Optional[Sequence[Path]] = None,
        *,
        confirm_overwrite: ConfirmOverwrite | None = None,
    ) -> List[FileTranscriptionResult]:
        self._require_model()
        settings = self.settings
        if files is None:
            files = list_recordings(settings.input_dir, settings.recording_extensions)
        if not files:
            LOGGER.warning("No recordings found in %s", settings.input_dir)
            return []
        recognizer = self.recognizer_factory(self.model_path, settings)
        service = self.build_batch_service(confirm_overwrite)
        converter = FFmpegConverter(self.runner, ffmpeg=settings.ffmpeg_path)
        return await service.transcribe_all_files(
            files,
            recognizer,
            self.model_name,
            Path(settings.output_dir),
            converter,
            Path(settings.temp_dir),
        )

    async def list_devices(self) -> List[AudioInputDevice]:
        backend = self.backend_factory()
        if backend is None:
            return []
        try:
            return await backend.list_devices()
        finally:
            await backend.aclose()

    async def start_live(
        self,
        select_device: DeviceSelector,
        on_segment: Callable[[str], None],
        cancel_event: asyncio.Event,
    ) -> LiveSessionResult:
        self._require_model()
        backend = self.backend_factory()
        if backend is None:
            raise CaptureError("No audio capture backend for this platform")
        service = LiveTranscriptionService(self.settings, engine_factory=self.recognizer_factory)
        return await service.start_live_transcription(
            self.model_path,
            self.settings.feature_toggles(),
            backend,
            select_device,
            on_segment,
            Path(self.settings.output_dir),
            self.model_name,
            cancel_event,
        )


__all__ = ["Workspace", "list_models", "list_recordings"]
