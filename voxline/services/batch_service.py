"""Batch pipeline: convert -> detect speech -> extract segments -> transcribe -> persist."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..audio.converter import FFmpegConverter
from ..audio.segment_extractor import SegmentExtractor
from ..audio.silence_detector import SilenceDetector
from ..audio.types import AudioSegment, VADParameters
from ..errors import ConversionError
from ..metrics import FILE_DURATION, FILES_COUNTER, SEGMENTS_COUNTER
from ..store.transcript_store import TranscriptStore, write_segment_plan
from .whisper_engine import Recognizer, iterate_in_thread

LOGGER = logging.getLogger("voxline.batch")

ConfirmOverwrite = Callable[[Path], bool]


class FileState(str, enum.Enum):
    INIT = "init"
    CONVERTING = "converting"
    DETECTING_SPEECH = "detecting_speech"
    PERSISTING_SEGMENT_PLAN = "persisting_segment_plan"
    TRANSCRIBING_SEGMENTS = "transcribing_segments"
    FINALIZING = "finalizing"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class FileTranscriptionResult:
    """Outcome of one input file.

    A segment whose recognition fails partway stays in ``skipped_segments``; its
    partial text remains in the per-segment file but not in ``text``.
    """

    source: Path
    state: FileState = FileState.INIT
    output_path: Optional[Path] = None
    plan_path: Optional[Path] = None
    segments: list[AudioSegment] = field(default_factory=list)
    transcribed_segments: list[int] = field(default_factory=list)
    skipped_segments: list[int] = field(default_factory=list)
    text: str = ""
    speech_seconds: float = 0.0
    elapsed_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def speed_ratio(self) -> Optional[float]:
        if self.speech_seconds <= 0:
            return None
        return self.elapsed_seconds / self.speech_seconds


def _never_overwrite(_: Path) -> bool:
    return False


class BatchTranscriptionService:
    """Transcribes input files one at a time, segment by segment."""

    def __init__(
        self,
        detector: SilenceDetector,
        extractor: SegmentExtractor,
        vad_params: VADParameters,
        *,
        confirm_overwrite: ConfirmOverwrite = _never_overwrite,
    ) -> None:
        self.detector = detector
        self.extractor = extractor
        self.vad_params = vad_params
        self.confirm_overwrite = confirm_overwrite

    async def transcribe_all_files(
        self,
        files: Iterable[Path],
        recognizer: Recognizer,
        model_name: str,
        output_dir: Path,
        converter: FFmpegConverter,
        temp_dir: Path,
    ) -> list[FileTranscriptionResult]:
        files = [Path(item) for item in files]
        LOGGER.info("Starting batch transcription of %d file(s)", len(files))
        results = []
        for audio_file in files:
            try:
                result = await self.transcribe_file(
                    audio_file, recognizer, model_name, output_dir, converter, temp_dir
                )
            except Exception as exc:
                LOGGER.error("Unexpected failure on %s: %s", audio_file.name, exc, exc_info=True)
                result = FileTranscriptionResult(source=audio_file, state=FileState.FAILED, error=str(exc))
            results.append(result)
        LOGGER.info("All files processed")
        return results

    async def transcribe_file(
        self,
        audio_file: Path,
        recognizer: Recognizer,
        model_name: str,
        output_dir: Path,
        converter: FFmpegConverter,
        temp_dir: Path,
    ) -> FileTranscriptionResult:
        audio_file = Path(audio_file)
        output_dir = Path(output_dir)
        temp_dir = Path(temp_dir)
        result = FileTranscriptionResult(source=audio_file)
        LOGGER.info("Starting transcription of %s", audio_file.name)

        output_dir.mkdir(parents=True, exist_ok=True)
        temp_dir.mkdir(parents=True, exist_ok=True)

        store = TranscriptStore(output_dir, audio_file.stem, model_name)
        result.output_path = store.full_path
        if store.full_path.exists():
            if not self.confirm_overwrite(store.full_path):
                LOGGER.info("Output %s exists; skipping %s", store.full_path, audio_file.name)
                result.state = FileState.SKIPPED
                FILES_COUNTER.labels(status="skipped").inc()
                return result
            LOGGER.info("Deleting existing output %s", store.full_path)
            store.full_path.unlink()

        temp_pcm = temp_dir / f"{audio_file.stem}_full_temp.wav"
        result.plan_path = temp_pcm.with_suffix(".segments.json")
        started = time.perf_counter()
        try:
            result.state = FileState.CONVERTING
            await converter.to_pcm(audio_file, temp_pcm)
            if not temp_pcm.exists():
                raise ConversionError(f"conversion did not produce {temp_pcm}")

            result.state = FileState.DETECTING_SPEECH
            segments = await self.detector.detect_speech_segments(temp_pcm, self.vad_params)
            result.segments = list(segments)

            result.state = FileState.PERSISTING_SEGMENT_PLAN
            try:
                write_segment_plan(result.plan_path, segments)
                LOGGER.info("Segment plan saved to %s", result.plan_path)
            except OSError as exc:
                LOGGER.warning("Could not save segment plan %s: %s", result.plan_path, exc)

            if not segments:
                LOGGER.warning("No speech detected in %s; writing empty transcript", audio_file.name)
                result.state = FileState.FINALIZING
                store.write_full("")
                result.state = FileState.DONE
                FILES_COUNTER.labels(status="empty").inc()
                return result

            result.state = FileState.TRANSCRIBING_SEGMENTS
            pieces: list[str] = []
            loop_started = time.perf_counter()
            for index, segment in enumerate(segments):
                ok = await self._transcribe_segment(
                    temp_pcm, segment, index, len(segments), recognizer, store, pieces
                )
                if ok:
                    result.transcribed_segments.append(index)
                    result.speech_seconds += segment.length
                else:
                    result.skipped_segments.append(index)
            result.elapsed_seconds = time.perf_counter() - loop_started

            result.state = FileState.FINALIZING
            result.text = "".join(pieces).strip()
            store.write_full(result.text)
            self._report_speed(audio_file, result)
            LOGGER.info("Full transcription saved to %s", store.full_path)
            result.state = FileState.DONE
            FILES_COUNTER.labels(status="done").inc()
        except Exception as exc:
            result.state = FileState.FAILED
            result.error = str(exc)
            FILES_COUNTER.labels(status="failed").inc()
            LOGGER.error("Error processing %s: %s", audio_file.name, exc)
        finally:
            FILE_DURATION.observe(time.perf_counter() - started)
            self._remove_temp(temp_pcm)
        return result

    async def _transcribe_segment(
        self,
        parent: Path,
        segment: AudioSegment,
        index: int,
        total: int,
        recognizer: Recognizer,
        store: TranscriptStore,
        pieces: list[str],
    ) -> bool:
        LOGGER.info("Transcribing segment %d/%d: %s", index + 1, total, segment)
        started = time.perf_counter()
        recognized: list[str] = []
        try:
            stream = await self.extractor.get_segment_stream(parent, segment, index, total)
            if stream is None:
                LOGGER.warning("Segment %d/%d has no audio stream; skipping", index + 1, total)
                SEGMENTS_COUNTER.labels(status="skipped").inc()
                return False
            with stream:
                async for piece in iterate_in_thread(lambda: recognizer.transcribe_stream(stream)):
                    if not piece.text.strip():
                        continue
                    recognized.append(piece.text)
                    store.append_segment_text(index, piece.text)
                    LOGGER.info("  segment %d: %s", index + 1, piece.text.strip())
        except Exception as exc:
            LOGGER.error(
                "Error transcribing segment %d/%d (%s) of %s: %s; skipping",
                index + 1,
                total,
                segment,
                parent.name,
                exc,
            )
            SEGMENTS_COUNTER.labels(status="failed").inc()
            return False
        pieces.extend(recognized)
        LOGGER.info(
            "Segment %d transcribed in %.0fms", index + 1, (time.perf_counter() - started) * 1000
        )
        SEGMENTS_COUNTER.labels(status="transcribed").inc()
        return True

    @staticmethod
    def _report_speed(audio_file: Path, result: FileTranscriptionResult) -> None:
        ratio = result.speed_ratio
        if ratio is None:
            LOGGER.warning("No segment of %s was transcribed", audio_file.name)
            return
        LOGGER.info(
            "Transcribed %d segment(s) of %s (speech %.2fs) in %.2fs (%.2fx speed)",
            len(result.transcribed_segments),
            audio_file.name,
            result.speech_seconds,
            result.elapsed_seconds,
            ratio,
        )

    @staticmethod
    def _remove_temp(temp_pcm: Path) -> None:
        if not temp_pcm.exists():
            return
        try:
            temp_pcm.unlink()
            LOGGER.debug("Removed temporary PCM %s", temp_pcm)
        except OSError as exc:
            LOGGER.warning("Could not delete temporary PCM %s: %s", temp_pcm, exc)


__all__ = ["BatchTranscriptionService", "FileState", "FileTranscriptionResult"]
