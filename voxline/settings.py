"""Application settings resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field

from .audio.types import VADParameters


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _split_extensions() -> List[str]:
    raw = os.getenv("VOXLINE_RECORDING_EXTENSIONS") or ".mp3"
    return [ext.strip().lower() for ext in raw.split(",") if ext.strip()]


@dataclass(frozen=True, slots=True)
class FeatureToggles:
    """Read-only switches for the noisier diagnostic log lines."""

    log_audio_data_received: bool = False
    enable_diagnostic_logging: bool = False
    log_processing_chunk_messages: bool = False


class AppSettings(BaseModel):
    input_dir: str = Field(default=os.getenv("VOXLINE_INPUT_DIR", "data/input"))
    output_dir: str = Field(default=os.getenv("VOXLINE_OUTPUT_DIR", "data/output"))
    temp_dir: str = Field(default=os.getenv("VOXLINE_TEMP_DIR", "data/tmp"))
    models_dir: str = Field(default=os.getenv("VOXLINE_MODELS_DIR", "data/models"))
    recording_extensions: List[str] = Field(default_factory=_split_extensions)

    silence_noise_db: str = Field(default=os.getenv("VOXLINE_SILENCE_NOISE_DB", "-30dB"))
    min_silence_seconds: float = Field(
        default=float(os.getenv("VOXLINE_MIN_SILENCE_SECONDS", "0.8")), ge=0
    )
    min_speech_seconds: float = Field(
        default=float(os.getenv("VOXLINE_MIN_SPEECH_SECONDS", "0.3")), ge=0
    )
    segment_padding_seconds: float = Field(
        default=float(os.getenv("VOXLINE_SEGMENT_PADDING_SECONDS", "0.15")), ge=0
    )
    merge_overlapping_segments: bool = Field(
        default=_flag("VOXLINE_MERGE_OVERLAPPING_SEGMENTS", "true")
    )

    language: str = Field(default=os.getenv("VOXLINE_LANGUAGE", "en"))
    whisper_device: str = Field(default=os.getenv("WHISPER_DEVICE", "cpu"))
    whisper_compute_type: str = Field(default=os.getenv("WHISPER_COMPUTE_TYPE", "int8"))
    whisper_beam_size: int = Field(default=int(os.getenv("WHISPER_BEAM_SIZE", "5")), ge=1)
    whisper_mock_transcriber: bool = Field(default=_flag("WHISPER_USE_MOCK"))

    live_chunk_seconds: float = Field(
        default=float(os.getenv("VOXLINE_LIVE_CHUNK_SECONDS", "2.0")), gt=0
    )
    live_poll_interval: float = Field(
        default=float(os.getenv("VOXLINE_LIVE_POLL_INTERVAL", "0.1")), gt=0
    )
    live_max_buffer_seconds: float = Field(
        default=float(os.getenv("VOXLINE_LIVE_MAX_BUFFER_SECONDS", "30")), ge=0
    )
    live_silence_gate: float = Field(
        default=float(os.getenv("VOXLINE_LIVE_SILENCE_GATE", "0.0")), ge=0, le=1
    )
    capture_stop_timeout: float = Field(
        default=float(os.getenv("VOXLINE_CAPTURE_STOP_TIMEOUT", "2.0")), ge=0
    )

    ffmpeg_path: str = Field(default=os.getenv("VOXLINE_FFMPEG", "ffmpeg"))
    ffprobe_path: str = Field(default=os.getenv("VOXLINE_FFPROBE", "ffprobe"))

    log_level: str = Field(default=os.getenv("VOXLINE_LOG_LEVEL", "INFO"))
    log_audio_data_received: bool = Field(default=_flag("VOXLINE_LOG_AUDIO_DATA"))
    enable_diagnostic_logging: bool = Field(default=_flag("VOXLINE_DIAGNOSTIC_LOGGING"))
    log_processing_chunk_messages: bool = Field(default=_flag("VOXLINE_LOG_CHUNKS"))

    def vad_parameters(self) -> VADParameters:
        return VADParameters(
            noise_db=self.silence_noise_db,
            min_silence_seconds=self.min_silence_seconds,
            min_speech_seconds=self.min_speech_seconds,
            padding_seconds=self.segment_padding_seconds,
            merge_overlaps=self.merge_overlapping_segments,
        )

    def feature_toggles(self) -> FeatureToggles:
        return FeatureToggles(
            log_audio_data_received=self.log_audio_data_received,
            enable_diagnostic_logging=self.enable_diagnostic_logging,
            log_processing_chunk_messages=self.log_processing_chunk_messages,
        )


@lru_cache()
def get_settings() -> AppSettings:
    return AppSettings()
