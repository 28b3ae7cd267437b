"""Transcription services."""

from .batch_service import BatchTranscriptionService, FileState, FileTranscriptionResult
from .live_service import ChunkAccumulator, LiveSessionResult, LiveTranscriptionService
from .whisper_engine import Recognizer, WhisperEngine, iterate_in_thread
from .workspace import Workspace, list_models, list_recordings

__all__ = [
    "BatchTranscriptionService",
    "ChunkAccumulator",
    "FileState",
    "FileTranscriptionResult",
    "LiveSessionResult",
    "LiveTranscriptionService",
    "Recognizer",
    "WhisperEngine",
    "Workspace",
    "iterate_in_thread",
    "list_models",
    "list_recordings",
]
