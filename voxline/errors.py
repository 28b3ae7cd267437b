"""Exception hierarchy shared by the batch and live pipelines."""

from __future__ import annotations

from typing import Sequence


class VoxlineError(Exception):
    pass


class ToolExecutionError(VoxlineError):
    """An external tool could not be launched or exited non-zero."""

    def __init__(
        self,
        tool: str,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
        args: Sequence[str] | None = None,
    ) -> None:
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = list(args or [])

    def stderr_tail(self, lines: int = 10) -> str:
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


class DurationUnavailableError(VoxlineError):
    pass


class ConversionError(VoxlineError):
    pass


class CaptureError(VoxlineError):
    pass


class UnsupportedFormatError(CaptureError):
    pass


class AlreadyCapturingError(CaptureError):
    pass


class SegmentExtractionFailure(VoxlineError):
    pass


class RecognitionChunkError(VoxlineError):
    pass


__all__ = [
    "AlreadyCapturingError",
    "CaptureError",
    "ConversionError",
    "DurationUnavailableError",
    "RecognitionChunkError",
    "SegmentExtractionFailure",
    "ToolExecutionError",
    "UnsupportedFormatError",
    "VoxlineError",
]
