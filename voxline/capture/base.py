"""Common surface for the platform capture backends."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from ..audio.process import ToolRunner
from ..audio.types import CANONICAL_FORMAT, AudioFormat, AudioInputDevice
from ..errors import AlreadyCapturingError, UnsupportedFormatError

LOGGER = logging.getLogger("voxline.capture")

DataListener = Callable[[bytes], None]


class CaptureBackend:
    """Pushes raw PCM chunks to subscribers while a capture is running.

    Subclasses implement ``_list_devices``, ``_start`` and ``_stop``. Chunks may
    arrive on any thread, so listeners must be safe to call concurrently with
    the event loop.
    """

    name = "capture"

    def __init__(self, runner: ToolRunner | None = None) -> None:
        self.runner = runner or ToolRunner()
        self._listeners: List[DataListener] = []
        self._format: Optional[AudioFormat] = None
        self._closed = False

    @property
    def current_format(self) -> Optional[AudioFormat]:
        return self._format

    @property
    def is_capturing(self) -> bool:
        return self._format is not None

    def subscribe(self, listener: DataListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: DataListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, data: bytes) -> None:
        if not data:
            return
        for listener in list(self._listeners):
            try:
                listener(data)
            except Exception as exc:
                LOGGER.error("%s listener failed: %s", self.name, exc)

    async def list_devices(self) -> List[AudioInputDevice]:
        try:
            return list(await self._list_devices())
        except Exception as exc:
            LOGGER.error("Could not list %s devices: %s", self.name, exc)
            return []

    async def start_capture(self, device_id: str, fmt: AudioFormat = CANONICAL_FORMAT) -> None:
        if fmt != CANONICAL_FORMAT:
            raise UnsupportedFormatError(
                f"{self.name} captures {CANONICAL_FORMAT.sample_rate} Hz/"
                f"{CANONICAL_FORMAT.bits_per_sample}-bit mono only, got {fmt}"
            )
        if self.is_capturing:
            raise AlreadyCapturingError(f"{self.name} is already capturing")
        await self._start(device_id, fmt)
        self._format = fmt
        LOGGER.info("%s capture started on %s", self.name, device_id)

    async def stop_capture(self) -> None:
        if not self.is_capturing:
            return
        try:
            await self._stop()
        finally:
            self._format = None
            LOGGER.info("%s capture stopped", self.name)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.stop_capture()
        self._listeners.clear()

    async def _list_devices(self) -> Sequence[AudioInputDevice]:
        raise NotImplementedError

    async def _start(self, device_id: str, fmt: AudioFormat) -> None:
        raise NotImplementedError

    async def _stop(self) -> None:
        raise NotImplementedError


__all__ = ["CaptureBackend", "DataListener"]
