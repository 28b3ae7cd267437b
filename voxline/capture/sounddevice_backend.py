"""PortAudio capture through ``sounddevice`` (Windows and macOS)."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from ..audio.types import AudioFormat, AudioInputDevice
from ..errors import CaptureError
from .base import CaptureBackend

LOGGER = logging.getLogger("voxline.capture")

BLOCK_FRAMES = 1600


def _try_import_sounddevice():
    try:
        import sounddevice as sd  # type: ignore

        return sd
    except Exception:
        return None


class SoundDeviceBackend(CaptureBackend):
    name = "sounddevice"

    def __init__(self, *args, sd=None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._sd = sd if sd is not None else _try_import_sounddevice()
        self._stream = None

    async def _list_devices(self) -> List[AudioInputDevice]:
        if self._sd is None:
            LOGGER.warning("sounddevice unavailable; no input devices")
            return []
        devices = await asyncio.to_thread(self._sd.query_devices)
        found = []
        for index, info in enumerate(devices):
            if int(info.get("max_input_channels", 0)) <= 0:
                continue
            found.append(AudioInputDevice(str(index), f"{info.get('name', index)} ({index})"))
        return found

    async def _start(self, device_id: str, fmt: AudioFormat) -> None:
        if self._sd is None:
            raise CaptureError("sounddevice is not installed or PortAudio is missing")

        def callback(indata, frames, time_info, status) -> None:
            if status:
                LOGGER.debug("sounddevice status: %s", status)
            self._emit(bytes(indata))

        device = int(device_id) if device_id.isdigit() else device_id
        try:
            stream = self._sd.RawInputStream(
                samplerate=fmt.sample_rate,
                blocksize=BLOCK_FRAMES,
                device=device,
                channels=fmt.channels,
                dtype=f"int{fmt.bits_per_sample}",
                callback=callback,
            )
            stream.start()
        except Exception as exc:
            raise CaptureError(f"could not open input device {device_id}: {exc}") from exc
        self._stream = stream

    async def _stop(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as exc:
            LOGGER.warning("Stopping input stream failed (%s); aborting", exc)
            stream.abort()
        finally:
            stream.close()


__all__ = ["SoundDeviceBackend"]
