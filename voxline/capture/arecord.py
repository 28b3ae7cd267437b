"""ALSA capture via ``arecord``."""

from __future__ import annotations

import re
from typing import Iterable, List

from ..audio.types import AudioFormat, AudioInputDevice
from .process_backend import ProcessCaptureBackend

_CARD_LINE = re.compile(
    r"^card\s+(\d+):\s+.*?\s+\[([^\]]+)\],\s+device\s+(\d+):\s+.*?\s+\[([^\]]+)\]"
)


def parse_arecord_devices(lines: Iterable[str]) -> List[AudioInputDevice]:
    """Parse ``arecord -l`` output into ``hw:card,device`` entries."""
    devices = []
    for line in lines:
        match = _CARD_LINE.match(line.strip())
        if not match:
            continue
        card, card_name, device, device_name = match.groups()
        device_id = f"hw:{card},{device}"
        devices.append(AudioInputDevice(device_id, f"{card_name} - {device_name} ({device_id})"))
    return devices


class AlsaArecordBackend(ProcessCaptureBackend):
    name = "arecord"

    def __init__(self, *args, arecord: str = "arecord", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.arecord = arecord

    async def _list_devices(self) -> List[AudioInputDevice]:
        result = await self.runner.run_checked([self.arecord, "-l"])
        return parse_arecord_devices(result.stdout.splitlines())

    def capture_command(self, device_id: str, fmt: AudioFormat) -> List[str]:
        return [
            self.arecord,
            "-D",
            device_id,
            "-f",
            f"S{fmt.bits_per_sample}_LE",
            "-r",
            str(fmt.sample_rate),
            "-c",
            str(fmt.channels),
            "-t",
            "raw",
        ]


__all__ = ["AlsaArecordBackend", "parse_arecord_devices"]
