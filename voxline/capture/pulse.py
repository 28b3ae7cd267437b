"""PulseAudio capture via ``pactl``/``parec`` (used under WSL)."""

from __future__ import annotations

from typing import Iterable, List

from ..audio.types import AudioFormat, AudioInputDevice
from .process_backend import ProcessCaptureBackend


def parse_pactl_sources(lines: Iterable[str]) -> List[AudioInputDevice]:
    devices = []
    for line in lines:
        parts = line.strip().split("\t")
        if len(parts) < 2 or not parts[1]:
            continue
        devices.append(AudioInputDevice(parts[1], parts[1]))
    return devices


class PulseParecBackend(ProcessCaptureBackend):
    name = "parec"

    def __init__(self, *args, pactl: str = "pactl", parec: str = "parec", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.pactl = pactl
        self.parec = parec

    async def _list_devices(self) -> List[AudioInputDevice]:
        result = await self.runner.run_checked([self.pactl, "list", "sources", "short"])
        return parse_pactl_sources(result.stdout.splitlines())

    def capture_command(self, device_id: str, fmt: AudioFormat) -> List[str]:
        return [
            self.parec,
            f"--device={device_id}",
            f"--format=s{fmt.bits_per_sample}le",
            f"--rate={fmt.sample_rate}",
            f"--channels={fmt.channels}",
            "--raw",
        ]


__all__ = ["PulseParecBackend", "parse_pactl_sources"]
