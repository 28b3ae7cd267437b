"""Platform capture backends and backend selection."""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from typing import Mapping, Optional

from ..audio.process import ToolRunner
from .arecord import AlsaArecordBackend, parse_arecord_devices
from .base import CaptureBackend
from .process_backend import ProcessCaptureBackend
from .pulse import PulseParecBackend, parse_pactl_sources
from .sounddevice_backend import SoundDeviceBackend

LOGGER = logging.getLogger("voxline.capture")

_WSL_ENV = ("WSL_DISTRO_NAME", "WSL_INTEROP", "WSLENV")


def is_wsl(
    environ: Optional[Mapping[str, str]] = None,
    proc_version: Path = Path("/proc/version"),
) -> bool:
    environ = os.environ if environ is None else environ
    if any(environ.get(name) for name in _WSL_ENV):
        return True
    try:
        text = proc_version.read_text(encoding="utf-8", errors="replace").lower()
    except OSError:
        return False
    return "microsoft" in text or "wsl" in text


def select_backend(
    system: Optional[str] = None,
    *,
    runner: ToolRunner | None = None,
    stop_timeout: float = 2.0,
    wsl: Optional[bool] = None,
) -> Optional[CaptureBackend]:
    """Return the capture backend for this platform, or ``None`` when unsupported."""
    system = system or platform.system()
    if system in ("Windows", "Darwin"):
        return SoundDeviceBackend(runner)
    if system == "Linux":
        if is_wsl() if wsl is None else wsl:
            LOGGER.info("WSL detected; capturing through PulseAudio")
            return PulseParecBackend(runner, stop_timeout=stop_timeout)
        return AlsaArecordBackend(runner, stop_timeout=stop_timeout)
    LOGGER.error("No capture backend for platform %s", system)
    return None


__all__ = [
    "AlsaArecordBackend",
    "CaptureBackend",
    "ProcessCaptureBackend",
    "PulseParecBackend",
    "SoundDeviceBackend",
    "is_wsl",
    "parse_arecord_devices",
    "parse_pactl_sources",
    "select_backend",
]
