import asyncio

import pytest

from voxline.audio.process import ProcessResult
from voxline.audio.types import CANONICAL_FORMAT, AudioFormat, AudioInputDevice
from voxline.capture import (
    AlsaArecordBackend,
    ProcessCaptureBackend,
    PulseParecBackend,
    SoundDeviceBackend,
    is_wsl,
    parse_arecord_devices,
    parse_pactl_sources,
    select_backend,
)
from voxline.errors import AlreadyCapturingError, CaptureError, UnsupportedFormatError

from conftest import FakeRunner, launch_failure

ARECORD_LIST = """\
**** List of CAPTURE Hardware Devices ****
card 0: PCH [HDA Intel PCH], device 0: ALC3246 Analog [ALC3246 Analog]
  Subdevices: 1/1
  Subdevice #0: subdevice #0
card 2: Device [USB Audio Device], device 0: USB Audio [USB Audio]
  Subdevices: 1/1
"""

PACTL_SOURCES = (
    "1\talsa_output.pci-0000_00_1f.3.analog-stereo.monitor\tmodule-alsa-card.c\ts16le 2ch 44100Hz\tSUSPENDED\n"
    "2\tRDPSource\tmodule-rdp-source.c\ts16le 1ch 44100Hz\tRUNNING\n"
)


def test_parse_arecord_devices():
    devices = parse_arecord_devices(ARECORD_LIST.splitlines())
    assert [d.id for d in devices] == ["hw:0,0", "hw:2,0"]
    assert devices[0].display_name == "HDA Intel PCH - ALC3246 Analog (hw:0,0)"


def test_parse_pactl_sources_uses_source_name_as_id():
    devices = parse_pactl_sources(PACTL_SOURCES.splitlines() + ["", "garbage"])
    assert [d.id for d in devices] == [
        "alsa_output.pci-0000_00_1f.3.analog-stereo.monitor",
        "RDPSource",
    ]


def test_list_devices_runs_arecord():
    runner = FakeRunner(lambda args: ProcessResult(0, ARECORD_LIST, ""))
    backend = AlsaArecordBackend(runner)
    devices = asyncio.run(backend.list_devices())
    assert runner.calls == [["arecord", "-l"]]
    assert AudioInputDevice("hw:2,0", "") in devices


def test_list_devices_never_raises():
    assert asyncio.run(AlsaArecordBackend(FakeRunner(launch_failure)).list_devices()) == []
    failing = FakeRunner(lambda args: ProcessResult(1, "", "Connection failure"))
    assert asyncio.run(PulseParecBackend(failing).list_devices()) == []


def test_capture_commands():
    arecord = AlsaArecordBackend().capture_command("hw:1,0", CANONICAL_FORMAT)
    assert arecord == ["arecord", "-D", "hw:1,0", "-f", "S16_LE", "-r", "16000", "-c", "1", "-t", "raw"]
    parec = PulseParecBackend().capture_command("RDPSource", CANONICAL_FORMAT)
    assert parec == [
        "parec",
        "--device=RDPSource",
        "--format=s16le",
        "--rate=16000",
        "--channels=1",
        "--raw",
    ]


def test_start_rejects_non_canonical_format():
    backend = AlsaArecordBackend()
    with pytest.raises(UnsupportedFormatError):
        asyncio.run(backend.start_capture("hw:0,0", AudioFormat(44100, 16, 2)))
    assert backend.current_format is None


class _FakeStream:
    def __init__(self, callback, **kwargs):
        self.callback = callback
        self.kwargs = kwargs
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def abort(self):
        self.started = False

    def close(self):
        self.closed = True


class _FakeSoundDevice:
    def __init__(self):
        self.streams = []

    def query_devices(self):
        return [
            {"name": "Speakers", "max_input_channels": 0},
            {"name": "Microphone Array", "max_input_channels": 2},
        ]

    def RawInputStream(self, **kwargs):
        stream = _FakeStream(**kwargs)
        self.streams.append(stream)
        return stream


def test_sounddevice_backend_lists_inputs_and_pushes_data():
    sd = _FakeSoundDevice()
    backend = SoundDeviceBackend(sd=sd)
    received = []
    backend.subscribe(received.append)

    async def scenario():
        devices = await backend.list_devices()
        await backend.start_capture(devices[0].id)
        with pytest.raises(AlreadyCapturingError):
            await backend.start_capture(devices[0].id)
        stream = sd.streams[0]
        stream.callback(b"\x01\x00\x02\x00", 2, None, None)
        assert backend.current_format == CANONICAL_FORMAT
        await backend.stop_capture()
        await backend.stop_capture()
        await backend.aclose()
        return devices, stream

    devices, stream = asyncio.run(scenario())
    assert devices == [AudioInputDevice("1", "Microphone Array (1)")]
    assert stream.kwargs["device"] == 1
    assert stream.kwargs["samplerate"] == 16000
    assert stream.kwargs["dtype"] == "int16"
    assert received == [b"\x01\x00\x02\x00"]
    assert stream.closed is True
    assert backend.current_format is None


def test_sounddevice_backend_without_library(monkeypatch):
    from voxline.capture import sounddevice_backend

    monkeypatch.setattr(sounddevice_backend, "_try_import_sounddevice", lambda: None)
    backend = SoundDeviceBackend()
    assert asyncio.run(backend.list_devices()) == []
    with pytest.raises(CaptureError):
        asyncio.run(backend.start_capture("0"))


def test_is_wsl_detection(tmp_path):
    version = tmp_path / "version"
    version.write_text("Linux version 6.6.87.2-microsoft-standard-WSL2")
    assert is_wsl({}, version) is True
    version.write_text("Linux version 6.8.0-45-generic (buildd@lcy02-amd64-075)")
    assert is_wsl({}, version) is False
    assert is_wsl({"WSL_DISTRO_NAME": "Ubuntu"}, version) is True
    assert is_wsl({}, tmp_path / "missing") is False


def test_select_backend_by_platform():
    assert isinstance(select_backend("Windows"), SoundDeviceBackend)
    assert isinstance(select_backend("Darwin"), SoundDeviceBackend)
    assert isinstance(select_backend("Linux", wsl=True), PulseParecBackend)
    linux = select_backend("Linux", wsl=False, stop_timeout=0.5)
    assert isinstance(linux, AlsaArecordBackend)
    assert linux.stop_timeout == 0.5
    assert select_backend("FreeBSD") is None


class _CommandBackend(ProcessCaptureBackend):
    name = "command"

    def __init__(self, command, **kwargs):
        super().__init__(**kwargs)
        self.command = command

    def capture_command(self, device_id, fmt):
        return list(self.command)


def test_process_backend_streams_stdout_to_listeners(tmp_path):
    payload = bytes(range(256)) * 40
    source = tmp_path / "capture.raw"
    source.write_bytes(payload)
    backend = _CommandBackend(["cat", str(source)])
    received = []
    backend.subscribe(received.append)

    async def scenario():
        await backend.start_capture("default")
        for _ in range(200):
            if sum(len(chunk) for chunk in received) >= len(payload):
                break
            await asyncio.sleep(0.01)
        await backend.aclose()

    asyncio.run(scenario())
    assert b"".join(received) == payload
    assert backend.current_format is None


def test_process_backend_kills_recorder_that_ignores_terminate():
    backend = _CommandBackend(["sh", "-c", "trap '' TERM; exec sleep 5"], stop_timeout=0.2)

    async def scenario():
        await backend.start_capture("default")
        process = backend._process
        await asyncio.sleep(0.1)
        await backend.stop_capture()
        return process

    process = asyncio.run(scenario())
    assert process.returncode is not None
    assert process.returncode < 0


def test_process_backend_launch_failure_is_capture_error():
    backend = _CommandBackend(["/nonexistent/recorder"])
    with pytest.raises(CaptureError):
        asyncio.run(backend.start_capture("default"))
    assert backend.current_format is None
