import asyncio
from pathlib import Path

import pytest

from voxline.audio.converter import FFmpegConverter
from voxline.audio.probe import DurationProbe
from voxline.audio.process import ProcessResult, ToolRunner
from voxline.errors import ConversionError, ToolExecutionError

from conftest import FakeRunner, launch_failure


def test_probe_parses_fractional_duration():
    runner = FakeRunner(lambda args: ProcessResult(0, "12.345000\n", ""))
    assert asyncio.run(DurationProbe(runner).probe("a.wav")) == pytest.approx(12.345)
    assert runner.calls[0][:2] == ["ffprobe", "-v"]
    assert runner.calls[0][-1] == "a.wav"


@pytest.mark.parametrize(
    "result",
    [ProcessResult(0, "N/A\n", ""), ProcessResult(1, "", "a.wav: No such file or directory")],
)
def test_probe_returns_none_when_duration_unknown(result):
    assert asyncio.run(DurationProbe(FakeRunner(lambda args: result)).probe("a.wav")) is None


def test_probe_returns_none_when_tool_missing():
    assert asyncio.run(DurationProbe(FakeRunner(launch_failure)).probe("a.wav")) is None


def test_converter_requests_canonical_pcm(tmp_path):
    runner = FakeRunner()
    target = asyncio.run(FFmpegConverter(runner).to_pcm(tmp_path / "in.mp3", tmp_path / "out.wav"))
    assert target == tmp_path / "out.wav"
    args = runner.calls[0]
    assert args[:3] == ["ffmpeg", "-y", "-i"]
    assert args[args.index("-acodec") + 1] == "pcm_s16le"
    assert args[args.index("-ar") + 1] == "16000"
    assert args[args.index("-ac") + 1] == "1"


def test_converter_failure_becomes_conversion_error(tmp_path):
    runner = FakeRunner(lambda args: ProcessResult(1, "", "in.mp3: Invalid data found when processing input"))
    with pytest.raises(ConversionError) as excinfo:
        asyncio.run(FFmpegConverter(runner).to_pcm(tmp_path / "in.mp3", tmp_path / "out.wav"))
    assert isinstance(excinfo.value.__cause__, ToolExecutionError)
    assert excinfo.value.__cause__.exit_code == 1


def test_tool_runner_collects_exit_code_and_streams():
    result = asyncio.run(ToolRunner().run(["sh", "-c", "echo out; echo err >&2; exit 3"]))
    assert result.exit_code == 3
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert not result.ok


def test_tool_runner_missing_binary_raises():
    with pytest.raises(ToolExecutionError) as excinfo:
        asyncio.run(ToolRunner().run([str(Path("/nonexistent/ffmpeg"))]))
    assert excinfo.value.tool == "/nonexistent/ffmpeg"
