import numpy as np
import pytest

from voxline.audio.pcm import pcm16_to_float32, peak_level
from voxline.audio.types import CANONICAL_FORMAT, AudioFormat, AudioSegment


def test_pcm16_conversion_scales_to_unit_range():
    raw = np.array([0, 16384, -32768, 32767], dtype="<i2").tobytes()
    samples = pcm16_to_float32(raw)
    assert samples.dtype == np.float32
    assert samples.tolist() == pytest.approx([0.0, 0.5, -1.0, 32767 / 32768])
    assert peak_level(samples) == 1.0


def test_pcm16_conversion_ignores_trailing_odd_byte():
    raw = np.array([100, -100], dtype="<i2").tobytes() + b"\x7f"
    assert len(pcm16_to_float32(raw)) == 2
    assert pcm16_to_float32(b"").size == 0
    assert peak_level(pcm16_to_float32(b"\x01")) == 0.0


def test_canonical_format_byte_math():
    assert CANONICAL_FORMAT.bytes_per_second == 32000
    assert CANONICAL_FORMAT.bytes_for(2.0) == 64000
    assert CANONICAL_FORMAT.bytes_for(0.00003) == 0
    assert AudioFormat(44100, 16, 2).bytes_for(0.5) % 4 == 0


def test_audio_segment_rejects_inverted_window():
    with pytest.raises(ValueError):
        AudioSegment(2.0, 1.0)
    assert AudioSegment(1.0, 2.5).length == 1.5
