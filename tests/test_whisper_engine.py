import asyncio
import io
from types import SimpleNamespace

import numpy as np
import pytest
import soundfile as sf

from voxline.audio.types import RecognizedSegment
from voxline.errors import RecognitionChunkError
from voxline.services import whisper_engine as engine_mod
from voxline.settings import AppSettings


def _wav(seconds: float, sample_rate: int = 16_000, channels: int = 1) -> io.BytesIO:
    frames = int(seconds * sample_rate)
    data = np.zeros((frames, channels), dtype=np.int16) if channels > 1 else np.zeros(frames, dtype=np.int16)
    buffer = io.BytesIO()
    sf.write(buffer, data, sample_rate, format="WAV", subtype="PCM_16")
    buffer.seek(0)
    return buffer


def test_mock_engine_transcribes_canonical_wav():
    engine = engine_mod.WhisperEngine("models/ggml-base.bin", AppSettings(whisper_mock_transcriber=True))
    pieces = list(engine.transcribe_stream(_wav(1.5)))
    assert engine.model_name == "ggml-base.bin"
    assert len(pieces) == 1
    assert pieces[0].end == pytest.approx(1.5)
    assert "24000 samples" in pieces[0].text


def test_stereo_input_is_mixed_down():
    engine = engine_mod.WhisperEngine("m.bin", AppSettings(whisper_mock_transcriber=True))
    pieces = list(engine.transcribe_stream(_wav(0.5, channels=2)))
    assert "8000 samples" in pieces[0].text


def test_wrong_sample_rate_is_a_chunk_error():
    engine = engine_mod.WhisperEngine("m.bin", AppSettings(whisper_mock_transcriber=True))
    with pytest.raises(RecognitionChunkError):
        engine.transcribe_stream(_wav(0.5, sample_rate=8000))


def test_undecodable_stream_is_a_chunk_error():
    engine = engine_mod.WhisperEngine("m.bin", AppSettings(whisper_mock_transcriber=True))
    with pytest.raises(RecognitionChunkError):
        engine.transcribe_stream(io.BytesIO(b"definitely not audio"))


def test_real_model_loaded_once_with_configured_language(monkeypatch):
    created = []

    class FakeModel:
        def __init__(self, model_ref, device, compute_type):
            created.append((model_ref, device, compute_type))
            self.calls = []

        def transcribe(self, samples, language, beam_size):
            self.calls.append((samples.dtype, language, beam_size))
            segments = [SimpleNamespace(start=0.0, end=1.0, text=" bonjour"), SimpleNamespace(start=1.0, end=None, text=None)]
            return iter(segments), SimpleNamespace(language=language)

    monkeypatch.setattr(engine_mod, "WhisperModel", FakeModel)
    settings = AppSettings(
        whisper_mock_transcriber=False, language="fr", whisper_device="cpu", whisper_compute_type="int8"
    )
    engine = engine_mod.WhisperEngine.from_path("models/ggml-small.bin", settings)
    first = list(engine.transcribe_samples(np.zeros(16000, dtype=np.float64)))
    list(engine.transcribe_samples(np.zeros(16000, dtype=np.float32)))

    assert created == [("models/ggml-small.bin", "cpu", "int8")]
    assert engine._model.calls[0] == (np.dtype("float32"), "fr", settings.whisper_beam_size)
    assert first == [RecognizedSegment(0.0, 1.0, " bonjour"), RecognizedSegment(1.0, 0.0, "")]


def test_iterate_in_thread_yields_every_piece():
    def factory():
        return iter([RecognizedSegment(0.0, 1.0, "a"), RecognizedSegment(1.0, 2.0, "b")])

    async def collect():
        return [piece.text async for piece in engine_mod.iterate_in_thread(factory)]

    assert asyncio.run(collect()) == ["a", "b"]


def test_iterate_in_thread_propagates_errors():
    def factory():
        yield RecognizedSegment(0.0, 1.0, "a")
        raise RecognitionChunkError("boom")

    async def collect():
        return [piece.text async for piece in engine_mod.iterate_in_thread(factory)]

    with pytest.raises(RecognitionChunkError):
        asyncio.run(collect())
