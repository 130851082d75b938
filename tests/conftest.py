"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import wave
from pathlib import Path

import numpy as np
import pytest

from inkscribe.config import WHISPER_SAMPLE_RATE, InkscribeConfig
from inkscribe.utils import format_timestamp_ms


def write_wav(path: Path, samples: np.ndarray, sample_rate: int, channels: int = 1) -> Path:
    """Write interleaved float samples in [-1, 1] as 16-bit PCM."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm.tobytes())
    return path


def sine(seconds: float, sample_rate: int = WHISPER_SAMPLE_RATE, freq: float = 440.0) -> np.ndarray:
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class FakeEngine:
    """Engine double that records calls and echoes chunk offsets."""

    def __init__(self, model: str, language: str = "en") -> None:
        self.model = model
        self.language = language
        self.calls: list[dict] = []

    def detect_language(self, samples: np.ndarray) -> str:
        return self.language

    def transcribe(
        self,
        samples: np.ndarray,
        language: str | None = None,
        include_timestamps: bool = False,
        time_offset_ms: int = 0,
    ) -> str:
        self.calls.append(
            {
                "samples": len(samples),
                "language": language,
                "include_timestamps": include_timestamps,
                "time_offset_ms": time_offset_ms,
            }
        )
        text = f"part {len(self.calls)}"
        if include_timestamps:
            return f"[{format_timestamp_ms(time_offset_ms)}] {text}"
        return text


class RecordingFactory:
    """Engine factory that counts loads and can be told to fail."""

    def __init__(self) -> None:
        self.loads: list[str] = []
        self.engines: list[FakeEngine] = []
        self.fail_for: dict[str, Exception] = {}

    def __call__(self, model: str) -> FakeEngine:
        self.loads.append(model)
        if model in self.fail_for:
            raise self.fail_for[model]
        engine = FakeEngine(model)
        self.engines.append(engine)
        return engine


@pytest.fixture
def engine_factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def mono_wav(tmp_path: Path) -> Path:
    """Two seconds of 16kHz mono audio."""
    return write_wav(tmp_path / "mono.wav", sine(2.0), WHISPER_SAMPLE_RATE)


@pytest.fixture
def stereo_wav(tmp_path: Path) -> Path:
    """Two seconds of 44.1kHz stereo audio."""
    mono = sine(2.0, sample_rate=44100)
    interleaved = np.repeat(mono, 2)
    return write_wav(tmp_path / "stereo.wav", interleaved, 44100, channels=2)


@pytest.fixture
def test_config(tmp_path: Path) -> InkscribeConfig:
    return InkscribeConfig(models_dir=tmp_path / "models")
