"""Tests for inkscribe.audio modules."""

from __future__ import annotations

import math
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import numpy as np
import pytest
from av.error import FFmpegError

from inkscribe.audio.chunker import count_chunks, needs_chunking, plan_chunks, split_into_chunks
from inkscribe.audio.decode import (
    _MAX_DEMUX_RESTARTS,
    decode_audio,
    is_supported_format,
    is_video_format,
    load_whisper_audio,
)
from inkscribe.audio.normalize import downmix, normalize, resample
from inkscribe.config import WHISPER_SAMPLE_RATE
from inkscribe.exceptions import AudioError, FileError, UnsupportedFormatError


def _seconds(n: float) -> np.ndarray:
    return np.zeros(int(n * WHISPER_SAMPLE_RATE), dtype=np.float32)


class TestDownmix:
    def test_averages_channels(self) -> None:
        out = downmix(np.array([1.0, 3.0, 2.0, 4.0]), 2)
        np.testing.assert_allclose(out, [2.0, 3.0])

    def test_mono_unchanged(self) -> None:
        samples = np.array([0.1, 0.2, 0.3], dtype=np.float32)
        np.testing.assert_array_equal(downmix(samples, 1), samples)

    def test_trailing_partial_frame_dropped(self) -> None:
        out = downmix(np.array([1.0, 1.0, 2.0, 2.0, 5.0]), 2)
        assert len(out) == 2

    def test_returns_float32(self) -> None:
        assert downmix(np.array([1.0, 2.0]), 2).dtype == np.float32


class TestResample:
    def test_same_rate_is_identity(self) -> None:
        samples = np.arange(10, dtype=np.float32)
        np.testing.assert_array_equal(resample(samples, 16000, 16000), samples)

    def test_downsample_picks_source_positions(self) -> None:
        out = resample(np.array([0.0, 1.0, 2.0, 3.0]), 2, 1)
        np.testing.assert_allclose(out, [0.0, 2.0])

    def test_upsample_interpolates(self) -> None:
        out = resample(np.array([0.0, 1.0]), 1, 2)
        np.testing.assert_allclose(out, [0.0, 0.5, 1.0, 1.0])

    @pytest.mark.parametrize("rate", [8000, 22050, 32000, 44100, 48000, 96000])
    def test_output_length(self, rate: int) -> None:
        samples = np.zeros(3 * rate + 7, dtype=np.float32)
        out = resample(samples, rate, 16000)
        expected = math.floor(len(samples) / (rate / 16000))
        assert abs(len(out) - expected) <= 1

    def test_empty_input(self) -> None:
        assert len(resample(np.zeros(0, dtype=np.float32), 44100, 16000)) == 0

    def test_normalize_stereo_to_mono_16k(self) -> None:
        stereo = np.ones(2 * 48000, dtype=np.float32)
        out = normalize(stereo, channels=2, sample_rate=48000)
        assert len(out) == 16000
        np.testing.assert_allclose(out, 1.0)


class TestChunker:
    def test_short_audio_not_chunked(self) -> None:
        assert needs_chunking(_seconds(60)) is False

    def test_threshold_is_exclusive(self) -> None:
        assert needs_chunking(_seconds(120)) is False
        assert len(plan_chunks(_seconds(120))) == 1

    def test_just_over_threshold_is_chunked(self) -> None:
        samples = np.zeros(120 * WHISPER_SAMPLE_RATE + 1, dtype=np.float32)
        chunks = plan_chunks(samples)
        assert len(chunks) == 3
        assert len(chunks[-1].samples) == 1

    def test_three_minutes_gives_three_chunks(self) -> None:
        chunks = plan_chunks(_seconds(180))
        assert [c.index for c in chunks] == [0, 1, 2]
        assert [c.time_offset for c in chunks] == [0.0, 60.0, 120.0]
        assert [c.time_offset_ms for c in chunks] == [0, 60000, 120000]

    def test_chunks_partition_buffer(self) -> None:
        samples = np.arange(150 * WHISPER_SAMPLE_RATE, dtype=np.float32)
        chunks = list(split_into_chunks(samples))
        np.testing.assert_array_equal(np.concatenate([c.samples for c in chunks]), samples)
        assert len(chunks) == count_chunks(samples) == 3

    def test_single_chunk_holds_whole_buffer(self) -> None:
        samples = _seconds(90)
        chunks = plan_chunks(samples)
        assert len(chunks) == 1
        assert chunks[0].time_offset == 0.0
        assert len(chunks[0].samples) == len(samples)

    def test_custom_durations(self) -> None:
        chunks = plan_chunks(_seconds(25), chunk_duration=10, threshold=20)
        assert [c.time_offset for c in chunks] == [0.0, 10.0, 20.0]

    def test_empty_buffer_raises(self) -> None:
        with pytest.raises(AudioError):
            plan_chunks(np.zeros(0, dtype=np.float32))


class TestFormats:
    def test_supported_extensions(self) -> None:
        assert is_supported_format(".MP3")
        assert is_supported_format("mov")
        assert not is_supported_format("txt")

    def test_video_detection(self) -> None:
        assert is_video_format(Path("clip.MP4"))
        assert not is_video_format(Path("song.flac"))


class TestDecode:
    def test_decode_stereo_wav(self, stereo_wav: Path) -> None:
        decoded = decode_audio(stereo_wav)
        assert decoded.sample_rate == 44100
        assert decoded.channels == 2
        assert len(decoded.samples) == 2 * 88200
        assert decoded.samples.dtype == np.float32

    def test_load_whisper_audio_normalizes(self, stereo_wav: Path) -> None:
        samples, info = load_whisper_audio(stereo_wav)
        assert abs(len(samples) - 32000) <= 1
        assert info.channels == 2
        assert info.sample_rate == 44100
        assert info.duration == pytest.approx(2.0, abs=1e-3)

    def test_mono_16k_passes_through(self, mono_wav: Path) -> None:
        samples, info = load_whisper_audio(mono_wav)
        assert len(samples) == 32000
        assert info.duration == pytest.approx(2.0)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileError):
            decode_audio(tmp_path / "missing.wav")

    def test_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileError):
            decode_audio(tmp_path)

    def test_garbage_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.wav"
        path.write_bytes(b"")
        with pytest.raises((UnsupportedFormatError, AudioError)):
            decode_audio(path)


class FakeFrame:
    def __init__(self, values: list[float]) -> None:
        self.values = np.array(values, dtype=np.float32)

    def to_ndarray(self) -> np.ndarray:
        return self.values.reshape(1, -1)


class FakePacket:
    def __init__(self, *frames: FakeFrame, error: Exception | None = None) -> None:
        self.frames = list(frames)
        self.error = error

    def decode(self) -> list[FakeFrame]:
        if self.error is not None:
            raise self.error
        return self.frames


class FakeResampler:
    """Passes frames straight through; nothing buffered to flush."""

    def __init__(self, **kwargs) -> None:
        pass

    def resample(self, frame):
        return [] if frame is None else [frame]


class FakeContainer:
    """Container whose successive demux() calls replay the given scripts.

    A script item is either a packet to yield or an exception to raise.
    """

    def __init__(self, *scripts: list, audio: bool = True) -> None:
        self.scripts = list(scripts)
        self.demux_calls = 0
        codec_context = SimpleNamespace(
            sample_rate=16000,
            layout=SimpleNamespace(channels=("FL",)),
            name="pcm_f32le",
        )
        stream = SimpleNamespace(codec_context=codec_context)
        self.streams = SimpleNamespace(audio=[stream] if audio else [])
        self.format = SimpleNamespace(name="wav")

    def __enter__(self) -> FakeContainer:
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def demux(self, stream):
        script = self.scripts[self.demux_calls] if self.demux_calls < len(self.scripts) else []
        self.demux_calls += 1
        return self._replay(script)

    @staticmethod
    def _replay(script: list):
        for item in script:
            if isinstance(item, BaseException):
                raise item
            yield item


def _decode_with(container: FakeContainer, tmp_path: Path):
    path = tmp_path / "input.wav"
    path.write_bytes(b"RIFF")
    with (
        patch("inkscribe.audio.decode.av.open", return_value=container),
        patch("inkscribe.audio.decode.AudioResampler", FakeResampler),
    ):
        return decode_audio(path)


class TestLenientDecode:
    def test_undecodable_packet_skipped(self, tmp_path: Path) -> None:
        container = FakeContainer(
            [
                FakePacket(FakeFrame([0.1, 0.2])),
                FakePacket(error=FFmpegError(1094995529, "Invalid data found")),
                FakePacket(FakeFrame([0.3]), FakeFrame([0.4])),
            ]
        )

        decoded = _decode_with(container, tmp_path)

        np.testing.assert_allclose(decoded.samples, [0.1, 0.2, 0.3, 0.4])
        assert decoded.channels == 1
        assert decoded.sample_rate == 16000

    def test_try_again_restarts_demux(self, tmp_path: Path) -> None:
        container = FakeContainer(
            [FakePacket(FakeFrame([0.1])), BlockingIOError()],
            [FakePacket(FakeFrame([0.2]))],
        )

        decoded = _decode_with(container, tmp_path)

        np.testing.assert_allclose(decoded.samples, [0.1, 0.2])
        assert container.demux_calls == 2

    def test_restarts_capped(self, tmp_path: Path) -> None:
        scripts = [[BlockingIOError()] for _ in range(_MAX_DEMUX_RESTARTS + 1)]
        scripts.append([FakePacket(FakeFrame([0.5]))])
        container = FakeContainer(*scripts)

        decoded = _decode_with(container, tmp_path)

        assert len(decoded.samples) == 0
        assert container.demux_calls == _MAX_DEMUX_RESTARTS + 1

    def test_successful_packet_resets_restart_count(self, tmp_path: Path) -> None:
        scripts = []
        for i in range(_MAX_DEMUX_RESTARTS + 4):
            scripts.append([FakePacket(FakeFrame([float(i)])), BlockingIOError()])
        container = FakeContainer(*scripts)

        decoded = _decode_with(container, tmp_path)

        assert len(decoded.samples) == _MAX_DEMUX_RESTARTS + 4

    def test_demux_error_keeps_decoded_audio(self, tmp_path: Path) -> None:
        container = FakeContainer(
            [
                FakePacket(FakeFrame([0.1, 0.2])),
                FFmpegError(1094995529, "Invalid data found"),
                FakePacket(FakeFrame([0.9])),
            ]
        )

        decoded = _decode_with(container, tmp_path)

        np.testing.assert_allclose(decoded.samples, [0.1, 0.2])
        assert container.demux_calls == 1

    def test_no_audio_stream_raises_audio_error(self, tmp_path: Path) -> None:
        with pytest.raises(AudioError, match="No audio track"):
            _decode_with(FakeContainer(audio=False), tmp_path)
