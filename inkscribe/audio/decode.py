"""
inkscribe.audio.decode - Container probing and packet decoding via PyAV.

Decodes the primary audio track of any FFmpeg-readable file into one
interleaved float32 stream. Packet-level decode failures are skipped so
minor corruption does not abort a long file.
"""

from __future__ import annotations

from pathlib import Path

import av
import numpy as np
from av.audio.resampler import AudioResampler
from av.error import FFmpegError

from inkscribe.audio.normalize import normalize
from inkscribe.config import AUDIO_FORMATS, VIDEO_FORMATS, WHISPER_SAMPLE_RATE
from inkscribe.exceptions import AudioError, FileError, UnsupportedFormatError
from inkscribe.logging import get_logger
from inkscribe.models import AudioInfo, DecodedAudio

logger = get_logger(__name__)

DEFAULT_SAMPLE_RATE = 44100
DEFAULT_CHANNELS = 2

# Consecutive demuxer "try again" signals tolerated before giving up.
_MAX_DEMUX_RESTARTS = 16


def is_supported_format(extension: str) -> bool:
    """Check a file extension against the supported audio and video formats."""
    ext = extension.lower().lstrip(".")
    return ext in AUDIO_FORMATS or ext in VIDEO_FORMATS


def is_video_format(path: Path) -> bool:
    """True if the path has a video container extension."""
    return Path(path).suffix.lower().lstrip(".") in VIDEO_FORMATS


def _channel_count(codec_context) -> int:
    layout = getattr(codec_context, "layout", None)
    channels = len(layout.channels) if layout is not None else 0
    return channels or DEFAULT_CHANNELS


def decode_audio(path: Path) -> DecodedAudio:
    """Decode every packet of the primary audio track.

    Args:
        path: Path to an audio or video file. The extension is only a hint;
            FFmpeg's probe decides the actual container.

    Returns:
        DecodedAudio with interleaved float32 samples at the source rate

    Raises:
        FileError: If the path cannot be opened
        UnsupportedFormatError: If no demuxer or decoder matches
        AudioError: If the file has no audio track
    """
    path = Path(path)
    if not path.is_file():
        raise FileError(f"File not found: {path}")

    try:
        container = av.open(str(path))
    except (FileNotFoundError, PermissionError, IsADirectoryError) as e:
        raise FileError(f"Cannot open {path}: {e}") from e
    except FFmpegError as e:
        raise UnsupportedFormatError(f"{path.name}: {e}") from e

    with container:
        if not container.streams.audio:
            raise AudioError(f"No audio track found in {path.name}")

        stream = container.streams.audio[0]
        codec_context = stream.codec_context
        if codec_context is None:
            raise UnsupportedFormatError(f"No decoder available for {path.name}")

        sample_rate = codec_context.sample_rate or DEFAULT_SAMPLE_RATE
        channels = _channel_count(codec_context)
        logger.debug(
            f"Decoding {path.name}: {container.format.name}, "
            f"codec={codec_context.name}, {sample_rate}Hz, {channels}ch"
        )

        resampler = AudioResampler(format="flt")
        parts: list[np.ndarray] = []
        skipped = 0
        restarts = 0

        packets = container.demux(stream)
        while True:
            try:
                packet = next(packets)
            except StopIteration:
                break
            except BlockingIOError:
                restarts += 1
                if restarts > _MAX_DEMUX_RESTARTS:
                    logger.warning(f"Demuxer kept asking to retry, stopping at {path.name}")
                    break
                packets = container.demux(stream)
                continue
            except FFmpegError as e:
                logger.warning(f"Stopped reading {path.name} early: {e}")
                break
            restarts = 0

            try:
                frames = packet.decode()
            except FFmpegError as e:
                skipped += 1
                logger.debug(f"Skipping undecodable packet in {path.name}: {e}")
                continue

            for frame in frames:
                for converted in resampler.resample(frame):
                    parts.append(converted.to_ndarray().reshape(-1))

        for converted in resampler.resample(None):
            if converted is not None:
                parts.append(converted.to_ndarray().reshape(-1))

    if skipped:
        logger.info(f"Skipped {skipped} undecodable packet(s) in {path.name}")

    samples = np.concatenate(parts).astype(np.float32) if parts else np.zeros(0, np.float32)
    return DecodedAudio(samples=samples, sample_rate=sample_rate, channels=channels)


def load_whisper_audio(path: Path) -> tuple[np.ndarray, AudioInfo]:
    """Decode a file and normalize it to mono 16kHz.

    Returns:
        Tuple of (normalized samples, AudioInfo describing the source)
    """
    decoded = decode_audio(path)
    samples = normalize(decoded.samples, decoded.channels, decoded.sample_rate)
    duration = len(samples) / WHISPER_SAMPLE_RATE
    info = AudioInfo.from_duration(duration, decoded.channels, decoded.sample_rate)
    logger.debug(f"Normalized {path}: {len(samples)} samples ({info.duration_str})")
    return samples, info
