"""
inkscribe.audio.chunker - Fixed-duration chunking of normalized audio.

Chunk boundaries exist to bound engine input size. Buffers at or below the
chunking threshold are transcribed as a single unit even when they are
longer than one chunk duration.
"""

from __future__ import annotations

import math
from collections.abc import Iterator

import numpy as np

from inkscribe.config import (
    CHUNK_DURATION_SECONDS,
    CHUNKING_THRESHOLD_SECONDS,
    WHISPER_SAMPLE_RATE,
)
from inkscribe.exceptions import AudioError
from inkscribe.models import Chunk


def calculate_duration(samples: np.ndarray, sample_rate: int = WHISPER_SAMPLE_RATE) -> float:
    """Duration of a mono buffer in seconds."""
    return len(samples) / sample_rate


def needs_chunking(
    samples: np.ndarray,
    threshold: float = CHUNKING_THRESHOLD_SECONDS,
    sample_rate: int = WHISPER_SAMPLE_RATE,
) -> bool:
    """True when the buffer is strictly longer than the threshold."""
    return calculate_duration(samples, sample_rate) > threshold


def _chunk_samples(chunk_duration: float, sample_rate: int) -> int:
    size = int(chunk_duration * sample_rate)
    if size <= 0:
        raise ValueError(f"chunk_duration must cover at least one sample, got {chunk_duration}")
    return size


def count_chunks(
    samples: np.ndarray,
    chunk_duration: float = CHUNK_DURATION_SECONDS,
    sample_rate: int = WHISPER_SAMPLE_RATE,
) -> int:
    """Number of chunks split_into_chunks will yield."""
    return math.ceil(len(samples) / _chunk_samples(chunk_duration, sample_rate))


def split_into_chunks(
    samples: np.ndarray,
    chunk_duration: float = CHUNK_DURATION_SECONDS,
    sample_rate: int = WHISPER_SAMPLE_RATE,
) -> Iterator[Chunk]:
    """Lazily split a buffer into consecutive non-overlapping chunks.

    Every chunk but the last holds exactly chunk_duration * sample_rate
    samples. Offsets advance by chunk_duration regardless of the last
    chunk's length.

    Args:
        samples: Normalized mono samples
        chunk_duration: Chunk length in seconds
        sample_rate: Sample rate of the buffer

    Yields:
        Chunk objects in order
    """
    size = _chunk_samples(chunk_duration, sample_rate)
    for index, start in enumerate(range(0, len(samples), size)):
        yield Chunk(
            index=index,
            samples=samples[start : start + size],
            time_offset=index * chunk_duration,
        )


def plan_chunks(
    samples: np.ndarray,
    chunk_duration: float = CHUNK_DURATION_SECONDS,
    threshold: float = CHUNKING_THRESHOLD_SECONDS,
    sample_rate: int = WHISPER_SAMPLE_RATE,
) -> list[Chunk]:
    """Return the chunks a buffer should be transcribed as.

    Raises:
        AudioError: If the buffer is empty
    """
    if len(samples) == 0:
        raise AudioError("Audio contains no samples")

    if not needs_chunking(samples, threshold, sample_rate):
        return [Chunk(index=0, samples=samples, time_offset=0.0)]

    return list(split_into_chunks(samples, chunk_duration, sample_rate))
