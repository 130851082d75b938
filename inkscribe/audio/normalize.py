"""
inkscribe.audio.normalize - Downmixing and linear resampling.

Linear interpolation is coarse compared to windowed-sinc resampling, but the
error it introduces is well below what affects recognition at 16kHz.
"""

from __future__ import annotations

import numpy as np

from inkscribe.config import WHISPER_SAMPLE_RATE


def downmix(samples: np.ndarray, channels: int) -> np.ndarray:
    """Average interleaved channels into a mono signal.

    Args:
        samples: Interleaved samples (frame-major)
        channels: Number of interleaved channels

    Returns:
        Mono samples, one per frame. A trailing incomplete frame is dropped.
    """
    samples = np.asarray(samples, dtype=np.float32)
    if channels <= 1:
        return samples

    frames = len(samples) // channels
    framed = samples[: frames * channels].reshape(frames, channels)
    return framed.mean(axis=1, dtype=np.float64).astype(np.float32)


def resample(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """Resample using linear interpolation between neighbouring samples.

    Produces floor(N / ratio) samples where ratio = from_rate / to_rate.
    Output sample i reads source position i * ratio; when the upper
    neighbour is past the end the lower sample is used as-is.

    Args:
        samples: Mono samples
        from_rate: Source sample rate in Hz
        to_rate: Target sample rate in Hz

    Returns:
        Resampled float32 samples
    """
    samples = np.asarray(samples, dtype=np.float32)
    if from_rate == to_rate:
        return samples

    ratio = from_rate / to_rate
    new_len = int(len(samples) / ratio)
    if new_len == 0:
        return np.zeros(0, dtype=np.float32)

    src_pos = np.arange(new_len, dtype=np.float64) * ratio
    idx = src_pos.astype(np.int64)
    frac = (src_pos - idx).astype(np.float32)

    n = len(samples)
    lower = np.where(idx < n, samples[np.minimum(idx, n - 1)], np.float32(0.0))
    has_upper = idx + 1 < n
    upper = samples[np.minimum(idx + 1, n - 1)]

    out = np.where(has_upper, lower + (upper - lower) * frac, lower)
    return out.astype(np.float32)


def normalize(
    samples: np.ndarray,
    channels: int,
    sample_rate: int,
    target_rate: int = WHISPER_SAMPLE_RATE,
) -> np.ndarray:
    """Downmix to mono and resample to the engine rate."""
    mono = downmix(samples, channels)
    return resample(mono, sample_rate, target_rate)
