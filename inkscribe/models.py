"""
inkscribe.models - Data structures passed between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

from inkscribe.utils import format_duration


@dataclass(frozen=True)
class AudioInfo:
    """Characteristics of the source audio.

    Attributes:
        duration: Duration in seconds (original time, after speed correction)
        duration_str: Duration formatted as M:SS
        channels: Channel count of the source
        sample_rate: Sample rate of the source in Hz
    """

    duration: float
    duration_str: str
    channels: int
    sample_rate: int

    @classmethod
    def from_duration(cls, duration: float, channels: int, sample_rate: int) -> AudioInfo:
        return cls(
            duration=duration,
            duration_str=format_duration(duration),
            channels=channels,
            sample_rate=sample_rate,
        )

    def scaled(self, speed: float) -> AudioInfo:
        """Express the duration of sped-up audio in original time."""
        duration = self.duration * speed
        return replace(self, duration=duration, duration_str=format_duration(duration))

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "duration_str": self.duration_str,
            "channels": self.channels,
            "sample_rate": self.sample_rate,
        }


@dataclass(frozen=True)
class DecodedAudio:
    """Interleaved float samples at the source rate and channel count."""

    samples: np.ndarray
    sample_rate: int
    channels: int


@dataclass(frozen=True)
class Chunk:
    """A slice of a normalized buffer.

    Attributes:
        index: Position in the chunk sequence (0-based)
        samples: Mono samples at the engine sample rate
        time_offset: Start of the chunk in seconds
    """

    index: int
    samples: np.ndarray
    time_offset: float

    @property
    def time_offset_ms(self) -> int:
        return int(round(self.time_offset * 1000))


@dataclass(frozen=True)
class TranscriptionResult:
    """Final outcome of one transcription request."""

    text: str
    detected_language: str | None
    audio_info: AudioInfo | None
    processing_time: float

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @property
    def char_count(self) -> int:
        return len(self.text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "language": self.detected_language,
            "audio_info": self.audio_info.to_dict() if self.audio_info else None,
            "processing_time": round(self.processing_time, 3),
            "word_count": self.word_count,
            "char_count": self.char_count,
        }


class ProgressKind(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification delivered to the host."""

    kind: ProgressKind
    progress: float
    message: str
    chunk_text: str | None = None


@dataclass(frozen=True)
class RemoteAudio:
    """Audio file retrieved from a remote URL."""

    audio_path: Path
    title: str
