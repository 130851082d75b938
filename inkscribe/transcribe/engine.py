"""
inkscribe.transcribe.engine - faster-whisper transcription engine.

Wraps one loaded CTranslate2 Whisper model. Runs language detection on at
most the first 30 seconds of a buffer and greedy, single-hypothesis
decoding passes that produce plain or [HH:MM:SS]-tagged text.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from inkscribe.config import LANGUAGE_DETECTION_SECONDS, MODELS, WHISPER_SAMPLE_RATE
from inkscribe.exceptions import EngineError, ModelNotFoundError
from inkscribe.logging import get_logger
from inkscribe.utils import format_timestamp_ms

logger = get_logger(__name__)

MODEL_ARTIFACT = "model.bin"


def resolve_model_path(model: str, models_dir: Path) -> Path:
    """Directory holding the converted model files for an identity."""
    return Path(models_dir) / model


def is_model_downloaded(model: str, models_dir: Path) -> bool:
    return (resolve_model_path(model, models_dir) / MODEL_ARTIFACT).exists()


def list_downloaded_models(models_dir: Path) -> list[str]:
    """Known model identities that are present on disk."""
    return [m for m in MODELS if is_model_downloaded(m, models_dir)]


def format_segments(
    segments: list[tuple[float, str]],
    include_timestamps: bool,
    time_offset_ms: int = 0,
) -> str:
    """Join (start_seconds, text) segments into transcript text.

    Args:
        segments: Engine segments in order
        include_timestamps: Prefix each segment with its [HH:MM:SS] start
        time_offset_ms: Added to every start so chunks stay continuous

    Returns:
        Newline-joined tagged lines, or the concatenated segment text
    """
    if include_timestamps:
        lines = []
        for start, text in segments:
            start_ms = int(round(start * 1000)) + time_offset_ms
            lines.append(f"[{format_timestamp_ms(start_ms)}] {text.strip()}")
        return "\n".join(lines).strip()

    return "".join(text for _, text in segments).strip()


class TranscriptionEngine:
    """One loaded Whisper model.

    Not thread-safe: an instance must only be used from the thread that
    created it (see EngineWorker).
    """

    def __init__(
        self,
        model: str,
        models_dir: Path,
        device: str = "auto",
        compute_type: str = "default",
    ) -> None:
        """Load a model from disk.

        Raises:
            ModelNotFoundError: If the model artifact is absent
            EngineError: If the engine rejects the artifact
        """
        self._model_name = model
        model_path = resolve_model_path(model, models_dir)
        if not (model_path / MODEL_ARTIFACT).exists():
            raise ModelNotFoundError(model, str(model_path))

        try:
            from faster_whisper import WhisperModel
        except ImportError as e:
            raise ImportError(
                "faster-whisper not installed. Install with: pip install faster-whisper"
            ) from e

        logger.info(f"Loading {model} model from {model_path} ({device}, {compute_type})")
        try:
            self._model: Any = WhisperModel(
                str(model_path),
                device=device,
                compute_type=compute_type,
                local_files_only=True,
            )
        except Exception as e:
            raise EngineError(f"Failed to load model '{model}': {e}") from e

    @property
    def model(self) -> str:
        return self._model_name

    def detect_language(self, samples: np.ndarray) -> str:
        """Detect the spoken language from the start of a buffer.

        Returns:
            Language code, or "unknown" if the engine cannot resolve one

        Raises:
            EngineError: If detection fails
        """
        limit = int(LANGUAGE_DETECTION_SECONDS * WHISPER_SAMPLE_RATE)
        sample = samples[:limit]
        if len(sample) == 0:
            return "unknown"

        try:
            language, probability, _ = self._model.detect_language(sample)
        except Exception as e:
            raise EngineError(f"Language detection failed: {e}") from e

        logger.debug(f"Detected language {language!r} (p={probability:.2f})")
        return language or "unknown"

    def transcribe(
        self,
        samples: np.ndarray,
        language: str | None = None,
        include_timestamps: bool = False,
        time_offset_ms: int = 0,
    ) -> str:
        """Run one greedy decoding pass over a mono 16kHz buffer.

        Args:
            samples: Normalized samples
            language: Language code to constrain decoding to (auto if None)
            include_timestamps: Tag each segment with its start time
            time_offset_ms: Offset of this buffer within the full audio

        Returns:
            Transcript text for the buffer

        Raises:
            EngineError: If decoding fails at any point
        """
        kwargs: dict[str, Any] = {
            "beam_size": 1,
            "best_of": 1,
            "temperature": 0.0,
        }
        if language:
            kwargs["language"] = language

        try:
            segments, _ = self._model.transcribe(samples, **kwargs)
            # segments is lazy; decoding happens while iterating
            collected = [(segment.start, segment.text) for segment in segments]
        except Exception as e:
            raise EngineError(f"Transcription failed: {e}") from e

        logger.debug(f"Decoded {len(collected)} segment(s) at offset {time_offset_ms}ms")
        return format_segments(collected, include_timestamps, time_offset_ms)
