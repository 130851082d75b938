"""
inkscribe.pipeline - Transcription orchestrator.

Sequences audio extraction → speed adjustment → decode and normalize →
chunking → language detection → per-chunk transcription, reports progress
through a ProgressChannel and removes every temporary file it created,
whether or not the request succeeds.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from inkscribe.audio.chunker import plan_chunks
from inkscribe.audio.decode import is_video_format, load_whisper_audio
from inkscribe.config import InkscribeConfig, TranscribeOptions
from inkscribe.exceptions import CancelledError, FileError
from inkscribe.extract.ffmpeg import (
    adjust_timestamps_in_text,
    apply_speedup,
    cleanup_extracted_audio,
    cleanup_speedup_file,
    extract_audio_from_video,
)
from inkscribe.extract.remote import cleanup_remote_audio, fetch_remote_audio
from inkscribe.logging import get_logger
from inkscribe.models import Chunk, TranscriptionResult
from inkscribe.progress import ProgressChannel
from inkscribe.transcribe.cache import EngineCache, EngineWorker, default_engine_factory

logger = get_logger(__name__)

TempFiles = list[tuple[Callable[[Path], bool], Path]]


@dataclass(frozen=True)
class _Milestones:
    """Progress fractions at each stage boundary."""

    speedup: float
    decode: float
    model: float


FILE_MILESTONES = _Milestones(speedup=0.05, decode=0.10, model=0.20)
REMOTE_MILESTONES = _Milestones(speedup=0.15, decode=0.20, model=0.30)


class TranscriptionPipeline:
    """Runs transcription requests against a shared engine cache."""

    def __init__(
        self,
        config: InkscribeConfig | None = None,
        cache: EngineCache | None = None,
        channel: ProgressChannel | None = None,
    ) -> None:
        self.config = config or InkscribeConfig()
        self.cache = cache or EngineCache(default_engine_factory(self.config))
        self.channel = channel or ProgressChannel()

    def transcribe_file(
        self,
        path: Path,
        options: TranscribeOptions,
        cancel: threading.Event | None = None,
    ) -> TranscriptionResult:
        """Transcribe a local audio or video file.

        Args:
            path: Audio or video file
            options: Model, language, timestamp and speed options
            cancel: Checked before each chunk; when set the run stops

        Returns:
            TranscriptionResult in original (pre-speedup) time

        Raises:
            FileError: If the file does not exist
            CancelledError: If cancel was set before a chunk started
            InkscribeError: Any stage failure
        """
        path = Path(path)
        started_at = time.perf_counter()
        temp_files: TempFiles = []

        try:
            if not path.exists():
                raise FileError(f"File not found: {path}")

            self.channel.started("Starting transcription...")

            audio_path = path
            if is_video_format(path):
                self.channel.progress(0.02, "Extracting audio from video...")
                audio_path = extract_audio_from_video(path, self.config.ffmpeg_path)
                temp_files.append((cleanup_extracted_audio, audio_path))

            return self._run(audio_path, options, cancel, FILE_MILESTONES, started_at, temp_files)
        except Exception as e:
            self.channel.error(str(e))
            raise
        finally:
            _release(temp_files)

    def transcribe_url(
        self,
        url: str,
        options: TranscribeOptions,
        cancel: threading.Event | None = None,
    ) -> tuple[TranscriptionResult, str]:
        """Download remote media and transcribe its audio.

        Returns:
            Tuple of (TranscriptionResult, retrieved media title)
        """
        started_at = time.perf_counter()
        temp_files: TempFiles = []

        try:
            self.channel.started("Downloading remote audio...")
            self.channel.progress(0.05, "Downloading remote audio...")
            remote = fetch_remote_audio(url, self.config.ytdlp_path)
            temp_files.append((cleanup_remote_audio, remote.audio_path))

            result = self._run(
                remote.audio_path, options, cancel, REMOTE_MILESTONES, started_at, temp_files
            )
            return result, remote.title
        except Exception as e:
            self.channel.error(str(e))
            raise
        finally:
            _release(temp_files)

    def _run(
        self,
        audio_path: Path,
        options: TranscribeOptions,
        cancel: threading.Event | None,
        milestones: _Milestones,
        started_at: float,
        temp_files: TempFiles,
    ) -> TranscriptionResult:
        speed = options.speed
        sped_up = options.speedup_requested

        decode_path = audio_path
        if sped_up:
            self.channel.progress(milestones.speedup, f"Accelerating audio to {speed}x...")
            decode_path = apply_speedup(audio_path, speed, self.config.ffmpeg_path)
            if decode_path != audio_path:
                temp_files.append((cleanup_speedup_file, decode_path))

        self.channel.progress(milestones.decode, "Decoding audio...")
        samples, audio_info = load_whisper_audio(decode_path)
        if sped_up:
            audio_info = audio_info.scaled(speed)
        _release(temp_files, keep=cleanup_remote_audio)

        chunks = plan_chunks(
            samples,
            chunk_duration=self.config.chunk_duration_seconds,
            threshold=self.config.chunking_threshold_seconds,
        )
        del samples

        self.channel.progress(milestones.model, f"Loading {options.model} model...")
        engine = self.cache.get_or_create(options.model)

        self.channel.progress(milestones.model, "Detecting language...")
        language = engine.detect_language(chunks[0].samples)

        text = self._transcribe_chunks(engine, chunks, options, cancel, milestones.model)

        if sped_up and options.include_timestamps:
            text = adjust_timestamps_in_text(text, speed)

        result = TranscriptionResult(
            text=text,
            detected_language=language,
            audio_info=audio_info,
            processing_time=time.perf_counter() - started_at,
        )
        self.channel.completed("Transcription completed")
        logger.info(
            f"Transcribed {audio_info.duration_str} of audio in {result.processing_time:.1f}s "
            f"({len(chunks)} chunk(s), language={language})"
        )
        return result

    def _transcribe_chunks(
        self,
        engine: EngineWorker,
        chunks: list[Chunk],
        options: TranscribeOptions,
        cancel: threading.Event | None,
        base: float,
    ) -> str:
        total = len(chunks)
        span = 1.0 - base
        texts: list[str] = []

        for chunk in chunks:
            if cancel is not None and cancel.is_set():
                raise CancelledError(
                    f"Transcription cancelled after {chunk.index} of {total} chunk(s)"
                )

            if total > 1:
                self.channel.progress(
                    base + span * (chunk.index + 0.5) / total,
                    f"Transcribing chunk {chunk.index + 1} of {total}",
                )
            else:
                self.channel.progress(base, "Transcribing audio...")

            text = engine.transcribe(
                chunk.samples,
                language=options.language_hint,
                include_timestamps=options.include_timestamps,
                time_offset_ms=chunk.time_offset_ms,
            )
            texts.append(text)

            message = (
                f"Chunk {chunk.index + 1} of {total} completed"
                if total > 1
                else "Transcription completed"
            )
            self.channel.progress(base + span * (chunk.index + 1) / total, message, chunk_text=text)

        separator = "\n" if options.include_timestamps else " "
        return separator.join(t for t in texts if t)


def _release(
    temp_files: TempFiles,
    keep: Callable[[Path], bool] | None = None,
) -> None:
    """Run cleanup for tracked temp files, removing them from the list."""
    remaining = []
    for cleanup, path in temp_files:
        if cleanup is keep:
            remaining.append((cleanup, path))
            continue
        try:
            cleanup(path)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {path}: {e}")
    temp_files[:] = remaining
