"""
inkscribe.extract.ffmpeg - FFmpeg tempo adjustment and audio extraction.

Produces temporary WAV files under the system temp directory:
- inkscribe_speedup_*.wav for time-compressed audio (atempo filter)
- inkscribe_extracted_*.wav for 16kHz mono audio pulled out of video

Cleanup helpers only delete files carrying their own tag.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path

from inkscribe.config import (
    SPEED_MAX,
    SPEED_MIN,
    SPEED_NOOP_TOLERANCE,
    WHISPER_SAMPLE_RATE,
)
from inkscribe.exceptions import SpeedRangeError, ToolFailedError, ToolUnavailableError
from inkscribe.logging import get_logger
from inkscribe.platform import install_instructions
from inkscribe.utils import TIMESTAMP_TAG_RE, format_timestamp_ms, parse_timestamp_ms

logger = get_logger(__name__)

SPEEDUP_TAG = "inkscribe_speedup_"
EXTRACTED_TAG = "inkscribe_extracted_"

FFMPEG_PATHS: tuple[str, ...] = (
    "ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
    "/usr/local/bin/ffmpeg",
    "/usr/bin/ffmpeg",
)


def find_ffmpeg(preferred: str | None = None) -> str | None:
    """Locate a working ffmpeg binary.

    Args:
        preferred: Explicit binary to try before the common install paths

    Returns:
        The first candidate that runs `-version` successfully, or None
    """
    candidates = (preferred, *FFMPEG_PATHS) if preferred else FFMPEG_PATHS
    for candidate in candidates:
        try:
            proc = subprocess.run(
                [candidate, "-version"],
                capture_output=True,
                text=True,
            )
        except OSError:
            continue
        if proc.returncode == 0:
            return candidate
    return None


def is_ffmpeg_available(preferred: str | None = None) -> bool:
    """Check if ffmpeg can be run on this system."""
    return find_ffmpeg(preferred) is not None


def _require_ffmpeg(preferred: str | None) -> str:
    ffmpeg = find_ffmpeg(preferred)
    if ffmpeg is None:
        raise ToolUnavailableError(
            "ffmpeg",
            "not found on PATH or in common install locations",
            install_hint=install_instructions("ffmpeg"),
        )
    return ffmpeg


def _temp_wav(tag: str) -> Path:
    fd, name = tempfile.mkstemp(prefix=tag, suffix=".wav")
    os.close(fd)
    return Path(name)


def _run_ffmpeg(cmd: list[str], output_path: Path, action: str) -> None:
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        output_path.unlink(missing_ok=True)
        raise ToolFailedError("ffmpeg", f"{action} could not start", str(e)) from e

    if proc.returncode != 0:
        output_path.unlink(missing_ok=True)
        raise ToolFailedError("ffmpeg", f"{action} failed", proc.stderr)


def apply_speedup(input_path: Path, speed: float, ffmpeg_path: str | None = None) -> Path:
    """Time-compress audio with ffmpeg's atempo filter.

    Args:
        input_path: Audio file to speed up
        speed: Tempo factor in [0.5, 2.0]; within 0.01 of 1.0 is a no-op
        ffmpeg_path: Optional explicit ffmpeg binary

    Returns:
        Path to the sped-up temporary WAV, or input_path unchanged for a no-op.
        The caller must pass the result to cleanup_speedup_file when done.

    Raises:
        SpeedRangeError: If speed is outside [0.5, 2.0]
        ToolUnavailableError: If ffmpeg cannot be found
        ToolFailedError: If ffmpeg exits with an error
    """
    if not SPEED_MIN <= speed <= SPEED_MAX:
        raise SpeedRangeError(f"Speed must be between {SPEED_MIN} and {SPEED_MAX}, got: {speed}")

    if abs(speed - 1.0) < SPEED_NOOP_TOLERANCE:
        return Path(input_path)

    ffmpeg = _require_ffmpeg(ffmpeg_path)
    output_path = _temp_wav(SPEEDUP_TAG)

    cmd = [
        ffmpeg,
        "-i",
        str(input_path),
        "-filter:a",
        f"atempo={speed}",
        "-vn",
        "-y",
        str(output_path),
    ]
    _run_ffmpeg(cmd, output_path, "speedup")

    logger.info(f"Sped up {Path(input_path).name} by {speed}x -> {output_path.name}")
    return output_path


def extract_audio_from_video(input_path: Path, ffmpeg_path: str | None = None) -> Path:
    """Extract the audio track of a video as 16kHz mono PCM WAV.

    Returns:
        Path to the temporary WAV; pass it to cleanup_extracted_audio when done

    Raises:
        ToolUnavailableError: If ffmpeg cannot be found
        ToolFailedError: If ffmpeg exits with an error
    """
    ffmpeg = _require_ffmpeg(ffmpeg_path)
    output_path = _temp_wav(EXTRACTED_TAG)

    cmd = [
        ffmpeg,
        "-i",
        str(input_path),
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(WHISPER_SAMPLE_RATE),
        "-ac",
        "1",
        "-y",
        str(output_path),
    ]
    _run_ffmpeg(cmd, output_path, "audio extraction")

    logger.info(f"Extracted audio from {Path(input_path).name} -> {output_path.name}")
    return output_path


def _cleanup_tagged(path: Path, tag: str) -> bool:
    path = Path(path)
    if tag not in path.name:
        return False
    path.unlink(missing_ok=True)
    logger.debug(f"Removed temporary file {path}")
    return True


def cleanup_speedup_file(path: Path) -> bool:
    """Delete a speedup temp file. Paths without the speedup tag are left alone."""
    return _cleanup_tagged(path, SPEEDUP_TAG)


def cleanup_extracted_audio(path: Path) -> bool:
    """Delete an extracted-audio temp file. Untagged paths are left alone."""
    return _cleanup_tagged(path, EXTRACTED_TAG)


def adjust_timestamp_for_speed(timestamp_ms: int, speed: float) -> int:
    """Map a time in sped-up audio back to original time."""
    return int(round(timestamp_ms * speed))


def adjust_timestamps_in_text(text: str, speed: float) -> str:
    """Rewrite every [HH:MM:SS] tag in text into original time."""

    def _replace(match) -> str:
        ms = parse_timestamp_ms(*match.groups())
        return f"[{format_timestamp_ms(adjust_timestamp_for_speed(ms, speed))}]"

    return TIMESTAMP_TAG_RE.sub(_replace, text)
