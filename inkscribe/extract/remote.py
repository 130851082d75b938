"""
inkscribe.extract.remote - Remote media retrieval via yt-dlp.

Downloads the audio of a remote video into a tagged temporary directory
(inkscribe_remote_*) and reports the retrieved title.
"""

from __future__ import annotations

import re
import shutil
import subprocess
import tempfile
from pathlib import Path

from inkscribe.exceptions import ToolFailedError, ToolUnavailableError
from inkscribe.logging import get_logger
from inkscribe.models import RemoteAudio
from inkscribe.platform import install_instructions

logger = get_logger(__name__)

REMOTE_TAG = "inkscribe_remote_"
DEFAULT_TITLE = "Remote media"
DOWNLOADED_AUDIO_EXTENSIONS: tuple[str, ...] = (".wav", ".m4a", ".mp3", ".webm", ".opus")

_UNSAFE_CHARS_RE = re.compile(r"[^\w \-]")


def is_ytdlp_available(ytdlp_path: str = "yt-dlp") -> bool:
    """Check if yt-dlp can be run on this system."""
    try:
        proc = subprocess.run([ytdlp_path, "--version"], capture_output=True, text=True)
    except OSError:
        return False
    return proc.returncode == 0


def sanitize_title(title: str) -> str:
    """Make a title safe to use as a file name."""
    safe = _UNSAFE_CHARS_RE.sub("_", title).strip()
    return safe or "audio"


def _fetch_title(url: str, ytdlp_path: str) -> str:
    try:
        proc = subprocess.run(
            [ytdlp_path, "--get-title", url],
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise ToolFailedError("yt-dlp", "could not start", str(e)) from e

    title = proc.stdout.strip() if proc.returncode == 0 else ""
    return title or DEFAULT_TITLE


def _find_downloaded_audio(download_dir: Path, stem: str) -> Path | None:
    expected = download_dir / f"{stem}.wav"
    if expected.exists():
        return expected
    for candidate in sorted(download_dir.iterdir()):
        if candidate.suffix.lower() in DOWNLOADED_AUDIO_EXTENSIONS:
            return candidate
    return None


def fetch_remote_audio(url: str, ytdlp_path: str = "yt-dlp") -> RemoteAudio:
    """Download the audio track of a remote video as WAV.

    Args:
        url: Media page URL
        ytdlp_path: yt-dlp binary to invoke

    Returns:
        RemoteAudio with the downloaded file and the media title.
        Pass audio_path to cleanup_remote_audio when done.

    Raises:
        ToolUnavailableError: If yt-dlp cannot be found
        ToolFailedError: If the download fails or produces no audio file
    """
    if not is_ytdlp_available(ytdlp_path):
        raise ToolUnavailableError(
            "yt-dlp",
            "not found on PATH",
            install_hint=install_instructions("yt-dlp"),
        )

    title = _fetch_title(url, ytdlp_path)
    stem = sanitize_title(title)
    download_dir = Path(tempfile.mkdtemp(prefix=REMOTE_TAG))

    cmd = [
        ytdlp_path,
        "-x",
        "--audio-format",
        "wav",
        "--audio-quality",
        "0",
        "-o",
        str(download_dir / f"{stem}.%(ext)s"),
        "--no-playlist",
        "--no-warnings",
        url,
    ]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
        if proc.returncode != 0:
            raise ToolFailedError("yt-dlp", "download failed", proc.stderr)

        audio_path = _find_downloaded_audio(download_dir, stem)
        if audio_path is None:
            raise ToolFailedError("yt-dlp", "downloaded audio file not found")
    except OSError as e:
        shutil.rmtree(download_dir, ignore_errors=True)
        raise ToolFailedError("yt-dlp", "could not start", str(e)) from e
    except ToolFailedError:
        shutil.rmtree(download_dir, ignore_errors=True)
        raise

    logger.info(f"Downloaded '{title}' -> {audio_path}")
    return RemoteAudio(audio_path=audio_path, title=title)


def cleanup_remote_audio(path: Path) -> bool:
    """Remove a downloaded file together with its tagged temp directory."""
    path = Path(path)
    download_dir = path.parent
    if not download_dir.name.startswith(REMOTE_TAG):
        return False
    shutil.rmtree(download_dir, ignore_errors=True)
    logger.debug(f"Removed download directory {download_dir}")
    return True
