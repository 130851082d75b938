"""
inkscribe.platform - Platform-aware install instructions.

External tools are never bundled; when one is missing the user gets the
install command for their operating system.
"""

from __future__ import annotations

import sys

_INSTALL_COMMANDS: dict[str, dict[str, str]] = {
    "ffmpeg": {
        "darwin": "brew install ffmpeg",
        "win32": "winget install ffmpeg",
        "url": "https://ffmpeg.org/download.html",
    },
    "yt-dlp": {
        "darwin": "brew install yt-dlp",
        "win32": "winget install yt-dlp",
        "url": "https://github.com/yt-dlp/yt-dlp",
    },
}


def install_instructions(tool: str, platform: str | None = None) -> str:
    """Return the install remedy for an external tool.

    Args:
        tool: Tool name ("ffmpeg" or "yt-dlp")
        platform: Override for sys.platform (used by tests)

    Returns:
        Human-readable install instruction
    """
    platform = platform or sys.platform
    commands = _INSTALL_COMMANDS.get(tool, {})

    if platform in commands:
        return f"{tool} is not installed. Please install it with: {commands[platform]}"
    if platform.startswith("linux"):
        return (
            f"{tool} is not installed. Please install it with your package manager:\n"
            f"  Ubuntu/Debian: sudo apt install {tool}\n"
            f"  Fedora: sudo dnf install {tool}\n"
            f"  Arch: sudo pacman -S {tool}"
        )
    url = commands.get("url")
    if url:
        return f"{tool} is not installed. Please install it from: {url}"
    return f"{tool} is not installed."
