"""
inkscribe.extract - External tool stages.

Wraps the command-line tools the pipeline treats as black boxes:
- ffmpeg for tempo adjustment and audio extraction from video
- yt-dlp for retrieving remote media as a local audio file
"""

from __future__ import annotations
