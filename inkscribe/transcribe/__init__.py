"""
inkscribe.transcribe - Whisper transcription engine.

Loads faster-whisper models, keeps at most one resident in a single-slot
cache, and runs each engine on its own worker thread.
"""

from __future__ import annotations
