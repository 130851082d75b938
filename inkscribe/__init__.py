"""
Inkscribe - chunked Whisper transcription for arbitrary media files.

Turns an audio or video file (or a downloaded remote stream) into a single
timestamped transcript through a linear pipeline: audio extraction →
speed adjustment → decoding and normalization → chunking → transcription.
"""

__version__ = "0.1.0"
