"""
inkscribe.audio - Decoding, normalization and chunking.

Brings arbitrary source audio to mono 16kHz float samples and splits long
buffers into fixed-duration chunks for the engine.
"""

from __future__ import annotations
