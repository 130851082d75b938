"""
inkscribe.exceptions - Custom exception classes.

All Inkscribe-specific exceptions inherit from InkscribeError.
"""


class InkscribeError(Exception):
    """Base exception for all Inkscribe errors."""

    pass


class ConfigError(InkscribeError):
    """Configuration loading or validation error."""

    pass


class FileError(InkscribeError):
    """Input path missing or unreadable."""

    pass


class UnsupportedFormatError(InkscribeError):
    """No decoder available for the container or codec."""

    pass


class AudioError(InkscribeError):
    """No audio track, or audio that cannot be used."""

    pass


class ModelNotFoundError(InkscribeError):
    """Model artifact is not present on disk."""

    def __init__(self, model: str, path: str):
        self.model = model
        self.path = path
        super().__init__(f"Model '{model}' is not downloaded (expected at {path})")


class EngineError(InkscribeError):
    """Speech-recognition engine rejected a model or failed to decode."""

    pass


class SpeedRangeError(InkscribeError, ValueError):
    """Speed factor outside the range the tempo filter supports."""

    pass


class ToolUnavailableError(InkscribeError):
    """Required external tool is missing."""

    def __init__(self, tool: str, message: str, install_hint: str | None = None):
        self.tool = tool
        self.message = message
        self.install_hint = install_hint
        text = f"{tool}: {message}"
        if install_hint:
            text = f"{text}\n{install_hint}"
        super().__init__(text)


class ToolFailedError(InkscribeError):
    """External tool ran but exited with an error."""

    def __init__(self, tool: str, message: str, output: str = ""):
        self.tool = tool
        self.message = message
        self.output = output
        text = f"{tool} {message}"
        if output:
            text = f"{text}: {output.strip()}"
        super().__init__(text)


class CancelledError(InkscribeError):
    """Transcription was cancelled before completion."""

    def __init__(self, message: str = "Transcription cancelled"):
        super().__init__(message)
