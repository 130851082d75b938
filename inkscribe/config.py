"""
inkscribe.config - Constants, YAML config loading, option validation.

Handles loading inkscribe.yaml, the model and language catalogues, and
validation of per-request transcription options.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from inkscribe.exceptions import ConfigError

WHISPER_SAMPLE_RATE = 16000
CHUNK_DURATION_SECONDS = 60.0
CHUNKING_THRESHOLD_SECONDS = 120.0
LANGUAGE_DETECTION_SECONDS = 30.0

SPEED_MIN = 0.5
SPEED_MAX = 2.0
SPEED_NOOP_TOLERANCE = 0.01
SPEED_APPLY_THRESHOLD = 1.01

AUDIO_FORMATS: tuple[str, ...] = ("mp3", "wav", "m4a", "flac", "ogg")
VIDEO_FORMATS: tuple[str, ...] = ("mp4", "avi", "mov")

CONFIG_FILENAME = "inkscribe.yaml"
DEFAULT_MODELS_DIR = Path.home() / ".cache" / "inkscribe" / "models"

MODELS: tuple[str, ...] = ("tiny", "base", "small", "medium", "large-v3", "large-v3-turbo")

LANGUAGES: dict[str, str] = {
    "en": "English",
    "es": "Español",
    "fr": "Français",
    "de": "Deutsch",
    "it": "Italiano",
    "pt": "Português",
    "ja": "日本語",
    "zh": "中文",
    "ko": "한국어",
    "ru": "Русский",
}

_LANGUAGE_ALIASES: dict[str, str] = {
    "english": "en",
    "spanish": "es",
    "french": "fr",
    "german": "de",
    "italian": "it",
    "portuguese": "pt",
    "japanese": "ja",
    "chinese": "zh",
    "korean": "ko",
    "russian": "ru",
}


def parse_language(name: str | None) -> str:
    """Resolve a language code or name to a catalogue code, or "auto".

    Unknown values fall back to auto-detection rather than failing.
    """
    if not name:
        return "auto"
    key = name.strip().lower()
    if key in LANGUAGES:
        return key
    if key in _LANGUAGE_ALIASES:
        return _LANGUAGE_ALIASES[key]
    for code, display in LANGUAGES.items():
        if key == display.lower():
            return code
    return "auto"


def parse_model(name: str) -> str:
    """Normalize a model identity, rejecting unknown models."""
    key = name.strip().lower()
    if key not in MODELS:
        raise ValueError(f"Unknown model: {name} (choose from: {', '.join(MODELS)})")
    return key


class TranscribeOptions(BaseModel):
    """Options for a single transcription request."""

    model: str = "base"
    language: str = "auto"
    include_timestamps: bool = False
    speed: float = 1.0

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        return parse_model(v)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return parse_language(v)

    @field_validator("speed")
    @classmethod
    def clamp_speed(cls, v: float) -> float:
        return min(max(v, 1.0), SPEED_MAX)

    @property
    def language_hint(self) -> str | None:
        """Language code to constrain the engine to, or None for auto-detect."""
        return None if self.language == "auto" else self.language

    @property
    def speedup_requested(self) -> bool:
        return self.speed > SPEED_APPLY_THRESHOLD


class InkscribeConfig(BaseModel):
    """Resolved configuration for the transcription pipeline."""

    models_dir: Path = DEFAULT_MODELS_DIR
    device: str = "auto"
    compute_type: str = "default"

    default_model: str = "base"
    default_language: str = "auto"

    chunk_duration_seconds: float = Field(default=CHUNK_DURATION_SECONDS, gt=0.0)
    chunking_threshold_seconds: float = Field(default=CHUNKING_THRESHOLD_SECONDS, gt=0.0)

    ffmpeg_path: str | None = None
    ytdlp_path: str = "yt-dlp"

    config_path: Path | None = None

    @field_validator("device")
    @classmethod
    def validate_device(cls, v: str) -> str:
        valid = {"auto", "cpu", "cuda"}
        if v not in valid:
            raise ValueError(f"device must be one of: {valid}")
        return v

    @field_validator("default_model")
    @classmethod
    def validate_default_model(cls, v: str) -> str:
        return parse_model(v)

    @field_validator("default_language")
    @classmethod
    def validate_default_language(cls, v: str) -> str:
        return parse_language(v)

    @field_validator("models_dir")
    @classmethod
    def expand_models_dir(cls, v: Path) -> Path:
        return Path(v).expanduser()

    def options(self, **overrides: Any) -> TranscribeOptions:
        """Build request options from config defaults plus explicit overrides."""
        values: dict[str, Any] = {
            "model": self.default_model,
            "language": self.default_language,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return TranscribeOptions(**values)


def create_default_config() -> dict[str, Any]:
    """Create a default config dict suitable for writing to YAML."""
    return {
        "models_dir": str(DEFAULT_MODELS_DIR),
        "device": "auto",
        "compute_type": "default",
        "default_model": "base",
        "default_language": "auto",
        "chunk_duration_seconds": CHUNK_DURATION_SECONDS,
        "chunking_threshold_seconds": CHUNKING_THRESHOLD_SECONDS,
        "ytdlp_path": "yt-dlp",
    }


def load_config(path: Path | None = None) -> InkscribeConfig:
    """Load and validate configuration.

    Args:
        path: Explicit config file. When None, inkscribe.yaml in the current
            directory is used if present, otherwise defaults apply.

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ConfigError: If the file is not valid YAML or fails validation
    """
    if path is None:
        candidate = Path.cwd() / CONFIG_FILENAME
        if not candidate.exists():
            return InkscribeConfig()
        path = candidate
    elif not path.exists():
        raise FileNotFoundError(f"No config file found at {path}")

    try:
        with open(path) as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e
    if not isinstance(raw_config, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")

    raw_config["config_path"] = path
    try:
        return InkscribeConfig(**raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
