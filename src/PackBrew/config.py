"""Define typed configuration models for pack transcoding.

Use `TranscodeConfig` to load, validate, and persist runtime settings.
"""

import os
import logging
import yaml
from dataclasses import dataclass, field
from typing import List
from enum import Enum

from .core.hashing import is_supported_algorithm

logger = logging.getLogger("pack_pipeline.config")


class TargetProfile(Enum):
    """Enumerate the representations a pack can be transcoded into."""

    COMPRESSED = "compressed"
    UNCOMPRESSED = "uncompressed"
    FIRMWARE = "firmware"


@dataclass
class ImageConfig:
    """Store settings for image conversion and 4-bit palette reduction."""

    max_colors: int = 16
    dither: bool = True
    quantize_method: str = "mediancut"  # mediancut | maxcoverage | fastoctree
    background_color: List[int] = field(default_factory=lambda: [0, 0, 0])
    png_optimize: bool = True
    strict_rle4_header: bool = True


@dataclass
class AudioConfig:
    """Store settings for audio conversion targets."""

    compressed_format: str = "ogg"  # ogg | mp3
    wav_subtype: str = "PCM_16"
    ogg_subtype: str = "VORBIS"
    firmware_channels: int = 1
    firmware_sample_rate: int = 44100


_SUPPORTED_CONFIG_VERSION = 1


@dataclass
class TranscodeConfig:
    """Master transcoding configuration."""

    config_version: int = 1
    digest_algorithm: str = "sha1"
    max_workers: int = 1
    log_level: str = "INFO"
    show_progress: bool = False

    image: ImageConfig = field(default_factory=ImageConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "TranscodeConfig":
        """Load configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write configuration to a YAML file."""
        import dataclasses
        import threading as _th
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}.{_th.get_ident()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        if not is_supported_algorithm(self.digest_algorithm):
            errors.append(
                f"digest_algorithm must be a fixed-width hashlib algorithm, "
                f"got '{self.digest_algorithm}'"
            )

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )

        if self.max_workers < 1:
            errors.append("max_workers must be >= 1")
        if self.max_workers > 64:
            errors.append("max_workers must be <= 64")

        # Image
        if not (2 <= self.image.max_colors <= 16):
            errors.append("image.max_colors must be in [2, 16] for a 4-bit palette")
        valid_methods = {"mediancut", "maxcoverage", "fastoctree"}
        if self.image.quantize_method not in valid_methods:
            errors.append(
                f"image.quantize_method must be one of {sorted(valid_methods)}, "
                f"got '{self.image.quantize_method}'"
            )
        bg = self.image.background_color
        if (len(bg) != 3
                or not all(isinstance(c, int) and 0 <= c <= 255 for c in bg)):
            errors.append("image.background_color must be three integers in [0, 255]")

        # Audio
        valid_compressed = {"ogg", "mp3"}
        if self.audio.compressed_format not in valid_compressed:
            errors.append(
                f"audio.compressed_format must be one of {sorted(valid_compressed)}, "
                f"got '{self.audio.compressed_format}'"
            )
        if not self.audio.wav_subtype:
            errors.append("audio.wav_subtype must not be empty")
        if not self.audio.ogg_subtype:
            errors.append("audio.ogg_subtype must not be empty")
        if self.audio.firmware_channels not in (1, 2):
            errors.append("audio.firmware_channels must be 1 or 2")
        if not (8000 <= self.audio.firmware_sample_rate <= 192000):
            errors.append("audio.firmware_sample_rate must be in [8000, 192000]")

        # --- Cross-field validation warnings (non-fatal) ---
        if (self.audio.firmware_channels != 1
                or self.audio.firmware_sample_rate != 44100):
            logger.warning(
                "Firmware audio target is %d channel(s) @ %d Hz; devices expect "
                "mono 44100 Hz MP3.",
                self.audio.firmware_channels, self.audio.firmware_sample_rate,
            )
        if not self.image.strict_rle4_header:
            logger.warning(
                "image.strict_rle4_header is disabled; RLE4 header lengths will "
                "not be cross-checked against the palette size."
            )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )


def _merge_dict_to_dataclass(obj, data: dict, _path: str = ""):
    import dataclasses
    for key, value in data.items():
        if hasattr(obj, key):
            field_val = getattr(obj, key)
            if dataclasses.is_dataclass(field_val) and isinstance(value, dict):
                _merge_dict_to_dataclass(field_val, value, f"{_path}{key}.")
            else:
                full_key = f"{_path}{key}"
                if value is None and field_val is not None:
                    logger.warning(
                        f"Config key '{full_key}' is null but field default is "
                        f"{type(field_val).__name__}. Using default value."
                    )
                    continue
                expected_type = type(field_val)
                # Allow int<->float promotion for exact values.
                if (field_val is not None
                        and not isinstance(value, expected_type)
                        and not (expected_type is float
                                 and isinstance(value, int))
                        and not (expected_type is int
                                 and isinstance(value, float)
                                 and value == int(value))):
                    logger.warning(
                        f"Config type mismatch for '{full_key}': "
                        f"expected {expected_type.__name__}, "
                        f"got {type(value).__name__} ({value!r}). "
                        f"Using default value."
                    )
                    continue
                if (expected_type is int and isinstance(value, float)
                        and value == int(value)):
                    value = int(value)
                setattr(obj, key, value)
        else:
            full_key = f"{_path}{key}"
            logger.warning(f"Unknown config key ignored: '{full_key}'")
