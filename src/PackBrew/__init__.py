"""Provide package metadata and the public API for `PackBrew`."""

import logging as _logging

__version__ = "0.3.0"
_logger = _logging.getLogger("pack_pipeline")

from .config import TranscodeConfig, TargetProfile  # noqa: E402
from .core import (  # noqa: E402
    Asset,
    AssetKind,
    AudioFormat,
    ImageFormat,
    Node,
    Pack,
    TranscodeError,
    AssetDecodeError,
    AssetEncodeError,
    UnsupportedFormatTransitionError,
    MalformedRLEStreamError,
    fix_rle4_padding,
    setup_logging,
)
from .pipeline import (  # noqa: E402
    PackPipeline,
    TranscodeStats,
    has_non_canonical_assets,
    to_compressed,
    to_uncompressed,
    to_firmware_profile,
)

__all__ = [
    "__version__",
    "TranscodeConfig", "TargetProfile",
    "Asset", "AssetKind", "AudioFormat", "ImageFormat", "Node", "Pack",
    "TranscodeError", "AssetDecodeError", "AssetEncodeError",
    "UnsupportedFormatTransitionError", "MalformedRLEStreamError",
    "fix_rle4_padding", "setup_logging",
    "PackPipeline", "TranscodeStats", "has_non_canonical_assets",
    "to_compressed", "to_uncompressed", "to_firmware_profile",
]
