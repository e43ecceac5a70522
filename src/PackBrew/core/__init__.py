"""Core utilities -- re-exports all public symbols for convenience."""

from .errors import (
    TranscodeError,
    AssetDecodeError,
    AssetEncodeError,
    UnsupportedFormatTransitionError,
    MalformedRLEStreamError,
)
from .model import AssetKind, ImageFormat, AudioFormat, Asset, Node, Pack
from .hashing import content_digest
from .cache import AssetCache
from .bmp import BitmapInfo, read_bitmap_info, is_rle4_bitmap, build_rle4_bitmap
from .rle4 import (
    Rle4Record,
    encode_rle4,
    decode_rle4,
    iter_rle4_records,
    fix_rle4_padding,
)
from .quantize import QuantizedImage, quantize_image
from .imaging import (
    decode_image,
    encode_image,
    flatten_to_rgb,
    convert_image,
    any_to_rle4_bitmap,
)
from .id3 import strip_id3_tags
from .audio import (
    decode_audio,
    encode_audio,
    audio_info,
    convert_audio,
    any_to_mp3,
)
from .logging import setup_logging

__all__ = [
    "TranscodeError", "AssetDecodeError", "AssetEncodeError",
    "UnsupportedFormatTransitionError", "MalformedRLEStreamError",
    "AssetKind", "ImageFormat", "AudioFormat", "Asset", "Node", "Pack",
    "content_digest",
    "AssetCache",
    "BitmapInfo", "read_bitmap_info", "is_rle4_bitmap", "build_rle4_bitmap",
    "Rle4Record", "encode_rle4", "decode_rle4", "iter_rle4_records", "fix_rle4_padding",
    "QuantizedImage", "quantize_image",
    "decode_image", "encode_image", "flatten_to_rgb", "convert_image",
    "any_to_rle4_bitmap",
    "strip_id3_tags",
    "decode_audio", "encode_audio", "audio_info", "convert_audio", "any_to_mp3",
    "setup_logging",
]
