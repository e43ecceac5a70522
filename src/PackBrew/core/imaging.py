"""In-memory image I/O -- decode, flatten and encode asset bytes with Pillow."""

import io
import logging
from typing import Sequence

from PIL import Image, UnidentifiedImageError

from .bmp import is_rle4_bitmap, read_bitmap_info, read_palette, build_rle4_bitmap
from .errors import AssetDecodeError, AssetEncodeError, MalformedRLEStreamError
from .model import ImageFormat
from .quantize import quantize_image
from .rle4 import decode_rle4, encode_rle4, fix_rle4_padding

logger = logging.getLogger("pack_pipeline.imaging")

BLACK = (0, 0, 0)


def decode_image(data: bytes, fmt: ImageFormat) -> Image.Image:
    """Decode asset bytes into a fully loaded Pillow image.

    4-bit/RLE bitmaps are decoded by ``decode_rle4_bitmap``; everything else
    goes through Pillow restricted to the declared format.
    """
    if not data:
        raise AssetDecodeError(f"Empty {fmt.name} image payload")
    if fmt is ImageFormat.BMP and is_rle4_bitmap(data):
        return decode_rle4_bitmap(data)
    try:
        with Image.open(io.BytesIO(data), formats=[fmt.pil_format]) as img:
            img.load()
            logger.debug(
                "Decoded %s image %dx%d (mode=%s)", fmt.name, img.width, img.height, img.mode,
            )
            return img.copy()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError,
            ValueError, SyntaxError) as exc:
        raise AssetDecodeError(f"Failed to decode {fmt.name} image: {exc}") from exc


def decode_rle4_bitmap(data: bytes) -> Image.Image:
    """Decode a 4-bit/RLE bitmap into a palette (mode ``P``) image."""
    try:
        info = read_bitmap_info(data)
        palette = read_palette(data, info)
        indices = decode_rle4(data, info.width, info.rows, offset=info.pixel_offset)
    except (ValueError, MalformedRLEStreamError) as exc:
        raise AssetDecodeError(f"Failed to decode 4-bit/RLE bitmap: {exc}") from exc
    if info.top_down:
        indices = indices[::-1]
    height, width = indices.shape
    img = Image.frombytes("P", (width, height), indices.tobytes())
    img.putpalette([channel for color in palette for channel in color])
    return img


def flatten_to_rgb(img: Image.Image, background: Sequence[int] = BLACK) -> Image.Image:
    """Return an opaque RGB image, compositing any alpha over ``background``."""
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    if not has_alpha:
        return img if img.mode == "RGB" else img.convert("RGB")
    rgba = img.convert("RGBA")
    base = Image.new("RGBA", rgba.size, tuple(background) + (255,))
    base.alpha_composite(rgba)
    return base.convert("RGB")


def encode_image(img: Image.Image, fmt: ImageFormat, optimize: bool = True) -> bytes:
    """Encode an image to bytes, rejecting empty encoder output."""
    buf = io.BytesIO()
    try:
        if fmt is ImageFormat.PNG:
            img.save(buf, format=fmt.pil_format, optimize=optimize)
        elif fmt is ImageFormat.JPEG:
            img.save(buf, format=fmt.pil_format, quality=95)
        else:
            img.save(buf, format=fmt.pil_format)
    except (OSError, ValueError, KeyError) as exc:
        raise AssetEncodeError(f"Failed to encode {fmt.name} image: {exc}") from exc
    data = buf.getvalue()
    if not data:
        raise AssetEncodeError(f"{fmt.name} encoder produced no data")
    return data


def convert_image(data: bytes, src: ImageFormat, dst: ImageFormat,
                  background: Sequence[int] = BLACK, optimize: bool = True) -> bytes:
    """Re-render an image as opaque RGB in another format."""
    img = decode_image(data, src)
    try:
        return encode_image(flatten_to_rgb(img, background), dst, optimize=optimize)
    finally:
        img.close()


def any_to_rle4_bitmap(data: bytes, src: ImageFormat, max_colors: int = 16,
                       dither: bool = True, method: str = "mediancut",
                       background: Sequence[int] = BLACK,
                       strict_header: bool = True) -> bytes:
    """Quantize an image to 16 colours and write it as a 4-bit/RLE bitmap."""
    img = decode_image(data, src)
    try:
        quantized = quantize_image(
            flatten_to_rgb(img, background), max_colors=max_colors,
            dither=dither, method=method,
        )
    except ValueError as exc:
        raise AssetEncodeError(f"Palette reduction failed: {exc}") from exc
    finally:
        img.close()

    try:
        body = encode_rle4(quantized.indices)
        bitmap = build_rle4_bitmap(quantized.width, quantized.height, quantized.palette, body)
    except ValueError as exc:
        raise AssetEncodeError(f"RLE4 encoding failed: {exc}") from exc
    fixed = fix_rle4_padding(bitmap, strict_header=strict_header)
    if not fixed:
        raise AssetEncodeError("RLE4 encoder produced no data")
    return fixed

