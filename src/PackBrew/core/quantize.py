"""Palette reduction adapter over Pillow's quantizer."""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger("pack_pipeline.quantize")

PALETTE_SIZE = 16

_QUANTIZE_METHODS = {
    "mediancut": Image.Quantize.MEDIANCUT,
    "maxcoverage": Image.Quantize.MAXCOVERAGE,
    "fastoctree": Image.Quantize.FASTOCTREE,
}

Color = Tuple[int, int, int]


@dataclass
class QuantizedImage:
    """Indexed pixels plus a palette forced to exactly ``PALETTE_SIZE`` entries."""

    indices: np.ndarray  # (H, W) uint8, top-down
    palette: List[Color]

    @property
    def width(self) -> int:
        return int(self.indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.indices.shape[0])


def force_palette_length(colors: List[Color], length: int = PALETTE_SIZE) -> List[Color]:
    """Truncate or zero-fill a palette to ``length`` entries."""
    fixed = list(colors[:length])
    fixed.extend([(0, 0, 0)] * (length - len(fixed)))
    return fixed


def quantize_image(img: Image.Image, max_colors: int = PALETTE_SIZE,
                   dither: bool = True, method: str = "mediancut") -> QuantizedImage:
    """Reduce an RGB image to at most ``max_colors`` palette entries.

    Pillow only dithers when mapping onto an existing palette, so the palette
    is computed first and the image is then remapped onto it with
    Floyd-Steinberg error diffusion.
    """
    if not 2 <= max_colors <= PALETTE_SIZE:
        raise ValueError(f"max_colors must be in [2, {PALETTE_SIZE}], got {max_colors}")
    if method not in _QUANTIZE_METHODS:
        raise ValueError(
            f"Unknown quantize method {method!r}; expected one of {sorted(_QUANTIZE_METHODS)}"
        )
    rgb = img if img.mode == "RGB" else img.convert("RGB")

    with rgb.quantize(colors=max_colors, method=_QUANTIZE_METHODS[method]) as palette_img:
        indices = np.asarray(palette_img, dtype=np.uint8).copy()
        raw_palette = palette_img.getpalette() or []

    used = int(indices.max()) + 1
    colors = [tuple(raw_palette[i * 3:i * 3 + 3]) for i in range(used)]
    if len(raw_palette) < used * 3 or used > max_colors:
        raise ValueError(
            f"Quantizer returned {used} palette index(es) for max_colors={max_colors}"
        )

    if dither and used > 1:
        indices = _dither_onto(rgb, colors)

    palette = force_palette_length(colors)
    logger.debug(
        "Quantized %dx%d image to %d colour(s) (method=%s, dither=%s)",
        rgb.width, rgb.height, used, method, dither,
    )
    return QuantizedImage(indices=indices, palette=palette)


def _dither_onto(rgb: Image.Image, colors: List[Color]) -> np.ndarray:
    """Remap ``rgb`` onto ``colors`` with Floyd-Steinberg dithering."""
    # Fill the 256-entry reference palette with copies of colour 0 so any
    # index past the real colours still denotes colour 0.
    filler = list(colors) + [colors[0]] * (256 - len(colors))
    reference = Image.new("P", (1, 1))
    reference.putpalette([channel for color in filler for channel in color])
    with rgb.quantize(palette=reference, dither=Image.Dither.FLOYDSTEINBERG) as indexed:
        indices = np.asarray(indexed, dtype=np.uint8).copy()
    indices[indices >= len(colors)] = 0
    return indices
