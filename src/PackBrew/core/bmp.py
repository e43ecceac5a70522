"""BMP header parsing and 4-bit/RLE bitmap assembly."""

import struct
from dataclasses import dataclass
from typing import List, Sequence, Tuple

FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40  # BITMAPINFOHEADER

BI_RGB = 0
BI_RLE8 = 1
BI_RLE4 = 2

RLE4_PALETTE_ENTRIES = 16
# File header + info header + 16 BGRX palette entries = 0x76.
RLE4_HEADER_SIZE = FILE_HEADER_SIZE + INFO_HEADER_SIZE + 4 * RLE4_PALETTE_ENTRIES

# Absolute offsets of the low bytes of biBitCount and biCompression.
BITS_PER_PIXEL_OFFSET = 28
COMPRESSION_OFFSET = 30

_PELS_PER_METER = 2835  # 72 DPI

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class BitmapInfo:
    """Fields of the BMP file header and info header."""

    file_size: int
    pixel_offset: int
    header_size: int
    width: int
    height: int
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    colors_used: int

    @property
    def top_down(self) -> bool:
        return self.height < 0

    @property
    def rows(self) -> int:
        return abs(self.height)

    @property
    def palette_offset(self) -> int:
        return FILE_HEADER_SIZE + self.header_size

    @property
    def palette_entries(self) -> int:
        if self.colors_used:
            return self.colors_used
        if self.bits_per_pixel <= 8:
            return 1 << self.bits_per_pixel
        return 0

    @property
    def expected_pixel_offset(self) -> int:
        """Return where pixel data starts when the palette follows the info header."""
        return self.palette_offset + 4 * self.palette_entries

    @property
    def is_rle4(self) -> bool:
        return self.bits_per_pixel == 4 and self.compression == BI_RLE4


def read_bitmap_info(data: bytes) -> BitmapInfo:
    """Parse the BMP file and info headers. Raises ValueError on bad input."""
    if len(data) < FILE_HEADER_SIZE + 16:
        raise ValueError(f"BMP header truncated (size={len(data)} bytes)")
    magic, file_size, _, _, pixel_offset = struct.unpack_from("<2sIHHI", data, 0)
    if magic != b"BM":
        raise ValueError(f"Not a BMP file (magic={magic!r})")
    header_size = struct.unpack_from("<I", data, FILE_HEADER_SIZE)[0]
    if header_size < INFO_HEADER_SIZE:
        raise ValueError(
            f"Unsupported BMP info header size {header_size} "
            f"(expected >= {INFO_HEADER_SIZE})"
        )
    if len(data) < FILE_HEADER_SIZE + INFO_HEADER_SIZE:
        raise ValueError(f"BMP info header truncated (size={len(data)} bytes)")
    (
        width, height, planes, bits_per_pixel, compression,
        image_size, _, _, colors_used, _,
    ) = struct.unpack_from("<iiHHIIiiII", data, FILE_HEADER_SIZE + 4)
    return BitmapInfo(
        file_size=file_size,
        pixel_offset=pixel_offset,
        header_size=header_size,
        width=width,
        height=height,
        planes=planes,
        bits_per_pixel=bits_per_pixel,
        compression=compression,
        image_size=image_size,
        colors_used=colors_used,
    )


def is_rle4_bitmap(data: bytes) -> bool:
    """Return True when the bits-per-pixel and compression bytes say 4-bit/RLE."""
    return (
        len(data) > COMPRESSION_OFFSET
        and data[BITS_PER_PIXEL_OFFSET] == 4
        and data[COMPRESSION_OFFSET] == BI_RLE4
    )


def read_palette(data: bytes, info: BitmapInfo) -> List[Color]:
    """Return the palette as RGB triples (stored on disk as BGRX)."""
    start = info.palette_offset
    end = start + 4 * info.palette_entries
    if end > len(data):
        raise ValueError(
            f"BMP palette truncated: needs {end} bytes, have {len(data)}"
        )
    return [
        (data[i + 2], data[i + 1], data[i])
        for i in range(start, end, 4)
    ]


def build_rle4_bitmap(width: int, height: int, palette: Sequence[Color],
                      body: bytes) -> bytes:
    """Assemble a bottom-up 4-bit/RLE bitmap from an encoded pixel body."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid bitmap dimensions: {width}x{height}")
    if len(palette) != RLE4_PALETTE_ENTRIES:
        raise ValueError(
            f"RLE4 palette must have {RLE4_PALETTE_ENTRIES} entries, got {len(palette)}"
        )
    file_header = struct.pack(
        "<2sIHHI", b"BM", RLE4_HEADER_SIZE + len(body), 0, 0, RLE4_HEADER_SIZE,
    )
    info_header = struct.pack(
        "<IiiHHIIiiII",
        INFO_HEADER_SIZE, width, height, 1, 4, BI_RLE4, len(body),
        _PELS_PER_METER, _PELS_PER_METER, RLE4_PALETTE_ENTRIES, 0,
    )
    palette_bytes = b"".join(
        bytes((b & 0xFF, g & 0xFF, r & 0xFF, 0)) for r, g, b in palette
    )
    return file_header + info_header + palette_bytes + bytes(body)
