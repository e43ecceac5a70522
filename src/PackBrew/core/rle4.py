"""RLE4 bitmap stream encoding, decoding and absolute-mode padding repair.

An RLE4 body is a sequence of records that start with a 2-byte token
``(b1, b2)``:

* ``b1 > 0``: encoded run of ``b1`` pixels alternating the two nibbles of ``b2``;
* ``(0, 0)``: end of line; ``(0, 1)``: end of bitmap;
* ``(0, 2)``: delta, followed by two offset bytes ``(dx, dy)``;
* ``(0, n)`` with ``n > 2``: absolute run of ``n`` literal pixels packed two
  per byte, ``ceil(n / 2)`` bytes, then padded so the whole record spans an
  even number of bytes.

``encode_rle4`` emits absolute runs padded on the truncated byte count
(``n // 2``), the layout produced by widely deployed BMP writers. That layout
is one byte off for every odd ``n``; ``fix_rle4_padding`` rewrites it to the
format rule.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from .bmp import read_bitmap_info
from .errors import MalformedRLEStreamError

logger = logging.getLogger("pack_pipeline.rle4")

END_OF_LINE = 0x00
END_OF_BITMAP = 0x01
DELTA = 0x02

_MAX_RUN = 255
_MIN_ABSOLUTE = 3


@dataclass(frozen=True)
class Rle4Record:
    """One record of an RLE4 body, located by absolute byte offset."""

    offset: int
    b1: int
    b2: int
    size: int

    @property
    def is_absolute(self) -> bool:
        return self.b1 == 0 and self.b2 > DELTA

    @property
    def is_end_of_bitmap(self) -> bool:
        return self.b1 == 0 and self.b2 == END_OF_BITMAP


# ------------------------------------------
# Encoding
# ------------------------------------------

def _emit_literals(out: bytearray, pixels: Sequence[int]) -> None:
    """Write literal pixels as absolute records, or short encoded runs."""
    start = 0
    while start < len(pixels):
        chunk = pixels[start:start + _MAX_RUN]
        start += len(chunk)
        count = len(chunk)
        if count < _MIN_ABSOLUTE:
            # Absolute mode needs >= 3 pixels; 1-2 pixels fit one encoded token.
            hi = chunk[0]
            lo = chunk[1] if count == 2 else 0
            out += bytes((count, (hi << 4) | lo))
            continue
        out += bytes((0, count))
        for i in range(0, count, 2):
            hi = chunk[i]
            lo = chunk[i + 1] if i + 1 < count else 0
            out.append((hi << 4) | lo)
        if (count // 2) % 2 == 1:
            out.append(0)


def _encode_row(row: Sequence[int], out: bytearray) -> None:
    literals = []
    n = len(row)
    i = 0
    while i < n:
        value = row[i]
        run = 1
        while i + run < n and run < _MAX_RUN and row[i + run] == value:
            run += 1
        if run >= _MIN_ABSOLUTE:
            if literals:
                _emit_literals(out, literals)
                literals = []
            out += bytes((run, (value << 4) | value))
        else:
            literals.extend(row[i:i + run])
        i += run
    if literals:
        _emit_literals(out, literals)


def encode_rle4(indices: np.ndarray) -> bytes:
    """Encode a top-down ``(height, width)`` array of 4-bit indices.

    Rows are written bottom-up. Each row but the last ends with an
    end-of-line marker; the last ends with end-of-bitmap.
    """
    arr = np.asarray(indices)
    if arr.ndim != 2 or arr.size == 0:
        raise ValueError(f"RLE4 input must be a non-empty 2D array, got shape {arr.shape}")
    if int(arr.min()) < 0 or int(arr.max()) > 15:
        raise ValueError("RLE4 pixel indices must be in [0, 15]")

    out = bytearray()
    height = arr.shape[0]
    for y in range(height - 1, -1, -1):
        _encode_row(arr[y].tolist(), out)
        out += bytes((0, END_OF_BITMAP if y == 0 else END_OF_LINE))
    return bytes(out)


# ------------------------------------------
# Decoding
# ------------------------------------------

def iter_rle4_records(data: bytes, offset: int = 0) -> Iterator[Rle4Record]:
    """Walk RLE4 records from ``offset`` using the format's padding rule.

    Stops after the end-of-bitmap record or at the end of ``data``.
    Raises MalformedRLEStreamError on a truncated record.
    """
    pos = offset
    end = len(data)
    while pos < end:
        if pos + 2 > end:
            raise MalformedRLEStreamError(f"Truncated RLE4 token at offset {pos}")
        b1, b2 = data[pos], data[pos + 1]
        if b1 == 0 and b2 == DELTA:
            size = 4
        elif b1 == 0 and b2 > DELTA:
            payload = (b2 + 1) // 2
            size = 2 + payload + (payload % 2)
        else:
            size = 2
        if pos + size > end:
            raise MalformedRLEStreamError(
                f"Truncated RLE4 record at offset {pos}: needs {size} bytes, "
                f"{end - pos} available"
            )
        record = Rle4Record(pos, b1, b2, size)
        yield record
        pos += size
        if record.is_end_of_bitmap:
            return


def decode_rle4(data: bytes, width: int, height: int, offset: int = 0,
                strict: bool = False) -> np.ndarray:
    """Decode an RLE4 body into a top-down ``(height, width)`` uint8 index array.

    Pixels never written default to index 0. With ``strict``, every row must
    be exactly ``width`` pixels, the body must end with end-of-bitmap and no
    bytes may follow it.
    """
    if width <= 0 or height <= 0:
        raise MalformedRLEStreamError(f"Invalid bitmap dimensions: {width}x{height}")
    pixels = np.zeros((height, width), dtype=np.uint8)
    x = 0
    y = 0  # bottom-up row counter
    finished = False
    last_end = offset

    def _put(value: int, pos: int) -> None:
        nonlocal x
        if x >= width or y >= height:
            raise MalformedRLEStreamError(
                f"RLE4 record at offset {pos} writes outside {width}x{height} bitmap"
            )
        pixels[height - 1 - y, x] = value
        x += 1

    for rec in iter_rle4_records(data, offset):
        last_end = rec.offset + rec.size
        if rec.b1 > 0:
            hi, lo = rec.b2 >> 4, rec.b2 & 0x0F
            for i in range(rec.b1):
                _put(lo if i % 2 else hi, rec.offset)
        elif rec.b2 == END_OF_LINE:
            if strict and x != width:
                raise MalformedRLEStreamError(
                    f"RLE4 row {y} has {x} pixels, expected {width} "
                    f"(offset {rec.offset})"
                )
            x = 0
            y += 1
        elif rec.b2 == END_OF_BITMAP:
            if strict and (x != width or y != height - 1):
                raise MalformedRLEStreamError(
                    f"RLE4 end-of-bitmap at row {y}, column {x}; "
                    f"expected row {height - 1}, column {width}"
                )
            finished = True
        elif rec.b2 == DELTA:
            dx, dy = data[rec.offset + 2], data[rec.offset + 3]
            x += dx
            y += dy
            if x > width or y > height:
                raise MalformedRLEStreamError(
                    f"RLE4 delta at offset {rec.offset} moves outside the bitmap"
                )
        else:
            packed = data[rec.offset + 2:rec.offset + 2 + (rec.b2 + 1) // 2]
            for i in range(rec.b2):
                byte = packed[i // 2]
                _put(byte & 0x0F if i % 2 else byte >> 4, rec.offset)

    if strict:
        if not finished:
            raise MalformedRLEStreamError("RLE4 stream has no end-of-bitmap marker")
        if last_end != len(data):
            raise MalformedRLEStreamError(
                f"{len(data) - last_end} trailing bytes after RLE4 end-of-bitmap"
            )
    return pixels


def is_conformant_rle4(data: bytes, header_length: int, width: int, height: int) -> bool:
    """Return True when the body already decodes strictly under the padding rule."""
    try:
        decode_rle4(data, width, height, offset=header_length, strict=True)
    except MalformedRLEStreamError:
        return False
    return True


# ------------------------------------------
# Padding repair
# ------------------------------------------

def _header_length(data: bytes, strict_header: bool) -> tuple:
    try:
        info = read_bitmap_info(data)
    except ValueError as exc:
        raise MalformedRLEStreamError(f"Unreadable bitmap header: {exc}") from exc
    if strict_header:
        if not info.is_rle4:
            raise MalformedRLEStreamError(
                f"Bitmap is not 4-bit/RLE (bpp={info.bits_per_pixel}, "
                f"compression={info.compression})"
            )
        if info.pixel_offset != info.expected_pixel_offset:
            raise MalformedRLEStreamError(
                f"Bitmap pixel offset {info.pixel_offset} does not match its "
                f"header and palette length {info.expected_pixel_offset}"
            )
    if not (0 < info.pixel_offset <= len(data)):
        raise MalformedRLEStreamError(
            f"Bitmap pixel offset {info.pixel_offset} outside {len(data)}-byte stream"
        )
    return info.pixel_offset, info


def fix_rle4_padding(data: bytes, strict_header: bool = True) -> bytes:
    """Repair absolute-mode padding in an encoder-produced RLE4 bitmap.

    The header (up to the declared pixel offset) is copied untouched. Each
    absolute record of ``n`` pixels carries ``ceil(n / 2)`` payload bytes;
    the encoder padded on ``n // 2``, so for odd ``n`` a padding byte is
    either missing (inserted here) or spurious (dropped here). Every other
    byte is copied verbatim. A stream that already decodes strictly is
    returned unchanged.
    """
    header_length, info = _header_length(bytes(data), strict_header)
    data = bytes(data)
    if is_conformant_rle4(data, header_length, info.width, info.rows):
        logger.debug("RLE4 stream already conformant; no padding changes.")
        return data

    out = bytearray(data[:header_length])
    pos = header_length
    end = len(data)
    inserted = removed = 0
    while pos < end:
        if pos + 2 > end:
            raise MalformedRLEStreamError(f"Truncated RLE4 token at offset {pos}")
        b1, b2 = data[pos], data[pos + 1]
        out += data[pos:pos + 2]
        pos += 2

        if b1 != 0 or b2 < DELTA:
            continue
        if b2 == DELTA:
            if pos + 2 > end:
                raise MalformedRLEStreamError(f"Truncated RLE4 delta at offset {pos - 2}")
            out += data[pos:pos + 2]
            pos += 2
            continue

        declared_bytes = (b2 + 1) // 2
        required_bytes = b2 // 2
        if pos + declared_bytes > end:
            raise MalformedRLEStreamError(
                f"Truncated RLE4 absolute run at offset {pos - 2}: "
                f"needs {declared_bytes} bytes, {end - pos} available"
            )
        out += data[pos:pos + declared_bytes]
        pos += declared_bytes

        if required_bytes % 2 == 0 and declared_bytes % 2 == 1:
            out.append(0)
            inserted += 1
        elif required_bytes % 2 == 1 and declared_bytes % 2 == 0:
            if pos >= end:
                raise MalformedRLEStreamError(
                    f"Missing RLE4 padding byte at offset {pos}"
                )
            pos += 1
            removed += 1
        elif declared_bytes % 2 == 1:
            if pos >= end:
                raise MalformedRLEStreamError(
                    f"Missing RLE4 padding byte at offset {pos}"
                )
            out.append(data[pos])
            pos += 1

    logger.debug(
        "RLE4 padding fixed: %d byte(s) inserted, %d removed.", inserted, removed,
    )
    return bytes(out)
