"""Tests for BMP header parsing and 4-bit/RLE bitmap assembly."""

import io
import unittest

from PIL import Image

from PackBrew.core.bmp import (
    BI_RLE4, RLE4_HEADER_SIZE, build_rle4_bitmap, is_rle4_bitmap, read_bitmap_info,
    read_palette,
)


def _rgb_bmp(width=6, height=3):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (1, 2, 3)).save(buf, format="BMP")
    return buf.getvalue()


class TestBitmapHeader(unittest.TestCase):
    def setUp(self):
        self.palette = [(i, 2 * i, 3 * i) for i in range(16)]
        self.body = bytes([4, 0x11, 0, 1])
        self.data = build_rle4_bitmap(4, 1, self.palette, self.body)

    def test_rle4_header_length_is_0x76(self):
        self.assertEqual(RLE4_HEADER_SIZE, 0x76)
        self.assertEqual(len(self.data), 0x76 + len(self.body))

    def test_built_header_fields(self):
        info = read_bitmap_info(self.data)
        self.assertEqual(info.file_size, len(self.data))
        self.assertEqual(info.pixel_offset, RLE4_HEADER_SIZE)
        self.assertEqual((info.width, info.height), (4, 1))
        self.assertEqual(info.bits_per_pixel, 4)
        self.assertEqual(info.compression, BI_RLE4)
        self.assertEqual(info.image_size, len(self.body))
        self.assertEqual(info.expected_pixel_offset, info.pixel_offset)
        self.assertTrue(info.is_rle4)
        self.assertFalse(info.top_down)

    def test_palette_round_trip(self):
        info = read_bitmap_info(self.data)
        self.assertEqual(read_palette(self.data, info), self.palette)

    def test_rle4_detection(self):
        self.assertTrue(is_rle4_bitmap(self.data))
        self.assertFalse(is_rle4_bitmap(_rgb_bmp()))
        self.assertFalse(is_rle4_bitmap(b"BM"))

    def test_pillow_bitmap_header(self):
        info = read_bitmap_info(_rgb_bmp(6, 3))
        self.assertEqual((info.width, info.rows), (6, 3))
        self.assertEqual(info.bits_per_pixel, 24)
        self.assertEqual(info.palette_entries, 0)
        self.assertFalse(info.is_rle4)

    def test_rejects_non_bitmap(self):
        with self.assertRaises(ValueError):
            read_bitmap_info(b"\x89PNG" + b"\x00" * 60)

    def test_rejects_truncated_header(self):
        with self.assertRaises(ValueError):
            read_bitmap_info(self.data[:20])

    def test_build_requires_sixteen_palette_entries(self):
        with self.assertRaises(ValueError):
            build_rle4_bitmap(4, 1, self.palette[:8], self.body)

    def test_build_rejects_empty_dimensions(self):
        with self.assertRaises(ValueError):
            build_rle4_bitmap(0, 1, self.palette, self.body)


if __name__ == "__main__":
    unittest.main(verbosity=2)
