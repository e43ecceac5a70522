"""Tests for the pack transcoding orchestrator."""

import threading
import time
import unittest
from unittest import mock

import pytest

from PackBrew.config import TargetProfile, TranscodeConfig
from PackBrew.core import (
    Asset, AssetDecodeError, AudioFormat, ImageFormat, Node, Pack, is_rle4_bitmap,
)
from PackBrew.core import quantize as quantize_module
from PackBrew.core.audio import is_format_available
from PackBrew.pipeline import (
    PackPipeline, TranscodeStats, _format_size_change, has_non_canonical_assets,
    to_firmware_profile, to_uncompressed,
)

from conftest import make_image_bytes, make_wav_bytes

HAS_OGG = is_format_available(AudioFormat.OGG)


class TestNonCanonicalDetection(unittest.TestCase):
    def setUp(self):
        self.bmp = Asset(ImageFormat.BMP, b"BM")
        self.wav = Asset(AudioFormat.WAV, b"RIFF")

    def test_all_bmp_and_wav_is_canonical(self):
        pack = Pack([Node("a", image=self.bmp, audio=self.wav), Node("b")])
        self.assertFalse(PackPipeline.has_non_canonical_assets(pack))
        self.assertFalse(has_non_canonical_assets(Pack()))

    def test_single_deviating_asset(self):
        for odd in (Asset(ImageFormat.PNG, b"x"), Asset(ImageFormat.JPEG, b"x"),
                    Asset(AudioFormat.OGG, b"x"), Asset(AudioFormat.MP3, b"x")):
            with self.subTest(fmt=odd.format):
                deviant = Node("odd").with_asset(odd.kind, odd)
                pack = Pack([Node("a", image=self.bmp, audio=self.wav), deviant])
                self.assertTrue(has_non_canonical_assets(pack))


class TestFirmwareDeduplication(unittest.TestCase):
    def test_identical_images_are_quantized_once(self):
        png = make_image_bytes("PNG", seed=11)
        pack = Pack([
            Node("first", image=Asset(ImageFormat.PNG, png)),
            Node("second", image=Asset(ImageFormat.PNG, bytes(png))),
        ])
        pipeline = PackPipeline()
        with mock.patch("PackBrew.core.imaging.quantize_image",
                        wraps=quantize_module.quantize_image) as quantize:
            out = pipeline.to_firmware_profile(pack)
        self.assertEqual(quantize.call_count, 1)

        first, second = out.nodes[0].image, out.nodes[1].image
        self.assertIs(first.format, ImageFormat.BMP)
        self.assertTrue(is_rle4_bitmap(first.data))
        self.assertEqual(first.data, second.data)
        self.assertEqual(pipeline.last_stats.transcoded, 1)
        self.assertEqual(pipeline.last_stats.reused, 1)
        self.assertEqual(pipeline.last_stats.changed, 2)

    def test_firmware_transform_is_idempotent_for_images(self):
        pack = Pack([Node("n", image=Asset(ImageFormat.PNG, make_image_bytes("PNG")))])
        once = to_firmware_profile(pack)
        twice = to_firmware_profile(once)
        self.assertEqual(twice, once)


class TestTransform(unittest.TestCase):
    def test_input_pack_is_not_mutated(self):
        png = Asset(ImageFormat.PNG, make_image_bytes("PNG"))
        untouched = Node("audio-only", audio=Asset(AudioFormat.WAV, make_wav_bytes()))
        pack = Pack([Node("img", image=png), untouched])
        out = PackPipeline().to_uncompressed(pack)

        self.assertIs(pack.nodes[0].image, png)
        self.assertIs(out.nodes[0].image.format, ImageFormat.BMP)
        self.assertIs(out.nodes[1], untouched)
        self.assertEqual(len(out), len(pack))

    def test_unchanged_pack_is_returned_as_is(self):
        pack = Pack([Node("a", image=Asset(ImageFormat.BMP, make_image_bytes("BMP")),
                          audio=Asset(AudioFormat.WAV, make_wav_bytes()))])
        pipeline = PackPipeline()
        self.assertIs(pipeline.to_uncompressed(pack), pack)
        self.assertEqual(pipeline.last_stats.changed, 0)
        self.assertEqual(pipeline.last_stats.assets, 2)

    def test_failure_aborts_the_transform(self):
        bad = Asset(ImageFormat.PNG, b"\x89PNG broken")
        pack = Pack([
            Node("ok", image=Asset(ImageFormat.PNG, make_image_bytes("PNG"))),
            Node("bad", image=bad),
        ])
        pipeline = PackPipeline()
        with self.assertLogs("pack_pipeline.pipeline", level="ERROR") as cm:
            with self.assertRaises(AssetDecodeError):
                pipeline.to_uncompressed(pack)
        self.assertTrue(any("node 1 image" in line for line in cm.output))
        self.assertIsNone(pipeline.last_stats)

    def test_string_target(self):
        pack = Pack([Node("n", image=Asset(ImageFormat.BMP, make_image_bytes("BMP")))])
        out = PackPipeline().transform(pack, "compressed")
        self.assertIs(out.nodes[0].image.format, ImageFormat.PNG)

    def test_progress_callback(self):
        events = []
        pack = Pack([Node(str(i), image=Asset(ImageFormat.BMP, make_image_bytes("BMP", seed=i)))
                     for i in range(3)])
        pipeline = PackPipeline(progress_callback=lambda *args: events.append(args))
        pipeline.transform(pack, TargetProfile.UNCOMPRESSED)
        self.assertEqual(events, [("uncompressed", 1, 3), ("uncompressed", 2, 3),
                                  ("uncompressed", 3, 3)])

    def test_failing_progress_callback_is_ignored(self):
        def broken(*_args):
            raise RuntimeError("ui went away")

        pack = Pack([Node("n", image=Asset(ImageFormat.BMP, make_image_bytes("BMP")))])
        out = PackPipeline(progress_callback=broken).to_compressed(pack)
        self.assertIs(out.nodes[0].image.format, ImageFormat.PNG)

    def test_invalid_config_is_rejected(self):
        config = TranscodeConfig()
        config.max_workers = 0
        with self.assertRaises(ValueError):
            PackPipeline(config)

    @unittest.skipUnless(HAS_OGG, "libsndfile built without OGG/Vorbis")
    def test_compressed_round_trip_restores_canonical_formats(self):
        pack = Pack([Node("n", image=Asset(ImageFormat.BMP, make_image_bytes("BMP")),
                          audio=Asset(AudioFormat.WAV, make_wav_bytes()))])
        pipeline = PackPipeline()
        compressed = pipeline.to_compressed(pack)
        self.assertTrue(pipeline.has_non_canonical_assets(compressed))
        restored = to_uncompressed(compressed)
        self.assertFalse(has_non_canonical_assets(restored))
        self.assertEqual(restored.nodes[0].image, pack.nodes[0].image)


class TestParallelTransform(unittest.TestCase):
    def test_parallel_matches_sequential(self):
        pack = Pack([Node(str(i), image=Asset(ImageFormat.PNG,
                                               make_image_bytes("PNG", seed=i % 3)))
                     for i in range(8)])
        sequential = PackPipeline().to_firmware_profile(pack)
        config = TranscodeConfig()
        config.max_workers = 4
        pipeline = PackPipeline(config)
        parallel = pipeline.to_firmware_profile(pack)
        self.assertEqual(parallel, sequential)
        self.assertEqual(pipeline.last_stats.transcoded, 3)
        self.assertEqual(pipeline.last_stats.reused, 5)

    def test_shared_asset_computed_once_across_workers(self):
        calls = []
        lock = threading.Lock()
        real = quantize_module.quantize_image

        def slow_quantize(*args, **kwargs):
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return real(*args, **kwargs)

        png = make_image_bytes("PNG", seed=5)
        pack = Pack([Node(str(i), image=Asset(ImageFormat.PNG, png)) for i in range(6)])
        config = TranscodeConfig()
        config.max_workers = 6
        with mock.patch("PackBrew.core.imaging.quantize_image", side_effect=slow_quantize):
            out = PackPipeline(config).to_firmware_profile(pack)
        self.assertEqual(len(calls), 1)
        self.assertEqual(len({node.image.data for node in out.nodes}), 1)

    def test_parallel_failure_propagates(self):
        pack = Pack([Node("ok", image=Asset(ImageFormat.PNG, make_image_bytes("PNG"))),
                     Node("bad", image=Asset(ImageFormat.JPEG, b"\xff\xd8 broken"))])
        config = TranscodeConfig()
        config.max_workers = 2
        with self.assertRaises(AssetDecodeError):
            PackPipeline(config).to_firmware_profile(pack)


class TestStats(unittest.TestCase):
    def test_stats_dict(self):
        stats = TranscodeStats(profile="firmware", assets=2, bytes_before=10, bytes_after=5)
        self.assertEqual(stats.to_dict()["profile"], "firmware")

    def test_size_change_text(self):
        self.assertEqual(_format_size_change(2048, 1024),
                         "size=2.00 KiB->1.00 KiB (-1.00 KiB, -50.0%)")
        self.assertEqual(_format_size_change(0, 10), "size=0 B->10 B (+10 B)")


@pytest.mark.parametrize("target", list(TargetProfile))
def test_empty_pack(target):
    pipeline = PackPipeline()
    pack = Pack(title="empty")
    assert pipeline.transform(pack, target) is pack
    assert pipeline.last_stats.assets == 0


@pytest.mark.parametrize("target", list(TargetProfile))
def test_image_transforms_are_idempotent(target):
    pack = Pack([
        Node("png", image=Asset(ImageFormat.PNG, make_image_bytes("PNG", seed=21))),
        Node("bmp", image=Asset(ImageFormat.BMP, make_image_bytes("BMP", seed=22))),
        Node("jpeg", image=Asset(ImageFormat.JPEG, make_image_bytes("JPEG", seed=23))),
    ])
    pipeline = PackPipeline()
    once = pipeline.transform(pack, target)
    twice = pipeline.transform(once, target)
    assert twice == once
    assert pipeline.last_stats.changed == 0


def test_canonical_pack_survives_uncompressed(canonical_pack):
    assert PackPipeline().to_uncompressed(canonical_pack) is canonical_pack


if __name__ == "__main__":
    unittest.main(verbosity=2)
