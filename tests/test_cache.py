"""Tests for the digest-keyed asset cache."""

import hashlib
import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor

from PackBrew.core import AssetCache, content_digest
from PackBrew.core.hashing import is_supported_algorithm


class TestContentDigest(unittest.TestCase):
    def test_default_digest_is_sha1_hex(self):
        self.assertEqual(content_digest(b"abc"), hashlib.sha1(b"abc").hexdigest())

    def test_identical_bytes_share_a_key(self):
        self.assertEqual(content_digest(bytes(10)), content_digest(b"\x00" * 10))
        self.assertNotEqual(content_digest(b"a"), content_digest(b"b"))

    def test_supported_algorithms(self):
        self.assertTrue(is_supported_algorithm("sha256"))
        self.assertFalse(is_supported_algorithm("shake_128"))
        self.assertFalse(is_supported_algorithm("not-a-hash"))
        self.assertFalse(is_supported_algorithm(""))


class TestAssetCache(unittest.TestCase):
    def test_compute_runs_once_per_digest(self):
        cache = AssetCache()
        calls = []

        def compute(data):
            calls.append(data)
            return data.upper()

        self.assertEqual(cache.get_or_compute(b"abc", compute), b"ABC")
        self.assertEqual(cache.get_or_compute(b"abc", compute), b"ABC")
        self.assertEqual(cache.get_or_compute(b"xyz", compute), b"XYZ")
        self.assertEqual(calls, [b"abc", b"xyz"])
        self.assertEqual((cache.hits, cache.misses), (1, 2))
        self.assertEqual(len(cache), 2)

    def test_first_value_wins(self):
        cache = AssetCache()
        first = cache.get_or_compute(b"k", lambda _d: object())
        self.assertIs(cache.get_or_compute(b"k", lambda _d: object()), first)

    def test_contains(self):
        cache = AssetCache("sha256")
        self.assertNotIn(b"data", cache)
        cache.get_or_compute(b"data", len)
        self.assertIn(b"data", cache)

    def test_failed_compute_is_not_cached(self):
        cache = AssetCache()

        def boom(_data):
            raise RuntimeError("encoder failed")

        with self.assertRaises(RuntimeError):
            cache.get_or_compute(b"x", boom)
        self.assertNotIn(b"x", cache)
        self.assertEqual(cache.get_or_compute(b"x", len), 1)

    def test_concurrent_requests_compute_once(self):
        cache = AssetCache()
        calls = []
        lock = threading.Lock()

        def slow(data):
            with lock:
                calls.append(data)
            time.sleep(0.05)
            return len(data)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(
                lambda _i: cache.get_or_compute(b"shared", slow), range(16),
            ))
        self.assertEqual(results, [6] * 16)
        self.assertEqual(len(calls), 1)
        self.assertEqual(cache.misses, 1)
        self.assertEqual(cache.hits, 15)


if __name__ == "__main__":
    unittest.main(verbosity=2)
