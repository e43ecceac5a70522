"""Thread-safe, run-scoped cache keyed by content digest."""

import logging
import threading
from typing import Callable, Dict, TypeVar

from .hashing import DEFAULT_DIGEST_ALGORITHM, content_digest

logger = logging.getLogger("pack_pipeline.cache")

T = TypeVar("T")


class AssetCache:
    """Memoize transformed assets by the digest of their source bytes.

    One instance lives for exactly one pack transform. Entries are never
    evicted or replaced: the first value computed for a digest wins and is
    returned to every later caller. A per-digest lock guarantees that
    ``compute_fn`` runs at most once per digest, even when several worker
    threads request the same bytes concurrently.
    """

    def __init__(self, algorithm: str = DEFAULT_DIGEST_ALGORITHM):
        """Initialize an empty cache using the given hashlib algorithm."""
        self.algorithm = algorithm
        self._entries: Dict[str, object] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def digest(self, data: bytes) -> str:
        return content_digest(data, self.algorithm)

    def get_or_compute(self, data: bytes, compute_fn: Callable[[bytes], T]) -> T:
        """Return the cached result for ``data``, computing it on first use."""
        key = self.digest(data)
        with self._lock:
            if key in self._entries:
                self.hits += 1
                return self._entries[key]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            # Another worker may have filled the entry while we waited.
            with self._lock:
                if key in self._entries:
                    self.hits += 1
                    return self._entries[key]

            logger.debug("Cache miss for %s; computing.", key[:12])
            value = compute_fn(data)

            with self._lock:
                self._entries[key] = value
                self.misses += 1
                self._key_locks.pop(key, None)
        return value

    def __contains__(self, data: bytes) -> bool:
        key = self.digest(data)
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
