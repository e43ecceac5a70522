"""Content digests used as deduplication keys."""

import hashlib

DEFAULT_DIGEST_ALGORITHM = "sha1"


def content_digest(data: bytes, algorithm: str = DEFAULT_DIGEST_ALGORITHM) -> str:
    """Return the hex digest of in-memory bytes.

    Identical bytes always map to the same key; the digest is a cache key,
    not a security primitive.
    """
    h = hashlib.new(algorithm)
    h.update(data)
    return h.hexdigest()


def is_supported_algorithm(algorithm: str) -> bool:
    """Return True when ``hashlib`` can build a fixed-width digest for ``algorithm``."""
    if not isinstance(algorithm, str) or not algorithm:
        return False
    try:
        h = hashlib.new(algorithm)
    except (ValueError, TypeError):
        return False
    # SHAKE digests need an explicit length and cannot be used as plain keys.
    return h.digest_size > 0
