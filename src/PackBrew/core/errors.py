"""Exception types raised while transcoding pack assets."""


class TranscodeError(RuntimeError):
    """Base class for unrecoverable asset transcoding failures."""


class AssetDecodeError(TranscodeError):
    """Raised when asset bytes cannot be decoded as their declared format."""


class AssetEncodeError(TranscodeError):
    """Raised when an encoder fails or produces an empty payload."""


class UnsupportedFormatTransitionError(TranscodeError):
    """Raised when no rule exists for a format/profile combination."""


class MalformedRLEStreamError(TranscodeError):
    """Raised when an RLE4 bitmap stream is truncated or cannot be interpreted."""
