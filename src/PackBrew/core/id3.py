"""Strip ID3 metadata blocks from MP3 byte streams."""

import logging

logger = logging.getLogger("pack_pipeline.id3")

ID3V1_SIZE = 128
ID3V1_ENHANCED_SIZE = 227
ID3V2_HEADER_SIZE = 10
_ID3V2_FOOTER_FLAG = 0x10


def _syncsafe(raw: bytes) -> int:
    """Decode a 4-byte syncsafe integer (7 significant bits per byte)."""
    if len(raw) != 4 or any(b & 0x80 for b in raw):
        return -1
    return (raw[0] << 21) | (raw[1] << 14) | (raw[2] << 7) | raw[3]


def _id3v2_tag_length(data: bytes, offset: int, marker: bytes) -> int:
    """Return the full length of an ID3v2 header/footer block at ``offset``, or 0."""
    block = data[offset:offset + ID3V2_HEADER_SIZE]
    if len(block) < ID3V2_HEADER_SIZE or block[:3] != marker:
        return 0
    if block[3] == 0xFF or block[4] == 0xFF:
        return 0
    size = _syncsafe(block[6:10])
    if size < 0:
        return 0
    total = ID3V2_HEADER_SIZE + size
    if marker == b"3DI" or block[5] & _ID3V2_FOOTER_FLAG:
        total += ID3V2_HEADER_SIZE
    return total


def strip_id3v2_tag(data: bytes) -> bytes:
    """Remove leading ID3v2 tags (repeatedly) and an appended ID3v2.4 tag."""
    stripped = 0
    while True:
        length = _id3v2_tag_length(data, 0, b"ID3")
        if not length or length > len(data):
            break
        data = data[length:]
        stripped += 1
    if len(data) >= ID3V2_HEADER_SIZE:
        length = _id3v2_tag_length(data, len(data) - ID3V2_HEADER_SIZE, b"3DI")
        if length and length <= len(data):
            data = data[:len(data) - length]
            stripped += 1
    if stripped:
        logger.debug("Removed %d ID3v2 tag block(s)", stripped)
    return data


def strip_id3v1_tag(data: bytes) -> bytes:
    """Remove a trailing ID3v1 tag, including an extended ``TAG+`` block."""
    if len(data) < ID3V1_SIZE or data[-ID3V1_SIZE:-ID3V1_SIZE + 3] != b"TAG":
        return data
    data = data[:-ID3V1_SIZE]
    if (len(data) >= ID3V1_ENHANCED_SIZE
            and data[-ID3V1_ENHANCED_SIZE:-ID3V1_ENHANCED_SIZE + 4] == b"TAG+"):
        data = data[:-ID3V1_ENHANCED_SIZE]
    logger.debug("Removed ID3v1 tag")
    return data


def strip_id3_tags(data: bytes) -> bytes:
    """Remove trailing ID3v1 and leading/trailing ID3v2 tags."""
    return strip_id3v2_tag(strip_id3v1_tag(bytes(data)))
