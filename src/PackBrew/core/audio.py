"""In-memory audio codec adapter over soundfile (libsndfile) and scipy."""

import io
import logging
from math import gcd
from typing import Tuple

import numpy as np
import soundfile as sf
from scipy.signal import resample_poly

from .errors import AssetDecodeError, AssetEncodeError
from .id3 import strip_id3_tags
from .model import AudioFormat

logger = logging.getLogger("pack_pipeline.audio")

MP3_SAMPLE_RATE = 44100
MP3_CHANNELS = 1

# libsndfile container name and default subtype per format.
_SF_FORMATS = {
    AudioFormat.WAV: ("WAV", "PCM_16"),
    AudioFormat.OGG: ("OGG", "VORBIS"),
    AudioFormat.MP3: ("MP3", "MPEG_LAYER_III"),
}

# soundfile raises LibsndfileError (a RuntimeError) for codec failures and
# TypeError/ValueError for unrecognised arguments.
_CODEC_ERRORS = (RuntimeError, TypeError, ValueError)


def is_format_available(fmt: AudioFormat) -> bool:
    """Return True when the installed libsndfile can handle ``fmt``."""
    container, _ = _SF_FORMATS[fmt]
    return container in sf.available_formats()


def decode_audio(data: bytes, fmt: AudioFormat) -> Tuple[np.ndarray, int]:
    """Decode audio bytes into ``(samples, sample_rate)``.

    ``samples`` is float32 with shape ``(frames, channels)``.
    """
    if not data:
        raise AssetDecodeError(f"Empty {fmt.name} audio payload")
    try:
        samples, rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except _CODEC_ERRORS as exc:
        raise AssetDecodeError(f"Failed to decode {fmt.name} audio: {exc}") from exc
    logger.debug(
        "Decoded %s audio: %d frame(s), %d channel(s) @ %d Hz",
        fmt.name, samples.shape[0], samples.shape[1], rate,
    )
    return samples, int(rate)


def audio_info(data: bytes, fmt: AudioFormat) -> Tuple[int, int]:
    """Return ``(channels, sample_rate)`` read from the stream header."""
    try:
        info = sf.info(io.BytesIO(data))
    except _CODEC_ERRORS as exc:
        raise AssetDecodeError(f"Failed to probe {fmt.name} audio: {exc}") from exc
    return int(info.channels), int(info.samplerate)


def encode_audio(samples: np.ndarray, rate: int, fmt: AudioFormat,
                 subtype: str = None) -> bytes:
    """Encode ``(frames, channels)`` float samples to ``fmt`` bytes."""
    container, default_subtype = _SF_FORMATS[fmt]
    buf = io.BytesIO()
    try:
        sf.write(
            buf, np.clip(samples, -1.0, 1.0), rate,
            format=container, subtype=subtype or default_subtype,
        )
    except _CODEC_ERRORS as exc:
        raise AssetEncodeError(f"Failed to encode {fmt.name} audio: {exc}") from exc
    data = buf.getvalue()
    if not data:
        raise AssetEncodeError(f"{fmt.name} encoder produced no data")
    return data


def to_channels(samples: np.ndarray, channels: int) -> np.ndarray:
    """Downmix to mono or duplicate mono up to ``channels``."""
    current = samples.shape[1]
    if current == channels:
        return samples
    mono = samples.mean(axis=1, keepdims=True, dtype=np.float32)
    if channels == 1:
        return mono
    return np.repeat(mono, channels, axis=1)


def resample(samples: np.ndarray, rate: int, target_rate: int) -> np.ndarray:
    """Polyphase-resample ``samples`` from ``rate`` to ``target_rate``."""
    if rate == target_rate or samples.shape[0] == 0:
        return samples
    factor = gcd(rate, target_rate)
    up, down = target_rate // factor, rate // factor
    logger.debug("Resampling %d Hz -> %d Hz (up=%d, down=%d)", rate, target_rate, up, down)
    return resample_poly(samples, up, down, axis=0).astype(np.float32, copy=False)


def convert_audio(data: bytes, src: AudioFormat, dst: AudioFormat,
                  subtype: str = None) -> bytes:
    """Decode ``src`` bytes and re-encode them as ``dst`` at the same rate."""
    samples, rate = decode_audio(data, src)
    return encode_audio(samples, rate, dst, subtype=subtype)


def any_to_mp3(data: bytes, src: AudioFormat, channels: int = MP3_CHANNELS,
               sample_rate: int = MP3_SAMPLE_RATE) -> bytes:
    """Re-encode audio as tag-free MP3 with the given channel count and rate."""
    samples, rate = decode_audio(data, src)
    samples = resample(to_channels(samples, channels), rate, sample_rate)
    encoded = strip_id3_tags(encode_audio(samples, sample_rate, AudioFormat.MP3))
    if not encoded:
        raise AssetEncodeError("MP3 encoder produced only metadata")
    return encoded
