"""Editable profile: 24-bit BMP images, PCM WAV audio."""

import logging

from ..config import TargetProfile
from ..core import (
    Asset, AudioFormat, ImageFormat, convert_audio, convert_image, is_rle4_bitmap,
)
from .base import TranscodeProfile

logger = logging.getLogger("pack_pipeline.profiles.uncompressed")


class UncompressedProfile(TranscodeProfile):
    """Expand every image to an uncompressed BMP and every sound to WAV."""

    target = TargetProfile.UNCOMPRESSED

    def _to_bitmap(self, asset: Asset) -> Asset:
        data = convert_image(
            asset.data, asset.format, ImageFormat.BMP,
            background=self.image_cfg.background_color,
        )
        return Asset(ImageFormat.BMP, data)

    def transcode_image(self, asset: Asset) -> Asset:
        fmt = asset.format
        if fmt is ImageFormat.PNG:
            logger.debug("Uncompressing PNG image asset into BMP")
            return self._to_bitmap(asset)
        if fmt is ImageFormat.JPEG:
            logger.debug("Uncompressing JPEG image asset into BMP")
            return self._to_bitmap(asset)
        if fmt is ImageFormat.BMP:
            if is_rle4_bitmap(asset.data):
                logger.debug("Uncompressing 4-bits/RLE BMP image asset into BMP")
                return self._to_bitmap(asset)
            return asset
        return self._unsupported(asset)

    def transcode_audio(self, asset: Asset) -> Asset:
        fmt = asset.format
        if fmt is AudioFormat.WAV:
            return asset
        if fmt is AudioFormat.OGG or fmt is AudioFormat.MP3:
            logger.debug("Uncompressing %s audio asset into WAV", fmt.name)
            data = convert_audio(
                asset.data, fmt, AudioFormat.WAV, subtype=self.audio_cfg.wav_subtype,
            )
            return Asset(AudioFormat.WAV, data)
        return self._unsupported(asset)
