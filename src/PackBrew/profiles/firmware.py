"""Device firmware profile: 4-bit/RLE BMP images, mono 44.1 kHz MP3 audio."""

import logging

from ..config import TargetProfile
from ..core import (
    Asset, AudioFormat, ImageFormat, any_to_mp3, any_to_rle4_bitmap,
    audio_info, is_rle4_bitmap, strip_id3_tags,
)
from .base import TranscodeProfile

logger = logging.getLogger("pack_pipeline.profiles.firmware")


class FirmwareProfile(TranscodeProfile):
    """Prepare assets in the exact encodings the playback device reads."""

    target = TargetProfile.FIRMWARE

    def transcode_image(self, asset: Asset) -> Asset:
        fmt = asset.format
        if fmt is ImageFormat.BMP and is_rle4_bitmap(asset.data):
            return asset
        if fmt is ImageFormat.BMP or fmt is ImageFormat.PNG or fmt is ImageFormat.JPEG:
            logger.debug("Converting %s image asset into 4-bits/RLE BMP", fmt.name)
            data = any_to_rle4_bitmap(
                asset.data, fmt,
                max_colors=self.image_cfg.max_colors,
                dither=self.image_cfg.dither,
                method=self.image_cfg.quantize_method,
                background=self.image_cfg.background_color,
                strict_header=self.image_cfg.strict_rle4_header,
            )
            return Asset(ImageFormat.BMP, data)
        return self._unsupported(asset)

    def transcode_audio(self, asset: Asset) -> Asset:
        fmt = asset.format
        channels = self.audio_cfg.firmware_channels
        rate = self.audio_cfg.firmware_sample_rate
        if fmt is AudioFormat.MP3:
            data = strip_id3_tags(asset.data)
            actual_channels, actual_rate = audio_info(data, fmt)
            if (actual_channels, actual_rate) == (channels, rate):
                return Asset(AudioFormat.MP3, data)
            logger.debug(
                "Re-encoding MP3 audio asset (%d channel(s) @ %d Hz)",
                actual_channels, actual_rate,
            )
            return Asset(AudioFormat.MP3, any_to_mp3(data, fmt, channels, rate))
        if fmt is AudioFormat.WAV or fmt is AudioFormat.OGG:
            logger.debug("Converting %s audio asset into MP3", fmt.name)
            return Asset(AudioFormat.MP3, any_to_mp3(asset.data, fmt, channels, rate))
        return self._unsupported(asset)
