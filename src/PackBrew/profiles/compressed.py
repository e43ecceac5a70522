"""Size-optimized distribution profile: PNG images, Vorbis audio."""

import logging

from ..config import TargetProfile
from ..core import Asset, AudioFormat, ImageFormat, convert_audio, convert_image
from .base import TranscodeProfile

logger = logging.getLogger("pack_pipeline.profiles.compressed")

_COMPRESSED_AUDIO = {
    "ogg": AudioFormat.OGG,
    "mp3": AudioFormat.MP3,
}


class CompressedProfile(TranscodeProfile):
    """Compress bitmaps to PNG and WAV audio to a lossy format."""

    target = TargetProfile.COMPRESSED

    def transcode_image(self, asset: Asset) -> Asset:
        fmt = asset.format
        if fmt is ImageFormat.BMP:
            logger.debug("Compressing BMP image asset into PNG")
            data = convert_image(
                asset.data, ImageFormat.BMP, ImageFormat.PNG,
                background=self.image_cfg.background_color,
                optimize=self.image_cfg.png_optimize,
            )
            return Asset(ImageFormat.PNG, data)
        if fmt is ImageFormat.PNG or fmt is ImageFormat.JPEG:
            return asset
        return self._unsupported(asset)

    def transcode_audio(self, asset: Asset) -> Asset:
        fmt = asset.format
        if fmt is AudioFormat.WAV:
            target = _COMPRESSED_AUDIO[self.audio_cfg.compressed_format]
            logger.debug("Compressing WAV audio asset into %s", target.name)
            subtype = self.audio_cfg.ogg_subtype if target is AudioFormat.OGG else None
            return Asset(target, convert_audio(asset.data, fmt, target, subtype=subtype))
        if fmt is AudioFormat.OGG or fmt is AudioFormat.MP3:
            return asset
        return self._unsupported(asset)
