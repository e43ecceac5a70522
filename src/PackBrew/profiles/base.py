"""Shared dispatch for per-profile asset transcode policies."""

import logging

from ..config import TranscodeConfig, TargetProfile
from ..core import Asset, AssetKind, AssetEncodeError, UnsupportedFormatTransitionError

logger = logging.getLogger("pack_pipeline.profiles")


class TranscodeProfile:
    """Decide and apply the transform for one asset under a target profile.

    Subclasses implement ``transcode_image`` and ``transcode_audio`` as
    exhaustive branches over the closed format enums; anything that falls
    through is reported with ``_unsupported``.
    """

    target: TargetProfile = None

    def __init__(self, config: TranscodeConfig):
        """Initialize the policy with runtime settings."""
        self.config = config
        self.image_cfg = config.image
        self.audio_cfg = config.audio

    def transcode(self, asset: Asset) -> Asset:
        """Return the asset converted for this profile (possibly unchanged)."""
        if asset.kind is AssetKind.IMAGE:
            result = self.transcode_image(asset)
        elif asset.kind is AssetKind.AUDIO:
            result = self.transcode_audio(asset)
        else:
            return self._unsupported(asset)
        if not result.data:
            raise AssetEncodeError(
                f"{self.target.value} profile produced an empty {result.format.name} payload"
            )
        return result

    def transcode_image(self, asset: Asset) -> Asset:
        raise NotImplementedError

    def transcode_audio(self, asset: Asset) -> Asset:
        raise NotImplementedError

    def _unsupported(self, asset: Asset):
        raise UnsupportedFormatTransitionError(
            f"No {self.target.value} rule for asset format {asset.format!r}"
        )
