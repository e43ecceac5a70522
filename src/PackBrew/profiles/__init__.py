"""Per-profile asset transcode policies."""

from typing import Union

from ..config import TranscodeConfig, TargetProfile
from .base import TranscodeProfile
from .compressed import CompressedProfile
from .uncompressed import UncompressedProfile
from .firmware import FirmwareProfile

_PROFILES = {
    TargetProfile.COMPRESSED: CompressedProfile,
    TargetProfile.UNCOMPRESSED: UncompressedProfile,
    TargetProfile.FIRMWARE: FirmwareProfile,
}


def build_profile(target: Union[TargetProfile, str],
                  config: TranscodeConfig) -> TranscodeProfile:
    """Return the policy object for ``target`` (enum member or its value)."""
    if isinstance(target, str):
        try:
            target = TargetProfile(target.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown target profile {target!r}; expected one of "
                f"{[p.value for p in TargetProfile]}"
            ) from None
    return _PROFILES[target](config)


__all__ = [
    "TranscodeProfile",
    "CompressedProfile",
    "UncompressedProfile",
    "FirmwareProfile",
    "build_profile",
]
