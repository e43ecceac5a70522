"""Story pack value types: formats, assets, nodes and packs."""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple, Union

from .errors import UnsupportedFormatTransitionError


class AssetKind(Enum):
    """Enumerate the asset slots a node can carry."""

    IMAGE = "image"
    AUDIO = "audio"


class ImageFormat(Enum):
    """Enumerate supported image formats, keyed by MIME type."""

    BMP = "image/bmp"
    PNG = "image/png"
    JPEG = "image/jpeg"

    @property
    def mime_type(self) -> str:
        return self.value

    @property
    def pil_format(self) -> str:
        """Return the Pillow plugin name for this format."""
        return self.name

    @classmethod
    def from_mime(cls, mime_type: str) -> "ImageFormat":
        """Parse a MIME type, rejecting anything outside the closed set."""
        key = (mime_type or "").strip().lower()
        fmt = _IMAGE_MIME_ALIASES.get(key)
        if fmt is None:
            raise UnsupportedFormatTransitionError(
                f"Unsupported image MIME type: {mime_type!r}"
            )
        return fmt


class AudioFormat(Enum):
    """Enumerate supported audio formats, keyed by canonical MIME type."""

    WAV = "audio/x-wav"
    OGG = "audio/ogg"
    MP3 = "audio/mpeg"

    @property
    def mime_type(self) -> str:
        return self.value

    @classmethod
    def from_mime(cls, mime_type: str) -> "AudioFormat":
        """Parse a MIME type; ``audio/mp3`` and ``audio/mpeg`` are the same codec."""
        key = (mime_type or "").strip().lower()
        fmt = _AUDIO_MIME_ALIASES.get(key)
        if fmt is None:
            raise UnsupportedFormatTransitionError(
                f"Unsupported audio MIME type: {mime_type!r}"
            )
        return fmt


_IMAGE_MIME_ALIASES = {
    "image/bmp": ImageFormat.BMP,
    "image/x-ms-bmp": ImageFormat.BMP,
    "image/png": ImageFormat.PNG,
    "image/jpeg": ImageFormat.JPEG,
    "image/jpg": ImageFormat.JPEG,
}

_AUDIO_MIME_ALIASES = {
    "audio/x-wav": AudioFormat.WAV,
    "audio/wav": AudioFormat.WAV,
    "audio/ogg": AudioFormat.OGG,
    "audio/mpeg": AudioFormat.MP3,
    "audio/mp3": AudioFormat.MP3,
}

AssetFormat = Union[ImageFormat, AudioFormat]


@dataclass(frozen=True)
class Asset:
    """Immutable asset payload tagged with its declared format."""

    format: AssetFormat
    data: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.format, (ImageFormat, AudioFormat)):
            raise TypeError(
                f"Asset.format must be an ImageFormat or AudioFormat, got {self.format!r}"
            )
        if isinstance(self.data, (bytearray, memoryview)):
            object.__setattr__(self, "data", bytes(self.data))
        elif not isinstance(self.data, bytes):
            raise TypeError(
                f"Asset.data must be bytes, got {type(self.data).__name__}"
            )

    @property
    def kind(self) -> AssetKind:
        if isinstance(self.format, ImageFormat):
            return AssetKind.IMAGE
        return AssetKind.AUDIO

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"Asset(format={self.format.name}, size={len(self.data)})"


@dataclass(frozen=True)
class Node:
    """One stage node holding at most one image and one audio asset."""

    name: str = ""
    image: Optional[Asset] = None
    audio: Optional[Asset] = None

    def __post_init__(self) -> None:
        if self.image is not None and self.image.kind is not AssetKind.IMAGE:
            raise ValueError(
                f"Node {self.name!r}: image slot holds {self.image.format.name}"
            )
        if self.audio is not None and self.audio.kind is not AssetKind.AUDIO:
            raise ValueError(
                f"Node {self.name!r}: audio slot holds {self.audio.format.name}"
            )

    def asset(self, kind: AssetKind) -> Optional[Asset]:
        return self.image if kind is AssetKind.IMAGE else self.audio

    def with_asset(self, kind: AssetKind, asset: Asset) -> "Node":
        """Return a copy of this node with one slot replaced."""
        return dataclasses.replace(self, **{kind.value: asset})


@dataclass(frozen=True)
class Pack:
    """Ordered, immutable collection of stage nodes."""

    nodes: Tuple[Node, ...] = field(default_factory=tuple)
    title: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.nodes, tuple):
            object.__setattr__(self, "nodes", tuple(self.nodes))

    def __len__(self) -> int:
        return len(self.nodes)

    def iter_assets(self) -> Iterator[Tuple[int, AssetKind, Asset]]:
        """Yield ``(node_index, kind, asset)`` in traversal order."""
        for index, node in enumerate(self.nodes):
            for kind in (AssetKind.IMAGE, AssetKind.AUDIO):
                asset = node.asset(kind)
                if asset is not None:
                    yield index, kind, asset

    def with_nodes(self, nodes) -> "Pack":
        return dataclasses.replace(self, nodes=tuple(nodes))
