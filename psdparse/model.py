"""Data structures describing the contents of a PSD file."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple

import numpy as np


@dataclass
class Section:
    """Location of one section inside a PSD file."""

    offset: int = 0
    length: int = 0


class AlphaChannelMode(enum.IntEnum):
    """What kind of data an extra channel holds."""

    ALPHA = 0
    INVERTED_ALPHA = 1
    SPOT = 2


@dataclass
class AlphaChannel:
    """An extra channel as described in the image resources section.

    The pixel data itself lives in the image data section.
    """

    ascii_name: str = ""
    color_space: int = 0
    color: Tuple[int, int, int, int] = (0, 0, 0, 0)
    opacity: int = 0
    mode: int = AlphaChannelMode.ALPHA


class ChannelType(enum.IntEnum):
    """Kind of data held by a layer channel."""

    INVALID = 32767
    R = 0
    G = 1
    B = 2
    TRANSPARENCY_MASK = -1
    LAYER_OR_VECTOR_MASK = -2
    LAYER_MASK = -3


class LayerType(enum.IntEnum):
    """Layer kinds known to Photoshop."""

    ANY = 0
    OPEN_FOLDER = 1
    CLOSED_FOLDER = 2
    SECTION_DIVIDER = 3


@dataclass
class Channel:
    """One channel of a layer, with its location in the file and its planar data once extracted."""

    file_offset: int = 0
    size: int = 0
    data: Optional[np.ndarray] = field(default=None, compare=False)
    type: int = ChannelType.INVALID


def _extent(low: int, high: int) -> int:
    return high - low if high > low else 0


@dataclass
class _Bounds:
    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0

    @property
    def width(self) -> int:
        """Width of the enclosing rectangle, zero if it is empty or inverted."""
        return _extent(self.left, self.right)

    @property
    def height(self) -> int:
        """Height of the enclosing rectangle, zero if it is empty or inverted."""
        return _extent(self.top, self.bottom)


@dataclass
class LayerMask(_Bounds):
    """A user mask of a layer."""

    file_offset: int = 0
    data: Optional[np.ndarray] = field(default=None, compare=False)
    feather: float = 0.0
    density: int = 0
    default_color: int = 0


@dataclass
class VectorMask(LayerMask):
    """A vector mask of a layer, rasterised as stored in the file."""


@dataclass(eq=False)
class Layer(_Bounds):
    """A layer record from the layer and mask information section."""

    name: str = ""
    unicode_name: Optional[str] = None
    channels: List[Channel] = field(default_factory=list)
    blend_mode_key: int = 0
    opacity: int = 0
    clipping: int = 0
    is_visible: bool = True
    type: int = LayerType.ANY
    layer_mask: Optional[LayerMask] = None
    vector_mask: Optional[VectorMask] = None
    parent: Optional["Layer"] = field(default=None, repr=False)

    @property
    def width(self) -> int:
        """Width of the layer rectangle, zero if it is empty or inverted."""
        return _extent(self.left, self.right)

    @property
    def height(self) -> int:
        """Height of the layer rectangle, zero if it is empty or inverted."""
        return _extent(self.top, self.bottom)

    @property
    def channel_count(self) -> int:
        return len(self.channels)


@dataclass
class LayerMaskSection:
    """Contents of the layer and mask information section."""

    layers: List[Layer] = field(default_factory=list)
    overlay_color_space: int = 0
    opacity: int = 0
    kind: int = 128
    has_transparency_mask: bool = False

    @property
    def layer_count(self) -> int:
        return len(self.layers)


@dataclass
class Thumbnail:
    """A JPEG thumbnail stored among the image resources."""

    width: int = 0
    height: int = 0
    binary_jpeg: bytes = b""

    @property
    def binary_jpeg_size(self) -> int:
        return len(self.binary_jpeg)


@dataclass
class ImageResourcesSection:
    """Information gathered from the image resources section."""

    alpha_channels: List[AlphaChannel] = field(default_factory=list)
    icc_profile: Optional[bytes] = None
    exif_data: Optional[bytes] = None
    contains_real_merged_data: bool = True
    xmp_metadata: Optional[bytes] = None
    thumbnail: Optional[Thumbnail] = None

    @property
    def alpha_channel_count(self) -> int:
        return len(self.alpha_channels)


@dataclass
class ImageDataSection:
    """The merged image, one planar array per channel."""

    images: List[np.ndarray] = field(default_factory=list)

    @property
    def image_count(self) -> int:
        return len(self.images)


@dataclass
class ColorModeDataSection:
    """Raw contents of the color mode data section."""

    color_data: bytes = b""

    @property
    def size_of_color_data(self) -> int:
        return len(self.color_data)


@dataclass
class ExportLayer:
    """A layer as prepared for writing, holding up to four channels (R, G, B, A)."""

    MAX_CHANNEL_COUNT: ClassVar[int] = 4

    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0
    name: str = ""
    channel_data: List[Optional[bytes]] = field(
        default_factory=lambda: [None] * ExportLayer.MAX_CHANNEL_COUNT
    )
    channel_size: List[int] = field(
        default_factory=lambda: [0] * ExportLayer.MAX_CHANNEL_COUNT
    )
    channel_compression: List[int] = field(
        default_factory=lambda: [0] * ExportLayer.MAX_CHANNEL_COUNT
    )