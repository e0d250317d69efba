from typing import Callable, Dict, Iterator, List, NamedTuple, Tuple, TypedDict
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray




#                                           === Errors ===

class ChannelPackerError(Exception):
    """ Base class for all errors raised by the packing and reconstruction code. """

class ChannelMappingError(ChannelPackerError, ValueError):
    """ Contract violation: invalid channel value, wrong mapping length or a multi-channel mapping where one channel is required. """

class PackingError(ChannelPackerError):
    """ A texture could not be resampled while packing; the partially packed texture is not valid output. """

    def __init__(self, message: str, label: str = ""):
        super().__init__(message)
        self.label = label

class SpriteSheetError(ChannelPackerError, ValueError):
    """ Sprite sheet metadata that cannot be reconstructed, e.g. a sequence with both no_color and no_alpha. """




#                                           === Channels ===

class Channel(str, Enum):
    R = "R"
    G = "G"
    B = "B"
    A = "A"


CHANNEL_INDEX: Dict[Channel, int] = {Channel.R: 0, Channel.G: 1, Channel.B: 2, Channel.A: 3}
# Position of each channel inside an RGBA pixel.


def channel_index(channel: Channel) -> int:
# Returns the RGBA plane index for a channel, fails on anything that isn't a Channel.
    try:
        return CHANNEL_INDEX[channel]
    except (KeyError, TypeError):
        raise ChannelMappingError(f"Unrecognized channel: {channel!r}") from None


@dataclass(frozen=True)
class ChannelMapping:
    channels: Tuple[Channel, ...] # Ordered channel selectors, 1 to 4 entries; equality and hashing use the whole sequence.

    def __post_init__(self):
        channels = tuple(self.channels)
        if not 1 <= len(channels) <= 4:
            raise ChannelMappingError(f"Channel mapping needs 1 to 4 channels, got {len(channels)}")
        for channel in channels:
            if not isinstance(channel, Channel):
                raise ChannelMappingError(f"Unrecognized channel: {channel!r}")
        object.__setattr__(self, "channels", channels)

    @classmethod
    def parse(cls, text: str) -> "ChannelMapping":
    # Builds a mapping from its text form, e.g. "RGA" or "a".
        try:
            return cls(tuple(Channel(character) for character in text.strip().upper()))
        except ValueError:
            raise ChannelMappingError(f"Invalid channel mapping: '{text}'") from None

    @property
    def count(self) -> int:
        return len(self.channels)

    @property
    def is_swizzle(self) -> bool:
        return self.count > 1 and self not in (MAPPING_RG, MAPPING_RGB, MAPPING_RGBA)

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.channels)

    def __str__(self) -> str:
        return "".join(channel.value for channel in self.channels)


MAPPING_R = ChannelMapping((Channel.R,))
MAPPING_G = ChannelMapping((Channel.G,))
MAPPING_B = ChannelMapping((Channel.B,))
MAPPING_A = ChannelMapping((Channel.A,))
MAPPING_RG = ChannelMapping((Channel.R, Channel.G))
MAPPING_RGB = ChannelMapping((Channel.R, Channel.G, Channel.B))
MAPPING_RGBA = ChannelMapping((Channel.R, Channel.G, Channel.B, Channel.A))




#                                           === Rasters ===

class AlphaType(str, Enum):
    OPAQUE = "opaque" # Alpha is ignored when encoding, the image is saved as RGB.
    UNPREMUL = "unpremul" # Alpha is independent from the color channels.


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0


@dataclass(eq=False)
class Raster:
    pixels: NDArray[np.uint8] # (height, width, 4) RGBA samples, or (height, width) for grayscale.
    alpha_type: AlphaType = AlphaType.UNPREMUL # How the alpha channel is treated when the raster is encoded.

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.dtype != np.uint8:
            raise ValueError(f"Raster pixels must be uint8, got {pixels.dtype}")
        if not (pixels.ndim == 2 or (pixels.ndim == 3 and pixels.shape[2] == 4)):
            raise ValueError(f"Raster pixels must be shaped (h, w) or (h, w, 4), got {pixels.shape}")
        self.pixels = pixels

    @classmethod
    def new(cls, size: Tuple[int, int], fill: Tuple[int, int, int, int] = (0, 0, 0, 255), alpha_type: AlphaType = AlphaType.UNPREMUL) -> "Raster":
    # Allocates an RGBA raster of (width, height) filled with a single color.
        width, height = size
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = np.asarray(fill, dtype=np.uint8)
        return cls(pixels, alpha_type)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def is_grayscale(self) -> bool:
        return self.pixels.ndim == 2

    def rgba(self) -> "Raster":
    # Returns an RGBA view of the raster; grayscale data is replicated into R, G and B with opaque alpha.
        if not self.is_grayscale:
            return self
        pixels = np.empty((self.height, self.width, 4), dtype=np.uint8)
        pixels[..., :3] = self.pixels[..., None]
        pixels[..., 3] = 255
        return Raster(pixels, AlphaType.OPAQUE)

    def channel(self, channel: Channel) -> NDArray[np.uint8]:
        return self.rgba().pixels[..., channel_index(channel)]

    def copy(self) -> "Raster":
        return Raster(self.pixels.copy(), self.alpha_type)

    def crop(self, rect: Rect) -> "Raster":
        x, y, width, height = rect
        return Raster(self.pixels[y:y + height, x:x + width].copy(), self.alpha_type)




#                                           === Sprite sheets ===

@dataclass
class SpriteImage:
    cropped_min: Tuple[float, float] # Top-left corner in normalized (0..1) sheet coordinates.
    cropped_max: Tuple[float, float] # Bottom-right corner in normalized sheet coordinates.

    def get_cropped_rect(self, width: int, height: int) -> Rect:
    # Resolves the normalized crop to pixels of a width x height sheet.
        x = int(self.cropped_min[0] * width)
        y = int(self.cropped_min[1] * height)
        crop_width = int((self.cropped_max[0] - self.cropped_min[0]) * width)
        crop_height = int((self.cropped_max[1] - self.cropped_min[1]) * height)
        return Rect(x, y, max(crop_width, 0), max(crop_height, 0))

@dataclass
class Frame:
    display_time: float # Seconds the frame is shown.
    images: List[SpriteImage] = field(default_factory=list) # Only the first image is used, the rest are duplicates.

@dataclass
class Sequence:
    frames: List[Frame] = field(default_factory=list)
    clamp: bool = False # False means the sequence loops.
    no_color: bool = False # Alpha-only sequence.
    no_alpha: bool = False # Color-only sequence.

@dataclass
class SpriteSheetData:
    sequences: List[Sequence] = field(default_factory=list)

@dataclass
class MksData:
    sprites: Dict[Rect, str] # Unique crop rectangles and the file name registered for each.
    mks: str # Recombination script text.




#                                           === Content files ===

@dataclass
class UnpackInfo:
    file_name: str # Output file name for the unpacked map.
    channel: ChannelMapping # Channels taken from the packed texture.

@dataclass
class SubFile:
    file_name: str
    extract: Callable[[], bytes] # Produces the file contents on demand.




#                                           === Folder pipeline ===

class PackingMode(TypedDict, total=False):
    mode_name: str # Packing mode name defined in the config; the mode is skipped if left empty.
    custom_suffix: str # If empty, uses a generated default suffix from the first letters of the mapped channels.
    channels: Dict[str, str] # Texture map types mapped to RGBA channels, e.g. {"R": "AO", "G": "Normal.G"}.
    invert: List[str] # Destination channels stored inverted, e.g. ["G"].

class TextureTypeConfig(TypedDict):
    suffixes: list[str] # Possible suffixes for a given texture map type, e.g., ["ao", "ambientocclusion", "occlusion", "ambient"].
    default: tuple[str, int]  # Image type (G/RGB) and the value used when the map is missing.

@dataclass
class ChannelSource:
    texture_type: str # Texture map type feeding the channel, e.g. "Roughness".
    source_channel: ChannelMapping # Channel read from that map.
    invert: bool = False # Stores the map inverted, e.g. glossiness packed as roughness.

@dataclass
class ValidPackingMode:
    mode_name: str
    suffix: str # Final suffix used in the output filename (custom or generated).
    channels: Dict[str, ChannelSource] # Destination channel name ("R", "G", "B", "A") mapped to its source.

    @property
    def uses_alpha(self) -> bool:
        return "A" in self.channels

@dataclass
class TextureMapData:
    file_path: str # File path.
    resolution: Tuple[int, int] # Texture resolution.
    filename: str # Case-sensitive file name.

@dataclass
class TextureSet:
    texture_set_name: str  # Case-sensitive texture set name.
    available_texture_maps: Dict[str, TextureMapData] = field(default_factory=dict) # Texture map type, e.g. "Albedo", mapped to its file data.
    processed: bool = False # Indicates whether at least one packing mode was processed successfully for this set.
