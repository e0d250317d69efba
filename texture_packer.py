""" Channel extraction, single channel copies and the TexturePacker that builds channel-packed textures from separately sized maps. """

from typing import FrozenSet, Optional, Set, Tuple

import numpy as np

from backend.image_lib import resize_raster
from backend.texture_classes import (AlphaType, ChannelMapping, ChannelMappingError, PackingError, Raster,
                                     MAPPING_RG, MAPPING_RGB, MAPPING_RGBA, channel_index)

from settings import DEFAULT_FILL_COLOR
from utils import log




#                                           === Channel operations ===

def extract_channels(source: Raster, mapping: ChannelMapping) -> Raster:
# Returns a new raster exposing only the channels selected by mapping:
#   single channel  -> grayscale raster of that channel
#   RG / RGB        -> RGBA copy with alpha wiped to opaque
#   RGBA            -> plain copy
#   anything else   -> swizzle, output channel j is taken from source channel mapping[j]

    pixels = source.rgba().pixels

    if mapping.count == 1:
        return Raster(pixels[..., channel_index(mapping.channels[0])].copy(), AlphaType.OPAQUE)

    if mapping == MAPPING_RG or mapping == MAPPING_RGB:
        wiped = pixels.copy()
        wiped[..., 3] = 255
        return Raster(wiped, AlphaType.OPAQUE)
    # Non-alpha maps must not be read back with whatever alpha the packed texture carried.

    if mapping == MAPPING_RGBA:
        return Raster(pixels.copy(), source.alpha_type)

    # Swizzled channels, e.g. alpha-green DXT5nm.
    swizzled = np.zeros_like(pixels)
    if mapping.count < 4:
        swizzled[..., 3] = 255
    for j, channel in enumerate(mapping.channels):
        swizzled[..., j] = pixels[..., channel_index(channel)]
    return Raster(swizzled, AlphaType.OPAQUE if mapping.count < 4 else AlphaType.UNPREMUL)


def copy_channel(source: Raster, source_channel: ChannelMapping, target: Raster, target_channel: ChannelMapping, invert: bool = False) -> None:
# Copies one channel of source into one channel of target, in place. Inverting XORs each byte with 0xFF.
# The other three target channels are left untouched.

    _require_single_channels(source_channel, target_channel)

    if source.size != target.size:
        raise ValueError(f"Cannot copy channel between {source.width}x{source.height} and {target.width}x{target.height} images")
    if target.is_grayscale:
        raise ValueError("Cannot copy a channel into a grayscale image")

    plane = source.rgba().pixels[..., channel_index(source_channel.channels[0])]
    if invert:
        plane = plane ^ np.uint8(0xFF)
    target.pixels[..., channel_index(target_channel.channels[0])] = plane


def _require_single_channels(source_channel: ChannelMapping, target_channel: ChannelMapping) -> None:
    if source_channel.count != 1 or target_channel.count != 1:
        raise ChannelMappingError(f"Can only copy individual channels. {source_channel} -> {target_channel}")




#                                           === Texture packer ===

class TexturePacker:
    """
    Packs single channels of several textures into one texture.

    The packed texture is allocated at the size of the first contribution and grows to the
    largest size seen afterwards; packed content is scaled up when it grows and is never
    scaled down. Not safe for concurrent use.
    """

    def __init__(self, default_color: Tuple[int, int, int, int] = DEFAULT_FILL_COLOR):
        self.default_color: Tuple[int, int, int, int] = tuple(default_color)
        self._raster: Optional[Raster] = None
        self._packed: Set[ChannelMapping] = set()

    @property
    def raster(self) -> Optional[Raster]:
        return self._raster

    @property
    def packed_channels(self) -> FrozenSet[ChannelMapping]:
        return frozenset(self._packed)

    def collect(self, source: Raster, source_channel: ChannelMapping, target_channel: ChannelMapping, invert: bool = False, label: str = "") -> None:
        _require_single_channels(source_channel, target_channel)

        if target_channel in self._packed:
            log(f"{target_channel} has already been packed in texture: {label}", "warn")
        self._packed.add(target_channel)

        if self._raster is None:
            self._raster = Raster.new(source.size, self.default_color)

        target_size = (max(self._raster.width, source.width), max(self._raster.height, source.height))

        if self._raster.size != target_size:
            try:
                self._raster = resize_raster(self._raster, target_size)
            except (ValueError, OSError) as error:
                raise PackingError(f"Failed to scale up pixels of {label}: {error}", label) from error
        # The previous texture is dropped, the resampled copy becomes the packed texture.

        if source.size != target_size:
            try:
                source = resize_raster(source.rgba(), target_size)
            except (ValueError, OSError) as error:
                raise PackingError(f"Failed to scale up incoming pixels for {label}: {error}", label) from error
        # Only a copy of the incoming texture is scaled; the caller's raster stays as it was.

        copy_channel(source, source_channel, self._raster, target_channel, invert)

    def release(self) -> Optional[Raster]:
    # Hands the packed texture over to the caller and resets the packer.
        raster = self._raster
        self._raster = None
        self._packed.clear()
        return raster
