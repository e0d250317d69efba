""" Turns a decoded texture into the files it was authored from: the source image, sprite frames with their .mks script, or unpacked material maps. """

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from backend.image_lib import encode_png
from backend.io_backend import write_sub_files
from backend.texture_classes import (ChannelMapping, Raster, Rect, SpriteSheetData, SubFile, UnpackInfo)

from texture_packer import extract_channels
from sprite_sheet import reconstruct


@dataclass
class TextureContentFile:
    file_name: str # Original texture file name, e.g. "materials/fire.vtex".
    raster: Raster # Decoded texture.
    sub_files: List[SubFile] = field(default_factory=list) # Files recovered from the texture, written by write_content_file.

    def add_sub_file(self, file_name: str, extract) -> None:
        self.sub_files.append(SubFile(file_name=file_name, extract=extract))

    def add_image_sub_file(self, file_name: str, image_extract) -> None:
    # Image sub files receive the texture raster when extracted.
        raster = self.raster
        self.add_sub_file(file_name, lambda: image_extract(raster))


def _base_name(file_name: str) -> str:
    return os.path.splitext(os.path.basename(file_name))[0]


def to_png_image(raster: Raster) -> bytes:
    return encode_png(raster)


def subset_to_png_image(raster: Raster, rect: Rect) -> bytes:
    return encode_png(raster.crop(rect))


def to_png_image_channels(raster: Raster, channel: ChannelMapping) -> bytes:
    return encode_png(extract_channels(raster, channel))


def to_content_file(raster: Raster, file_name: str, sheet: Optional[SpriteSheetData] = None) -> TextureContentFile:
# A sprite sheet becomes its .mks script plus one PNG per unique frame rectangle, any other texture a single PNG.

    content = TextureContentFile(file_name=file_name, raster=raster)
    base_name = _base_name(file_name)

    mks_data = reconstruct(sheet, raster, base_name)
    if mks_data is not None:
        mks_bytes = mks_data.mks.encode("utf-8")
        content.add_sub_file(f"{base_name}.mks", lambda: mks_bytes)

        for sprite_rect, sprite_file_name in mks_data.sprites.items():
            content.add_image_sub_file(sprite_file_name, lambda bitmap, rect=sprite_rect: subset_to_png_image(bitmap, rect))
        return content

    content.add_image_sub_file(f"{base_name}.png", to_png_image)
    return content


def to_material_maps(raster: Raster, file_name: str, maps_to_unpack: Iterable[UnpackInfo]) -> TextureContentFile:
# Splits a packed texture back into the maps named by maps_to_unpack.

    content = TextureContentFile(file_name=file_name, raster=raster)
    for unpack_info in maps_to_unpack:
        content.add_image_sub_file(
            os.path.basename(unpack_info.file_name),
            lambda bitmap, channel=unpack_info.channel: to_png_image_channels(bitmap, channel),
        )
    return content


def write_content_file(content: TextureContentFile, output_directory: str) -> List[str]:
# Writes the recovered files of a texture into output_directory.
    return write_sub_files(content.sub_files, output_directory)
