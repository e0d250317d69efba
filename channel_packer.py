""" Generates channel-packed textures from source maps according to the configuration, and unpacks textures and sprite sheets from the command line. """

import argparse
import os
import re
import sys
import time
from typing import Dict, List, Optional, Sequence, Tuple

from backend.image_lib import close_image, get_size, open_image, open_raster, save_raster
from backend.io_backend import load_sprite_sheet
from backend.texture_classes import (AlphaType, Channel, ChannelMapping, ChannelPackerError, ChannelSource, PackingError, PackingMode,
                                     TextureMapData, TextureSet, UnpackInfo, ValidPackingMode)

from settings import (ALLOWED_FILE_TYPES, FILE_TYPE, INPUT_FOLDER, PACKING_MODES, SHOW_DETAILS, SPRITE_SHEET_SUFFIX, TARGET_FOLDER_NAME, TEXTURE_CONFIG)

from texture_extract import to_content_file, to_material_maps, write_content_file
from texture_packer import TexturePacker
from utils import log, make_output_dirs, match_suffixes, split_file_name, validate_safe_folder_name


# Texture sets collected from the input folder:
# texture_sets = {
#     "rock": TextureSet(
#         texture_set_name="Rock",
#         available_texture_maps={
#             "AO": TextureMapData(file_path="textures/Rock_AO.png", resolution=(2048, 2048), filename="Rock_AO.png"),
#             "Roughness": TextureMapData(file_path="textures/Rock_Roughness.png", resolution=(1024, 1024), filename="Rock_Roughness.png"),
#         },
#         processed=True,
#     )
# }


RGBA_CHANNELS: Tuple[str, ...] = ("R", "G", "B", "A")




#                                           === Pipeline ===


def channel_packer(input_folder: str, packing_modes: Optional[List[PackingMode]] = None, *, file_type: str = FILE_TYPE, target_folder_name: str = TARGET_FOLDER_NAME) -> List[str]:
# Packs every texture set found in input_folder with every configured packing mode that has at least two of its maps available.
# Returns the paths of the generated textures.

    start_time = time.time()
    packing_modes = PACKING_MODES if packing_modes is None else packing_modes

    validate_safe_folder_name(target_folder_name)
    export_extension: str = _validate_export_extension(file_type)
    valid_packing_modes: List[ValidPackingMode] = _validate_packing_modes(packing_modes)

    if export_extension == "jpeg" and any(mode.uses_alpha for mode in valid_packing_modes):
        log(f"Aborted: Texture is mapped to the Alpha channel, but selected file type '{file_type}' does not support alpha. Change FILE_TYPE to 'png' or 'tga' and retry.", "error")
        raise SystemExit(1)


    texture_sets: Dict[str, TextureSet] = _build_texture_sets(input_folder)
    if not texture_sets:
        valid_extensions: str = ", ".join(f".{extension}" for extension in ALLOWED_FILE_TYPES)
        log(f"Aborted: No input files matching {valid_extensions} in: {input_folder}", "error")
        raise SystemExit(1)

    target_directory: str = make_output_dirs(input_folder, target_folder_name=target_folder_name)
    created_paths: List[str] = []


    for texture_set in texture_sets.values():
        log(f"\nProcessing: {texture_set.texture_set_name}", "info")

        for packing_mode in valid_packing_modes:
            available_types = [source.texture_type for source in packing_mode.channels.values() if source.texture_type in texture_set.available_texture_maps]
            if len(set(available_types)) < 2:
                log(f"Skipped: '{packing_mode.mode_name}' for set '{texture_set.texture_set_name}' (needs at least 2 required maps).", "warn")
                continue

            try:
                output_path = _generate_channel_packed_texture(texture_set, packing_mode, target_directory, export_extension)
            except (PackingError, OSError) as error:
                log(f"'{packing_mode.mode_name}' failed for set '{texture_set.texture_set_name}': {error}", "error")
                continue
            # A failed mode leaves no output; the remaining modes and sets are still processed.

            texture_set.processed = True
            created_paths.append(output_path)


    log("", "info")  # Visual separator
    log("All processing done.", "complete")
    if created_paths:
        log(f"Packed maps saved to: {target_directory}", "info")

    if SHOW_DETAILS:
        elapsed_time = time.time() - start_time
        log(f"Execution time: {elapsed_time:.2f} seconds", "info")
    return created_paths




#                                       === Validation & Setup ===

def _validate_export_extension(file_type: str) -> str:
# Validates the extension set in config and returns it without the dot.

    typed_extension: str = (file_type or "").strip().lower().lstrip(".")
    file_extension: str = "jpeg" if typed_extension == "jpg" else typed_extension

    if not file_extension or file_extension not in ALLOWED_FILE_TYPES:
        sorted_allowed_file_types = ", ".join(sorted(ALLOWED_FILE_TYPES))
        log(f"Aborted: Invalid FILE_TYPE '{file_type}'. Supported: {sorted_allowed_file_types}", "error")
        raise SystemExit(1)
    return file_extension


def _validate_packing_modes(packing_modes: List[PackingMode]) -> List[ValidPackingMode]:
# Checks whether channels are mapped properly in the config and resolves which channel of each map is read.
# If an RGB texture is mapped to a channel without an explicit component, defaults to the destination channel (e.g., R: Normal > R: Normal.R).
# Grayscale maps are always read from R.

    valid_packing_modes: List[ValidPackingMode] = []
    for mode in packing_modes:
        packing_mode_name: str = (mode.get("mode_name") or "").strip()
        if not packing_mode_name:
            continue
        # Considers a packing mode valid only if it has a mode name.

        invert_channels = {channel.strip().upper() for channel in mode.get("invert", [])}
        unknown_invert = invert_channels - set(RGBA_CHANNELS)
        if unknown_invert:
            log(f"PACKING_MODE '{packing_mode_name}' has invalid invert channels: {', '.join(sorted(unknown_invert))}", "error")
            raise SystemExit(1)

        channels: Dict[str, str] = mode.get("channels", {})
        resolved_channels: Dict[str, ChannelSource] = {}

        for channel in RGBA_CHANNELS:
            channel_value: str = (channels.get(channel) or "").strip()

            if not channel_value:
                if channel == "A":
                    continue
                    # Alpha may be empty.
                log(f"PACKING_MODE '{packing_mode_name}' is missing required channel '{channel}'", "error")
                raise SystemExit(1)
            # Allows missing channel mapping only for Alpha; otherwise the script stops.

            match: Optional[re.Match[str]] = re.match(r"([a-z0-9]+)(?:[._]([rgba]))?$", channel_value, re.IGNORECASE)
            # Extracts the map name and optional channel component using a regex.
            if not match:
                log(f"PACKING_MODE '{packing_mode_name}' invalid syntax in channel '{channel}': {channel_value}", "error")
                raise SystemExit(1)

            texture_type: Optional[str] = next((name for name in TEXTURE_CONFIG if name.lower() == match.group(1).lower()), None)
            if texture_type is None:
                log(f"PACKING_MODE '{packing_mode_name}' has unknown texture type set in {channel}: {channel_value}", "error")
                raise SystemExit(1)

            image_type, _default_value = TEXTURE_CONFIG[texture_type]["default"]
            component: str = (match.group(2) or "").upper()

            if image_type.upper() != "RGB":
                component = "R"
            elif not component:
                if channel == "A":
                    log(f"PACKING_MODE '{packing_mode_name}': RGB map '{texture_type}' in channel A needs a component, e.g. {texture_type}.R", "error")
                    raise SystemExit(1)
                component = channel

            resolved_channels[channel] = ChannelSource(texture_type, ChannelMapping((Channel(component),)), channel in invert_channels)

        custom_suffix: str = (mode.get("custom_suffix") or "").strip()
        suffix: str = custom_suffix or "".join(source.texture_type[0].upper() for source in resolved_channels.values())
        valid_packing_modes.append(ValidPackingMode(packing_mode_name, suffix, resolved_channels))

    return valid_packing_modes


def _build_texture_sets(input_folder: str) -> Dict[str, TextureSet]:
# Collects texture maps from the folder into texture sets, keyed by lowercase set name.
# Longer type suffixes are tried first so "rock_normal_gl" is read as Normal, not as Glossiness ("gl").
# When a set has the same map type twice, the larger texture is kept.

    suffix_lookup: List[Tuple[str, str]] = sorted(
        ((suffix, texture_type) for texture_type, config in TEXTURE_CONFIG.items() for suffix in config["suffixes"]),
        key=lambda item: len(item[0]),
        reverse=True,
    )

    texture_sets: Dict[str, TextureSet] = {}
    for filename in sorted(os.listdir(input_folder)):
        file_path = os.path.join(input_folder, filename)
        stem, extension = split_file_name(filename)
        if not os.path.isfile(file_path) or extension not in ALLOWED_FILE_TYPES:
            continue

        stem_lower = stem.lower()
        matched = next(((match, texture_type) for suffix, texture_type in suffix_lookup if (match := match_suffixes(stem_lower, suffix))), None)
        if matched is None:
            log(f"Skipping '{filename}': unknown texture type", "skip")
            continue
        match, texture_type = matched

        set_name = stem[:match.start()]
        if not set_name:
            log(f"Skipping '{filename}': missing texture set name", "skip")
            continue

        resolution = _extract_image_size(file_path)
        if resolution is None:
            continue

        texture_set = texture_sets.setdefault(set_name.lower(), TextureSet(texture_set_name=set_name))
        existing = texture_set.available_texture_maps.get(texture_type)
        if existing is None or resolution[0] * resolution[1] > existing.resolution[0] * existing.resolution[1]:
            texture_set.available_texture_maps[texture_type] = TextureMapData(file_path=file_path, resolution=resolution, filename=filename)

    return texture_sets


def _extract_image_size(file_path: str) -> Optional[Tuple[int, int]]:
# Reads the image size without decoding the pixels.
    try:
        image = open_image(file_path)
    except (OSError, ValueError) as error:
        log(f"Skipping '{os.path.basename(file_path)}': cannot open image ({error})", "warn")
        return None
    try:
        return get_size(image)
    finally:
        close_image(image)


def _mode_default_color(packing_mode: ValidPackingMode) -> Tuple[int, int, int, int]:
# Fill color of the packed texture: each channel starts at the default value of the map it expects.
# Unmapped alpha stays opaque.

    fill = [0, 0, 0, 255]
    for index, channel in enumerate(RGBA_CHANNELS):
        source = packing_mode.channels.get(channel)
        if source is None:
            continue
        _image_type, default_value = TEXTURE_CONFIG[source.texture_type]["default"]
        fill[index] = default_value ^ 0xFF if source.invert else default_value
    return tuple(fill)




#                                           === Generation ===

def _generate_channel_packed_texture(texture_set: TextureSet, packing_mode: ValidPackingMode, target_directory: str, export_extension: str) -> str:
# Packs the available maps of the set into one texture and saves it. Returns the output path.

    packer = TexturePacker(default_color=_mode_default_color(packing_mode))
    missing_texture_maps: List[str] = []

    for channel in RGBA_CHANNELS:
        source = packing_mode.channels.get(channel)
        if source is None:
            continue

        texture_data = texture_set.available_texture_maps.get(source.texture_type)
        if texture_data is None:
            missing_texture_maps.append(source.texture_type)
            continue
        # The packer's default color already holds the map's default value.

        source_raster = open_raster(texture_data.file_path)
        packer.collect(source_raster, source.source_channel, ChannelMapping((Channel(channel),)), source.invert, texture_data.filename)

        if SHOW_DETAILS:
            width, height = texture_data.resolution
            log(f"{texture_data.filename} ({width}x{height}) > {channel}", "info")

    if missing_texture_maps:
        log(f"'{packing_mode.mode_name}' missing maps filled with default values: {', '.join(missing_texture_maps)}", "warn")

    packed_texture = packer.release()
    packed_texture.alpha_type = AlphaType.UNPREMUL if packing_mode.uses_alpha else AlphaType.OPAQUE

    filename = f"{texture_set.texture_set_name}_{packing_mode.suffix}.{export_extension}"
    output_path = os.path.join(target_directory, filename)
    save_raster(packed_texture, output_path)

    if SHOW_DETAILS:
        log(f"Created: {filename} ({packed_texture.width}x{packed_texture.height})", "complete")
    else:
        log(f"Created: {filename}", "complete")
    return output_path




#                                        === Unpacking ===

def _parse_unpack_info(value: str) -> UnpackInfo:
# Parses "CHANNELS:FILE", e.g. "GA:T_Rock_Normal.png".
    channels, separator, file_name = value.partition(":")
    if not separator or not file_name.strip():
        raise argparse.ArgumentTypeError(f"expected CHANNELS:FILE, got '{value}'")
    try:
        return UnpackInfo(file_name=file_name.strip(), channel=ChannelMapping.parse(channels))
    except ChannelPackerError as error:
        raise argparse.ArgumentTypeError(str(error)) from None


def split_texture(image_path: str, maps_to_unpack: Sequence[UnpackInfo], output_directory: Optional[str] = None) -> List[str]:
# Writes one file per requested channel selection of a packed texture.

    raster = open_raster(image_path)
    output_directory = output_directory or make_output_dirs(os.path.dirname(image_path), target_folder_name=TARGET_FOLDER_NAME)
    return write_content_file(to_material_maps(raster, image_path, maps_to_unpack), output_directory)


def unpack_sprite_sheet(image_path: str, metadata_path: Optional[str] = None, output_directory: Optional[str] = None) -> List[str]:
# Writes the .mks script and frames of a sprite sheet; without metadata the image is written back as a single PNG.

    raster = open_raster(image_path)
    if metadata_path is None:
        stem_path = os.path.splitext(image_path)[0]
        metadata_path = stem_path + SPRITE_SHEET_SUFFIX

    sheet = load_sprite_sheet(metadata_path) if os.path.isfile(metadata_path) else None
    if sheet is None:
        log(f"No sprite sheet metadata found for '{os.path.basename(image_path)}', exporting a single image.", "info")

    output_directory = output_directory or make_output_dirs(os.path.dirname(image_path), target_folder_name=TARGET_FOLDER_NAME)
    return write_content_file(to_content_file(raster, image_path, sheet), output_directory)




#                                         === CLI entry point ===

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="channel_packer", description="Packs texture maps into channels and unpacks packed textures and sprite sheets.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    pack_parser = subparsers.add_parser("pack", help="Pack texture sets in a folder using PACKING_MODES from config.json.")
    pack_parser.add_argument("input_folder", nargs="?", default=INPUT_FOLDER, help="Folder with source maps, overrides INPUT_FOLDER.")

    split_parser = subparsers.add_parser("split", help="Extract channels of a packed texture into separate images.")
    split_parser.add_argument("image")
    split_parser.add_argument("maps", nargs="+", type=_parse_unpack_info, metavar="CHANNELS:FILE", help="e.g. R:T_Rock_AO.png GA:T_Rock_Normal.png")
    split_parser.add_argument("-o", "--output", default=None, help="Output folder.")

    sheet_parser = subparsers.add_parser("sheet", help="Reconstruct sprite frames and the .mks script from a sprite sheet.")
    sheet_parser.add_argument("image")
    sheet_parser.add_argument("--metadata", default=None, help=f"Sprite sheet metadata JSON, defaults to <image>{SPRITE_SHEET_SUFFIX}.")
    sheet_parser.add_argument("-o", "--output", default=None, help="Output folder.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    try:
        if args.command == "pack":
            input_folder = (args.input_folder or "").strip()
            if not input_folder or not os.path.isdir(input_folder):
                log("Aborted: No valid input folder provided (CLI/config).", "error")
                raise SystemExit(1)
            channel_packer(os.path.abspath(input_folder))
        elif args.command == "split":
            split_texture(args.image, args.maps, args.output)
        elif args.command == "sheet":
            unpack_sprite_sheet(args.image, args.metadata, args.output)
    except (ChannelPackerError, OSError) as error:
        log(f"Aborted: {error}", "error")
        raise SystemExit(1)

if __name__ == "__main__":
    main(sys.argv[1:])
