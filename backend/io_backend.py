""" Input/output backend: reads sprite sheet metadata and writes recovered files, so the packing and reconstruction logic never touches the disk. """

import json
import os
from typing import Iterable, List

from backend.texture_classes import Frame, Sequence, SpriteImage, SpriteSheetData, SpriteSheetError, SubFile

from utils import log


def sprite_sheet_from_dict(data: dict, source: str = "<metadata>") -> SpriteSheetData:
# Builds sprite sheet metadata from its JSON form:
# {"sequences": [{"clamp": false, "no_color": false, "no_alpha": false,
#                 "frames": [{"display_time": 0.1, "images": [{"cropped_min": [0, 0], "cropped_max": [0.5, 0.5]}]}]}]}
# Missing or malformed fields raise SpriteSheetError naming the source and the field.

    try:
        return _parse_sprite_sheet(data)
    except KeyError as error:
        raise SpriteSheetError(f"Invalid sprite sheet metadata '{source}': missing field {error}") from error
    except (TypeError, ValueError, AttributeError) as error:
        raise SpriteSheetError(f"Invalid sprite sheet metadata '{source}': {error}") from error


def _parse_sprite_sheet(data: dict) -> SpriteSheetData:
    sequences: List[Sequence] = []
    for sequence_data in data.get("sequences", []):
        frames = [
            Frame(
                display_time=float(frame_data.get("display_time", 0.0)),
                images=[SpriteImage(_corner(image, "cropped_min"), _corner(image, "cropped_max")) for image in frame_data.get("images", [])],
            )
            for frame_data in sequence_data.get("frames", [])
        ]
        sequences.append(Sequence(
            frames=frames,
            clamp=bool(sequence_data.get("clamp", False)),
            no_color=bool(sequence_data.get("no_color", False)),
            no_alpha=bool(sequence_data.get("no_alpha", False)),
        ))
    return SpriteSheetData(sequences=sequences)


def _corner(image: dict, key: str):
# Reads a normalized (x, y) corner of a frame image.
    corner = tuple(float(value) for value in image[key])
    if len(corner) != 2:
        raise ValueError(f"field '{key}' needs 2 coordinates, got {len(corner)}")
    return corner


def load_sprite_sheet(path: str) -> SpriteSheetData:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as error:
            raise SpriteSheetError(f"Invalid sprite sheet metadata '{path}': {error}") from error
    return sprite_sheet_from_dict(data, path)


def write_sub_files(sub_files: Iterable[SubFile], output_directory: str) -> List[str]:
# Writes every sub file into output_directory and returns the written paths.

    os.makedirs(output_directory, exist_ok=True)
    written_paths: List[str] = []
    for sub_file in sub_files:
        output_path = os.path.join(output_directory, sub_file.file_name)
        with open(output_path, "wb") as f:
            f.write(sub_file.extract())
        written_paths.append(output_path)
        log(f"Written: {sub_file.file_name}", "info")
    return written_paths
