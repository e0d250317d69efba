
""" Channel Packer settings. """

import json
import os
from typing import Dict, Tuple

from backend.texture_classes import PackingMode, TextureTypeConfig


def _as_bool(v) -> bool:
# Converts .json input (bool/int/str/None) to a real bool;
# Avoids the case where a non-empty string like "False" is treated as True.

    if isinstance(v, bool): return v
    if isinstance(v, str):
        input_str = v.strip().lower()
        if input_str == "": return False
        return input_str in ("1","true","yes","on")
    return bool(v)


def _as_color(v) -> Tuple[int, int, int, int]:
# Converts a .json RGB/RGBA list to a clamped RGBA tuple; alpha defaults to opaque.

    values = [int(component) for component in (v or [])][:4]
    if len(values) < 3:
        return (0, 0, 0, 255)
    if len(values) == 3:
        values.append(255)
    return tuple(min(max(component, 0), 255) for component in values)



#                                           === Loading JSON file ===

_config_path = os.path.join(os.path.dirname(__file__), "backend", "config.json")
# Shipped as package data of backend.
_config_data: dict = {}
if os.path.isfile(_config_path):
    with open(_config_path, "r", encoding="utf-8") as f:
        _config_data = json.load(f)


# Assigning config values:
INPUT_FOLDER: str = _config_data.get("INPUT_FOLDER", "").strip() # Folder containing textures to be packed.
FILE_TYPE: str = _config_data.get("FILE_TYPE", "png") # File type of generated channel-packed textures.
TARGET_FOLDER_NAME: str = _config_data.get("DEST_FOLDER_NAME", "created_maps") # If provided, places generated channel-packed maps into a custom folder.
DEFAULT_FILL_COLOR: Tuple[int, int, int, int] = _as_color(_config_data.get("DEFAULT_FILL_COLOR", [0, 0, 0, 255])) # Color of the packed texture before any channel is written.
PACKING_MODES: list[PackingMode] = _config_data.get("PACKING_MODES", []) # Uses TEXTURE_CONFIG keys for texture maps to be put into channels. The packing mode is skipped if "name": is empty.

SHOW_DETAILS: bool = _as_bool(_config_data.get("SHOW_DETAILS", False)) # Shows details like exact resolution when printing logs.




#                                           === Constants ===

ALLOWED_FILE_TYPES: Tuple[str, ...] = ("png", "jpg", "jpeg", "tga")
GENERATOR_NAME: str = "Channel Packer 1.0.0" # Written into the header comment of reconstructed .mks scripts.
SPRITE_SHEET_SUFFIX: str = ".sheet.json" # Sidecar file holding sprite sheet metadata next to the sheet image.

TEXTURE_CONFIG: Dict[str, TextureTypeConfig] = {
    "AO": {"suffixes": ["ambientocclusion", "occlusion", "ambient", "ao"], "default": ("G", 255)},
    "Roughness": {"suffixes": ["roughness", "roughnes", "rough", "r"], "default": ("G", 128)},
    "Metalness": {"suffixes": ["metalness", "metalnes", "metallic", "metal", "m"], "default": ("G", 0)},
    "Height": {"suffixes": ["displacement", "height", "disp", "d", "h"], "default": ("G", 0)},
    "Mask": {"suffixes": ["opacity", "alpha", "mask"], "default": ("G", 255)},
    "Specular": {"suffixes": ["specular", "spec", "s"], "default": ("G", 128)},
    "Normal": {"suffixes": ["normal_dx", "normal_gl", "normaldx", "normalgl", "normal", "nrm", "n"], "default": ("RGB", 128)},
    "Albedo": {"suffixes": ["basecolor", "diffuse", "albedo", "color", "diff", "base"],  "default": ("RGB", 128)},
    "Emissive": {"suffixes": ["emissive", "emission", "emit", "glow"], "default": ("RGB", 0)},
    "Glossiness": {"suffixes": ["glossiness", "gloss", "gl"], "default": ("G", 128)}}
# The G/RGB image type decides which source channel feeds a destination channel when the mode doesn't name one explicitly.
