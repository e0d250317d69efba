""" Shared helpers: log printing, file naming and output folders. """

import os
import re
from typing import Optional, Tuple


LOG_TYPES: list[str] = ["info", "warn", "error", "skip", "complete"]
# Defines log types; every module prints through log() so the output style stays consistent.

def log(message: str, message_kind: str = "info") -> None:
# Maps different log types.

    if message == "":
        print("")
        return

    if message_kind not in LOG_TYPES:
        message_kind = "info"

    if message_kind == "info":
        print(f"   {message}")
    elif message_kind == "warn":
        print(f"⚠️ {message}")
    elif message_kind == "error":
        print(f"⛔ {message}")
    elif message_kind == "skip":
        print(f"❌ {message}")
    elif message_kind == "complete":
        print(f"✅ {message}")

    # Print styles:
    # info: 3 whitespaces + message
    # warn: ⚠️ + message
    # error: ⛔ + message
    # skip: ❌ + message
    # complete: ✅ + message


def make_output_dirs(base_directory: str, * , target_folder_name: Optional[str]) -> str:
# Creates/returns the output directory for a given base path.

    base_directory = os.path.abspath(base_directory or ".")

    target_folder_name = (target_folder_name or "").strip()
    target_folder_directory = os.path.join(base_directory, target_folder_name) if target_folder_name else base_directory
    os.makedirs(target_folder_directory, exist_ok=True)
    return target_folder_directory


def match_suffixes(name_lower: str, type_suffix: str) -> Optional[re.Match[str]]:
# Matches a texture type suffix at the end of the file stem, e.g. "rock_roughness" for "roughness".
# Returns the match, its start marks where the texture set name ends.

    separator: str = r"[\_\-\.]"
    return re.search(rf"{separator}{re.escape(type_suffix)}$", name_lower)


def split_file_name(file_name: str) -> Tuple[str, str]:
# Splits a file name into its stem and lowercase extension without the dot.
    stem, extension = os.path.splitext(os.path.basename(file_name))
    return stem, extension.lstrip(".").lower()


def validate_safe_folder_name(raw_folder_name: Optional[str]) -> None:
# Validates that the custom folder name doesn't include unsupported characters.

    folder_name: str = (raw_folder_name or "")
    if folder_name.strip() == "":
        return

    if any(invalid_character in folder_name for invalid_character in '\\/:*?"<>|'):
        log(f"Aborted: invalid folder name '{raw_folder_name}'. It cannot contain \\ / : * ? \" < > |", "error")
        # Prints error.
        raise SystemExit(1)
    return
