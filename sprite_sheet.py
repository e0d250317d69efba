""" Rebuilds the individual frames and the .mks recombination script of a packed sprite sheet. """

from typing import Dict, List, Optional

import numpy as np

from backend.texture_classes import (Frame, MksData, Raster, Rect, Sequence, SpriteSheetData, SpriteSheetError)

from settings import GENERATOR_NAME


# Example of a reconstructed script:
# // Reconstructed with Channel Packer 1.0.0
#
# packmode rgb+a
#
# sequence-rgb 0
# LOOP
# frame fire_seq0_0.png 0.1
# frame fire_seq0_1.png 0.1
#
# sequence-a 1
# frame fire_seq1.png 1




#                                           === Reconstruction ===

def reconstruct(sheet: Optional[SpriteSheetData], source: Raster, base_name: str) -> Optional[MksData]:
# Walks the sequences of a sprite sheet and collects the unique crop rectangles with their file names, plus the .mks script replaying them.
# Returns None for a texture without sprite sheet metadata.

    if sheet is None:
        return None

    sprites: Dict[Rect, str] = {} # First frame to claim a rectangle registers its file name; identical rectangles reuse it.
    lines: List[str] = []
    packmode_non_flat: bool = False

    for s, sequence in enumerate(sheet.sequences):
        lines.append("")
        lines.append(_sequence_header(sequence, s))
        if sequence.no_color or sequence.no_alpha:
            packmode_non_flat = True

        if not sequence.clamp:
            lines.append("LOOP")

        frame_rects: List[Optional[Rect]] = [_frame_rect(frame, source) for frame in sequence.frames]
        surviving_frames: int = sum(1 for rect in frame_rects if rect is not None)

        for f, (frame, rect) in enumerate(zip(sequence.frames, frame_rects)):
            if rect is None:
                continue
            # Empty crops produce neither a file nor a script line.

            if surviving_frames == 1:
                image_file_name = f"{base_name}_seq{s}.png"
            else:
                image_file_name = f"{base_name}_seq{s}_{f}.png"

            display_time = frame.display_time
            if sequence.clamp and display_time == 0:
                display_time = 1
            # A held, non-looping frame still needs a positive duration.

            registered_file_name = sprites.setdefault(rect, image_file_name)
            lines.append(f"frame {registered_file_name} {format_display_time(display_time)}")

    script = "".join(f"{line}\n" for line in lines)
    if packmode_non_flat:
        script = "packmode rgb+a\n" + script
    script = f"// Reconstructed with {GENERATOR_NAME}\n\n" + script
    return MksData(sprites=sprites, mks=script)


def extract_sprites(source: Raster, sprites: Dict[Rect, str]) -> Dict[str, Raster]:
# Crops every unique rectangle out of the sheet, keyed by its registered file name.
    return {file_name: source.crop(rect) for rect, file_name in sprites.items()}


def _sequence_header(sequence: Sequence, index: int) -> str:
    if sequence.no_color and sequence.no_alpha:
        raise SpriteSheetError(f"Sequence {index}: unexpected combination of no_color and no_alpha")
    if sequence.no_alpha:
        return f"sequence-rgb {index}"
    if sequence.no_color:
        return f"sequence-a {index}"
    return f"sequence {index}"


def _frame_rect(frame: Frame, source: Raster) -> Optional[Rect]:
# Crop rectangle of the frame's first image, None when there is nothing to extract.
    if not frame.images:
        return None
    rect = frame.images[0].get_cropped_rect(source.width, source.height)
    return None if rect.is_empty else rect


def format_display_time(display_time: float) -> str:
# Shortest single precision form with a "." separator regardless of locale: 1, 0.5, 0.033333335
    return np.format_float_positional(np.float32(display_time), trim="-")
