"""Tests for sprite sheet reconstruction and the .mks script."""

import numpy as np
import pytest

from backend.texture_classes import Frame, Raster, Rect, Sequence, SpriteImage, SpriteSheetData, SpriteSheetError
from settings import GENERATOR_NAME
from sprite_sheet import extract_sprites, format_display_time, reconstruct


HEADER = f"// Reconstructed with {GENERATOR_NAME}\n\n"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def sheet_raster() -> Raster:
    """An 8x8 sheet where every pixel stores its own coordinates."""
    pixels = np.zeros((8, 8, 4), dtype=np.uint8)
    ys, xs = np.mgrid[0:8, 0:8]
    pixels[..., 0] = xs
    pixels[..., 1] = ys
    pixels[..., 3] = 255
    return Raster(pixels)


def frame(x0, y0, x1, y1, display_time=0.1) -> Frame:
    """Frame whose first image covers the normalized rectangle (x0, y0)-(x1, y1)."""
    return Frame(display_time=display_time, images=[SpriteImage((x0, y0), (x1, y1)), SpriteImage((0, 0), (1, 1))])


# =============================================================================
# Rectangles and formatting
# =============================================================================

def test_cropped_rect_resolves_to_pixels():
    assert SpriteImage((0.5, 0.25), (1.0, 0.75)).get_cropped_rect(8, 8) == Rect(4, 2, 4, 4)


def test_cropped_rect_truncates():
    assert SpriteImage((0.25, 0.0), (0.6, 0.5)).get_cropped_rect(10, 3) == Rect(2, 0, 3, 1)


@pytest.mark.parametrize("value, expected", [(1, "1"), (1.0, "1"), (0.5, "0.5"), (0.1, "0.1"), (0, "0"), (1 / 30, "0.033333335")])
def test_display_time_format(value, expected):
    assert format_display_time(value) == expected


# =============================================================================
# reconstruct
# =============================================================================

def test_texture_without_sheet_is_not_applicable(sheet_raster):
    assert reconstruct(None, sheet_raster, "fire") is None


def test_looping_sequence(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[frame(0, 0, 0.5, 0.5), frame(0.5, 0, 1, 0.5)])])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert result.mks == HEADER + (
        "\n"
        "sequence 0\n"
        "LOOP\n"
        "frame fire_seq0_0.png 0.1\n"
        "frame fire_seq0_1.png 0.1\n"
    )
    assert result.sprites == {Rect(0, 0, 4, 4): "fire_seq0_0.png", Rect(4, 0, 4, 4): "fire_seq0_1.png"}


def test_non_flat_sequences_add_packmode(sheet_raster):
    sheet = SpriteSheetData([
        Sequence(frames=[frame(0, 0, 0.5, 0.5)], clamp=True, no_alpha=True),
        Sequence(frames=[frame(0.5, 0.5, 1, 1)], clamp=True, no_color=True),
    ])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert result.mks == HEADER + (
        "packmode rgb+a\n"
        "\n"
        "sequence-rgb 0\n"
        "frame fire_seq0.png 0.1\n"
        "\n"
        "sequence-a 1\n"
        "frame fire_seq1.png 0.1\n"
    )


def test_flat_sheet_has_no_packmode(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[frame(0, 0, 1, 1)], clamp=True)])

    assert "packmode" not in reconstruct(sheet, sheet_raster, "fire").mks


def test_no_color_and_no_alpha_is_rejected(sheet_raster):
    sheet = SpriteSheetData([
        Sequence(frames=[frame(0, 0, 1, 1)]),
        Sequence(frames=[frame(0, 0, 1, 1)], no_color=True, no_alpha=True),
    ])

    with pytest.raises(SpriteSheetError):
        reconstruct(sheet, sheet_raster, "fire")


def test_identical_rectangles_share_one_file(sheet_raster):
    sheet = SpriteSheetData([
        Sequence(frames=[frame(0, 0, 0.5, 0.5), frame(0.5, 0, 1, 0.5), frame(0, 0, 0.5, 0.5)]),
        Sequence(frames=[frame(0.5, 0, 1, 0.5)], clamp=True),
    ])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert len(result.sprites) == 2
    frame_lines = [line for line in result.mks.splitlines() if line.startswith("frame")]
    assert frame_lines == [
        "frame fire_seq0_0.png 0.1",
        "frame fire_seq0_1.png 0.1",
        "frame fire_seq0_0.png 0.1",
        "frame fire_seq0_1.png 0.1",
    ]


def test_clamped_zero_display_time_becomes_one(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[frame(0, 0, 1, 1, display_time=0)], clamp=True)])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert "frame fire_seq0.png 1\n" in result.mks


def test_looping_zero_display_time_is_kept(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[frame(0, 0, 1, 1, display_time=0)])])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert "frame fire_seq0.png 0\n" in result.mks


def test_empty_rectangles_are_skipped(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[
        frame(0.5, 0.5, 0.5, 1),
        Frame(display_time=0.1, images=[]),
        frame(0, 0, 0.5, 0.5),
    ])])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert result.sprites == {Rect(0, 0, 4, 4): "fire_seq0.png"}
    assert result.mks.count("frame ") == 1


def test_surviving_frames_keep_their_index(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[
        frame(0, 0, 0, 0),
        frame(0, 0, 0.5, 0.5),
        frame(0.5, 0.5, 1, 1),
    ])])

    result = reconstruct(sheet, sheet_raster, "fire")

    assert sorted(result.sprites.values()) == ["fire_seq0_1.png", "fire_seq0_2.png"]


def test_extract_sprites_crops_the_sheet(sheet_raster):
    sheet = SpriteSheetData([Sequence(frames=[frame(0.5, 0.25, 1, 0.75)], clamp=True)])
    result = reconstruct(sheet, sheet_raster, "fire")

    sprites = extract_sprites(sheet_raster, result.sprites)

    sprite = sprites["fire_seq0.png"]
    assert sprite.size == (4, 4)
    assert sprite.pixels[0, 0, 0] == 4
    assert sprite.pixels[0, 0, 1] == 2
    assert sprite.pixels[3, 3, 0] == 7
