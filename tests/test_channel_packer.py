"""Tests for the folder packing pipeline and the command line."""

import json

import numpy as np
import pytest
from PIL import Image

from backend.texture_classes import Channel
from channel_packer import _build_texture_sets, _validate_packing_modes, channel_packer, main


ORM_MODE = {"mode_name": "ORM", "custom_suffix": "ORM", "channels": {"R": "AO", "G": "Roughness", "B": "Metalness", "A": ""}}


def write_gray(path, size, value):
    Image.new("L", size, value).save(path)


def read_pixels(path) -> np.ndarray:
    with Image.open(path) as image:
        return np.array(image).astype(int)


# =============================================================================
# Packing modes
# =============================================================================

class TestPackingModes:
    def test_grayscale_maps_read_red(self):
        (mode,) = _validate_packing_modes([ORM_MODE])

        assert mode.suffix == "ORM"
        assert not mode.uses_alpha
        assert mode.channels["G"].texture_type == "Roughness"
        assert mode.channels["G"].source_channel.channels == (Channel.R,)

    def test_rgb_maps_default_to_the_destination_channel(self):
        (mode,) = _validate_packing_modes([
            {"mode_name": "NormalMask", "channels": {"R": "Normal", "G": "normal", "B": "Mask", "A": "Normal.r"}, "invert": ["b"]},
        ])

        assert mode.channels["R"].source_channel.channels == (Channel.R,)
        assert mode.channels["G"].source_channel.channels == (Channel.G,)
        assert mode.channels["A"].source_channel.channels == (Channel.R,)
        assert mode.channels["B"].invert
        assert mode.uses_alpha
        assert mode.suffix == "NNMN"

    def test_modes_without_name_are_ignored(self):
        assert _validate_packing_modes([{"mode_name": " ", "channels": {}}]) == []

    @pytest.mark.parametrize("channels", [
        {"R": "AO", "G": "Roughness"},
        {"R": "AO", "G": "Roughness", "B": "Unknown"},
        {"R": "AO", "G": "Roughness", "B": "Metal ness"},
        {"R": "AO", "G": "Roughness", "B": "Metalness", "A": "Normal"},
    ])
    def test_invalid_modes_abort(self, channels):
        with pytest.raises(SystemExit):
            _validate_packing_modes([{"mode_name": "Broken", "channels": channels}])


# =============================================================================
# Pipeline
# =============================================================================

def test_texture_sets_are_grouped_by_name(tmp_path):
    write_gray(tmp_path / "Rock_AO.png", (2, 2), 1)
    write_gray(tmp_path / "Rock_Roughness.png", (2, 2), 1)
    write_gray(tmp_path / "Wall_normal.png", (4, 4), 1)
    write_gray(tmp_path / "Wall_normal_big.png", (8, 8), 1)
    (tmp_path / "notes.txt").write_text("not a texture")

    texture_sets = _build_texture_sets(str(tmp_path))

    assert set(texture_sets) == {"rock", "wall"}
    assert texture_sets["rock"].texture_set_name == "Rock"
    assert set(texture_sets["rock"].available_texture_maps) == {"AO", "Roughness"}
    assert texture_sets["wall"].available_texture_maps["Normal"].resolution == (4, 4)
    # "Wall_normal_big" has no recognizable type suffix and is skipped.


def test_maps_without_set_name_are_skipped(tmp_path, capsys):
    write_gray(tmp_path / "_AO.png", (2, 2), 1)
    write_gray(tmp_path / "Rock_AO.png", (2, 2), 1)

    texture_sets = _build_texture_sets(str(tmp_path))

    assert set(texture_sets) == {"rock"}
    assert "missing texture set name" in capsys.readouterr().out


def test_largest_duplicate_map_is_kept(tmp_path):
    write_gray(tmp_path / "Rock_AO.png", (2, 2), 1)
    write_gray(tmp_path / "Rock-ao.png", (4, 4), 1)

    texture_sets = _build_texture_sets(str(tmp_path))

    assert texture_sets["rock"].available_texture_maps["AO"].resolution == (4, 4)


def test_pack_folder(tmp_path):
    write_gray(tmp_path / "Rock_AO.png", (4, 4), 200)
    write_gray(tmp_path / "Rock_Roughness.png", (8, 8), 100)

    created = channel_packer(str(tmp_path), [ORM_MODE], file_type="png", target_folder_name="packed")

    assert created == [str(tmp_path / "packed" / "Rock_ORM.png")]
    with Image.open(created[0]) as image:
        assert image.mode == "RGB"
        assert image.size == (8, 8)
    pixels = read_pixels(created[0])
    assert (np.abs(pixels[..., 0] - 200) <= 1).all()
    assert (pixels[..., 1] == 100).all()
    assert (pixels[..., 2] == 0).all()
    # Metalness is missing and falls back to its default value.


def test_pack_folder_with_inverted_alpha(tmp_path):
    write_gray(tmp_path / "Rock_Metalness.png", (2, 2), 255)
    write_gray(tmp_path / "Rock_Gloss.png", (2, 2), 30)
    mode = {"mode_name": "MaskGloss", "channels": {"R": "Metalness", "G": "AO", "B": "AO", "A": "Glossiness"}, "invert": ["A"]}

    (created,) = channel_packer(str(tmp_path), [mode], file_type="png", target_folder_name="packed")

    with Image.open(created) as image:
        assert image.mode == "RGBA"
        assert image.getpixel((0, 0)) == (255, 255, 255, 225)
    assert created.endswith("Rock_MAAG.png")


def test_mode_with_a_single_map_is_skipped(tmp_path):
    write_gray(tmp_path / "Rock_AO.png", (2, 2), 200)

    assert channel_packer(str(tmp_path), [ORM_MODE], file_type="png", target_folder_name="packed") == []


def test_invalid_file_type_aborts(tmp_path):
    write_gray(tmp_path / "Rock_AO.png", (2, 2), 200)

    with pytest.raises(SystemExit):
        channel_packer(str(tmp_path), [ORM_MODE], file_type="bmp")


def test_alpha_with_jpeg_aborts(tmp_path):
    mode = {"mode_name": "Alpha", "channels": {"R": "AO", "G": "AO", "B": "AO", "A": "Mask"}}

    with pytest.raises(SystemExit):
        channel_packer(str(tmp_path), [mode], file_type="jpg")


def test_empty_folder_aborts(tmp_path):
    with pytest.raises(SystemExit):
        channel_packer(str(tmp_path), [ORM_MODE], file_type="png")


# =============================================================================
# Command line
# =============================================================================

def test_split_command(tmp_path):
    source = tmp_path / "T_Rock_Packed.png"
    Image.new("RGBA", (2, 2), (10, 20, 30, 40)).save(source)
    output = tmp_path / "maps"

    main(["split", str(source), "G:rough.png", "AR:swizzle.png", "-o", str(output)])

    with Image.open(output / "rough.png") as rough:
        assert rough.mode == "L"
        assert rough.getpixel((1, 1)) == 20
    with Image.open(output / "swizzle.png") as swizzle:
        assert swizzle.getpixel((0, 0)) == (40, 10, 0)


def test_split_command_rejects_bad_channels(tmp_path):
    with pytest.raises(SystemExit):
        main(["split", str(tmp_path / "x.png"), "RX:out.png"])


def test_sheet_command(tmp_path):
    source = tmp_path / "fire.png"
    Image.new("RGBA", (8, 8), (255, 0, 0, 255)).save(source)
    metadata = {"sequences": [{"clamp": True, "frames": [
        {"display_time": 0, "images": [{"cropped_min": [0, 0], "cropped_max": [0.5, 0.5]}]},
    ]}]}
    (tmp_path / "fire.sheet.json").write_text(json.dumps(metadata), encoding="utf-8")
    output = tmp_path / "frames"

    main(["sheet", str(source), "-o", str(output)])

    mks = (output / "fire.mks").read_text(encoding="utf-8")
    assert mks.endswith("sequence 0\nframe fire_seq0.png 1\n")
    with Image.open(output / "fire_seq0.png") as sprite:
        assert sprite.size == (4, 4)


def test_sheet_command_without_metadata(tmp_path):
    source = tmp_path / "rock.png"
    Image.new("RGB", (2, 2), (1, 2, 3)).save(source)
    output = tmp_path / "out"

    main(["sheet", str(source), "-o", str(output)])

    assert [path.name for path in output.iterdir()] == ["rock.png"]


def test_missing_image_aborts(tmp_path):
    with pytest.raises(SystemExit):
        main(["sheet", str(tmp_path / "missing.png"), "-o", str(tmp_path)])


@pytest.mark.parametrize("metadata", [
    "{not json",
    json.dumps({"sequences": [{"frames": [{"display_time": 1, "images": [{"cropped_min": [0, 0]}]}]}]}),
])
def test_bad_sheet_metadata_aborts(tmp_path, capsys, metadata):
    source = tmp_path / "fire.png"
    Image.new("RGBA", (8, 8), (255, 0, 0, 255)).save(source)
    (tmp_path / "fire.sheet.json").write_text(metadata, encoding="utf-8")

    with pytest.raises(SystemExit) as error:
        main(["sheet", str(source), "-o", str(tmp_path / "frames")])

    assert error.value.code == 1
    assert "fire.sheet.json" in capsys.readouterr().out
    assert not (tmp_path / "frames").exists()


# =============================================================================
# Settings
# =============================================================================

def test_default_config_ships_with_the_backend():
    import os

    import settings

    assert os.path.isfile(settings._config_path)
    assert os.path.basename(os.path.dirname(settings._config_path)) == "backend"
    assert {mode["mode_name"] for mode in settings.PACKING_MODES} >= {"ORM", "MaskGloss"}
