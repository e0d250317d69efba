
""" Image processing backend. Currently implemented using Pillow (PIL) and NumPy. PIL exports 8bit images only."""



#                                           === Backend ===

import io
from typing import Any, Tuple, TypeAlias

import numpy as np
from PIL import Image as _PIL
from PIL.Image import Image as PILImage

from backend.texture_classes import AlphaType, Raster

ImageObject: TypeAlias = PILImage


def close_image(image: object) -> None:
    close = getattr(image, "close", None)
    if callable(close):
        close()


def from_array_u8(data: Any, mode: str) -> ImageObject:
# Creates an image from a uint8 numpy array.
    image = _PIL.fromarray(np.ascontiguousarray(data, dtype=np.uint8))
    return image if image.mode == mode else image.convert(mode)


def get_size(image: ImageObject) -> Tuple[int, int]:
# Returns the image size as (width, height)
    return image.size


def open_image(path: str) -> ImageObject:
    return _PIL.open(path)


def resize(image: ImageObject, size: Tuple[int, int]) -> ImageObject:
# Resize an image using bilinear resampling.
    return image.resize(size, _PIL.BILINEAR)




#                                           === Raster conversion ===


def image_to_raster(image: ImageObject) -> Raster:
# Decodes an opened image into an RGBA raster.
# Images without an alpha band are marked opaque so they are written back without one.

    mode = image.mode
    alpha_type = AlphaType.UNPREMUL if mode in ("RGBA", "LA", "PA") or "transparency" in image.info else AlphaType.OPAQUE
    if mode in ("I", "I;16", "I;16L", "I;16B"):
        image = _16_to_8bit(image)
    rgba = image.convert("RGBA")
    return Raster(np.array(rgba, dtype=np.uint8), alpha_type)


def raster_to_image(raster: Raster) -> ImageObject:
# Converts a raster to a Pillow image: "L" for grayscale, "RGB" for opaque, "RGBA" otherwise.

    if raster.is_grayscale:
        return from_array_u8(raster.pixels, "L")
    if raster.alpha_type == AlphaType.OPAQUE:
        return from_array_u8(raster.pixels[..., :3], "RGB")
    return from_array_u8(raster.pixels, "RGBA")


def open_raster(path: str) -> Raster:
    image = open_image(path)
    try:
        return image_to_raster(image)
    finally:
        close_image(image)


def resize_raster(raster: Raster, size: Tuple[int, int]) -> Raster:
# Resamples every channel of a raster to (width, height) and returns a new raster.
# Bands are resized one at a time as "L" images, so color under transparent alpha isn't premultiplied away.

    width, height = size
    if 0 in raster.size or width <= 0 or height <= 0:
        raise ValueError(f"Cannot resample {raster.width}x{raster.height} image to {width}x{height}")

    if raster.is_grayscale:
        planes = [raster.pixels]
    else:
        planes = [raster.pixels[..., index] for index in range(4)]

    resized_planes = []
    for plane in planes:
        band = from_array_u8(plane, "L")
        resized_band = resize(band, (width, height))
        resized_planes.append(np.array(resized_band, dtype=np.uint8))
        close_image(band)
        close_image(resized_band)

    pixels = resized_planes[0] if raster.is_grayscale else np.stack(resized_planes, axis=-1)
    return Raster(pixels, raster.alpha_type)


def encode_png(raster: Raster) -> bytes:
# Encodes a raster as PNG bytes.
    image = raster_to_image(raster)
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    finally:
        close_image(image)
    return buffer.getvalue()


def save_raster(raster: Raster, path: str) -> None:
    image = raster_to_image(raster)
    try:
        image.save(path)
    finally:
        close_image(image)




#                                           === Utils ===


def _16_to_8bit(image: ImageObject) -> ImageObject:
# Scales down 16bit range to a 8bit, so values are properly maintained instead of being clipped.

    if image.mode == "I":
        img16 = image.convert("I;16")
    elif image.mode in ("I;16", "I;16L", "I;16B"):
        img16 = image if image.mode == "I;16" else image.convert("I;16")
    # Normalizes the image type to 16bit LE.
    else:
        return image.convert("L")

    data16 = np.frombuffer(img16.tobytes("raw", "I;16"), dtype="<u2").reshape(img16.size[1], img16.size[0])
    return from_array_u8((data16 >> 8).astype(np.uint8), "L")
