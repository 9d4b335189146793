"""Loading and saving PNG images as rows of RGBA pixels."""

from __future__ import annotations

import enum

import numpy as np
from PIL import Image, UnidentifiedImageError


class OriginLocation(enum.Enum):
    """Which corner the first row of pixel data belongs to."""

    LOWER_LEFT = "lower_left"
    UPPER_LEFT = "upper_left"


def _to_rgba(image: Image.Image) -> np.ndarray:
    if image.mode in ("I", "I;16", "I;16B", "I;16L"):
        gray = (np.asarray(image, dtype=np.int64) >> 8).clip(0, 255).astype(np.uint8)
        image = Image.fromarray(gray)
    return np.asarray(image.convert("RGBA"), dtype=np.uint8)


def load_png(filename, origin: OriginLocation):
    """Read a PNG file; return ``((width, height), pixels)``.

    ``pixels`` is a ``(width * height, 4)`` uint8 array of RGBA values,
    row by row starting from the corner named by ``origin``.
    """
    try:
        stream = open(filename, "rb")
    except OSError as error:
        raise OSError(f"Failed to open PNG image file '{filename}'.") from error
    with stream:
        try:
            with Image.open(stream, formats=["PNG"]) as image:
                image.load()
                rgba = _to_rgba(image)
        except (UnidentifiedImageError, OSError, SyntaxError) as error:
            raise ValueError(f"Failed to read PNG image from '{filename}'.") from error
    if origin is OriginLocation.LOWER_LEFT:
        rgba = rgba[::-1]
    height, width = rgba.shape[:2]
    return (width, height), np.ascontiguousarray(rgba).reshape(width * height, 4)


def save_png(filename, size, data, origin: OriginLocation) -> None:
    """Write ``size = (width, height)`` RGBA pixels ``data`` as an 8-bit PNG."""
    width, height = (int(v) for v in size)
    pixels = np.asarray(data, dtype=np.uint8)
    if pixels.size != width * height * 4:
        raise ValueError(
            f"expected {width * height} RGBA pixels for a {width}x{height} image, "
            f"got {pixels.size // 4 if pixels.size % 4 == 0 else pixels.size / 4}"
        )
    rows = pixels.reshape(height, width, 4)
    if origin is OriginLocation.LOWER_LEFT:
        rows = rows[::-1]
    Image.fromarray(np.ascontiguousarray(rows)).save(filename, format="PNG")