"""Loading images from files."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image as PILImage

from .composition import Image

logger = logging.getLogger(__name__)

_TO_RGB = {"YCbCr", "LAB", "HSV"}


def _normalise(picture: PILImage.Image) -> PILImage.Image:
    if picture.mode == "P":
        has_alpha = "transparency" in picture.info
        return picture.convert("RGBA" if has_alpha else "RGB")
    if picture.mode in _TO_RGB:
        return picture.convert("RGB")
    if picture.mode in {"CMYK", "RGBX", "RGBa"}:
        return picture.convert("RGBA")
    return picture


def _to_float(data: np.ndarray) -> np.ndarray:
    if data.dtype == np.uint8:
        return data.astype(np.float32) / 255.0
    if data.dtype == np.uint16:
        return data.astype(np.float32) / 65535.0
    return data.astype(np.float32)


def import_image(path) -> Image:
    """Read an RGB or RGBA image file as float RGBA; RGB gets alpha 1.

    Raises OSError when the file cannot be read and ValueError when it does
    not have three or four channels.
    """
    path = Path(path)
    try:
        with PILImage.open(path) as picture:
            picture = _normalise(picture)
            channels = len(picture.getbands())
            data = np.asarray(picture)
    except OSError as exc:
        raise OSError(f"could not open image: {path}") from exc

    height, width = data.shape[:2]
    logger.info("Image opened. Resolution: %dx%d, channels: %d", width, height, channels)

    if channels not in (3, 4):
        raise ValueError(f"unsupported channel count {channels} in {path}")

    image = Image(width, height, (0.0, 0.0, 0.0, 1.0))
    image.pixels[..., :channels] = _to_float(data)
    return image