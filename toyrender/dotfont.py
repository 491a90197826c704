"""Render text with a fixed 5x8 dot-matrix font."""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from .composition import Image

CHAR_WIDTH = 5
CHAR_HEIGHT = 8

_FIRST_CODE = 32
_LAST_CODE = 127

# Column bitmaps for characters 32..127 followed by a box for unknown characters.
# Bit n of a column byte lights the pixel in row n, counting from the top.
_GLYPHS: tuple[bytes, ...] = tuple(
    bytes.fromhex(columns)
    for columns in (
        "0000000000", "00004F0000", "0007000700", "147F147F14",
        "242A7F2A12", "2313086462", "3649562058", "0005030000",
        "001C224100", "0041221C00", "22147F1422", "08083E0808",
        "0050300000", "0808080808", "0060600000", "2010080402",
        "3E5149453E", "00427F4000", "4261514946", "2141454B31",
        "1814127F10", "2745454539", "3C4A494930", "0101710D03",
        "3649494936", "064949291E", "0036360000", "0056360000",
        "0814224100", "1414141414", "0041221408", "0201510906",
        "3E415D551E", "7C1211127C", "7F49494936", "3E41414122",
        "7F4141221C", "7F49494941", "7F09090901", "3E4149497A",
        "7F0808087F", "00417F4100", "2041413F01", "7F08142241",
        "7F40404040", "7F020C027F", "7F0408107F", "3E4141413E",
        "7F09090906", "3E4151215E", "7F09192946", "2649494932",
        "01017F0101", "3F4040403F", "1F2040201F", "3F4038403F",
        "6314081463", "0304780403", "6151494543", "007F414100",
        "0204081020", "0041417F00", "0402010204", "4040404040",
        "0000030500", "2054545478", "7F44444438", "3844444444",
        "384444447F", "3854545418", "04047E0505", "085454543C",
        "7F08040478", "00447D4000", "2040443D00", "007F102844",
        "00417F4000", "7C04780478", "7C08040478", "3844444438",
        "7C14141408", "081414147C", "007C080404", "4854545420",
        "04043F4444", "3C4040207C", "1C2040201C", "3C4030403C",
        "4428102844", "0C5050503C", "4464544C44", "0008364141",
        "00007F0000", "4141360800", "0201020402", "6058465860",
        "FF818181FF",
    )
)

_UNKNOWN_GLYPH = _GLYPHS[-1]


def _glyph(char: str) -> bytes:
    code = ord(char)
    if _FIRST_CODE <= code <= _LAST_CODE:
        return _GLYPHS[code - _FIRST_CODE]
    return _UNKNOWN_GLYPH


def _glyph_mask(glyph: bytes) -> np.ndarray:
    """Boolean (CHAR_HEIGHT, CHAR_WIDTH) mask of the lit pixels of a glyph."""
    columns = np.frombuffer(glyph, dtype=np.uint8)
    rows = np.arange(CHAR_HEIGHT, dtype=np.uint8)[:, None]
    return ((columns[None, :] >> rows) & 1).astype(bool)


def generate_text_image(
    lines: Iterable[str],
    color: Sequence[float],
    font_size: int = 1,
) -> Image:
    """Draw lines of text in color on a transparent image.

    Each character cell is one pixel wider and taller than its glyph; the
    whole image is scaled up by font_size when it is greater than one.
    """
    if font_size < 0:
        raise ValueError(f"font size must not be negative, got {font_size}")
    lines = list(lines)
    longest = max((len(text) for text in lines), default=0)
    cell_w, cell_h = CHAR_WIDTH + 1, CHAR_HEIGHT + 1
    image = Image(longest * cell_w, len(lines) * cell_h)
    pixels = image.pixels
    rgba = np.asarray(color, dtype=np.float32)

    for line_index, text in enumerate(lines):
        top = line_index * cell_h
        for char_index, char in enumerate(text):
            left = char_index * cell_w
            cell = pixels[top:top + CHAR_HEIGHT, left:left + CHAR_WIDTH]
            cell[_glyph_mask(_glyph(char))] = rgba

    if font_size > 1:
        return image.upscale(float(font_size))
    return image