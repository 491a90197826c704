"""Colour spaces and luminance."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class ColorSpace(Enum):
    """Colour space tag attached to exported images."""

    LINEAR = 0
    SRGB = 1

    @property
    def label(self) -> str:
        """Name of the colour space as written into image metadata."""
        return _LABELS[self]


_LABELS = {
    ColorSpace.LINEAR: "Linear",
    ColorSpace.SRGB: "sRGB",
}


def luminance(color: Sequence[float]) -> float:
    """Perceived brightness of an RGB colour; extra components are ignored."""
    r, g, b = (float(c) for c in list(color)[:3])
    return 0.299 * r + 0.587 * g + 0.114 * b