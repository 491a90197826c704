"""Records describing ray/surface and ray/volume interactions."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np


def _zeros(n: int):
    return lambda: np.zeros(n)


@dataclass
class IntersectInfo:
    """Everything known about the point where a ray hit a surface."""

    wo: np.ndarray = field(default_factory=_zeros(3))
    uv: np.ndarray = field(default_factory=_zeros(2))
    coord: np.ndarray = field(default_factory=_zeros(3))
    t: float = math.inf
    geometry_normal: np.ndarray = field(default_factory=_zeros(3))
    shading_normal: np.ndarray = field(default_factory=_zeros(3))
    material: Any = None
    primitive: Any = None
    time: float = 0.0

    def surface_frame(self) -> np.ndarray:
        """Local-to-world rotation whose columns are x, y and the shading normal."""
        z = np.asarray(self.shading_normal, dtype=np.float64)
        wo = np.asarray(self.wo, dtype=np.float64)
        y = np.cross(z, wo)
        if float(np.dot(y, y)) < 1e-4:
            y = np.cross(z, np.array([1.0, 0.0, 0.0]))
            if float(np.dot(y, y)) < 1e-4:
                y = np.cross(z, np.array([0.0, 1.0, 0.0]))
        y = y / np.linalg.norm(y)
        x = np.cross(z, y)
        return np.column_stack((x, y, z))


@dataclass
class VolumeInteraction:
    """A scattering event inside a participating medium."""

    wo: np.ndarray = field(default_factory=_zeros(3))
    coord: np.ndarray = field(default_factory=_zeros(3))
    valid: bool = False
    phase_func: Any = None