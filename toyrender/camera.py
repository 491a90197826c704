"""Pinhole and thin-lens camera."""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence

import numpy as np

LensRejector = Callable[[np.ndarray], bool]


def _normalize(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


class Camera:
    """A camera looking down its local -z axis.

    rotation maps camera space to world space; its columns are the camera's
    x (right), y (up) and z (backward) axes.
    """

    def __init__(
        self,
        origin: Sequence[float],
        rotation,
        fov: float,
        aspect_ratio: float,
    ) -> None:
        self.origin = np.array(origin, dtype=np.float64).reshape(3)
        self.rotation = np.array(rotation, dtype=np.float64).reshape(3, 3)
        self.fov = float(fov)
        self.aspect_ratio = float(aspect_ratio)
        self.lens_radius = 0.0
        self.focal_distance = 4.0
        self.reject_lens_sample: Optional[LensRejector] = None
        self.rng = np.random.default_rng()

    @classmethod
    def from_look_at(cls, eye, center, up, fov: float, aspect_ratio: float) -> "Camera":
        """Camera at eye looking towards center with the given up vector."""
        camera = cls(eye, np.eye(3), fov, aspect_ratio)
        camera.look_at(eye, center, up)
        return camera

    def look_at(self, eye, center, up) -> None:
        """Place the camera at eye and turn it towards center."""
        eye = np.asarray(eye, dtype=np.float64)
        z_dir = eye - np.asarray(center, dtype=np.float64)
        x = _normalize(np.cross(np.asarray(up, dtype=np.float64), z_dir))
        z = _normalize(z_dir)
        y = np.cross(z, x)
        self.origin = eye.copy()
        self.rotation = np.column_stack((x, y, z))

    def _lens_sample(self) -> np.ndarray:
        sample = self.rng.uniform(0.0, 1.0, 2)
        if self.reject_lens_sample is not None:
            while self.reject_lens_sample(sample):
                sample = self.rng.uniform(0.0, 1.0, 2)
        return sample

    def spawn_ray(self, coord) -> tuple[np.ndarray, np.ndarray]:
        """Ray (origin, unit direction) through screen coordinate coord.

        coord is in [0, 1]^2 with (0, 0) at the top-left of the screen.
        """
        u, v = float(coord[0]), 1.0 - float(coord[1])
        ndc_x, ndc_y = 2.0 * u - 1.0, 2.0 * v - 1.0
        half = math.tan(self.fov / 2.0)
        ray_screen = np.array([ndc_x * self.aspect_ratio * half, ndc_y * half, -1.0]) * self.focal_distance

        if self.lens_radius > 0.0:
            lens = self._lens_sample() * 2.0 - 1.0
            origin = self.rotation @ (self.lens_radius * np.array([lens[0], lens[1], 0.0]))
        else:
            origin = np.zeros(3)

        direction = self.rotation @ _normalize(ray_screen - origin)
        return origin + self.origin, direction