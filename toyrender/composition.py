"""Float RGBA images, pixel shading and layer compositing."""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

import numpy as np
from PIL import Image as PILImage
from PIL.PngImagePlugin import PngInfo

from .color import ColorSpace, luminance

PixelShader = Callable[[int, int], Sequence[float]]
PixelShaderSSAA = Callable[[np.ndarray], Sequence[float]]
RayTracingShader = Callable[[np.ndarray], Sequence[float]]

_NO_ALPHA_SUFFIXES = {".jpg", ".jpeg", ".bmp"}


class Image:
    """A width x height grid of RGBA float pixels, addressed as image[x, y]."""

    def __init__(self, width: int, height: int, fill: Sequence[float] = (0.0, 0.0, 0.0, 0.0)) -> None:
        width, height = int(width), int(height)
        if width < 0 or height < 0:
            raise ValueError(f"invalid image size {width}x{height}")
        self._pixels = np.empty((height, width, 4), dtype=np.float32)
        self._pixels[...] = np.asarray(fill, dtype=np.float32)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def pixels(self) -> np.ndarray:
        """The underlying (height, width, 4) array; row 0 is the top row."""
        return self._pixels

    def _inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def __getitem__(self, xy) -> np.ndarray:
        x, y = int(xy[0]), int(xy[1])
        if not self._inside(x, y):
            return np.zeros(4, dtype=np.float32)
        return self._pixels[y, x].copy()

    def __setitem__(self, xy, value) -> None:
        x, y = int(xy[0]), int(xy[1])
        if self._inside(x, y):
            self._pixels[y, x] = np.asarray(value, dtype=np.float32)

    def _coords(self):
        return itertools.product(range(self.width), range(self.height))

    def export(self, filename, color_space: ColorSpace = ColorSpace.SRGB) -> None:
        """Write the image as 8-bit RGBA (or RGB where the format has no alpha)."""
        path = Path(filename)
        data = np.rint(np.clip(self._pixels, 0.0, 1.0) * 255.0).astype(np.uint8)
        picture = PILImage.fromarray(data)
        suffix = path.suffix.lower()
        if suffix in _NO_ALPHA_SUFFIXES:
            picture = picture.convert("RGB")
        if suffix == ".png":
            info = PngInfo()
            info.add_text("ColorSpace", color_space.label)
            picture.save(path, pnginfo=info)
        else:
            picture.save(path)

    def pixel_shade(self, shader: PixelShader) -> None:
        """Set every pixel to shader(x, y)."""
        for x, y in self._coords():
            self._pixels[y, x] = np.asarray(shader(x, y), dtype=np.float32)

    def _sample_offsets(self, x_sample: int, y_sample: int):
        return [
            ((xx + 0.5) / x_sample, (yy + 0.5) / x_sample)
            for xx, yy in itertools.product(range(x_sample), range(y_sample))
        ]

    def _screen_coord(self, x: int, y: int, offset) -> np.ndarray:
        return np.array([(x + offset[0]) / self.width, (y + offset[1]) / self.height])

    def pixel_shade_ssaa(self, shader: PixelShaderSSAA, x_sample: int, y_sample: int) -> None:
        """Average shader over a grid of sub-pixel screen coordinates."""
        offsets = self._sample_offsets(x_sample, y_sample)
        scale = 1.0 / (float(x_sample) * float(y_sample))
        for x, y in self._coords():
            contribution = np.zeros(4)
            for offset in offsets:
                contribution += np.asarray(shader(self._screen_coord(x, y, offset)), dtype=np.float64)
            self._pixels[y, x] = contribution * scale

    def _trace_pixel(self, shader, x, y, offsets, spp, tolerance) -> np.ndarray:
        contribution = np.zeros(3)
        lum_sum = 0.0
        lum2_sum = 0.0
        count = 0
        for offset in offsets:
            coord = self._screen_coord(x, y, offset)
            for i in range(spp):
                radiance = np.asarray(shader(coord), dtype=np.float64)[:3]
                contribution += radiance
                lum = luminance(radiance)
                lum_sum += lum
                lum2_sum += lum * lum
                taken = count + 1
                if taken % 8 == 0:
                    mu = lum_sum / taken
                    sigma2 = (lum2_sum - lum_sum * lum_sum / taken) / count + 1e-8
                    half_width = 1.96 * math.sqrt(max(sigma2, 0.0) / (i + 1))
                    if half_width <= tolerance * mu:
                        return contribution / taken
                count = taken
        return contribution / count

    def ray_trace(
        self,
        shader: RayTracingShader,
        x_sample: int,
        y_sample: int,
        spp: int,
        max_noise_tolerance: float,
    ) -> None:
        """Render with adaptive sampling: stop a pixel once its estimate is confident."""
        if x_sample <= 0 or y_sample <= 0 or spp <= 0:
            raise ValueError("sample counts must be positive")
        offsets = self._sample_offsets(x_sample, y_sample)
        for x, y in self._coords():
            color = self._trace_pixel(shader, x, y, offsets, spp, max_noise_tolerance)
            self._pixels[y, x] = (*color, 1.0)

    def upscale(self, factor: float) -> "Image":
        """Nearest-neighbour scaling by factor."""
        result = Image(int(self.width * factor), int(self.height * factor))
        result.pixel_shade(lambda x, y: self[int(x / factor), int(y / factor)])
        return result

    def next_mipmap(self) -> "Image":
        """Half-size image taking every other pixel."""
        result = Image(self.width >> 1, self.height >> 1)
        result.pixel_shade(lambda x, y: self[x * 2, y * 2])
        return result

    def average(self) -> np.ndarray:
        """Mean RGBA value over all pixels."""
        total = self._pixels.sum(axis=(0, 1), dtype=np.float64)
        return total / (float(self.width) * float(self.height))


class MixMode(Enum):
    """How a layer is combined with what lies beneath it."""

    NORMAL = 0
    DIFF = 1
    MAX = 2
    NORMAL_CLAMP = 3
    DIFF_CLAMP = 4
    INVERT = 5


@dataclass
class Layer:
    """An image placed on a canvas at an integer offset."""

    image: Image
    position: tuple[int, int]
    mix_mode: MixMode = MixMode.NORMAL


class Canvas:
    """A stack of layers flattened into a single image."""

    def __init__(self, width: int, height: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self.layers: list[Layer] = []

    def to_image(self) -> Image:
        result = Image(self.width, self.height)
        for layer in self.layers:
            px, py = int(layer.position[0]), int(layer.position[1])
            x0, x1 = max(px, 0), min(self.width, px + layer.image.width)
            y0, y1 = max(py, 0), min(self.height, py + layer.image.height)
            if x1 <= x0 or y1 <= y0:
                continue
            dst = result.pixels[y0:y1, x0:x1]
            src = layer.image.pixels[y0 - py:y1 - py, x0 - px:x1 - px]
            mode = layer.mix_mode
            if mode is MixMode.NORMAL:
                dst += src
            elif mode is MixMode.DIFF:
                dst[...] = np.abs(dst - src)
            elif mode is MixMode.DIFF_CLAMP:
                dst[...] = np.clip(np.abs(dst - src), 0.0, 1.0)
            elif mode is MixMode.MAX:
                dst[...] = np.maximum(dst, src)
            elif mode is MixMode.INVERT:
                mask = src[..., 3] != 0.0
                dst[mask, :3] = 1.0 - dst[mask, :3]
            elif mode is MixMode.NORMAL_CLAMP:
                dst[...] = np.clip(dst + src, 0.0, 1.0)
        return result