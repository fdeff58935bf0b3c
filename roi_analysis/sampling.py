"""
Pixel intensity sampling.

Reads scalar intensities from a grayscale ``(H, W)`` or color ``(H, W, C)``
image. A color pixel's intensity is the mean of its channel values, kept on
the 8-bit scale unless ``normalized`` is requested.
"""

from __future__ import annotations

import warnings
from typing import Any

import numpy as np

from .config import DEFAULT_CONFIG


class IntensitySampler:
    """Pixel-addressable intensity view over an image array."""

    def __init__(self, image: np.ndarray, normalized: bool = False, intensity_scale: float = DEFAULT_CONFIG.intensity_scale):
        """
        Args:
            image: 2D ``(H, W)`` or 3D ``(H, W, C)`` array of channel values.
            normalized: If True, intensities are divided by ``intensity_scale``.
            intensity_scale: Full-scale value of one channel (255 for 8-bit).
        """
        arr = np.asarray(image, dtype=float)
        if arr.ndim == 3:
            arr = arr.mean(axis=2)
        elif arr.ndim != 2:
            raise ValueError("Image must be 2D (H, W) or 3D (H, W, C).")

        if not np.all(np.isfinite(arr)):
            warnings.warn("Image contains non-finite values; they are sampled as 0.", UserWarning)
            arr = np.nan_to_num(arr, nan=0.0, posinf=0.0, neginf=0.0)

        if normalized:
            arr = arr / float(intensity_scale)

        self._intensity = arr
        self.normalized = normalized

    @property
    def width(self) -> int:
        return int(self._intensity.shape[1])

    @property
    def height(self) -> int:
        return int(self._intensity.shape[0])

    @property
    def intensity_map(self) -> np.ndarray:
        """Per-pixel scalar intensity as a read-only ``(H, W)`` view."""
        view = self._intensity.view()
        view.flags.writeable = False
        return view

    def get_intensity(self, x: int, y: int) -> float:
        """Intensity at pixel ``(x, y)``; 0.0 outside the image."""
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return 0.0
        return float(self._intensity[y, x])

    def in_bounds(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Boolean mask of coordinates that fall inside the image."""
        xs = np.asarray(xs)
        ys = np.asarray(ys)
        return (xs >= 0) & (ys >= 0) & (xs < self.width) & (ys < self.height)

    def values_at(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised ``get_intensity``; out-of-bounds coordinates read as 0."""
        xs = np.asarray(xs, dtype=int)
        ys = np.asarray(ys, dtype=int)
        values = np.zeros(xs.shape, dtype=float)
        valid = self.in_bounds(xs, ys)
        values[valid] = self._intensity[ys[valid], xs[valid]]
        return values


def as_sampler(source: Any, normalized: bool = False) -> IntensitySampler:
    """
    Coerce an intensity source into an ``IntensitySampler``.

    Accepts a sampler (returned unchanged), an image array, or any object
    exposing ``width``, ``height`` and ``get_intensity(x, y)``; the latter is
    read once, pixel by pixel, into an array.
    """
    if isinstance(source, IntensitySampler):
        return source
    if not isinstance(source, np.ndarray) and hasattr(source, "get_intensity"):
        width, height = int(source.width), int(source.height)
        image = np.array(
            [[source.get_intensity(x, y) for x in range(width)] for y in range(height)],
            dtype=float,
        ).reshape(height, width)
        return IntensitySampler(image, normalized=normalized)
    return IntensitySampler(source, normalized=normalized)
