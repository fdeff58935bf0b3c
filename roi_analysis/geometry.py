"""
ROI Geometry Module

Shape-specific area, perimeter and shape-factor algorithms, plus intensity
statistics over the pixels a shape covers.

Key formulas:
- Polygon area (shoelace): |sum(x_i * y_{i+1} - x_{i+1} * y_i)| / 2
- Ellipse area: pi * a * b
- Ellipse perimeter (Ramanujan II): pi (a + b) (1 + 3h / (10 + sqrt(4 - 3h))),
  with h = ((a - b) / (a + b))^2
- Circularity: 4 pi A / P^2 (0 when P is 0)

All values returned here are in pixel units; calibration is applied by the
measurement store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from .config import AnalysisConfig, DEFAULT_CONFIG
from .correlation_utils import safe_divide
from .sampling import IntensitySampler
from .shapes import (
    Ellipse,
    Line,
    Polygon,
    ROIShape,
    Rectangle,
    bounding_box,
    validate_shape,
)


@dataclass
class IntensityStatistics:
    """Summary of the pixel intensities sampled inside a shape."""

    count: int
    mean: float
    min: float
    max: float
    integrated: float
    std_dev: float

    @classmethod
    def empty(cls) -> "IntensityStatistics":
        return cls(count=0, mean=0.0, min=0.0, max=0.0, integrated=0.0, std_dev=0.0)

    @classmethod
    def from_values(cls, values: np.ndarray) -> "IntensityStatistics":
        """Accumulate count, sum and sum of squares, then derive the moments."""
        values = np.asarray(values, dtype=float).reshape(-1)
        count = int(values.size)
        if count == 0:
            return cls.empty()
        total = float(np.sum(values))
        total_sq = float(np.sum(values * values))
        mean = total / count
        if count > 1:
            variance = (total_sq - total * total / count) / (count - 1)
            std_dev = float(np.sqrt(max(variance, 0.0)))
        else:
            std_dev = 0.0
        return cls(
            count=count,
            mean=mean,
            min=float(np.min(values)),
            max=float(np.max(values)),
            integrated=total,
            std_dev=std_dev,
        )


@dataclass
class GeometryResult:
    """Raw (pixel-unit) geometry, shape factors and intensity of one ROI."""

    area: float
    perimeter: float
    circularity: float
    aspect_ratio: float
    roundness: float
    solidity: float
    intensity: IntensityStatistics


def polygon_area(points) -> float:
    pts = np.asarray(points, dtype=float)
    if len(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    x_next, y_next = np.roll(x, -1), np.roll(y, -1)
    return float(abs(np.sum(x * y_next - x_next * y)) / 2.0)


def polygon_perimeter(points) -> float:
    pts = np.asarray(points, dtype=float)
    if len(pts) < 2:
        return 0.0
    edges = np.roll(pts, -1, axis=0) - pts
    return float(np.sum(np.hypot(edges[:, 0], edges[:, 1])))


def ellipse_perimeter(a: float, b: float) -> float:
    """Ramanujan's second approximation of the ellipse circumference."""
    if a + b == 0:
        return 0.0
    h = ((a - b) / (a + b)) ** 2
    return float(np.pi * (a + b) * (1.0 + 3.0 * h / (10.0 + np.sqrt(4.0 - 3.0 * h))))


def circularity(area: float, perimeter: float) -> float:
    if perimeter <= 0:
        return 0.0
    return float(4.0 * np.pi * area / (perimeter * perimeter))


def _polygon_contains(points, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Even-odd ray casting, vectorised over the query coordinates."""
    verts = np.asarray(points, dtype=float)
    xs = xs.astype(float)
    ys = ys.astype(float)
    inside = np.zeros(xs.shape, dtype=bool)
    n = len(verts)
    j = n - 1
    for i in range(n):
        xi, yi = verts[i]
        xj, yj = verts[j]
        crosses = (yi > ys) != (yj > ys)
        if yj != yi:
            x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
            inside ^= crosses & (xs < x_cross)
        j = i
    return inside


def _rectangle_contains(shape: Rectangle, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    return (
        (xs >= shape.x) & (xs < shape.x + shape.width)
        & (ys >= shape.y) & (ys < shape.y + shape.height)
    )


def _ellipse_contains(shape: Ellipse, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Pixels whose centre (x + 0.5, y + 0.5) lies inside the ellipse."""
    a, b = shape.semi_axes
    cx, cy = shape.center
    return ((xs + 0.5 - cx) / a) ** 2 + ((ys + 0.5 - cy) / b) ** 2 <= 1.0


def _line_pixels(shape: Line) -> Tuple[np.ndarray, np.ndarray]:
    """Nearest pixels to round(length) + 1 evenly spaced points on the segment."""
    (x1, y1), (x2, y2) = shape.endpoints
    steps = int(np.floor(np.hypot(x2 - x1, y2 - y1) + 0.5))
    t = np.linspace(0.0, 1.0, steps + 1) if steps > 0 else np.zeros(1)
    xs = np.floor(x1 + (x2 - x1) * t + 0.5).astype(int)
    ys = np.floor(y1 + (y2 - y1) * t + 0.5).astype(int)
    return xs, ys


class ROIGeometry:
    """
    Geometry and intensity measurement for every ROI shape kind.

    Dispatch is a table keyed by shape type; each entry returns the raw
    ``(area, perimeter)`` pair for its shape.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._metrics: Dict[type, Callable[[ROIShape], Tuple[float, float]]] = {
            Polygon: self._polygon_metrics,
            Rectangle: self._rectangle_metrics,
            Ellipse: self._ellipse_metrics,
            Line: self._line_metrics,
        }

    def measure(self, shape: ROIShape, sampler: IntensitySampler) -> GeometryResult:
        """
        Validate ``shape`` and compute its raw geometry and intensity statistics.

        Raises
        ------
        ROIValidationError
            If the shape fails validation.
        """
        validate_shape(shape)
        area, perimeter = self.area_perimeter(shape)
        aspect_ratio, roundness = self.shape_factors(shape)
        return GeometryResult(
            area=area,
            perimeter=perimeter,
            circularity=circularity(area, perimeter),
            aspect_ratio=aspect_ratio,
            roundness=roundness,
            solidity=self.solidity(area),
            intensity=self.intensity_statistics(shape, sampler),
        )

    def area_perimeter(self, shape: ROIShape) -> Tuple[float, float]:
        return self._metrics[type(shape)](shape)

    def _polygon_metrics(self, shape: Polygon) -> Tuple[float, float]:
        return polygon_area(shape.points), polygon_perimeter(shape.points)

    def _rectangle_metrics(self, shape: Rectangle) -> Tuple[float, float]:
        w, h = float(shape.width), float(shape.height)
        return w * h, 2.0 * (w + h)

    def _ellipse_metrics(self, shape: Ellipse) -> Tuple[float, float]:
        a, b = shape.semi_axes
        return float(np.pi * a * b), ellipse_perimeter(a, b)

    def _line_metrics(self, shape: Line) -> Tuple[float, float]:
        (x1, y1), (x2, y2) = shape.endpoints
        return 0.0, float(np.hypot(x2 - x1, y2 - y1))

    def shape_factors(self, shape: ROIShape) -> Tuple[float, float]:
        """Aspect ratio (bounding-box width / height) and roundness (its inverse)."""
        if isinstance(shape, (Rectangle, Ellipse)):
            box_w, box_h = float(shape.width), float(shape.height)
        else:
            min_x, min_y, max_x, max_y = bounding_box(shape)
            box_w, box_h = float(max_x - min_x), float(max_y - min_y)
        aspect_ratio = safe_divide(box_w, box_h)
        roundness = safe_divide(1.0, aspect_ratio)
        return aspect_ratio, roundness

    def solidity(self, area: float) -> float:
        # convex hull area is approximated, not computed
        hull_area = area * self.config.convex_hull_factor
        return safe_divide(area, hull_area)

    def intensity_statistics(self, shape: ROIShape, sampler: IntensitySampler) -> IntensityStatistics:
        """Statistics over the in-image pixels covered by ``shape``."""
        if isinstance(shape, Line):
            xs, ys = _line_pixels(shape)
        else:
            min_x, min_y, max_x, max_y = bounding_box(shape)
            ys, xs = np.mgrid[min_y:max_y + 1, min_x:max_x + 1]
            if isinstance(shape, Polygon):
                inside = _polygon_contains(shape.points, xs, ys)
            elif isinstance(shape, Rectangle):
                inside = _rectangle_contains(shape, xs, ys)
            else:
                inside = _ellipse_contains(shape, xs, ys)
            xs, ys = xs[inside], ys[inside]

        keep = sampler.in_bounds(xs, ys)
        return IntensityStatistics.from_values(sampler.values_at(xs[keep], ys[keep]))
