"""
ROI Shape Definitions

Closed set of region-of-interest shapes produced by the drawing layer:
- Polygon: closed outline through an ordered list of vertices
- Rectangle / Ellipse: axis-aligned, described by their bounding box
- Line: straight segment (only the first two points are measured)

Coordinates are integer image pixels (x to the right, y downwards). Shapes
are frozen, so a stored measurement always refers to the outline it measured.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence, Tuple, Union


Point = Tuple[int, int]


class ShapeKind(str, Enum):
    """Discriminant of the ROI shape union."""

    POLYGON = "polygon"
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    LINE = "line"


class ROIValidationError(Exception):
    """Raised when an ROI shape is malformed and cannot be measured."""
    pass


def _coerce_points(points: Sequence[Sequence[int]]) -> Tuple[Point, ...]:
    return tuple((int(p[0]), int(p[1])) for p in points)


@dataclass(frozen=True)
class Polygon:
    points: Tuple[Point, ...]
    kind: ShapeKind = field(default=ShapeKind.POLYGON, init=False)

    def __post_init__(self):
        object.__setattr__(self, "points", _coerce_points(self.points))


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned rectangle; ``x, y`` is the top-left corner."""

    width: int
    height: int
    x: int = 0
    y: int = 0
    kind: ShapeKind = field(default=ShapeKind.RECTANGLE, init=False)


@dataclass(frozen=True)
class Ellipse:
    """Axis-aligned ellipse inscribed in the box ``(x, y, width, height)``."""

    width: int
    height: int
    x: int = 0
    y: int = 0
    kind: ShapeKind = field(default=ShapeKind.ELLIPSE, init=False)

    @property
    def semi_axes(self) -> Tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0


@dataclass(frozen=True)
class Line:
    points: Tuple[Point, ...]
    kind: ShapeKind = field(default=ShapeKind.LINE, init=False)

    def __post_init__(self):
        object.__setattr__(self, "points", _coerce_points(self.points))

    @property
    def endpoints(self) -> Tuple[Point, Point]:
        return self.points[0], self.points[1]


ROIShape = Union[Polygon, Rectangle, Ellipse, Line]


def bounding_box(shape: ROIShape) -> Tuple[int, int, int, int]:
    """
    Inclusive integer bounding box ``(min_x, min_y, max_x, max_y)`` to scan.

    Rectangles and ellipses cover the pixels of the half-open box
    ``[x, x + width) x [y, y + height)``.
    """
    if isinstance(shape, (Rectangle, Ellipse)):
        return shape.x, shape.y, shape.x + shape.width - 1, shape.y + shape.height - 1
    if isinstance(shape, Line):
        pts = list(shape.endpoints)
    else:
        pts = shape.points
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return min(xs), min(ys), max(xs), max(ys)


def _orientation(p: Point, q: Point, r: Point) -> int:
    """Sign of the cross product of (q - p) and (r - q): 1, -1 or 0 for collinear."""
    val = (q[1] - p[1]) * (r[0] - q[0]) - (q[0] - p[0]) * (r[1] - q[1])
    if val > 0:
        return 1
    if val < 0:
        return -1
    return 0


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """True when segment p1-p2 and segment p3-p4 properly cross.

    Each segment's endpoints must lie strictly on opposite sides of the
    other segment's line. Touching or collinear overlap is not a crossing.
    """
    o1 = _orientation(p1, p2, p3)
    o2 = _orientation(p1, p2, p4)
    o3 = _orientation(p3, p4, p1)
    o4 = _orientation(p3, p4, p2)
    return o1 * o2 < 0 and o3 * o4 < 0


def has_self_intersection(points: Sequence[Point]) -> bool:
    """Test every pair of non-adjacent edges of the closed polygon."""
    n = len(points)
    if n < 4:
        return False
    edges = [(points[i], points[(i + 1) % n]) for i in range(n)]
    for i in range(n):
        for j in range(i + 2, n):
            # first and closing edge share vertex 0
            if i == 0 and j == n - 1:
                continue
            if segments_intersect(edges[i][0], edges[i][1], edges[j][0], edges[j][1]):
                return True
    return False


def validate_shape(shape: ROIShape) -> None:
    """
    Check that a shape can be measured.

    Raises
    ------
    ROIValidationError
        If the polygon has fewer than 3 points or self-intersects, the line
        has fewer than 2 points, or a rectangle/ellipse has a non-positive
        dimension.
    """
    if isinstance(shape, Polygon):
        if len(shape.points) < 3:
            raise ROIValidationError("Polygon must have at least 3 points")
        if has_self_intersection(shape.points):
            raise ROIValidationError("Polygon cannot self-intersect")
    elif isinstance(shape, (Rectangle, Ellipse)):
        if shape.width <= 0 or shape.height <= 0:
            name = shape.kind.value.capitalize()
            raise ROIValidationError(f"{name} dimensions must be positive")
    elif isinstance(shape, Line):
        if len(shape.points) < 2:
            raise ROIValidationError("Line must have at least 2 points")
    else:
        raise ROIValidationError(f"Unsupported ROI shape: {type(shape).__name__}")


def validate_bounds(point: Point, width: int, height: int) -> None:
    """Raise ``ROIValidationError`` if ``point`` lies outside a ``width x height`` image."""
    x, y = point
    if x < 0 or x >= width or y < 0 or y >= height:
        raise ROIValidationError(
            f"Point {tuple(point)} is outside image bounds {width}x{height}"
        )
