"""
Spatial Calibration Module

Maps pixel distances to physical units from user-supplied correspondences
between pixel coordinates and real-world coordinates.

pixels_per_unit is the mean, over every pair of calibration points whose
real-world separation is non-zero, of pixel_distance / real_distance.
With fewer than two points the scale stays at its previous value
(1.0, i.e. uncalibrated, by default).

An optional 3x3 affine matrix overrides the isotropic scale for coordinate
conversion:
    [x_real, y_real] = M[:2, :2] @ [x_px, y_px] + M[:2, 2]
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import AnalysisConfig, DEFAULT_CONFIG


@dataclass
class CalibrationPoint:
    pixel_coord: Tuple[int, int]
    real_coord: Tuple[float, float]


class SpatialCalibration:
    """Pixel-to-physical-unit mapping for one imaging session."""

    def __init__(self, unit: Optional[str] = None, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.unit = unit or self.config.default_unit
        self.points: List[CalibrationPoint] = []
        self.pixels_per_unit = 1.0
        self.transformation_matrix: Optional[np.ndarray] = None
        self._n_pairs = 0

    def add_point(self, pixel_coord: Tuple[int, int], real_coord: Tuple[float, float]):
        self.points.append(CalibrationPoint(
            pixel_coord=(int(pixel_coord[0]), int(pixel_coord[1])),
            real_coord=(float(real_coord[0]), float(real_coord[1])),
        ))
        self.calculate_calibration()

    def calculate_calibration(self):
        """Recompute ``pixels_per_unit`` from all usable point pairs."""
        if len(self.points) < 2:
            return

        ratios = []
        skipped = 0
        for i in range(len(self.points)):
            for j in range(i + 1, len(self.points)):
                pi, pj = self.points[i], self.points[j]
                pixel_dist = float(np.hypot(pi.pixel_coord[0] - pj.pixel_coord[0],
                                            pi.pixel_coord[1] - pj.pixel_coord[1]))
                real_dist = float(np.hypot(pi.real_coord[0] - pj.real_coord[0],
                                           pi.real_coord[1] - pj.real_coord[1]))
                if real_dist <= self.config.distance_epsilon:
                    skipped += 1
                    continue
                ratios.append(pixel_dist / real_dist)

        if skipped:
            warnings.warn(
                f"Skipped {skipped} calibration pair(s) with zero real-world distance.",
                UserWarning,
            )
        # a zero ratio (coincident pixels) would break the scale invariant
        if ratios and np.mean(ratios) > 0:
            self.pixels_per_unit = float(np.mean(ratios))
            self._n_pairs = len(ratios)

    @property
    def is_calibrated(self) -> bool:
        return self._n_pairs > 0

    def clear(self):
        self.points.clear()
        self.pixels_per_unit = 1.0
        self.transformation_matrix = None
        self._n_pairs = 0

    def set_transformation_matrix(self, matrix: Optional[Sequence[Sequence[float]]]):
        if matrix is None:
            self.transformation_matrix = None
            return
        m = np.asarray(matrix, dtype=float)
        if m.shape != (3, 3):
            raise ValueError("Transformation matrix must be 3x3")
        self.transformation_matrix = m

    def pixel_to_real(self, pixel_coord: Tuple[float, float]) -> Tuple[float, float]:
        px, py = float(pixel_coord[0]), float(pixel_coord[1])
        m = self.transformation_matrix
        if m is not None:
            return (
                float(m[0, 0] * px + m[0, 1] * py + m[0, 2]),
                float(m[1, 0] * px + m[1, 1] * py + m[1, 2]),
            )
        return px / self.pixels_per_unit, py / self.pixels_per_unit

    def real_to_pixel(self, real_coord: Tuple[float, float]) -> Tuple[float, float]:
        rx, ry = float(real_coord[0]), float(real_coord[1])
        m = self.transformation_matrix
        if m is not None:
            det = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
            if det != 0:
                dx, dy = rx - m[0, 2], ry - m[1, 2]
                return (
                    float((m[1, 1] * dx - m[0, 1] * dy) / det),
                    float((m[0, 0] * dy - m[1, 0] * dx) / det),
                )
        return rx * self.pixels_per_unit, ry * self.pixels_per_unit

    def pixel_distance_to_real(self, distance: float) -> float:
        return float(distance) / self.pixels_per_unit

    def real_distance_to_pixel(self, distance: float) -> float:
        return float(distance) * self.pixels_per_unit

    def to_record(self, objective: str = "", image_name: Optional[str] = None,
                  notes: Optional[str] = None) -> "CalibrationRecord":
        """Snapshot the current scale, using the first and last points as the reference segment."""
        pixel_distance = real_distance = 0.0
        if len(self.points) >= 2:
            first, last = self.points[0], self.points[-1]
            pixel_distance = float(np.hypot(first.pixel_coord[0] - last.pixel_coord[0],
                                            first.pixel_coord[1] - last.pixel_coord[1]))
            real_distance = float(np.hypot(first.real_coord[0] - last.real_coord[0],
                                           first.real_coord[1] - last.real_coord[1]))
        return CalibrationRecord(
            objective=objective,
            pixels_per_unit=self.pixels_per_unit,
            unit=self.unit,
            pixel_distance=pixel_distance,
            real_distance=real_distance,
            image_name=image_name,
            notes=notes,
        )


@dataclass
class CalibrationRecord:
    """A saved calibration, as listed in calibration reports."""

    objective: str
    pixels_per_unit: float
    unit: str
    pixel_distance: float
    real_distance: float
    image_name: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_report_string(self) -> str:
        lines = [
            f"- Objective: {self.objective}",
            f"- Image: {self.image_name or 'Unknown'}",
            f"- Scale: {self.pixels_per_unit:.4f} pixels/{self.unit}",
            f"- Reference: {self.pixel_distance:.2f} pixels = {self.real_distance:.4f} {self.unit}",
            f"- Date: {self.timestamp.isoformat()}",
        ]
        if self.notes:
            lines.append(f"- Notes: {self.notes}")
        return "\n".join(lines) + "\n"


class CalibrationReport:
    """Tabular and Markdown export of saved calibrations."""

    COLUMNS = [
        "Date",
        "Image",
        "Objective",
        "Pixel Distance",
        "Real Distance",
        "Unit",
        "Scale Ratio",
        "Notes",
    ]

    def __init__(self, records: Sequence[CalibrationRecord]):
        self.records = list(records)
        self.export_date = datetime.now(timezone.utc)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "Date": r.timestamp.isoformat(),
                "Image": r.image_name or "Unknown",
                "Objective": r.objective,
                "Pixel Distance": r.pixel_distance,
                "Real Distance": r.real_distance,
                "Unit": r.unit,
                "Scale Ratio": r.pixels_per_unit,
                "Notes": r.notes or "",
            }
            for r in self.records
        ]
        return pd.DataFrame(rows, columns=self.COLUMNS)

    def export_csv(self, path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(path, index=False)
        return path

    def export_markdown(self, path) -> Path:
        content = "# Calibration Report\n\n"
        content += f"Generated: {self.export_date.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
        for record in self.records:
            content += "## Calibration Entry\n\n"
            content += record.to_report_string()
            content += "\n---\n\n"
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
