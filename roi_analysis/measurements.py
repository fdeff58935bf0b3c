"""
Cell Measurement Store

Turns finished ROI shapes into calibrated ``Measurement`` records and keeps
them in an ordered, append-only history.

Calibration is captured once, when the analyzer is created:
- area      = raw_area / pixels_per_unit^2
- perimeter = raw_perimeter / pixels_per_unit
"""

from __future__ import annotations

import math
import warnings
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .config import AnalysisConfig, DEFAULT_CONFIG
from .geometry import ROIGeometry
from .sampling import as_sampler
from .shapes import ROIShape, ROIValidationError


class MeasurementMode(str, Enum):
    SINGLE = "single"
    BATCH = "batch"
    # declared for automatic segmentation; no detection is implemented
    AUTO_DETECT = "auto_detect"


@dataclass(frozen=True)
class Measurement:
    """One calibrated ROI measurement. Immutable once created."""

    id: int
    shape: ROIShape
    area: float
    perimeter: float
    circularity: float
    mean_intensity: float
    min_intensity: float
    max_intensity: float
    integrated_density: float
    std_dev_intensity: float
    aspect_ratio: float
    roundness: float
    solidity: float
    is_calibrated: bool
    units: str
    timestamp: datetime
    notes: Optional[str] = None

    def format_area(self) -> str:
        return f"{self.area:.2f} {self.units}²"

    def format_perimeter(self) -> str:
        return f"{self.perimeter:.2f} {self.units}"

    def format_circularity(self) -> str:
        return f"{self.circularity:.3f}"

    def format_intensities(self) -> Tuple[str, str, str]:
        """Mean, min and max intensity with one decimal."""
        return (
            f"{self.mean_intensity:.1f}",
            f"{self.min_intensity:.1f}",
            f"{self.max_intensity:.1f}",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["shape"] = self.shape.kind.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


class CellAnalyzer:
    """
    Owns the measurement history for one analysis session.

    The history is only changed by ``analyze_roi``/``analyze_batch``
    (append) and ``clear_measurements``. Not thread-safe; use it from a
    single owning context.
    """

    def __init__(
        self,
        calibration_scale: float = 1.0,
        unit: Optional[str] = None,
        mode: MeasurementMode = MeasurementMode.SINGLE,
        config: Optional[AnalysisConfig] = None,
        calibrated: Optional[bool] = None,
    ):
        """
        Parameters
        ----------
        calibration_scale : float
            Pixels per physical unit, fixed for the lifetime of the analyzer.
        unit : str, optional
            Physical unit name; defaults to ``config.default_unit``.
        mode : MeasurementMode
            Single, batch or (unimplemented) auto-detect.
        config : AnalysisConfig, optional
            Shared analysis constants.
        calibrated : bool, optional
            Whether the scale comes from a real calibration. When omitted,
            any scale or unit other than the 1.0 pixel default counts as
            calibrated.
        """
        if not calibration_scale > 0 or not math.isfinite(calibration_scale):
            raise ValueError("calibration_scale must be a positive finite number")
        self.config = config or DEFAULT_CONFIG
        self.calibration_scale = float(calibration_scale)
        self.unit = unit or self.config.default_unit
        self.mode = MeasurementMode(mode)
        self.geometry = ROIGeometry(self.config)
        self._measurements: List[Measurement] = []
        self._next_id = 1
        self._calibrated = calibrated

    @classmethod
    def from_calibration(cls, calibration, mode: MeasurementMode = MeasurementMode.SINGLE,
                         config: Optional[AnalysisConfig] = None) -> "CellAnalyzer":
        """Capture the current scale and unit of a ``SpatialCalibration``."""
        return cls(calibration.pixels_per_unit, calibration.unit, mode=mode, config=config,
                   calibrated=calibration.is_calibrated)

    @property
    def is_calibrated(self) -> bool:
        if self._calibrated is not None:
            return self._calibrated
        return not (self.calibration_scale == 1.0 and self.unit == self.config.default_unit)

    def calibrate_area(self, area: float) -> float:
        return area / (self.calibration_scale * self.calibration_scale)

    def calibrate_length(self, length: float) -> float:
        return length / self.calibration_scale

    def analyze_roi(self, shape: ROIShape, intensity_source, notes: Optional[str] = None) -> Optional[Measurement]:
        """
        Measure one ROI and append it to the history.

        Returns None, with a warning, when the shape is invalid or no image
        pixel falls inside it.
        """
        self._check_mode()
        sampler = as_sampler(intensity_source)
        try:
            raw = self.geometry.measure(shape, sampler)
        except ROIValidationError as e:
            warnings.warn(f"ROI rejected: {e}", UserWarning)
            return None

        if raw.intensity.count == 0:
            warnings.warn(
                f"{shape.kind.value} ROI covers no image pixels; no measurement recorded.",
                UserWarning,
            )
            return None

        measurement = Measurement(
            id=self._next_id,
            shape=shape,
            area=self.calibrate_area(raw.area),
            perimeter=self.calibrate_length(raw.perimeter),
            circularity=raw.circularity,
            mean_intensity=raw.intensity.mean,
            min_intensity=raw.intensity.min,
            max_intensity=raw.intensity.max,
            integrated_density=raw.intensity.integrated,
            std_dev_intensity=raw.intensity.std_dev,
            aspect_ratio=raw.aspect_ratio,
            roundness=raw.roundness,
            solidity=raw.solidity,
            is_calibrated=self.is_calibrated,
            units=self.unit,
            timestamp=datetime.now(timezone.utc),
            notes=notes,
        )
        self._next_id += 1
        self._measurements.append(measurement)
        return measurement

    def analyze_batch(self, shapes: Iterable[ROIShape], intensity_source) -> List[Measurement]:
        """Measure shapes in order; rejected shapes are skipped."""
        if self.mode is not MeasurementMode.BATCH:
            raise ValueError(f"analyze_batch requires batch mode, analyzer is in {self.mode.value} mode")
        sampler = as_sampler(intensity_source)
        results = []
        for shape in shapes:
            measurement = self.analyze_roi(shape, sampler)
            if measurement is not None:
                results.append(measurement)
        return results

    def _check_mode(self):
        if self.mode is MeasurementMode.AUTO_DETECT:
            raise NotImplementedError("Automatic cell detection is not implemented.")

    def get_measurements(self) -> Tuple[Measurement, ...]:
        return tuple(self._measurements)

    @property
    def latest_measurement(self) -> Optional[Measurement]:
        return self._measurements[-1] if self._measurements else None

    def clear_measurements(self):
        self._measurements.clear()

    def __len__(self) -> int:
        return len(self._measurements)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(tuple(self._measurements))
