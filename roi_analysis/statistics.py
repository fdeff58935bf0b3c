"""
Cell Population Statistics

Descriptive statistics, pairwise correlations and Tukey outlier detection
over a snapshot of ``Measurement`` records. Every function here is pure: the
results depend only on the measurements passed in.

Moments:
- std_dev: sample standard deviation (n - 1 denominator)
- skewness: m3 / s^3
- kurtosis: m4 / s^4 - 3 (excess)
where m_k are the population central moments and s is the sample std_dev.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import AnalysisConfig, DEFAULT_CONFIG
from .correlation_utils import pearson_correlation, safe_divide
from .geometry import circularity
from .measurements import Measurement


METRICS: Tuple[Tuple[str, str], ...] = (
    ("Area", "area"),
    ("Perimeter", "perimeter"),
    ("Circularity", "circularity"),
    ("Mean Intensity", "mean_intensity"),
)


@dataclass
class MetricStatistics:
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    skewness: float = 0.0
    kurtosis: float = 0.0
    coefficient_of_variation: float = 0.0

    @classmethod
    def calculate(cls, values: Sequence[float]) -> "MetricStatistics":
        """Descriptive statistics of ``values``; all zeros for an empty sample."""
        x = np.asarray(values, dtype=float).reshape(-1)
        n = x.size
        if n == 0:
            return cls()

        mean = float(np.mean(x))
        median = float(np.median(x))
        std_dev = float(np.std(x, ddof=1)) if n > 1 else 0.0

        dev = x - mean
        m3 = float(np.mean(dev ** 3))
        m4 = float(np.mean(dev ** 4))
        if std_dev > 0:
            skewness = m3 / std_dev ** 3
            kurtosis = m4 / std_dev ** 4 - 3.0
        else:
            skewness = 0.0
            kurtosis = 0.0

        return cls(
            mean=mean,
            median=median,
            std_dev=std_dev,
            min=float(np.min(x)),
            max=float(np.max(x)),
            skewness=skewness,
            kurtosis=kurtosis,
            coefficient_of_variation=safe_divide(std_dev, mean),
        )


@dataclass
class CorrelationMatrix:
    """Pairwise Pearson coefficients among area, perimeter, circularity and intensity."""

    area_perimeter: float = 0.0
    area_circularity: float = 0.0
    area_intensity: float = 0.0
    perimeter_circularity: float = 0.0
    perimeter_intensity: float = 0.0
    circularity_intensity: float = 0.0

    @classmethod
    def calculate(cls, area, perimeter, circ, intensity) -> "CorrelationMatrix":
        return cls(
            area_perimeter=pearson_correlation(area, perimeter),
            area_circularity=pearson_correlation(area, circ),
            area_intensity=pearson_correlation(area, intensity),
            perimeter_circularity=pearson_correlation(perimeter, circ),
            perimeter_intensity=pearson_correlation(perimeter, intensity),
            circularity_intensity=pearson_correlation(circ, intensity),
        )

    def as_matrix(self) -> np.ndarray:
        """Symmetric 4x4 matrix in ``METRICS`` order with a unit diagonal."""
        m = np.eye(4)
        pairs = {
            (0, 1): self.area_perimeter,
            (0, 2): self.area_circularity,
            (0, 3): self.area_intensity,
            (1, 2): self.perimeter_circularity,
            (1, 3): self.perimeter_intensity,
            (2, 3): self.circularity_intensity,
        }
        for (i, j), value in pairs.items():
            m[i, j] = m[j, i] = value
        return m


@dataclass
class CellStatistics:
    sample_size: int
    area_stats: MetricStatistics
    perimeter_stats: MetricStatistics
    circularity_stats: MetricStatistics
    intensity_stats: MetricStatistics
    correlations: CorrelationMatrix

    def metric_items(self) -> List[Tuple[str, MetricStatistics]]:
        return [
            ("Area", self.area_stats),
            ("Perimeter", self.perimeter_stats),
            ("Circularity", self.circularity_stats),
            ("Intensity", self.intensity_stats),
        ]

    def to_dict(self) -> Dict:
        return asdict(self)


def percentile(values: Sequence[float], p: float) -> float:
    """
    Linear-interpolated percentile, ``p`` in [0, 1].

    Position ``(n - 1) * p`` in the sorted values, interpolating between
    neighbours. Returns 0.0 for an empty input.
    """
    x = np.asarray(values, dtype=float).reshape(-1)
    if x.size == 0:
        return 0.0
    return float(np.percentile(x, 100.0 * p))


def _metric_values(measurements: Sequence[Measurement], attr: str) -> np.ndarray:
    return np.array([getattr(m, attr) for m in measurements], dtype=float)


class StatisticsEngine:
    """
    Population statistics over a list of measurements.

    Holds only configuration; no state is kept between calls.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def analyze(self, measurements: Sequence[Measurement]) -> CellStatistics:
        measurements = list(measurements)
        area, perimeter, circ, intensity = (
            _metric_values(measurements, attr) for _, attr in METRICS
        )
        return CellStatistics(
            sample_size=len(measurements),
            area_stats=MetricStatistics.calculate(area),
            perimeter_stats=MetricStatistics.calculate(perimeter),
            circularity_stats=MetricStatistics.calculate(circ),
            intensity_stats=MetricStatistics.calculate(intensity),
            correlations=CorrelationMatrix.calculate(area, perimeter, circ, intensity),
        )

    def tukey_fences(self, values: Sequence[float]) -> Tuple[float, float]:
        """Lower and upper Tukey fences ``Q1 - k*IQR`` and ``Q3 + k*IQR``."""
        q1 = percentile(values, 0.25)
        q3 = percentile(values, 0.75)
        iqr = q3 - q1
        k = self.config.outlier_iqr_factor
        return q1 - k * iqr, q3 + k * iqr

    def detect_outliers(self, measurements: Sequence[Measurement]) -> List[Tuple[int, str]]:
        """
        Flag values outside the Tukey fences of their metric.

        Returns ``(index, metric_name)`` pairs ordered by measurement index,
        then by metric. A measurement can be flagged under several metrics.
        """
        measurements = list(measurements)
        if not measurements:
            return []

        fences = {}
        for name, attr in METRICS:
            fences[name] = self.tukey_fences(_metric_values(measurements, attr))

        outliers = []
        for idx, m in enumerate(measurements):
            for name, attr in METRICS:
                lower, upper = fences[name]
                value = getattr(m, attr)
                if value < lower or value > upper:
                    outliers.append((idx, name))
        return outliers

    def shape_factors(self, measurements: Sequence[Measurement]) -> List[float]:
        """Circularity recomputed from each measurement's calibrated area and perimeter."""
        return [circularity(m.area, m.perimeter) for m in measurements]
