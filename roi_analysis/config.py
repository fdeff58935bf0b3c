"""
Analysis configuration shared by the geometry, calibration and statistics code.
"""

from dataclasses import dataclass


@dataclass
class AnalysisConfig:
    """
    Tunable constants for ROI measurement.

    Parameters
    ----------
    outlier_iqr_factor : float
        Multiplier applied to the interquartile range for Tukey fences.
    convex_hull_factor : float
        Convex hull area is approximated as ``area * convex_hull_factor``.
    distance_epsilon : float
        Real-world distances at or below this value are ignored when
        averaging calibration ratios.
    default_unit : str
        Unit name reported for uncalibrated measurements.
    intensity_scale : float
        Full-scale value of one 8-bit channel, used to normalize to [0, 1].
    """

    outlier_iqr_factor: float = 1.5
    convex_hull_factor: float = 1.1
    distance_epsilon: float = 1e-9
    default_unit: str = "pixels"
    intensity_scale: float = 255.0

    def __post_init__(self):
        if self.outlier_iqr_factor <= 0:
            raise ValueError("outlier_iqr_factor must be positive")
        if self.convex_hull_factor <= 0:
            raise ValueError("convex_hull_factor must be positive")
        if self.distance_epsilon < 0:
            raise ValueError("distance_epsilon must be non-negative")
        if self.intensity_scale <= 0:
            raise ValueError("intensity_scale must be positive")


DEFAULT_CONFIG = AnalysisConfig()
