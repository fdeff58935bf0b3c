"""
ROI Analysis Module

Quantitative region-of-interest measurement for microscopy images:
- Spatial calibration from pixel/real-world point correspondences
- Area, perimeter and shape factors for polygon, rectangle, ellipse and line ROIs
- Intensity statistics over the pixels an ROI covers
- Population statistics, correlations and Tukey outlier detection
- Two-channel colocalization coefficients
- Line intensity profiles
"""

from .config import AnalysisConfig, DEFAULT_CONFIG
from .calibration import CalibrationPoint, CalibrationRecord, CalibrationReport, SpatialCalibration
from .sampling import IntensitySampler, as_sampler
from .shapes import (
    Ellipse,
    Line,
    Polygon,
    Rectangle,
    ROIShape,
    ROIValidationError,
    ShapeKind,
    has_self_intersection,
    segments_intersect,
    validate_bounds,
    validate_shape,
)
from .geometry import GeometryResult, IntensityStatistics, ROIGeometry
from .measurements import CellAnalyzer, Measurement, MeasurementMode
from .statistics import (
    CellStatistics,
    CorrelationMatrix,
    MetricStatistics,
    StatisticsEngine,
    percentile,
)
from .colocalization import ColocalizationAnalyzer, ColocalizationResult
from .intensity_profile import IntensityProfile, IntensityProfiler
from .reporting import (
    export_statistics_report,
    format_statistics_report,
    measurements_to_dataframe,
    statistics_to_dataframe,
)

__all__ = [
    'AnalysisConfig',
    'DEFAULT_CONFIG',
    'CalibrationPoint',
    'CalibrationRecord',
    'CalibrationReport',
    'SpatialCalibration',
    'IntensitySampler',
    'as_sampler',
    'Ellipse',
    'Line',
    'Polygon',
    'Rectangle',
    'ROIShape',
    'ROIValidationError',
    'ShapeKind',
    'has_self_intersection',
    'segments_intersect',
    'validate_bounds',
    'validate_shape',
    'GeometryResult',
    'IntensityStatistics',
    'ROIGeometry',
    'CellAnalyzer',
    'Measurement',
    'MeasurementMode',
    'CellStatistics',
    'CorrelationMatrix',
    'MetricStatistics',
    'StatisticsEngine',
    'percentile',
    'ColocalizationAnalyzer',
    'ColocalizationResult',
    'IntensityProfile',
    'IntensityProfiler',
    'export_statistics_report',
    'format_statistics_report',
    'measurements_to_dataframe',
    'statistics_to_dataframe',
]
