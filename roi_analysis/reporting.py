"""
Tabular and text summaries of measurements and population statistics.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from .measurements import Measurement
from .statistics import CellStatistics


STATISTIC_FIELDS = [
    ("mean", "Mean"),
    ("median", "Median"),
    ("std_dev", "Standard Deviation"),
    ("min", "Min"),
    ("max", "Max"),
    ("coefficient_of_variation", "Coefficient of Variation"),
    ("skewness", "Skewness"),
    ("kurtosis", "Kurtosis"),
]

CORRELATION_FIELDS = [
    ("area_perimeter", "Area-Perimeter"),
    ("area_circularity", "Area-Circularity"),
    ("area_intensity", "Area-Intensity"),
    ("perimeter_circularity", "Perimeter-Circularity"),
    ("perimeter_intensity", "Perimeter-Intensity"),
    ("circularity_intensity", "Circularity-Intensity"),
]


def measurements_to_dataframe(measurements: Sequence[Measurement]) -> pd.DataFrame:
    """One row per measurement; the shape column holds the shape kind."""
    rows = [m.to_dict() for m in measurements]
    if not rows:
        columns = list(Measurement.__dataclass_fields__)
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows)


def statistics_to_dataframe(stats: CellStatistics) -> pd.DataFrame:
    """Long-format table with columns ``metric``, ``statistic``, ``value``."""
    rows = []
    for metric, metric_stats in stats.metric_items():
        for attr, label in STATISTIC_FIELDS:
            rows.append({"metric": metric, "statistic": label, "value": getattr(metric_stats, attr)})
    for attr, label in CORRELATION_FIELDS:
        rows.append({"metric": "Correlation", "statistic": label, "value": getattr(stats.correlations, attr)})
    return pd.DataFrame(rows, columns=["metric", "statistic", "value"])


def format_statistics_report(stats: CellStatistics) -> str:
    lines = [
        "Cell Analysis Statistical Report",
        "==============================",
        "",
        f"Sample Size: {stats.sample_size}",
        "",
    ]
    for metric, metric_stats in stats.metric_items():
        lines.append(f"{metric} Statistics:")
        lines.append("-----------------")
        for attr, label in STATISTIC_FIELDS:
            lines.append(f"{label}: {getattr(metric_stats, attr):.3f}")
        lines.append("")

    lines.append("Correlation Matrix:")
    lines.append("-----------------")
    for attr, label in CORRELATION_FIELDS:
        lines.append(f"{label}: {getattr(stats.correlations, attr):.3f}")
    return "\n".join(lines) + "\n"


def export_statistics_report(stats: CellStatistics, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_statistics_report(stats), encoding="utf-8")
    return path
