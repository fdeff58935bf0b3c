"""
Shared correlation utilities.
"""

from __future__ import annotations

import numpy as np


def safe_divide(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator``, or 0.0 when the denominator is zero or not finite."""
    if denominator == 0 or not np.isfinite(denominator):
        return 0.0
    return float(numerator) / float(denominator)


def pearson_correlation(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson product-moment correlation of two equal-length vectors.

    r = sum((x - mx)(y - my)) / sqrt(sum((x - mx)^2) * sum((y - my)^2))

    Returns 0.0 for empty input or when either vector has zero variance.
    """
    x = np.asarray(x, dtype=float).reshape(-1)
    y = np.asarray(y, dtype=float).reshape(-1)
    if x.size != y.size:
        raise ValueError("x and y must have the same length")
    if x.size == 0:
        return 0.0
    dx = x - x.mean()
    dy = y - y.mean()
    ss_x = float(np.sum(dx * dx))
    ss_y = float(np.sum(dy * dy))
    if ss_x == 0.0 or ss_y == 0.0:
        return 0.0
    return float(np.sum(dx * dy)) / float(np.sqrt(ss_x * ss_y))
