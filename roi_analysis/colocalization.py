"""
Two-Channel Colocalization Analysis

Pixel-wise agreement between the intensity patterns of two channels.

Key formulas (x, y: per-pixel intensities normalized to [0, 1]):
- Pearson:  r = sum((x - mx)(y - my)) / sqrt(sum((x - mx)^2) * sum((y - my)^2))
- Overlap:  R = sum(x y) / sqrt(sum(x^2) * sum(y^2))
- Manders:  M1 = sum(x_i where y_i > 0) / sum(x),  M2 = sum(y_i where x_i > 0) / sum(y)
- ICQ:      2 * #{i : (x_i - mx)(y_i - my) > 0} / n - 1

Every zero denominator yields a coefficient of 0.

References:
- Manders, E.M.M. et al. (1993) "Measurement of co-localization of objects in dual-colour confocal images" J Microsc 169:375-382
- Li, Q. et al. (2004) "A syntaxin 1, Galpha(o), and N-type calcium channel complex at a presynaptic nerve terminal: analysis by quantitative immunocolocalization" J Neurosci 24(16):4070-81
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .config import AnalysisConfig, DEFAULT_CONFIG
from .correlation_utils import pearson_correlation, safe_divide


@dataclass
class ColocalizationResult:
    pearson: float
    overlap: float
    manders_m1: float
    manders_m2: float
    icq: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class ColocalizationAnalyzer:
    """
    Computes Pearson, overlap, Manders and ICQ coefficients for two channels.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def analyze(self, channel1: np.ndarray, channel2: np.ndarray, mask: Optional[np.ndarray] = None) -> ColocalizationResult:
        """
        Compare two channel images of identical geometry.

        Args:
            channel1: ``(H, W)`` or ``(H, W, 3)`` array of 8-bit channel values.
            channel2: Array with the same shape as ``channel1``.
            mask: Optional boolean ``(H, W)`` array restricting the analysis.

        Returns:
            ColocalizationResult with the four coefficients.
        """
        x, y = self.intensity_vectors(channel1, channel2, mask)
        m1, m2 = self.manders(x, y)
        return ColocalizationResult(
            pearson=self.pearson(x, y),
            overlap=self.overlap(x, y),
            manders_m1=m1,
            manders_m2=m2,
            icq=self.icq(x, y),
        )

    def intensity_vectors(self, channel1, channel2, mask=None) -> Tuple[np.ndarray, np.ndarray]:
        """Parallel per-pixel intensity vectors (mean of color components / scale)."""
        a = np.asarray(channel1, dtype=float)
        b = np.asarray(channel2, dtype=float)
        if a.shape != b.shape:
            raise ValueError(f"Channel shapes differ: {a.shape} vs {b.shape}")
        if a.ndim == 3:
            a = a.mean(axis=2)
            b = b.mean(axis=2)
        elif a.ndim != 2:
            raise ValueError("Channels must be 2D (H, W) or 3D (H, W, C).")

        scale = self.config.intensity_scale
        a = a / scale
        b = b / scale

        if mask is not None:
            mask = np.asarray(mask, dtype=bool)
            if mask.shape != a.shape:
                raise ValueError("mask shape must match the channel's spatial dimensions")
            return a[mask], b[mask]
        return a.reshape(-1), b.reshape(-1)

    @staticmethod
    def pearson(x: np.ndarray, y: np.ndarray) -> float:
        return pearson_correlation(x, y)

    @staticmethod
    def overlap(x: np.ndarray, y: np.ndarray) -> float:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        denominator = float(np.sqrt(np.sum(x * x) * np.sum(y * y)))
        return safe_divide(float(np.sum(x * y)), denominator)

    @staticmethod
    def manders(x: np.ndarray, y: np.ndarray) -> Tuple[float, float]:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        m1 = safe_divide(float(np.sum(x[y > 0])), float(np.sum(x)))
        m2 = safe_divide(float(np.sum(y[x > 0])), float(np.sum(y)))
        return m1, m2

    @staticmethod
    def icq(x: np.ndarray, y: np.ndarray) -> float:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        n = x.size
        if n == 0:
            return 0.0
        positive = int(np.count_nonzero((x - x.mean()) * (y - y.mean()) > 0))
        return 2.0 * positive / n - 1.0
