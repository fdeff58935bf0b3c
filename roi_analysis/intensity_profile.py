"""
Line intensity profiles across one or more channels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import AnalysisConfig, DEFAULT_CONFIG
from .sampling import IntensitySampler


@dataclass
class IntensityProfile:
    """Sample index along the line and one intensity series per channel."""

    x_values: List[float] = field(default_factory=list)
    intensities: List[List[float]] = field(default_factory=list)
    channels: List[int] = field(default_factory=list)

    @property
    def n_samples(self) -> int:
        return len(self.x_values)

    def distances(self, pixels_per_unit: float = 1.0) -> np.ndarray:
        """Sample positions converted to physical units."""
        return np.asarray(self.x_values, dtype=float) / float(pixels_per_unit)

    def to_dataframe(self) -> pd.DataFrame:
        data = {"position": self.x_values}
        for idx, series in zip(self.channels, self.intensities):
            data[f"channel_{idx}"] = series
        return pd.DataFrame(data)


class IntensityProfiler:
    """Nearest-pixel intensity sampling along a straight segment."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def _normalized_sampler(self, channel) -> IntensitySampler:
        if isinstance(channel, IntensitySampler):
            if channel.normalized:
                return channel
            return IntensitySampler(channel.intensity_map, normalized=True,
                                    intensity_scale=self.config.intensity_scale)
        return IntensitySampler(channel, normalized=True, intensity_scale=self.config.intensity_scale)

    def profile(self, line_points: Sequence[Sequence[int]], channels: Sequence) -> IntensityProfile:
        """
        Sample every channel along the segment between the first two points.

        Parameters
        ----------
        line_points : sequence of (x, y)
            Only the first two points are used; fewer than two give an
            empty profile.
        channels : sequence of arrays or IntensitySampler
            Channel images; intensities are normalized to [0, 1] and read
            as 0 outside the image.

        Returns
        -------
        profile : IntensityProfile
            ``round(length) + 1`` samples per channel.
        """
        samplers = [self._normalized_sampler(c) for c in channels]
        profile = IntensityProfile(
            intensities=[[] for _ in samplers],
            channels=list(range(len(samplers))),
        )
        if len(line_points) < 2:
            return profile

        (x1, y1), (x2, y2) = line_points[0], line_points[1]
        distance = float(np.hypot(x2 - x1, y2 - y1))
        steps = int(np.floor(distance + 0.5))

        indices = np.arange(steps + 1)
        t = indices / steps if steps > 0 else np.zeros(1)
        xs = np.floor(x1 + (x2 - x1) * t + 0.5).astype(int)
        ys = np.floor(y1 + (y2 - y1) * t + 0.5).astype(int)

        profile.x_values = [float(i) for i in indices]
        for series, sampler in zip(profile.intensities, samplers):
            series.extend(float(v) for v in sampler.values_at(xs, ys))
        return profile
