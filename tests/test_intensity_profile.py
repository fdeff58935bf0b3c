import numpy as np
import pytest

from roi_analysis import IntensityProfiler, IntensitySampler


def make_ramp(height: int = 10, width: int = 10) -> np.ndarray:
    """Image whose value is 10 * x."""
    return np.tile(np.arange(width, dtype=float) * 10.0, (height, 1))


def test_horizontal_profile_samples_each_pixel():
    ramp = make_ramp()
    profile = IntensityProfiler().profile([(0, 0), (9, 0)], [ramp, 255.0 - ramp])
    assert profile.x_values == [float(i) for i in range(10)]
    assert profile.channels == [0, 1]
    np.testing.assert_allclose(profile.intensities[0], np.arange(10) * 10.0 / 255.0)
    np.testing.assert_allclose(profile.intensities[1], (255.0 - np.arange(10) * 10.0) / 255.0)


def test_only_first_two_points_are_used():
    profile = IntensityProfiler().profile([(0, 0), (4, 0), (9, 9)], [make_ramp()])
    assert profile.n_samples == 5


def test_out_of_bounds_samples_are_zero():
    profile = IntensityProfiler().profile([(8, 0), (12, 0)], [make_ramp()])
    assert profile.n_samples == 5
    assert profile.intensities[0][-2:] == [0.0, 0.0]
    assert profile.intensities[0][0] == pytest.approx(80.0 / 255.0)


def test_steps_use_rounded_length():
    # length 5 -> 6 samples
    profile = IntensityProfiler().profile([(0, 0), (3, 4)], [make_ramp()])
    assert profile.n_samples == 6


def test_degenerate_lines():
    profiler = IntensityProfiler()
    empty = profiler.profile([(1, 1)], [make_ramp(), make_ramp()])
    assert empty.x_values == []
    assert empty.intensities == [[], []]

    point = profiler.profile([(2, 2), (2, 2)], [make_ramp()])
    assert point.x_values == [0.0]
    assert point.intensities[0] == [pytest.approx(20.0 / 255.0)]


def test_accepts_samplers_and_builds_dataframe():
    sampler = IntensitySampler(make_ramp())
    profile = IntensityProfiler().profile([(0, 5), (3, 5)], [sampler])
    df = profile.to_dataframe()
    assert list(df.columns) == ["position", "channel_0"]
    assert len(df) == 4
    assert df["channel_0"].iloc[3] == pytest.approx(30.0 / 255.0)
    np.testing.assert_allclose(profile.distances(2.0), [0.0, 0.5, 1.0, 1.5])
