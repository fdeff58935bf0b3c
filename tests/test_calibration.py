import numpy as np
import pandas as pd
import pytest

from roi_analysis import CalibrationReport, SpatialCalibration


def make_two_point_calibration():
    cal = SpatialCalibration(unit="um")
    cal.add_point((0, 0), (0.0, 0.0))
    cal.add_point((100, 0), (1.0, 0.0))
    return cal


def test_defaults_to_uncalibrated():
    cal = SpatialCalibration()
    assert cal.pixels_per_unit == 1.0
    assert cal.unit == "pixels"
    assert not cal.is_calibrated

    cal.add_point((10, 10), (1.0, 1.0))
    assert cal.pixels_per_unit == 1.0
    assert not cal.is_calibrated


def test_two_points_set_scale_and_round_trip():
    cal = make_two_point_calibration()
    assert cal.pixels_per_unit == 100.0
    assert cal.is_calibrated
    assert cal.pixel_to_real((50, 0)) == (0.5, 0.0)
    assert cal.real_to_pixel((0.5, 0.0)) == (50.0, 0.0)


def test_scale_is_mean_over_all_pairs():
    cal = SpatialCalibration(unit="um")
    cal.add_point((0, 0), (0.0, 0.0))
    cal.add_point((100, 0), (1.0, 0.0))
    cal.add_point((0, 200), (0.0, 1.0))
    expected = np.mean([100.0, 200.0, np.hypot(100, 200) / np.sqrt(2.0)])
    assert cal.pixels_per_unit == pytest.approx(expected)


def test_zero_real_distance_pairs_are_skipped():
    cal = SpatialCalibration(unit="um")
    cal.add_point((0, 0), (0.0, 0.0))
    with pytest.warns(UserWarning):
        cal.add_point((50, 0), (0.0, 0.0))
    assert cal.pixels_per_unit == 1.0

    with pytest.warns(UserWarning):
        cal.add_point((100, 0), (2.0, 0.0))
    # pairs (0,2) -> 50 and (1,2) -> 25
    assert cal.pixels_per_unit == pytest.approx(37.5)


def test_affine_transform_round_trip():
    cal = SpatialCalibration(unit="um")
    cal.set_transformation_matrix([[0.5, 0.0, 10.0], [0.0, 0.5, 20.0], [0.0, 0.0, 1.0]])
    assert cal.pixel_to_real((10, 20)) == pytest.approx((15.0, 30.0))
    assert cal.real_to_pixel((15.0, 30.0)) == pytest.approx((10.0, 20.0))


def test_singular_transform_falls_back_to_scale():
    cal = make_two_point_calibration()
    cal.set_transformation_matrix(np.zeros((3, 3)))
    assert cal.real_to_pixel((0.5, 0.25)) == pytest.approx((50.0, 25.0))


def test_transform_must_be_3x3():
    cal = SpatialCalibration()
    with pytest.raises(ValueError):
        cal.set_transformation_matrix([[1.0, 0.0], [0.0, 1.0]])


def test_distance_conversion_and_clear():
    cal = make_two_point_calibration()
    assert cal.pixel_distance_to_real(250) == pytest.approx(2.5)
    assert cal.real_distance_to_pixel(0.1) == pytest.approx(10.0)
    cal.clear()
    assert cal.pixels_per_unit == 1.0
    assert cal.points == []


def test_calibration_report_exports(tmp_path):
    cal = make_two_point_calibration()
    record = cal.to_record(objective="40x", image_name="cells.tif", notes="stage micrometer")
    assert record.pixel_distance == pytest.approx(100.0)
    assert record.real_distance == pytest.approx(1.0)

    report = CalibrationReport([record])
    csv_path = report.export_csv(tmp_path / "calibration.csv")
    df = pd.read_csv(csv_path)
    assert list(df.columns) == CalibrationReport.COLUMNS
    assert df.loc[0, "Scale Ratio"] == pytest.approx(100.0)
    assert df.loc[0, "Objective"] == "40x"

    md_path = report.export_markdown(tmp_path / "calibration.md")
    text = md_path.read_text(encoding="utf-8")
    assert text.startswith("# Calibration Report")
    assert "cells.tif" in text
