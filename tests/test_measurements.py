"""
Tests for the cell measurement store.
"""

import dataclasses
import unittest
import warnings

import numpy as np
import pytest

from roi_analysis import (
    CellAnalyzer,
    Ellipse,
    IntensitySampler,
    Line,
    MeasurementMode,
    Polygon,
    Rectangle,
    SpatialCalibration,
)


SQUARE = [(0, 0), (0, 10), (10, 10), (10, 0)]


class TestCellAnalyzer(unittest.TestCase):
    def setUp(self):
        self.image = np.full((20, 20), 100.0)
        self.analyzer = CellAnalyzer(calibration_scale=2.0, unit="um")

    def test_calibrated_polygon_measurement(self):
        m = self.analyzer.analyze_roi(Polygon(SQUARE), self.image)
        self.assertIsNotNone(m)
        self.assertEqual(m.id, 1)
        self.assertAlmostEqual(m.area, 25.0)
        self.assertAlmostEqual(m.perimeter, 20.0)
        self.assertAlmostEqual(m.circularity, np.pi / 4)
        self.assertAlmostEqual(m.mean_intensity, 100.0)
        self.assertAlmostEqual(m.integrated_density, 100.0 * 100)
        self.assertTrue(m.is_calibrated)
        self.assertEqual(m.units, "um")

    def test_history_is_ordered_and_append_only(self):
        first = self.analyzer.analyze_roi(Polygon(SQUARE), self.image)
        second = self.analyzer.analyze_roi(Rectangle(4, 4, x=2, y=2), self.image)
        history = self.analyzer.get_measurements()
        self.assertEqual(history, (first, second))
        self.assertEqual([m.id for m in history], [1, 2])
        self.assertIs(self.analyzer.latest_measurement, second)
        self.assertEqual(len(self.analyzer), 2)

        self.analyzer.clear_measurements()
        self.assertEqual(self.analyzer.get_measurements(), ())
        self.assertIsNone(self.analyzer.latest_measurement)

    def test_measurement_is_immutable(self):
        m = self.analyzer.analyze_roi(Polygon(SQUARE), self.image)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            m.area = 0.0

    def test_invalid_shapes_produce_no_measurement(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            self.assertIsNone(self.analyzer.analyze_roi(Polygon([(0, 0), (0, 10)]), self.image))
            self.assertIsNone(self.analyzer.analyze_roi(Rectangle(0, 5), self.image))
        self.assertEqual(len(self.analyzer), 0)

    def test_shape_outside_image_produces_no_measurement(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            self.assertIsNone(self.analyzer.analyze_roi(Ellipse(5, 5, x=50, y=50), self.image))
        self.assertEqual(len(self.analyzer), 0)

    def test_line_measurement(self):
        m = self.analyzer.analyze_roi(Line([(0, 0), (10, 0)]), self.image)
        self.assertEqual(m.area, 0.0)
        self.assertAlmostEqual(m.perimeter, 5.0)
        self.assertEqual(m.circularity, 0.0)

    def test_accepts_sampler(self):
        sampler = IntensitySampler(np.full((20, 20, 3), 30, dtype=np.uint8))
        m = self.analyzer.analyze_roi(Rectangle(5, 5), sampler, notes="nucleus")
        self.assertAlmostEqual(m.mean_intensity, 30.0)
        self.assertEqual(m.notes, "nucleus")

    def test_formatting(self):
        m = self.analyzer.analyze_roi(Polygon(SQUARE), self.image)
        self.assertEqual(m.format_area(), "25.00 um²")
        self.assertEqual(m.format_perimeter(), "20.00 um")
        self.assertEqual(m.format_circularity(), "0.785")
        self.assertEqual(m.format_intensities(), ("100.0", "100.0", "100.0"))
        self.assertEqual(m.to_dict()["shape"], "polygon")


def test_invalid_shape_warns():
    analyzer = CellAnalyzer()
    with pytest.warns(UserWarning, match="ROI rejected"):
        assert analyzer.analyze_roi(Polygon([(0, 0), (5, 5)]), np.ones((10, 10))) is None


def test_uncalibrated_defaults():
    analyzer = CellAnalyzer()
    m = analyzer.analyze_roi(Polygon(SQUARE), np.ones((20, 20)))
    assert m.units == "pixels"
    assert not m.is_calibrated
    assert m.area == pytest.approx(100.0)


def test_from_calibration_captures_scale_once():
    cal = SpatialCalibration(unit="um")
    cal.add_point((0, 0), (0.0, 0.0))
    cal.add_point((10, 0), (1.0, 0.0))
    analyzer = CellAnalyzer.from_calibration(cal)

    cal.add_point((0, 100), (0.0, 1.0))
    assert analyzer.calibration_scale == pytest.approx(10.0)
    m = analyzer.analyze_roi(Polygon(SQUARE), np.ones((20, 20)))
    assert m.area == pytest.approx(1.0)
    assert m.perimeter == pytest.approx(4.0)


def test_batch_mode_keeps_order_and_skips_rejects():
    analyzer = CellAnalyzer(mode=MeasurementMode.BATCH)
    shapes = [
        Rectangle(2, 2),
        Polygon([(0, 0), (1, 1)]),
        Rectangle(4, 4),
        Rectangle(3, 3, x=100, y=100),
        Ellipse(6, 4),
    ]
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        results = analyzer.analyze_batch(shapes, np.ones((20, 20)))
    assert [m.shape for m in results] == [shapes[0], shapes[2], shapes[4]]
    assert [m.id for m in analyzer.get_measurements()] == [1, 2, 3]


def test_batch_requires_batch_mode():
    with pytest.raises(ValueError):
        CellAnalyzer().analyze_batch([Rectangle(2, 2)], np.ones((5, 5)))


def test_auto_detect_is_not_implemented():
    analyzer = CellAnalyzer(mode=MeasurementMode.AUTO_DETECT)
    with pytest.raises(NotImplementedError):
        analyzer.analyze_roi(Rectangle(2, 2), np.ones((5, 5)))


def test_scale_must_be_positive():
    for scale in (0.0, -2.0, float("nan"), float("inf")):
        with pytest.raises(ValueError):
            CellAnalyzer(calibration_scale=scale)


def test_stored_shape_cannot_change_after_measurement():
    analyzer = CellAnalyzer()
    image = np.ones((20, 20))
    rect = Rectangle(4, 4)
    vertices = list(SQUARE)
    analyzer.analyze_roi(rect, image)
    analyzer.analyze_roi(Polygon(vertices), image)

    with pytest.raises(dataclasses.FrozenInstanceError):
        rect.width = 0
    vertices.clear()

    stored_rect, stored_polygon = analyzer.get_measurements()
    assert stored_rect.shape.width == 4
    assert stored_polygon.shape.points == tuple(SQUARE)
    assert not hasattr(stored_polygon.shape.points, "clear")


def test_from_calibration_uses_calibration_state():
    analyzer = CellAnalyzer.from_calibration(SpatialCalibration(unit="um"))
    m = analyzer.analyze_roi(Polygon(SQUARE), np.ones((20, 20)))
    assert not m.is_calibrated
    assert m.units == "um"


def test_explicit_calibration_flag():
    analyzer = CellAnalyzer(calibration_scale=1.0, calibrated=True)
    assert analyzer.is_calibrated


if __name__ == "__main__":
    unittest.main()
