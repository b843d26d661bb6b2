from __future__ import annotations

import unittest

import numpy as np

from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.limits import (
    AUTOMATIC,
    WORLD_LIMITS,
    ViewLimits,
    data_limits,
    find_transform_limits,
    resolve_limits,
)
from luvatrix_geo.projection import WORLD_DOMAIN
from luvatrix_geo.series import SeriesData, SeriesSpec, SeriesStyle


class FakeTransform:
    """Identity projection that is undefined outside a validity mask."""

    def __init__(self, valid=None, domain=WORLD_DOMAIN) -> None:
        self._valid = valid
        self._domain = domain

    def domain(self):
        return self._domain

    def forward(self, lon, lat):
        lon = np.asarray(lon, dtype=np.float64)
        lat = np.asarray(lat, dtype=np.float64)
        if self._valid is None:
            return lon.copy(), lat.copy()
        ok = self._valid(lon, lat)
        return np.where(ok, lon, np.nan), np.where(ok, lat, np.nan)


def _series(points, visible: bool = True) -> SeriesSpec:
    data = SeriesData(points=np.asarray(points, dtype=np.float64), source_name="test")
    return SeriesSpec(data=data, style=SeriesStyle(mode="markers"), label=None, visible=visible)


class ViewLimitsTests(unittest.TestCase):
    def test_limits_must_be_finite_and_ordered(self) -> None:
        with self.assertRaises(PlotDataError):
            ViewLimits(xmin=1.0, xmax=0.0, ymin=0.0, ymax=1.0)
        with self.assertRaises(PlotDataError):
            ViewLimits(xmin=0.0, xmax=np.inf, ymin=0.0, ymax=1.0)
        self.assertEqual(ViewLimits.ordered((10, -10), (5, -5)).as_tuple(), (-10.0, 10.0, -5.0, 5.0))


class AutomaticLimitTests(unittest.TestCase):
    def test_world_projection_spans_the_globe(self) -> None:
        self.assertEqual(find_transform_limits(FakeTransform()), WORLD_LIMITS)
        self.assertEqual(resolve_limits(AUTOMATIC, AUTOMATIC, FakeTransform()), WORLD_LIMITS)

    def test_only_finite_images_count(self) -> None:
        band = FakeTransform(valid=lambda lon, lat: np.abs(lat) <= 60.0)
        limits = find_transform_limits(band)
        self.assertEqual(limits.as_tuple(), (-180.0, 180.0, -60.0, 60.0))

    def test_single_finite_point_gives_degenerate_limits(self) -> None:
        point = FakeTransform(valid=lambda lon, lat: (lon == 0.0) & (lat == 0.0))
        self.assertEqual(find_transform_limits(point).as_tuple(), (0.0, 0.0, 0.0, 0.0))

    def test_no_finite_image_falls_back_with_warning(self) -> None:
        nowhere = FakeTransform(valid=lambda lon, lat: np.zeros(lon.shape, dtype=bool))
        self.assertIsNone(find_transform_limits(nowhere))
        with self.assertLogs("luvatrix_geo.limits", level="WARNING"):
            self.assertEqual(resolve_limits(AUTOMATIC, AUTOMATIC, nowhere), WORLD_LIMITS)
        previous = ViewLimits(xmin=-20.0, xmax=20.0, ymin=-10.0, ymax=10.0)
        with self.assertLogs("luvatrix_geo.limits", level="WARNING"):
            self.assertEqual(resolve_limits(AUTOMATIC, AUTOMATIC, nowhere, previous), previous)

    def test_mixed_literal_and_automatic(self) -> None:
        limits = resolve_limits((40.0, -40.0), AUTOMATIC, FakeTransform())
        self.assertEqual(limits.as_tuple(), (-40.0, 40.0, -90.0, 90.0))

    def test_literal_limits_skip_domain_search(self) -> None:
        class Exploding(FakeTransform):
            def forward(self, lon, lat):
                raise AssertionError("forward should not be called")

        limits = resolve_limits((-10.0, 10.0), (0.0, 5.0), Exploding())
        self.assertEqual(limits.as_tuple(), (-10.0, 10.0, 0.0, 5.0))

    def test_non_finite_literal_raises(self) -> None:
        with self.assertRaises(PlotDataError):
            resolve_limits((np.nan, 10.0), AUTOMATIC, FakeTransform())
        with self.assertRaises(PlotDataError):
            resolve_limits("wide", AUTOMATIC, FakeTransform())


class DataLimitTests(unittest.TestCase):
    def test_bounds_of_visible_finite_points(self) -> None:
        series = [
            _series([[10.0, 5.0], [np.nan, np.nan], [-30.0, 40.0]]),
            _series([[100.0, -80.0]], visible=False),
            _series([[20.0, -10.0]]),
        ]
        self.assertEqual(data_limits(series).as_tuple(), (-30.0, 20.0, -10.0, 40.0))

    def test_no_data_returns_none(self) -> None:
        self.assertIsNone(data_limits([]))
        self.assertIsNone(data_limits([_series([[1.0, 1.0]], visible=False)]))


if __name__ == "__main__":
    unittest.main()
