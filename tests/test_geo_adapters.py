from __future__ import annotations

import unittest

import numpy as np

from luvatrix_geo.adapters import geometry_to_parts, normalize_lonlat
from luvatrix_geo.adapters import normalize as normalize_module
from luvatrix_geo.errors import PlotDataError


class NormalizeLonLatTests(unittest.TestCase):
    def test_separate_sequences_with_missing_values(self) -> None:
        data = normalize_lonlat([0, None, 10], [1.5, 2.0, 3.0], source_name="cities")
        self.assertEqual(data.points.shape, (3, 2))
        self.assertEqual(data.source_name, "cities")
        self.assertTrue(np.isnan(data.points[1]).all())
        np.testing.assert_array_equal(data.mask, [True, False, True])

    def test_pairs_array_and_pair_list(self) -> None:
        arr = normalize_lonlat(np.asarray([[1, 2], [3, 4]]))
        np.testing.assert_array_equal(arr.lon, [1.0, 3.0])
        np.testing.assert_array_equal(arr.lat, [2.0, 4.0])
        pairs = normalize_lonlat([(1.0, 2.0), None, (3.0, np.inf)])
        self.assertTrue(np.isnan(pairs.points[1:]).all())

    def test_errors(self) -> None:
        with self.assertRaises(PlotDataError):
            normalize_lonlat([1.0, 2.0], [1.0])
        with self.assertRaises(PlotDataError):
            normalize_lonlat([], [])
        with self.assertRaises(PlotDataError):
            normalize_lonlat([np.nan], [np.nan])
        with self.assertRaises(PlotDataError):
            normalize_lonlat(["east"], [1.0])
        with self.assertRaises(PlotDataError):
            normalize_lonlat(np.zeros((3, 3)))
        with self.assertRaises(PlotDataError):
            normalize_lonlat()

    @unittest.skipUnless(normalize_module.pd is not None, "pandas not installed")
    def test_dataframe_columns(self) -> None:
        pd = normalize_module.pd
        frame = pd.DataFrame({"Longitude": [10.0, 20.0], "Latitude": [-5.0, 5.0], "lng": [1.0, 2.0]})
        auto = normalize_lonlat(frame)
        np.testing.assert_array_equal(auto.points, [[10.0, -5.0], [20.0, 5.0]])
        named = normalize_lonlat("lng", "Latitude", data=frame)
        np.testing.assert_array_equal(named.lon, [1.0, 2.0])
        with self.assertRaises(PlotDataError):
            normalize_lonlat("missing", "Latitude", data=frame)

    @unittest.skipUnless(normalize_module.torch is not None, "torch not installed")
    def test_tensor_input(self) -> None:
        torch = normalize_module.torch
        data = normalize_lonlat(torch.tensor([[1.0, 2.0], [3.0, 4.0]]))
        np.testing.assert_array_equal(data.points, [[1.0, 2.0], [3.0, 4.0]])
        split = normalize_lonlat(torch.tensor([1.0, 3.0]), torch.tensor([2.0, 4.0]))
        np.testing.assert_array_equal(split.points, data.points)


class _Shape:
    @property
    def __geo_interface__(self):
        return {"type": "Polygon", "coordinates": [[[0, 0], [4, 0], [4, 4], [0, 0]], [[1, 1], [2, 1], [1, 1]]]}


class GeometryPartsTests(unittest.TestCase):
    def test_polygon_rings_become_break_separated_lines(self) -> None:
        parts = geometry_to_parts(_Shape())
        self.assertEqual(parts.lines.shape, (4 + 1 + 3, 2))
        self.assertTrue(np.isnan(parts.lines[4]).all())
        self.assertEqual(parts.points.shape, (0, 2))

    def test_feature_collection(self) -> None:
        collection = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": {"type": "MultiPoint", "coordinates": [[1, 2, 100], [3, 4, 100]]}},
                {"type": "Feature", "geometry": None},
                {
                    "type": "Feature",
                    "geometry": {"type": "MultiLineString", "coordinates": [[[0, 0], [1, 1]], [[5, 5]]]},
                },
            ],
        }
        parts = geometry_to_parts(collection)
        np.testing.assert_array_equal(parts.points, [[1.0, 2.0], [3.0, 4.0]])
        self.assertEqual(parts.lines.shape, (2, 2))
        self.assertFalse(parts.is_empty)

    def test_empty_and_invalid_geometries(self) -> None:
        self.assertTrue(geometry_to_parts({"type": "Feature", "geometry": None}).is_empty)
        with self.assertRaises(PlotDataError):
            geometry_to_parts({"type": "Circle", "coordinates": [0, 0]})
        with self.assertRaises(PlotDataError):
            geometry_to_parts(42)
        with self.assertRaises(PlotDataError):
            geometry_to_parts({"type": "LineString", "coordinates": [[0, "north"], [1, 1]]})


if __name__ == "__main__":
    unittest.main()
