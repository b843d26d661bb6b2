from __future__ import annotations

import unittest

import numpy as np

from luvatrix_geo.ticks import (
    LinearTicks,
    TickSet,
    generate_ticks,
    geoformat_ticklabels,
    latitude_ticklabels,
    linear_ticks,
    longitude_ticklabels,
    tick_values,
    validate_tick_policy,
)


class LinearTickTests(unittest.TestCase):
    def test_world_longitude_gives_seven_even_ticks(self) -> None:
        ticks = linear_ticks(-180.0, 180.0, 7)
        np.testing.assert_allclose(ticks, [-150.0, -100.0, -50.0, 0.0, 50.0, 100.0, 150.0])

    def test_world_latitude_gives_seven_even_ticks(self) -> None:
        ticks = linear_ticks(-90.0, 90.0, 7)
        np.testing.assert_allclose(ticks, [-90.0, -60.0, -30.0, 0.0, 30.0, 60.0, 90.0])

    def test_ticks_stay_inside_bounds_and_evenly_spaced(self) -> None:
        for vmin, vmax in ((-12.5, 47.0), (0.001, 0.02), (100.0, 100.5), (-3.0, 1e4)):
            ticks = linear_ticks(vmin, vmax, 7)
            self.assertGreaterEqual(ticks.size, 2)
            self.assertTrue(np.all(ticks >= vmin - 1e-9))
            self.assertTrue(np.all(ticks <= vmax + 1e-9))
            steps = np.diff(ticks)
            np.testing.assert_allclose(steps, steps[0], rtol=1e-9)

    def test_zero_is_snapped_exactly(self) -> None:
        ticks = linear_ticks(-0.3, 0.3, 7)
        self.assertIn(0.0, ticks.tolist())
        self.assertFalse(np.any(np.signbit(ticks[ticks == 0.0])))

    def test_inverted_or_zero_width_bounds_degrade_to_single_tick(self) -> None:
        np.testing.assert_array_equal(linear_ticks(10.0, 10.0), [10.0])
        np.testing.assert_array_equal(linear_ticks(20.0, -20.0), [20.0])

    def test_non_finite_bounds_raise(self) -> None:
        with self.assertRaises(ValueError):
            linear_ticks(float("nan"), 1.0)

    def test_invalid_target_raises(self) -> None:
        with self.assertRaises(ValueError):
            linear_ticks(0.0, 1.0, 0)
        with self.assertRaises(ValueError):
            LinearTicks(0)


class TickSetTests(unittest.TestCase):
    def test_mismatched_lengths_raise(self) -> None:
        with self.assertRaises(ValueError):
            TickSet(values=np.asarray([1.0, 2.0]), labels=("a",))

    def test_values_are_read_only(self) -> None:
        ts = TickSet(values=np.asarray([1.0, 2.0]), labels=("a", "b"))
        with self.assertRaises(ValueError):
            ts.values[0] = 5.0

    def test_generate_is_pure(self) -> None:
        a = generate_ticks(-180.0, 180.0, LinearTicks(7), longitude_ticklabels)
        b = generate_ticks(-180.0, 180.0, LinearTicks(7), longitude_ticklabels)
        self.assertEqual(a, b)
        self.assertEqual(len(a.values), len(a.labels))

    def test_lengths_match_for_many_limits(self) -> None:
        for vmin, vmax in ((-180, 180), (-1, 1), (5, 5), (30, -30), (0.0, 1e-6)):
            ts = generate_ticks(vmin, vmax, 7)
            self.assertEqual(ts.values.size, len(ts.labels))

    def test_explicit_values_are_filtered_to_bounds(self) -> None:
        ts = generate_ticks(-50.0, 50.0, [-90.0, -45.0, 0.0, 45.0, 90.0], geoformat_ticklabels)
        np.testing.assert_array_equal(ts.values, [-45.0, 0.0, 45.0])
        self.assertEqual(ts.labels, ("-45°", "0°", "45°"))

    def test_explicit_values_and_labels_filter_together(self) -> None:
        ts = generate_ticks(0.0, 10.0, ([-5.0, 5.0, 15.0], ["a", "b", "c"]))
        np.testing.assert_array_equal(ts.values, [5.0])
        self.assertEqual(ts.labels, ("b",))

    def test_unsupported_policy_raises(self) -> None:
        with self.assertRaises(ValueError):
            tick_values(0.0, 1.0, "many")
        with self.assertRaises(ValueError):
            validate_tick_policy(object())
        with self.assertRaises(ValueError):
            validate_tick_policy(([1.0, 2.0], ["only one"]))
        with self.assertRaises(ValueError):
            validate_tick_policy(0)


class TickFormatterTests(unittest.TestCase):
    def test_longitude_labels_use_compass_suffixes(self) -> None:
        labels = longitude_ticklabels(np.asarray([-150.0, -50.0, 0.0, 50.0, 180.0]))
        self.assertEqual(labels, ["150°W", "50°W", "0°", "50°E", "180°"])

    def test_latitude_labels_use_compass_suffixes(self) -> None:
        labels = latitude_ticklabels(np.asarray([-90.0, -30.0, 0.0, 30.0, 90.0]))
        self.assertEqual(labels, ["90°S", "30°S", "0°", "30°N", "90°N"])

    def test_plain_degree_labels_keep_fraction_digits_from_step(self) -> None:
        labels = geoformat_ticklabels(np.asarray([0.0, 0.25, 0.5]))
        self.assertEqual(labels, ["0°", "0.25°", "0.5°"])


if __name__ == "__main__":
    unittest.main()
