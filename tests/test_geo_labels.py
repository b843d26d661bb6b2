from __future__ import annotations

import unittest

import numpy as np

from luvatrix_geo.labels import (
    LabelBoxes,
    OverlapState,
    TickLabelStyle,
    boxes_overlap,
    directional_pad,
    directional_pads,
    measure_labels,
    resolve_overlaps,
    spine_anchors,
)
from luvatrix_geo.limits import ViewLimits


def fake_measure(text: str, *, font_family: str, font_size_px: float, rotate_deg: float) -> tuple[int, int]:
    return (7 * len(text), int(font_size_px))


def flip_y(points: np.ndarray) -> np.ndarray:
    """Plate carree style pixels: x grows right, latitude grows up (pixel y down)."""
    points = np.asarray(points, dtype=np.float64)
    return np.column_stack((points[:, 0], -points[:, 1]))


LIMITS = ViewLimits(xmin=-10.0, xmax=10.0, ymin=-5.0, ymax=5.0)


class DirectionalPadTests(unittest.TestCase):
    def test_bottom_labels_move_down_by_pad_and_half_height(self) -> None:
        offset = directional_pad(flip_y, LIMITS, (0.0, -5.0), "bottom", (40.0, 10.0), 5.0)
        np.testing.assert_allclose(offset, (0.0, 10.0), atol=1e-9)

    def test_top_labels_move_up(self) -> None:
        offset = directional_pad(flip_y, LIMITS, (0.0, 5.0), "top", (40.0, 10.0), 5.0)
        np.testing.assert_allclose(offset, (0.0, -10.0), atol=1e-9)

    def test_left_and_right_labels_move_outward_by_half_width(self) -> None:
        left = directional_pad(flip_y, LIMITS, (-10.0, 0.0), "left", (40.0, 10.0), 5.0)
        right = directional_pad(flip_y, LIMITS, (10.0, 0.0), "right", (40.0, 10.0), 5.0)
        np.testing.assert_allclose(left, (-25.0, 0.0), atol=1e-9)
        np.testing.assert_allclose(right, (25.0, 0.0), atol=1e-9)

    def test_anchor_at_limit_corner_uses_one_sided_tangent(self) -> None:
        offset = directional_pad(flip_y, LIMITS, (10.0, -5.0), "bottom", (40.0, 10.0), 2.0)
        np.testing.assert_allclose(offset, (0.0, 7.0), atol=1e-9)

    def test_unprojectable_anchor_falls_back_to_fixed_normal(self) -> None:
        def nowhere(points: np.ndarray) -> np.ndarray:
            return np.full(np.asarray(points).shape, np.nan)

        offsets = directional_pads(nowhere, LIMITS, np.asarray([[0.0, 0.0]]), "left", np.asarray([[20.0, 8.0]]), 3.0)
        np.testing.assert_allclose(offsets, [[-13.0, 0.0]])

    def test_empty_anchor_set(self) -> None:
        out = directional_pads(flip_y, LIMITS, np.empty((0, 2)), "bottom", np.empty((0, 2)), 5.0)
        self.assertEqual(out.shape, (0, 2))

    def test_mismatched_sizes_raise(self) -> None:
        with self.assertRaises(ValueError):
            directional_pads(flip_y, LIMITS, np.zeros((2, 2)), "bottom", np.zeros((1, 2)), 5.0)

    def test_spine_anchors_sit_on_labelled_edge(self) -> None:
        xs = spine_anchors(np.asarray([-5.0, 5.0]), LIMITS, "top")
        np.testing.assert_array_equal(xs, [[-5.0, 5.0], [5.0, 5.0]])
        ys = spine_anchors(np.asarray([1.0]), LIMITS, "right")
        np.testing.assert_array_equal(ys, [[10.0, 1.0]])

    def test_measure_labels_uses_style_font(self) -> None:
        style = TickLabelStyle(position="bottom", font_size_px=14.0)
        sizes = measure_labels(["30°E", "0°"], style, fake_measure)
        np.testing.assert_array_equal(sizes, [[28.0, 14.0], [14.0, 14.0]])

    def test_style_validation(self) -> None:
        with self.assertRaises(ValueError):
            TickLabelStyle(position="middle")  # type: ignore[arg-type]
        with self.assertRaises(ValueError):
            TickLabelStyle(position="left", pad=-1.0)
        self.assertEqual(TickLabelStyle(position="top").axis, "x")
        self.assertEqual(TickLabelStyle(position="right").axis, "y")


class OverlapResolverTests(unittest.TestCase):
    def test_touching_boxes_do_not_overlap(self) -> None:
        self.assertFalse(boxes_overlap((0.0, 0.0), (10.0, 10.0), (10.0, 0.0), (10.0, 10.0)))
        self.assertTrue(boxes_overlap((0.0, 0.0), (10.0, 10.0), (9.0, 0.0), (10.0, 10.0)))

    def test_y_labels_win_over_x_labels(self) -> None:
        x_boxes = LabelBoxes(np.asarray([[0.0, 0.0], [100.0, 0.0]]), np.asarray([[20.0, 10.0], [20.0, 10.0]]))
        y_boxes = LabelBoxes(np.asarray([[5.0, 2.0]]), np.asarray([[20.0, 10.0]]))
        state = resolve_overlaps(x_boxes, np.ones(2, dtype=bool), y_boxes, np.ones(1, dtype=bool))
        np.testing.assert_array_equal(state.x_visible, [False, True])
        np.testing.assert_array_equal(state.y_visible, [True])

    def test_hidden_y_label_does_not_hide_x_label(self) -> None:
        x_boxes = LabelBoxes(np.asarray([[0.0, 0.0]]), np.asarray([[20.0, 10.0]]))
        y_boxes = LabelBoxes(np.asarray([[5.0, 2.0]]), np.asarray([[20.0, 10.0]]))
        state = resolve_overlaps(x_boxes, np.ones(1, dtype=bool), y_boxes, np.zeros(1, dtype=bool))
        np.testing.assert_array_equal(state.x_visible, [True])

    def test_earlier_label_wins_on_same_axis(self) -> None:
        centers = np.asarray([[0.0, 0.0], [15.0, 0.0], [30.0, 0.0]])
        boxes = LabelBoxes(centers, np.full((3, 2), 20.0))
        state = resolve_overlaps(boxes, np.ones(3, dtype=bool), LabelBoxes.empty(), np.zeros(0, dtype=bool))
        np.testing.assert_array_equal(state.x_visible, [True, False, True])

        y_state = resolve_overlaps(LabelBoxes.empty(), np.zeros(0, dtype=bool), boxes, np.ones(3, dtype=bool))
        np.testing.assert_array_equal(y_state.y_visible, [True, False, True])

    def test_resolver_is_idempotent(self) -> None:
        rng = np.random.default_rng(7)
        x_boxes = LabelBoxes(rng.uniform(0, 200, size=(12, 2)), rng.uniform(5, 40, size=(12, 2)))
        y_boxes = LabelBoxes(rng.uniform(0, 200, size=(9, 2)), rng.uniform(5, 40, size=(9, 2)))
        first = resolve_overlaps(x_boxes, np.ones(12, dtype=bool), y_boxes, np.ones(9, dtype=bool))
        second = resolve_overlaps(x_boxes, first.x_visible, y_boxes, first.y_visible)
        third = resolve_overlaps(x_boxes, np.ones(12, dtype=bool), y_boxes, np.ones(9, dtype=bool))
        self.assertEqual(first, second)
        self.assertEqual(first, third)

    def test_priority_holds_for_every_overlapping_pair(self) -> None:
        rng = np.random.default_rng(11)
        x_boxes = LabelBoxes(rng.uniform(0, 120, size=(10, 2)), rng.uniform(5, 30, size=(10, 2)))
        y_boxes = LabelBoxes(rng.uniform(0, 120, size=(10, 2)), rng.uniform(5, 30, size=(10, 2)))
        state = resolve_overlaps(x_boxes, np.ones(10, dtype=bool), y_boxes, np.ones(10, dtype=bool))
        hits = x_boxes.overlaps(y_boxes)
        for i in range(10):
            for j in range(10):
                if hits[i, j] and state.y_visible[j]:
                    self.assertFalse(state.x_visible[i])

    def test_zero_labels_is_a_no_op(self) -> None:
        state = resolve_overlaps(LabelBoxes.empty(), np.zeros(0, dtype=bool), LabelBoxes.empty(), np.zeros(0, dtype=bool))
        self.assertEqual(state, OverlapState(x_visible=np.zeros(0, dtype=bool), y_visible=np.zeros(0, dtype=bool)))

    def test_non_finite_boxes_are_hidden(self) -> None:
        boxes = LabelBoxes(np.asarray([[np.nan, 0.0], [50.0, 0.0]]), np.full((2, 2), 10.0))
        state = resolve_overlaps(boxes, np.ones(2, dtype=bool), LabelBoxes.empty(), np.zeros(0, dtype=bool))
        np.testing.assert_array_equal(state.x_visible, [False, True])

    def test_visibility_length_must_match(self) -> None:
        with self.assertRaises(ValueError):
            resolve_overlaps(LabelBoxes.empty(), np.ones(1, dtype=bool), LabelBoxes.empty(), np.zeros(0, dtype=bool))


if __name__ == "__main__":
    unittest.main()
