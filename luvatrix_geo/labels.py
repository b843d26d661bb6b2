"""Tick label placement: outward padding along projected spines and overlap removal."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Callable, Literal, Protocol, Sequence

import numpy as np

from luvatrix_geo.limits import ViewLimits
from luvatrix_geo.raster.canvas import RGBA
from luvatrix_geo.raster.draw_text import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE_PX, text_size


AxisName = Literal["x", "y"]
LabelPosition = Literal["bottom", "top", "left", "right"]
PixelMap = Callable[[np.ndarray], np.ndarray]

_X_POSITIONS = ("bottom", "top")
_Y_POSITIONS = ("left", "right")
# Pixel-space outward normals used when the projected spine has no usable tangent.
_FALLBACK_NORMALS = {
    "bottom": (0.0, 1.0),
    "top": (0.0, -1.0),
    "left": (-1.0, 0.0),
    "right": (1.0, 0.0),
}
_TANGENT_FRACTION = 1e-3
_PROBE_FRACTION = 1e-2


class TextMeasurer(Protocol):
    def __call__(
        self,
        text: str,
        *,
        font_family: str,
        font_size_px: float,
        rotate_deg: float,
    ) -> tuple[int, int]: ...


@dataclass(frozen=True)
class TickLabelStyle:
    position: LabelPosition
    font_size_px: float = DEFAULT_FONT_SIZE_PX
    font_family: str = DEFAULT_FONT_FAMILY
    rotate_deg: float = 0.0
    pad: float = 5.0
    visible: bool = True
    color: RGBA = (208, 218, 232, 255)

    def __post_init__(self) -> None:
        if self.position not in _FALLBACK_NORMALS:
            raise ValueError(f"unsupported tick label position: {self.position!r}")
        if not (math.isfinite(self.font_size_px) and self.font_size_px > 0):
            raise ValueError("font_size_px must be > 0")
        if not (math.isfinite(self.pad) and self.pad >= 0):
            raise ValueError("pad must be >= 0")
        if not math.isfinite(self.rotate_deg):
            raise ValueError("rotate_deg must be finite")

    @property
    def axis(self) -> AxisName:
        return "x" if self.position in _X_POSITIONS else "y"


def measure_labels(labels: Sequence[str], style: TickLabelStyle, measurer: TextMeasurer | None = None) -> np.ndarray:
    """``(N, 2)`` rotated label extents in pixels."""
    measure = measurer if measurer is not None else text_size
    out = np.zeros((len(labels), 2), dtype=np.float64)
    for i, label in enumerate(labels):
        out[i] = measure(
            label,
            font_family=style.font_family,
            font_size_px=style.font_size_px,
            rotate_deg=style.rotate_deg,
        )
    return out


def spine_anchors(values: np.ndarray, limits: ViewLimits, position: LabelPosition) -> np.ndarray:
    """Lon/lat points where each tick's grid line meets the labelled spine."""
    values = np.asarray(values, dtype=np.float64).reshape(-1)
    out = np.empty((values.size, 2), dtype=np.float64)
    if position in _X_POSITIONS:
        out[:, 0] = values
        out[:, 1] = limits.ymin if position == "bottom" else limits.ymax
    else:
        out[:, 0] = limits.xmin if position == "left" else limits.xmax
        out[:, 1] = values
    return out


def directional_pads(
    to_pixels: PixelMap,
    limits: ViewLimits,
    anchors: np.ndarray,
    position: LabelPosition,
    sizes: np.ndarray,
    pad: float,
) -> np.ndarray:
    """Pixel offsets that move each label centre off its spine, away from the plot interior.

    The spine tangent comes from projecting lon/lat neighbours of each anchor;
    the normal is flipped to point away from a probe stepped toward the centre
    of ``limits``. Offset length is ``pad`` plus the label's half extent along
    the normal.
    """
    anchors = np.asarray(anchors, dtype=np.float64).reshape(-1, 2)
    n = anchors.shape[0]
    if n == 0:
        return np.empty((0, 2), dtype=np.float64)
    sizes = np.asarray(sizes, dtype=np.float64).reshape(-1, 2)
    if sizes.shape[0] != n:
        raise ValueError(f"label sizes and anchors length mismatch: {sizes.shape[0]} != {n}")

    along = 0 if position in _X_POSITIONS else 1
    across = 1 - along
    lo = (limits.xmin, limits.ymin)
    hi = (limits.xmax, limits.ymax)
    mid = ((limits.xmin + limits.xmax) / 2.0, (limits.ymin + limits.ymax) / 2.0)
    h = max((hi[along] - lo[along]) * _TANGENT_FRACTION, 1e-9)

    before = anchors.copy()
    after = anchors.copy()
    before[:, along] = np.clip(anchors[:, along] - h, lo[along], hi[along])
    after[:, along] = np.clip(anchors[:, along] + h, lo[along], hi[along])
    probe = anchors.copy()
    probe[:, across] = anchors[:, across] + (mid[across] - anchors[:, across]) * _PROBE_FRACTION

    px = to_pixels(np.concatenate((before, after, probe, anchors), axis=0))
    p_before, p_after, p_probe, p_anchor = (px[i * n : (i + 1) * n] for i in range(4))

    tangent = p_after - p_before
    length = np.hypot(tangent[:, 0], tangent[:, 1])
    normal = np.column_stack((-tangent[:, 1], tangent[:, 0]))
    with np.errstate(invalid="ignore", divide="ignore"):
        normal = normal / length[:, None]
        inward = p_probe - p_anchor
        facing = np.einsum("ij,ij->i", normal, inward)
        normal[facing > 0] *= -1.0
        usable = np.isfinite(normal).all(axis=1) & (length > 1e-12) & np.isfinite(facing) & (np.abs(facing) > 1e-12)
    normal[~usable] = _FALLBACK_NORMALS[position]

    magnitude = pad + np.abs(normal[:, 0]) * sizes[:, 0] / 2.0 + np.abs(normal[:, 1]) * sizes[:, 1] / 2.0
    return normal * magnitude[:, None]


def directional_pad(
    to_pixels: PixelMap,
    limits: ViewLimits,
    anchor: tuple[float, float],
    position: LabelPosition,
    size: tuple[float, float],
    pad: float,
) -> tuple[float, float]:
    offsets = directional_pads(
        to_pixels,
        limits,
        np.asarray([anchor], dtype=np.float64),
        position,
        np.asarray([size], dtype=np.float64),
        pad,
    )
    return (float(offsets[0, 0]), float(offsets[0, 1]))


@dataclass(frozen=True)
class LabelBoxes:
    """Axis-aligned pixel boxes given by centre and full extent."""

    centers: np.ndarray
    sizes: np.ndarray

    def __post_init__(self) -> None:
        centers = np.asarray(self.centers, dtype=np.float64).reshape(-1, 2)
        sizes = np.asarray(self.sizes, dtype=np.float64).reshape(-1, 2)
        if centers.shape != sizes.shape:
            raise ValueError("label centers and sizes must have the same shape")
        object.__setattr__(self, "centers", centers)
        object.__setattr__(self, "sizes", sizes)

    @classmethod
    def empty(cls) -> "LabelBoxes":
        return cls(np.empty((0, 2)), np.empty((0, 2)))

    def __len__(self) -> int:
        return int(self.centers.shape[0])

    def finite(self) -> np.ndarray:
        return np.isfinite(self.centers).all(axis=1)

    def overlaps(self, other: "LabelBoxes", gap: float = 0.0) -> np.ndarray:
        """``(len(self), len(other))`` matrix of strict intersections; touching edges do not count."""
        dx = np.abs(self.centers[:, None, 0] - other.centers[None, :, 0])
        dy = np.abs(self.centers[:, None, 1] - other.centers[None, :, 1])
        reach_x = (self.sizes[:, None, 0] + other.sizes[None, :, 0]) / 2.0 + gap
        reach_y = (self.sizes[:, None, 1] + other.sizes[None, :, 1]) / 2.0 + gap
        with np.errstate(invalid="ignore"):
            return (dx < reach_x) & (dy < reach_y)


def boxes_overlap(
    a_center: tuple[float, float],
    a_size: tuple[float, float],
    b_center: tuple[float, float],
    b_size: tuple[float, float],
    gap: float = 0.0,
) -> bool:
    a = LabelBoxes(np.asarray([a_center]), np.asarray([a_size]))
    b = LabelBoxes(np.asarray([b_center]), np.asarray([b_size]))
    return bool(a.overlaps(b, gap=gap)[0, 0])


@dataclass(frozen=True, eq=False)
class OverlapState:
    x_visible: np.ndarray
    y_visible: np.ndarray

    def __post_init__(self) -> None:
        for name in ("x_visible", "y_visible"):
            arr = np.array(getattr(self, name), dtype=bool).reshape(-1)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OverlapState):
            return NotImplemented
        return np.array_equal(self.x_visible, other.x_visible) and np.array_equal(self.y_visible, other.y_visible)


def resolve_overlaps(
    x_boxes: LabelBoxes,
    x_visible: np.ndarray,
    y_boxes: LabelBoxes,
    y_visible: np.ndarray,
    gap: float = 0.0,
) -> OverlapState:
    """Hide colliding labels; y labels take priority over x labels.

    Within one axis labels are kept in tick order, so the earlier index wins.
    """
    x_vis = np.array(x_visible, dtype=bool).reshape(-1)
    y_vis = np.array(y_visible, dtype=bool).reshape(-1)
    if x_vis.size != len(x_boxes) or y_vis.size != len(y_boxes):
        raise ValueError("visibility arrays must match label box counts")
    x_vis &= x_boxes.finite()
    y_vis &= y_boxes.finite()

    y_vis = _keep_first(y_boxes.overlaps(y_boxes, gap), y_vis)
    if x_vis.size and np.any(y_vis):
        against_y = x_boxes.overlaps(y_boxes, gap)[:, y_vis]
        x_vis &= ~np.any(against_y, axis=1)
    x_vis = _keep_first(x_boxes.overlaps(x_boxes, gap), x_vis)
    return OverlapState(x_visible=x_vis, y_visible=y_vis)


def _keep_first(collisions: np.ndarray, visible: np.ndarray) -> np.ndarray:
    kept = visible.copy()
    for i in range(kept.size):
        if not kept[i]:
            continue
        earlier = kept[:i]
        if np.any(collisions[i, :i] & earlier):
            kept[i] = False
    return kept
