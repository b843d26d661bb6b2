from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Viewport:
    """Pixel rectangle of the plot area inside the figure canvas."""

    x0: int
    y0: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 1 or self.height <= 1:
            raise ValueError("plot viewport width/height must be > 1")

    @property
    def center(self) -> tuple[float, float]:
        return (self.x0 + (self.width - 1) / 2.0, self.y0 + (self.height - 1) / 2.0)


@dataclass(frozen=True)
class PlaneBounds:
    xmin: float
    xmax: float
    ymin: float
    ymax: float

    @classmethod
    def from_points(cls, *batches: np.ndarray) -> "PlaneBounds | None":
        finite = [b[np.isfinite(b).all(axis=1)] for b in batches if b.size]
        finite = [b for b in finite if b.size]
        if not finite:
            return None
        pts = np.concatenate(finite, axis=0)
        return cls(
            xmin=float(np.min(pts[:, 0])),
            xmax=float(np.max(pts[:, 0])),
            ymin=float(np.min(pts[:, 1])),
            ymax=float(np.max(pts[:, 1])),
        )


@dataclass(frozen=True)
class PlaneToPixel:
    """Equal-aspect affine map from projected plane units to canvas pixels (y flipped)."""

    scale: float
    x_offset: float
    y_offset: float

    def to_pixels(self, points: np.ndarray) -> np.ndarray:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        out = np.empty_like(pts)
        out[:, 0] = pts[:, 0] * self.scale + self.x_offset
        out[:, 1] = self.y_offset - pts[:, 1] * self.scale
        return out

    def to_plane(self, px: np.ndarray, py: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        px = np.asarray(px, dtype=np.float64)
        py = np.asarray(py, dtype=np.float64)
        return (px - self.x_offset) / self.scale, (self.y_offset - py) / self.scale


def fit_plane_to_viewport(bounds: PlaneBounds | None, viewport: Viewport) -> PlaneToPixel:
    """Centre ``bounds`` in the viewport with one scale for both axes."""
    if bounds is None:
        bounds = PlaneBounds(xmin=-1.0, xmax=1.0, ymin=-1.0, ymax=1.0)
    span_x = bounds.xmax - bounds.xmin
    span_y = bounds.ymax - bounds.ymin
    if span_x <= 0 and span_y <= 0:
        span_x = span_y = 1.0
    candidates = []
    if span_x > 0:
        candidates.append((viewport.width - 1) / span_x)
    if span_y > 0:
        candidates.append((viewport.height - 1) / span_y)
    scale = min(candidates)
    cx = (bounds.xmin + bounds.xmax) / 2.0
    cy = (bounds.ymin + bounds.ymax) / 2.0
    vx, vy = viewport.center
    return PlaneToPixel(scale=scale, x_offset=vx - cx * scale, y_offset=vy + cy * scale)
