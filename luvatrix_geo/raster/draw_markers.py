from __future__ import annotations

import numpy as np

from luvatrix_geo.raster.canvas import RGBA, fill_rect


def draw_markers(dst: np.ndarray, xs: np.ndarray, ys: np.ndarray, color: RGBA, size: int = 1) -> None:
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    keep = np.isfinite(xs) & np.isfinite(ys)
    radius = max(0, size // 2)
    for x, y in zip(np.rint(xs[keep]).astype(np.int64).tolist(), np.rint(ys[keep]).astype(np.int64).tolist(), strict=False):
        fill_rect(dst, x - radius, y - radius, x + radius, y + radius, color)
