from __future__ import annotations

import numpy as np

from luvatrix_geo.raster.canvas import RGBA, draw_pixel


def draw_polyline(dst: np.ndarray, xs: np.ndarray, ys: np.ndarray, color: RGBA, width: int = 1) -> None:
    """Draw a pixel-space polyline; non-finite vertices split it into separate runs."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.size < 2:
        return
    for start, stop in _finite_runs(np.isfinite(xs) & np.isfinite(ys)):
        run_x = np.rint(xs[start:stop]).astype(np.int64)
        run_y = np.rint(ys[start:stop]).astype(np.int64)
        if run_x.size == 1:
            _draw_square_brush(dst, int(run_x[0]), int(run_y[0]), color=color, width=width)
            continue
        for i in range(run_x.size - 1):
            _draw_line_segment(
                dst,
                int(run_x[i]),
                int(run_y[i]),
                int(run_x[i + 1]),
                int(run_y[i + 1]),
                color=color,
                width=width,
            )


def _finite_runs(mask: np.ndarray) -> list[tuple[int, int]]:
    idx = np.flatnonzero(mask)
    if idx.size == 0:
        return []
    splits = np.flatnonzero(np.diff(idx) != 1) + 1
    return [(int(chunk[0]), int(chunk[-1]) + 1) for chunk in np.split(idx, splits)]


def _draw_line_segment(dst: np.ndarray, x0: int, y0: int, x1: int, y1: int, color: RGBA, width: int) -> None:
    # Skip segments whose bounding box misses the canvas.
    h, w = dst.shape[0], dst.shape[1]
    if max(x0, x1) < -width or min(x0, x1) > w + width or max(y0, y1) < -width or min(y0, y1) > h + width:
        return
    dx = abs(x1 - x0)
    sx = 1 if x0 < x1 else -1
    dy = -abs(y1 - y0)
    sy = 1 if y0 < y1 else -1
    err = dx + dy

    while True:
        _draw_square_brush(dst, x0, y0, color=color, width=width)
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


def _draw_square_brush(dst: np.ndarray, x: int, y: int, color: RGBA, width: int) -> None:
    radius = max(0, width // 2)
    for yy in range(y - radius, y + radius + 1):
        for xx in range(x - radius, x + radius + 1):
            draw_pixel(dst, xx, yy, color)
