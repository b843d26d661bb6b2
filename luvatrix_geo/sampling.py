from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np


BREAK = np.array([np.nan, np.nan], dtype=np.float64)
MIN_LINE_DENSITY = 2
MAX_LINE_DENSITY = 10_000
DEFAULT_LINE_DENSITY = 1000


def validate_density(density: int) -> int:
    if isinstance(density, bool) or not isinstance(density, (int, np.integer)):
        raise ValueError(f"line density must be an integer, got {density!r}")
    density = int(density)
    if density < MIN_LINE_DENSITY or density > MAX_LINE_DENSITY:
        raise ValueError(f"line density must be in [{MIN_LINE_DENSITY}, {MAX_LINE_DENSITY}], got {density}")
    return density


@dataclass(frozen=True)
class SpinePoints:
    top: np.ndarray
    bottom: np.ndarray
    left: np.ndarray
    right: np.ndarray

    def items(self) -> Iterator[tuple[str, np.ndarray]]:
        yield "top", self.top
        yield "bottom", self.bottom
        yield "left", self.left
        yield "right", self.right


@dataclass(frozen=True)
class SampledGrid:
    """Lon/lat polylines for the grid and the rectangle edges, before projection."""

    xgrid: np.ndarray
    ygrid: np.ndarray
    spines: SpinePoints


def batch_lines(lines: Sequence[np.ndarray]) -> np.ndarray:
    """Concatenate ``(n, 2)`` lines with one ``BREAK`` row between consecutive lines."""
    if not lines:
        return np.empty((0, 2), dtype=np.float64)
    parts: list[np.ndarray] = []
    for i, line in enumerate(lines):
        if i:
            parts.append(BREAK.reshape(1, 2))
        parts.append(np.asarray(line, dtype=np.float64).reshape(-1, 2))
    return np.concatenate(parts, axis=0)


def split_lines(batch: np.ndarray) -> list[np.ndarray]:
    """Inverse of ``batch_lines``: the non-empty runs between break rows."""
    pts = np.asarray(batch, dtype=np.float64).reshape(-1, 2)
    if pts.shape[0] == 0:
        return []
    is_break = ~np.isfinite(pts).all(axis=1)
    out: list[np.ndarray] = []
    start = 0
    for idx in np.flatnonzero(is_break).tolist() + [pts.shape[0]]:
        if idx > start:
            out.append(pts[start:idx])
        start = idx + 1
    return out


def sample_grid(
    xlims: tuple[float, float],
    ylims: tuple[float, float],
    xticks: np.ndarray,
    yticks: np.ndarray,
    density: int = DEFAULT_LINE_DENSITY,
) -> SampledGrid:
    """Sample K x-tick meridians and L y-tick parallels plus the four limit edges.

    Every line has exactly ``density`` points, so the x grid has ``K*(density+1)-1``
    rows (none when there are no x ticks).
    """
    density = validate_density(density)
    x0, x1 = float(xlims[0]), float(xlims[1])
    y0, y1 = float(ylims[0]), float(ylims[1])
    xs = np.linspace(x0, x1, density)
    ys = np.linspace(y0, y1, density)

    xgrid = batch_lines([_line_at_x(float(tick), ys) for tick in np.asarray(xticks, dtype=np.float64).reshape(-1)])
    ygrid = batch_lines([_line_at_y(float(tick), xs) for tick in np.asarray(yticks, dtype=np.float64).reshape(-1)])
    spines = SpinePoints(
        top=_line_at_y(y1, xs),
        bottom=_line_at_y(y0, xs),
        left=_line_at_x(x0, ys),
        right=_line_at_x(x1, ys),
    )
    return SampledGrid(xgrid=xgrid, ygrid=ygrid, spines=spines)


def _line_at_x(x: float, ys: np.ndarray) -> np.ndarray:
    return np.column_stack((np.full(ys.shape, x, dtype=np.float64), ys))


def _line_at_y(y: float, xs: np.ndarray) -> np.ndarray:
    return np.column_stack((xs, np.full(xs.shape, y, dtype=np.float64)))
