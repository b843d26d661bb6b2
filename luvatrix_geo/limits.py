from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import TYPE_CHECKING, Any, Iterable

import numpy as np

from luvatrix_geo.errors import PlotDataError

if TYPE_CHECKING:
    from luvatrix_geo.projection import ProjectionTransform
    from luvatrix_geo.series import SeriesSpec


LOGGER = logging.getLogger(__name__)


class _Automatic:
    _instance: "_Automatic | None" = None

    def __new__(cls) -> "_Automatic":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "AUTOMATIC"

    def __reduce__(self) -> str:
        return "AUTOMATIC"


AUTOMATIC = _Automatic()


@dataclass(frozen=True)
class ViewLimits:
    """Visible lon/lat rectangle in degrees; always finite and ordered."""

    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def __post_init__(self) -> None:
        for name in ("xmin", "xmax", "ymin", "ymax"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise PlotDataError(f"{name} must be finite")
            object.__setattr__(self, name, value)
        if self.xmin > self.xmax or self.ymin > self.ymax:
            raise PlotDataError("view limits must be ordered (min <= max)")

    @classmethod
    def ordered(cls, xlims: tuple[float, float], ylims: tuple[float, float]) -> "ViewLimits":
        x0, x1 = (float(v) for v in xlims)
        y0, y1 = (float(v) for v in ylims)
        return cls(xmin=min(x0, x1), xmax=max(x0, x1), ymin=min(y0, y1), ymax=max(y0, y1))

    @property
    def xlims(self) -> tuple[float, float]:
        return (self.xmin, self.xmax)

    @property
    def ylims(self) -> tuple[float, float]:
        return (self.ymin, self.ymax)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.xmin, self.xmax, self.ymin, self.ymax)


WORLD_LIMITS = ViewLimits(xmin=-180.0, xmax=180.0, ymin=-90.0, ymax=90.0)


def find_transform_limits(transform: "ProjectionTransform", step: float = 1.0) -> ViewLimits | None:
    """Lon/lat bounding box of the transform's domain points that project to finite coordinates.

    Returns None when no sample of the domain has a finite image.
    """
    if not step > 0:
        raise ValueError("step must be > 0")
    (lon0, lon1), (lat0, lat1) = transform.domain()
    lons = _inclusive_range(lon0, lon1, step)
    lats = _inclusive_range(lat0, lat1, step)
    lon_grid, lat_grid = np.meshgrid(lons, lats)
    lon_flat = lon_grid.reshape(-1)
    lat_flat = lat_grid.reshape(-1)
    with np.errstate(invalid="ignore", over="ignore"):
        x, y = transform.forward(lon_flat, lat_flat)
    finite = np.isfinite(x) & np.isfinite(y)
    if not np.any(finite):
        return None
    return ViewLimits.ordered(
        (float(np.min(lon_flat[finite])), float(np.max(lon_flat[finite]))),
        (float(np.min(lat_flat[finite])), float(np.max(lat_flat[finite]))),
    )


def resolve_limits(
    lonlims: Any,
    latlims: Any,
    transform: "ProjectionTransform",
    previous: ViewLimits | None = None,
) -> ViewLimits:
    """Concrete limits from literal pairs and/or ``AUTOMATIC`` markers."""
    auto: ViewLimits | None = None
    if lonlims is AUTOMATIC or latlims is AUTOMATIC:
        auto = find_transform_limits(transform)
        if auto is None:
            fallback = previous if previous is not None else WORLD_LIMITS
            LOGGER.warning(
                "projection %r has no finite image over its domain; keeping limits %s",
                transform,
                fallback.as_tuple(),
            )
            auto = fallback
    xlims = auto.xlims if lonlims is AUTOMATIC else check_limit_pair(lonlims, "lonlims")
    ylims = auto.ylims if latlims is AUTOMATIC else check_limit_pair(latlims, "latlims")
    return ViewLimits.ordered(xlims, ylims)


def data_limits(series: Iterable["SeriesSpec"]) -> ViewLimits | None:
    """Bounding rectangle of the finite points of the visible data series."""
    xmin = ymin = math.inf
    xmax = ymax = -math.inf
    for spec in series:
        if not spec.visible:
            continue
        pts = spec.data.points
        if pts.size == 0:
            continue
        finite = np.isfinite(pts).all(axis=1)
        if not np.any(finite):
            continue
        live = pts[finite]
        xmin = min(xmin, float(np.min(live[:, 0])))
        xmax = max(xmax, float(np.max(live[:, 0])))
        ymin = min(ymin, float(np.min(live[:, 1])))
        ymax = max(ymax, float(np.max(live[:, 1])))
    if not math.isfinite(xmin):
        return None
    return ViewLimits(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


def check_limit_pair(value: Any, name: str) -> tuple[float, float]:
    try:
        lo, hi = value
        pair = (float(lo), float(hi))
    except (TypeError, ValueError) as exc:
        raise PlotDataError(f"{name} must be a (min, max) pair or AUTOMATIC") from exc
    if not all(math.isfinite(v) for v in pair):
        raise PlotDataError(f"{name} must be finite")
    return pair


def _inclusive_range(start: float, stop: float, step: float) -> np.ndarray:
    lo, hi = min(start, stop), max(start, stop)
    count = int(math.floor((hi - lo) / step + 1e-9)) + 1
    values = lo + step * np.arange(count, dtype=np.float64)
    if values[-1] < hi:
        values = np.append(values, hi)
    return values
