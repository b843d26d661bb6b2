from __future__ import annotations

import logging
from typing import Any

import numpy as np
from pyproj import Transformer
from pyproj.exceptions import CRSError, ProjError

from luvatrix_geo.errors import InvalidProjectionError
from luvatrix_geo.reactive import Scheduler, Signal


LOGGER = logging.getLogger(__name__)

DEFAULT_SOURCE = "+proj=longlat +datum=WGS84"
DEFAULT_DEST = "+proj=eqearth"
WORLD_DOMAIN = ((-180.0, 180.0), (-90.0, 90.0))


class ProjectionTransform:
    """Forward/inverse lon/lat <-> projected plane mapping backed by a pyproj transformer.

    Instances are compared by identity: replacing the projection always means
    a new object, even when the definitions are equal.
    """

    def __init__(
        self,
        transformer: Transformer,
        *,
        source: str | None = None,
        dest: str | None = None,
        domain: tuple[tuple[float, float], tuple[float, float]] | None = None,
    ) -> None:
        self._transformer = transformer
        self.source = source
        self.dest = dest
        self._domain = domain

    @classmethod
    def from_definitions(cls, source: str = DEFAULT_SOURCE, dest: str = DEFAULT_DEST) -> "ProjectionTransform":
        try:
            transformer = Transformer.from_crs(source, dest, always_xy=True)
        except (CRSError, ProjError) as exc:
            raise InvalidProjectionError(f"invalid projection definition {source!r} -> {dest!r}: {exc}") from exc
        return cls(transformer, source=source, dest=dest)

    @property
    def transformer(self) -> Transformer:
        return self._transformer

    def forward(self, lon: Any, lat: Any) -> tuple[np.ndarray, np.ndarray]:
        lon_arr = np.asarray(lon, dtype=np.float64)
        lat_arr = np.asarray(lat, dtype=np.float64)
        x, y = self._transformer.transform(lon_arr, lat_arr)
        return np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64)

    def inverse(self, x: Any, y: Any) -> tuple[np.ndarray, np.ndarray]:
        x_arr = np.asarray(x, dtype=np.float64)
        y_arr = np.asarray(y, dtype=np.float64)
        lon, lat = self._transformer.transform(x_arr, y_arr, direction="INVERSE")
        return np.asarray(lon, dtype=np.float64), np.asarray(lat, dtype=np.float64)

    def domain(self) -> tuple[tuple[float, float], tuple[float, float]]:
        """Stated valid ((lonmin, lonmax), (latmin, latmax)); the whole globe when unknown."""
        if self._domain is not None:
            return self._domain
        try:
            area = self._transformer.area_of_use
        except ProjError:
            area = None
        if area is None:
            return WORLD_DOMAIN
        values = (area.west, area.east, area.south, area.north)
        if not all(np.isfinite(v) for v in values):
            return WORLD_DOMAIN
        west, east, south, north = (float(v) for v in values)
        if east < west:
            # Area crossing the antimeridian; sample the whole longitude band.
            west, east = -180.0, 180.0
        return ((west, east), (south, north))

    def __repr__(self) -> str:
        if self.source is not None or self.dest is not None:
            return f"ProjectionTransform({self.source!r} -> {self.dest!r})"
        return f"ProjectionTransform({self._transformer.description!r})"


def build_transform(source: Any = DEFAULT_SOURCE, dest: str | None = DEFAULT_DEST) -> ProjectionTransform:
    """Coerce a definition pair, a pyproj ``Transformer`` or a ``ProjectionTransform``."""
    if isinstance(source, ProjectionTransform):
        return source
    if isinstance(source, Transformer):
        return ProjectionTransform(source)
    if dest is None:
        raise InvalidProjectionError("projection destination definition is required")
    return ProjectionTransform.from_definitions(str(source), str(dest))


class TransformHolder:
    """Owns the axis's current projection and notifies dependents when it is replaced."""

    def __init__(self, transform: ProjectionTransform, *, scheduler: Scheduler) -> None:
        self._signal: Signal[ProjectionTransform] = Signal(
            transform,
            scheduler=scheduler,
            name="transform",
            equals=lambda old, new: old is new,
        )

    @property
    def signal(self) -> Signal[ProjectionTransform]:
        return self._signal

    def get(self) -> ProjectionTransform:
        return self._signal.get()

    def set(self, source: Any, dest: str | None = None) -> ProjectionTransform:
        """Replace the projection; raises ``InvalidProjectionError`` for unparseable definitions."""
        transform = build_transform(source, dest)
        LOGGER.debug("projection changed to %r", transform)
        self._signal.set(transform)
        return transform


def project_points(transform: ProjectionTransform, points: np.ndarray) -> np.ndarray:
    """Project an ``(N, 2)`` lon/lat batch; break rows stay breaks and keep their index.

    Points the projection cannot map (non-finite image) come back as break rows.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError("points must have shape (N, 2)")
    out = np.full(pts.shape, np.nan, dtype=np.float64)
    live = np.isfinite(pts).all(axis=1)
    if np.any(live):
        x, y = transform.forward(pts[live, 0], pts[live, 1])
        out[live, 0] = x
        out[live, 1] = y
    out[~np.isfinite(out).all(axis=1)] = np.nan
    return out
