from __future__ import annotations

from functools import lru_cache
import logging
import os
from pathlib import Path

import numpy as np
import shapefile

from luvatrix_geo.config import COASTLINES_ENV_VAR
from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.sampling import batch_lines


LOGGER = logging.getLogger(__name__)


def load_coastlines(path: str | Path) -> np.ndarray:
    """Read a Natural Earth style polyline shapefile into one break-separated lon/lat batch."""
    shp_path = Path(path)
    if not shp_path.exists():
        raise FileNotFoundError(f"coastline shapefile not found: {shp_path}")
    return _load_cached(str(shp_path.resolve())).copy()


@lru_cache(maxsize=4)
def _load_cached(path: str) -> np.ndarray:
    lines: list[np.ndarray] = []
    try:
        with shapefile.Reader(path) as reader:
            for shape in reader.iterShapes():
                if not shape.points:
                    continue
                points = np.asarray(shape.points, dtype=np.float64)[:, :2]
                bounds = list(shape.parts) + [len(points)]
                for start, stop in zip(bounds[:-1], bounds[1:], strict=False):
                    if stop - start >= 2:
                        lines.append(points[start:stop])
    except shapefile.ShapefileException as exc:
        raise PlotDataError(f"cannot read coastline shapefile {path}: {exc}") from exc
    LOGGER.debug("loaded %d coastline parts from %s", len(lines), path)
    return batch_lines(lines)


def resolve_coastline_path(path: str | Path | None = None) -> Path | None:
    if path is not None:
        return Path(path)
    raw = os.getenv(COASTLINES_ENV_VAR, "").strip()
    if raw:
        return Path(raw)
    return None


def default_coastlines(path: str | Path | None = None) -> np.ndarray:
    """Coastlines from ``path`` or ``LUVATRIX_GEO_COASTLINES``; empty (with a warning) when neither is set."""
    resolved = resolve_coastline_path(path)
    if resolved is None:
        LOGGER.warning("coastlines requested but no shapefile configured; set %s", COASTLINES_ENV_VAR)
        return np.empty((0, 2), dtype=np.float64)
    return load_coastlines(resolved)
