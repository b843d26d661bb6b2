"""GeoJSON / ``__geo_interface__`` geometries to break-separated lon/lat batches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping

import numpy as np

from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.sampling import batch_lines


@dataclass(frozen=True)
class GeometryParts:
    lines: np.ndarray
    points: np.ndarray

    @property
    def is_empty(self) -> bool:
        return self.lines.shape[0] == 0 and self.points.shape[0] == 0


def geometry_to_parts(geom: Any) -> GeometryParts:
    """Polygon rings and line strings become lines; (multi)points stay points."""
    lines: list[np.ndarray] = []
    points: list[np.ndarray] = []
    for kind, coords in _iter_primitives(_as_mapping(geom)):
        if kind == "line":
            if coords.shape[0] >= 2:
                lines.append(coords)
        else:
            points.append(coords)
    return GeometryParts(
        lines=batch_lines(lines),
        points=np.concatenate(points, axis=0) if points else np.empty((0, 2), dtype=np.float64),
    )


def _as_mapping(geom: Any) -> Mapping[str, Any]:
    if hasattr(geom, "__geo_interface__"):
        geom = geom.__geo_interface__
    if not isinstance(geom, Mapping) or "type" not in geom:
        raise PlotDataError(f"unsupported geometry input: {type(geom)!r}")
    return geom


def _iter_primitives(geom: Mapping[str, Any]) -> Iterator[tuple[str, np.ndarray]]:
    kind = geom["type"]
    if kind == "FeatureCollection":
        for feature in geom.get("features", ()):
            yield from _iter_primitives(_as_mapping(feature))
    elif kind == "Feature":
        if geom.get("geometry") is not None:
            yield from _iter_primitives(_as_mapping(geom["geometry"]))
    elif kind == "GeometryCollection":
        for child in geom.get("geometries", ()):
            yield from _iter_primitives(_as_mapping(child))
    elif kind == "Point":
        yield "points", _coords(geom, [geom["coordinates"]])
    elif kind == "MultiPoint":
        yield "points", _coords(geom, geom["coordinates"])
    elif kind == "LineString":
        yield "line", _coords(geom, geom["coordinates"])
    elif kind in ("MultiLineString", "Polygon"):
        for ring in geom["coordinates"]:
            yield "line", _coords(geom, ring)
    elif kind == "MultiPolygon":
        for polygon in geom["coordinates"]:
            for ring in polygon:
                yield "line", _coords(geom, ring)
    else:
        raise PlotDataError(f"unsupported geometry type: {kind!r}")


def _coords(geom: Mapping[str, Any], raw: Any) -> np.ndarray:
    try:
        arr = np.asarray([tuple(pt)[:2] for pt in raw], dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise PlotDataError(f"malformed {geom['type']} coordinates") from exc
    return arr.reshape(-1, 2)
