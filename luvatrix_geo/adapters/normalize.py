from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import numpy as np

from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.series import SeriesData


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


LON_COLUMNS = ("lon", "longitude", "lng", "x")
LAT_COLUMNS = ("lat", "latitude", "y")


def normalize_lonlat(
    lon: Any = None,
    lat: Any = None,
    *,
    data: Any = None,
    source_name: str | None = None,
) -> SeriesData:
    """Coerce lon/lat input into an ``(N, 2)`` float64 point array.

    Accepts separate 1-D ``lon``/``lat`` inputs, a single ``(N, 2)`` array,
    tensor or DataFrame passed as ``lon``, or column names with ``data=``.
    Non-finite rows are kept as line breaks.
    """
    if data is not None:
        lon, lat = _resolve_columns(lon, lat, data)
    elif lat is None:
        if lon is None:
            raise PlotDataError("lon/lat input is required")
        return _finish(_coerce_pairs(lon), source_name)

    if lon is None or lat is None:
        raise PlotDataError("both lon and lat are required")
    lon_arr = _coerce_1d_numeric(lon, label="lon")
    lat_arr = _coerce_1d_numeric(lat, label="lat")
    if lon_arr.shape != lat_arr.shape:
        raise PlotDataError(f"lon and lat length mismatch: {lon_arr.size} != {lat_arr.size}")
    return _finish(np.column_stack((lon_arr, lat_arr)), source_name)


def _finish(points: np.ndarray, source_name: str | None) -> SeriesData:
    if points.shape[0] == 0:
        raise PlotDataError("empty series")
    if not np.any(np.isfinite(points).all(axis=1)):
        raise PlotDataError("series contains no finite points")
    points = points.astype(np.float64, copy=True)
    points[~np.isfinite(points).all(axis=1)] = np.nan
    return SeriesData(points=points, source_name=source_name)


def _resolve_columns(lon: Any, lat: Any, data: Any) -> tuple[Any, Any]:
    if pd is None:
        raise PlotDataError("pandas is required when using `data=`")
    if not isinstance(data, pd.DataFrame):
        raise PlotDataError("`data` must be a pandas DataFrame")
    lon_col = lon if lon is not None else _find_column(data, LON_COLUMNS, "longitude")
    lat_col = lat if lat is not None else _find_column(data, LAT_COLUMNS, "latitude")
    out = []
    for col in (lon_col, lat_col):
        if isinstance(col, str):
            if col not in data.columns:
                raise PlotDataError(f"column not found: {col}")
            out.append(data[col])
        else:
            out.append(col)
    return out[0], out[1]


def _find_column(frame: Any, names: tuple[str, ...], what: str) -> str:
    lowered = {str(c).lower(): c for c in frame.columns}
    for name in names:
        if name in lowered:
            return lowered[name]
    raise PlotDataError(f"no {what} column found; expected one of {', '.join(names)}")


def _coerce_pairs(value: Any) -> np.ndarray:
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.is_cuda:
            tensor = tensor.cpu()
        arr = tensor.to(torch.float64).numpy()
    elif pd is not None and isinstance(value, pd.DataFrame):
        lon_col = _find_column(value, LON_COLUMNS, "longitude")
        lat_col = _find_column(value, LAT_COLUMNS, "latitude")
        return np.column_stack(
            (
                _coerce_1d_numeric(value[lon_col], label="lon"),
                _coerce_1d_numeric(value[lat_col], label="lat"),
            )
        )
    elif isinstance(value, np.ndarray):
        arr = value
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        rows = [(np.nan, np.nan) if row is None else row for row in value]
        try:
            arr = np.asarray(rows, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise PlotDataError("points must be a sequence of (lon, lat) pairs") from exc
    else:
        raise PlotDataError(f"unsupported point input type: {type(value)!r}")
    if arr.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise PlotDataError(f"points must have shape (N, 2), got {arr.shape}")
    return _coerce_ndarray_2d(arr)


def _coerce_1d_numeric(value: Any, *, label: str) -> np.ndarray:
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).numpy()

    if pd is not None and isinstance(value, pd.Series):
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise PlotDataError(f"{label} must be 1-D")
        return _coerce_ndarray(value, label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return _coerce_ndarray(np.asarray(value, dtype=object), label=label)

    raise PlotDataError(f"unsupported {label} input type: {type(value)!r}")


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return arr.astype(np.float64, copy=False)

    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(arr.tolist()):
        if raw is None:
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        try:
            out[i] = float(raw)
        except (TypeError, ValueError) as exc:
            raise PlotDataError(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out


def _coerce_ndarray_2d(arr: np.ndarray) -> np.ndarray:
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return arr.astype(np.float64, copy=False)
    return np.column_stack(
        (_coerce_ndarray(arr[:, 0], label="lon"), _coerce_ndarray(arr[:, 1], label="lat"))
    )
