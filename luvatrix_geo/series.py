from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np

from luvatrix_geo.raster.canvas import RGBA


SeriesMode = Literal["markers", "lines", "lines+markers"]


@dataclass(frozen=True)
class SeriesData:
    """``(N, 2)`` lon/lat points; rows of NaN are line breaks."""

    points: np.ndarray
    source_name: str | None = None

    @property
    def lon(self) -> np.ndarray:
        return self.points[:, 0]

    @property
    def lat(self) -> np.ndarray:
        return self.points[:, 1]

    @property
    def mask(self) -> np.ndarray:
        return np.isfinite(self.points).all(axis=1)


@dataclass(frozen=True)
class SeriesStyle:
    mode: SeriesMode
    color: RGBA = (62, 149, 255, 255)
    marker_size: int = 1
    line_width: int = 1


@dataclass(frozen=True)
class SeriesSpec:
    data: SeriesData
    style: SeriesStyle
    label: str | None = None
    visible: bool = True
