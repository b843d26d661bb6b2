from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image

from luvatrix_geo.axis import GeoAxis
from luvatrix_geo.config import GeoAxisConfig
from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.labels import TextMeasurer
from luvatrix_geo.raster.canvas import RGBA


@dataclass(frozen=True)
class FigureStyle:
    background: RGBA = (12, 16, 23, 255)


@dataclass
class Figure:
    width: int = 1280
    height: int = 720
    style: FigureStyle = field(default_factory=FigureStyle)
    _axis: GeoAxis | None = None
    _last_frame_rgba: np.ndarray | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be > 0")

    def geoaxis(
        self,
        config: GeoAxisConfig | None = None,
        *,
        measurer: TextMeasurer | None = None,
        **options: Any,
    ) -> GeoAxis:
        if self._axis is not None:
            raise PlotDataError("figure already has a geoaxis")
        self._axis = GeoAxis(self, config, measurer=measurer, **options)
        return self._axis

    @property
    def axis(self) -> GeoAxis | None:
        return self._axis

    def resize(self, width: int, height: int) -> "Figure":
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        self.width = int(width)
        self.height = int(height)
        return self

    def to_rgba(self) -> np.ndarray:
        if self._axis is None:
            raise PlotDataError("figure has no axes")
        frame = self._axis.render()
        self._last_frame_rgba = frame.copy()
        return frame

    def last_frame_rgba(self) -> np.ndarray | None:
        return None if self._last_frame_rgba is None else self._last_frame_rgba.copy()

    def save(self, path: str | Path) -> Path:
        """Render and write the frame as an image; the format follows the file suffix."""
        out = Path(path)
        Image.fromarray(self.to_rgba()).save(out)
        return out
