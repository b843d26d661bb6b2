from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import TYPE_CHECKING, Any, Callable, Literal

import numpy as np

from luvatrix_geo.adapters import geometry_to_parts, normalize_lonlat
from luvatrix_geo.coastlines import default_coastlines
from luvatrix_geo.config import GeoAxisConfig
from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.labels import TextMeasurer, TickLabelStyle
from luvatrix_geo.limits import AUTOMATIC, ViewLimits, data_limits
from luvatrix_geo.orchestrator import GeoDecorations, GeoTickOrchestrator
from luvatrix_geo.projection import ProjectionTransform, build_transform, project_points
from luvatrix_geo.raster import (
    LayerCache,
    draw_markers,
    draw_polyline,
    draw_text,
    draw_text_centered,
    fill_rect,
    new_canvas,
    text_size,
)
from luvatrix_geo.raster.canvas import RGBA
from luvatrix_geo.scales import Viewport
from luvatrix_geo.series import SeriesData, SeriesSpec, SeriesStyle
from luvatrix_geo.ticks import TickFormatter

if TYPE_CHECKING:
    from luvatrix_geo.figure import Figure


LOGGER = logging.getLogger(__name__)

LayerKind = Literal["lines", "labels"]
# Widest default labels; used to reserve gutter space around the map.
_X_LABEL_PROBE = "180°W"
_Y_LABEL_PROBE = "90°S"


def _coerce_color(color: tuple[int, int, int] | tuple[int, int, int, int], alpha: float) -> RGBA:
    if len(color) == 3:
        r, g, b = color
        a = int(max(0.0, min(1.0, alpha)) * 255)
        return (r, g, b, a)
    r, g, b, a = color
    out_a = int(max(0.0, min(1.0, alpha)) * a)
    return (r, g, b, out_a)


@dataclass
class DecorationLayer:
    """A drawable owned by the axis and fed from the published decorations."""

    name: str
    kind: LayerKind
    color: RGBA
    width: int = 1
    visible: bool = True
    points: np.ndarray = field(default_factory=lambda: np.empty((0, 2), dtype=np.float64))
    labels: tuple[str, ...] = ()
    label_visible: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=bool))
    style: TickLabelStyle | None = None

    def draw(self, canvas: np.ndarray) -> None:
        if not self.visible or self.points.shape[0] == 0:
            return
        if self.kind == "lines":
            draw_polyline(canvas, self.points[:, 0], self.points[:, 1], self.color, width=self.width)
            return
        assert self.style is not None
        for (cx, cy), text, shown in zip(self.points.tolist(), self.labels, self.label_visible.tolist(), strict=False):
            if not shown:
                continue
            draw_text_centered(
                canvas,
                cx,
                cy,
                text,
                self.color,
                font_family=self.style.font_family,
                font_size_px=self.style.font_size_px,
                rotate_deg=self.style.rotate_deg,
            )


class GeoAxis:
    """Map axis: lon/lat data drawn through a projection with curved grid, spines and tick labels."""

    def __init__(
        self,
        figure: "Figure",
        config: GeoAxisConfig | None = None,
        *,
        measurer: TextMeasurer | None = None,
        **options: Any,
    ) -> None:
        self.figure = figure
        self.config = (config if config is not None else GeoAxisConfig()).with_overrides(**options)
        self._measurer = measurer
        self._series: list[SeriesSpec] = []
        self._cache = LayerCache()
        self._coastlines = self._resolve_coastlines(self.config.coastlines)
        self._coastline_plane: tuple[ProjectionTransform, np.ndarray] | None = None

        cfg = self.config
        if cfg.transformation is not None:
            transform = build_transform(cfg.transformation)
        else:
            transform = build_transform(cfg.source, cfg.dest)

        self.layers: dict[str, DecorationLayer] = {
            "xgrid": DecorationLayer("xgrid", "lines", cfg.grid_color, cfg.grid_width, cfg.xgridvisible),
            "ygrid": DecorationLayer("ygrid", "lines", cfg.grid_color, cfg.grid_width, cfg.ygridvisible),
        }
        for side in ("top", "bottom", "left", "right"):
            self.layers[f"spine_{side}"] = DecorationLayer(
                f"spine_{side}", "lines", cfg.spine_color, cfg.spine_width, cfg.spinesvisible
            )
        self.layers["xticklabels"] = DecorationLayer("xticklabels", "labels", cfg.text_color)
        self.layers["yticklabels"] = DecorationLayer("yticklabels", "labels", cfg.text_color)

        self.orchestrator = GeoTickOrchestrator(
            transform,
            lonlims=cfg.lonlims,
            latlims=cfg.latlims,
            xticks=cfg.xticks,
            yticks=cfg.yticks,
            xtickformat=cfg.xtickformat,
            ytickformat=cfg.ytickformat,
            xlabel_style=TickLabelStyle(
                position=cfg.xaxisposition,  # type: ignore[arg-type]
                font_size_px=float(cfg.xticklabelsize),
                font_family=cfg.xticklabelfont,
                rotate_deg=float(cfg.xticklabelrotation),
                pad=float(cfg.xticklabelpad),
                visible=bool(cfg.xticklabelsvisible),
                color=cfg.text_color,
            ),
            ylabel_style=TickLabelStyle(
                position=cfg.yaxisposition,  # type: ignore[arg-type]
                font_size_px=float(cfg.yticklabelsize),
                font_family=cfg.yticklabelfont,
                rotate_deg=float(cfg.yticklabelrotation),
                pad=float(cfg.yticklabelpad),
                visible=bool(cfg.yticklabelsvisible),
                color=cfg.text_color,
            ),
            viewport=self._plot_viewport(),
            line_density=cfg.line_density,
            remove_overlapping_ticks=cfg.remove_overlapping_ticks,
            measurer=measurer,
        )
        self._bind_layers(self.orchestrator.current())
        self.orchestrator.subscribe(self._bind_layers)

    # -- plotting ---------------------------------------------------------

    def scatter(
        self,
        lon: Any = None,
        lat: Any = None,
        *,
        data: Any = None,
        label: str | None = None,
        color: tuple[int, int, int] | tuple[int, int, int, int] = (62, 149, 255),
        size: int = 2,
        alpha: float = 1.0,
    ) -> "GeoAxis":
        style = SeriesStyle(mode="markers", color=_coerce_color(color, alpha), marker_size=max(1, size), line_width=1)
        self._series.append(SeriesSpec(data=normalize_lonlat(lon, lat, data=data), style=style, label=label))
        return self

    def lines(
        self,
        lon: Any = None,
        lat: Any = None,
        *,
        data: Any = None,
        label: str | None = None,
        mode: str = "lines",
        color: tuple[int, int, int] | tuple[int, int, int, int] = (255, 165, 0),
        width: int = 1,
        alpha: float = 1.0,
    ) -> "GeoAxis":
        if mode not in {"lines", "lines+markers"}:
            raise PlotDataError(f"unsupported lines mode: {mode}")
        style = SeriesStyle(mode=mode, color=_coerce_color(color, alpha), marker_size=max(1, width), line_width=max(1, width))  # type: ignore[arg-type]
        self._series.append(SeriesSpec(data=normalize_lonlat(lon, lat, data=data), style=style, label=label))
        return self

    def geometry(
        self,
        geom: Any,
        *,
        label: str | None = None,
        color: tuple[int, int, int] | tuple[int, int, int, int] = (110, 169, 255),
        width: int = 1,
        size: int = 2,
        alpha: float = 1.0,
    ) -> "GeoAxis":
        """Plot a GeoJSON mapping or any object exposing ``__geo_interface__``."""
        parts = geometry_to_parts(geom)
        if parts.is_empty:
            raise PlotDataError("geometry contains no coordinates")
        rgba = _coerce_color(color, alpha)
        if parts.lines.shape[0]:
            self._series.append(
                SeriesSpec(
                    data=SeriesData(points=parts.lines, source_name="geometry"),
                    style=SeriesStyle(mode="lines", color=rgba, line_width=max(1, width)),
                    label=label,
                )
            )
        if parts.points.shape[0]:
            self._series.append(
                SeriesSpec(
                    data=SeriesData(points=parts.points, source_name="geometry"),
                    style=SeriesStyle(mode="markers", color=rgba, marker_size=max(1, size)),
                    label=label,
                )
            )
        return self

    @property
    def series(self) -> tuple[SeriesSpec, ...]:
        return tuple(self._series)

    # -- limits -----------------------------------------------------------

    def set_limits(self, lonlims: Any = None, latlims: Any = None) -> "GeoAxis":
        """Request new limits; ``None`` keeps the current request, ``AUTOMATIC`` infers from the projection."""
        current_lon, current_lat = self.orchestrator.limits_request.get()
        self.orchestrator.set_limits(
            current_lon if lonlims is None else lonlims,
            current_lat if latlims is None else latlims,
        )
        return self

    def xlims(self, lo: float | None = None, hi: float | None = None) -> tuple[float, float]:
        """Current longitude limits; with arguments, set them first."""
        if lo is not None or hi is not None:
            current = self.limits().xlims
            self.set_limits(lonlims=(current[0] if lo is None else lo, current[1] if hi is None else hi))
        return self.limits().xlims

    def ylims(self, lo: float | None = None, hi: float | None = None) -> tuple[float, float]:
        if lo is not None or hi is not None:
            current = self.limits().ylims
            self.set_limits(latlims=(current[0] if lo is None else lo, current[1] if hi is None else hi))
        return self.limits().ylims

    def limits(self) -> ViewLimits:
        return self.orchestrator.limits.get()

    def datalims(self) -> ViewLimits | None:
        """Bounding rectangle of visible plotted data; decorations and coastlines are excluded."""
        return data_limits(self._series)

    def datalims_(self) -> ViewLimits:
        rect = self.datalims()
        if rect is None:
            raise PlotDataError("no finite data to fit limits to")
        self.set_limits(lonlims=rect.xlims, latlims=rect.ylims)
        return rect

    def reset_limits(self) -> "GeoAxis":
        self.orchestrator.set_limits(AUTOMATIC, AUTOMATIC)
        return self

    # -- projection -------------------------------------------------------

    def set_projection(self, source: Any, dest: str | None = None) -> "GeoAxis":
        self.orchestrator.set_projection(source, dest)
        return self

    def set_transformation(self, transformation: Any) -> "GeoAxis":
        self.orchestrator.set_projection(build_transform(transformation))
        return self

    @property
    def transform(self) -> ProjectionTransform:
        return self.orchestrator.transform.get()

    # -- ticks and decorations ---------------------------------------------

    def set_xticks(self, policy: Any) -> "GeoAxis":
        self.orchestrator.set_xticks(policy)
        return self

    def set_yticks(self, policy: Any) -> "GeoAxis":
        self.orchestrator.set_yticks(policy)
        return self

    def set_xtickformat(self, formatter: TickFormatter) -> "GeoAxis":
        self.orchestrator.set_xtickformat(formatter)
        return self

    def set_ytickformat(self, formatter: TickFormatter) -> "GeoAxis":
        self.orchestrator.set_ytickformat(formatter)
        return self

    def set_line_density(self, density: int) -> "GeoAxis":
        self.orchestrator.set_line_density(density)
        return self

    def set_remove_overlapping_ticks(self, enabled: bool) -> "GeoAxis":
        self.orchestrator.set_remove_overlapping_ticks(enabled)
        return self

    def set_xticklabel_style(self, **changes: Any) -> "GeoAxis":
        self.orchestrator.set_label_styles(x=replace(self.orchestrator.xlabel_style.get(), **changes))
        return self

    def set_yticklabel_style(self, **changes: Any) -> "GeoAxis":
        self.orchestrator.set_label_styles(y=replace(self.orchestrator.ylabel_style.get(), **changes))
        return self

    def set_grid_visible(self, *, x: bool | None = None, y: bool | None = None) -> "GeoAxis":
        if x is not None:
            self.layers["xgrid"].visible = bool(x)
        if y is not None:
            self.layers["ygrid"].visible = bool(y)
        self._cache.invalidate()
        return self

    def set_spines_visible(self, visible: bool) -> "GeoAxis":
        for side in ("top", "bottom", "left", "right"):
            self.layers[f"spine_{side}"].visible = bool(visible)
        return self

    def set_ticklabels_visible(self, *, x: bool | None = None, y: bool | None = None) -> "GeoAxis":
        with self.orchestrator.scheduler.batch():
            if x is not None:
                self.set_xticklabel_style(visible=bool(x))
            if y is not None:
                self.set_yticklabel_style(visible=bool(y))
        return self

    def decorations(self) -> GeoDecorations:
        return self.orchestrator.current()

    def subscribe(self, callback: Callable[[GeoDecorations], None]) -> Callable[[], None]:
        return self.orchestrator.subscribe(callback)

    def _bind_layers(self, decorations: GeoDecorations) -> None:
        pixels = decorations.pixels
        self.layers["xgrid"].points = pixels.xgrid
        self.layers["ygrid"].points = pixels.ygrid
        for side, points in pixels.spines.items():
            self.layers[f"spine_{side}"].points = points
        for axis, anchors, labels, visible, style in (
            ("x", pixels.xanchors, pixels.xlabels, decorations.overlap.x_visible, self.orchestrator.xlabel_style.get()),
            ("y", pixels.yanchors, pixels.ylabels, decorations.overlap.y_visible, self.orchestrator.ylabel_style.get()),
        ):
            layer = self.layers[f"{axis}ticklabels"]
            layer.points = anchors
            layer.labels = labels
            layer.label_visible = visible
            layer.style = style
            layer.color = style.color

    # -- rendering ----------------------------------------------------------

    def _measure(self, text: str, *, font_family: str, font_size_px: float, rotate_deg: float) -> tuple[int, int]:
        measure = self._measurer if self._measurer is not None else text_size
        return measure(text, font_family=font_family, font_size_px=font_size_px, rotate_deg=rotate_deg)

    def _title_font_px(self) -> float:
        return max(12.0, min(30.0, min(self.figure.width, self.figure.height) * 0.038))

    def _plot_viewport(self) -> Viewport:
        cfg = self.config
        xw, xh = self._measure(
            _X_LABEL_PROBE,
            font_family=cfg.xticklabelfont,
            font_size_px=float(cfg.xticklabelsize),
            rotate_deg=float(cfg.xticklabelrotation),
        )
        yw, _ = self._measure(
            _Y_LABEL_PROBE,
            font_family=cfg.yticklabelfont,
            font_size_px=float(cfg.yticklabelsize),
            rotate_deg=float(cfg.yticklabelrotation),
        )
        x_gutter = int(cfg.xticklabelpad + xh + 6) if cfg.xticklabelsvisible else 8
        y_gutter = int(cfg.yticklabelpad + yw + 6) if cfg.yticklabelsvisible else 8
        side = max(8, xw // 2 + 4)
        title_h = 0
        if cfg.title:
            title_h = self._measure(cfg.title, font_family=cfg.xticklabelfont, font_size_px=self._title_font_px(), rotate_deg=0.0)[1] + 10

        left = y_gutter if cfg.yaxisposition == "left" else side
        right = y_gutter if cfg.yaxisposition == "right" else side
        top = title_h + (x_gutter if cfg.xaxisposition == "top" else 8)
        bottom = x_gutter if cfg.xaxisposition == "bottom" else 8

        # Bound gutters for small figures so we always preserve a drawable plot area.
        left = min(left, max(2, self.figure.width // 3))
        right = min(right, max(2, self.figure.width // 3))
        top = min(top, max(2, self.figure.height // 3))
        bottom = min(bottom, max(2, self.figure.height // 3))
        width = self.figure.width - left - right
        height = self.figure.height - top - bottom
        if width <= 1 or height <= 1:
            raise PlotDataError("figure too small for plotting viewport")
        return Viewport(x0=left, y0=top, width=width, height=height)

    def _resolve_coastlines(self, coastlines: Any) -> np.ndarray | None:
        if coastlines is False or coastlines is None:
            return None
        if coastlines is True:
            return default_coastlines(self.config.coastline_path)
        return normalize_lonlat(coastlines).points

    def _coastline_pixels(self, decorations: GeoDecorations) -> np.ndarray | None:
        if self._coastlines is None or self._coastlines.shape[0] == 0:
            return None
        transform = self.transform
        if self._coastline_plane is None or self._coastline_plane[0] is not transform:
            self._coastline_plane = (transform, project_points(transform, self._coastlines))
        return decorations.plane_to_pixel.to_pixels(self._coastline_plane[1])

    def render(self) -> np.ndarray:
        self.orchestrator.set_viewport(self._plot_viewport())
        decorations = self.orchestrator.current()
        vp = decorations.viewport

        key = (
            decorations.revision,
            self.figure.width,
            self.figure.height,
            self.layers["xgrid"].visible,
            self.layers["ygrid"].visible,
        )
        frame = self._cache.lookup(key)
        if frame is None:
            frame = new_canvas(self.figure.width, self.figure.height, color=self.figure.style.background)
            fill_rect(frame, vp.x0, vp.y0, vp.x0 + vp.width - 1, vp.y0 + vp.height - 1, self.config.plot_bg_color)
            self.layers["xgrid"].draw(frame)
            self.layers["ygrid"].draw(frame)
            self._cache.store(key, frame)

        for spec in self._series:
            if not spec.visible:
                continue
            px = decorations.plane_to_pixel.to_pixels(project_points(self.transform, spec.data.points))
            if spec.style.mode in ("lines", "lines+markers"):
                draw_polyline(frame, px[:, 0], px[:, 1], spec.style.color, width=spec.style.line_width)
            if spec.style.mode in ("markers", "lines+markers"):
                draw_markers(frame, px[:, 0], px[:, 1], spec.style.color, size=spec.style.marker_size)

        coast = self._coastline_pixels(decorations)
        if coast is not None:
            draw_polyline(frame, coast[:, 0], coast[:, 1], self.config.coastline_color, width=self.config.coastline_width)

        for side in ("top", "bottom", "left", "right"):
            self.layers[f"spine_{side}"].draw(frame)
        self.layers["yticklabels"].draw(frame)
        self.layers["xticklabels"].draw(frame)

        if self.config.title:
            title_px = self._title_font_px()
            tw, _ = self._measure(self.config.title, font_family=self.config.xticklabelfont, font_size_px=title_px, rotate_deg=0.0)
            draw_text(
                frame,
                max(0, (self.figure.width - tw) // 2),
                4,
                self.config.title,
                self.config.text_color,
                font_family=self.config.xticklabelfont,
                font_size_px=title_px,
            )
        return frame

    def pixel_to_lonlat(self, px: float, py: float) -> tuple[float, float]:
        """Inverse-map a canvas pixel to lon/lat; NaN where the projection has no inverse."""
        decorations = self.orchestrator.current()
        x, y = decorations.plane_to_pixel.to_plane(np.asarray([px], dtype=np.float64), np.asarray([py], dtype=np.float64))
        with np.errstate(invalid="ignore"):
            lon, lat = self.transform.inverse(x, y)
        lon_v, lat_v = float(lon[0]), float(lat[0])
        if not (np.isfinite(lon_v) and np.isfinite(lat_v)):
            return (float("nan"), float("nan"))
        return (lon_v, lat_v)
