"""Recompute pipeline for projected grid lines, spines and tick labels.

Every input (projection, requested limits, tick policies and formatters,
label styles, viewport, line density, overlap toggle) is a ``Signal``. A
single ``decorations`` node depends on all of them and reruns the whole
pipeline (limits -> ticks -> sampling -> projection -> label placement)
whenever any input changes, publishing one immutable ``GeoDecorations``
snapshot per pass.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable

import numpy as np

from luvatrix_geo.labels import (
    LabelBoxes,
    OverlapState,
    TextMeasurer,
    TickLabelStyle,
    directional_pads,
    measure_labels,
    resolve_overlaps,
    spine_anchors,
)
from luvatrix_geo.limits import AUTOMATIC, ViewLimits, check_limit_pair, resolve_limits
from luvatrix_geo.projection import ProjectionTransform, TransformHolder, project_points
from luvatrix_geo.reactive import Computed, Scheduler, Signal
from luvatrix_geo.sampling import DEFAULT_LINE_DENSITY, SpinePoints, sample_grid, validate_density
from luvatrix_geo.scales import PlaneBounds, PlaneToPixel, Viewport, fit_plane_to_viewport
from luvatrix_geo.ticks import (
    LinearTicks,
    TickFormatter,
    TickSet,
    generate_ticks,
    latitude_ticklabels,
    longitude_ticklabels,
    validate_tick_policy,
)


LOGGER = logging.getLogger(__name__)

DEFAULT_VIEWPORT = Viewport(x0=0, y0=0, width=640, height=360)


@dataclass(frozen=True)
class ProjectedGeometry:
    """Grid, spine and tick anchor geometry in one coordinate space.

    ``xgrid``/``ygrid`` are break-separated batches; anchors are index-aligned
    with the labels and never filtered.
    """

    xgrid: np.ndarray
    ygrid: np.ndarray
    spines: SpinePoints
    xanchors: np.ndarray
    yanchors: np.ndarray
    xlabels: tuple[str, ...]
    ylabels: tuple[str, ...]

    def map(self, fn: Callable[[np.ndarray], np.ndarray], *, xanchors: np.ndarray, yanchors: np.ndarray) -> "ProjectedGeometry":
        return ProjectedGeometry(
            xgrid=fn(self.xgrid),
            ygrid=fn(self.ygrid),
            spines=SpinePoints(
                top=fn(self.spines.top),
                bottom=fn(self.spines.bottom),
                left=fn(self.spines.left),
                right=fn(self.spines.right),
            ),
            xanchors=xanchors,
            yanchors=yanchors,
            xlabels=self.xlabels,
            ylabels=self.ylabels,
        )


@dataclass(frozen=True, eq=False)
class GeoDecorations:
    """One consistent published state of the axis decorations.

    ``plane`` holds projected-plane coordinates with anchors on the spines;
    ``pixels`` holds canvas pixels with anchors already padded to label centres.
    """

    revision: int
    limits: ViewLimits
    xticks: TickSet
    yticks: TickSet
    plane: ProjectedGeometry
    pixels: ProjectedGeometry
    x_boxes: LabelBoxes
    y_boxes: LabelBoxes
    overlap: OverlapState
    plane_to_pixel: PlaneToPixel
    viewport: Viewport


def compute_decorations(
    *,
    transform: ProjectionTransform,
    lonlims: Any,
    latlims: Any,
    xticks: Any,
    yticks: Any,
    xtickformat: TickFormatter,
    ytickformat: TickFormatter,
    xlabel_style: TickLabelStyle,
    ylabel_style: TickLabelStyle,
    viewport: Viewport,
    line_density: int,
    remove_overlapping_ticks: bool,
    previous_limits: ViewLimits | None = None,
    measurer: TextMeasurer | None = None,
    revision: int = 1,
) -> GeoDecorations:
    limits = resolve_limits(lonlims, latlims, transform, previous=previous_limits)
    xtickset = generate_ticks(limits.xmin, limits.xmax, xticks, xtickformat)
    ytickset = generate_ticks(limits.ymin, limits.ymax, yticks, ytickformat)
    grid = sample_grid(limits.xlims, limits.ylims, xtickset.values, ytickset.values, line_density)

    x_lonlat = spine_anchors(xtickset.values, limits, xlabel_style.position)
    y_lonlat = spine_anchors(ytickset.values, limits, ylabel_style.position)

    def project(points: np.ndarray) -> np.ndarray:
        return project_points(transform, points)

    plane = ProjectedGeometry(
        xgrid=project(grid.xgrid),
        ygrid=project(grid.ygrid),
        spines=SpinePoints(
            top=project(grid.spines.top),
            bottom=project(grid.spines.bottom),
            left=project(grid.spines.left),
            right=project(grid.spines.right),
        ),
        xanchors=project(x_lonlat),
        yanchors=project(y_lonlat),
        xlabels=xtickset.labels,
        ylabels=ytickset.labels,
    )
    bounds = PlaneBounds.from_points(
        plane.xgrid,
        plane.ygrid,
        *(points for _, points in plane.spines.items()),
    )
    plane_to_pixel = fit_plane_to_viewport(bounds, viewport)

    def to_pixels(lonlat: np.ndarray) -> np.ndarray:
        return plane_to_pixel.to_pixels(project(lonlat))

    x_sizes = measure_labels(xtickset.labels, xlabel_style, measurer)
    y_sizes = measure_labels(ytickset.labels, ylabel_style, measurer)
    x_centers = plane_to_pixel.to_pixels(plane.xanchors) + directional_pads(
        to_pixels, limits, x_lonlat, xlabel_style.position, x_sizes, xlabel_style.pad
    )
    y_centers = plane_to_pixel.to_pixels(plane.yanchors) + directional_pads(
        to_pixels, limits, y_lonlat, ylabel_style.position, y_sizes, ylabel_style.pad
    )
    pixels = plane.map(plane_to_pixel.to_pixels, xanchors=x_centers, yanchors=y_centers)

    x_boxes = LabelBoxes(x_centers, x_sizes)
    y_boxes = LabelBoxes(y_centers, y_sizes)
    x_visible = np.full(len(x_boxes), xlabel_style.visible, dtype=bool)
    y_visible = np.full(len(y_boxes), ylabel_style.visible, dtype=bool)
    if remove_overlapping_ticks:
        overlap = resolve_overlaps(x_boxes, x_visible, y_boxes, y_visible)
    else:
        overlap = OverlapState(x_visible=x_visible & x_boxes.finite(), y_visible=y_visible & y_boxes.finite())

    return GeoDecorations(
        revision=revision,
        limits=limits,
        xticks=xtickset,
        yticks=ytickset,
        plane=plane,
        pixels=pixels,
        x_boxes=x_boxes,
        y_boxes=y_boxes,
        overlap=overlap,
        plane_to_pixel=plane_to_pixel,
        viewport=viewport,
    )


class GeoTickOrchestrator:
    """Owns the axis's input signals and the derived decorations graph."""

    def __init__(
        self,
        transform: ProjectionTransform,
        *,
        lonlims: Any = AUTOMATIC,
        latlims: Any = AUTOMATIC,
        xticks: Any = None,
        yticks: Any = None,
        xtickformat: TickFormatter = longitude_ticklabels,
        ytickformat: TickFormatter = latitude_ticklabels,
        xlabel_style: TickLabelStyle | None = None,
        ylabel_style: TickLabelStyle | None = None,
        viewport: Viewport = DEFAULT_VIEWPORT,
        line_density: int = DEFAULT_LINE_DENSITY,
        remove_overlapping_ticks: bool = True,
        measurer: TextMeasurer | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.scheduler = scheduler if scheduler is not None else Scheduler()
        self._measurer = measurer
        self._last_limits: ViewLimits | None = None
        self._revision = 0
        xticks = LinearTicks() if xticks is None else validate_tick_policy(xticks)
        yticks = LinearTicks() if yticks is None else validate_tick_policy(yticks)
        xlabel_style = xlabel_style if xlabel_style is not None else TickLabelStyle(position="bottom")
        ylabel_style = ylabel_style if ylabel_style is not None else TickLabelStyle(position="left")
        _check_style(xlabel_style, "x")
        _check_style(ylabel_style, "y")

        s = self.scheduler
        with s.batch():
            self.transform = TransformHolder(transform, scheduler=s)
            self.limits_request: Signal[tuple[Any, Any]] = Signal(
                _check_limits_request(lonlims, latlims), scheduler=s, name="limits_request"
            )
            self.xticks: Signal[Any] = Signal(xticks, scheduler=s, name="xticks")
            self.yticks: Signal[Any] = Signal(yticks, scheduler=s, name="yticks")
            self.xtickformat: Signal[TickFormatter] = Signal(xtickformat, scheduler=s, name="xtickformat", equals=_same)
            self.ytickformat: Signal[TickFormatter] = Signal(ytickformat, scheduler=s, name="ytickformat", equals=_same)
            self.xlabel_style: Signal[TickLabelStyle] = Signal(xlabel_style, scheduler=s, name="xlabel_style", equals=_equal)
            self.ylabel_style: Signal[TickLabelStyle] = Signal(ylabel_style, scheduler=s, name="ylabel_style", equals=_equal)
            self.viewport: Signal[Viewport] = Signal(viewport, scheduler=s, name="viewport", equals=_equal)
            self.line_density: Signal[int] = Signal(
                validate_density(line_density), scheduler=s, name="line_density", equals=_equal
            )
            self.remove_overlapping_ticks: Signal[bool] = Signal(
                bool(remove_overlapping_ticks), scheduler=s, name="remove_overlapping_ticks", equals=_equal
            )
            self.decorations: Computed[GeoDecorations] = Computed(
                self._compute,
                [
                    self.transform.signal,
                    self.limits_request,
                    self.xticks,
                    self.yticks,
                    self.xtickformat,
                    self.ytickformat,
                    self.xlabel_style,
                    self.ylabel_style,
                    self.viewport,
                    self.line_density,
                    self.remove_overlapping_ticks,
                ],
                scheduler=s,
                name="decorations",
            )
            self.limits: Computed[ViewLimits] = Computed(lambda d: d.limits, [self.decorations], scheduler=s, name="limits")
            self.xtickset: Computed[TickSet] = Computed(lambda d: d.xticks, [self.decorations], scheduler=s, name="xtickset")
            self.ytickset: Computed[TickSet] = Computed(lambda d: d.yticks, [self.decorations], scheduler=s, name="ytickset")

    def _compute(
        self,
        transform: ProjectionTransform,
        limits_request: tuple[Any, Any],
        xticks: Any,
        yticks: Any,
        xtickformat: TickFormatter,
        ytickformat: TickFormatter,
        xlabel_style: TickLabelStyle,
        ylabel_style: TickLabelStyle,
        viewport: Viewport,
        line_density: int,
        remove_overlapping_ticks: bool,
    ) -> GeoDecorations:
        lonlims, latlims = limits_request
        snapshot = compute_decorations(
            transform=transform,
            lonlims=lonlims,
            latlims=latlims,
            xticks=xticks,
            yticks=yticks,
            xtickformat=xtickformat,
            ytickformat=ytickformat,
            xlabel_style=xlabel_style,
            ylabel_style=ylabel_style,
            viewport=viewport,
            line_density=line_density,
            remove_overlapping_ticks=remove_overlapping_ticks,
            previous_limits=self._last_limits,
            measurer=self._measurer,
            revision=self._revision + 1,
        )
        self._revision = snapshot.revision
        self._last_limits = snapshot.limits
        LOGGER.debug(
            "decorations revision %d: limits=%s xticks=%d yticks=%d density=%d",
            snapshot.revision,
            snapshot.limits.as_tuple(),
            len(snapshot.xticks),
            len(snapshot.yticks),
            line_density,
        )
        return snapshot

    def current(self) -> GeoDecorations:
        return self.decorations.get()

    def subscribe(self, callback: Callable[[GeoDecorations], None]) -> Callable[[], None]:
        return self.decorations.subscribe(callback)

    def set_projection(self, source: Any, dest: str | None = None) -> ProjectionTransform:
        return self.transform.set(source, dest)

    def set_limits(self, lonlims: Any = AUTOMATIC, latlims: Any = AUTOMATIC) -> None:
        self.limits_request.set(_check_limits_request(lonlims, latlims))

    def set_xticks(self, policy: Any) -> None:
        self.xticks.set(validate_tick_policy(policy))

    def set_yticks(self, policy: Any) -> None:
        self.yticks.set(validate_tick_policy(policy))

    def set_xtickformat(self, formatter: TickFormatter) -> None:
        self.xtickformat.set(_check_formatter(formatter))

    def set_ytickformat(self, formatter: TickFormatter) -> None:
        self.ytickformat.set(_check_formatter(formatter))

    def set_label_styles(self, *, x: TickLabelStyle | None = None, y: TickLabelStyle | None = None) -> None:
        with self.scheduler.batch():
            if x is not None:
                _check_style(x, "x")
                self.xlabel_style.set(x)
            if y is not None:
                _check_style(y, "y")
                self.ylabel_style.set(y)

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport.set(viewport)

    def set_line_density(self, density: int) -> None:
        self.line_density.set(validate_density(density))

    def set_remove_overlapping_ticks(self, enabled: bool) -> None:
        self.remove_overlapping_ticks.set(bool(enabled))


def _check_limits_request(lonlims: Any, latlims: Any) -> tuple[Any, Any]:
    lon = AUTOMATIC if lonlims is AUTOMATIC else check_limit_pair(lonlims, "lonlims")
    lat = AUTOMATIC if latlims is AUTOMATIC else check_limit_pair(latlims, "latlims")
    return (lon, lat)


def _check_style(style: TickLabelStyle, axis: str) -> None:
    if style.axis != axis:
        raise ValueError(f"{axis} tick labels cannot be placed at {style.position!r}")


def _check_formatter(formatter: Any) -> TickFormatter:
    if not callable(formatter):
        raise ValueError(f"tick formatter must be callable, got {formatter!r}")
    return formatter


def _same(a: Any, b: Any) -> bool:
    return a is b


def _equal(a: Any, b: Any) -> bool:
    return a == b
