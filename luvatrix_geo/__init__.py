from luvatrix_geo.api import figure
from luvatrix_geo.axis import DecorationLayer, GeoAxis
from luvatrix_geo.config import GeoAxisConfig
from luvatrix_geo.errors import InvalidProjectionError, PlotDataError
from luvatrix_geo.figure import Figure
from luvatrix_geo.limits import AUTOMATIC, ViewLimits
from luvatrix_geo.orchestrator import GeoDecorations, GeoTickOrchestrator
from luvatrix_geo.projection import ProjectionTransform, TransformHolder
from luvatrix_geo.ticks import (
    LinearTicks,
    TickSet,
    geoformat_ticklabels,
    latitude_ticklabels,
    longitude_ticklabels,
)

__all__ = [
    "AUTOMATIC",
    "DecorationLayer",
    "Figure",
    "GeoAxis",
    "GeoAxisConfig",
    "GeoDecorations",
    "GeoTickOrchestrator",
    "InvalidProjectionError",
    "LinearTicks",
    "PlotDataError",
    "ProjectionTransform",
    "TickSet",
    "TransformHolder",
    "ViewLimits",
    "figure",
    "geoformat_ticklabels",
    "latitude_ticklabels",
    "longitude_ticklabels",
]
