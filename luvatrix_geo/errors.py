from __future__ import annotations


class PlotDataError(ValueError):
    """Raised when plot input or axis configuration cannot be used."""


class InvalidProjectionError(PlotDataError):
    """Raised when a projection definition cannot be parsed by the projection library."""
