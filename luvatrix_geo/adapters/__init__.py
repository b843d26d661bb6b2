from .geometry import GeometryParts, geometry_to_parts
from .normalize import normalize_lonlat

__all__ = ["GeometryParts", "geometry_to_parts", "normalize_lonlat"]
