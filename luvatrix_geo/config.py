from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
import tomllib
from typing import Any, Mapping

from luvatrix_geo.errors import PlotDataError
from luvatrix_geo.limits import AUTOMATIC, check_limit_pair
from luvatrix_geo.projection import DEFAULT_DEST, DEFAULT_SOURCE
from luvatrix_geo.raster.canvas import RGBA
from luvatrix_geo.raster.draw_text import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE_PX
from luvatrix_geo.sampling import DEFAULT_LINE_DENSITY, validate_density
from luvatrix_geo.ticks import latitude_ticklabels, longitude_ticklabels


ENV_PREFIX = "LUVATRIX_GEO_"
COASTLINES_ENV_VAR = ENV_PREFIX + "COASTLINES"
_AUTO_WORDS = {"auto", "automatic"}
_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class GeoAxisConfig:
    """Every GeoAxis option with its default."""

    source: str = DEFAULT_SOURCE
    dest: str = DEFAULT_DEST
    transformation: Any = None
    lonlims: Any = AUTOMATIC
    latlims: Any = AUTOMATIC
    coastlines: Any = False
    coastline_path: str | None = None
    coastline_color: RGBA = (154, 170, 190, 255)
    coastline_width: int = 1
    line_density: int = DEFAULT_LINE_DENSITY
    remove_overlapping_ticks: bool = True
    xticks: Any = None
    yticks: Any = None
    xtickformat: Any = longitude_ticklabels
    ytickformat: Any = latitude_ticklabels
    xticklabelpad: float = 5.0
    yticklabelpad: float = 5.0
    xticklabelsize: float = DEFAULT_FONT_SIZE_PX
    yticklabelsize: float = DEFAULT_FONT_SIZE_PX
    xticklabelrotation: float = 0.0
    yticklabelrotation: float = 0.0
    xticklabelfont: str = DEFAULT_FONT_FAMILY
    yticklabelfont: str = DEFAULT_FONT_FAMILY
    xaxisposition: str = "bottom"
    yaxisposition: str = "left"
    xgridvisible: bool = True
    ygridvisible: bool = True
    spinesvisible: bool = True
    xticklabelsvisible: bool = True
    yticklabelsvisible: bool = True
    grid_color: RGBA = (44, 53, 66, 255)
    grid_width: int = 1
    spine_color: RGBA = (124, 138, 156, 255)
    spine_width: int = 1
    text_color: RGBA = (208, 218, 232, 255)
    plot_bg_color: RGBA = (20, 26, 36, 255)
    title: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "line_density", validate_density(self.line_density))
        if self.xaxisposition not in ("bottom", "top"):
            raise PlotDataError(f"xaxisposition must be 'bottom' or 'top', got {self.xaxisposition!r}")
        if self.yaxisposition not in ("left", "right"):
            raise PlotDataError(f"yaxisposition must be 'left' or 'right', got {self.yaxisposition!r}")
        for name in ("grid_width", "spine_width", "coastline_width"):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"{name} must be > 0")
        for name in ("coastline_color", "grid_color", "spine_color", "text_color", "plot_bg_color"):
            object.__setattr__(self, name, _coerce_rgba(getattr(self, name), name))

    def with_overrides(self, **options: Any) -> "GeoAxisConfig":
        unknown = sorted(set(options) - _field_names())
        if unknown:
            raise PlotDataError(f"unknown GeoAxis option(s): {', '.join(unknown)}")
        return replace(self, **options)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, prefix: str = ENV_PREFIX) -> "GeoAxisConfig":
        """Defaults overridden by ``LUVATRIX_GEO_*`` variables (blank values are ignored)."""
        env = os.environ if environ is None else environ
        options: dict[str, Any] = {}
        for key in ("source", "dest", "title"):
            raw = env.get(prefix + key.upper(), "").strip()
            if raw:
                options[key] = raw
        raw = env.get(prefix + "COASTLINES", "").strip()
        if raw:
            options["coastlines"] = True
            options["coastline_path"] = raw
        raw = env.get(prefix + "LINE_DENSITY", "").strip()
        if raw:
            try:
                options["line_density"] = int(raw)
            except ValueError as exc:
                raise ValueError(f"{prefix}LINE_DENSITY must be an integer, got {raw!r}") from exc
        raw = env.get(prefix + "REMOVE_OVERLAPPING_TICKS", "").strip()
        if raw:
            options["remove_overlapping_ticks"] = _parse_bool(raw, prefix + "REMOVE_OVERLAPPING_TICKS")
        for key in ("lonlims", "latlims"):
            raw = env.get(prefix + key.upper(), "").strip()
            if raw:
                options[key] = _parse_limits(raw, prefix + key.upper())
        return cls(**options)

    @classmethod
    def from_toml(cls, path: str | Path, *, table: str = "geoaxis") -> "GeoAxisConfig":
        """Load options from ``[geoaxis]`` (or the top level when that table is absent)."""
        toml_path = Path(path)
        if not toml_path.exists():
            raise FileNotFoundError(f"geoaxis config not found: {toml_path}")
        with toml_path.open("rb") as f:
            raw = tomllib.load(f)
        section = raw.get(table, raw)
        if not isinstance(section, dict):
            raise ValueError(f"[{table}] must be a table")
        unknown = sorted(set(section) - _TOML_KEYS)
        if unknown:
            raise ValueError(f"unknown geoaxis option(s) in {toml_path}: {', '.join(unknown)}")
        options: dict[str, Any] = {}
        for key, value in section.items():
            if key in ("lonlims", "latlims"):
                options[key] = _parse_limits(value, key)
            elif key in ("xticks", "yticks") and isinstance(value, list):
                options[key] = tuple(float(v) for v in value)
            else:
                options[key] = value
        return cls(**options)


# Callables and transform objects cannot be expressed in TOML.
_TOML_KEYS = {f.name for f in fields(GeoAxisConfig)} - {"transformation", "xtickformat", "ytickformat"}


def _field_names() -> set[str]:
    return {f.name for f in fields(GeoAxisConfig)}


def _parse_bool(raw: str, name: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


def _parse_limits(raw: Any, name: str) -> Any:
    if isinstance(raw, str):
        if raw.strip().lower() in _AUTO_WORDS:
            return AUTOMATIC
        raw = raw.replace(":", ",").split(",")
    return check_limit_pair(raw, name)


def _coerce_rgba(color: Any, name: str) -> RGBA:
    try:
        values = tuple(int(c) for c in color)
    except (TypeError, ValueError) as exc:
        raise PlotDataError(f"{name} must be an RGB or RGBA tuple") from exc
    if len(values) == 3:
        values = values + (255,)
    if len(values) != 4 or any(c < 0 or c > 255 for c in values):
        raise PlotDataError(f"{name} must be an RGB or RGBA tuple of 0..255 ints")
    return values  # type: ignore[return-value]
