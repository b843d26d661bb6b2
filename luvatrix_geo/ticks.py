from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import math
from typing import Any, Callable, Sequence

import numpy as np


TickFormatter = Callable[[np.ndarray], Sequence[str]]

DEFAULT_TICK_COUNT = 7
DEGREE = "°"

# Preference-ordered nice step mantissas and score weights
# (simplicity, coverage, density, legibility) for the extended Wilkinson search.
_Q = (1.0, 5.0, 2.0, 2.5, 4.0, 3.0)
_WEIGHTS = (0.25, 0.2, 0.5, 0.05)
_EPS = 1e-10


@dataclass(frozen=True)
class LinearTicks:
    """Tick policy: roughly ``n_ideal`` nice round values inside the view bounds."""

    n_ideal: int = DEFAULT_TICK_COUNT

    def __post_init__(self) -> None:
        if self.n_ideal <= 0:
            raise ValueError("n_ideal must be > 0")


@dataclass(frozen=True, eq=False)
class TickSet:
    values: np.ndarray
    labels: tuple[str, ...]

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=np.float64).reshape(-1)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "labels", tuple(str(label) for label in self.labels))
        if values.size != len(self.labels):
            raise ValueError(f"tick values and labels length mismatch: {values.size} != {len(self.labels)}")

    def __len__(self) -> int:
        return len(self.labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TickSet):
            return NotImplemented
        return self.labels == other.labels and np.array_equal(self.values, other.values)


def generate_ticks(vmin: float, vmax: float, policy: Any, formatter: TickFormatter | None = None) -> TickSet:
    """Tick values and labels for one axis; identical inputs give identical output."""
    if formatter is None:
        formatter = geoformat_ticklabels
    if isinstance(policy, tuple) and len(policy) == 2 and not _is_number(policy[0]):
        values = _coerce_values(policy[0])
        labels = tuple(str(label) for label in policy[1])
        if values.size != len(labels):
            raise ValueError("explicit tick values and labels must have the same length")
        keep = _within(values, vmin, vmax)
        return TickSet(values=values[keep], labels=tuple(label for label, k in zip(labels, keep.tolist()) if k))
    values = tick_values(vmin, vmax, policy)
    return TickSet(values=values, labels=tuple(formatter(values)))


def validate_tick_policy(policy: Any) -> Any:
    """Return ``policy`` unchanged if ``generate_ticks`` accepts it, else raise ``ValueError``."""
    if isinstance(policy, LinearTicks):
        return policy
    if isinstance(policy, tuple) and len(policy) == 2 and not _is_number(policy[0]):
        values = _coerce_values(policy[0])
        if values.size != len(policy[1]):
            raise ValueError("explicit tick values and labels must have the same length")
        return policy
    if isinstance(policy, (int, np.integer)) and not isinstance(policy, bool):
        if policy <= 0:
            raise ValueError("tick count must be > 0")
        return policy
    if isinstance(policy, (Sequence, np.ndarray)) and not isinstance(policy, (str, bytes)):
        _coerce_values(policy)
        return policy
    raise ValueError(f"unsupported tick policy: {policy!r}")


def tick_values(vmin: float, vmax: float, policy: Any) -> np.ndarray:
    if isinstance(policy, LinearTicks):
        return linear_ticks(vmin, vmax, policy.n_ideal)
    if isinstance(policy, (int, np.integer)) and not isinstance(policy, bool):
        return linear_ticks(vmin, vmax, int(policy))
    if isinstance(policy, (Sequence, np.ndarray)) and not isinstance(policy, (str, bytes)):
        values = _coerce_values(policy)
        return values[_within(values, vmin, vmax)]
    raise ValueError(f"unsupported tick policy: {policy!r}")


def linear_ticks(vmin: float, vmax: float, target: int = DEFAULT_TICK_COUNT) -> np.ndarray:
    """Nice round tick values within ``[vmin, vmax]`` (extended Wilkinson search)."""
    if target <= 0:
        raise ValueError("target must be > 0")
    vmin = float(vmin)
    vmax = float(vmax)
    if not (math.isfinite(vmin) and math.isfinite(vmax)):
        raise ValueError("tick bounds must be finite")
    if not vmax > vmin:
        # Inverted or zero-width bounds degrade to a single boundary tick.
        return np.asarray([vmin], dtype=np.float64)
    if target == 1:
        return np.asarray([(vmin + vmax) * 0.5], dtype=np.float64)

    best = _extended_search(vmin, vmax, target)
    if best is None:
        return np.asarray([vmin], dtype=np.float64)
    lmin, step, count = best
    ticks = lmin + step * np.arange(count, dtype=np.float64)
    # Snap drift so values like -4.44e-16 become 0.
    ticks = np.rint(ticks / step) * step
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks


def _extended_search(dmin: float, dmax: float, m: int) -> tuple[float, float, int] | None:
    w_s, w_c, w_d, w_l = _WEIGHTS
    best_score = -2.0
    best: tuple[float, float, int] | None = None
    span = dmax - dmin

    j = 1
    while j < 64:
        for q in _Q:
            sm = _simplicity_max(q, j)
            if w_s * sm + w_c + w_d + w_l < best_score:
                return best
            k = 2
            while k < 256:
                dm = _density_max(k, m)
                if w_s * sm + w_c + w_d * dm + w_l < best_score:
                    break
                delta = span / (k + 1) / j / q
                z = int(math.ceil(math.log10(delta)))
                while z < 32:
                    step = j * q * 10.0**z
                    cm = _coverage_max(dmin, dmax, step * (k - 1))
                    if w_s * sm + w_c * cm + w_d * dm + w_l < best_score:
                        break
                    min_start = int(math.floor(dmax / step) * j) - (k - 1) * j
                    max_start = int(math.ceil(dmin / step) * j)
                    for start in range(min_start, max_start + 1):
                        lmin = start * (step / j)
                        lmax = lmin + step * (k - 1)
                        if lmin < dmin - step * 1e-9 or lmax > dmax + step * 1e-9:
                            continue
                        s = _simplicity(q, j, lmin, lmax, step)
                        c = _coverage(dmin, dmax, lmin, lmax)
                        g = _density(k, m, dmin, dmax, lmin, lmax)
                        score = w_s * s + w_c * c + w_d * g + w_l
                        if score > best_score:
                            best_score = score
                            best = (lmin, step, k)
                    z += 1
                k += 1
        j += 1
    return best


def _simplicity(q: float, j: int, lmin: float, lmax: float, step: float) -> float:
    i = _Q.index(q) + 1
    rem = math.fmod(lmin, step)
    has_zero = (abs(rem) < _EPS or step - abs(rem) < _EPS) and lmin <= 0 <= lmax
    return 1.0 - (i - 1) / (len(_Q) - 1) - j + (1.0 if has_zero else 0.0)


def _simplicity_max(q: float, j: int) -> float:
    i = _Q.index(q) + 1
    return 1.0 - (i - 1) / (len(_Q) - 1) - j + 1.0


def _coverage(dmin: float, dmax: float, lmin: float, lmax: float) -> float:
    r = dmax - dmin
    return 1.0 - 0.5 * ((dmax - lmax) ** 2 + (dmin - lmin) ** 2) / (0.1 * r) ** 2


def _coverage_max(dmin: float, dmax: float, span: float) -> float:
    r = dmax - dmin
    if span > r:
        half = (span - r) / 2.0
        return 1.0 - half**2 / (0.1 * r) ** 2
    return 1.0


def _density(k: int, m: int, dmin: float, dmax: float, lmin: float, lmax: float) -> float:
    r = (k - 1) / (lmax - lmin)
    rt = (m - 1) / (max(lmax, dmax) - min(dmin, lmin))
    return 2.0 - max(r / rt, rt / r)


def _density_max(k: int, m: int) -> float:
    if k >= m:
        return 2.0 - (k - 1) / (m - 1)
    return 1.0


def _coerce_values(values: Any) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if not np.all(np.isfinite(arr)):
        raise ValueError("explicit tick values must be finite")
    return arr


def _within(values: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    lo, hi = min(vmin, vmax), max(vmin, vmax)
    eps = max(1e-12, (hi - lo) * 1e-9)
    return (values >= lo - eps) & (values <= hi + eps)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


def format_tick(value: float, *, step: float | None = None) -> str:
    if not np.isfinite(value):
        return str(value)
    if step is not None and np.isfinite(step) and step > 0 and abs(value) <= step * 1e-9:
        value = 0.0
    decimals = _decimals_from_step(step) if step is not None else 6

    d = Decimal(str(value))
    quant = Decimal("1").scaleb(-decimals)
    try:
        q = d.quantize(quant)
    except InvalidOperation:
        q = d
    out = format(q, "f")
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out == "-0":
        out = "0"
    return out


def format_ticks_for_axis(ticks: np.ndarray) -> list[str]:
    ticks = np.asarray(ticks, dtype=np.float64)
    if ticks.size == 0:
        return []
    if ticks.size == 1:
        return [format_tick(float(ticks[0]))]
    step = float(np.min(np.abs(np.diff(ticks)))) or None
    return [format_tick(float(v), step=step) for v in ticks]


def geoformat_ticklabels(ticks: np.ndarray) -> list[str]:
    """Plain degree labels, e.g. ``-30°``, ``0°``, ``30°``."""
    return [f"{label}{DEGREE}" for label in format_ticks_for_axis(ticks)]


def longitude_ticklabels(ticks: np.ndarray) -> list[str]:
    """Compass longitude labels: ``120°W``, ``0°``, ``60°E``; ±180 carries no suffix."""
    return _compass_labels(ticks, positive="E", negative="W", bare_magnitudes=(0.0, 180.0))


def latitude_ticklabels(ticks: np.ndarray) -> list[str]:
    """Compass latitude labels: ``30°S``, ``0°``, ``30°N``."""
    return _compass_labels(ticks, positive="N", negative="S", bare_magnitudes=(0.0,))


def _compass_labels(ticks: np.ndarray, *, positive: str, negative: str, bare_magnitudes: tuple[float, ...]) -> list[str]:
    ticks = np.asarray(ticks, dtype=np.float64)
    magnitudes = format_ticks_for_axis(np.abs(ticks))
    out: list[str] = []
    for value, text in zip(ticks.tolist(), magnitudes, strict=False):
        if any(math.isclose(abs(value), bare, abs_tol=1e-9) for bare in bare_magnitudes):
            suffix = ""
        else:
            suffix = positive if value > 0 else negative
        out.append(f"{text}{DEGREE}{suffix}")
    return out


def _decimals_from_step(step: float | None) -> int:
    if step is None or step <= 0 or not np.isfinite(step):
        return 6
    d = Decimal(str(step)).normalize()
    exp = d.as_tuple().exponent
    decimals = max(0, -int(exp))
    return min(12, decimals)
