from __future__ import annotations

from typing import Iterable, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .config import FLOAT_DTYPE
from .errors import InvalidInput

NaN = float("nan")

ArrayLike = Union[float, Iterable[float], np.ndarray]


def monotonic(values: Iterable[float]) -> bool:
    """True if values are strictly increasing."""
    a = values if isinstance(values, np.ndarray) else np.array(list(values), dtype=FLOAT_DTYPE)
    return bool(np.all(np.diff(a) > 0))


def _read_only(a: np.ndarray) -> np.ndarray:
    v = a.view()
    v.flags.writeable = False
    return v


def _shape_like(out: np.ndarray, u: ArrayLike):
    return float(out) if np.ndim(u) == 0 else out


class PiecewiseFlatCurve:
    """
    Piecewise flat forward curve with breakpoints (t[i], f[i]).

        f(u) = f[i]  if t[i-1] < u <= t[i]
             = _f    if u > t[n-1]      (extrapolation, NaN means undefined)
             = NaN   if u < 0

    - t[0] > 0 and t strictly increasing.
    - Grows only at the long end via `extend`.
    - Queries take a scalar (returns float) or an array (returns ndarray).
    - Every query accepts `extrapolation=` to price with a candidate
      forward past the last breakpoint without touching the curve.
    """

    def __init__(
        self,
        times: Iterable[float] = (),
        forwards: Iterable[float] = (),
        extrapolation: float = NaN,
    ):
        t = np.array(list(times), dtype=FLOAT_DTYPE)
        f = np.array(list(forwards), dtype=FLOAT_DTYPE)

        if t.ndim != 1 or f.ndim != 1 or len(t) != len(f):
            raise InvalidInput(f"Curve needs matching 1-d times and forwards: {t.shape} vs {f.shape}")
        if len(t) and not t[0] > 0:
            raise InvalidInput(f"First breakpoint must be positive: {t[0]}")
        if not monotonic(t):
            raise InvalidInput("Breakpoint times must be strictly increasing.")

        self._t = t
        self._f = f
        self._extrapolation = float(extrapolation)

    # ---- state ----

    def size(self) -> int:
        return len(self._t)

    def __len__(self) -> int:
        return self.size()

    @property
    def times(self) -> np.ndarray:
        return _read_only(self._t)

    @property
    def forwards(self) -> np.ndarray:
        return _read_only(self._f)

    def back(self) -> Tuple[float, float]:
        """Last breakpoint (time, forward)."""
        if self.size() == 0:
            raise InvalidInput("Empty curve has no last breakpoint.")
        return float(self._t[-1]), float(self._f[-1])

    def end(self) -> float:
        """Time of the last breakpoint, 0 for an empty curve."""
        return float(self._t[-1]) if self.size() else 0.0

    @property
    def extrapolation(self) -> float:
        return self._extrapolation

    @extrapolation.setter
    def extrapolation(self, f: float) -> None:
        self._extrapolation = float(f)

    def ok(self) -> bool:
        return len(self._t) == len(self._f) and (
            len(self._t) == 0 or (self._t[0] > 0 and monotonic(self._t))
        )

    def extend(self, t: float, f: float) -> "PiecewiseFlatCurve":
        """Append breakpoint (t, f); t must be past the current last breakpoint."""
        if not t > self.end():
            raise InvalidInput(f"Breakpoint time {t} must exceed curve end {self.end()}.")

        self._t = np.append(self._t, FLOAT_DTYPE(t))
        self._f = np.append(self._f, FLOAT_DTYPE(f))
        return self

    def copy(self) -> "PiecewiseFlatCurve":
        return PiecewiseFlatCurve(self._t.copy(), self._f.copy(), self._extrapolation)

    # ---- queries ----

    def _rates(self, extrapolation: Optional[float]) -> np.ndarray:
        _f = self._extrapolation if extrapolation is None else float(extrapolation)
        return np.append(self._f, FLOAT_DTYPE(_f))

    def value(self, u: ArrayLike, extrapolation: Optional[float] = None):
        x = np.asarray(u, dtype=FLOAT_DTYPE)
        rates = self._rates(extrapolation)

        # first breakpoint with t[i] >= u
        i = np.searchsorted(self._t, x, side="left")
        out = np.where(x >= 0, rates[i], np.nan)
        return _shape_like(out, u)

    def __call__(self, u: ArrayLike, extrapolation: Optional[float] = None):
        return self.value(u, extrapolation)

    def integral(self, u: ArrayLike, extrapolation: Optional[float] = None):
        """Area under the forward curve on [0, u]."""
        x = np.asarray(u, dtype=FLOAT_DTYPE)
        rates = self._rates(extrapolation)

        knots = np.concatenate(([0.0], self._t)).astype(FLOAT_DTYPE)
        areas = np.concatenate(([0.0], np.cumsum(self._f * np.diff(knots)))).astype(FLOAT_DTYPE)

        # breakpoints at or before u
        i = np.searchsorted(self._t, x, side="right")
        start = knots[i]
        with np.errstate(invalid="ignore"):
            partial = np.where(x - start > np.finfo(FLOAT_DTYPE).eps, rates[i] * (x - start), 0.0)
            out = np.where(x >= 0, areas[i] + partial, np.nan)
        return _shape_like(out, u)

    def discount(self, u: ArrayLike, extrapolation: Optional[float] = None):
        """D(u) = exp(-integral(u))."""
        return _shape_like(np.exp(-np.asarray(self.integral(u, extrapolation))), u)

    def spot(self, u: ArrayLike, extrapolation: Optional[float] = None):
        """Average forward on [0, u]; the first forward for u <= t[0]."""
        x = np.asarray(u, dtype=FLOAT_DTYPE)
        if self.size() == 0:
            _f = self._extrapolation if extrapolation is None else float(extrapolation)
            return _shape_like(np.full(x.shape, _f, dtype=FLOAT_DTYPE), u)

        value = np.asarray(self.value(x, extrapolation))
        integral = np.asarray(self.integral(x, extrapolation))
        with np.errstate(divide="ignore", invalid="ignore"):
            out = np.where(x <= self._t[0], value, integral / x)
        return _shape_like(out, u)

    # ---- tabular ----

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"time": self._t, "forward": self._f})

    def __repr__(self) -> str:
        points = ", ".join(f"({t:g}, {f:g})" for t, f in zip(self._t, self._f))
        return f"PiecewiseFlatCurve([{points}], extrapolation={self._extrapolation:g})"


def curve_qc_report(curve: PiecewiseFlatCurve) -> pd.DataFrame:
    t = curve.times
    report = curve.to_frame()
    report["integral"] = np.asarray(curve.integral(t))
    report["discount"] = np.asarray(curve.discount(t))
    report["spot"] = np.asarray(curve.spot(t))
    report["time_positive"] = t > 0
    report["time_increasing"] = np.r_[True, np.diff(t) > 0] if len(t) else np.array([], dtype=bool)
    report["forward_finite"] = np.isfinite(curve.forwards)
    report["discount_positive"] = report["discount"] > 0
    return report
