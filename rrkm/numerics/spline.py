from __future__ import annotations

import numpy as np
from scipy.interpolate import CubicSpline, PchipInterpolator

from ..exceptions import ExtrapolationError, InputError


class LogLogSpline:
    """
    Positive tabulated function: spline of ``log y`` inside the table and a
    power law ``y_b (x/x_b)**n`` outside, with ``n`` taken from the boundary
    log-slope so that value and first derivative stay continuous.

    Queries above ``xmax * extrapolation_factor`` raise ExtrapolationError;
    ``x <= 0`` gives zero. With ``lower="constant"`` the function is held at
    its first tabulated value below the table instead.
    """

    def __init__(
        self,
        x,
        y,
        *,
        name: str = "table",
        monotone: bool = False,
        lower: str = "power",
        extrapolation_factor: float = 10.0,
    ) -> None:
        x = np.asarray(x, dtype=float).ravel()
        y = np.asarray(y, dtype=float).ravel()
        if x.size != y.size:
            raise InputError(f"{name}: energy and value columns differ in length")
        if np.any(np.diff(x) <= 0):
            raise InputError(f"{name}: energies must be strictly increasing")
        positive = np.nonzero(y > 0)[0]
        if positive.size == 0:
            raise InputError(f"{name}: no positive values in the table")
        start = positive[0]
        x, y = x[start:], y[start:]
        if np.any(y <= 0):
            raise InputError(f"{name}: non-positive value inside the table")
        if x.size < 2:
            raise InputError(f"{name}: at least two positive points are needed")
        if lower not in ("power", "constant"):
            raise ValueError(f"unknown lower extrapolation {lower!r}")
        if lower == "power" and x[0] < 0:
            raise InputError(f"{name}: power-law extrapolation needs non-negative energies")

        self.name = name
        self.lower = lower
        self.extrapolation_factor = float(extrapolation_factor)
        self.xmin, self.xmax = float(x[0]), float(x[-1])
        self.ymin, self.ymax = float(y[0]), float(y[-1])
        log_y = np.log(y)
        if monotone:
            self._spline = PchipInterpolator(x, log_y, extrapolate=False)
        else:
            self._spline = CubicSpline(x, log_y, extrapolate=False)
        self._slope = self._spline.derivative()
        # power-law exponents at the table edges
        self.power_max = float(self.xmax * self._slope(self.xmax))
        self.power_min = float(self.xmin * self._slope(self.xmin)) if self.xmin > 0 else 0.0

    def _check(self, x: np.ndarray) -> None:
        limit = self.xmax * self.extrapolation_factor
        if np.any(x > limit):
            bad = float(np.max(x))
            raise ExtrapolationError(f"{self.name}: argument {bad} beyond extrapolation limit {limit}")

    def __call__(self, x):
        scalar = np.isscalar(x)
        x = np.atleast_1d(np.asarray(x, dtype=float))
        self._check(x)
        out = np.zeros_like(x)
        inside = (x >= self.xmin) & (x <= self.xmax)
        out[inside] = np.exp(self._spline(x[inside]))
        above = x > self.xmax
        out[above] = self.ymax * (x[above] / self.xmax) ** self.power_max
        below = x < self.xmin
        if self.lower == "constant":
            out[below] = self.ymin
        else:
            below &= x > 0
            out[below] = self.ymin * (x[below] / self.xmin) ** self.power_min
        return float(out[0]) if scalar else out

    def derivative(self, x):
        scalar = np.isscalar(x)
        x = np.atleast_1d(np.asarray(x, dtype=float))
        self._check(x)
        out = np.zeros_like(x)
        inside = (x >= self.xmin) & (x <= self.xmax)
        out[inside] = np.exp(self._spline(x[inside])) * self._slope(x[inside])
        above = x > self.xmax
        out[above] = self.ymax * self.power_max / self.xmax * (x[above] / self.xmax) ** (self.power_max - 1.0)
        if self.lower == "power":
            below = (x < self.xmin) & (x > 0)
            out[below] = self.ymin * self.power_min / self.xmin * (x[below] / self.xmin) ** (self.power_min - 1.0)
        return float(out[0]) if scalar else out

    def __repr__(self) -> str:
        return f"LogLogSpline({self.name!r}, [{self.xmin}, {self.xmax}], n={self.power_max:.3g})"
