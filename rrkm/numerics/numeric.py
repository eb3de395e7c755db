from __future__ import annotations

import io
import math
from typing import Callable, Iterable, Sequence, Tuple

import numpy as np
from scipy import integrate

from ..exceptions import ConvergenceError, DataNotFoundException, InputError


def integrate_interval(
    func: Callable[[float], float],
    a: float,
    b: float,
    *,
    return_error: bool = False,
    quad_limit: int | None = None,
    points: Sequence[float] | None = None,
) -> float | Tuple[float, float]:
    """
    Integrate a scalar function on the finite interval [a, b] using scipy.quad.

    Setting return_error to True returns a (result, estimated_error) tuple.
    """
    if b <= a:
        raise ValueError("Upper integration limit must exceed the lower limit")
    if points is not None:
        points = [p for p in points if a < p < b] or None
    result, err = integrate.quad(func, a, b, limit=quad_limit or 200, points=points)
    return (result, err) if return_error else result


def newton_raphson(
    func: Callable[[float], Tuple[float, float]],
    x0: float,
    *,
    tol: float = 1.0e-10,
    max_iter: int = 100,
    bounds: Tuple[float, float] | None = None,
    name: str = "root search",
) -> float:
    """
    Bounded Newton-Raphson search for func(x) == 0.

    ``func`` returns the value and its derivative. A step leaving ``bounds``
    is halved back toward the current point; running out of iterations or a
    vanishing derivative raises ConvergenceError.
    """
    x = float(x0)
    for _ in range(max_iter):
        value, slope = func(x)
        if abs(value) < tol:
            return x
        if slope == 0.0 or not math.isfinite(slope):
            raise ConvergenceError(f"{name}: zero derivative at x = {x}")
        step = value / slope
        x_new = x - step
        if bounds is not None:
            lo, hi = bounds
            while not lo < x_new < hi:
                step *= 0.5
                x_new = x - step
                if abs(step) < tol * max(1.0, abs(x)):
                    raise ConvergenceError(f"{name}: stuck at the bracket [{lo}, {hi}], x = {x}")
        if abs(x_new - x) < tol * max(1.0, abs(x)):
            return x_new
        x = x_new
    raise ConvergenceError(f"{name}: no convergence after {max_iter} iterations, x = {x}")


def harmonic_convolute(states: np.ndarray, frequency: float, step: float, degeneracy: int = 1) -> None:
    """Fold a harmonic ladder into ``states`` in place (Beyer-Swinehart)."""
    shift = max(1, int(round(frequency / step)))
    size = states.size
    for _ in range(degeneracy):
        for start in range(shift, size, shift):
            stop = min(start + shift, size)
            states[start:stop] += states[start - shift:stop - shift]


def ladder_convolute(
    states: np.ndarray,
    levels: Iterable[float],
    step: float,
    degeneracy: Iterable[float] | None = None,
) -> None:
    """Fold a finite ladder of levels (each a unit step) into ``states`` in place."""
    source = states.copy()
    result = np.zeros_like(source)
    size = source.size
    levels = list(levels)
    weights = [1.0] * len(levels) if degeneracy is None else list(degeneracy)
    for level, weight in zip(levels, weights):
        shift = int(round(level / step))
        if shift < 0:
            raise ValueError(f"negative level energy {level}")
        if shift >= size:
            continue
        result[shift:] += weight * source[:size - shift]
    states[:] = result


def laplace_weight(number: Callable[[float], float], temperature: float, therm_pow_max: float = 50.0) -> float:
    """Canonical weight (1/T) * int_0^inf N(E) exp(-E/T) dE of a number-of-states function."""
    if temperature <= 0:
        raise ValueError(f"temperature must be positive: {temperature}")

    def integrand(u: float) -> float:
        return number(temperature * u) * math.exp(-u)

    return float(integrate_interval(integrand, 0.0, therm_pow_max))


def read_columns(stream, columns: int = 2) -> np.ndarray:
    """Read a whitespace separated numeric column stream (``#`` comments allowed)."""
    if isinstance(stream, str):
        stream = io.StringIO(stream)
    try:
        data = np.loadtxt(stream, comments="#", ndmin=2)
    except ValueError as exc:
        raise InputError(f"malformed column stream: {exc}") from exc
    if data.size == 0:
        raise DataNotFoundException("empty column stream")
    if data.shape[1] < columns:
        raise InputError(f"column stream has {data.shape[1]} columns, expected {columns}")
    return data[:, :columns]
