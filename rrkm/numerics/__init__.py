"""Numeric helpers shared by all state-count models."""
from __future__ import annotations

from .numeric import (
    harmonic_convolute,
    integrate_interval,
    ladder_convolute,
    laplace_weight,
    newton_raphson,
    read_columns,
)
from .fourier import FourierSeries
from .spline import LogLogSpline

__all__ = [
    "FourierSeries",
    "LogLogSpline",
    "harmonic_convolute",
    "integrate_interval",
    "ladder_convolute",
    "laplace_weight",
    "newton_raphson",
    "read_columns",
]
