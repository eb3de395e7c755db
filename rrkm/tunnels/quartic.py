from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np
from scipy.interpolate import CubicSpline

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsTunnel
from ..numerics import integrate_interval, newton_raphson
from .tunnel import Tunnel

logger = logging.getLogger(__name__)


class QuarticTunnel(Tunnel):
    """
    Barrier ``V = omega * w(y)`` with ``w(y) = -y**2/2 + v3*y**3 + v4*y**4``.

    The coefficients reproduce the imaginary frequency at the top and the two
    well depths at the minima ``y = -rho*s`` and ``y = s``. The sub-barrier
    action ``2 * int sqrt(2(w - eps)) dy`` between the turning points is
    tabulated once; above the top the parabolic action is used.
    """

    kind = ModelsTunnel.QUARTIC

    table_size = 200

    def __init__(
        self,
        frequency: float,
        cutoff: float,
        well_depths: tuple[float, float],
        settings: Settings | None = None,
    ) -> None:
        super().__init__(frequency, cutoff, settings)
        depths = tuple(float(v) for v in well_depths)
        if len(depths) != 2 or min(depths) <= 0:
            raise InputError(f"QuarticTunnel: two positive well depths are required, got {well_depths}")
        if cutoff >= min(depths):
            raise InputError(f"QuarticTunnel: cutoff energy {cutoff} must stay below the smaller well depth {min(depths)}")
        self.well_depths = depths

        d1, d2 = (v / frequency for v in depths)
        self.rho = self._depth_ratio_root(d2 / d1)
        rho = self.rho
        s = math.sqrt(12.0 * d1 / (rho * rho * (2.0 + rho)))
        self.v3 = -(1.0 - rho) / (3.0 * rho * s)
        self.v4 = 1.0 / (4.0 * rho * s * s)
        self._left, self._right = -rho * s, s

        top = -self.cutoff / frequency
        eps = top * (1.0 - np.linspace(0.0, 1.0, self.table_size)) ** 2
        actions = np.array([self._sub_barrier_action(e) for e in eps[:-1]] + [0.0])
        self._table = CubicSpline(eps * frequency, actions)
        self._table_slope = self._table.derivative()
        logger.info(
            "Quartic tunnel: frequency %g, depths %g/%g, rho %.4g, cutoff action %.4g",
            frequency, depths[0], depths[1], rho, actions[0],
        )

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "QuarticTunnel":
        reader = BlockReader(block, "Quartic tunnel")
        frequency, cutoff = cls._read_common(reader)
        depths = reader.energies("Well depth", positive=True)
        reader.finish()
        if depths.size != 2:
            raise reader.error(f"'Well depth' needs two values, got {depths.size}")
        return cls(frequency, cutoff, (depths[0], depths[1]), settings)

    @staticmethod
    def _depth_ratio_root(ratio: float) -> float:
        """Solve (2 rho + 1) / (rho**3 (rho + 2)) = ratio in t = log(rho)."""
        target = math.log(ratio)

        def func(t: float) -> tuple[float, float]:
            r = math.exp(t)
            value = math.log(2.0 * r + 1.0) - 3.0 * t - math.log(r + 2.0) - target
            slope = 2.0 * r / (2.0 * r + 1.0) - 3.0 - r / (r + 2.0)
            return value, slope

        return math.exp(newton_raphson(func, 0.0, bounds=(-50.0, 50.0), name="QuarticTunnel depth ratio"))

    def _potential(self, y: float) -> float:
        return y * y * (-0.5 + y * (self.v3 + y * self.v4))

    def _force(self, y: float) -> float:
        return y * (-1.0 + y * (3.0 * self.v3 + 4.0 * self.v4 * y))

    def _turning_point(self, eps: float, lo: float, hi: float) -> float:
        guess = math.copysign(math.sqrt(-2.0 * eps), lo + hi)
        if not lo < guess < hi:
            guess = 0.5 * (lo + hi)

        def func(y: float) -> tuple[float, float]:
            return self._potential(y) - eps, self._force(y)

        return newton_raphson(func, guess, tol=1.0e-13, bounds=(lo, hi), name=f"QuarticTunnel turning point at {eps:g}")

    def _sub_barrier_action(self, eps: float) -> float:
        left = self._turning_point(eps, self._left, 0.0)
        right = self._turning_point(eps, 0.0, self._right)
        center, half = 0.5 * (left + right), 0.5 * (right - left)

        def integrand(phi: float) -> float:
            y = center + half * math.sin(phi)
            return math.sqrt(max(2.0 * (self._potential(y) - eps), 0.0)) * half * math.cos(phi)

        return 2.0 * float(integrate_interval(integrand, -0.5 * math.pi, 0.5 * math.pi))

    def action(self, energy: float, der: int = 0) -> float:
        if der not in (0, 1):
            raise ValueError(f"unsupported derivative order {der}")
        if energy >= 0:
            return -2.0 * math.pi * (energy if der == 0 else 1.0) / self.frequency
        if energy < -self.cutoff:
            raise ValueError(f"QuarticTunnel: energy {energy} below the cutoff")
        return float(self._table(energy) if der == 0 else self._table_slope(energy))

    def __repr__(self) -> str:
        return (
            f"QuarticTunnel(frequency={self.frequency:g}, cutoff={self.cutoff:g}, "
            f"well_depths={self.well_depths})"
        )
