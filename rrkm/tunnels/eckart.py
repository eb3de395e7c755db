from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsTunnel
from .tunnel import Tunnel

logger = logging.getLogger(__name__)


def _log_cosh(x: float) -> float:
    x = abs(x)
    return x + math.log1p(math.exp(-2.0 * x)) - math.log(2.0)


def _log_sinh(x: float) -> float:
    return x + math.log1p(-math.exp(-2.0 * x)) - math.log(2.0)


class EckartTunnel(Tunnel):
    """
    Asymmetric Eckart barrier.

    The exact transmission ``T`` enters through

        1/T - 1 = (cosh(2pi(a - b)) + cosh(2pi d)) / (2 sinh(2pi a) sinh(2pi b))

    and ``action = log(1/T - 1)`` is evaluated with overflow safe logarithms,
    ``a`` and ``b`` growing with the energy above the reactant and product
    asymptotes and ``d`` set by the barrier curvature.
    """

    kind = ModelsTunnel.ECKART

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
            raise InputError(f"EckartTunnel: two positive well depths are required, got {well_depths}")
        if cutoff > min(depths):
            raise InputError(f"EckartTunnel: cutoff energy {cutoff} exceeds the smaller well depth {min(depths)}")
        self.well_depths = depths

        v1, v2 = depths
        self._scale = 2.0 * math.pi / frequency / (1.0 / math.sqrt(v1) + 1.0 / math.sqrt(v2))
        curvature = (2.0 * math.pi / frequency) ** 2 * v1 * v2 - math.pi ** 2 / 4.0
        # imaginary 2*pi*d turns the cosh into a cosine
        self._oscillating = curvature < 0
        self._d = 2.0 * math.sqrt(abs(curvature))
        logger.info("Eckart tunnel: frequency %g, depths %g/%g, cutoff %g", frequency, v1, v2, cutoff)

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "EckartTunnel":
        reader = BlockReader(block, "Eckart tunnel")
        frequency, cutoff = cls._read_common(reader)
        depths = reader.energies("Well depth", positive=True)
        reader.finish()
        if depths.size != 2:
            raise reader.error(f"'Well depth' needs two values, got {depths.size}")
        return cls(frequency, cutoff, (depths[0], depths[1]), settings)

    def _action(self, energy: float) -> float:
        e1 = energy + self.well_depths[0]
        e2 = energy + self.well_depths[1]
        if e1 <= 0 or e2 <= 0:
            return math.inf
        a = 2.0 * self._scale * math.sqrt(e1)
        b = 2.0 * self._scale * math.sqrt(e2)
        numerator = _log_cosh(a - b)
        if self._oscillating:
            ratio = math.cos(self._d) * math.exp(-numerator)
            if ratio <= -1.0:
                return -math.inf
            numerator += math.log1p(ratio)
        else:
            numerator = float(np.logaddexp(numerator, _log_cosh(self._d)))
        return numerator - math.log(2.0) - _log_sinh(a) - _log_sinh(b)

    def action(self, energy: float, der: int = 0) -> float:
        if der == 0:
            return self._action(energy)
        if der != 1:
            raise ValueError(f"unsupported derivative order {der}")
        step = 1.0e-4 * self.frequency
        floor = -min(self.well_depths)
        if energy - step <= floor:
            return (self._action(energy + 2.0 * step) - self._action(energy + step)) / step
        return (self._action(energy + step) - self._action(energy - step)) / (2.0 * step)

    def __repr__(self) -> str:
        return (
            f"EckartTunnel(frequency={self.frequency:g}, cutoff={self.cutoff:g}, "
            f"well_depths={self.well_depths})"
        )
