from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod

import numpy as np
from scipy import special

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsTunnel
from ..numerics import integrate_interval

logger = logging.getLogger(__name__)


class Tunnel(ABC):
    """
    One-dimensional barrier tunneling.

    Energies are measured from the barrier top. Transmission is cut at
    ``-cutoff``, so a tunneling species counts states from that energy up.
    """

    kind: ModelsTunnel

    def __init__(self, frequency: float, cutoff: float, settings: Settings | None = None) -> None:
        settings = settings or Settings()
        if not frequency > 0:
            raise InputError(f"{type(self).__name__}: imaginary frequency must be positive, got {frequency}")
        if not cutoff > 0:
            raise InputError(f"{type(self).__name__}: cutoff energy must be positive, got {cutoff}")
        self.frequency = float(frequency)
        self.cutoff = float(cutoff)
        self.action_max = settings.action_max
        self.therm_pow_max = settings.therm_pow_max

    @staticmethod
    def _read_common(reader: BlockReader) -> tuple[float, float]:
        frequency = reader.energy("Imaginary frequency", positive=True)
        cutoff = reader.energy("Cutoff energy", positive=True)
        return frequency, cutoff

    @abstractmethod
    def action(self, energy: float, der: int = 0) -> float:
        """Semiclassical action (der=0) or its energy derivative (der=1)."""

    def _transmits(self, energy: float) -> float | None:
        if energy <= -self.cutoff:
            return None
        action = self.action(energy)
        if action > self.action_max:
            return None
        return action

    def factor(self, energy: float) -> float:
        """Transmission probability 1/(1 + exp(action))."""
        action = self._transmits(energy)
        if action is None:
            return 0.0
        return float(special.expit(-action))

    def density(self, energy: float) -> float:
        """Energy derivative of the transmission probability."""
        action = self._transmits(energy)
        if action is None:
            return 0.0
        value = special.expit(-action)
        return float(-value * (1.0 - value) * self.action(energy, 1))

    def weight(self, temperature: float) -> float:
        """Statistical weight of the transmission relative to the cutoff energy."""
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")

        def integrand(u: float) -> float:
            return self.factor(u * temperature - self.cutoff) * math.exp(-u)

        upper = self.therm_pow_max + self.cutoff / temperature
        return float(integrate_interval(integrand, 0.0, upper, points=[self.cutoff / temperature]))

    def convolute(self, states: np.ndarray, step: float) -> None:
        """
        Replace untunneled states on the grid ``i*step`` above the barrier top
        with tunneled states on the grid ``i*step`` above the cutoff energy.
        """
        size = states.size
        edges = (np.arange(size + 1) - 0.5) * step - self.cutoff
        values = np.array([self.factor(e) for e in edges])
        values[0] = 0.0
        increments = np.diff(values)
        # transmission is saturated above this index
        saturated = np.nonzero(values >= 1.0 - 1.0e-14)[0]
        if saturated.size:
            increments = increments[:saturated[0] + 1]
        states[:] = np.convolve(states, increments)[:size]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(frequency={self.frequency:g}, cutoff={self.cutoff:g})"
