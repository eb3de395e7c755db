from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any, Mapping

import numpy as np
from scipy import linalg

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsRotor
from .rotor import Rotor, check_positive, converged_levels, quantum_weight_sum, semiclassical_weights

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _sine_moment(p: int, n: int) -> float:
    """int_0^1 x**p sin(n pi x) dx, n > 0."""
    arg = n * math.pi
    sign = -1.0 if n % 2 else 1.0
    if p == 0:
        return (1.0 - sign) / arg
    return -sign / arg + p / arg * cosine_moment(p - 1, n)


@lru_cache(maxsize=None)
def cosine_moment(p: int, n: int) -> float:
    """int_0^1 x**p cos(n pi x) dx."""
    if n == 0:
        return 1.0 / (p + 1)
    if p == 0:
        return 0.0
    return -p / (n * math.pi) * _sine_moment(p - 1, n)


class Umbrella(Rotor):
    """
    Inversion (umbrella) mode: ``H = -K d2/dx2 + sum_p c_p x**(2p)`` on
    ``x in [-1, 1]`` in the basis ``exp(i n pi x)``.
    """

    kind = ModelsRotor.UMBRELLA

    def __init__(self, kinetic_constant: float, coefficients, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.kinetic_constant = check_positive("kinetic constant", kinetic_constant, "Umbrella")
        coefficients = np.atleast_1d(np.asarray(coefficients, dtype=float))
        if coefficients.size == 0 or not np.any(coefficients):
            raise InputError("Umbrella: at least one non-zero potential coefficient is required")
        # c_0 multiplies x**0
        self.coefficients = coefficients

        grid = np.linspace(-1.0, 1.0, self.settings.grid_size, endpoint=False)
        values = self.potential(grid)
        self.potential_min = float(values.min())
        self._grid = values - self.potential_min
        self._curvature = self.potential(grid, 2)
        self._levels: np.ndarray | None = None
        self._ground = 0.0
        size = max(self._basis_estimate(0.0), self.settings.ham_size_min) | 1
        self._ground = float(self._diagonalize(min(size, self.settings.ham_size_max | 1))[0]) - self.potential_min
        logger.info("Umbrella: K %g, %d coefficients, ground %g", self.kinetic_constant, coefficients.size, self._ground)

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "Umbrella":
        """Keys: ``Kinetic constant`` and ``Potential coefficients`` (for x**0, x**2, ...)."""
        reader = BlockReader(block, "Umbrella")
        kinetic_constant = reader.energy("Kinetic constant", positive=True)
        coefficients = reader.energies("Potential coefficients")
        reader.finish()
        if coefficients.ndim != 1:
            raise InputError("Umbrella: 'Potential coefficients' must be a flat list")
        return cls(kinetic_constant, coefficients, settings)

    def potential(self, x, der: int = 0):
        x = np.asarray(x, dtype=float)
        powers = 2 * np.arange(self.coefficients.size)
        value = np.zeros_like(x)
        for power, coefficient in zip(powers, self.coefficients):
            if power < der:
                continue
            factor = math.perm(int(power), der)
            value = value + coefficient * factor * x ** (power - der)
        return float(value) if value.ndim == 0 else value

    def _diagonalize(self, size: int) -> np.ndarray:
        n = np.arange(size) - size // 2
        shift = np.abs(n[:, None] - n[None, :])
        hamiltonian = np.zeros((size, size))
        for p, coefficient in enumerate(self.coefficients):
            moments = np.array([cosine_moment(2 * p, k) for k in range(size)])
            hamiltonian += coefficient * moments[shift]
        hamiltonian += np.diag(self.kinetic_constant * (math.pi * n) ** 2)
        return linalg.eigvalsh(hamiltonian)

    def _basis_estimate(self, energy_max: float) -> int:
        top = energy_max + self._ground + float(self._grid.max())
        return 2 * int(1.5 * math.sqrt(top / self.kinetic_constant) / math.pi) + 1

    def levels_below(self, energy_max: float) -> np.ndarray:
        return converged_levels(
            self._diagonalize, energy_max, self.settings, "Umbrella", self._basis_estimate(energy_max)
        )

    def set(self, energy_max: float) -> None:
        if energy_max < 0:
            raise ValueError(f"Umbrella: negative energy maximum {energy_max}")
        self._levels = self.levels_below(energy_max)
        self._energy_max = float(energy_max)

    def ground(self) -> float:
        return self._ground

    def energy_level(self, index: int) -> float:
        self._require_set()
        return float(self._levels[index])

    def level_size(self) -> int:
        self._require_set()
        return int(self._levels.size)

    def quantum_weight(self, temperature: float) -> float:
        return quantum_weight_sum(self.levels_below(self.settings.therm_pow_max * temperature), temperature)

    def semiclassical_weight(self, temperature: float) -> tuple[float, float]:
        return semiclassical_weights(
            temperature, self._grid, self._curvature, self.kinetic_constant, 1.0 / math.pi, self._ground
        )

    def weight(self, temperature: float) -> float:
        if self.settings.use_quantum_weight:
            return self.quantum_weight(temperature)
        return self.semiclassical_weight(temperature)[1]

    def __repr__(self) -> str:
        return f"Umbrella(kinetic_constant={self.kinetic_constant:g}, coefficients={self.coefficients.tolist()})"
