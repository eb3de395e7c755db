from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

from ..config import BlockReader, Settings
from ..exceptions import InputError, LogicError
from ..models import ModelsRotor
from ..numerics import ladder_convolute

logger = logging.getLogger(__name__)


class Rotor(ABC):
    """
    One internal degree of freedom with a quantized level ladder.

    Levels are relative to the rotor ground level, so ``energy_level(0) == 0``.
    ``set(energy_max)`` fixes the ladder; level queries before it raise
    LogicError.
    """

    kind: ModelsRotor

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self._energy_max: float | None = None

    @abstractmethod
    def set(self, energy_max: float) -> None:
        """Compute the levels up to ``energy_max`` above the ground level."""

    @abstractmethod
    def ground(self) -> float:
        """Ground level energy relative to the potential minimum."""

    @abstractmethod
    def energy_level(self, index: int) -> float:
        ...

    @abstractmethod
    def level_size(self) -> int:
        ...

    def degeneracy(self, index: int) -> int:
        return 1

    @abstractmethod
    def weight(self, temperature: float) -> float:
        """Statistical weight relative to the ground level."""

    def _require_set(self) -> None:
        if self._energy_max is None:
            raise LogicError(f"{type(self).__name__}: energy levels requested before set()")

    def convolute(self, states: np.ndarray, step: float) -> None:
        """Fold the level ladder into ``states`` sampled with ``step``."""
        self._require_set()
        size = self.level_size()
        ladder_convolute(
            states,
            [self.energy_level(i) for i in range(size)],
            step,
            [self.degeneracy(i) for i in range(size)],
        )


def read_symmetry(reader: BlockReader, name: str = "Symmetry factor") -> int:
    return reader.integer(name, 1, minimum=1)


def check_temperature(temperature: float) -> None:
    if not temperature > 0:
        raise ValueError(f"temperature must be positive: {temperature}")


def converged_levels(
    diagonalize: Callable[[int], np.ndarray],
    energy_max: float,
    settings: Settings,
    name: str,
    size: int | None = None,
) -> np.ndarray:
    """
    Grow an odd plane-wave basis until the levels below ``energy_max``
    stop changing, within ``[ham_size_min, ham_size_max]``.

    ``diagonalize(size)`` returns sorted eigenvalues; the result is relative
    to the lowest one.
    """
    size = max(size or 0, settings.ham_size_min) | 1
    size = min(size, settings.ham_size_max | 1)
    previous = None
    while True:
        levels = diagonalize(size)
        levels = levels - levels[0]
        count = max(1, int(np.searchsorted(levels, energy_max, side="right")))
        if count < levels.size and previous is not None and previous.size >= count:
            scale = max(energy_max, 1.0)
            if np.all(np.abs(previous[:count] - levels[:count]) <= 1.0e-8 * scale):
                return levels[:count]
        if size >= settings.ham_size_max:
            logger.warning(
                "%s: Hamiltonian size %d reached, levels up to %g may be unconverged",
                name, size, energy_max,
            )
            return levels[:count]
        previous = levels
        size = min(2 * size + 1, settings.ham_size_max | 1)


def semiclassical_weights(
    temperature: float,
    potential: np.ndarray,
    curvature: np.ndarray,
    kinetic: float,
    measure: float,
    ground: float,
) -> tuple[float, float]:
    """
    Classical and path-integral weights of ``kinetic * k**2 + V`` relative to
    the ground level.

    ``potential`` and ``curvature`` are sampled on a uniform grid measured
    from the potential minimum; ``measure`` is the coordinate length divided
    by 2*pi. The path-integral factor ``(u/2)/sinh(u/2)`` with
    ``u = sqrt(2 kinetic V'')/T`` is applied at grid points of positive
    curvature.
    """
    check_temperature(temperature)
    boltzmann = np.exp(-(potential - ground) / temperature)
    base = measure * math.sqrt(math.pi * temperature / kinetic)
    classical = base * float(np.mean(boltzmann))
    correction = np.ones_like(potential)
    stable = curvature > 0
    half = 0.5 * np.sqrt(2.0 * kinetic * curvature[stable]) / temperature
    with np.errstate(over="ignore"):
        correction[stable] = np.where(half > 1.0e-8, half / np.sinh(np.maximum(half, 1.0e-8)), 1.0)
    path_integral = base * float(np.mean(boltzmann * correction))
    return classical, path_integral


def quantum_weight_sum(levels: np.ndarray, temperature: float) -> float:
    check_temperature(temperature)
    return float(np.sum(np.exp(-levels / temperature)))


def check_positive(name: str, value: float, context: str) -> float:
    if not value > 0:
        raise InputError(f"{context}: {name} must be positive, got {value}")
    return float(value)
