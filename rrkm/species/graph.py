from __future__ import annotations

import logging
import math
from typing import Iterable, Tuple

import numpy as np

from ..exceptions import InputError

logger = logging.getLogger(__name__)


class GraphExpansion:
    """
    First order thermal perturbation correction from quartic force constants.

    With dimensionless normal coordinates ``<q_i**2> = coth(w_i/2T)/2`` and

        dF(T) = (1/8) [sum_i f_iiii s_i**4 + sum_{i != j} f_iijj s_i**2 s_j**2],

    the correction is taken relative to its zero temperature limit so the
    ground level is unchanged.
    """

    def __init__(self, frequencies, constants: Iterable[Tuple[int, int, float]]) -> None:
        self.frequencies = np.asarray(frequencies, dtype=float)
        size = self.frequencies.size
        self.matrix = np.zeros((size, size))
        for i, j, value in constants:
            i, j = int(i), int(j)
            if not (0 <= i < size and 0 <= j < size):
                raise InputError(f"GraphExpansion: mode index ({i}, {j}) outside {size} frequencies")
            self.matrix[i, j] = self.matrix[j, i] = float(value)
        self._zero = self.free_energy(0.0)
        logger.debug("GraphExpansion: %d quartic constants, zero temperature shift %g", np.count_nonzero(self.matrix), self._zero)

    def _variance(self, temperature: float) -> np.ndarray:
        if temperature <= 0:
            return np.full_like(self.frequencies, 0.5)
        x = self.frequencies / (2.0 * temperature)
        with np.errstate(over="ignore"):
            return 0.5 / np.tanh(np.minimum(x, 350.0))

    def free_energy(self, temperature: float) -> float:
        s2 = self._variance(temperature)
        return 0.125 * float(s2 @ self.matrix @ s2)

    def correction(self, temperature: float) -> float:
        """Free energy correction relative to zero temperature."""
        return self.free_energy(temperature) - self._zero

    def factor(self, temperature: float) -> float:
        """Multiplicative weight correction ``exp(-dF/T)``."""
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        return math.exp(-self.correction(temperature) / temperature)

    def apply(self, states: np.ndarray, step: float) -> None:
        """Scale a states grid by the correction at the microcanonical temperature ``1/(d ln states/dE)``."""
        positive = states > 0
        if np.count_nonzero(positive) < 3:
            return
        logs = np.full(states.shape, -np.inf)
        logs[positive] = np.log(states[positive])
        slope = np.gradient(np.where(positive, logs, 0.0), step)
        for i in np.nonzero(positive)[0]:
            if slope[i] > 0 and np.isfinite(slope[i]):
                states[i] *= self.factor(1.0 / slope[i])
