from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np

from ..config import BlockReader, Settings
from ..models import ModelsRotor
from .rotor import Rotor, check_positive, check_temperature, read_symmetry

logger = logging.getLogger(__name__)


class FreeRotor(Rotor):
    """Unhindered internal rotation: levels ``B n**2 / sigma**2``, doubly degenerate for n > 0."""

    kind = ModelsRotor.FREE

    def __init__(self, rotational_constant: float, symmetry: int = 1, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.rotational_constant = check_positive("rotational constant", rotational_constant, "FreeRotor")
        self.symmetry = int(check_positive("symmetry number", symmetry, "FreeRotor"))
        self._level_size = 0

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "FreeRotor":
        reader = BlockReader(block, "Free rotor")
        rotational_constant = reader.energy("Rotational constant", positive=True)
        symmetry = read_symmetry(reader)
        reader.finish()
        return cls(rotational_constant, symmetry, settings)

    @property
    def level_constant(self) -> float:
        return self.rotational_constant / self.symmetry ** 2

    def set(self, energy_max: float) -> None:
        if energy_max < 0:
            raise ValueError(f"FreeRotor: negative energy maximum {energy_max}")
        self._energy_max = float(energy_max)
        size = int(math.floor(math.sqrt(energy_max / self.level_constant))) + 1
        # guard the floor against rounding at an exact level
        while self.level_constant * size * size <= energy_max:
            size += 1
        while size > 1 and self.level_constant * (size - 1) ** 2 > energy_max:
            size -= 1
        self._level_size = size
        logger.debug("FreeRotor: %d levels below %g", size, energy_max)

    def ground(self) -> float:
        return 0.0

    def energy_level(self, index: int) -> float:
        return self.level_constant * index * index

    def level_size(self) -> int:
        self._require_set()
        return self._level_size

    def degeneracy(self, index: int) -> int:
        return 2 if index > 0 else 1

    def weight(self, temperature: float) -> float:
        check_temperature(temperature)
        top = int(math.sqrt(self.settings.therm_pow_max * temperature / self.level_constant)) + 1
        n = np.arange(1, top + 1)
        return 1.0 + 2.0 * float(np.sum(np.exp(-self.level_constant * n * n / temperature)))

    def __repr__(self) -> str:
        return f"FreeRotor(rotational_constant={self.rotational_constant:g}, symmetry={self.symmetry})"
