from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from ..config import BlockReader, Settings
from ..exceptions import InputError, LogicError
from ..models import ModelsSpecies, StatesMode
from .species import Species


class AtomicSpecies(Species):
    """Atom: electronic levels only, no state counting."""

    kind = ModelsSpecies.ATOM

    def __init__(self, name: str, electronic_levels=None, zero_energy: float = 0.0, settings: Settings | None = None) -> None:
        super().__init__(name, StatesMode.NO_STATES, settings)
        if electronic_levels is None:
            electronic_levels = [(0.0, 1)]
        levels = np.asarray(electronic_levels, dtype=float).reshape(-1, 2)
        if np.any(levels[:, 1] < 1):
            raise InputError(f"{name}: electronic degeneracies must be positive")
        levels = levels[np.argsort(levels[:, 0])]
        self._ground = self._real_ground = float(zero_energy) + float(levels[0, 0])
        levels[:, 0] -= levels[0, 0]
        self.electronic_levels = levels

    @classmethod
    def from_block(cls, name: str, block: Mapping[str, Any], settings: Settings | None = None) -> "AtomicSpecies":
        reader = BlockReader(block, f"Atom {name}")
        levels = reader.pairs("Electronic levels", None, energy_column=0)
        zero_energy = reader.energy("Zero energy", 0.0)
        reader.finish()
        return cls(name, levels, zero_energy, settings)

    def states(self, energy: float) -> float:
        raise LogicError(f"{self.name}: an atom has no density or number of states")

    def weight(self, temperature: float) -> float:
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        return float(self.electronic_levels[:, 1] @ np.exp(-self.electronic_levels[:, 0] / temperature))
