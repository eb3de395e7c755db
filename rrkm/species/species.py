from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np

from ..config import Settings
from ..exceptions import LogicError
from ..models import ModelsSpecies, StatesMode

logger = logging.getLogger(__name__)


class Species(ABC):
    """
    Named aggregate of degrees of freedom.

    ``states(E)`` takes an absolute energy; ``weight(T)`` is relative to
    ``ground``. The only mutation after construction is ``shift_ground``,
    applied once when the energy reference of a model is changed.
    """

    kind: ModelsSpecies

    def __init__(self, name: str, mode: StatesMode, settings: Settings | None = None) -> None:
        self.name = str(name)
        self.mode = StatesMode.parse(mode)
        self.settings = settings or Settings()
        self._ground = 0.0
        self._real_ground = 0.0
        self._shifted = False

    @property
    def ground(self) -> float:
        """Lowest energy with non-zero states (lowered by tunneling)."""
        return self._ground

    @property
    def real_ground(self) -> float:
        return self._real_ground

    def shift_ground(self, energy: float) -> None:
        if self._shifted:
            raise LogicError(f"{self.name}: ground energy already shifted")
        self._shifted = True
        self._ground += energy
        self._real_ground += energy

    def init(self, registry) -> None:
        """Resolve references to other species once all are built."""

    @abstractmethod
    def states(self, energy: float) -> float:
        """Density or number of states at the absolute ``energy``."""

    @abstractmethod
    def weight(self, temperature: float) -> float:
        ...

    def states_array(self, energies) -> np.ndarray:
        return np.array([self.states(float(e)) for e in np.ravel(energies)])

    def tunnel_weight(self, temperature: float) -> float:
        return 1.0

    # radiative transitions

    def oscillator_size(self) -> int:
        return 0

    def oscillator_frequency(self, index: int) -> float:
        raise IndexError(f"{self.name}: no oscillator {index}")

    def infrared_intensity(self, energy: float, index: int) -> float:
        raise IndexError(f"{self.name}: no oscillator {index}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, mode={self.mode.name}, ground={self.ground:g})"
