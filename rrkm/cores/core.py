from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from ..config import Settings
from ..exceptions import InputError
from ..models import ModelsCore, StatesMode


class Core(ABC):
    """Base state engine; energies and weights are relative to ``ground()``."""

    kind: ModelsCore

    def __init__(self, mode: StatesMode, settings: Settings | None = None) -> None:
        self.mode = StatesMode.parse(mode)
        if self.mode is StatesMode.NO_STATES:
            raise InputError(f"{type(self).__name__}: a core must count states, got mode {self.mode.name}")
        self.settings = settings or Settings()

    @abstractmethod
    def ground(self) -> float:
        ...

    @abstractmethod
    def states(self, energy: float) -> float:
        """Density or number of states at ``energy`` above the ground."""

    @abstractmethod
    def weight(self, temperature: float) -> float:
        ...

    def states_array(self, energies) -> np.ndarray:
        return np.array([self.states(float(e)) for e in np.ravel(energies)])
