from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np

from .. import constants
from ..config import BlockReader, Settings
from ..exceptions import InputError, LogicError
from ..models import ModelsSpecies, StatesMode
from ..numerics import LogLogSpline
from .species import Species

logger = logging.getLogger(__name__)


class Arrhenius(Species):
    """
    Barrier reproducing ``k(T) = A (T/T0)**n exp(-Ea/T)`` above a reactant.

    With ``p = n - 1`` the barrier weight is ``A' T**p`` times the reactant
    weight, ``A' = A / (c T0**n)``. In the energy domain this is the reactant
    density convolved with ``E**p / Gamma(p + 1)``, which needs ``n > 0``.
    The reactant is looked up by name in ``init``.
    """

    kind = ModelsSpecies.ARRHENIUS

    def __init__(
        self,
        name: str,
        factor: float,
        power: float,
        activation_energy: float,
        reactant: str,
        reference_temperature: float = constants.K_CONST_KELVIN,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(name, StatesMode.NUMBER, settings)
        if not factor > 0:
            raise InputError(f"{name}: pre-exponential factor must be positive: {factor}")
        if not power > 0:
            raise InputError(f"{name}: temperature exponent must be positive: {power}")
        if not reference_temperature > 0:
            raise InputError(f"{name}: reference temperature must be positive: {reference_temperature}")
        self.factor = float(factor) / (constants.K_CONST_C * reference_temperature ** power)
        self.power = float(power) - 1.0
        self.activation_energy = float(activation_energy)
        self.reactant_name = str(reactant)
        self.reactant: Species | None = None
        self._spline = None

    @classmethod
    def from_block(cls, name: str, block: Mapping[str, Any], settings: Settings | None = None) -> "Arrhenius":
        """Keys: ``Reactant``, ``Pre-exponential factor`` (1/s), ``Power``, ``Activation energy``."""
        reader = BlockReader(block, f"Arrhenius {name}")
        reactant = reader.text("Reactant")
        factor = reader.number("Pre-exponential factor", positive=True)
        power = reader.number("Power", positive=True)
        activation = reader.energy("Activation energy")
        reference = reader.energy("Reference temperature", constants.K_CONST_KELVIN, positive=True)
        reader.finish()
        return cls(name, factor, power, activation, reactant, reference, settings)

    def init(self, registry) -> None:
        reactant = registry.species(self.reactant_name)
        if reactant.mode is StatesMode.NO_STATES:
            raise InputError(f"{self.name}: reactant {reactant.name} does not count states")
        self.reactant = reactant
        self._ground = self._real_ground = reactant.ground + self.activation_energy
        self._set_states()
        logger.info("Arrhenius %s: reactant %s, ground %g", self.name, reactant.name, self._ground)

    def shift_ground(self, energy: float) -> None:
        # the ground follows the already shifted reactant
        if self._shifted:
            raise LogicError(f"{self.name}: ground energy already shifted")
        self._shifted = True

    def _require_init(self) -> Species:
        if self.reactant is None:
            raise LogicError(f"{self.name}: reactant {self.reactant_name} not resolved, call init first")
        return self.reactant

    def _set_states(self) -> None:
        step = self.settings.energy_step
        size = int(self.settings.ceiling(self._ground) / step) + 1
        index = np.arange(size)
        energies = step * index
        reactant = self.reactant.states_array(self.reactant.ground + energies)
        # kernel E**p / Gamma(p + 1) integrated over cells centered on the grid
        edges = step * np.concatenate([[0.0], np.arange(size) + 0.5])
        edges = edges ** (self.power + 1.0) / math.gamma(self.power + 2.0)
        kernel = np.diff(edges)
        folded = np.convolve(reactant, kernel)[:size]
        if self.reactant.mode is StatesMode.NUMBER:
            folded = np.gradient(folded, step)
        states = self.factor * np.maximum(folded, 0.0)
        self._spline = LogLogSpline(
            energies, states, name=f"{self.name} states", monotone=True,
            extrapolation_factor=self.settings.extrapolation_factor,
        )

    def states(self, energy: float) -> float:
        self._require_init()
        relative = energy - self._ground
        if relative <= 0:
            return 0.0
        return self._spline(relative)

    def weight(self, temperature: float) -> float:
        reactant = self._require_init()
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        return self.factor * temperature ** self.power * reactant.weight(temperature)

    @property
    def ground(self) -> float:
        self._require_init()
        return self._ground

    @property
    def real_ground(self) -> float:
        self._require_init()
        return self._real_ground
