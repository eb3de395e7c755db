from __future__ import annotations

import logging
from typing import Any, Mapping

import numpy as np
from scipy.integrate import trapezoid

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsSpecies, StatesMode
from ..numerics import LogLogSpline, laplace_weight, read_columns
from .species import Species

logger = logging.getLogger(__name__)


class ReadSpecies(Species):
    """Density or number of states tabulated against energy above the ground."""

    kind = ModelsSpecies.READ

    def __init__(
        self,
        name: str,
        energies,
        values,
        mode: StatesMode,
        ground: float = 0.0,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(name, mode, settings)
        if self.mode is StatesMode.NO_STATES:
            raise InputError(f"{name}: tabulated species must count states")
        energies = np.asarray(energies, dtype=float)
        values = np.asarray(values, dtype=float)
        if energies.ndim != 1 or energies.shape != values.shape:
            raise InputError(f"{name}: energy and states columns differ in shape")
        if np.any(energies < 0):
            raise InputError(f"{name}: table energies must be relative to the ground")
        self._spline = LogLogSpline(
            energies, values, name=f"{name} states", extrapolation_factor=self.settings.extrapolation_factor
        )
        self._ground = self._real_ground = float(ground)
        logger.info("ReadSpecies %s: %d points on [%g, %g]", name, energies.size, self._spline.xmin, self._spline.xmax)

    @classmethod
    def from_block(
        cls, name: str, block: Mapping[str, Any], settings: Settings | None = None, stream=None
    ) -> "ReadSpecies":
        """Keys: ``Table`` (or a column stream), ``Ground energy``, ``Mode``."""
        reader = BlockReader(block, f"ReadSpecies {name}")
        if reader.has("Table"):
            table = reader.pairs("Table", energy_column=0)
        elif stream is not None:
            table = read_columns(stream)
        else:
            raise reader.error("missing 'Table' and no column stream given")
        ground = reader.energy("Ground energy", 0.0)
        mode = reader.mode("Mode", StatesMode.DENSITY)
        reader.finish()
        return cls(name, table[:, 0], table[:, 1], mode, ground, settings)

    def states(self, energy: float) -> float:
        relative = energy - self._ground
        if relative <= 0:
            return 0.0
        return self._spline(relative)

    def weight(self, temperature: float) -> float:
        if self.mode is StatesMode.NUMBER:
            return laplace_weight(self._spline, temperature, self.settings.therm_pow_max)
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        top = temperature * self.settings.therm_pow_max
        energies = np.linspace(0.0, top, 2001)
        density = self._spline(energies)
        return float(trapezoid(density * np.exp(-energies / temperature), energies))
