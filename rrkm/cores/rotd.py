from __future__ import annotations

import logging
from typing import Any, Mapping

import numpy as np
from scipy.integrate import cumulative_trapezoid

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsCore, StatesMode
from ..numerics import LogLogSpline, laplace_weight, read_columns
from .core import Core

logger = logging.getLogger(__name__)


class Rotd(Core):
    """
    Tabulated transitional-mode number of states, e.g. from a variable
    reaction coordinate transition state theory calculation.

    A density table is integrated into a number table first, so both modes
    derive from one log-log spline of the number of states.
    """

    kind = ModelsCore.ROTD

    def __init__(
        self,
        energies,
        values,
        mode: StatesMode,
        ground: float = 0.0,
        table_is_density: bool = False,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(mode, settings)
        energies = np.asarray(energies, dtype=float)
        values = np.asarray(values, dtype=float)
        if energies.ndim != 1 or energies.shape != values.shape:
            raise InputError("Rotd: energy and states columns differ in shape")
        if np.any(energies < 0):
            raise InputError("Rotd: table energies must be relative to the ground and non-negative")
        if table_is_density:
            if energies[0] > 0:
                energies = np.concatenate([[0.0], energies])
                values = np.concatenate([[0.0], values])
            values = cumulative_trapezoid(values, energies, initial=0.0)
        self._ground = float(ground)
        self._number = LogLogSpline(
            energies, values, name="Rotd", extrapolation_factor=self.settings.extrapolation_factor
        )
        logger.info(
            "Rotd: %d points on [%g, %g], extrapolation power %.3g",
            energies.size, self._number.xmin, self._number.xmax, self._number.power_max,
        )

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None, mode=None, stream=None) -> "Rotd":
        """Keys: ``Table`` or a column stream, ``Table mode``, ``Ground energy``, ``Mode``."""
        reader = BlockReader(block, "Rotd core")
        if reader.has("Table"):
            table = reader.pairs("Table", energy_column=0)
        elif stream is not None:
            table = read_columns(stream)
        else:
            raise reader.error("missing 'Table' and no column stream given")
        table_mode = reader.mode("Table mode", StatesMode.NUMBER)
        if table_mode is StatesMode.NO_STATES:
            raise reader.error("'Table mode' must be density or number")
        ground = reader.energy("Ground energy", 0.0)
        mode = reader.mode("Mode", mode or StatesMode.DENSITY)
        reader.finish()
        return cls(table[:, 0], table[:, 1], mode, ground, table_mode is StatesMode.DENSITY, settings)

    def ground(self) -> float:
        return self._ground

    def number(self, energy):
        return self._number(energy)

    def states(self, energy: float) -> float:
        if energy <= 0:
            return 0.0
        if self.mode is StatesMode.NUMBER:
            return self._number(energy)
        return self._number.derivative(energy)

    def states_array(self, energies) -> np.ndarray:
        energies = np.asarray(energies, dtype=float)
        if self.mode is StatesMode.NUMBER:
            return self._number(energies)
        return self._number.derivative(energies)

    def weight(self, temperature: float) -> float:
        return laplace_weight(self._number, temperature, self.settings.therm_pow_max)
