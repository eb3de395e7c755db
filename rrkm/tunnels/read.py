from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np
from scipy.interpolate import CubicSpline

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsTunnel
from ..numerics import read_columns
from .tunnel import Tunnel

logger = logging.getLogger(__name__)


class ReadTunnel(Tunnel):
    """Tabulated (energy, action) pairs, energies from the barrier top."""

    kind = ModelsTunnel.READ

    def __init__(
        self,
        energies,
        actions,
        cutoff: float,
        frequency: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        energies = np.asarray(energies, dtype=float)
        actions = np.asarray(actions, dtype=float)
        if energies.ndim != 1 or energies.size != actions.size or energies.size < 3:
            raise InputError("ReadTunnel: at least three (energy, action) pairs are required")
        if np.any(np.diff(energies) <= 0):
            raise InputError("ReadTunnel: energies must be strictly increasing")
        spline = CubicSpline(energies, actions, extrapolate=False)
        slope = spline.derivative()
        if frequency is None:
            # parabolic barrier relation at the point closest to the top
            top = float(energies[np.argmin(np.abs(energies))])
            top_slope = float(slope(top))
            if not top_slope < 0:
                raise InputError("ReadTunnel: action must decrease with energy at the barrier top")
            frequency = -2.0 * math.pi / top_slope
        super().__init__(frequency, cutoff, settings)
        self._spline, self._slope = spline, slope
        self.emin, self.emax = float(energies[0]), float(energies[-1])
        self._bounds = {
            "low": (float(actions[0]), float(slope(self.emin))),
            "high": (float(actions[-1]), float(slope(self.emax))),
        }
        logger.info("Read tunnel: %d points on [%g, %g], cutoff %g", energies.size, self.emin, self.emax, cutoff)

    @classmethod
    def from_block(
        cls,
        block: Mapping[str, Any],
        settings: Settings | None = None,
        stream=None,
    ) -> "ReadTunnel":
        reader = BlockReader(block, "Read tunnel")
        cutoff = reader.energy("Cutoff energy", positive=True)
        frequency = reader.energy("Imaginary frequency", None, positive=True)
        if reader.has("Table"):
            table = reader.pairs("Table", energy_column=0)
        elif stream is not None:
            table = read_columns(stream)
        else:
            raise reader.error("missing 'Table' and no column stream given")
        reader.finish()
        return cls(table[:, 0], table[:, 1], cutoff, frequency, settings)

    def action(self, energy: float, der: int = 0) -> float:
        if der not in (0, 1):
            raise ValueError(f"unsupported derivative order {der}")
        if energy < self.emin or energy > self.emax:
            edge, (value, slope) = (self.emin, self._bounds["low"]) if energy < self.emin else (self.emax, self._bounds["high"])
            return value + slope * (energy - edge) if der == 0 else slope
        return float(self._spline(energy) if der == 0 else self._slope(energy))
