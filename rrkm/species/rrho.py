from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Sequence

import numpy as np

from ..config import BlockReader, Settings, check_mode
from ..exceptions import InputError
from ..models import ModelsSpecies, StatesMode
from ..numerics import LogLogSpline, harmonic_convolute, ladder_convolute
from ..cores import Core
from ..rotors import Rotor
from ..tunnels import Tunnel
from .graph import GraphExpansion
from .species import Species

logger = logging.getLogger(__name__)


class RRHO(Species):
    """
    Rigid rotor / harmonic oscillator species.

    States are built on one energy grid from the real ground up to the
    interpolation ceiling: the core values, then every harmonic frequency
    (Beyer-Swinehart), every rotor ladder, the excited electronic levels,
    the graph expansion and the tunneling corrections. The grid is wrapped in
    a log-log spline. With nothing to convolve, queries go straight to the
    core.
    """

    kind = ModelsSpecies.RRHO

    def __init__(
        self,
        name: str,
        core: Core,
        frequencies=(),
        degeneracies=None,
        rotors: Sequence[Rotor] = (),
        tunnel: Tunnel | None = None,
        electronic_levels=None,
        zero_energy: float = 0.0,
        symmetry: float = 1.0,
        graph_constants=None,
        infrared_intensities=None,
        mode: StatesMode | None = None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(name, mode or core.mode, settings)
        if self.mode is StatesMode.NO_STATES:
            raise InputError(f"{name}: RRHO must count states")
        check_mode(name, self.mode, core.mode)
        if not symmetry > 0:
            raise InputError(f"{name}: symmetry number must be positive, got {symmetry}")
        self.core = core
        self.rotors = list(rotors)
        self.tunnel = tunnel
        self.symmetry = float(symmetry)

        frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
        if np.any(frequencies <= 0):
            raise InputError(f"{name}: frequencies must be positive: {frequencies.tolist()}")
        if degeneracies is None:
            degeneracies = np.ones(frequencies.size, dtype=int)
        degeneracies = np.atleast_1d(np.asarray(degeneracies, dtype=int))
        if degeneracies.size != frequencies.size or np.any(degeneracies < 1):
            raise InputError(f"{name}: one positive degeneracy per frequency is required")
        self.frequencies = frequencies
        self.degeneracies = degeneracies

        if electronic_levels is None:
            electronic_levels = [(0.0, 1)]
        levels = np.asarray(electronic_levels, dtype=float).reshape(-1, 2)
        if np.any(levels[:, 1] < 1):
            raise InputError(f"{name}: electronic degeneracies must be positive")
        levels = levels[np.argsort(levels[:, 0])]
        levels[:, 0] -= levels[0, 0]
        self.electronic_levels = levels

        oscillators = np.repeat(frequencies, degeneracies)
        self.graph = None
        if graph_constants is not None:
            self.graph = GraphExpansion(oscillators, graph_constants)
        self._oscillators = oscillators
        self._intensities = None
        if infrared_intensities is not None:
            intensities = np.atleast_1d(np.asarray(infrared_intensities, dtype=float))
            if intensities.size != oscillators.size:
                raise InputError(f"{name}: one infrared intensity per oscillator is required")
            self._intensities = intensities

        self._real_ground = float(zero_energy) + core.ground() + sum(r.ground() for r in self.rotors)
        self._ground = self._real_ground - (tunnel.cutoff if tunnel is not None else 0.0)
        self._delegate = (
            frequencies.size == 0 and not self.rotors and tunnel is None
            and levels.shape[0] == 1 and levels[0, 1] == 1 and self.graph is None
        )
        self._spline = None
        if not self._delegate:
            self._set_states()
        logger.info(
            "RRHO %s: %d frequencies, %d rotors, tunnel %s, ground %g",
            name, frequencies.size, len(self.rotors), type(tunnel).__name__ if tunnel else None, self._ground,
        )

    @classmethod
    def from_block(
        cls,
        name: str,
        block: Mapping[str, Any],
        core: Core,
        rotors: Sequence[Rotor] = (),
        tunnel: Tunnel | None = None,
        settings: Settings | None = None,
    ) -> "RRHO":
        """Species keys only; the core, rotor and tunnel blocks are built by the caller."""
        reader = BlockReader(block, f"RRHO {name}")
        frequencies = reader.energies("Frequencies", np.zeros(0), positive=True)
        degeneracies = reader.array("Frequency degeneracies", None, dtype=int)
        electronic = reader.pairs("Electronic levels", None, energy_column=0)
        zero_energy = reader.energy("Zero energy", 0.0)
        symmetry = reader.number("Symmetry factor", 1.0, positive=True)
        graph = None
        if reader.has("Quartic force constants"):
            table = reader.pairs("Quartic force constants", width=3, energy_column=2)
            graph = [(int(i), int(j), value) for i, j, value in table]
        intensities = reader.array("Infrared intensities", None)
        mode = reader.mode("Mode", core.mode)
        reader.finish()
        return cls(
            name, core, frequencies, degeneracies, rotors, tunnel, electronic, zero_energy, symmetry,
            graph, intensities, mode, settings,
        )

    def _set_states(self) -> None:
        step = self.settings.energy_step
        ceiling = self.settings.ceiling(self._real_ground)
        shift = 0 if self.tunnel is None else int(math.ceil(self.tunnel.cutoff / step))
        size = int(ceiling / step) + 1 + shift
        energies = step * np.arange(size)

        grid_energies = energies.copy()
        if self.mode is StatesMode.DENSITY:
            grid_energies[0] = 0.5 * step
        states = self.core.states_array(grid_energies) / self.symmetry

        for frequency, degeneracy in zip(self.frequencies, self.degeneracies):
            harmonic_convolute(states, frequency, step, int(degeneracy))
        for rotor in self.rotors:
            rotor.set(energies[-1])
            rotor.convolute(states, step)
        if self.electronic_levels.shape[0] > 1 or self.electronic_levels[0, 1] != 1:
            ladder_convolute(states, self.electronic_levels[:, 0], step, self.electronic_levels[:, 1])
        if self.graph is not None:
            self.graph.apply(states, step)
        if self.tunnel is not None:
            # the tunneled grid starts at the cutoff energy, i.e. at the ground
            self.tunnel.convolute(states, step)

        self._spline = LogLogSpline(
            energies, states, name=f"{self.name} states", monotone=self.mode is StatesMode.NUMBER,
            extrapolation_factor=self.settings.extrapolation_factor,
        )
        logger.debug("RRHO %s: %d grid points, step %g, extrapolation power %.4g", self.name, size, step, self._spline.power_max)

    def states(self, energy: float) -> float:
        if self._delegate:
            return self.core.states(energy - self._real_ground) / self.symmetry
        relative = energy - self._ground
        if relative <= 0:
            return 0.0
        return self._spline(relative)

    def states_array(self, energies) -> np.ndarray:
        energies = np.asarray(energies, dtype=float)
        if self._delegate:
            return self.core.states_array(energies - self._real_ground) / self.symmetry
        relative = energies - self._ground
        out = np.zeros_like(relative)
        positive = relative > 0
        out[positive] = self._spline(relative[positive])
        return out

    def weight(self, temperature: float) -> float:
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        value = self.core.weight(temperature) / self.symmetry
        value /= float(np.prod((1.0 - np.exp(-self.frequencies / temperature)) ** self.degeneracies))
        for rotor in self.rotors:
            value *= rotor.weight(temperature)
        value *= float(self.electronic_levels[:, 1] @ np.exp(-self.electronic_levels[:, 0] / temperature))
        if self.graph is not None:
            value *= self.graph.factor(temperature)
        return value * self.tunnel_weight(temperature)

    def tunnel_weight(self, temperature: float) -> float:
        if self.tunnel is None:
            return 1.0
        return self.tunnel.weight(temperature)

    # radiative transitions

    def oscillator_size(self) -> int:
        return int(self._oscillators.size)

    def oscillator_frequency(self, index: int) -> float:
        return float(self._oscillators[index])

    def occupation_number(self, energy: float, index: int) -> float:
        """Average quanta in oscillator ``index`` at the absolute ``energy``."""
        total = self.states(energy)
        if total <= 0:
            return 0.0
        frequency = self._oscillators[index]
        count = int((energy - self._ground) // frequency)
        shifted = self.states_array(energy - frequency * np.arange(1, count + 1))
        return float(shifted.sum()) / total

    def infrared_intensity(self, energy: float, index: int) -> float:
        if self._intensities is None:
            raise InputError(f"{self.name}: no infrared intensities given")
        return float(self._intensities[index]) * self.occupation_number(energy, index)
