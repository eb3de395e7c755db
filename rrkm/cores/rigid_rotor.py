from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np
from scipy.special import comb, gamma

from ..config import BlockReader, Settings
from ..exceptions import ExtrapolationError, InputError
from ..models import ModelsCore, StatesMode
from .core import Core

logger = logging.getLogger(__name__)


def _square_matrix(values, size: int, name: str) -> np.ndarray:
    """Accept a full symmetric matrix or its lower triangle given row by row."""
    rows = [np.atleast_1d(np.asarray(row, dtype=float)) for row in values]
    if len(rows) != size:
        raise InputError(f"RigidRotor: {name} needs {size} rows, got {len(rows)}")
    matrix = np.zeros((size, size))
    for i, row in enumerate(rows):
        if row.size == size:
            matrix[i] = row
        elif row.size == i + 1:
            matrix[i, :i + 1] = row
            matrix[:i + 1, i] = row
        else:
            raise InputError(f"RigidRotor: {name} row {i} has {row.size} entries")
    if not np.allclose(matrix, matrix.T):
        raise InputError(f"RigidRotor: {name} is not symmetric")
    return matrix


class RigidRotor(Core):
    """
    Classical rigid rotor with its own vibrational and electronic structure.

    Rotation contributes ``factor * E**r / Gamma(r + 1)`` states with
    ``r = rdim/2``; vibrational states carry second order anharmonic
    energies and vibrationally shifted rotational constants. The sum over
    explicit states is exact up to the interpolation ceiling and continues
    as a power law above it.
    """

    kind = ModelsCore.RIGID_ROTOR

    def __init__(
        self,
        rotational_constants=(),
        symmetry: float = 1.0,
        frequencies=(),
        degeneracies=None,
        anharmonicities=None,
        rovibrational=None,
        electronic_levels=None,
        mode: StatesMode = StatesMode.NUMBER,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(mode, settings)
        constants = np.atleast_1d(np.asarray(rotational_constants, dtype=float))
        if constants.size == 2:
            constants = np.array([constants[0], constants[1], constants[1]])
        if constants.size not in (0, 1, 3):
            raise InputError(f"RigidRotor: 0 to 3 rotational constants expected, got {constants.size}")
        if np.any(constants <= 0):
            raise InputError(f"RigidRotor: rotational constants must be positive: {constants.tolist()}")
        if not symmetry > 0:
            raise InputError(f"RigidRotor: symmetry factor must be positive, got {symmetry}")
        self.rotational_constants = constants
        self.symmetry = float(symmetry)
        self.rdim = {0: 0, 1: 2, 3: 3}[constants.size]
        if self.rdim == 0 and self.mode is StatesMode.DENSITY:
            raise InputError("RigidRotor: density of states needs at least one rotational constant")

        self.frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
        if np.any(self.frequencies <= 0):
            raise InputError(f"RigidRotor: frequencies must be positive: {self.frequencies.tolist()}")
        size = self.frequencies.size
        if degeneracies is None:
            self.degeneracies = np.ones(size, dtype=int)
        else:
            self.degeneracies = np.atleast_1d(np.asarray(degeneracies, dtype=int))
            if self.degeneracies.size != size or np.any(self.degeneracies < 1):
                raise InputError("RigidRotor: one positive degeneracy per frequency is required")
        self.anharmonicities = None if anharmonicities is None else _square_matrix(anharmonicities, size, "anharmonic matrix")
        self.rovibrational = None
        if rovibrational is not None:
            self.rovibrational = np.asarray(rovibrational, dtype=float).reshape(size, -1)
            if self.rovibrational.shape[1] != constants.size:
                raise InputError("RigidRotor: rovibrational couplings need one column per rotational constant")

        if electronic_levels is None:
            electronic_levels = [(0.0, 1)]
        levels = np.asarray(electronic_levels, dtype=float).reshape(-1, 2)
        if np.any(levels[:, 1] < 1):
            raise InputError("RigidRotor: electronic degeneracies must be positive")
        self.electronic_levels = levels[np.argsort(levels[:, 0])]
        self.electronic_levels[:, 0] -= self.electronic_levels[0, 0]

        self._half = 0.5 * self.degeneracies
        self._zero_point = self._vibrational_energy(np.zeros(size))
        self._ceiling = self.settings.interpolation_energy_max if size else math.inf
        self._enumerate(self._ceiling)
        self._set_extrapolation()
        logger.info(
            "RigidRotor: rdim %d, %d frequencies, %d explicit levels, ground %g",
            self.rdim, size, self._energy.size, self._zero_point,
        )

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None, mode=None) -> "RigidRotor":
        reader = BlockReader(block, "RigidRotor core")
        constants = reader.energies("Rotational constants", np.zeros(0), positive=True)
        symmetry = reader.number("Symmetry factor", 1.0, positive=True)
        frequencies = reader.energies("Frequencies", np.zeros(0), positive=True)
        degeneracies = reader.array("Frequency degeneracies", None, dtype=int)
        anharmonicities = reader.rows("Anharmonicities", None)
        rovibrational = reader.energies("Rovibrational couplings", None)
        electronic = reader.pairs("Electronic levels", None, energy_column=0)
        mode = reader.mode("Mode", mode or StatesMode.NUMBER)
        reader.finish()
        return cls(
            constants, symmetry, frequencies, degeneracies, anharmonicities, rovibrational, electronic, mode, settings
        )

    def _vibrational_energy(self, quanta: np.ndarray) -> float:
        x = quanta + self._half
        energy = float(self.frequencies @ x)
        if self.anharmonicities is not None:
            energy += 0.5 * float(x @ self.anharmonicities @ x + np.diag(self.anharmonicities) @ (x * x))
        return energy

    def _rotational_factor(self, constants: np.ndarray) -> float:
        if self.rdim == 0:
            return 1.0 / self.symmetry
        if self.rdim == 2:
            return 1.0 / (self.symmetry * constants[0])
        return math.sqrt(math.pi / float(np.prod(constants))) / self.symmetry

    def _enumerate(self, energy_max: float) -> None:
        """Collect vibronic levels below ``energy_max`` with multiplicities and rotational factors."""
        size = self.frequencies.size
        quanta = np.zeros(size)
        found: list[tuple[float, float]] = []
        factors: list[float] = []
        dropped = 0

        def visit(index: int) -> None:
            nonlocal dropped
            if index == size:
                energy = self._vibrational_energy(quanta) - self._zero_point
                constants = self.rotational_constants
                if self.rovibrational is not None:
                    constants = constants - quanta @ self.rovibrational
                    if np.any(constants <= 0):
                        dropped += 1
                        return
                multiplicity = float(np.prod(comb(quanta + self.degeneracies - 1, self.degeneracies - 1)))
                found.append((energy, multiplicity))
                factors.append(self._rotational_factor(constants))
                if len(found) > self.settings.vibrational_state_max:
                    raise InputError(
                        f"RigidRotor: more than {self.settings.vibrational_state_max} vibrational states "
                        f"below {energy_max}; lower the interpolation ceiling"
                    )
                return
            while True:
                visit(index + 1)
                before = self._vibrational_energy(quanta)
                quanta[index] += 1
                after = self._vibrational_energy(quanta)
                # past the ceiling or where an anharmonic ladder turns over
                if after - self._zero_point > energy_max or after <= before:
                    break
            quanta[index] = 0

        if size:
            visit(0)
        else:
            found.append((0.0, 1.0))
            factors.append(self._rotational_factor(self.rotational_constants))
        if dropped:
            logger.debug("RigidRotor: %d states dropped for non-positive rotational constants", dropped)

        vibronic = np.array(found)
        electronic = self.electronic_levels
        energy = (vibronic[:, 0][:, None] + electronic[:, 0][None, :]).ravel()
        weight = (vibronic[:, 1][:, None] * electronic[:, 1][None, :] * np.array(factors)[:, None]).ravel()
        keep = energy <= energy_max
        order = np.argsort(energy[keep])
        self._energy = energy[keep][order]
        self._weight = weight[keep][order]

    def _direct(self, energies: np.ndarray, number: bool, order: int = 0) -> np.ndarray:
        """Explicit level sum of the number or density of states, or of its ``order``-th derivative."""
        power = (0.5 * self.rdim if number else 0.5 * self.rdim - 1.0) - order
        norm = 1.0 / gamma(power + 1.0)
        out = np.zeros_like(energies)
        chunk = max(1, 4_000_000 // max(1, self._energy.size))
        for start in range(0, energies.size, chunk):
            e = energies[start:start + chunk]
            excess = e[:, None] - self._energy[None, :]
            inside = excess >= 0 if number else excess > 0
            if power == 0.0:
                terms = np.where(inside, 1.0, 0.0)
            else:
                terms = np.where(inside, np.abs(excess) ** power, 0.0)
            out[start:start + chunk] = norm * (terms @ self._weight)
        return out

    def _set_extrapolation(self) -> None:
        self._power = 0.0
        if not math.isfinite(self._ceiling):
            return
        number = self.mode is StatesMode.NUMBER
        self._top = float(self._direct(np.array([self._ceiling]), number)[0])
        if (0.5 * self.rdim if number else 0.5 * self.rdim - 1.0) >= 1.0:
            # boundary log-slope of a continuously differentiable sum
            slope = float(self._direct(np.array([self._ceiling]), number, order=1)[0])
            self._power = self._ceiling * slope / self._top
        else:
            # step or cusp sums have no usable local slope; use the mean one over the upper half
            middle = float(self._direct(np.array([0.5 * self._ceiling]), number)[0])
            self._power = math.log(self._top / middle) / math.log(2.0)
        logger.debug("RigidRotor: extrapolation power %.4g above %g", self._power, self._ceiling)

    def ground(self) -> float:
        return self._zero_point

    def states_array(self, energies) -> np.ndarray:
        energies = np.atleast_1d(np.asarray(energies, dtype=float))
        out = np.zeros_like(energies)
        inside = (energies >= 0) & (energies <= self._ceiling)
        out[inside] = self._direct(energies[inside], self.mode is StatesMode.NUMBER)
        above = energies > self._ceiling
        if np.any(above):
            limit = self._ceiling * self.settings.extrapolation_factor
            if np.any(energies > limit):
                raise ExtrapolationError(f"RigidRotor: energy {energies.max()} beyond extrapolation limit {limit}")
            out[above] = self._top * (energies[above] / self._ceiling) ** self._power
        return out

    def states(self, energy: float) -> float:
        return float(self.states_array(energy)[0])

    def weight(self, temperature: float) -> float:
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        rotation = temperature ** (0.5 * self.rdim)
        if self.anharmonicities is None and self.rovibrational is None:
            value = self._rotational_factor(self.rotational_constants) * rotation
            value /= float(np.prod((1.0 - np.exp(-self.frequencies / temperature)) ** self.degeneracies))
            return value * float(self.electronic_levels[:, 1] @ np.exp(-self.electronic_levels[:, 0] / temperature))
        return rotation * float(self._weight @ np.exp(-self._energy / temperature))

    def __repr__(self) -> str:
        return f"RigidRotor(rdim={self.rdim}, frequencies={self.frequencies.tolist()}, mode={self.mode.name})"
