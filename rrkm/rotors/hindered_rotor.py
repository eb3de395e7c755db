from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import numpy as np
from scipy import linalg

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsRotor
from .rotor import (
    Rotor,
    check_positive,
    converged_levels,
    quantum_weight_sum,
    read_symmetry,
    semiclassical_weights,
)

logger = logging.getLogger(__name__)


class HinderedRotor(Rotor):
    """
    Internal rotation in a periodic torsional potential.

    The potential ``V(psi) = sum_k c_k cos(k psi) + s_k sin(k psi)`` is given
    in the symmetry-reduced angle ``psi`` (one period over ``[0, 2pi)``). It is
    sampled on an angular grid and the Hamiltonian ``(B/sigma**2) m**2 + V``
    is diagonalized in the plane-wave basis ``exp(i m psi)`` with potential
    matrix elements taken from the FFT of the grid.
    """

    kind = ModelsRotor.HINDERED

    def __init__(
        self,
        rotational_constant: float,
        symmetry: int,
        cosines,
        sines=None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(settings)
        self.rotational_constant = check_positive("rotational constant", rotational_constant, "HinderedRotor")
        self.symmetry = int(check_positive("symmetry number", symmetry, "HinderedRotor"))
        cosines = np.atleast_1d(np.asarray(cosines, dtype=float))
        sines = np.zeros_like(cosines) if sines is None else np.atleast_1d(np.asarray(sines, dtype=float))
        size = max(cosines.size, sines.size)
        self.cosines = np.pad(cosines, (0, size - cosines.size))
        self.sines = np.pad(sines, (0, size - sines.size))
        self.sines[0] = 0.0
        self.harmonics = np.arange(size)
        if 2 * (size - 1) >= self.settings.grid_size:
            raise InputError(
                f"HinderedRotor: angular grid of {self.settings.grid_size} points cannot resolve harmonic {size - 1}"
            )

        angles = 2.0 * math.pi * np.arange(self.settings.grid_size) / self.settings.grid_size
        grid = self.potential(angles)
        self.potential_min = float(grid.min())
        self.potential_max = float(grid.max())
        self._grid = grid - self.potential_min
        self._curvature = self.potential(angles, 2)
        self._harmonics = np.fft.fft(self._grid) / self._grid.size
        self._levels: np.ndarray | None = None
        self._ground = 0.0
        size = max(self._basis_estimate(0.0), self.settings.ham_size_min) | 1
        self._ground = float(self._diagonalize(min(size, self.settings.ham_size_max | 1))[0])
        logger.info(
            "HinderedRotor: B %g, symmetry %d, barrier %g, ground %g",
            self.rotational_constant, self.symmetry, self.potential_max - self.potential_min, self._ground,
        )

    @classmethod
    def from_points(
        cls,
        rotational_constant: float,
        symmetry: int,
        angles,
        energies,
        fourier_size: int | None = None,
        settings: Settings | None = None,
    ) -> "HinderedRotor":
        """Least-squares Fourier fit to potential points, angles in reduced radians."""
        angles = np.asarray(angles, dtype=float)
        energies = np.asarray(energies, dtype=float)
        if angles.shape != energies.shape or angles.ndim != 1:
            raise InputError("HinderedRotor: potential angles and energies differ in shape")
        top = (angles.size - 1) // 2 if fourier_size is None else int(fourier_size)
        if top < 1 or 2 * top + 1 > angles.size:
            raise InputError(f"HinderedRotor: {angles.size} points cannot fit {top} harmonics")
        k = np.arange(top + 1)
        design = np.hstack([np.cos(np.outer(angles, k)), np.sin(np.outer(angles, k[1:]))])
        coefficients, _, rank, _ = np.linalg.lstsq(design, energies, rcond=None)
        if rank < design.shape[1]:
            raise InputError("HinderedRotor: potential points do not determine the Fourier fit")
        residual = float(np.max(np.abs(design @ coefficients - energies)))
        logger.debug("HinderedRotor: Fourier fit of %d harmonics, max residual %g", top, residual)
        sines = np.concatenate([[0.0], coefficients[top + 1:]])
        return cls(rotational_constant, symmetry, coefficients[:top + 1], sines, settings)

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "HinderedRotor":
        """
        Keys: ``Rotational constant``, ``Symmetry factor`` and either
        ``Fourier expansion`` (pairs ``[k, value]``; ``k >= 0`` cosine,
        ``k < 0`` sine) or ``Potential`` (pairs ``[angle in degrees, value]``
        of the physical angle) with an optional ``Fourier expansion size``.
        """
        reader = BlockReader(block, "Hindered rotor")
        rotational_constant = reader.energy("Rotational constant", positive=True)
        symmetry = read_symmetry(reader)
        if reader.has("Fourier expansion") == reader.has("Potential"):
            raise reader.error("exactly one of 'Fourier expansion' and 'Potential' is required")
        if reader.has("Fourier expansion"):
            pairs = reader.pairs("Fourier expansion")
            index = pairs[:, 0]
            if np.any(index != np.rint(index)):
                raise reader.error("Fourier harmonics must be integers")
            top = int(np.abs(index).max())
            cosines, sines = np.zeros(top + 1), np.zeros(top + 1)
            for k, value in zip(index.astype(int), pairs[:, 1]):
                if k >= 0:
                    cosines[k] += value
                else:
                    sines[-k] += value
            reader.finish()
            return cls(rotational_constant, symmetry, cosines, sines, settings)
        points = reader.pairs("Potential")
        angles = np.deg2rad(points[:, 0]) * symmetry
        size = reader.integer("Fourier expansion size", None, minimum=1)
        reader.finish()
        return cls.from_points(rotational_constant, symmetry, angles, points[:, 1], size, settings)

    @property
    def kinetic_constant(self) -> float:
        return self.rotational_constant / self.symmetry ** 2

    def potential(self, angle, der: int = 0):
        """Potential or its ``der``-th derivative at reduced angles."""
        angle = np.asarray(angle, dtype=float)
        phase = np.multiply.outer(angle, self.harmonics) + 0.5 * math.pi * der
        factor = self.harmonics.astype(float) ** der
        value = np.cos(phase) @ (factor * self.cosines) + np.sin(phase) @ (factor * self.sines)
        return float(value) if value.ndim == 0 else value

    def _diagonalize(self, size: int) -> np.ndarray:
        m = np.arange(size) - size // 2
        shift = m[:, None] - m[None, :]
        top = self.harmonics.size - 1
        hamiltonian = np.where(np.abs(shift) <= top, self._harmonics[shift % self._grid.size], 0.0)
        hamiltonian = hamiltonian + np.diag(self.kinetic_constant * m * m)
        return linalg.eigvalsh(hamiltonian)

    def _basis_estimate(self, energy_max: float) -> int:
        top = energy_max + self._ground + self.potential_max - self.potential_min
        return 2 * int(1.5 * math.sqrt(top / self.kinetic_constant)) + 1

    def levels_below(self, energy_max: float) -> np.ndarray:
        return converged_levels(
            self._diagonalize, energy_max, self.settings, "HinderedRotor", self._basis_estimate(energy_max)
        )

    def set(self, energy_max: float) -> None:
        if energy_max < 0:
            raise ValueError(f"HinderedRotor: negative energy maximum {energy_max}")
        self._levels = self.levels_below(energy_max)
        self._energy_max = float(energy_max)
        logger.debug("HinderedRotor: %d levels below %g", self._levels.size, energy_max)

    def ground(self) -> float:
        return self._ground

    def energy_level(self, index: int) -> float:
        self._require_set()
        return float(self._levels[index])

    def level_size(self) -> int:
        self._require_set()
        return int(self._levels.size)

    def quantum_weight(self, temperature: float) -> float:
        return quantum_weight_sum(self.levels_below(self.settings.therm_pow_max * temperature), temperature)

    def semiclassical_weight(self, temperature: float) -> tuple[float, float]:
        """Return the (classical, path-integral) weights relative to the ground level."""
        return semiclassical_weights(temperature, self._grid, self._curvature, self.kinetic_constant, 1.0, self._ground)

    def weight(self, temperature: float) -> float:
        if self.settings.use_quantum_weight:
            return self.quantum_weight(temperature)
        return self.semiclassical_weight(temperature)[1]

    def __repr__(self) -> str:
        return (
            f"HinderedRotor(rotational_constant={self.rotational_constant:g}, symmetry={self.symmetry}, "
            f"harmonics={self.harmonics.size - 1})"
        )
