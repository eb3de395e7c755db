from __future__ import annotations

import itertools
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np
from scipy import linalg, sparse
from scipy.sparse.csgraph import connected_components
from scipy.special import gamma

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsCore, StatesMode
from ..numerics import FourierSeries, LogLogSpline
from ..rotors import InternalRotation
from .core import Core

logger = logging.getLogger(__name__)


@dataclass
class _Manifold:
    """Internal-rotation problem for one set of vibrational quanta."""

    quanta: tuple
    potential: FourierSeries  # effective potential, relative to the global minimum
    grid: np.ndarray  # the same on the weight sampling grid


class MultiRotor(Core):
    """
    Coupled internal rotations with an optional classical external rotation.

    The kinetic energy is ``p.G(psi).p / 2`` with integer momenta conjugate to
    the symmetry reduced angles ``psi``; ``G`` is the mobility tensor of the
    internal rotations, given for the full angles and divided by
    ``sigma_a sigma_b`` on reduction, extended by the three external rotations
    when those are included. The external rotation is treated classically: it adds
    ``E**(3/2)`` states scaled by ``det(G_ee)**(-1/2)`` and reduces the
    internal mobility to the Schur complement ``G_ii - G_ie G_ee^-1 G_ei``.

    States are the classical phase space estimate ``N_cl`` times a quantum
    correction ``q(E)`` fitted where both the quantum level staircase and the
    classical count are known.
    """

    kind = ModelsCore.MULTI_ROTOR

    def __init__(
        self,
        rotations: Sequence[InternalRotation],
        potential,
        mobility,
        frequencies=None,
        *,
        external_rotation: bool = False,
        external_symmetry: float = 1.0,
        full_quantum: bool = False,
        level_energy_max: float = 5000.0,
        potential_tolerance: float = 1.0e-8,
        mass_tolerance: float = 1.0e-8,
        mode: StatesMode = StatesMode.DENSITY,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(mode, settings)
        self.rotations = tuple(rotations)
        size = len(self.rotations)
        if size == 0:
            raise InputError("MultiRotor: no internal rotations")
        if not external_symmetry > 0:
            raise InputError(f"MultiRotor: external symmetry must be positive, got {external_symmetry}")
        if not level_energy_max > 0:
            raise InputError(f"MultiRotor: level energy maximum must be positive, got {level_energy_max}")
        self.external_rotation = bool(external_rotation)
        self.external_symmetry = float(external_symmetry)
        self.full_quantum = bool(full_quantum)
        self.level_energy_max = float(level_energy_max)

        potential = np.asarray(potential, dtype=float)
        if potential.ndim != size:
            raise InputError(f"MultiRotor: potential samples must be {size}-dimensional, got {potential.ndim}")
        self._potential = FourierSeries.from_samples(
            potential, size, [r.potential_fourier_size for r in self.rotations], potential_tolerance
        )

        mobility = np.asarray(mobility, dtype=float)
        dim = mobility.shape[-1]
        if mobility.ndim not in (2, size + 2) or mobility.shape[-2] != dim or dim not in (size, size + 3):
            raise InputError(
                f"MultiRotor: mobility must be a {size}x{size} or {size + 3}x{size + 3} matrix, "
                f"constant or sampled, got shape {mobility.shape}"
            )
        if self.external_rotation and dim != size + 3:
            raise InputError("MultiRotor: external rotation needs the external blocks of the mobility tensor")
        if mobility.ndim == 2:
            mobility_series = FourierSeries.constant(mobility, size)
        else:
            mobility_series = FourierSeries.from_samples(
                mobility, size, [r.mass_fourier_size for r in self.rotations], mass_tolerance
            )
        self._mobility = mobility_series

        self._vibration = None
        if frequencies is not None:
            frequencies = np.asarray(frequencies, dtype=float)
            if frequencies.ndim != size + 1:
                raise InputError("MultiRotor: frequency samples need one trailing axis of frequencies")
            self._vibration = FourierSeries.from_samples(
                frequencies, size, [r.potential_fourier_size for r in self.rotations]
            )

        self._set_mass(mass_tolerance)
        self._set_grid()
        self._set_manifolds()
        self._set_levels()
        self._set_classical()
        self._set_qfactor()
        logger.info(
            "MultiRotor: %d rotations, external rotation %s, %d levels below %g, ground %g",
            size, self.external_rotation, self._levels.size, self.level_energy_max, self._ground,
        )

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None, mode=None) -> "MultiRotor":
        """
        Keys: ``Internal rotations`` (list of blocks), ``Potential`` (samples
        on the reduced angle grid), ``Mobility`` (matrix, constant or
        sampled), optional ``Frequencies`` samples, ``External rotation``,
        ``External symmetry``, ``Full quantum``, ``Level energy max``,
        ``Potential tolerance``, ``Mass tolerance`` and ``Mode``.
        """
        reader = BlockReader(block, "MultiRotor core")
        rotations = [InternalRotation.from_block(b) for b in reader.blocks("Internal rotations")]
        potential = reader.energies("Potential")
        mobility = reader.energies("Mobility")
        frequencies = reader.energies("Frequencies", None)
        kwargs = dict(
            external_rotation=reader.flag("External rotation", False),
            external_symmetry=reader.number("External symmetry", 1.0, positive=True),
            full_quantum=reader.flag("Full quantum", False),
            level_energy_max=reader.energy("Level energy max", 5000.0, positive=True),
            potential_tolerance=reader.number("Potential tolerance", 1.0e-8, nonnegative=True),
            mass_tolerance=reader.number("Mass tolerance", 1.0e-8, nonnegative=True),
            mode=reader.mode("Mode", mode or StatesMode.DENSITY),
        )
        reader.finish()
        return cls(rotations, potential, mobility, frequencies, settings=settings, **kwargs)

    # mobility

    @property
    def internal_size(self) -> int:
        return len(self.rotations)

    def symmetry(self, index: int) -> int:
        return self.rotations[index].symmetry

    def _reduce(self, full: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Internal mobility in the symmetry reduced angles and the external
        rotation factor from full mobility matrices.
        """
        n = self.internal_size
        symmetry = np.array([r.symmetry for r in self.rotations], dtype=float)
        scale = 1.0 / np.outer(symmetry, symmetry)
        internal = full[..., :n, :n]
        if not self.external_rotation:
            return internal * scale, np.ones(full.shape[:-2])
        external = full[..., n:, n:]
        coupling = full[..., :n, n:]
        solved = np.linalg.solve(external, np.swapaxes(coupling, -1, -2))
        determinant = np.linalg.det(external)
        if np.any(determinant <= 0):
            raise InputError("MultiRotor: external mobility block is not positive definite")
        return (internal - coupling @ solved) * scale, determinant ** -0.5

    def _set_mass(self, tolerance: float) -> None:
        sizes = [r.mass_fourier_size for r in self.rotations]
        points = [max(2 * s + 1, r.weight_sampling_size) for s, r in zip(sizes, self.rotations)]
        internal, factor = self._reduce(self._mobility.on_grid(points))
        if np.any(np.linalg.eigvalsh(internal) <= 0):
            raise InputError("MultiRotor: internal mobility is not positive definite")
        self._internal_mobility = FourierSeries.from_samples(internal, self.internal_size, sizes, tolerance)
        self._erf = FourierSeries.from_samples(factor, self.internal_size, sizes, tolerance)
        n = self.internal_size
        self._mobility_components = {
            (a, b): FourierSeries(self._internal_mobility.coefficients[..., a, b], self._internal_mobility.sizes)
            for a in range(n) for b in range(n)
        }

    # real space grid

    def _set_grid(self) -> None:
        points = [r.weight_sampling_size for r in self.rotations]
        self._grid_points = points
        self._cell = float(np.prod([2.0 * math.pi / p for p in points]))
        self._potential_grid = self._potential.on_grid(points)
        internal, factor = self._reduce(self._mobility.on_grid(points))
        self._mass_grid = internal
        self._erf_grid = factor
        self._volume_grid = np.linalg.det(internal) ** -0.5 * factor
        zero_point = np.zeros(points)
        self._vibration_grid = None
        if self._vibration is not None:
            self._vibration_grid = self._vibration.on_grid(points)
            if np.any(self._vibration_grid <= 0):
                raise InputError("MultiRotor: non-positive vibrational frequency on the angular grid")
            zero_point = 0.5 * self._vibration_grid.sum(axis=-1)
        self._potential_min = float((self._potential_grid + zero_point).min())
        logger.debug("MultiRotor: angular grid %s, potential minimum %g", points, self._potential_min)

    def _manifold(self, quanta: tuple) -> _Manifold:
        series = self._potential + FourierSeries.constant(-self._potential_min, self.internal_size)
        grid = self._potential_grid - self._potential_min
        if self._vibration is not None:
            sizes = self._vibration.sizes
            for f, v in enumerate(quanta):
                component = FourierSeries(self._vibration.coefficients[..., f], sizes)
                series = series + (v + 0.5) * component
                grid = grid + (v + 0.5) * self._vibration_grid[..., f]
        return _Manifold(quanta, series, grid)

    def _set_manifolds(self) -> None:
        count = 0 if self._vibration_grid is None else self._vibration_grid.shape[-1]
        self._manifolds = [self._manifold((0,) * count)]
        if not self.full_quantum or count == 0:
            return
        lowest = self._vibration_grid.reshape(-1, count).min(axis=0)
        tops = [int(self.level_energy_max // w) for w in lowest]
        for quanta in itertools.product(*(range(t + 1) for t in tops)):
            if any(quanta) and float(np.dot(quanta, lowest)) <= self.level_energy_max:
                self._manifolds.append(self._manifold(quanta))
        logger.debug("MultiRotor: %d vibrational manifolds", len(self._manifolds))

    # quantum levels

    def _basis(self) -> tuple[np.ndarray, list, float]:
        """
        Plane wave basis, its extents and the energy above the potential
        minimum it resolves.
        """
        diagonal = np.diagonal(self._mass_grid, axis1=-2, axis2=-1).reshape(-1, self.internal_size).min(axis=0)
        spread = float(self._manifolds[0].grid.max())
        extents = []
        resolved = math.inf
        for index, (rotation, mobility) in enumerate(zip(self.rotations, diagonal)):
            top = int(math.ceil(math.sqrt(2.0 * (self.level_energy_max + spread) / mobility)))
            width = min(max(2 * top + 1, rotation.quantum_size_min), rotation.quantum_size_max)
            extent = width // 2
            if extent < top:
                # kinetic energy of the last plane wave inside the edge
                resolved = min(resolved, 0.5 * mobility * (extent - 1) ** 2)
                logger.warning(
                    "MultiRotor: rotation %d basis clipped to %d plane waves (%d needed)",
                    index, width, 2 * top + 1,
                )
            extents.append(extent)
        logger.debug("MultiRotor: plane wave extents %s, resolved energy %g", extents, resolved)
        axes = [np.arange(-e, e + 1) for e in extents]
        return np.array(list(itertools.product(*axes)), dtype=int), extents, resolved

    def _sectors(self, basis: np.ndarray, extents: list) -> list:
        """Split the basis into blocks the Hamiltonian does not couple."""
        shape = [2 * e + 1 for e in extents]
        flat = np.ravel_multi_index(tuple((basis + np.array(extents)).T), shape)
        lookup = np.empty(len(basis), dtype=int)
        lookup[flat] = np.arange(len(basis))
        shifts = {tuple(k) for k in self._internal_mobility.support()}
        for manifold in self._manifolds:
            shifts.update(tuple(k) for k in manifold.potential.support())
        shifts.discard((0,) * self.internal_size)
        rows, cols = [], []
        for shift in shifts:
            target = basis + np.array(shift)
            inside = np.all(np.abs(target) <= np.array(extents), axis=1)
            index = np.ravel_multi_index(tuple((target[inside] + np.array(extents)).T), shape)
            rows.append(np.nonzero(inside)[0])
            cols.append(lookup[index])
        if rows:
            rows, cols = np.concatenate(rows), np.concatenate(cols)
        else:
            rows = cols = np.zeros(0, dtype=int)
        graph = sparse.coo_matrix((np.ones(rows.size), (rows, cols)), shape=(len(basis), len(basis)))
        count, labels = connected_components(graph, directed=False)
        return [np.nonzero(labels == label)[0] for label in range(count)]

    def _diagonalize(self, basis: np.ndarray, manifold: _Manifold) -> tuple[np.ndarray, np.ndarray]:
        shifts = basis[:, None, :] - basis[None, :, :]
        hamiltonian = manifold.potential.lookup(shifts).astype(complex)
        for (a, b), component in self._mobility_components.items():
            hamiltonian += 0.5 * np.outer(basis[:, a], basis[:, b]) * component.lookup(shifts)
        values, vectors = linalg.eigh(hamiltonian)
        if self.external_rotation:
            factor = self._erf.lookup(shifts)
            mean = np.real(np.einsum("pn,pq,qn->n", vectors.conj(), factor, vectors))
        else:
            mean = np.ones_like(values)
        return values, mean

    def _set_levels(self) -> None:
        basis, extents, resolved = self._basis()
        sectors = self._sectors(basis, extents)
        tasks = [(manifold, sector) for manifold in self._manifolds for sector in sectors]
        logger.debug("MultiRotor: basis %d split into %d sectors, %d tasks", len(basis), len(sectors), len(tasks))

        def solve(task):
            manifold, sector = task
            return self._diagonalize(basis[sector], manifold)

        if self.settings.workers > 1 and len(tasks) > 1:
            with ThreadPoolExecutor(max_workers=self.settings.workers) as pool:
                results = list(pool.map(solve, tasks))
        else:
            results = [solve(task) for task in tasks]

        values = np.concatenate([r[0] for r in results])
        means = np.concatenate([r[1] for r in results])
        order = np.argsort(values)
        values, means = values[order], means[order]
        self._ground = float(values[0])
        top = self.level_energy_max
        if resolved < self._ground + top:
            if resolved <= self._ground:
                raise InputError(
                    f"MultiRotor: the plane wave basis resolves no level above the ground {self._ground}, "
                    "raise the quantum size maximum"
                )
            top = resolved - self._ground
            logger.warning("MultiRotor: quantum levels kept up to %g instead of %g", top, self.level_energy_max)
        self._level_top = top
        keep = values - self._ground <= top
        self._levels = values[keep] - self._ground
        self._mean_erf = means[keep]

    # classical estimate and quantum correction

    @property
    def _dof(self) -> int:
        return self.internal_size + (3 if self.external_rotation else 0)

    @property
    def _prefactor(self) -> float:
        d = self._dof
        value = (2.0 * math.pi) ** (0.5 * d - self.internal_size) / gamma(0.5 * d + 1.0)
        if self.external_rotation:
            value /= math.pi * self.external_symmetry
        return value

    @property
    def _external_factor(self) -> float:
        return (2.0 * math.pi) ** 1.5 / gamma(2.5) / (math.pi * self.external_symmetry)

    def classical_number(self, energies) -> np.ndarray:
        """Phase space number of states above the potential minimum."""
        energies = np.atleast_1d(np.asarray(energies, dtype=float))
        power = 0.5 * self._dof
        weight = (self._prefactor * self._cell) * self._volume_grid.ravel()
        total = np.zeros_like(energies)
        chunk = max(1, 4_000_000 // weight.size)
        for manifold in self._manifolds:
            grid = manifold.grid.ravel()
            for start in range(0, energies.size, chunk):
                excess = np.maximum(energies[start:start + chunk, None] - grid[None, :], 0.0)
                total[start:start + chunk] += (excess ** power) @ weight
        return total

    def _set_classical(self) -> None:
        top = self.settings.interpolation_energy_max + self._ground
        energies = np.linspace(0.0, top, 1001)
        self._classical = LogLogSpline(
            energies, self.classical_number(energies), name="MultiRotor classical states",
            extrapolation_factor=self.settings.extrapolation_factor,
        )

    def quantum_states(self, energy: float) -> float:
        """Quantum number of states relative to the ground level."""
        if energy < 0:
            return 0.0
        below = self._levels <= energy * (1.0 + 1.0e-12) + 1.0e-9
        if not self.external_rotation:
            return float(np.count_nonzero(below))
        excess = energy - self._levels[below]
        return float(self._external_factor * np.sum(self._mean_erf[below] * excess ** 1.5))

    def _set_qfactor(self) -> None:
        energies = np.unique(np.round(self._levels, 9))
        if self.external_rotation:
            # every level below the top is known, so the count there is exact
            energies = energies[1:]
            if not energies.size or energies[-1] < self._level_top:
                energies = np.append(energies, self._level_top)
        quantum = np.array([self.quantum_states(e) for e in energies])
        classical = self._classical(energies + self._ground)
        keep = (quantum > 0) & (classical > 0)
        energies, ratio = energies[keep], quantum[keep] / classical[keep]
        if ratio.size == 0:
            raise InputError("MultiRotor: no quantum levels to correct the classical estimate")
        if ratio.size == 1:
            self._qfactor = None
            self._qconstant = float(ratio[0])
        else:
            self._qfactor = LogLogSpline(
                energies, ratio, name="MultiRotor quantum correction", monotone=True,
                lower="constant", extrapolation_factor=math.inf,
            )
        logger.debug("MultiRotor: quantum correction fitted on %d levels", ratio.size)

    def qfactor(self, energy):
        if self._qfactor is None:
            return np.full_like(np.asarray(energy, dtype=float), self._qconstant) if np.ndim(energy) else self._qconstant
        return self._qfactor(energy)

    def _qfactor_derivative(self, energy):
        if self._qfactor is None:
            return np.zeros_like(np.asarray(energy, dtype=float)) if np.ndim(energy) else 0.0
        return self._qfactor.derivative(energy)

    # Core interface

    def ground(self) -> float:
        return self._ground

    def energy_levels(self) -> np.ndarray:
        return self._levels.copy()

    def states_array(self, energies) -> np.ndarray:
        energies = np.atleast_1d(np.asarray(energies, dtype=float))
        out = np.zeros_like(energies)
        inside = energies > 0
        e = energies[inside]
        number = self._classical(e + self._ground)
        if self.mode is StatesMode.NUMBER:
            out[inside] = number * self.qfactor(e)
        else:
            density = self._classical.derivative(e + self._ground)
            out[inside] = density * self.qfactor(e) + number * self._qfactor_derivative(e)
        return out

    def states(self, energy: float) -> float:
        return float(self.states_array(energy)[0])

    def quantum_weight(self, temperature: float) -> float:
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        boltzmann = np.exp(-self._levels / temperature)
        if not self.external_rotation:
            return float(boltzmann.sum())
        rotation = self._external_factor * gamma(2.5) * temperature ** 1.5
        return rotation * float(self._mean_erf @ boltzmann)

    def semiclassical_weight(self, temperature: float) -> tuple[float, float]:
        """Classical and path-integral weights relative to the ground level."""
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        d = self._dof
        base = self._prefactor * self._cell * gamma(0.5 * d + 1.0) * temperature ** (0.5 * d)
        hessian = self._hessian_grid()
        frequencies = np.linalg.eigvals(self._mass_grid @ hessian).real
        half = 0.5 * np.sqrt(np.maximum(frequencies, 0.0)) / temperature
        with np.errstate(over="ignore"):
            correction = np.prod(np.where(half > 1.0e-8, half / np.sinh(np.maximum(half, 1.0e-8)), 1.0), axis=-1)
        classical = path_integral = 0.0
        for manifold in self._manifolds:
            boltzmann = self._volume_grid * np.exp(-(manifold.grid - self._ground) / temperature)
            classical += base * float(boltzmann.sum())
            path_integral += base * float((boltzmann * correction).sum())
        return classical, path_integral

    def weight(self, temperature: float) -> float:
        if self.settings.use_quantum_weight:
            return self.quantum_weight(temperature)
        return self.semiclassical_weight(temperature)[1]

    # angle dependent properties

    def _hessian_grid(self) -> np.ndarray:
        n = self.internal_size
        hessian = np.empty(tuple(self._grid_points) + (n, n))
        for a in range(n):
            for b in range(a, n):
                orders = [0] * n
                orders[a] += 1
                orders[b] += 1
                hessian[..., a, b] = hessian[..., b, a] = self._potential.derivative(orders).on_grid(self._grid_points)
        return hessian

    def potential(self, angles, orders: Sequence[int] | None = None) -> float:
        series = self._potential if orders is None else self._potential.derivative(orders)
        return series(angles)

    def potential_gradient(self, angles) -> np.ndarray:
        n = self.internal_size
        return np.array([self.potential(angles, [int(a == b) for b in range(n)]) for a in range(n)])

    def force_constant_matrix(self, angles) -> np.ndarray:
        n = self.internal_size
        matrix = np.empty((n, n))
        for a in range(n):
            for b in range(n):
                orders = [0] * n
                orders[a] += 1
                orders[b] += 1
                matrix[a, b] = self.potential(angles, orders)
        return matrix

    def mass(self, angles) -> np.ndarray:
        """Internal mobility matrix in the symmetry reduced angles at ``angles``."""
        return np.asarray(self._reduce(np.asarray(self._mobility(angles)))[0])

    def external_rotation_factor(self, angles) -> float:
        return float(self._reduce(np.asarray(self._mobility(angles)))[1])

    def vibration(self, angles) -> np.ndarray:
        if self._vibration is None:
            return np.zeros(0)
        return np.atleast_1d(self._vibration(angles))

    def frequencies(self, angles) -> np.ndarray:
        """Local harmonic frequencies of the internal rotations; negative for imaginary ones."""
        values = np.linalg.eigvals(self.mass(angles) @ self.force_constant_matrix(angles)).real
        return np.sort(np.sign(values) * np.sqrt(np.abs(values)))

    def __repr__(self) -> str:
        return (
            f"MultiRotor(rotations={self.internal_size}, external_rotation={self.external_rotation}, "
            f"full_quantum={self.full_quantum}, mode={self.mode.name})"
        )
