"""Two coupled methyl torsions with the external rotation treated classically."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))

from rrkm.config import Settings  # noqa: E402
from rrkm.cores import MultiRotor  # noqa: E402
from rrkm.models import StatesMode  # noqa: E402
from rrkm.rotors import InternalRotation  # noqa: E402


def main() -> None:
    points = 24
    angles = 2.0 * np.pi * np.arange(points) / points
    a, b = np.meshgrid(angles, angles, indexing="ij")
    # reduced angles of two threefold rotors; barriers in 1/cm
    potential = 350.0 * (2.0 - np.cos(a) - np.cos(b)) + 40.0 * (1.0 - np.cos(a - b))

    # full-angle mobility, 2B for a methyl top
    internal = np.array([[11.0, 0.8], [0.8, 11.0]])
    external = np.diag([2.0, 0.6, 0.55])
    coupling = np.array([[0.3, 0.0, 0.0], [0.3, 0.0, 0.0]])
    mobility = np.block([[internal, coupling], [coupling.T, external]])

    rotations = [
        InternalRotation(frozenset({3, 4, 5}), (0, 1), symmetry=3, quantum_size_max=51),
        InternalRotation(frozenset({6, 7, 8}), (0, 2), symmetry=3, quantum_size_max=51),
    ]
    core = MultiRotor(
        rotations,
        potential,
        mobility,
        external_rotation=True,
        external_symmetry=2.0,
        level_energy_max=300.0,
        mode=StatesMode.NUMBER,
        settings=Settings(workers=4),
    )
    print(core)
    print("ground above the potential minimum:", core.ground())
    print("lowest levels:", core.energy_levels()[:8])
    print("local frequencies at the minimum:", core.frequencies([0.0, 0.0]))

    for energy in (200.0, 500.0, 1000.0, 3000.0):
        print(
            f"E = {energy:7.1f}: quantum {core.quantum_states(energy):12.5e} "
            f"classical x q {core.states(energy):12.5e} q {core.qfactor(energy):.4f}"
        )
    for temperature in (100.0, 300.0):
        classical, path_integral = core.semiclassical_weight(temperature)
        print(f"T = {temperature} 1/cm: quantum {core.quantum_weight(temperature):.5e} "
              f"classical {classical:.5e} path integral {path_integral:.5e}")


if __name__ == "__main__":
    main()
