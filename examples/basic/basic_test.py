"""Basic smoke tests for the numeric helpers."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import yaml

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))

from rrkm import constants, numerics  # noqa: E402


def main() -> None:
    # YAML parsing check
    node = yaml.safe_load("{pi: 3.14159, frequencies: [800, 1200]}")
    print("pi from YAML:", node["pi"])

    print("1 kcal/mol in 1/cm:", constants.ENERGY_UNITS["kcal/mol"])
    print("kT at 300 K in 1/cm:", constants.kelvin_to_energy(300.0))

    print("int(x)_0^1 =", numerics.integrate_interval(lambda x: x, 0.0, 1.0))
    root = numerics.newton_raphson(lambda x: (x * x - 2.0, 2.0 * x), 1.0)
    print("sqrt(2) by Newton-Raphson:", root)

    energies = np.linspace(10.0, 1000.0, 100)
    spline = numerics.LogLogSpline(energies, energies ** 1.5, name="E^1.5")
    print("spline(500) =", spline(500.0), "exact", 500.0 ** 1.5)
    print("extrapolation power above the table:", spline.power_max)

    states = np.ones(101)
    numerics.harmonic_convolute(states, 100.0, 10.0)
    print("harmonic oscillator staircase at 1000 1/cm:", states[-1])
    print("laplace weight of N(E) = E at T = 200:", numerics.laplace_weight(lambda e: e, 200.0))


if __name__ == "__main__":
    main()
