"""Number of states of a rigid rotor / harmonic oscillator transition state."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))

from rrkm import constants  # noqa: E402
from rrkm.config import Settings  # noqa: E402
from rrkm.cores import RigidRotor  # noqa: E402
from rrkm.models import StatesMode  # noqa: E402
from rrkm.rotors import FreeRotor, HinderedRotor  # noqa: E402
from rrkm.species import RRHO  # noqa: E402
from rrkm.tunnels import EckartTunnel  # noqa: E402


def main() -> None:
    settings = Settings(energy_step=10.0, interpolation_energy_max=20000.0)
    core = RigidRotor([1.9, 0.35, 0.3], symmetry=1.0, mode=StatesMode.NUMBER, settings=settings)
    rotors = [FreeRotor(5.3, 3, settings), HinderedRotor(0.9, 3, [250.0, -250.0], settings=settings)]
    tunnel = EckartTunnel(1500.0, 3000.0, [9000.0, 14000.0], settings)
    species = RRHO(
        "TS",
        core,
        frequencies=[3000.0, 2950.0, 1450.0, 1200.0, 900.0, 650.0],
        rotors=rotors,
        tunnel=tunnel,
        zero_energy=9000.0,
        settings=settings,
    )
    print(species)
    print("real ground:", species.real_ground, "tunneling ground:", species.ground)

    out_dir = Path.cwd() / "STATES"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / "rrho_ts.txt"
    with out_file.open("w") as fh:
        for energy in np.arange(species.ground + 100.0, species.real_ground + 15000.0, 500.0):
            fh.write(f"{energy:15.1f}{species.states(energy):20.8e}\n")
    print(f"Wrote number of states to {out_file}")

    for kelvin in (300.0, 600.0, 1200.0):
        temperature = constants.kelvin_to_energy(kelvin)
        print(
            f"T = {kelvin:6.0f} K: weight {species.weight(temperature):.6e}, "
            f"tunneling factor {species.tunnel_weight(temperature):.4f}"
        )


if __name__ == "__main__":
    main()
