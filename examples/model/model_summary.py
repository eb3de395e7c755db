"""Load a YAML model and tabulate its species on the shifted energy scale."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))

from rrkm import constants, exceptions  # noqa: E402
from rrkm.registry import load_model  # noqa: E402


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    source = Path(__file__).resolve().parent / "model.yaml"

    try:
        load_model(Path("missing.yaml"))
    except exceptions.UnopenedFileException as exc:
        print(exc)

    model = load_model(source)
    kcal = constants.ENERGY_UNITS["kcal/mol"]
    print(f"energy shift: {model.energy_shift() / kcal:.2f} kcal/mol")
    print(f"energy limit: {model.energy_limit() / kcal:.2f} kcal/mol")
    for i in range(model.well_size()):
        well = model.well(i)
        print(f"well {well.name}: ground {well.ground / kcal:8.2f} kcal/mol")
    for i in range(model.inner_barrier_size()):
        barrier = model.inner_barrier(i)
        w1, w2 = model.inner_connect(i)
        print(f"inner barrier {barrier.name} ({model.well(w1).name} <-> {model.well(w2).name}): "
              f"ground {barrier.ground / kcal:.2f}, real ground {barrier.real_ground / kcal:.2f} kcal/mol")
    for i in range(model.outer_barrier_size()):
        barrier = model.outer_barrier(i)
        w, p = model.outer_connect(i)
        print(f"outer barrier {barrier.name} ({model.well(w).name} -> {model.bimolecular(p).name}): "
              f"ground {barrier.ground / kcal:.2f} kcal/mol")

    out_dir = Path.cwd() / "MODEL"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / "weights.txt"
    product = model.bimolecular(0)
    with out_file.open("w") as fh:
        for kelvin in (300.0, 500.0, 800.0, 1200.0, 2000.0):
            temperature = constants.kelvin_to_energy(kelvin)
            wells = [model.well(i).weight(temperature) for i in range(model.well_size())]
            fh.write(f"{kelvin:10.0f}" + "".join(f"{w:20.8e}" for w in wells))
            fh.write(f"{product.weight(temperature):20.8e}\n")
    print(f"Wrote partition functions to {out_file}")

    addition = model.species("Addition")
    for energy in np.array([1.0, 5.0, 10.0]) * kcal:
        index = addition.transition_state_index(energy)
        print(f"Addition at {energy / kcal:4.1f} kcal/mol: transition state {index}, "
              f"{addition.states(energy):.4e} states")


if __name__ == "__main__":
    main()
