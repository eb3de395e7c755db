import logging
import math

import numpy as np
import pytest

from rrkm.config import Settings
from rrkm.cores import MultiRotor, RigidRotor
from rrkm.exceptions import InputError
from rrkm.factories import new_core
from rrkm.models import StatesMode
from rrkm.rotors import FreeRotor, HinderedRotor, InternalRotation

POINTS = 36
ANGLES = 2.0 * np.pi * np.arange(POINTS) / POINTS


def rotation(**kwargs):
    return InternalRotation(frozenset({2, 3}), (0, 1), **kwargs)


def free_rotor(**kwargs):
    return MultiRotor([rotation()], np.zeros(POINTS), [[2.0]], mode=StatesMode.NUMBER, level_energy_max=400.0, **kwargs)


def test_free_limit_levels_and_classical_count():
    core = free_rotor()
    levels = core.energy_levels()
    assert core.ground() == pytest.approx(0.0, abs=1e-9)
    assert levels[0] == pytest.approx(0.0, abs=1e-9)
    assert np.all(np.diff(levels) >= -1e-9)
    assert levels[1] == pytest.approx(1.0) and levels[2] == pytest.approx(1.0)
    # m**2 <= E has about 2 sqrt(E) integer solutions
    assert core.classical_number(400.0)[0] == pytest.approx(40.0, rel=1e-10)


def test_states_follow_quantum_staircase_at_levels():
    core = free_rotor()
    energies = np.unique(np.round(core.energy_levels(), 9))[1:]
    for energy in energies:
        assert core.states(energy) == pytest.approx(core.quantum_states(energy), rel=1e-8)
    values = core.states_array(np.linspace(1.0, 400.0, 50))
    assert np.all(values > 0)
    assert core.states(0.0) == 0.0


def test_quantum_correction_approaches_one():
    core = free_rotor()
    assert core.qfactor(400.0) == pytest.approx(41.0 / 40.0, rel=1e-6)
    assert abs(core.qfactor(300.0) - 1.0) < 0.1


def test_free_limit_weights():
    core = free_rotor()
    temperature = 50.0
    expected = math.sqrt(math.pi * temperature)
    assert core.quantum_weight(temperature) == pytest.approx(expected, rel=1e-3)
    classical, path_integral = core.semiclassical_weight(temperature)
    assert classical == pytest.approx(expected, rel=1e-10)
    assert path_integral == pytest.approx(classical)


def test_single_rotation_matches_hindered_rotor():
    potential = 500.0 * (1.0 - np.cos(ANGLES))
    core = MultiRotor(
        [rotation(quantum_size_max=121)], potential, [[2.0]], level_energy_max=1500.0, mode=StatesMode.NUMBER
    )
    hindered = HinderedRotor(1.0, 1, [500.0, -500.0])
    hindered.set(1500.0)
    reference = [hindered.energy_level(i) for i in range(6)]
    assert core.energy_levels()[:6] == pytest.approx(reference, rel=1e-6, abs=1e-6)
    assert core.ground() == pytest.approx(hindered.ground(), rel=1e-6)
    assert core.potential([math.pi]) == pytest.approx(1000.0, rel=1e-10)
    assert core.frequencies([0.0])[0] == pytest.approx(math.sqrt(1000.0), rel=1e-8)


def test_external_rotation_matches_rigid_rotor():
    constants = np.array([3.0, 1.0, 0.5])
    mobility = np.diag(np.concatenate([[2.0], 2.0 * constants]))
    core = MultiRotor(
        [rotation()], np.zeros(POINTS), mobility, external_rotation=True, external_symmetry=2.0,
        level_energy_max=400.0, mode=StatesMode.NUMBER,
    )
    rigid = RigidRotor(constants, symmetry=2.0, mode=StatesMode.NUMBER)
    assert core.external_rotation_factor([0.0]) == pytest.approx(float(np.prod(2.0 * constants)) ** -0.5)
    temperature = 50.0
    internal = sum(math.exp(-m * m / temperature) for m in range(-20, 21))
    assert core.quantum_weight(temperature) == pytest.approx(rigid.weight(temperature) * internal, rel=1e-8)
    # the lowest internal level alone
    assert core.quantum_states(0.5) == pytest.approx(rigid.states(0.5), rel=1e-10)
    energies = np.unique(np.round(core.energy_levels(), 9))[1:]
    for energy in energies[:5]:
        assert core.states(energy) == pytest.approx(core.quantum_states(energy), rel=1e-8)


def test_coupled_rotations_threaded_diagonalization():
    n = 24
    a, b = np.meshgrid(2.0 * np.pi * np.arange(n) / n, 2.0 * np.pi * np.arange(n) / n, indexing="ij")
    potential = 300.0 * (2.0 - np.cos(a) - np.cos(b)) + 50.0 * np.cos(a - b)
    mobility = [[2.0, 0.2], [0.2, 2.0]]
    rotations = [rotation(quantum_size_max=21), InternalRotation(frozenset({4}), (0, 5), quantum_size_max=21)]
    serial = MultiRotor(rotations, potential, mobility, level_energy_max=800.0)
    threaded = MultiRotor(rotations, potential, mobility, level_energy_max=800.0, settings=Settings(workers=3))
    assert threaded.energy_levels() == pytest.approx(serial.energy_levels(), abs=1e-8)
    assert serial.internal_size == 2
    assert serial.mode is StatesMode.DENSITY
    assert serial.states(500.0) > 0.0
    gradient = serial.potential_gradient([0.3, 0.1])
    assert gradient[0] == pytest.approx(300.0 * math.sin(0.3) - 50.0 * math.sin(0.2), rel=1e-8)
    hessian = serial.force_constant_matrix([0.0, 0.0])
    assert hessian[0, 1] == pytest.approx(50.0, rel=1e-8)
    assert serial.mass([0.0, 0.0]) == pytest.approx(np.array(mobility))


def test_full_quantum_vibrational_manifolds():
    frequencies = np.full((POINTS, 1), 150.0)
    core = MultiRotor(
        [rotation()], np.zeros(POINTS), [[2.0]], frequencies, full_quantum=True,
        level_energy_max=400.0, mode=StatesMode.NUMBER,
    )
    # the zero point of the vibration is part of the reference minimum
    assert core.ground() == pytest.approx(0.0, abs=1e-9)
    levels = core.energy_levels()
    assert np.count_nonzero(np.isclose(levels, 150.0)) == 1
    assert np.count_nonzero(np.isclose(levels, 151.0)) == 2
    assert core.vibration([0.0])[0] == pytest.approx(150.0)


def test_bad_mobility_shapes():
    with pytest.raises(InputError):
        MultiRotor([rotation()], np.zeros(POINTS), [[2.0, 0.0], [0.0, 2.0]])
    with pytest.raises(InputError):
        MultiRotor([rotation()], np.zeros(POINTS), [[-2.0]])
    with pytest.raises(InputError):
        MultiRotor([rotation()], np.zeros(POINTS), [[2.0]], external_rotation=True)


def test_multi_rotor_factory_block():
    core = new_core(
        {
            "Type": "MultiRotor",
            "Internal rotations": [{"Group": [2, 3], "Axis": [0, 1], "Symmetry": 3}],
            "Potential, 1/cm": np.zeros(POINTS).tolist(),
            "Mobility, 1/cm": [[2.0]],
            "Level energy max, 1/cm": 200.0,
            "Mode": "number",
        }
    )
    assert isinstance(core, MultiRotor)
    assert core.symmetry(0) == 3
    assert core.energy_levels()[-1] <= 200.0


def test_symmetry_reduces_the_mobility():
    core = MultiRotor(
        [rotation(symmetry=3, quantum_size_max=61)], np.zeros(POINTS), [[2.0]],
        level_energy_max=99.0, mode=StatesMode.NUMBER,
    )
    free = FreeRotor(1.0, 3)
    free.set(99.0)
    expected = sorted(
        level for n in range(free.level_size()) for level in [free.energy_level(n)] * free.degeneracy(n)
    )
    levels = core.energy_levels()
    assert levels.size == len(expected)
    assert levels[:7] == pytest.approx(expected[:7], abs=1e-8)
    assert core.mass([0.0])[0, 0] == pytest.approx(2.0 / 9.0)
    assert core.classical_number(100.0)[0] == pytest.approx(60.0, rel=1e-10)


def test_clipped_basis_keeps_only_resolved_levels(caplog):
    potential = 500.0 * (1.0 - np.cos(ANGLES))
    with caplog.at_level(logging.WARNING, logger="rrkm.cores.multi_rotor"):
        core = MultiRotor([rotation()], potential, [[2.0]], mode=StatesMode.NUMBER)
    assert "clipped" in caplog.text
    # 41 plane waves resolve kinetic energies up to 19**2 above the minimum
    assert core.energy_levels()[-1] + core.ground() <= 361.0 + 1e-9
    values = core.states_array(np.linspace(50.0, 3000.0, 60))
    assert np.all(np.diff(values) > 0)

    hindered = HinderedRotor(1.0, 1, [500.0, -500.0])
    hindered.set(1600.0)
    levels = [hindered.energy_level(i) for i in range(hindered.level_size())]
    for energy in (800.0, 1500.0):
        exact = sum(1 for level in levels if level <= energy)
        assert core.states(energy) == pytest.approx(exact, rel=0.1)


def test_corrected_count_bounds_the_staircase_between_levels():
    core = free_rotor()
    gaps = {}
    for m in range(1, 19):
        middle = m * m + m + 0.5
        quantum = core.quantum_states(middle)
        assert quantum == 2 * m + 1
        assert core.states(middle) >= quantum
        gaps[m] = core.states(middle) / quantum - 1.0
    assert gaps[15] < gaps[2]
    assert gaps[15] < 0.05
