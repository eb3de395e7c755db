import math

import numpy as np
import pytest

from rrkm.config import Settings
from rrkm.exceptions import InputError, LogicError
from rrkm.factories import new_rotor
from rrkm.rotors import FreeRotor, HinderedRotor, InternalRotation, Umbrella, cosine_moment


def make_rotors():
    return [
        FreeRotor(1.5, 2),
        HinderedRotor(1.0, 3, [500.0, -500.0]),
        Umbrella(1.0, [0.0, 10000.0]),
    ]


@pytest.mark.parametrize("rotor", make_rotors(), ids=lambda r: type(r).__name__)
def test_levels_start_at_zero_and_increase(rotor):
    rotor.set(2000.0)
    levels = [rotor.energy_level(i) for i in range(rotor.level_size())]
    assert levels[0] == pytest.approx(0.0, abs=1e-9)
    assert np.all(np.diff(levels) >= -1e-9)
    assert levels[-1] <= 2000.0 + 1e-9


def test_levels_require_set():
    rotor = FreeRotor(1.0)
    with pytest.raises(LogicError):
        rotor.level_size()
    with pytest.raises(LogicError):
        HinderedRotor(1.0, 1, [100.0, -100.0]).energy_level(0)


@pytest.mark.parametrize("constant, symmetry, energy_max", [(1.0, 1, 100.0), (1.0, 2, 100.0), (0.7, 3, 55.3)])
def test_free_rotor_level_count(constant, symmetry, energy_max):
    rotor = FreeRotor(constant, symmetry)
    rotor.set(energy_max)
    expected = sum(1 for n in range(1000) if constant * n * n / symmetry ** 2 <= energy_max)
    assert rotor.level_size() == expected
    assert rotor.degeneracy(0) == 1
    assert rotor.degeneracy(1) == 2


def test_free_rotor_classical_weight():
    rotor = FreeRotor(1.0, 2)
    temperature = 1000.0
    assert rotor.weight(temperature) == pytest.approx(math.sqrt(math.pi * temperature / 0.25), rel=1e-6)


def test_free_rotor_convolution_adds_degenerate_levels():
    rotor = FreeRotor(10.0)
    rotor.set(100.0)
    states = np.ones(11)
    rotor.convolute(states, 10.0)
    # levels 0 (x1), 10 (x2), 40 (x2), 90 (x2)
    assert states.tolist() == [1, 3, 3, 3, 5, 5, 5, 5, 5, 7, 7]


@pytest.mark.parametrize(
    "rotor", [FreeRotor(3.0), HinderedRotor(5.0, 1, [200.0, -200.0])], ids=lambda r: type(r).__name__
)
def test_convolution_sum_rule_under_grid_refinement(rotor):
    rotor.set(300.0)
    total = sum(rotor.degeneracy(i) for i in range(rotor.level_size()))
    counts = []
    for step in (10.0, 5.0, 2.5):
        size = int(round(400.0 / step)) + 1
        number = np.ones(size)
        rotor.convolute(number, step)
        density = np.zeros(size)
        density[0] = 1.0
        rotor.convolute(density, step)
        assert density.sum() == pytest.approx(total)
        counts.append(number[-1])
    assert counts == [total] * 3


def test_unhindered_rotor_matches_free_rotor():
    hindered = HinderedRotor(2.0, 1, [0.0])
    free = FreeRotor(2.0, 1)
    hindered.set(500.0)
    free.set(500.0)
    expected = sorted(
        level for n in range(free.level_size()) for level in [free.energy_level(n)] * free.degeneracy(n)
    )
    levels = [hindered.energy_level(i) for i in range(hindered.level_size())]
    assert levels == pytest.approx(expected, abs=1e-8)
    assert hindered.ground() == pytest.approx(0.0, abs=1e-9)
    assert hindered.weight(800.0) == pytest.approx(free.weight(800.0), rel=1e-6)


def test_deep_hindered_rotor_is_harmonic():
    barrier = 10000.0
    rotor = HinderedRotor(1.0, 1, [0.5 * barrier, -0.5 * barrier])
    frequency = math.sqrt(barrier)
    rotor.set(3.0 * frequency)
    assert rotor.energy_level(1) == pytest.approx(frequency, rel=0.02)
    assert rotor.ground() == pytest.approx(0.5 * frequency, rel=0.02)
    classical, path_integral = rotor.semiclassical_weight(20.0)
    assert path_integral < classical


def test_hindered_rotor_quantum_weight_setting():
    settings = Settings(use_quantum_weight=True)
    rotor = HinderedRotor(1.0, 3, [300.0, -300.0], settings=settings)
    levels = rotor.levels_below(settings.therm_pow_max * 200.0)
    assert rotor.weight(200.0) == pytest.approx(float(np.sum(np.exp(-levels / 200.0))))


def test_hindered_rotor_from_potential_points():
    angles = np.arange(0.0, 360.0, 30.0)
    values = 400.0 * (1.0 - np.cos(np.deg2rad(angles)))
    rotor = new_rotor(
        {"Type": "Hindered", "Rotational constant": 1.0, "Potential": np.column_stack([angles, values]).tolist()}
    )
    assert rotor.potential_max - rotor.potential_min == pytest.approx(800.0, rel=1e-8)
    assert rotor.potential(math.pi) == pytest.approx(800.0, rel=1e-8)


def test_hindered_rotor_fourier_block_with_sines():
    rotor = HinderedRotor.from_block({"Rotational constant": 1.0, "Fourier expansion": [[0, 100.0], [-1, 50.0]]})
    assert rotor.potential(0.5 * math.pi) == pytest.approx(150.0)
    with pytest.raises(InputError):
        HinderedRotor.from_block({"Rotational constant": 1.0})


def test_umbrella_harmonic_limit():
    rotor = Umbrella(1.0, [0.0, 10000.0])
    frequency = 2.0 * math.sqrt(10000.0)
    rotor.set(2.5 * frequency)
    assert rotor.level_size() == 3
    assert rotor.energy_level(1) == pytest.approx(frequency, rel=1e-3)
    assert rotor.energy_level(2) == pytest.approx(2.0 * frequency, rel=1e-3)
    assert rotor.ground() == pytest.approx(0.5 * frequency, rel=1e-3)


def test_cosine_moments():
    assert cosine_moment(0, 0) == pytest.approx(1.0)
    assert cosine_moment(2, 0) == pytest.approx(1.0 / 3.0)
    assert cosine_moment(2, 1) == pytest.approx(-2.0 / math.pi ** 2)
    assert cosine_moment(0, 3) == 0.0


def test_internal_rotation_descriptor():
    rotation = InternalRotation.from_block({"Group": [3, 4, 5], "Axis": [0, 3], "Symmetry": 3, "Potential fourier size": 7})
    assert rotation.group == frozenset({3, 4, 5})
    assert rotation.symmetry == 3
    assert rotation.potential_fourier_size == 7
    with pytest.raises(InputError):
        InternalRotation(frozenset({1, 2}), (1, 2))
