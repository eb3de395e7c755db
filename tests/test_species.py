import math

import numpy as np
import pytest

from rrkm import constants
from rrkm.config import Settings
from rrkm.cores import PhaseSpaceTheory, RigidRotor
from rrkm.exceptions import InputError, LogicError
from rrkm.factories import new_species
from rrkm.models import StatesMode, TtsMethod
from rrkm.species import (
    RRHO,
    Arrhenius,
    AtomicSpecies,
    GraphExpansion,
    ReadSpecies,
    UnionSpecies,
    VarBarrier,
    unified_blend,
)
from rrkm.tunnels import HarmonicTunnel

SMALL = Settings(interpolation_energy_max=5000.0)


def power_law(name, factor, power, mode=StatesMode.NUMBER, settings=None):
    return RRHO(name, PhaseSpaceTheory(factor, power, mode), settings=settings)


class StubRegistry:
    def __init__(self, **species):
        self._species = species

    def species(self, name):
        return self._species[name]


# RRHO


def test_harmonic_oscillator_through_the_core():
    frequency = 500.0
    species = RRHO("ho", RigidRotor(frequencies=[frequency], mode=StatesMode.NUMBER))
    assert species.ground == pytest.approx(0.5 * frequency)
    for excess in (0.0, 499.0, 500.0, 1250.0, 4999.0):
        expected = math.floor(excess / frequency) + 1
        assert species.states(species.ground + excess) == pytest.approx(expected)
    temperature = 300.0
    assert species.weight(temperature) == pytest.approx(1.0 / (1.0 - math.exp(-frequency / temperature)))


def test_harmonic_frequency_convolution_on_grid():
    species = RRHO("rrho", PhaseSpaceTheory(1.0, 1.0, StatesMode.NUMBER), frequencies=[200.0], settings=SMALL)
    # zero point energy of the harmonic modes is not part of the ground
    assert species.ground == 0.0
    assert species.states(1000.0) == pytest.approx(3000.0, rel=1e-10)
    assert species.states(0.0) == 0.0
    temperature = 400.0
    assert species.weight(temperature) == pytest.approx(temperature / (1.0 - math.exp(-200.0 / temperature)))


def test_symmetry_and_electronic_levels():
    plain = RRHO("plain", PhaseSpaceTheory(2.0, 1.5, StatesMode.NUMBER), settings=SMALL)
    decorated = RRHO(
        "decorated", PhaseSpaceTheory(2.0, 1.5, StatesMode.NUMBER),
        electronic_levels=[(0.0, 2)], symmetry=2.0, settings=SMALL,
    )
    assert decorated.states(1000.0) == pytest.approx(plain.states(1000.0), rel=1e-8)
    assert decorated.weight(300.0) == pytest.approx(plain.weight(300.0))


def test_tunnel_lowers_the_ground():
    tunnel = HarmonicTunnel(1000.0, 2000.0)
    species = RRHO(
        "ts", PhaseSpaceTheory(1.0, 1.0, StatesMode.NUMBER), frequencies=[300.0], tunnel=tunnel,
        zero_energy=5000.0, settings=SMALL,
    )
    assert species.real_ground == pytest.approx(5000.0)
    assert species.ground == pytest.approx(3000.0)
    assert species.states(species.ground) == 0.0
    assert species.states(species.ground + 100.0) > 0.0
    assert species.states(4000.0) < species.states(6000.0)
    assert species.tunnel_weight(500.0) == pytest.approx(tunnel.weight(500.0))


def test_rrho_radiative_queries():
    species = RRHO(
        "ir", PhaseSpaceTheory(1.0, 1.0, StatesMode.NUMBER), frequencies=[1000.0, 1500.0],
        infrared_intensities=[10.0, 20.0], settings=SMALL,
    )
    assert species.oscillator_size() == 2
    assert species.oscillator_frequency(1) == 1500.0
    assert species.occupation_number(500.0, 0) == 0.0
    assert species.infrared_intensity(3000.0, 0) > 0.0


def test_rrho_rejects_mode_mismatch():
    with pytest.raises(InputError):
        RRHO("bad", PhaseSpaceTheory(1.0, 1.0, StatesMode.NUMBER), mode=StatesMode.DENSITY)


def test_rrho_from_block_with_quartic_constants():
    block = {
        "Type": "RRHO",
        "Core": {"Type": "PhaseSpaceTheory", "States factor": 1.0, "Power": 1.5, "Mode": "number"},
        "Frequencies, 1/cm": [800.0, 1200.0],
        "Quartic force constants, 1/cm": [[0, 0, 20.0], [0, 1, -5.0]],
        "Zero energy, kcal/mol": 1.0,
    }
    species = new_species("graph", block, SMALL)
    assert isinstance(species, RRHO)
    assert species.ground == pytest.approx(constants.ENERGY_UNITS["kcal/mol"])
    temperature = 600.0
    correction = species.graph.factor(temperature)
    reference = RRHO("plain", PhaseSpaceTheory(1.0, 1.5, StatesMode.NUMBER), frequencies=[800.0, 1200.0], settings=SMALL)
    assert species.weight(temperature) == pytest.approx(reference.weight(temperature) * correction)


# graph expansion


def test_graph_expansion_factor():
    graph = GraphExpansion([1000.0], [(0, 0, 40.0)])
    assert graph.correction(10.0) == pytest.approx(0.0, abs=1e-12)
    temperature = 1000.0
    variance = 0.5 / math.tanh(0.5)
    expected = 0.125 * 40.0 * (variance ** 2 - 0.25)
    assert graph.correction(temperature) == pytest.approx(expected)
    assert graph.factor(temperature) == pytest.approx(math.exp(-expected / temperature))
    with pytest.raises(InputError):
        GraphExpansion([1000.0], [(0, 1, 1.0)])


# tabulated species and unions


def linear_table(name, ground=0.0, mode=StatesMode.NUMBER):
    energies = np.arange(0.0, 20001.0, 10.0)
    return ReadSpecies(name, energies, energies, mode, ground)


def test_read_species_weight():
    species = linear_table("read")
    assert species.states(1234.0) == pytest.approx(1234.0, rel=1e-3)
    assert species.weight(300.0) == pytest.approx(300.0, rel=1e-3)


def test_union_adds_members():
    first, second = linear_table("a"), linear_table("b", ground=500.0)
    union = UnionSpecies("union", [first, second])
    assert union.ground == 0.0
    assert union.states(1500.0) == pytest.approx(first.states(1500.0) + second.states(1500.0))
    temperature = 400.0
    expected = first.weight(temperature) + second.weight(temperature) * math.exp(-500.0 / temperature)
    assert union.weight(temperature) == pytest.approx(expected)


def test_union_shift_propagates_once():
    first, second = linear_table("a"), linear_table("b", ground=500.0)
    union = UnionSpecies("union", [first, second])
    union.shift_ground(-100.0)
    assert union.ground == pytest.approx(-100.0)
    assert second.ground == pytest.approx(400.0)
    with pytest.raises(LogicError):
        union.shift_ground(1.0)


def test_union_rejects_mixed_modes():
    with pytest.raises(InputError):
        UnionSpecies("mixed", [linear_table("a"), linear_table("b", mode=StatesMode.DENSITY)])
    with pytest.raises(InputError):
        UnionSpecies("empty", [])


# variational barrier


def barrier(method=TtsMethod.STATISTICAL):
    inner = power_law("inner", 1.0, 1.0, settings=SMALL)
    outer = power_law("outer", 0.01, 2.0, settings=SMALL)
    return VarBarrier("tts", [inner], outer, method, settings=SMALL)


def test_statistical_barrier_takes_the_minimum():
    species = barrier()
    assert species.transition_state_index(50.0) == 1
    assert species.transition_state_index(150.0) == 0
    assert species.states(50.0) == pytest.approx(25.0, rel=1e-10)
    assert species.states(500.0) == pytest.approx(500.0, rel=1e-10)
    assert species.mode is StatesMode.NUMBER


def test_statistical_switch_at_the_crossing():
    settings = Settings(energy_step=8.0, interpolation_energy_max=5000.0)
    inner = power_law("inner", 1.0, 1.0, settings=settings)
    outer = power_law("outer", 1.0 / 64.0, 2.0, settings=settings)
    species = VarBarrier("tts", [inner], outer, settings=settings)
    # both count 64 states at 64; the tie goes to the inner state
    assert species.transition_state_index(64.0) == 0
    assert species.transition_state_index(64.0 - 1.0e-6) == 1
    assert species.transition_state_index(64.0 + 1.0e-6) == 0
    assert species.states(64.0 - 1.0e-3) == pytest.approx(64.0, rel=1e-4)
    assert species.states(64.0 + 1.0e-3) == pytest.approx(64.0, rel=1e-4)


def test_dynamical_barrier_with_one_inner_state_is_the_outer_one():
    species = barrier(TtsMethod.DYNAMICAL)
    assert species.states(500.0) == pytest.approx(2500.0, rel=1e-10)


def test_unified_blend():
    value = unified_blend(np.array([[10.0], [20.0]]), np.array([40.0]))
    assert value[0] == pytest.approx(1.0 / (0.1 + 0.025 - 0.05))
    assert unified_blend(np.array([[0.0]]), np.array([1.0]))[0] == 0.0


def test_barrier_shift_and_mode_checks():
    species = barrier()
    species.shift_ground(100.0)
    assert species.ground == pytest.approx(100.0)
    assert species.inner[0].ground == pytest.approx(100.0)
    dense = power_law("dense", 1.0, 1.0, StatesMode.DENSITY, settings=SMALL)
    with pytest.raises(InputError):
        VarBarrier("bad", [dense], power_law("outer", 1.0, 2.0, settings=SMALL), settings=SMALL)


def test_var_barrier_factory():
    core = {"Type": "PhaseSpaceTheory", "States factor": 1.0, "Power": 1.0, "Mode": "number"}
    block = {
        "Type": "VarBarrier",
        "Method": "dynamical",
        "Inner": [{"Type": "RRHO", "Core": core, "Zero energy": 100.0}],
        "Outer": {"Type": "RRHO", "Core": dict(core, Power=2.0)},
    }
    species = new_species("tts", block, SMALL)
    assert isinstance(species, VarBarrier)
    assert species.method is TtsMethod.DYNAMICAL
    assert species.ground == pytest.approx(100.0)
    assert [m.name for m in species.members] == ["tts:inner0", "tts:outer"]


# atoms


def test_atomic_species():
    atom = AtomicSpecies("O", [(0.0, 5), (158.0, 3)], zero_energy=10.0)
    assert atom.mode is StatesMode.NO_STATES
    assert atom.ground == 10.0
    assert atom.weight(300.0) == pytest.approx(5.0 + 3.0 * math.exp(-158.0 / 300.0))
    with pytest.raises(LogicError):
        atom.states(100.0)
    built = new_species("Cl", {"Type": "Atom", "Electronic levels": [[0.0, 4], [882.0, 2]]})
    assert built.weight(100.0) == pytest.approx(4.0 + 2.0 * math.exp(-8.82))


# Arrhenius


def arrhenius(power=1.0, reactant=None, factor=1.0e10):
    reactant = reactant or power_law("well", 1.0, 1.0)
    species = Arrhenius("fit", factor, power, 8000.0, "well")
    species.init(StubRegistry(well=reactant))
    return species, reactant


def test_arrhenius_requires_init():
    species = Arrhenius("fit", 1.0e10, 1.0, 8000.0, "well")
    with pytest.raises(LogicError):
        species.states(9000.0)
    with pytest.raises(LogicError):
        species.ground
    with pytest.raises(LogicError):
        species.weight(300.0)


def test_arrhenius_ground_and_first_order_states():
    species, reactant = arrhenius()
    assert species.ground == pytest.approx(reactant.ground + 8000.0)
    assert species.factor == pytest.approx(1.0e10 / (constants.K_CONST_C * constants.K_CONST_KELVIN))
    assert species.states(species.ground + 1000.0) == pytest.approx(species.factor * 1000.0, rel=1e-10)


def test_arrhenius_second_order_states():
    species, _ = arrhenius(power=2.0)
    expected = species.factor * 1000.0 ** 2 / 2.0
    assert species.states(species.ground + 1000.0) == pytest.approx(expected, rel=1e-4)


@pytest.mark.parametrize("power", [0.5, 1.0, 2.5])
def test_arrhenius_recovers_the_rate_prefactor(power):
    species, reactant = arrhenius(power=power)
    kelvin = 300.0
    temperature = constants.kelvin_to_energy(kelvin)
    rate = constants.K_CONST_C * temperature * species.weight(temperature) / reactant.weight(temperature)
    assert rate == pytest.approx(1.0e10 * kelvin ** power, rel=1e-10)


def test_arrhenius_rejects_atomic_reactant():
    species = Arrhenius("fit", 1.0e10, 1.0, 8000.0, "O")
    with pytest.raises(InputError):
        species.init(StubRegistry(O=AtomicSpecies("O")))
    with pytest.raises(InputError):
        Arrhenius("fit", 1.0e10, 0.0, 8000.0, "well")
