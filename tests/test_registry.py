import textwrap

import pytest

from rrkm import constants
from rrkm.exceptions import InputError, LogicError, UnopenedFileException
from rrkm.factories import SPECIES, Factory
from rrkm.models import ModelsSpecies
from rrkm.registry import (
    Bimolecular,
    ConstEscape,
    FitEscape,
    build_model,
    load_model,
    new_escape,
    translational_factor,
)
from rrkm.species import Arrhenius, AtomicSpecies
from rrkm.yaml_loader import load_document

KCAL = constants.ENERGY_UNITS["kcal/mol"]

MODEL = textwrap.dedent(
    """
    Settings:
      Energy step, 1/cm: 10
      Interpolation energy max, 1/cm: 5000
    Wells:
      - Name: W1
        Species:
          Type: RRHO
          Zero energy, kcal/mol: -20
          Core:
            Type: RigidRotor
            Rotational constants, 1/cm: [1.0, 0.5, 0.4]
            Frequencies, 1/cm: [800, 1200, 1500]
            Mode: density
        Escape:
          Type: Constant
          Rate: 1.0e5
      - Name: W2
        Species:
          Type: RRHO
          Zero energy, kcal/mol: -15
          Core:
            Type: RigidRotor
            Rotational constants, 1/cm: [1.2, 0.6, 0.5]
            Frequencies, 1/cm: [900, 1300]
            Mode: density
    Bimolecular:
      - Name: P
        Ground energy, kcal/mol: 5
        Reduced mass: 0.99
        Fragments:
          - Name: H
            Type: Atom
            Electronic levels: [[0, 2]]
          - Name: CH3
            Type: RRHO
            Core:
              Type: RigidRotor
              Rotational constants, 1/cm: [9.5, 9.5, 4.7]
              Symmetry factor: 6
              Frequencies, 1/cm: [600, 1400, 1400]
      - Name: Sink
        Dummy: yes
    Barriers:
      - Name: B1
        Connect: [W1, W2]
        Species:
          Type: RRHO
          Zero energy, kcal/mol: 10
          Core:
            Type: RigidRotor
            Rotational constants, 1/cm: [1.1, 0.5, 0.45]
            Frequencies, 1/cm: [700, 1100]
          Tunnel:
            Type: Harmonic
            Imaginary frequency, 1/cm: 1200
            Cutoff energy, 1/cm: 2000
      - Name: B2
        Connect: [P, W2]
        Species:
          Type: RRHO
          Zero energy, kcal/mol: 3
          Core:
            Type: PhaseSpaceTheory
            States factor: 0.1
            Power: 2.5
            Mode: number
      - Name: B3
        Connect: [W1, Sink]
        Species:
          Type: Arrhenius
          Reactant: W1
          Pre-exponential factor: 1.0e12
          Power: 1.0
          Activation energy, kcal/mol: 30
    Energy reference: P
    """
)


@pytest.fixture(scope="module")
def model():
    return load_model(MODEL)


def test_sizes_and_connectivity(model):
    assert model.well_size() == 2
    assert model.bimolecular_size() == 2
    assert model.inner_barrier_size() == 1
    assert model.outer_barrier_size() == 2
    assert model.inner_connect(0) == (0, 1)
    # product listed first is swapped to (well, product)
    assert model.outer_connect(0) == (1, 0)
    assert model.outer_connect(1) == (0, 1)
    assert model.well(1).name == "W2"
    assert model.bimolecular(1).dummy


def test_energy_reference_shift(model):
    assert model.energy_shift() == pytest.approx(-5.0 * KCAL)
    assert model.bimolecular(0).ground == pytest.approx(0.0, abs=1e-9)
    zero_point = 0.5 * (800.0 + 1200.0 + 1500.0)
    assert model.well(0).ground == pytest.approx(-25.0 * KCAL + zero_point)
    assert model.inner_barrier(0).real_ground == pytest.approx(5.0 * KCAL + 900.0)
    assert model.inner_barrier(0).ground == pytest.approx(5.0 * KCAL + 900.0 - 2000.0)


def test_arrhenius_barrier_follows_its_reactant(model):
    barrier = model.outer_barrier(1)
    assert isinstance(barrier, Arrhenius)
    assert barrier.reactant is model.well(0).species
    assert barrier.ground == pytest.approx(model.well(0).ground + 30.0 * KCAL)


def test_maximum_barrier_and_energy_limit(model):
    highest = model.outer_barrier(1).real_ground
    assert model.maximum_barrier_height() == pytest.approx(highest)
    assert model.energy_limit() == pytest.approx(highest + 5000.0)


def test_species_lookup_and_fragments(model):
    assert isinstance(model.species("H"), AtomicSpecies)
    assert model.species("CH3") is model.bimolecular(0).fragments[1]
    assert model.bimolecular(0).fragment_name(1) == "CH3"
    with pytest.raises(InputError):
        model.species("CH4")


def test_bimolecular_weight(model):
    product = model.bimolecular(0)
    temperature = constants.kelvin_to_energy(500.0)
    expected = translational_factor(0.99) * temperature ** 1.5
    expected *= product.fragment_weight(0, temperature) * product.fragment_weight(1, temperature)
    assert product.weight(temperature) == pytest.approx(expected)
    assert product.fragment_weight(0, temperature) == pytest.approx(2.0)
    with pytest.raises(LogicError):
        model.bimolecular(1).weight(temperature)


def test_translational_factor_value():
    # hydrogen atom at 1 K: (2 pi m k T / h^2)^(3/2) = 1.9e20 1/cm^3
    value = translational_factor(1.00782503) * constants.kelvin_to_energy(1.0) ** 1.5
    assert value == pytest.approx(1.9e20, rel=0.01)


def test_well_escape(model):
    assert model.well(0).escape_rate(0.0) == 1.0e5
    assert model.well(1).escape_rate(0.0) == 0.0
    assert model.well(0).states(model.well(0).ground + 3000.0) > 0.0


def test_escape_blocks():
    assert isinstance(new_escape({"Type": "Constant", "Rate": 2.0}), ConstEscape)
    fit = new_escape({"Type": "Fit", "Table": [[100, 1.0e3], [1000, 1.0e6], [2000, 1.0e7]], "Ground energy": 50})
    assert isinstance(fit, FitEscape)
    assert fit.rate(1050.0) == pytest.approx(1.0e6)
    assert fit.rate(40.0) == 0.0
    fit.shift_ground(-50.0)
    assert fit.rate(1000.0) == pytest.approx(1.0e6)
    with pytest.raises(InputError):
        new_escape({"Type": "Linear"})


def test_energy_limit_setting():
    document = load_document(MODEL)
    document["Settings"]["Energy limit, kcal/mol"] = 40
    model = build_model(document)
    assert model.energy_limit() == pytest.approx(35.0 * KCAL)


def test_model_file(tmp_path):
    path = tmp_path / "model.yaml"
    path.write_text(MODEL)
    assert load_model(path).well_size() == 2
    with pytest.raises(UnopenedFileException):
        load_model(tmp_path / "missing.yaml")


def test_bimolecular_requires_fragments_or_dummy():
    with pytest.raises(InputError):
        Bimolecular("empty")
    assert Bimolecular("sink", dummy=True).ground == 0.0


@pytest.mark.parametrize(
    "document",
    [
        {"Wells": [], "Reactions": []},
        {"Wells": [{"Name": "W", "Species": {"Type": "Harmonic"}}]},
        {"Wells": [{"Species": {"Type": "Atom"}}]},
        {"Bimolecular": [{"Name": "P", "Fragments": [{"Name": "H", "Type": "Atom"}]}]},
        {"Bimolecular": [{"Name": "P", "Dummy": True}], "Energy reference": "Q"},
    ],
)
def test_malformed_documents(document):
    with pytest.raises(InputError):
        build_model(document)


def _barrier_document(connect, name="B"):
    document = load_document(MODEL)
    document["Barriers"] = [
        {"Name": name, "Connect": connect, "Species": {"Type": "Atom"}},
    ]
    return document


@pytest.mark.parametrize(
    "connect, name",
    [
        (["P", "Sink"], "B"),
        (["W1", "W3"], "B"),
        (["W1"], "B"),
        (["W1", "W1"], "B"),
        (["W1", "W2"], "CH3"),
    ],
)
def test_bad_barriers(connect, name):
    with pytest.raises(InputError):
        build_model(_barrier_document(connect, name))


def test_factory_registration_errors():
    factory = Factory("test")
    factory.register("One", dict)
    with pytest.raises(LogicError):
        factory.register("One", list)
    with pytest.raises(LogicError):
        factory.register("", list)
    with pytest.raises(LogicError):
        factory.register("Two", 42)
    with pytest.raises(LogicError):
        SPECIES.register(ModelsSpecies.RRHO.value, dict)
    with pytest.raises(InputError):
        factory.split({"Name": "x"})
    assert "One" in factory and factory.names() == ["One"]
    assert ModelsSpecies.ARRHENIUS.value in SPECIES
