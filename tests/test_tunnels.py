import math

import numpy as np
import pytest

from rrkm.config import Settings
from rrkm.exceptions import InputError
from rrkm.factories import new_tunnel
from rrkm.tunnels import EckartTunnel, HarmonicTunnel, QuarticTunnel, ReadTunnel

FREQUENCY = 1000.0
CUTOFF = 4000.0
DEPTHS = (20000.0, 25000.0)


def harmonic_table():
    energies = np.linspace(-CUTOFF, 3000.0, 71)
    return energies, -2.0 * math.pi * energies / FREQUENCY


TUNNELS = {
    "harmonic": lambda: HarmonicTunnel(FREQUENCY, CUTOFF),
    "eckart": lambda: EckartTunnel(FREQUENCY, CUTOFF, DEPTHS),
    "quartic": lambda: QuarticTunnel(FREQUENCY, CUTOFF, DEPTHS),
    "read": lambda: ReadTunnel(*harmonic_table(), CUTOFF),
}


@pytest.fixture(params=sorted(TUNNELS))
def tunnel(request):
    return TUNNELS[request.param]()


def test_half_transmission_at_barrier_top(tunnel):
    tolerance = 0.01 if isinstance(tunnel, EckartTunnel) else 1e-6
    assert tunnel.factor(0.0) == pytest.approx(0.5, abs=tolerance)


def test_factor_monotone_and_density_positive(tunnel):
    energies = np.linspace(-CUTOFF + 1.0, 3000.0, 301)
    factors = np.array([tunnel.factor(e) for e in energies])
    assert np.all(np.diff(factors) >= -1e-12)
    assert factors[0] >= 0.0 and factors[-1] <= 1.0
    assert all(tunnel.density(e) >= 0.0 for e in energies)


def test_no_transmission_below_cutoff(tunnel):
    assert tunnel.factor(-CUTOFF - 1.0) == 0.0
    assert tunnel.density(-CUTOFF - 1.0) == 0.0


def test_action_cap_zeroes_transmission():
    tunnel = HarmonicTunnel(FREQUENCY, CUTOFF, Settings(action_max=10.0))
    # action 2*pi*E/omega exceeds 10 below E = -1592
    assert tunnel.factor(-1600.0) == 0.0
    assert tunnel.factor(-1500.0) > 0.0


def test_harmonic_weight_matches_closed_form():
    tunnel = HarmonicTunnel(FREQUENCY, 5000.0)
    temperature = 1000.0
    x = 0.5 * FREQUENCY / temperature
    expected = x / math.sin(x)
    assert tunnel.weight(temperature) * math.exp(5000.0 / temperature) == pytest.approx(expected, rel=1e-5)


def test_convolute_step_function_gives_transmission():
    tunnel = HarmonicTunnel(FREQUENCY, CUTOFF)
    step = 10.0
    states = np.ones(1001)
    tunnel.convolute(states, step)
    for i in (0, 150, 400, 600):
        assert states[i] == pytest.approx(tunnel.factor(-CUTOFF + (i + 0.5) * step), abs=1e-10)
    assert states[-1] == pytest.approx(1.0, abs=1e-10)


def test_read_tunnel_frequency_from_slope():
    tunnel = ReadTunnel(*harmonic_table(), CUTOFF)
    assert tunnel.frequency == pytest.approx(FREQUENCY, rel=1e-6)
    assert tunnel.action(5000.0) == pytest.approx(-2.0 * math.pi * 5.0, rel=1e-6)


def test_eckart_symmetric_deep_barrier_is_nearly_parabolic():
    tunnel = EckartTunnel(FREQUENCY, CUTOFF, (50000.0, 50000.0))
    harmonic = HarmonicTunnel(FREQUENCY, CUTOFF)
    for energy in (-2000.0, -500.0, 500.0):
        assert tunnel.action(energy) == pytest.approx(harmonic.action(energy), rel=0.05, abs=0.05)


def test_quartic_depth_ratio_root():
    tunnel = QuarticTunnel(FREQUENCY, CUTOFF, (20000.0, 20000.0))
    assert tunnel.rho == pytest.approx(1.0, rel=1e-8)
    assert tunnel.v3 == pytest.approx(0.0, abs=1e-12)


def test_cutoff_must_stay_above_the_wells():
    with pytest.raises(InputError):
        EckartTunnel(FREQUENCY, 30000.0, DEPTHS)
    with pytest.raises(InputError):
        QuarticTunnel(FREQUENCY, 20000.0, DEPTHS)


def test_tunnel_factory_reads_units():
    tunnel = new_tunnel(
        {"Type": "Eckart", "Imaginary frequency, 1/cm": 1000, "Cutoff energy, kcal/mol": 10, "Well depth, kcal/mol": [60, 70]}
    )
    assert isinstance(tunnel, EckartTunnel)
    assert tunnel.cutoff == pytest.approx(3497.5, rel=1e-3)
    with pytest.raises(InputError):
        new_tunnel({"Type": "Square", "Imaginary frequency": 1000})
