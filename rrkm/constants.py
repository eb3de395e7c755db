"""Physical constants and energy unit conversions.

Internal energy unit is the wavenumber (1/cm); temperatures passed to
``weight`` methods are kT expressed in the same unit.
"""
from __future__ import annotations

K_CONST_H = 6.62607015e-34  # J*s
K_CONST_C = 2.99792458e10  # cm/s
K_CONST_K = 1.380649e-23  # J/K
K_CONST_NA = 6.02214076e23  # 1/mol
K_CONST_AMU = 1.66053906660e-27  # kg

# 1 K of temperature in 1/cm
K_CONST_KELVIN = K_CONST_K / (K_CONST_H * K_CONST_C)

ENERGY_UNITS = {
    "1/cm": 1.0,
    "cm-1": 1.0,
    "kcal/mol": 4184.0 / (K_CONST_H * K_CONST_C * K_CONST_NA),
    "kJ/mol": 1000.0 / (K_CONST_H * K_CONST_C * K_CONST_NA),
    "eV": 1.602176634e-19 / (K_CONST_H * K_CONST_C),
    "hartree": 219474.6313632,
    "J": 1.0 / (K_CONST_H * K_CONST_C),
    "K": K_CONST_KELVIN,
}


def kelvin_to_energy(temperature: float) -> float:
    """Convert a temperature in K to kT in 1/cm."""
    return temperature * K_CONST_KELVIN


def energy_to_kelvin(energy: float) -> float:
    return energy / K_CONST_KELVIN


def convert_energy(value, unit: str):
    """Convert ``value`` given in ``unit`` to 1/cm."""
    if unit not in ENERGY_UNITS:
        raise KeyError(unit)
    return value * ENERGY_UNITS[unit]
