"""Enum definitions for state-count modes and model discriminants."""
from __future__ import annotations

from enum import Enum


class StatesMode(Enum):
    DENSITY = "density"
    NUMBER = "number"
    NO_STATES = "nostates"

    @classmethod
    def parse(cls, value) -> "StatesMode":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"unrecognized states mode: {value!r}")


class TtsMethod(Enum):
    STATISTICAL = "statistical"
    DYNAMICAL = "dynamical"


class ModelsTunnel(Enum):
    HARMONIC = "Harmonic"
    ECKART = "Eckart"
    QUARTIC = "Quartic"
    READ = "Read"


class ModelsRotor(Enum):
    FREE = "Free"
    HINDERED = "Hindered"
    UMBRELLA = "Umbrella"


class ModelsCore(Enum):
    RIGID_ROTOR = "RigidRotor"
    PHASE_SPACE_THEORY = "PhaseSpaceTheory"
    ROTD = "Rotd"
    MULTI_ROTOR = "MultiRotor"


class ModelsSpecies(Enum):
    RRHO = "RRHO"
    READ = "Read"
    UNION = "Union"
    VAR_BARRIER = "VarBarrier"
    ATOM = "Atom"
    ARRHENIUS = "Arrhenius"
