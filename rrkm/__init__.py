"""State counting for RRKM kinetics: tunnels, rotors, cores and species."""

from . import constants, exceptions, models, numerics
from .config import BlockReader, Settings
from .cores import Core, MultiRotor, PhaseSpaceTheory, RigidRotor, Rotd
from .factories import new_core, new_rotor, new_species, new_tunnel
from .registry import Bimolecular, ModelRegistry, Well, load_model
from .rotors import FreeRotor, HinderedRotor, InternalRotation, Rotor, Umbrella
from .species import RRHO, Arrhenius, AtomicSpecies, ReadSpecies, Species, UnionSpecies, VarBarrier
from .tunnels import EckartTunnel, HarmonicTunnel, QuarticTunnel, ReadTunnel, Tunnel

__all__ = [
    "constants",
    "exceptions",
    "models",
    "numerics",
    "BlockReader",
    "Settings",
    "Core",
    "MultiRotor",
    "PhaseSpaceTheory",
    "RigidRotor",
    "Rotd",
    "new_core",
    "new_rotor",
    "new_species",
    "new_tunnel",
    "Bimolecular",
    "ModelRegistry",
    "Well",
    "load_model",
    "FreeRotor",
    "HinderedRotor",
    "InternalRotation",
    "Rotor",
    "Umbrella",
    "RRHO",
    "Arrhenius",
    "AtomicSpecies",
    "ReadSpecies",
    "Species",
    "UnionSpecies",
    "VarBarrier",
    "EckartTunnel",
    "HarmonicTunnel",
    "QuarticTunnel",
    "ReadTunnel",
    "Tunnel",
]
