"""Species: named aggregates of cores, rotors, tunnels and electronic levels."""
from __future__ import annotations

from .arrhenius import Arrhenius
from .atomic_species import AtomicSpecies
from .graph import GraphExpansion
from .read_species import ReadSpecies
from .rrho import RRHO
from .species import Species
from .union_species import UnionSpecies
from .var_barrier import VarBarrier, unified_blend

__all__ = [
    "Arrhenius",
    "AtomicSpecies",
    "GraphExpansion",
    "RRHO",
    "ReadSpecies",
    "Species",
    "UnionSpecies",
    "VarBarrier",
    "unified_blend",
]
