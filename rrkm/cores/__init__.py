"""Base state-count engines."""
from __future__ import annotations

from .core import Core
from .multi_rotor import MultiRotor
from .phase_space import PhaseSpaceTheory
from .rigid_rotor import RigidRotor
from .rotd import Rotd

__all__ = ["Core", "MultiRotor", "PhaseSpaceTheory", "RigidRotor", "Rotd"]
