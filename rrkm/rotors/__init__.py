"""Internal rotation models."""
from __future__ import annotations

from .free_rotor import FreeRotor
from .hindered_rotor import HinderedRotor
from .internal_rotation import InternalRotation
from .rotor import Rotor
from .umbrella import Umbrella, cosine_moment

__all__ = ["FreeRotor", "HinderedRotor", "InternalRotation", "Rotor", "Umbrella", "cosine_moment"]
