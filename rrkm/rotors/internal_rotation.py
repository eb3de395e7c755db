from __future__ import annotations

from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Tuple

from ..config import BlockReader
from ..exceptions import InputError


@dataclass(frozen=True)
class InternalRotation:
    """
    Geometric definition of one internal rotation plus the expansion and
    sampling sizes a coupled-rotor model uses for it.
    """

    group: FrozenSet[int]
    axis: Tuple[int, int]
    symmetry: int = 1
    mass_fourier_size: int = 5
    potential_fourier_size: int = 11
    weight_sampling_size: int = 36
    quantum_size_min: int = 11
    quantum_size_max: int = 41

    def __post_init__(self) -> None:
        if not self.group:
            raise InputError("InternalRotation: the moving group is empty")
        if len(self.axis) != 2 or self.axis[0] == self.axis[1]:
            raise InputError(f"InternalRotation: axis needs two distinct atoms, got {self.axis}")
        if set(self.axis) <= set(self.group):
            raise InputError("InternalRotation: both axis atoms belong to the moving group")
        if self.symmetry < 1:
            raise InputError(f"InternalRotation: symmetry number must be positive, got {self.symmetry}")
        for name in ("mass_fourier_size", "potential_fourier_size", "weight_sampling_size", "quantum_size_min"):
            if getattr(self, name) < 1:
                raise InputError(f"InternalRotation: {name} must be positive")
        if self.quantum_size_max < self.quantum_size_min:
            raise InputError("InternalRotation: quantum size maximum is below the minimum")

    @classmethod
    def from_block(cls, block: Mapping[str, Any]) -> "InternalRotation":
        reader = BlockReader(block, "Internal rotation")
        group = reader.array("Group", dtype=int)
        axis = reader.array("Axis", dtype=int)
        if axis.shape != (2,):
            raise reader.error("'Axis' must hold two atom indices")
        kwargs = {"symmetry": reader.integer("Symmetry", 1, minimum=1)}
        for name in ("mass_fourier_size", "potential_fourier_size", "weight_sampling_size", "quantum_size_min", "quantum_size_max"):
            key = name.replace("_", " ").capitalize()
            if reader.has(key):
                kwargs[name] = reader.integer(key, minimum=1)
        reader.finish()
        return cls(frozenset(int(i) for i in group.ravel()), (int(axis[0]), int(axis[1])), **kwargs)

