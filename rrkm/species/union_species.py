from __future__ import annotations

import bisect
import logging
import math
from typing import Sequence

from ..config import Settings, check_mode
from ..exceptions import InputError
from ..models import ModelsSpecies, StatesMode
from .species import Species

logger = logging.getLogger(__name__)


class UnionSpecies(Species):
    """Several species counted together, e.g. conformers sharing one well."""

    kind = ModelsSpecies.UNION

    def __init__(self, name: str, members: Sequence[Species], settings: Settings | None = None) -> None:
        members = list(members)
        if not members:
            raise InputError(f"{name}: union of no species")
        super().__init__(name, members[0].mode, settings)
        if self.mode is StatesMode.NO_STATES:
            raise InputError(f"{name}: union members must count states")
        check_mode(name, self.mode, *(m.mode for m in members))
        self.members = members
        self._ground = min(m.ground for m in members)
        self._real_ground = min(m.real_ground for m in members)
        # oscillator index offsets of the members
        self._offsets = []
        total = 0
        for member in members:
            self._offsets.append(total)
            total += member.oscillator_size()
        self._oscillator_size = total
        logger.info("UnionSpecies %s: %d members, ground %g", name, len(members), self._ground)

    def shift_ground(self, energy: float) -> None:
        super().shift_ground(energy)
        for member in self.members:
            member.shift_ground(energy)

    def init(self, registry) -> None:
        for member in self.members:
            member.init(registry)

    def states(self, energy: float) -> float:
        return sum(member.states(energy) for member in self.members)

    def weight(self, temperature: float) -> float:
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        return sum(
            member.weight(temperature) * math.exp(-(member.ground - self._ground) / temperature)
            for member in self.members
        )

    def _locate(self, index: int) -> tuple[Species, int]:
        if not 0 <= index < self._oscillator_size:
            raise IndexError(f"{self.name}: oscillator index {index} out of range")
        # the last member at an offset is the one holding oscillators
        position = bisect.bisect_right(self._offsets, index) - 1
        return self.members[position], index - self._offsets[position]

    def oscillator_size(self) -> int:
        return self._oscillator_size

    def oscillator_frequency(self, index: int) -> float:
        member, local = self._locate(index)
        return member.oscillator_frequency(local)

    def infrared_intensity(self, energy: float, index: int) -> float:
        member, local = self._locate(index)
        return member.infrared_intensity(energy, local)
