from __future__ import annotations

import math
from typing import Any, Mapping

from ..config import BlockReader, Settings
from ..models import ModelsTunnel
from .tunnel import Tunnel


class HarmonicTunnel(Tunnel):
    """Parabolic barrier: action = -2*pi*E/omega."""

    kind = ModelsTunnel.HARMONIC

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "HarmonicTunnel":
        reader = BlockReader(block, "Harmonic tunnel")
        frequency, cutoff = cls._read_common(reader)
        reader.finish()
        return cls(frequency, cutoff, settings)

    def action(self, energy: float, der: int = 0) -> float:
        if der == 0:
            return -2.0 * math.pi * energy / self.frequency
        if der == 1:
            return -2.0 * math.pi / self.frequency
        raise ValueError(f"unsupported derivative order {der}")
