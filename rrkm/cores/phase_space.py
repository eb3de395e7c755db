from __future__ import annotations

import logging
import math
from typing import Any, Mapping

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsCore, StatesMode
from .core import Core

logger = logging.getLogger(__name__)


class PhaseSpaceTheory(Core):
    """Power-law number of states ``factor * E**power``."""

    kind = ModelsCore.PHASE_SPACE_THEORY

    def __init__(self, factor: float, power: float, mode: StatesMode, settings: Settings | None = None) -> None:
        super().__init__(mode, settings)
        if not factor > 0:
            raise InputError(f"PhaseSpaceTheory: states factor must be positive, got {factor}")
        if not power > 0:
            raise InputError(f"PhaseSpaceTheory: power must be positive, got {power}")
        self.factor = float(factor)
        self.power = float(power)
        logger.info("PhaseSpaceTheory: factor %g, power %g", factor, power)

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None, mode=None) -> "PhaseSpaceTheory":
        reader = BlockReader(block, "PhaseSpaceTheory core")
        factor = reader.number("States factor", positive=True)
        power = reader.number("Power", positive=True)
        mode = reader.mode("Mode", mode or StatesMode.DENSITY)
        reader.finish()
        return cls(factor, power, mode, settings)

    def ground(self) -> float:
        return 0.0

    def states(self, energy: float) -> float:
        if energy <= 0:
            return 0.0
        if self.mode is StatesMode.NUMBER:
            return self.factor * energy ** self.power
        return self.factor * self.power * energy ** (self.power - 1.0)

    def weight(self, temperature: float) -> float:
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        return self.factor * math.gamma(self.power + 1.0) * temperature ** self.power
