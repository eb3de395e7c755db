from __future__ import annotations

import logging
import math
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from ..config import BlockReader, Settings
from ..exceptions import InputError
from ..models import ModelsSpecies, StatesMode, TtsMethod
from ..numerics import LogLogSpline, laplace_weight
from ..tunnels import Tunnel
from .rrho import RRHO
from .species import Species

logger = logging.getLogger(__name__)

Blend = Callable[[np.ndarray, np.ndarray], np.ndarray]


def unified_blend(inner: np.ndarray, outer: np.ndarray) -> np.ndarray:
    """
    Unified statistical combination ``1/N = 1/N_inner + 1/N_outer - 1/N_max``
    where ``N_inner`` and ``N_max`` are the smallest and the largest inner
    counts at each energy.
    """
    lowest = inner.min(axis=0)
    highest = inner.max(axis=0)
    out = np.zeros_like(outer)
    positive = (lowest > 0) & (outer > 0)
    inverse = 1.0 / lowest[positive] + 1.0 / outer[positive] - 1.0 / highest[positive]
    out[positive] = 1.0 / inverse
    return out


class VarBarrier(Species):
    """
    Two transition state barrier: one or more inner (tight) transition
    states and one outer (loose) transition state, all counting the number
    of states.

    STATISTICAL keeps the smallest count at every grid energy, ties going to
    the lower index; DYNAMICAL combines the counts through ``blend``.
    """

    kind = ModelsSpecies.VAR_BARRIER

    def __init__(
        self,
        name: str,
        inner: Sequence[RRHO],
        outer: RRHO,
        method: TtsMethod = TtsMethod.STATISTICAL,
        tunnel: Tunnel | None = None,
        blend: Blend = unified_blend,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(name, StatesMode.NUMBER, settings)
        self.inner = list(inner)
        self.outer = outer
        if not self.inner:
            raise InputError(f"{name}: at least one inner transition state is required")
        for member in self.members:
            if member.mode is not StatesMode.NUMBER:
                raise InputError(f"{name}: transition state {member.name} must count the number of states")
        self.method = TtsMethod(method)
        self.tunnel = tunnel
        self.blend = blend
        self._real_ground = max(m.ground for m in self.members)
        self._ground = self._real_ground - (tunnel.cutoff if tunnel is not None else 0.0)
        self._set_states()
        logger.info(
            "VarBarrier %s: %d inner, method %s, ground %g",
            name, len(self.inner), self.method.name, self._ground,
        )

    @classmethod
    def from_block(
        cls,
        name: str,
        block: Mapping[str, Any],
        inner: Sequence[RRHO],
        outer: RRHO,
        tunnel: Tunnel | None = None,
        settings: Settings | None = None,
    ) -> "VarBarrier":
        reader = BlockReader(block, f"VarBarrier {name}")
        method = reader.text("Method", TtsMethod.STATISTICAL.value, choices=[m.value for m in TtsMethod])
        reader.finish()
        return cls(name, inner, outer, TtsMethod(method), tunnel, settings=settings)

    @property
    def members(self) -> list:
        return self.inner + [self.outer]

    def _counts(self, energies: np.ndarray) -> np.ndarray:
        return np.vstack([member.states_array(energies) for member in self.members])

    def _combine(self, counts: np.ndarray) -> np.ndarray:
        if self.method is TtsMethod.STATISTICAL:
            return counts.min(axis=0)
        return self.blend(counts[:-1], counts[-1])

    def _set_states(self) -> None:
        step = self.settings.energy_step
        shift = 0 if self.tunnel is None else int(math.ceil(self.tunnel.cutoff / step))
        size = int(self.settings.ceiling(self._real_ground) / step) + 1 + shift
        energies = step * np.arange(size)
        states = self._combine(self._counts(self._real_ground + energies))
        if self.tunnel is not None:
            self.tunnel.convolute(states, step)
        self._spline = LogLogSpline(
            energies, states, name=f"{self.name} states", monotone=True,
            extrapolation_factor=self.settings.extrapolation_factor,
        )

    def transition_state_index(self, energy: float) -> int:
        """Index of the rate limiting transition state at ``energy``; the outer one is last."""
        counts = self._counts(np.array([energy]))[:, 0]
        return int(np.argmin(counts))

    def shift_ground(self, energy: float) -> None:
        super().shift_ground(energy)
        for member in self.members:
            member.shift_ground(energy)

    def states(self, energy: float) -> float:
        relative = energy - self._ground
        if relative <= 0:
            return 0.0
        return self._spline(relative)

    def weight(self, temperature: float) -> float:
        return laplace_weight(self._spline, temperature, self.settings.therm_pow_max)

    def tunnel_weight(self, temperature: float) -> float:
        if self.tunnel is None:
            return 1.0
        return self.tunnel.weight(temperature)
