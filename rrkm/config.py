"""Model configuration and keyword-block access.

``Settings`` replaces process-wide control flags: it is built once and passed
to every constructor. ``BlockReader`` wraps the mapping a surrounding parser
positioned at one model block; each variant pulls the keys it recognizes and
``finish()`` rejects whatever is left over.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import numpy as np

from . import constants
from .exceptions import InputError
from .models import StatesMode


@dataclass(frozen=True)
class Settings:
    """Global controls shared by all models of one calculation."""

    energy_limit: float | None = None  # absolute energy ceiling, 1/cm
    energy_step: float = 10.0  # energy grid step, 1/cm
    action_max: float = 100.0  # tunneling action beyond which transmission is zero
    use_quantum_weight: bool = False
    ham_size_min: int = 51
    ham_size_max: int = 401
    grid_size: int = 360
    therm_pow_max: float = 50.0
    extrapolation_factor: float = 10.0
    interpolation_energy_max: float = 30000.0  # ceiling above the ground when no energy limit is set
    vibrational_state_max: int = 2_000_000
    workers: int = 1

    def __post_init__(self) -> None:
        if self.energy_step <= 0:
            raise InputError(f"energy step must be positive: {self.energy_step}")
        if self.action_max <= 0:
            raise InputError(f"maximal action must be positive: {self.action_max}")
        if self.ham_size_min < 1 or self.ham_size_max < self.ham_size_min:
            raise InputError(f"inconsistent Hamiltonian size range: [{self.ham_size_min}, {self.ham_size_max}]")
        if self.grid_size < 4:
            raise InputError(f"angular grid size too small: {self.grid_size}")
        if self.therm_pow_max <= 1:
            raise InputError(f"thermal exponent maximum must exceed 1: {self.therm_pow_max}")
        if self.extrapolation_factor <= 1:
            raise InputError(f"extrapolation factor must exceed 1: {self.extrapolation_factor}")
        if self.interpolation_energy_max <= self.energy_step:
            raise InputError(f"interpolation energy maximum must exceed the energy step: {self.interpolation_energy_max}")
        if self.workers < 1:
            raise InputError(f"number of workers must be positive: {self.workers}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Settings":
        if not data:
            return cls()
        reader = BlockReader(data, "Settings")
        kwargs: dict[str, Any] = {}
        if reader.has("Energy limit"):
            kwargs["energy_limit"] = reader.energy("Energy limit")
        if reader.has("Energy step"):
            kwargs["energy_step"] = reader.energy("Energy step", positive=True)
        if reader.has("Action max"):
            kwargs["action_max"] = reader.number("Action max", positive=True)
        if reader.has("Interpolation energy max"):
            kwargs["interpolation_energy_max"] = reader.energy("Interpolation energy max", positive=True)
        if reader.has("Quantum weight"):
            kwargs["use_quantum_weight"] = reader.flag("Quantum weight")
        for name in ("ham_size_min", "ham_size_max", "grid_size", "vibrational_state_max", "workers"):
            key = name.replace("_", " ").capitalize()
            if reader.has(key):
                kwargs[name] = reader.integer(key, minimum=1)
        for name in ("therm_pow_max", "extrapolation_factor"):
            key = name.replace("_", " ").capitalize()
            if reader.has(key):
                kwargs[name] = reader.number(key, positive=True)
        reader.finish()
        return cls(**kwargs)

    def ceiling(self, ground: float = 0.0) -> float:
        """Interpolation ceiling relative to ``ground``."""
        if self.energy_limit is None:
            return self.interpolation_energy_max
        return max(self.energy_limit - ground, 10.0 * self.energy_step)


def _split_key(key: str) -> tuple[str, str | None]:
    name, sep, unit = str(key).partition(",")
    return name.strip(), (unit.strip() if sep else None)


_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


class BlockReader:
    """Cursor over a keyword block with unit-aware, validated getters."""

    def __init__(self, block: Mapping[str, Any], context: str) -> None:
        if not isinstance(block, Mapping):
            raise InputError(f"{context}: block must be a mapping, got {type(block).__name__}")
        self.context = context
        self._entries: dict[str, tuple[str, str | None, Any]] = {}
        for key, value in block.items():
            name, unit = _split_key(key)
            if name in self._entries:
                raise InputError(f"{context}: duplicate keyword {name!r}")
            self._entries[name] = (key, unit, value)
        self._used: set[str] = set()

    def error(self, message: str) -> InputError:
        return InputError(f"{self.context}: {message}")

    def has(self, name: str) -> bool:
        return name in self._entries

    def raw(self, name: str, default: Any = ..., *, unit_allowed: bool = False) -> Any:
        if name not in self._entries:
            if default is ...:
                raise self.error(f"missing keyword {name!r}")
            return default
        self._used.add(name)
        key, unit, value = self._entries[name]
        if unit is not None and not unit_allowed:
            raise self.error(f"keyword {key!r} does not take a unit")
        return value

    def unit(self, name: str) -> str | None:
        return self._entries[name][1] if name in self._entries else None

    def scale(self, name: str) -> float:
        unit = self.unit(name)
        if unit is None:
            return 1.0
        if unit not in constants.ENERGY_UNITS:
            raise self.error(f"unknown energy unit {unit!r} for {name!r}")
        return constants.ENERGY_UNITS[unit]

    @staticmethod
    def _check(value: float, positive: bool, nonnegative: bool) -> bool:
        if positive and not value > 0:
            return False
        if nonnegative and not value >= 0:
            return False
        return True

    def number(self, name: str, default: Any = ..., *, positive: bool = False, nonnegative: bool = False) -> float:
        value = self.raw(name, default)
        if value is default and default is not ...:
            return default
        try:
            value = float(value)
        except (TypeError, ValueError) as exc:
            raise self.error(f"{name!r} must be a number, got {value!r}") from exc
        if not np.isfinite(value) or not self._check(value, positive, nonnegative):
            raise self.error(f"{name!r} out of range: {value}")
        return value

    def integer(self, name: str, default: Any = ..., *, minimum: int | None = None) -> int:
        value = self.raw(name, default)
        if value is default and default is not ...:
            return default
        try:
            integral = not isinstance(value, bool) and float(value).is_integer()
        except (TypeError, ValueError):
            integral = False
        if not integral:
            raise self.error(f"{name!r} must be an integer, got {value!r}")
        value = int(value)
        if minimum is not None and value < minimum:
            raise self.error(f"{name!r} must be at least {minimum}, got {value}")
        return value

    def energy(self, name: str, default: Any = ..., *, positive: bool = False, nonnegative: bool = False) -> float:
        if name not in self._entries:
            if default is ...:
                raise self.error(f"missing keyword {name!r}")
            return default
        scale = self.scale(name)
        self._used.add(name)
        raw = self._entries[name][2]
        try:
            value = float(raw) * scale
        except (TypeError, ValueError) as exc:
            raise self.error(f"{name!r} must be a number, got {raw!r}") from exc
        if not np.isfinite(value) or not self._check(value, positive, nonnegative):
            raise self.error(f"{name!r} out of range: {value}")
        return value

    def energies(self, name: str, default: Any = ..., *, positive: bool = False) -> np.ndarray:
        """Array of energies, any shape; converted to 1/cm."""
        if name not in self._entries:
            if default is ...:
                raise self.error(f"missing keyword {name!r}")
            return default
        scale = self.scale(name)
        self._used.add(name)
        try:
            values = np.asarray(self._entries[name][2], dtype=float) * scale
        except (TypeError, ValueError) as exc:
            raise self.error(f"{name!r} must be numeric") from exc
        if not np.all(np.isfinite(values)):
            raise self.error(f"{name!r} contains non-finite values")
        if positive and np.any(values <= 0):
            raise self.error(f"{name!r} must be positive: {values.tolist()}")
        return values

    def pairs(self, name: str, default: Any = ..., *, energy_column: int | None = 1, width: int = 2) -> np.ndarray:
        """Rows of ``width`` numbers; only ``energy_column`` carries the keyword's energy unit."""
        if name not in self._entries:
            if default is ...:
                raise self.error(f"missing keyword {name!r}")
            return default
        if energy_column is None and self.unit(name) is not None:
            raise self.error(f"keyword {name!r} does not take a unit")
        scale = self.scale(name) if energy_column is not None else 1.0
        self._used.add(name)
        try:
            values = np.array(self._entries[name][2], dtype=float, ndmin=2)
        except (TypeError, ValueError) as exc:
            raise self.error(f"{name!r} must be a list of numeric pairs") from exc
        if values.ndim != 2 or values.shape[1] != width or not np.all(np.isfinite(values)):
            raise self.error(f"{name!r} must be a list of rows of {width} numbers")
        if energy_column is not None:
            values[:, energy_column] *= scale
        return values

    def rows(self, name: str, default: Any = ...) -> list[np.ndarray]:
        """Ragged list of energy rows, e.g. a lower triangular matrix."""
        if name not in self._entries:
            if default is ...:
                raise self.error(f"missing keyword {name!r}")
            return default
        scale = self.scale(name)
        self._used.add(name)
        value = self._entries[name][2]
        if not isinstance(value, (list, tuple)):
            raise self.error(f"{name!r} must be a list of rows")
        try:
            return [np.atleast_1d(np.asarray(row, dtype=float)) * scale for row in value]
        except (TypeError, ValueError) as exc:
            raise self.error(f"{name!r} must be numeric") from exc

    def array(self, name: str, default: Any = ..., *, dtype=float) -> np.ndarray:
        value = self.raw(name, default)
        if value is default and default is not ...:
            return default
        try:
            return np.asarray(value, dtype=dtype)
        except (TypeError, ValueError) as exc:
            raise self.error(f"{name!r} must be numeric") from exc

    def flag(self, name: str, default: Any = ...) -> bool:
        value = self.raw(name, default)
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise self.error(f"{name!r} must be a boolean, got {value!r}")

    def text(self, name: str, default: Any = ..., *, choices: Iterable[str] | None = None) -> str:
        value = self.raw(name, default)
        if value is None:
            raise self.error(f"{name!r} must not be empty")
        value = str(value)
        if choices is not None:
            options = list(choices)
            if value not in options:
                raise self.error(f"{name!r} must be one of {options}, got {value!r}")
        return value

    def blocks(self, name: str, default: Any = ...) -> Sequence[Mapping[str, Any]]:
        value = self.raw(name, default)
        if value is default and default is not ...:
            return default
        if isinstance(value, Mapping):
            value = [value]
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, Mapping) for v in value):
            raise self.error(f"{name!r} must be a list of blocks")
        return list(value)

    def mode(self, name: str = "Mode", default: Any = ...) -> StatesMode:
        value = self.raw(name, default)
        try:
            return StatesMode.parse(value)
        except ValueError as exc:
            raise self.error(str(exc)) from exc

    def finish(self) -> None:
        unused = [self._entries[name][0] for name in self._entries if name not in self._used]
        if unused:
            raise self.error(f"unrecognized keywords: {', '.join(map(str, unused))}")


def check_mode(context: str, mode: StatesMode, *others: StatesMode) -> None:
    """Raise if the sub-object modes differ from the aggregate mode."""
    for other in others:
        if other is not mode:
            raise InputError(f"{context}: mode mismatch, {mode.name} aggregate with {other.name} component")
