"""Discriminant-to-constructor tables for every model family.

Blocks carry their variant in a ``Type`` key; the remaining keys go to the
variant's ``from_block``. Aggregates (``Core``, ``Rotors``, ``Tunnel``,
``Inner``/``Outer``, ``Members``) are built here before the species itself.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from .config import Settings
from .cores import Core, MultiRotor, PhaseSpaceTheory, RigidRotor, Rotd
from .exceptions import InputError, LogicError, UnopenedFileException
from .models import ModelsCore, ModelsRotor, ModelsSpecies, ModelsTunnel
from .rotors import FreeRotor, HinderedRotor, Rotor, Umbrella
from .species import RRHO, Arrhenius, AtomicSpecies, ReadSpecies, Species, UnionSpecies, VarBarrier
from .tunnels import EckartTunnel, HarmonicTunnel, QuarticTunnel, ReadTunnel, Tunnel

logger = logging.getLogger(__name__)


class Factory:
    """Named table of constructors for one model family."""

    def __init__(self, family: str) -> None:
        self.family = family
        self._constructors: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str, constructor: Callable[..., Any]) -> None:
        if not isinstance(name, str) or not name.strip():
            raise LogicError(f"{self.family} factory: discriminant must be a non-empty string, got {name!r}")
        if not callable(constructor):
            raise LogicError(f"{self.family} factory: constructor for {name!r} is not callable")
        if name in self._constructors:
            raise LogicError(f"{self.family} factory: {name!r} already registered")
        self._constructors[name] = constructor

    def names(self) -> list[str]:
        return sorted(self._constructors)

    def __contains__(self, name: str) -> bool:
        return name in self._constructors

    def split(self, block: Mapping[str, Any]) -> tuple[Callable[..., Any], dict]:
        if not isinstance(block, Mapping):
            raise InputError(f"{self.family} block must be a mapping, got {type(block).__name__}")
        body = dict(block)
        kind = body.pop("Type", None)
        if kind is None:
            raise InputError(f"{self.family} block without 'Type', expected one of {self.names()}")
        if kind not in self._constructors:
            raise InputError(f"unknown {self.family} type {kind!r}, expected one of {self.names()}")
        return self._constructors[kind], body


def read_stream(body: dict) -> str | None:
    """Pop a ``File`` key and return the column stream it names."""
    path = body.pop("File", None)
    if path is None:
        return None
    path = Path(path)
    if not path.exists():
        raise UnopenedFileException(f"Could not open table file {path}")
    return path.read_text()


TUNNELS = Factory("tunnel")
ROTORS = Factory("rotor")
CORES = Factory("core")
SPECIES = Factory("species")


def new_tunnel(block: Mapping[str, Any], settings: Settings | None = None) -> Tunnel:
    constructor, body = TUNNELS.split(block)
    return constructor(body, settings)


def new_rotor(block: Mapping[str, Any], settings: Settings | None = None) -> Rotor:
    constructor, body = ROTORS.split(block)
    return constructor(body, settings)


def new_core(block: Mapping[str, Any], settings: Settings | None = None) -> Core:
    constructor, body = CORES.split(block)
    return constructor(body, settings)


def new_species(name: str, block: Mapping[str, Any], settings: Settings | None = None) -> Species:
    constructor, body = SPECIES.split(block)
    result = constructor(name, body, settings)
    logger.debug("built species %r", result)
    return result


def _list(value: Any, context: str) -> list:
    if isinstance(value, Mapping):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise InputError(f"{context} must be a list of blocks")
    return list(value)


def _read_tunnel(body, settings):
    return ReadTunnel.from_block(body, settings, read_stream(body))


def _rotd(body, settings):
    return Rotd.from_block(body, settings, stream=read_stream(body))


def _optional_tunnel(body: dict, settings):
    block = body.pop("Tunnel", None)
    return None if block is None else new_tunnel(block, settings)


def _rrho(name, body, settings):
    if "Core" not in body:
        raise InputError(f"RRHO {name}: missing 'Core' block")
    core = new_core(body.pop("Core"), settings)
    rotor_list = [new_rotor(b, settings) for b in _list(body.pop("Rotors", []), f"RRHO {name}: 'Rotors'")]
    tunnel = _optional_tunnel(body, settings)
    return RRHO.from_block(name, body, core, rotor_list, tunnel, settings)


def _transition_state(name, block, settings) -> RRHO:
    result = new_species(name, block, settings)
    if not isinstance(result, RRHO):
        raise InputError(f"{name}: transition states of a variational barrier must be RRHO")
    return result


def _var_barrier(name, body, settings):
    inner_blocks = _list(body.pop("Inner", []), f"VarBarrier {name}: 'Inner'")
    if "Outer" not in body:
        raise InputError(f"VarBarrier {name}: missing 'Outer' block")
    inner = [_transition_state(f"{name}:inner{i}", b, settings) for i, b in enumerate(inner_blocks)]
    outer = _transition_state(f"{name}:outer", body.pop("Outer"), settings)
    tunnel = _optional_tunnel(body, settings)
    return VarBarrier.from_block(name, body, inner, outer, tunnel, settings)


def _union(name, body, settings):
    members = []
    for i, block in enumerate(_list(body.pop("Members", []), f"Union {name}: 'Members'")):
        block = dict(block)
        members.append(new_species(str(block.pop("Name", f"{name}:{i}")), block, settings))
    if body:
        raise InputError(f"Union {name}: unrecognized keywords: {', '.join(body)}")
    return UnionSpecies(name, members, settings)


def _read_species(name, body, settings):
    return ReadSpecies.from_block(name, body, settings, read_stream(body))


TUNNELS.register(ModelsTunnel.HARMONIC.value, HarmonicTunnel.from_block)
TUNNELS.register(ModelsTunnel.ECKART.value, EckartTunnel.from_block)
TUNNELS.register(ModelsTunnel.QUARTIC.value, QuarticTunnel.from_block)
TUNNELS.register(ModelsTunnel.READ.value, _read_tunnel)

ROTORS.register(ModelsRotor.FREE.value, FreeRotor.from_block)
ROTORS.register(ModelsRotor.HINDERED.value, HinderedRotor.from_block)
ROTORS.register(ModelsRotor.UMBRELLA.value, Umbrella.from_block)

CORES.register(ModelsCore.RIGID_ROTOR.value, RigidRotor.from_block)
CORES.register(ModelsCore.PHASE_SPACE_THEORY.value, PhaseSpaceTheory.from_block)
CORES.register(ModelsCore.ROTD.value, _rotd)
CORES.register(ModelsCore.MULTI_ROTOR.value, MultiRotor.from_block)

SPECIES.register(ModelsSpecies.RRHO.value, _rrho)
SPECIES.register(ModelsSpecies.READ.value, _read_species)
SPECIES.register(ModelsSpecies.UNION.value, _union)
SPECIES.register(ModelsSpecies.VAR_BARRIER.value, _var_barrier)
SPECIES.register(ModelsSpecies.ATOM.value, AtomicSpecies.from_block)
SPECIES.register(ModelsSpecies.ARRHENIUS.value, Arrhenius.from_block)
