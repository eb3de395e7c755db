"""Model document: wells, bimolecular products and barriers with connectivity.

``load_model`` reads a YAML document with the keys ``Settings``, ``Wells``,
``Bimolecular``, ``Barriers`` and ``Energy reference``, builds every species
through the factories, moves the energy reference and resolves cross
references. The registry itself is read-only afterwards.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from . import constants
from .config import BlockReader, Settings
from .exceptions import InputError, LogicError
from .factories import Factory, new_species
from .numerics import LogLogSpline
from .species import Species
from .yaml_loader import load_document

logger = logging.getLogger(__name__)


class Escape(ABC):
    """Energy dependent escape rate out of a well, 1/s."""

    @abstractmethod
    def rate(self, energy: float) -> float:
        ...

    def shift_ground(self, energy: float) -> None:
        pass


class ConstEscape(Escape):
    def __init__(self, rate: float) -> None:
        if not rate > 0:
            raise InputError(f"escape rate must be positive: {rate}")
        self._rate = float(rate)

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "ConstEscape":
        reader = BlockReader(block, "Constant escape")
        rate = reader.number("Rate", positive=True)
        reader.finish()
        return cls(rate)

    def rate(self, energy: float) -> float:
        return self._rate


class FitEscape(Escape):
    """Escape rate tabulated against energy above ``ground``."""

    def __init__(self, energies, rates, ground: float = 0.0, settings: Settings | None = None) -> None:
        settings = settings or Settings()
        self._ground = float(ground)
        self._spline = LogLogSpline(
            energies, rates, name="escape rate", extrapolation_factor=settings.extrapolation_factor
        )

    @classmethod
    def from_block(cls, block: Mapping[str, Any], settings: Settings | None = None) -> "FitEscape":
        reader = BlockReader(block, "Fit escape")
        table = reader.pairs("Table", energy_column=0)
        ground = reader.energy("Ground energy", 0.0)
        reader.finish()
        return cls(table[:, 0], table[:, 1], ground, settings)

    def rate(self, energy: float) -> float:
        relative = energy - self._ground
        if relative <= 0:
            return 0.0
        return self._spline(relative)

    def shift_ground(self, energy: float) -> None:
        self._ground += energy


ESCAPES = Factory("escape")
ESCAPES.register("Constant", ConstEscape.from_block)
ESCAPES.register("Fit", FitEscape.from_block)


def new_escape(block: Mapping[str, Any], settings: Settings | None = None) -> Escape:
    constructor, body = ESCAPES.split(block)
    return constructor(body, settings)


@dataclass
class Well:
    species: Species
    escape: Optional[Escape] = None

    @property
    def name(self) -> str:
        return self.species.name

    @property
    def ground(self) -> float:
        return self.species.ground

    def states(self, energy: float) -> float:
        return self.species.states(energy)

    def weight(self, temperature: float) -> float:
        return self.species.weight(temperature)

    def escape_rate(self, energy: float) -> float:
        return 0.0 if self.escape is None else self.escape.rate(energy)

    def oscillator_size(self) -> int:
        return self.species.oscillator_size()

    def oscillator_frequency(self, index: int) -> float:
        return self.species.oscillator_frequency(index)

    def shift_ground(self, energy: float) -> None:
        self.species.shift_ground(energy)
        if self.escape is not None:
            self.escape.shift_ground(energy)


def translational_factor(reduced_mass: float) -> float:
    """
    Relative translation partition function per unit volume divided by
    ``T**1.5``, in 1/cm^3, for ``reduced_mass`` in amu and ``T`` in 1/cm.
    """
    mass = reduced_mass * constants.K_CONST_AMU
    # (2 pi m k T / h^2)^{3/2} per m^3 with k T = h c T[1/cm], c in cm/s
    per_meter = (2.0 * math.pi * mass * constants.K_CONST_C / constants.K_CONST_H) ** 1.5
    return per_meter * 1.0e-6


@dataclass
class Bimolecular:
    """
    Pair of fragments at a common ground energy. A dummy product has no
    fragments and no weight.
    """

    name: str
    fragments: List[Species] = field(default_factory=list)
    ground_energy: float = 0.0
    weight_factor: float = 1.0
    dummy: bool = False

    def __post_init__(self) -> None:
        if not self.dummy and not self.fragments:
            raise InputError(f"{self.name}: bimolecular product without fragments")
        if not self.weight_factor > 0:
            raise InputError(f"{self.name}: weight factor must be positive: {self.weight_factor}")

    @property
    def ground(self) -> float:
        return self.ground_energy

    def shift_ground(self, energy: float) -> None:
        self.ground_energy += energy

    def weight(self, temperature: float) -> float:
        """Product of the fragment weights and the relative translation factor, 1/cm^3."""
        if self.dummy:
            raise LogicError(f"{self.name}: dummy bimolecular product has no weight")
        if temperature <= 0:
            raise ValueError(f"temperature must be positive: {temperature}")
        value = self.weight_factor * temperature ** 1.5
        for fragment in self.fragments:
            value *= fragment.weight(temperature)
        return value

    def fragment_name(self, index: int) -> str:
        return self.fragments[index].name

    def fragment_weight(self, index: int, temperature: float) -> float:
        return self.fragments[index].weight(temperature)


class ModelRegistry:
    """Indexed wells, bimolecular products and barriers of one model."""

    def __init__(
        self,
        wells: List[Well],
        bimolecular: List[Bimolecular],
        inner: List[Tuple[Species, Tuple[int, int]]],
        outer: List[Tuple[Species, Tuple[int, int]]],
        settings: Settings | None = None,
        reference: str | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._wells = list(wells)
        self._bimolecular = list(bimolecular)
        self._inner = [barrier for barrier, _ in inner]
        self._inner_connect = [pair for _, pair in inner]
        self._outer = [barrier for barrier, _ in outer]
        self._outer_connect = [pair for _, pair in outer]
        self._check_connectivity()

        self._energy_shift = 0.0
        if reference is not None:
            names = [b.name for b in self._bimolecular]
            if reference not in names:
                raise InputError(f"energy reference {reference!r} is not a bimolecular product, expected one of {names}")
            self._energy_shift = -self._bimolecular[names.index(reference)].ground
        self._index = self._name_index()
        self._apply_shift()
        for species in self._all_species():
            species.init(self)
        logger.info(
            "Model: %d wells, %d bimolecular, %d inner and %d outer barriers, energy shift %g",
            len(self._wells), len(self._bimolecular), len(self._inner), len(self._outer), self._energy_shift,
        )

    def _check_connectivity(self) -> None:
        for b, (w1, w2) in enumerate(self._inner_connect):
            if not (0 <= w1 < len(self._wells) and 0 <= w2 < len(self._wells)) or w1 == w2:
                raise InputError(f"inner barrier {b}: bad well pair ({w1}, {w2})")
        for b, (w, p) in enumerate(self._outer_connect):
            if not (0 <= w < len(self._wells) and 0 <= p < len(self._bimolecular)):
                raise InputError(f"outer barrier {b}: bad well/product pair ({w}, {p})")

    def _all_species(self) -> List[Species]:
        species = [w.species for w in self._wells]
        for product in self._bimolecular:
            species.extend(product.fragments)
        return species + self._inner + self._outer

    def _name_index(self) -> Dict[str, Species]:
        index: Dict[str, Species] = {}
        for species in self._all_species():
            if species.name in index:
                raise InputError(f"duplicate species name {species.name!r}")
            index[species.name] = species
        return index

    def _apply_shift(self) -> None:
        if self._energy_shift == 0.0:
            return
        for well in self._wells:
            well.shift_ground(self._energy_shift)
        for product in self._bimolecular:
            product.shift_ground(self._energy_shift)
            for fragment in product.fragments:
                fragment.shift_ground(self._energy_shift)
        for barrier in self._inner + self._outer:
            barrier.shift_ground(self._energy_shift)

    def species(self, name: str) -> Species:
        if name not in self._index:
            raise InputError(f"unknown species {name!r}")
        return self._index[name]

    def well_size(self) -> int:
        return len(self._wells)

    def bimolecular_size(self) -> int:
        return len(self._bimolecular)

    def inner_barrier_size(self) -> int:
        return len(self._inner)

    def outer_barrier_size(self) -> int:
        return len(self._outer)

    def well(self, index: int) -> Well:
        return self._wells[index]

    def bimolecular(self, index: int) -> Bimolecular:
        return self._bimolecular[index]

    def inner_barrier(self, index: int) -> Species:
        return self._inner[index]

    def outer_barrier(self, index: int) -> Species:
        return self._outer[index]

    def inner_connect(self, index: int) -> Tuple[int, int]:
        return self._inner_connect[index]

    def outer_connect(self, index: int) -> Tuple[int, int]:
        return self._outer_connect[index]

    def maximum_barrier_height(self) -> float:
        barriers = self._inner + self._outer
        if not barriers:
            raise LogicError("model without barriers")
        return max(b.real_ground for b in barriers)

    def energy_shift(self) -> float:
        return self._energy_shift

    def energy_limit(self) -> float:
        """Absolute energy ceiling in the shifted reference."""
        if self.settings.energy_limit is not None:
            return self.settings.energy_limit + self._energy_shift
        return self.maximum_barrier_height() + self.settings.interpolation_energy_max


def _named(block: Any, context: str) -> Tuple[str, dict]:
    if not isinstance(block, Mapping):
        raise InputError(f"{context}: entry must be a block")
    body = dict(block)
    name = body.pop("Name", None)
    if name is None:
        raise InputError(f"{context}: entry without 'Name'")
    return str(name), body


def _entries(document: Mapping[str, Any], key: str) -> list:
    value = document.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise InputError(f"{key!r} must be a list of blocks")
    return value


def _build_well(block: Any, settings: Settings) -> Well:
    name, body = _named(block, "Wells")
    if "Species" not in body:
        raise InputError(f"well {name}: missing 'Species' block")
    species = new_species(name, body.pop("Species"), settings)
    escape = new_escape(body.pop("Escape"), settings) if "Escape" in body else None
    if body:
        raise InputError(f"well {name}: unrecognized keywords: {', '.join(body)}")
    return Well(species, escape)


def _build_bimolecular(block: Any, settings: Settings) -> Bimolecular:
    name, body = _named(block, "Bimolecular")
    fragment_blocks = body.pop("Fragments", [])
    reader = BlockReader(body, f"bimolecular {name}")
    dummy = reader.flag("Dummy", False)
    ground = reader.energy("Ground energy", 0.0)
    reduced_mass = reader.number("Reduced mass", None, positive=True)
    reader.finish()
    fragments = []
    for i, fragment in enumerate(fragment_blocks):
        fragment_name, fragment_body = _named(fragment, f"bimolecular {name} fragment {i}")
        fragments.append(new_species(fragment_name, fragment_body, settings))
    if dummy and fragments:
        raise InputError(f"bimolecular {name}: dummy product with fragments")
    if not dummy and reduced_mass is None:
        raise InputError(f"bimolecular {name}: missing 'Reduced mass'")
    factor = translational_factor(reduced_mass) if reduced_mass is not None else 1.0
    return Bimolecular(name, fragments, ground, factor, dummy)


def _resolve(name: str, wells: Dict[str, int], products: Dict[str, int], barrier: str):
    if name in wells:
        return "well", wells[name]
    if name in products:
        return "product", products[name]
    raise InputError(f"barrier {barrier}: unknown end point {name!r}")


def build_model(document: Mapping[str, Any]) -> ModelRegistry:
    if not isinstance(document, Mapping):
        raise InputError("model document must be a mapping")
    known = {"Settings", "Wells", "Bimolecular", "Barriers", "Energy reference"}
    unknown = [str(key) for key in document if key not in known]
    if unknown:
        raise InputError(f"unrecognized model sections: {', '.join(unknown)}")
    settings = Settings.from_mapping(document.get("Settings"))

    wells = [_build_well(block, settings) for block in _entries(document, "Wells")]
    products = [_build_bimolecular(block, settings) for block in _entries(document, "Bimolecular")]
    well_index = {w.name: i for i, w in enumerate(wells)}
    product_index = {p.name: i for i, p in enumerate(products)}
    if len(well_index) != len(wells) or len(product_index) != len(products):
        raise InputError("duplicate well or bimolecular names")

    inner, outer = [], []
    for block in _entries(document, "Barriers"):
        name, body = _named(block, "Barriers")
        ends = body.pop("Connect", None)
        if not isinstance(ends, list) or len(ends) != 2:
            raise InputError(f"barrier {name}: 'Connect' must name two end points")
        if "Species" not in body:
            raise InputError(f"barrier {name}: missing 'Species' block")
        species = new_species(name, body.pop("Species"), settings)
        if body:
            raise InputError(f"barrier {name}: unrecognized keywords: {', '.join(body)}")
        (kind1, i1), (kind2, i2) = (_resolve(str(e), well_index, product_index, name) for e in ends)
        if kind1 == kind2 == "well":
            inner.append((species, (i1, i2)))
        elif kind1 == "well" and kind2 == "product":
            outer.append((species, (i1, i2)))
        elif kind1 == "product" and kind2 == "well":
            outer.append((species, (i2, i1)))
        else:
            raise InputError(f"barrier {name}: connects two bimolecular products")

    reference = document.get("Energy reference")
    return ModelRegistry(wells, products, inner, outer, settings, None if reference is None else str(reference))


def load_model(source) -> ModelRegistry:
    """Build a model registry from a YAML path or YAML text."""
    return build_model(load_document(source))
