"""Lookup of named scalar quantities of a chemical state.

Quantities are written as ``name[qualifier]...:unit``:

============  ============================================  =============
expression    meaning                                        default unit
============  ============================================  =============
t, time       time                                           s
T             temperature                                    K
P             pressure                                       Pa
n[X]          amount of species X                            mol
b[E]          amount of element E                            mol
b[E][phase]   amount of element E in a phase                 mol
m[X]          molality of species X (solvent ``H2O(l)``)     molal
r[R]          rate of reaction R                             mol/s
a[X]          activity of species X                          (none)
pH            -log10 of the activity of ``H+``               (none)
============  ============================================  =============
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

import numpy as np

from simpkinetics.chemical import ChemicalVector
from simpkinetics.constants import WATER_MOLAR_MASS, WATER_NAME
from simpkinetics.errors import ConfigurationError, QuantityError
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem
from simpkinetics.units import convert, dimension

_EXPRESSION = re.compile(r"^\s*(\w+)((?:\[[^\[\]]+\])*)\s*(?::\s*(\S+))?\s*$")
_QUALIFIER = re.compile(r"\[([^\[\]]+)\]")

# name -> (number of qualifiers allowed, base unit or None for dimensionless)
_QUANTITIES: dict[str, tuple[tuple[int, ...], str | None]] = {
    "t": ((0,), "s"),
    "time": ((0,), "s"),
    "T": ((0,), "K"),
    "P": ((0,), "Pa"),
    "n": ((1,), "mol"),
    "b": ((1, 2), "mol"),
    "m": ((1,), "molal"),
    "r": ((1,), "mol/s"),
    "a": ((1,), None),
    "pH": ((0,), None),
}


@dataclass(frozen=True)
class QuantitySpec:
    name: str
    qualifiers: tuple[str, ...]
    unit: str | None


def parse_quantity(expression: str) -> QuantitySpec:
    match = _EXPRESSION.match(expression)
    if match is None:
        raise QuantityError(f"Cannot parse quantity {expression!r}")
    name, qualifiers, unit = match.group(1), tuple(_QUALIFIER.findall(match.group(2))), match.group(3)
    if name not in _QUANTITIES:
        raise QuantityError(f"Unknown quantity {name!r} in {expression!r}")
    allowed, base = _QUANTITIES[name]
    if len(qualifiers) not in allowed:
        raise QuantityError(f"Quantity {name!r} takes {' or '.join(map(str, allowed))} qualifier(s): {expression!r}")
    if unit is not None:
        if base is None:
            raise QuantityError(f"Quantity {name!r} is dimensionless and takes no unit: {expression!r}")
        if dimension(unit) != dimension(base):
            raise QuantityError(f"Unit {unit!r} does not apply to quantity {name!r}")
    return QuantitySpec(name=name, qualifiers=qualifiers, unit=unit or base)


class ChemicalQuantity:
    """Evaluates quantity expressions against the last state given to :meth:`update`."""

    def __init__(self, system: ChemicalSystem, reactions: ReactionSystem | None = None):
        self.system = system
        self.reactions = reactions
        self.state: ChemicalState | None = None
        self.t = 0.0
        self._activities: ChemicalVector | None = None
        self._rates: ChemicalVector | None = None
        self._handlers: dict[str, Callable[[QuantitySpec], float]] = {
            "t": self._time,
            "time": self._time,
            "T": lambda spec: self._require_state().temperature,
            "P": lambda spec: self._require_state().pressure,
            "n": self._amount,
            "b": self._element,
            "m": self._molality,
            "r": self._rate,
            "a": self._activity,
            "pH": self._ph,
        }

    def update(self, state: ChemicalState, t: float) -> None:
        self.state = state
        self.t = t
        self._activities = None
        self._rates = None

    def check(self, expression: str) -> QuantitySpec:
        """Parse ``expression`` and verify that the names it refers to exist."""
        spec = parse_quantity(expression)
        try:
            if spec.name in ("n", "m", "a"):
                self.system.index_species(spec.qualifiers[0])
            elif spec.name == "b":
                self.system.index_element(spec.qualifiers[0])
                if len(spec.qualifiers) == 2:
                    self.system.indices_phase(spec.qualifiers[1])
            elif spec.name == "r":
                if self.reactions is None:
                    raise QuantityError(f"Reaction rates need a reaction system: {expression!r}")
                self.reactions.index_reaction(spec.qualifiers[0])
            elif spec.name == "pH":
                self.system.index_species("H+")
            if spec.name == "m":
                self.system.index_species(WATER_NAME)
        except QuantityError:
            raise
        except ConfigurationError as error:
            raise QuantityError(f"{error} in quantity {expression!r}") from None
        return spec

    def value(self, expression: str) -> float:
        spec = self.check(expression)
        return float(self._handlers[spec.name](spec))

    def _require_state(self) -> ChemicalState:
        if self.state is None:
            raise QuantityError("No chemical state has been given to the quantity evaluator")
        return self.state

    def _activities_now(self) -> ChemicalVector:
        if self._activities is None:
            state = self._require_state()
            self._activities = self.system.activities(state.temperature, state.pressure, state.amounts)
        return self._activities

    def _time(self, spec: QuantitySpec) -> float:
        return convert(self.t, "s", spec.unit)

    def _amount(self, spec: QuantitySpec) -> float:
        return self._require_state().species_amount(spec.qualifiers[0], spec.unit)

    def _element(self, spec: QuantitySpec) -> float:
        state = self._require_state()
        if len(spec.qualifiers) == 2:
            return state.element_amount_in_phase(spec.qualifiers[0], spec.qualifiers[1], spec.unit)
        return state.element_amount(spec.qualifiers[0], spec.unit)

    def _molality(self, spec: QuantitySpec) -> float:
        state = self._require_state()
        n_water = state.species_amount(WATER_NAME)
        if n_water <= 0.0:
            return 0.0
        molality = state.species_amount(spec.qualifiers[0]) / (n_water * WATER_MOLAR_MASS)
        return convert(molality, "molal", spec.unit)

    def _rate(self, spec: QuantitySpec) -> float:
        if self._rates is None:
            state = self._require_state()
            self._rates = self.reactions.rates(
                state.temperature, state.pressure, state.amounts, self._activities_now()
            )
        value = self._rates.val[self.reactions.index_reaction(spec.qualifiers[0])]
        return convert(float(value), "mol/s", spec.unit)

    def _activity(self, spec: QuantitySpec) -> float:
        return float(self._activities_now().val[self.system.index_species(spec.qualifiers[0])])

    def _ph(self, spec: QuantitySpec) -> float:
        activity = float(self._activities_now().val[self.system.index_species("H+")])
        if activity <= 0.0:
            return float("nan")
        return float(-np.log10(activity))
