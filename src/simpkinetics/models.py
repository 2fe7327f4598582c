"""Data structures for species and reactions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from simpkinetics.errors import ConfigurationError

if TYPE_CHECKING:
    from simpkinetics.kinetics import KineticsModel

CHARGE_ELEMENT = "Z"

_TOKEN = re.compile(r"([A-Z][a-z]?|\(|\))(\d+\.?\d*)?")
_CHARGE = re.compile(r"([+-]+)(\d*)$")
_PHASE_SUFFIX = re.compile(r"\((aq|g|l|s|cr)\)$")


def parse_formula(formula: str) -> dict[str, float]:
    """Return the element composition of a chemical formula.

    Handles nested parentheses (``Ca(OH)2``), a trailing phase tag
    (``CO2(g)``) and a trailing charge (``H+``, ``Ca++``, ``SO4-2``). The
    charge is reported under the pseudo-element ``Z``.
    """
    text = _PHASE_SUFFIX.sub("", formula.strip())
    charge = 0.0
    match = _CHARGE.search(text)
    if match:
        signs, digits = match.group(1), match.group(2)
        if len(set(signs)) > 1 or (digits and len(signs) > 1):
            raise ConfigurationError(f"Cannot parse charge of formula {formula!r}")
        magnitude = float(digits) if digits else float(len(signs))
        charge = magnitude if signs[0] == "+" else -magnitude
        text = text[: match.start()]

    stack: list[dict[str, float]] = [{}]
    position = 0
    while position < len(text):
        token = _TOKEN.match(text, position)
        if token is None:
            raise ConfigurationError(f"Cannot parse formula {formula!r} at position {position}")
        symbol, count = token.group(1), token.group(2)
        multiplier = float(count) if count else 1.0
        if symbol == "(":
            stack.append({})
        elif symbol == ")":
            if len(stack) == 1:
                raise ConfigurationError(f"Unbalanced parentheses in formula {formula!r}")
            group = stack.pop()
            for element, amount in group.items():
                stack[-1][element] = stack[-1].get(element, 0.0) + amount * multiplier
        else:
            stack[-1][symbol] = stack[-1].get(symbol, 0.0) + multiplier
        position = token.end()
    if len(stack) != 1:
        raise ConfigurationError(f"Unbalanced parentheses in formula {formula!r}")

    elements = stack[0]
    if charge != 0.0:
        elements[CHARGE_ELEMENT] = charge
    return elements


@dataclass(frozen=True)
class Species:
    name: str
    formula: str
    phase: str = "gas"
    elements: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.elements:
            object.__setattr__(self, "elements", parse_formula(self.formula))

    @property
    def charge(self) -> float:
        return self.elements.get(CHARGE_ELEMENT, 0.0)


@dataclass(frozen=True)
class Reaction:
    name: str
    stoichiometry: Mapping[str, float]
    kinetics: KineticsModel | None = None
    reversible: bool = False

    @property
    def reactants(self) -> dict[str, float]:
        return {s: -nu for s, nu in self.stoichiometry.items() if nu < 0}

    @property
    def products(self) -> dict[str, float]:
        return {s: nu for s, nu in self.stoichiometry.items() if nu > 0}
