"""Kinetics helpers and rate expressions.

Rate laws return a :class:`~simpkinetics.chemical.ChemicalScalar`, i.e. the
rate (mol/s) together with its derivatives with respect to the amounts of all
species. Concentration-like factors are taken either from the species
amounts (``basis="amount"``) or from their activities (``basis="activity"``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Protocol

import numpy as np

from simpkinetics.chemical import ChemicalScalar, ChemicalVector
from simpkinetics.constants import R_GAS
from simpkinetics.errors import ConfigurationError

if TYPE_CHECKING:
    from simpkinetics.system import ChemicalSystem

BASES = ("amount", "activity")


@dataclass(frozen=True)
class RateContext:
    """Everything a rate law may depend on."""

    temperature: float
    pressure: float
    amounts: np.ndarray
    activities: ChemicalVector
    system: ChemicalSystem

    def amount(self, species: str) -> ChemicalScalar:
        return ChemicalScalar.amount(self.amounts, self.system.index_species(species))

    def activity(self, species: str) -> ChemicalScalar:
        return self.activities.row(self.system.index_species(species))

    def factor(self, species: str, basis: str) -> ChemicalScalar:
        return self.amount(species) if basis == "amount" else self.activity(species)

    def constant(self, value: float) -> ChemicalScalar:
        return ChemicalScalar.constant(value, len(self.amounts))


class KineticsModel(Protocol):
    def rate(self, context: RateContext) -> ChemicalScalar:
        """Calculate the reaction rate and its sensitivities."""
        ...

    def species(self) -> set[str]:
        """Names of the species the rate depends on."""
        ...


def _check_basis(basis: str) -> None:
    if basis not in BASES:
        raise ConfigurationError(f"Unknown rate basis {basis!r}; expected one of {BASES}")


@dataclass(frozen=True)
class ArrheniusKinetics:
    pre_exponential: float
    activation_energy: float

    def rate_constant(self, temperature: float) -> float:
        return self.pre_exponential * np.exp(-self.activation_energy / (R_GAS * temperature))


@dataclass(frozen=True)
class PowerLawKinetics:
    """r = kf * prod(q_i^alpha_i) - kr * prod(q_j^beta_j)

    The reverse term is only present when ``reverse`` is given.
    """

    arrhenius: ArrheniusKinetics
    exponents: Mapping[str, float]
    reverse: ArrheniusKinetics | None = None
    reverse_exponents: Mapping[str, float] = field(default_factory=dict)
    basis: str = "amount"

    def __post_init__(self) -> None:
        _check_basis(self.basis)

    def _term(self, context: RateContext, k: float, exponents: Mapping[str, float]) -> ChemicalScalar:
        term = context.constant(k)
        for species, exponent in exponents.items():
            term = term * context.factor(species, self.basis) ** exponent
        return term

    def rate(self, context: RateContext) -> ChemicalScalar:
        k = self.arrhenius.rate_constant(context.temperature)
        rate = self._term(context, k, self.exponents)
        if self.reverse is not None:
            kr = self.reverse.rate_constant(context.temperature)
            rate = rate - self._term(context, kr, self.reverse_exponents)
        return rate

    def species(self) -> set[str]:
        return set(self.exponents) | set(self.reverse_exponents)


@dataclass(frozen=True)
class LHHWKinetics:
    """Langmuir-Hinshelwood / Eley-Rideal kinetics.

    Rate = (k * product(C_i^alpha_i)) / (1 + sum(K_j * C_j))^m
    """
    arrhenius: ArrheniusKinetics
    numerator_exponents: Mapping[str, float]
    adsorption_constants: Mapping[str, ArrheniusKinetics]
    denominator_exponent: float = 1.0
    basis: str = "amount"

    def __post_init__(self) -> None:
        _check_basis(self.basis)

    def rate(self, context: RateContext) -> ChemicalScalar:
        # Numerator
        numerator = context.constant(self.arrhenius.rate_constant(context.temperature))
        for species, exponent in self.numerator_exponents.items():
            numerator = numerator * context.factor(species, self.basis) ** exponent

        # Denominator
        denominator = context.constant(1.0)
        for species, ads_params in self.adsorption_constants.items():
            k_ads = ads_params.rate_constant(context.temperature)
            denominator = denominator + k_ads * context.factor(species, self.basis)

        return numerator / denominator**self.denominator_exponent

    def species(self) -> set[str]:
        return set(self.numerator_exponents) | set(self.adsorption_constants)
