"""Ideal gas thermodynamics and ideal mixing activity models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from simpkinetics.chemical import ChemicalVector
from simpkinetics.constants import REFERENCE_PRESSURE, REFERENCE_TEMPERATURE
from simpkinetics.errors import ConfigurationError
from simpkinetics.thermo.base import ActivityModel, ThermoInterface, mole_fractions


@dataclass(frozen=True)
class SpeciesProperties:
    molecular_weight: float  # kg/mol
    heat_capacity: float  # J/mol/K (constant)
    heat_of_formation: float  # J/mol at 298.15 K
    entropy: float = 0.0  # J/mol/K at 298.15 K


class IdealGasThermo(ThermoInterface):
    """Standard properties with a constant heat capacity per species."""

    def __init__(self, properties: Mapping[str, SpeciesProperties]):
        self.properties = properties

    def _get(self, species: str) -> SpeciesProperties:
        try:
            return self.properties[species]
        except KeyError:
            raise ConfigurationError(f"No thermodynamic data for species {species!r}") from None

    def enthalpy(self, temperature: float, species: str) -> float:
        props = self._get(species)
        # H(T) = H_form + Cp * (T - T_ref)
        return props.heat_of_formation + props.heat_capacity * (temperature - REFERENCE_TEMPERATURE)

    def entropy(self, temperature: float, species: str) -> float:
        props = self._get(species)
        return props.entropy + props.heat_capacity * np.log(temperature / REFERENCE_TEMPERATURE)

    def standard_gibbs_energies(self, temperature: float, species: Sequence[str]) -> np.ndarray:
        return np.array(
            [self.enthalpy(temperature, s) - temperature * self.entropy(temperature, s) for s in species],
            dtype=float,
        )


class IdealGasActivity(ActivityModel):
    """a_i = x_i * P / P_ref"""

    def activities(self, temperature: float, pressure: float, amounts: np.ndarray) -> ChemicalVector:
        x = mole_fractions(amounts)
        factor = pressure / REFERENCE_PRESSURE
        return ChemicalVector(x.val * factor, x.ddn * factor)


class IdealSolutionActivity(ActivityModel):
    """a_i = x_i"""

    def activities(self, temperature: float, pressure: float, amounts: np.ndarray) -> ChemicalVector:
        return mole_fractions(amounts)


class PureCondensedActivity(ActivityModel):
    """Unit activity for pure minerals and other pure condensed phases."""

    def activities(self, temperature: float, pressure: float, amounts: np.ndarray) -> ChemicalVector:
        size = len(amounts)
        return ChemicalVector(np.ones(size), np.zeros((size, size)))
