"""Chemical system: the catalog of species, elements and phases."""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from simpkinetics.chemical import ChemicalVector
from simpkinetics.constants import WATER_NAME
from simpkinetics.errors import ConfigurationError
from simpkinetics.models import CHARGE_ELEMENT, Species
from simpkinetics.thermo import (
    ActivityModel,
    IdealAqueousActivity,
    IdealGasActivity,
    IdealSolutionActivity,
    PureCondensedActivity,
    ThermoInterface,
)

CONDENSED_PHASES = ("solid", "mineral")


def default_activity_model(phase: str, species: Sequence[Species]) -> ActivityModel:
    if phase == "gas":
        return IdealGasActivity()
    if phase in CONDENSED_PHASES:
        return PureCondensedActivity()
    if phase == "aqueous":
        names = [s.name for s in species]
        if WATER_NAME not in names:
            raise ConfigurationError(f"Aqueous phase requires the solvent species {WATER_NAME!r}")
        return IdealAqueousActivity(names.index(WATER_NAME))
    return IdealSolutionActivity()


class ChemicalSystem:
    """Species, elements and phases of a chemical system.

    Elements are ordered by first appearance in the species list; the charge
    pseudo-element ``Z`` is always last and only present when some species is
    charged. Each phase is evaluated by its own activity model; phases without
    an explicit model get an ideal one based on their name.
    """

    def __init__(
        self,
        species: Sequence[Species],
        thermo: ThermoInterface | None = None,
        activity_models: Mapping[str, ActivityModel] | None = None,
    ):
        if not species:
            raise ConfigurationError("A chemical system needs at least one species")
        self.species: tuple[Species, ...] = tuple(species)
        self.thermo = thermo

        self._species_index: dict[str, int] = {}
        for i, s in enumerate(self.species):
            if s.name in self._species_index:
                raise ConfigurationError(f"Duplicate species name {s.name!r}")
            self._species_index[s.name] = i

        elements: list[str] = []
        for s in self.species:
            for element in s.elements:
                if element != CHARGE_ELEMENT and element not in elements:
                    elements.append(element)
        if any(s.charge != 0.0 for s in self.species):
            elements.append(CHARGE_ELEMENT)
        self.elements: tuple[str, ...] = tuple(elements)
        self._element_index = {e: i for i, e in enumerate(self.elements)}

        matrix = np.zeros((len(self.elements), len(self.species)))
        for j, s in enumerate(self.species):
            for element, coefficient in s.elements.items():
                if element in self._element_index:
                    matrix[self._element_index[element], j] = coefficient
        matrix.flags.writeable = False
        self.formula_matrix = matrix

        phases: dict[str, list[int]] = {}
        for i, s in enumerate(self.species):
            phases.setdefault(s.phase, []).append(i)
        self.phases: dict[str, tuple[int, ...]] = {p: tuple(idx) for p, idx in phases.items()}

        activity_models = dict(activity_models or {})
        unknown = set(activity_models) - set(self.phases)
        if unknown:
            raise ConfigurationError(f"Activity models given for unknown phases: {sorted(unknown)}")
        self.activity_models: dict[str, ActivityModel] = {}
        for phase, indices in self.phases.items():
            model = activity_models.get(phase)
            if model is None:
                model = default_activity_model(phase, [self.species[i] for i in indices])
            self.activity_models[phase] = model

    @property
    def num_species(self) -> int:
        return len(self.species)

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def species_names(self) -> list[str]:
        return [s.name for s in self.species]

    def index_species(self, name: str) -> int:
        try:
            return self._species_index[name]
        except KeyError:
            raise ConfigurationError(f"Unknown species {name!r}") from None

    def index_element(self, name: str) -> int:
        try:
            return self._element_index[name]
        except KeyError:
            raise ConfigurationError(f"Unknown element {name!r}") from None

    def indices_species(self, names: Sequence[str]) -> list[int]:
        return [self.index_species(name) for name in names]

    def indices_phase(self, phase: str) -> tuple[int, ...]:
        try:
            return self.phases[phase]
        except KeyError:
            raise ConfigurationError(f"Unknown phase {phase!r}") from None

    def phase_of(self, index: int) -> str:
        return self.species[index].phase

    def is_condensed(self, phase: str) -> bool:
        return isinstance(self.activity_models[phase], PureCondensedActivity)

    def element_amounts(self, amounts: np.ndarray) -> np.ndarray:
        return self.formula_matrix @ amounts

    def element_amounts_in_phase(self, amounts: np.ndarray, phase: str) -> np.ndarray:
        indices = list(self.indices_phase(phase))
        return self.formula_matrix[:, indices] @ amounts[indices]

    def activities(self, temperature: float, pressure: float, amounts: np.ndarray) -> ChemicalVector:
        """Activities of all species and their derivatives w.r.t. all amounts."""
        n = np.asarray(amounts, dtype=float)
        size = self.num_species
        val = np.zeros(size)
        ddn = np.zeros((size, size))
        for phase, indices in self.phases.items():
            idx = list(indices)
            result = self.activity_models[phase].activities(temperature, pressure, n[idx])
            val[idx] = result.val
            ddn[np.ix_(idx, idx)] = result.ddn
        return ChemicalVector(val, ddn)

    def standard_gibbs_energies(self, temperature: float, indices: Sequence[int]) -> np.ndarray:
        if self.thermo is None:
            raise ConfigurationError("The chemical system has no thermodynamic database")
        names = [self.species[i].name for i in indices]
        return self.thermo.standard_gibbs_energies(temperature, names)
