"""Classification of species into kinetic and equilibrium subsets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from simpkinetics.errors import ConfigurationError, PartitionError
from simpkinetics.system import ChemicalSystem

_SECTION_SPLIT = re.compile(r"[;\n]")
_SECTION = re.compile(r"^\s*(kinetic|equilibrium)\s*[:=]?\s*(.*)$", re.IGNORECASE)


def _readonly(matrix: np.ndarray) -> np.ndarray:
    matrix = np.ascontiguousarray(matrix, dtype=float)
    matrix.flags.writeable = False
    return matrix


@dataclass(frozen=True)
class Partition:
    """Disjoint, exhaustive split of the species of a system.

    Index tuples are sorted ascending. An element is an equilibrium element
    when some equilibrium species contains it; the remaining elements are
    kinetic elements.
    """

    system: ChemicalSystem
    equilibrium_species: tuple[int, ...]
    kinetic_species: tuple[int, ...]
    equilibrium_elements: tuple[int, ...]
    kinetic_elements: tuple[int, ...]

    @classmethod
    def from_indices(
        cls,
        system: ChemicalSystem,
        equilibrium: Sequence[int],
        kinetic: Sequence[int],
    ) -> Partition:
        equilibrium = [int(i) for i in equilibrium]
        kinetic = [int(i) for i in kinetic]
        everything = equilibrium + kinetic
        num_species = system.num_species
        if any(i < 0 or i >= num_species for i in everything):
            raise PartitionError(f"Species index out of range for a system of {num_species} species")
        if len(set(everything)) != len(everything):
            overlap = sorted({system.species[i].name for i in everything if everything.count(i) > 1})
            raise PartitionError(f"Species listed more than once in the partition: {overlap}")
        if len(everything) != num_species:
            missing = sorted(set(range(num_species)) - set(everything))
            names = [system.species[i].name for i in missing]
            raise PartitionError(f"Species not assigned to any partition subset: {names}")

        formula = system.formula_matrix
        ielements_e = [
            j for j in range(system.num_elements) if np.any(formula[j, equilibrium] != 0.0)
        ]
        ielements_k = [j for j in range(system.num_elements) if j not in ielements_e]
        return cls(
            system=system,
            equilibrium_species=tuple(sorted(equilibrium)),
            kinetic_species=tuple(sorted(kinetic)),
            equilibrium_elements=tuple(ielements_e),
            kinetic_elements=tuple(ielements_k),
        )

    @classmethod
    def all_equilibrium(cls, system: ChemicalSystem) -> Partition:
        return cls.from_indices(system, range(system.num_species), [])

    @classmethod
    def from_kinetic_species(cls, system: ChemicalSystem, names: Sequence[str]) -> Partition:
        try:
            kinetic = system.indices_species(names)
        except ConfigurationError as error:
            raise PartitionError(str(error)) from None
        equilibrium = [i for i in range(system.num_species) if i not in kinetic]
        return cls.from_indices(system, equilibrium, kinetic)

    @classmethod
    def from_string(cls, system: ChemicalSystem, text: str) -> Partition:
        """Parse e.g. ``"kinetic = Calcite Dolomite"`` or ``"kinetic: A; equilibrium: B C"``.

        Species missing from the text go to the subset that was not listed;
        with both subsets listed every species must appear.
        """
        listed: dict[str, list[str]] = {}
        for section in _SECTION_SPLIT.split(text):
            if not section.strip():
                continue
            match = _SECTION.match(section)
            if match is None:
                raise PartitionError(f"Cannot parse partition section {section.strip()!r}")
            kind = match.group(1).lower()
            listed.setdefault(kind, []).extend(match.group(2).replace(",", " ").split())

        try:
            kinetic = system.indices_species(listed.get("kinetic", []))
            equilibrium = system.indices_species(listed.get("equilibrium", []))
        except ConfigurationError as error:
            raise PartitionError(str(error)) from None

        if "equilibrium" not in listed:
            equilibrium = [i for i in range(system.num_species) if i not in kinetic]
        elif "kinetic" not in listed:
            kinetic = [i for i in range(system.num_species) if i not in equilibrium]
        return cls.from_indices(system, equilibrium, kinetic)

    @property
    def num_equilibrium_species(self) -> int:
        return len(self.equilibrium_species)

    @property
    def num_kinetic_species(self) -> int:
        return len(self.kinetic_species)

    @property
    def num_equilibrium_elements(self) -> int:
        return len(self.equilibrium_elements)

    def formula_matrix_equilibrium(self) -> np.ndarray:
        """We: equilibrium elements x equilibrium species."""
        formula = self.system.formula_matrix
        return _readonly(formula[np.ix_(self.equilibrium_elements, self.equilibrium_species)])


@dataclass(frozen=True)
class KineticMatrices:
    """Matrices derived from a partition and a stoichiometric matrix.

    ``A = [We @ Se.T ; Sk.T]`` maps reaction rates to the time derivative of
    the reduced state ``u = [be; nk]``.
    """

    partition: Partition
    We: np.ndarray
    Se: np.ndarray
    Sk: np.ndarray
    A: np.ndarray

    @classmethod
    def build(cls, partition: Partition, stoichiometric_matrix: np.ndarray) -> KineticMatrices:
        S = np.asarray(stoichiometric_matrix, dtype=float)
        We = partition.formula_matrix_equilibrium()
        Se = _readonly(S[:, list(partition.equilibrium_species)])
        Sk = _readonly(S[:, list(partition.kinetic_species)])
        A = _readonly(np.vstack([We @ Se.T, Sk.T]))
        return cls(partition=partition, We=We, Se=Se, Sk=Sk, A=A)

    @property
    def Ee(self) -> int:
        return self.We.shape[0]

    @property
    def Nk(self) -> int:
        return self.Sk.shape[1]
