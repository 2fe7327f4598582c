"""Conversion between full chemical states and reduced kinetic states."""

from __future__ import annotations

import numpy as np

from simpkinetics.equilibrium import EquilibriumSolver
from simpkinetics.partition import KineticMatrices
from simpkinetics.state import ChemicalState


class KineticStateAssembler:
    """Builds ``u = [be; nk]`` from a chemical state and commits it back.

    ``be`` are the abundances of the equilibrium elements in the equilibrium
    species and ``nk`` the amounts of the kinetic species.
    """

    def __init__(self, matrices: KineticMatrices, equilibrium_solver: EquilibriumSolver):
        self.matrices = matrices
        self.equilibrium_solver = equilibrium_solver
        partition = matrices.partition
        self._ispecies_e = list(partition.equilibrium_species)
        self._ispecies_k = list(partition.kinetic_species)

    @property
    def size(self) -> int:
        return self.matrices.Ee + self.matrices.Nk

    def split(self, u: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        Ee = self.matrices.Ee
        return u[:Ee], u[Ee:]

    def to_reduced(self, state: ChemicalState) -> np.ndarray:
        n = state.amounts
        ne = n[self._ispecies_e]
        nk = n[self._ispecies_k]
        return np.concatenate([self.matrices.We @ ne, nk])

    def write_kinetic(self, nk: np.ndarray, state: ChemicalState) -> None:
        state.set_species_amounts(nk, self._ispecies_k)

    def from_reduced(self, u: np.ndarray, state: ChemicalState) -> ChemicalState:
        """Write ``nk`` into ``state`` and equilibrate its equilibrium species with ``be``.

        The commit is all-or-nothing: if the equilibrium solve raises, the
        amounts of ``state`` are restored before the error propagates.
        """
        be, nk = self.split(np.asarray(u, dtype=float))
        previous = state.amounts.copy()
        try:
            self.write_kinetic(nk, state)
            self.equilibrium_solver.solve(state, be)
        except Exception:
            state.set_species_amounts(previous)
            raise
        return state
