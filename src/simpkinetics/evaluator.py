"""Right-hand side and Jacobian of the reduced kinetic ODE.

For ``u = [be; nk]`` the system reads ``du/dt = A r(n)``, where the full
composition ``n`` is obtained by keeping ``nk`` and equilibrating the
equilibrium species with the element abundances ``be``. The Jacobian is
assembled by the chain rule through the equilibrium solve:

    dr/du = [Re Be | Rk],    J = A dr/du

with ``Re``/``Rk`` the rate derivatives w.r.t. equilibrium/kinetic species
and ``Be = dne/dbe`` the sensitivity reported by the equilibrium solver.
"""

from __future__ import annotations

import numpy as np

from simpkinetics.assembler import KineticStateAssembler
from simpkinetics.chemical import ChemicalVector
from simpkinetics.constants import DEPLETION_THRESHOLD
from simpkinetics.ode import ODEResult
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState


class KineticEvaluator:
    """Evaluates the reduced ODE on an explicitly passed workspace state.

    The workspace state is mutated (kinetic amounts written, equilibrium
    species re-solved) on every call, so it must never be the caller's
    committed state.
    """

    def __init__(
        self,
        reactions: ReactionSystem,
        assembler: KineticStateAssembler,
        depletion_threshold: float = DEPLETION_THRESHOLD,
    ):
        self.reactions = reactions
        self.system = reactions.system
        self.assembler = assembler
        self.matrices = assembler.matrices
        self.depletion_threshold = depletion_threshold
        partition = self.matrices.partition
        self._ispecies_e = list(partition.equilibrium_species)
        self._ispecies_k = list(partition.kinetic_species)
        self.activities: ChemicalVector | None = None
        self.rates: ChemicalVector | None = None
        self._rates_at: np.ndarray | None = None

    def _equilibrate(self, state: ChemicalState, u: np.ndarray) -> ODEResult | None:
        if not np.all(np.isfinite(u)):
            return ODEResult.recoverable("non-finite entries in the reduced state")
        be, nk = self.assembler.split(u)
        self.assembler.write_kinetic(nk, state)
        self.assembler.equilibrium_solver.solve(state, be)
        return None

    def _update_rates(self, state: ChemicalState, u: np.ndarray) -> ChemicalVector:
        T, P, n = state.temperature, state.pressure, state.amounts
        self.activities = self.system.activities(T, P, n)
        self.rates = self.reactions.rates(T, P, n, self.activities)
        self._rates_at = np.array(u, dtype=float)
        return self.rates

    def function(self, state: ChemicalState, t: float, u: np.ndarray) -> ODEResult:
        failure = self._equilibrate(state, u)
        if failure is not None:
            return failure
        r = self._update_rates(state, u)

        dudt = self.matrices.A @ r.val

        # exhausted entries may not be depleted further
        exhausted = (np.abs(u) < self.depletion_threshold) & (dudt < 0.0)
        dudt[exhausted] = 0.0
        return ODEResult.success(dudt)

    def jacobian(self, state: ChemicalState, t: float, u: np.ndarray) -> ODEResult:
        failure = self._equilibrate(state, u)
        if failure is not None:
            return failure

        Be = self.assembler.equilibrium_solver.sensitivity(state)

        r = self.rates
        if r is None or self._rates_at is None or not np.array_equal(self._rates_at, u):
            r = self._update_rates(state, u)

        Re = r.ddn[:, self._ispecies_e]
        Rk = r.ddn[:, self._ispecies_k]
        R = np.hstack([Re @ Be, Rk])
        return ODEResult.success(self.matrices.A @ R)
