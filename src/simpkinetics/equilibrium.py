"""Equilibrium solver capability and an ideal-mixture Gibbs energy minimizer.

The kinetic path only needs two operations from an equilibrium engine:
``solve(state, be)``, which sets the amounts of the equilibrium species for
the given element abundances, and ``sensitivity(state)``, which returns
``dn_e/db_e`` at the current equilibrium state. Any object with these
methods (plus ``set_partition``) can be injected.

:class:`IdealEquilibriumSolver` minimizes the Gibbs energy of ideal fluid
phases. With element potentials ``pi`` and phase totals ``N_p`` the amounts
are

    n_i = N_p * exp(W_i . pi - g_i / RT - c_i)

where ``c_i = ln(P / P_ref)`` for gases and 0 otherwise. A damped Newton
iteration on ``y = [pi, ln N_p]`` solves the element balances
``W n = b`` and the phase closures ``sum(n_p) = N_p``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from scipy import linalg

from simpkinetics.constants import R_GAS, REFERENCE_PRESSURE
from simpkinetics.errors import ConfigurationError, EquilibriumConvergenceError
from simpkinetics.options import EquilibriumOptions
from simpkinetics.partition import Partition
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem

logger = logging.getLogger(__name__)

_EXP_LIMIT = 700.0


@dataclass(frozen=True)
class EquilibriumResult:
    success: bool
    iterations: int
    residual: float


class EquilibriumSolver(Protocol):
    def set_partition(self, partition: Partition) -> None:
        ...

    def solve(self, state: ChemicalState, be: np.ndarray) -> EquilibriumResult:
        """Set the equilibrium species amounts in ``state`` for abundances ``be``."""
        ...

    def sensitivity(self, state: ChemicalState) -> np.ndarray:
        """dn_e/db_e at the equilibrium state, shape (Ne, Ee)."""
        ...


@dataclass(frozen=True)
class _Layout:
    """Active elements, species and phases of one equilibrium problem."""

    elements: np.ndarray  # indices into the equilibrium elements
    species: np.ndarray  # indices into the equilibrium species
    W: np.ndarray  # active elements x active species
    P: np.ndarray  # active species x phases indicator


class IdealEquilibriumSolver:
    """Gibbs energy minimization for ideal fluid phases.

    Elements whose coefficients are all non-negative and whose abundance is
    not positive are treated as absent: every species containing them gets a
    zero amount. Pure condensed species cannot be equilibrium species here,
    since deciding whether such a phase exists is a phase-equilibrium problem.
    """

    def __init__(self, system: ChemicalSystem, options: EquilibriumOptions | None = None):
        self.system = system
        self.options = options or EquilibriumOptions()
        self._partition: Partition | None = None
        self._warm_start: dict[tuple[tuple[int, ...], tuple[int, ...]], np.ndarray] = {}

    def set_options(self, options: EquilibriumOptions) -> None:
        self.options = options

    def set_partition(self, partition: Partition) -> None:
        for i in partition.equilibrium_species:
            phase = self.system.phase_of(i)
            if self.system.is_condensed(phase):
                raise ConfigurationError(
                    f"Species {self.system.species[i].name!r} of condensed phase {phase!r} "
                    "cannot be an equilibrium species of an ideal fluid solver"
                )
        self._partition = partition
        self._We = partition.formula_matrix_equilibrium()
        self._phases = sorted({self.system.phase_of(i) for i in partition.equilibrium_species})
        self._phase_of = np.array(
            [self._phases.index(self.system.phase_of(i)) for i in partition.equilibrium_species],
            dtype=int,
        )
        self._warm_start.clear()

    def _require_partition(self) -> Partition:
        if self._partition is None:
            raise ConfigurationError("The equilibrium solver has no partition")
        return self._partition

    def _layout(self, be: np.ndarray) -> _Layout:
        We = self._We
        signed = np.any(We < 0.0, axis=1)
        present = (be > 0.0) | signed
        absent_species = np.any(We[~present] != 0.0, axis=0)
        species = np.flatnonzero(~absent_species)
        elements = np.flatnonzero(present & np.any(We[:, species] != 0.0, axis=1))
        W = We[np.ix_(elements, species)]
        phases = self._phase_of[species]
        P = np.zeros((len(species), len(self._phases)))
        P[np.arange(len(species)), phases] = 1.0
        P = P[:, np.any(P != 0.0, axis=0)]
        return _Layout(elements=elements, species=species, W=W, P=P)

    def _standard_potentials(self, state: ChemicalState, layout: _Layout) -> np.ndarray:
        partition = self._require_partition()
        indices = [partition.equilibrium_species[i] for i in layout.species]
        if self.system.thermo is None:
            if len(indices) > 1:
                raise ConfigurationError("The ideal equilibrium solver needs a thermodynamic database")
            g = np.zeros(len(indices))
        else:
            g = self.system.standard_gibbs_energies(state.temperature, indices) / (R_GAS * state.temperature)
        gas = np.array([self.system.phase_of(i) == "gas" for i in indices], dtype=bool)
        g = g + np.where(gas, np.log(state.pressure / REFERENCE_PRESSURE), 0.0)
        return g

    @staticmethod
    def _amounts(y: np.ndarray, layout: _Layout, g: np.ndarray) -> np.ndarray:
        num_elements = len(layout.elements)
        pi, ln_totals = y[:num_elements], y[num_elements:]
        exponent = layout.W.T @ pi + layout.P @ ln_totals - g
        return np.exp(np.clip(exponent, -_EXP_LIMIT, _EXP_LIMIT))

    @staticmethod
    def _jacobian(n: np.ndarray, layout: _Layout, totals_gap: np.ndarray | None = None) -> np.ndarray:
        W, P = layout.W, layout.P
        WD = W * n
        PD = P.T * n
        top = np.hstack([WD @ W.T, WD @ P])
        bottom = np.hstack([PD @ W.T, np.diag(totals_gap) if totals_gap is not None else np.zeros((P.shape[1],) * 2)])
        return np.vstack([top, bottom])

    def _initial_guess(self, layout: _Layout, g: np.ndarray, b: np.ndarray) -> np.ndarray:
        num_phases = layout.P.shape[1]
        species_per_phase = layout.P.sum(axis=0)
        total = max(float(np.sum(np.abs(b))), np.finfo(float).tiny)
        ln_totals = np.full(num_phases, np.log(total / num_phases))
        # start from equal mole fractions inside each phase
        target = g - np.log(layout.P @ species_per_phase)
        pi = np.linalg.lstsq(layout.W.T, target, rcond=None)[0]
        return np.concatenate([pi, ln_totals])

    def _residuals(self, y: np.ndarray, n: np.ndarray, layout: _Layout, b: np.ndarray) -> tuple[np.ndarray, float]:
        num_elements = len(layout.elements)
        totals = np.exp(y[num_elements:])
        balance = layout.W @ n - b
        closure = layout.P.T @ n - totals
        scale = max(float(np.max(np.abs(b))) if b.size else 0.0, np.finfo(float).tiny)
        error = max(
            float(np.max(np.abs(balance))) / scale if balance.size else 0.0,
            float(np.max(np.abs(closure) / totals)) if closure.size else 0.0,
        )
        return np.concatenate([balance, closure]), error

    def solve(self, state: ChemicalState, be: np.ndarray) -> EquilibriumResult:
        partition = self._require_partition()
        be = np.asarray(be, dtype=float)
        if be.shape != (partition.num_equilibrium_elements,):
            raise ConfigurationError(
                f"Expected {partition.num_equilibrium_elements} element abundances, got {be.size}"
            )
        if not np.all(np.isfinite(be)):
            raise EquilibriumConvergenceError("Non-finite element abundances", iterations=0)

        amounts = np.zeros(partition.num_equilibrium_species)
        layout = self._layout(be)
        if layout.species.size == 0:
            state.set_species_amounts(amounts, partition.equilibrium_species)
            return EquilibriumResult(success=True, iterations=0, residual=0.0)

        b = be[layout.elements]
        g = self._standard_potentials(state, layout)
        key = (tuple(layout.elements), tuple(layout.species))
        y = self._warm_start.get(key)
        if y is None:
            y = self._initial_guess(layout, g, b)
        y = y.copy()

        options = self.options
        n = self._amounts(y, layout, g)
        residual, error = self._residuals(y, n, layout, b)
        iterations = 0
        while error > options.tolerance:
            if iterations >= options.max_iterations:
                raise EquilibriumConvergenceError(
                    f"Equilibrium did not converge in {iterations} iterations (residual {error:.3e})",
                    iterations=iterations,
                    residual=error,
                )
            totals = np.exp(y[len(layout.elements):])
            jacobian = self._jacobian(n, layout, layout.P.T @ n - totals)
            step = linalg.lstsq(jacobian, -residual)[0]
            largest = float(np.max(np.abs(step)))
            if largest > options.max_step:
                step *= options.max_step / largest

            alpha = 1.0
            for _ in range(options.max_backtracks):
                trial = y + alpha * step
                n_trial = self._amounts(trial, layout, g)
                residual_trial, error_trial = self._residuals(trial, n_trial, layout, b)
                if error_trial < error or alpha <= options.min_damping:
                    break
                alpha *= 0.5
            y, n, residual, error = trial, n_trial, residual_trial, error_trial
            iterations += 1

        self._warm_start[key] = y
        amounts[layout.species] = n
        state.set_species_amounts(amounts, partition.equilibrium_species)
        logger.debug("Equilibrium converged in %d iterations (residual %.3e)", iterations, error)
        return EquilibriumResult(success=True, iterations=iterations, residual=error)

    def sensitivity(self, state: ChemicalState) -> np.ndarray:
        """dn_e/db_e from the implicit function theorem at the converged state.

        Differentiating ``W n(y) = b`` and ``P^T n(y) = N(y)`` with respect
        to ``b`` gives ``J dy/db = [I; 0]`` with the Newton matrix ``J`` at
        equilibrium, and ``dn/db = [D W^T, D P] dy/db`` with ``D = diag(n)``.
        """
        partition = self._require_partition()
        ne = state.amounts[list(partition.equilibrium_species)]
        be = self._We @ ne
        layout = self._layout(be)
        sensitivity = np.zeros((partition.num_equilibrium_species, partition.num_equilibrium_elements))
        if layout.species.size == 0 or layout.elements.size == 0:
            return sensitivity

        n = ne[layout.species]
        jacobian = self._jacobian(n, layout)
        num_elements = len(layout.elements)
        rhs = np.zeros((jacobian.shape[0], num_elements))
        rhs[:num_elements] = np.eye(num_elements)
        dy_db = linalg.lstsq(jacobian, rhs)[0]
        dn_dy = np.hstack([layout.W.T, layout.P]) * n[:, None]
        sensitivity[np.ix_(layout.species, layout.elements)] = dn_dy @ dy_db
        return sensitivity
