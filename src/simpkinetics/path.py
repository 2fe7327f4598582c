"""Kinetic path: time integration of kinetically controlled reactions.

Species are split into kinetic species, integrated in time with their rate
laws, and equilibrium species, re-equilibrated at every evaluation for the
current abundances of their elements. The integrator only sees the reduced
state ``u = [be; nk]``; full chemical states are reconstructed from it by an
equilibrium solve.

A path moves through ``UNCONFIGURED -> INITIALIZED -> STEPPING -> COMPLETED``.
:meth:`KineticPath.initialize` (also called by :meth:`KineticPath.solve`)
primes the integrator from a chemical state, :meth:`KineticPath.step`
advances by one adaptive step and :meth:`KineticPath.solve` integrates over a
time interval. The caller's state is only written after an accepted step; if a
step fails the state is left at the last committed point and the error raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from simpkinetics.assembler import KineticStateAssembler
from simpkinetics.equilibrium import EquilibriumSolver, IdealEquilibriumSolver
from simpkinetics.errors import IntegrationError, IntegrationInProgressError, PartitionError, PathStateError
from simpkinetics.evaluator import KineticEvaluator
from simpkinetics.ode import ODEResult, ODESolver
from simpkinetics.options import KineticOptions
from simpkinetics.output import ChemicalOutput
from simpkinetics.partition import KineticMatrices, Partition
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState

logger = logging.getLogger(__name__)


class PathStatus(Enum):
    UNCONFIGURED = "unconfigured"
    INITIALIZED = "initialized"
    STEPPING = "stepping"
    COMPLETED = "completed"


@dataclass(frozen=True)
class _PartitionBundle:
    """Everything derived from one partition, swapped in a single assignment."""

    partition: Partition
    matrices: KineticMatrices
    assembler: KineticStateAssembler
    evaluator: KineticEvaluator


class KineticPath:
    def __init__(
        self,
        reactions: ReactionSystem,
        options: KineticOptions | None = None,
        equilibrium_solver: EquilibriumSolver | None = None,
        output: ChemicalOutput | None = None,
        partition: Partition | str | None = None,
    ):
        self.reactions = reactions
        self.system = reactions.system
        self.options = options or KineticOptions()
        self.equilibrium_solver = equilibrium_solver or IdealEquilibriumSolver(
            self.system, self.options.equilibrium
        )
        self._custom_output = output is not None
        self.output = output
        self.status = PathStatus.UNCONFIGURED
        self.t = 0.0
        self.u = np.zeros(0)
        self.steps = 0
        self._solving = False
        self._ode: ODESolver | None = None
        self._workspace: ChemicalState | None = None
        self._committed: np.ndarray | None = None
        self._bundle: _PartitionBundle | None = None
        self.set_options(self.options)
        self.set_partition(partition if partition is not None else Partition.all_equilibrium(self.system))

    @property
    def partition(self) -> Partition:
        return self._bundle.partition

    @property
    def matrices(self) -> KineticMatrices:
        return self._bundle.matrices

    @property
    def assembler(self) -> KineticStateAssembler:
        return self._bundle.assembler

    @property
    def evaluator(self) -> KineticEvaluator:
        return self._bundle.evaluator

    def set_options(self, options: KineticOptions) -> None:
        self.options = options
        set_solver_options = getattr(self.equilibrium_solver, "set_options", None)
        if set_solver_options is not None:
            set_solver_options(options.equilibrium)
        if not self._custom_output:
            self.output = (
                ChemicalOutput(self.system, self.reactions, options.output) if options.output.active else None
            )
        if self._ode is not None:
            self._ode.set_options(options.ode)
        if self._bundle is not None:
            self._bundle.evaluator.depletion_threshold = options.depletion_threshold

    def set_partition(self, partition: Partition | str) -> None:
        """Use a new kinetic/equilibrium classification.

        Accepts a :class:`Partition` or its textual form (see
        :meth:`Partition.from_string`). The path must be initialized again
        afterwards.
        """
        if self._solving:
            raise IntegrationInProgressError("The partition cannot change while a kinetic path is being solved")
        if isinstance(partition, str):
            partition = Partition.from_string(self.system, partition)
        if partition.system is not self.system:
            raise PartitionError("The partition belongs to a different chemical system")

        matrices = KineticMatrices.build(partition, self.reactions.stoichiometric_matrix)
        self.equilibrium_solver.set_partition(partition)
        assembler = KineticStateAssembler(matrices, self.equilibrium_solver)
        evaluator = KineticEvaluator(self.reactions, assembler, self.options.depletion_threshold)
        self._bundle = _PartitionBundle(partition, matrices, assembler, evaluator)

        self._ode = None
        self.status = PathStatus.UNCONFIGURED
        logger.debug(
            "Partition set: %d equilibrium species, %d kinetic species, %d equilibrium elements",
            partition.num_equilibrium_species,
            partition.num_kinetic_species,
            partition.num_equilibrium_elements,
        )

    def _function(self, t: float, u: np.ndarray) -> ODEResult:
        return self._bundle.evaluator.function(self._workspace, t, u)

    def _jacobian(self, t: float, u: np.ndarray) -> ODEResult:
        return self._bundle.evaluator.jacobian(self._workspace, t, u)

    def initialize(self, state: ChemicalState, tstart: float) -> None:
        """Compute the reduced state of ``state`` and prime the integrator at ``tstart``."""
        bundle = self._bundle
        self._workspace = state.copy()
        self.u = bundle.assembler.to_reduced(state)
        self.t = float(tstart)
        self.steps = 0
        self._committed = self.u.copy()

        threshold = self.options.depletion_threshold
        if self.options.relative_depletion and self.u.size:
            threshold *= float(np.max(np.abs(self.u)))
        bundle.evaluator.depletion_threshold = threshold

        self._ode = ODESolver(self._function, self._jacobian, self.options.ode)
        self._ode.initialize(self.t, self.u)
        self.status = PathStatus.INITIALIZED

    def step(self, state: ChemicalState, t: float, tfinal: float | None = None) -> float:
        """Advance ``state`` by one adaptive step from ``t`` and return the new time.

        The step never goes beyond ``tfinal`` when given.
        """
        if self.status not in (PathStatus.INITIALIZED, PathStatus.STEPPING) or self._ode is None:
            raise PathStateError(f"Cannot step a kinetic path in state {self.status.value!r}; initialize it first")
        bundle = self._bundle

        self._workspace.temperature = state.temperature
        self._workspace.pressure = state.pressure
        u_state = bundle.assembler.to_reduced(state)
        if not np.array_equal(u_state, self._committed):
            # the caller changed the state since the last commit
            logger.debug("Chemical state changed outside the path; restarting the integrator at t=%g", t)
            self.u = u_state
            self._ode.initialize(t, self.u)

        t_new, u_new = self._ode.integrate(t, self.u, tfinal)
        bundle.assembler.from_reduced(u_new, state)

        self.t, self.u = t_new, u_new
        self._committed = bundle.assembler.to_reduced(state)
        self.steps += 1
        self.status = PathStatus.STEPPING
        logger.debug("Step %d accepted: t=%g", self.steps, t_new)
        return t_new

    def solve(self, state: ChemicalState, t: float, dt: float) -> float:
        """Integrate ``state`` from ``t`` to ``t + dt`` and return the final time.

        With an active output, the state is committed and emitted after every
        internal step of the integrator.
        """
        if self._solving:
            raise IntegrationInProgressError("The kinetic path is already being solved")
        self._solving = True
        try:
            tfinal = t + dt
            self.initialize(state, t)
            logger.info("Solving kinetic path from t=%g to t=%g", t, tfinal)
            if self.output is not None and self.output.active:
                self._solve_with_output(state, t, tfinal)
            else:
                u = self._ode.solve(t, dt, self.u)
                self._bundle.assembler.from_reduced(u, state)
                self.t, self.u = tfinal, u
            self.status = PathStatus.COMPLETED
            logger.info("Kinetic path reached t=%g", tfinal)
            return tfinal
        finally:
            self._solving = False

    def _solve_with_output(self, state: ChemicalState, t: float, tfinal: float) -> None:
        output = self.output
        output.open()
        try:
            output.update(state, t)
            while t < tfinal:
                if self.steps >= self.options.ode.max_steps:
                    raise IntegrationError(
                        f"Maximum number of steps ({self.options.ode.max_steps}) reached before t={tfinal:g}",
                        time=t,
                    )
                t = self.step(state, t, tfinal)
                output.update(state, t)
        finally:
            output.close()
