"""Options of the kinetic path and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from simpkinetics.constants import DEPLETION_THRESHOLD
from simpkinetics.errors import OptionsError

ODE_METHODS = ("BDF", "Radau", "LSODA")


def _positive(name: str, value: float) -> None:
    if not value > 0.0:
        raise OptionsError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class ODEOptions:
    """Settings of the stiff integrator.

    Attributes:
        method: One of ``BDF``, ``Radau`` or ``LSODA`` (scipy steppers).
        rtol: Relative tolerance.
        atol: Absolute tolerance.
        max_step: Upper bound on the internal step size (s).
        first_step: Initial step size (s); chosen automatically when ``None``.
        use_jacobian: Pass the analytic Jacobian to the integrator.
        max_steps: Abort ``solve`` after this many internal steps.
    """

    method: str = "BDF"
    rtol: float = 1.0e-6
    atol: float = 1.0e-12
    max_step: float = float("inf")
    first_step: float | None = None
    use_jacobian: bool = True
    max_steps: int = 100000

    def __post_init__(self) -> None:
        if self.method not in ODE_METHODS:
            raise OptionsError(f"Unknown ODE method {self.method!r}; expected one of {ODE_METHODS}")
        _positive("rtol", self.rtol)
        _positive("atol", self.atol)
        _positive("max_step", self.max_step)
        if self.first_step is not None:
            _positive("first_step", self.first_step)
        if self.max_steps < 1:
            raise OptionsError(f"max_steps must be at least 1, got {self.max_steps}")


@dataclass(frozen=True)
class EquilibriumOptions:
    tolerance: float = 1.0e-10
    max_iterations: int = 200
    max_step: float = 10.0
    max_backtracks: int = 20
    min_damping: float = 1.0e-4

    def __post_init__(self) -> None:
        _positive("tolerance", self.tolerance)
        _positive("max_step", self.max_step)
        _positive("min_damping", self.min_damping)
        if self.max_iterations < 1:
            raise OptionsError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.max_backtracks < 1:
            raise OptionsError(f"max_backtracks must be at least 1, got {self.max_backtracks}")


@dataclass(frozen=True)
class OutputOptions:
    """Where and what to output after every committed step.

    Attributes:
        active: Emit output during ``solve``.
        terminal: Print a table to standard output.
        file: Path of a whitespace separated data file.
        quantities: Quantity expressions, e.g. ``("t:minute", "n[A]", "pH")``.
        header: Column titles; defaults to ``quantities``.
    """

    active: bool = False
    terminal: bool = False
    file: str | None = None
    quantities: Sequence[str] = field(default_factory=lambda: ("t",))
    header: Sequence[str] | None = None

    def __post_init__(self) -> None:
        if not self.quantities:
            raise OptionsError("At least one output quantity is required")
        if self.header is not None and len(self.header) != len(self.quantities):
            raise OptionsError(
                f"Output header has {len(self.header)} entries for {len(self.quantities)} quantities"
            )


@dataclass(frozen=True)
class KineticOptions:
    """Options of a :class:`~simpkinetics.path.KineticPath`.

    Attributes:
        depletion_threshold: Reduced-state entries with a smaller magnitude
            are exhausted and may not decrease further.
        relative_depletion: Scale ``depletion_threshold`` by the largest
            magnitude of the initial reduced state.
    """

    ode: ODEOptions = field(default_factory=ODEOptions)
    equilibrium: EquilibriumOptions = field(default_factory=EquilibriumOptions)
    output: OutputOptions = field(default_factory=OutputOptions)
    depletion_threshold: float = DEPLETION_THRESHOLD
    relative_depletion: bool = False

    def __post_init__(self) -> None:
        if self.depletion_threshold < 0.0:
            raise OptionsError(f"depletion_threshold must be non-negative, got {self.depletion_threshold}")
