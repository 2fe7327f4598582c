"""Exception hierarchy for SimpKinetics."""

from __future__ import annotations


class SimpKineticsError(Exception):
    """Base class for all package errors."""


class ConfigurationError(SimpKineticsError, ValueError):
    """Invalid user configuration, reported before any integration starts."""


class PartitionError(ConfigurationError):
    """The kinetic/equilibrium classification is not a clean bipartition."""


class QuantityError(ConfigurationError):
    """Unknown output quantity, qualifier or unit."""


class OptionsError(ConfigurationError):
    """Malformed solver options."""


class PathStateError(SimpKineticsError, RuntimeError):
    """Operation not allowed in the current state of a kinetic path."""


class IntegrationInProgressError(PathStateError):
    """The partition cannot change while a solve is running."""


class EquilibriumConvergenceError(SimpKineticsError, RuntimeError):
    """The equilibrium solver did not converge."""

    def __init__(self, message: str, iterations: int | None = None, residual: float | None = None):
        super().__init__(message)
        self.iterations = iterations
        self.residual = residual


class IntegrationError(SimpKineticsError, RuntimeError):
    """The ODE integrator failed (step size underflow, repeated failures, ...)."""

    def __init__(self, message: str, time: float | None = None):
        super().__init__(message)
        self.time = time
