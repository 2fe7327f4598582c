"""Stiff ODE integration on top of the scipy step-by-step solvers.

The right-hand side and Jacobian callables return :class:`ODEResult` values
instead of raising on out-of-domain trial points. A recoverable result is
handed to scipy as a non-finite derivative, which its Newton iteration treats
as a failed step: the step size is reduced and the step retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np
from scipy.integrate import BDF, LSODA, OdeSolver, Radau

from simpkinetics.errors import IntegrationError, SimpKineticsError
from simpkinetics.options import ODEOptions

logger = logging.getLogger(__name__)

_STEPPERS: dict[str, type[OdeSolver]] = {"BDF": BDF, "Radau": Radau, "LSODA": LSODA}
_MAX_RESTARTS = 50


class ODEStatus(Enum):
    SUCCESS = "success"
    RECOVERABLE = "recoverable"


@dataclass(frozen=True)
class ODEResult:
    status: ODEStatus
    value: np.ndarray | None = None
    message: str = ""

    @classmethod
    def success(cls, value: np.ndarray) -> ODEResult:
        return cls(ODEStatus.SUCCESS, value)

    @classmethod
    def recoverable(cls, message: str) -> ODEResult:
        return cls(ODEStatus.RECOVERABLE, None, message)

    @property
    def ok(self) -> bool:
        return self.status is ODEStatus.SUCCESS


ODEFunction = Callable[[float, np.ndarray], ODEResult]


class ODESolver:
    """One-step and run-to-completion integration of ``du/dt = f(t, u)``."""

    def __init__(
        self,
        function: ODEFunction,
        jacobian: ODEFunction | None = None,
        options: ODEOptions | None = None,
    ):
        self.function = function
        self.jacobian = jacobian
        self.options = options or ODEOptions()
        self.recoverable_failures = 0
        self._stepper: OdeSolver | None = None
        self._bound: float | None = None
        self._last_jacobian: np.ndarray | None = None
        self.t = 0.0
        self.u = np.zeros(0)

    def set_options(self, options: ODEOptions) -> None:
        self.options = options
        self._stepper = None

    def initialize(self, t0: float, u0: np.ndarray) -> None:
        """Reset the integrator at ``(t0, u0)``, discarding any step history."""
        self.t = float(t0)
        self.u = np.array(u0, dtype=float)
        self._stepper = None
        self._bound = None
        self._last_jacobian = None
        self.recoverable_failures = 0

    def _fun(self, t: float, u: np.ndarray) -> np.ndarray:
        result = self.function(t, u)
        if result.ok:
            return result.value
        self.recoverable_failures += 1
        logger.debug("Recoverable right-hand side failure at t=%g: %s", t, result.message)
        return np.full_like(u, np.nan)

    def _jac(self, t: float, u: np.ndarray) -> np.ndarray:
        result = self.jacobian(t, u)
        if result.ok:
            self._last_jacobian = result.value
            return result.value
        self.recoverable_failures += 1
        logger.debug("Recoverable Jacobian failure at t=%g: %s", t, result.message)
        if self._last_jacobian is None:
            return np.zeros((len(u), len(u)))
        return self._last_jacobian

    def _make_stepper(self, t: float, u: np.ndarray, bound: float, first_step: float | None = None) -> OdeSolver:
        options = self.options
        kwargs = {
            "rtol": options.rtol,
            "atol": options.atol,
            "max_step": options.max_step,
        }
        if first_step is None:
            first_step = options.first_step
        if first_step is not None:
            kwargs["first_step"] = min(first_step, bound - t)
        if self.jacobian is not None and options.use_jacobian:
            kwargs["jac"] = self._jac
        stepper_class = _STEPPERS[options.method]
        return stepper_class(self._fun, t, u, bound, **kwargs)

    def integrate(self, t: float, u: np.ndarray, t_limit: float | None = None) -> tuple[float, np.ndarray]:
        """Advance by one adaptive step, never past ``t_limit``.

        Returns the new time and state. The step history is kept between calls
        as long as they continue from the previously returned ``(t, u)`` with
        the same ``t_limit``. A step that ends on a non-finite state is
        discarded and retried from ``(t, u)`` with a smaller first step.
        """
        bound = np.inf if t_limit is None else float(t_limit)
        if t >= bound:
            return t, np.array(u, dtype=float)
        u = np.array(u, dtype=float)

        stepper = self._stepper
        if (
            stepper is None
            or self._bound != bound
            or stepper.status != "running"
            or stepper.t != t
            or not np.array_equal(stepper.y, u)
        ):
            stepper = self._start(t, u, bound)

        for _ in range(_MAX_RESTARTS):
            try:
                message = stepper.step()
            except SimpKineticsError:
                self._stepper = None
                raise
            except ValueError as error:
                # e.g. a Jacobian factorization fed non-finite entries
                self._stepper = None
                raise IntegrationError(f"Integration failed at t={stepper.t:g}: {error}", time=stepper.t) from error
            except Exception:
                self._stepper = None
                raise
            if stepper.status == "failed":
                self._stepper = None
                raise IntegrationError(f"Integration failed at t={stepper.t:g}: {message}", time=stepper.t)
            if np.all(np.isfinite(stepper.y)):
                self.t = float(stepper.t)
                self.u = np.array(stepper.y, dtype=float)
                return self.t, self.u.copy()

            # the integrator accepted a non-finite state; shrink and retry
            attempted = float(stepper.t) - float(t)
            self.recoverable_failures += 1
            first_step = 0.5 * attempted
            if not first_step > 0.0 or t + first_step == t:
                break
            logger.debug("Non-finite step from t=%g rejected; retrying with first step %g", t, first_step)
            stepper = self._start(t, u, bound, first_step)

        self._stepper = None
        raise IntegrationError(f"Integration failed at t={t:g}: repeated non-finite steps", time=t)

    def _start(self, t: float, u: np.ndarray, bound: float, first_step: float | None = None) -> OdeSolver:
        try:
            stepper = self._make_stepper(float(t), u.copy(), bound, first_step)
        except ValueError as error:
            raise IntegrationError(f"Cannot start the integrator: {error}", time=t) from error
        self._stepper = stepper
        self._bound = bound
        return stepper

    def solve(self, t: float, dt: float, u: np.ndarray) -> np.ndarray:
        """Integrate from ``t`` to ``t + dt`` and return the final state."""
        tfinal = t + dt
        steps = 0
        while t < tfinal:
            if steps >= self.options.max_steps:
                raise IntegrationError(
                    f"Maximum number of steps ({self.options.max_steps}) reached before t={tfinal:g}",
                    time=t,
                )
            t, u = self.integrate(t, u, tfinal)
            steps += 1
        logger.debug("ODE solve reached t=%g in %d steps", t, steps)
        return u
