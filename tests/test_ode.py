import unittest
import numpy as np
from simpkinetics.errors import IntegrationError, OptionsError
from simpkinetics.ode import ODEResult, ODESolver
from simpkinetics.options import ODE_METHODS, ODEOptions


def _decay(t, u):
    return ODEResult.success(-u)


def _decay_jacobian(t, u):
    return ODEResult.success(-np.eye(len(u)))


class TestODESolver(unittest.TestCase):
    def test_solve_exponential_decay(self):
        solver = ODESolver(_decay, _decay_jacobian, ODEOptions(rtol=1e-8, atol=1e-12))
        u = solver.solve(0.0, 1.0, np.array([1.0, 2.0]))
        np.testing.assert_allclose(u, [np.exp(-1.0), 2.0 * np.exp(-1.0)], rtol=1e-5)

    def test_methods(self):
        for method in ODE_METHODS:
            solver = ODESolver(_decay, _decay_jacobian, ODEOptions(method=method, rtol=1e-8))
            u = solver.solve(0.0, 2.0, np.array([1.0]))
            self.assertAlmostEqual(u[0], np.exp(-2.0), places=5)

    def test_integrate_respects_limit(self):
        solver = ODESolver(_decay, _decay_jacobian)
        t, u = 0.0, np.array([1.0])
        while t < 0.5:
            t_new, u = solver.integrate(t, u, 0.5)
            self.assertGreater(t_new, t)
            self.assertLessEqual(t_new, 0.5)
            t = t_new
        self.assertEqual(t, 0.5)
        self.assertEqual(solver.integrate(t, u, 0.5)[0], 0.5)

    def test_recoverable_failure_retries(self):
        for method in ODE_METHODS:
            with self.subTest(method=method):
                state = {"failed": False}

                def flaky(t, u):
                    if t > 0.3 and not state["failed"]:
                        state["failed"] = True
                        return ODEResult.recoverable("trial point out of range")
                    return ODEResult.success(-u)

                solver = ODESolver(flaky, None, ODEOptions(method=method, rtol=1e-8))
                u = solver.solve(0.0, 1.0, np.array([1.0]))
                self.assertTrue(state["failed"])
                self.assertGreaterEqual(solver.recoverable_failures, 1)
                self.assertAlmostEqual(u[0], np.exp(-1.0), places=5)

    def test_steps_never_return_non_finite_states(self):
        for method in ODE_METHODS:
            with self.subTest(method=method):
                state = {"failed": False}

                def flaky(t, u):
                    if t > 0.3 and not state["failed"]:
                        state["failed"] = True
                        return ODEResult.recoverable("trial point out of range")
                    return ODEResult.success(-u)

                solver = ODESolver(flaky, None, ODEOptions(method=method))
                t, u = 0.0, np.array([1.0])
                while t < 1.0:
                    t_new, u = solver.integrate(t, u, 1.0)
                    self.assertTrue(np.all(np.isfinite(u)))
                    self.assertGreater(t_new, t)
                    t = t_new
                self.assertTrue(state["failed"])

    def test_persistent_failure_raises(self):
        def broken(t, u):
            if t > 0.3:
                return ODEResult.recoverable("always out of range")
            return ODEResult.success(-u)

        for method in ODE_METHODS:
            with self.subTest(method=method):
                solver = ODESolver(broken, _decay_jacobian, ODEOptions(method=method, max_steps=200))
                with self.assertRaises(IntegrationError):
                    solver.solve(0.0, 1.0, np.array([1.0]))

    def test_recoverable_jacobian_reuses_last(self):
        calls = {"n": 0}

        def jacobian(t, u):
            calls["n"] += 1
            if calls["n"] > 1:
                return ODEResult.recoverable("no jacobian")
            return ODEResult.success(-np.eye(len(u)))

        solver = ODESolver(_decay, jacobian)
        u = solver.solve(0.0, 1.0, np.array([1.0]))
        self.assertAlmostEqual(u[0], np.exp(-1.0), places=4)

    def test_max_steps(self):
        solver = ODESolver(_decay, _decay_jacobian, ODEOptions(max_steps=2, first_step=1e-6, max_step=1e-3))
        with self.assertRaises(IntegrationError) as context:
            solver.solve(0.0, 100.0, np.array([1.0]))
        self.assertIsNotNone(context.exception.time)

    def test_invalid_options(self):
        with self.assertRaises(OptionsError):
            ODEOptions(method="RK45")
        with self.assertRaises(OptionsError):
            ODEOptions(rtol=0.0)
        with self.assertRaises(OptionsError):
            ODEOptions(max_steps=0)


if __name__ == '__main__':
    unittest.main()
