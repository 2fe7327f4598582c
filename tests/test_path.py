import io
import unittest
import numpy as np
from simpkinetics.errors import IntegrationError, IntegrationInProgressError, PartitionError, PathStateError
from simpkinetics.kinetics import ArrheniusKinetics, PowerLawKinetics
from simpkinetics.models import Reaction, Species
from simpkinetics.ode import ODEResult
from simpkinetics.options import ODE_METHODS, KineticOptions, ODEOptions, OutputOptions
from simpkinetics.output import ChemicalOutput
from simpkinetics.partition import Partition
from simpkinetics.path import KineticPath, PathStatus
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem


def _decay_reactions(k=0.1):
    """A -> B with r = k n_A; B is the only equilibrium species."""
    system = ChemicalSystem(
        [Species("A", "A", elements={"X": 1.0}), Species("B", "B", elements={"X": 1.0})]
    )
    kinetics = PowerLawKinetics(ArrheniusKinetics(k, 0.0), {"A": 1.0})
    return ReactionSystem(system, [Reaction("decay", {"A": -1.0, "B": 1.0}, kinetics)])


class _MeddlingOutput(ChemicalOutput):
    """Tries to change the partition from inside a solve."""

    def __init__(self, reactions):
        super().__init__(reactions.system, reactions, OutputOptions(active=True), stream=io.StringIO())
        self.path = None

    def update(self, state, t):
        record = super().update(state, t)
        if len(self.records) == 2:
            self.path.set_partition("kinetic = A")
        return record


class TestKineticPath(unittest.TestCase):
    def setUp(self):
        self.reactions = _decay_reactions()
        self.system = self.reactions.system
        self.options = KineticOptions(ode=ODEOptions(rtol=1e-8, atol=1e-14))

    def test_first_order_decay(self):
        path = KineticPath(self.reactions, self.options, partition="kinetic = A")
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        tfinal = path.solve(state, 0.0, 10.0)
        self.assertEqual(tfinal, 10.0)
        self.assertEqual(path.status, PathStatus.COMPLETED)
        self.assertAlmostEqual(state.amounts[0], np.exp(-1.0), places=5)
        self.assertAlmostEqual(state.amounts[1], 1.0 - np.exp(-1.0), places=5)

    def test_element_conservation_along_steps(self):
        path = KineticPath(self.reactions, self.options, partition="kinetic = A")
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        path.initialize(state, 0.0)
        self.assertEqual(path.status, PathStatus.INITIALIZED)
        t = 0.0
        for _ in range(5):
            t_new = path.step(state, t, 10.0)
            self.assertGreater(t_new, t)
            self.assertAlmostEqual(state.element_amount("X"), 1.0, places=10)
            t = t_new
        self.assertEqual(path.status, PathStatus.STEPPING)
        self.assertEqual(path.steps, 5)

    def test_step_requires_initialize(self):
        path = KineticPath(self.reactions, self.options, partition="kinetic = A")
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        with self.assertRaises(PathStateError):
            path.step(state, 0.0)
        path.initialize(state, 0.0)
        path.set_partition("kinetic = A")
        with self.assertRaises(PathStateError):
            path.step(state, 0.0)

    def test_step_restarts_after_external_change(self):
        path = KineticPath(self.reactions, self.options, partition="kinetic = A")
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        path.initialize(state, 0.0)
        t = path.step(state, 0.0, 10.0)
        state.set_species_amount("A", 2.0)
        with self.assertLogs("simpkinetics.path", level="DEBUG") as logs:
            path.step(state, t, 10.0)
        self.assertTrue(any("restarting" in line for line in logs.output))
        self.assertGreater(state.amounts[0], 1.5)

    def test_partition_change_refused_during_solve(self):
        output = _MeddlingOutput(self.reactions)
        path = KineticPath(self.reactions, self.options, output=output, partition="kinetic = A")
        output.path = path
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        with self.assertRaises(IntegrationInProgressError):
            path.solve(state, 0.0, 10.0)
        path.set_partition("kinetic = A")
        self.assertEqual(path.status, PathStatus.UNCONFIGURED)

    def test_partition_of_another_system(self):
        other = _decay_reactions().system
        path = KineticPath(self.reactions, self.options)
        with self.assertRaises(PartitionError):
            path.set_partition(Partition.from_kinetic_species(other, ["A"]))

    def test_output_rows(self):
        options = KineticOptions(
            ode=self.options.ode,
            output=OutputOptions(active=True, quantities=("t", "n[A]", "n[B]:mmol")),
        )
        path = KineticPath(self.reactions, options, partition="kinetic = A")
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        path.solve(state, 0.0, 10.0)
        records = path.output.records
        self.assertEqual(len(records), path.steps + 1)
        self.assertEqual(records[0]["t"], 0.0)
        self.assertEqual(records[0]["n[A]"], 1.0)
        self.assertEqual(records[-1]["t"], 10.0)
        self.assertAlmostEqual(records[-1]["n[B]:mmol"], 1000.0 * (1.0 - np.exp(-1.0)), places=2)
        times = [record["t"] for record in records]
        self.assertEqual(times, sorted(times))

    def test_max_steps(self):
        options = KineticOptions(ode=ODEOptions(max_steps=2, max_step=0.01))
        path = KineticPath(self.reactions, options, partition="kinetic = A")
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        with self.assertRaises(IntegrationError):
            path.solve(state, 0.0, 10.0)

    def test_repartition_is_idempotent(self):
        path = KineticPath(self.reactions, self.options, partition="kinetic = A")
        first = path.matrices
        path.set_partition("kinetic = A")
        second = path.matrices
        self.assertIsNot(first, second)
        for name in ("A", "We", "Se", "Sk"):
            np.testing.assert_array_equal(getattr(first, name), getattr(second, name))

    def test_jacobian_of_single_reaction(self):
        path = KineticPath(self.reactions, self.options, partition="kinetic = A")
        workspace = ChemicalState(self.system, amounts=[0.7, 0.3])
        u = path.assembler.to_reduced(workspace)
        jacobian = path.evaluator.jacobian(workspace, 0.0, u).value

        h = 1e-6
        expected = np.zeros((2, 2))
        for j in range(2):
            up, down = u.copy(), u.copy()
            up[j] += h
            down[j] -= h
            f_up = path.evaluator.function(workspace, 0.0, up).value
            f_down = path.evaluator.function(workspace, 0.0, down).value
            expected[:, j] = (f_up - f_down) / (2 * h)
        np.testing.assert_allclose(jacobian, expected, rtol=1e-6, atol=1e-12)
        np.testing.assert_allclose(jacobian, [[0.0, 0.1], [0.0, -0.1]], atol=1e-12)

    def test_recoverable_evaluation_is_retried(self):
        for method in ODE_METHODS:
            with self.subTest(method=method):
                options = KineticOptions(ode=ODEOptions(method=method, rtol=1e-8, atol=1e-14))
                path = KineticPath(self.reactions, options, partition="kinetic = A")
                evaluate = path.evaluator.function
                calls = {"failed": False}

                def flaky(state, t, u):
                    if t > 3.0 and not calls["failed"]:
                        calls["failed"] = True
                        return ODEResult.recoverable("trial point out of range")
                    return evaluate(state, t, u)

                path.evaluator.function = flaky
                state = ChemicalState(self.system, amounts=[1.0, 0.0])
                path.solve(state, 0.0, 10.0)
                self.assertTrue(calls["failed"])
                self.assertTrue(np.all(np.isfinite(state.amounts)))
                self.assertAlmostEqual(state.amounts[0], np.exp(-1.0), places=5)
                self.assertAlmostEqual(state.amounts[1], 1.0 - np.exp(-1.0), places=5)

    def test_all_kinetic_partition(self):
        path = KineticPath(self.reactions, self.options, partition=Partition.from_kinetic_species(self.system, ["A", "B"]))
        state = ChemicalState(self.system, amounts=[1.0, 0.0])
        path.solve(state, 0.0, 10.0)
        self.assertAlmostEqual(state.amounts[0], np.exp(-1.0), places=5)


if __name__ == '__main__':
    unittest.main()
