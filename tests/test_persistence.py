import os
import tempfile
import unittest
from simpkinetics.kinetics import ArrheniusKinetics, PowerLawKinetics
from simpkinetics.models import Reaction, Species
from simpkinetics.options import OutputOptions
from simpkinetics.output import ChemicalOutput
from simpkinetics.persistence import sqlite_store
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem


class TestSqliteStore(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.connection = sqlite_store.connect(os.path.join(self.directory.name, "run.skproj"))
        sqlite_store.ensure_schema(self.connection)
        system = ChemicalSystem(
            [Species("A", "A", elements={"X": 1.0}), Species("B", "B", elements={"X": 1.0})]
        )
        kinetics = PowerLawKinetics(ArrheniusKinetics(0.1, 0.0), {"A": 1.0})
        self.reactions = ReactionSystem(system, [Reaction("decay", {"A": -1.0, "B": 1.0}, kinetics)])

    def tearDown(self):
        self.connection.close()
        self.directory.cleanup()

    def test_project_and_run(self):
        project_id = sqlite_store.create_project(self.connection, "decay", notes="test")
        sqlite_store.save_reactions(self.connection, project_id, self.reactions)
        run_id = sqlite_store.save_run(
            self.connection, project_id, model={"species": ["A", "B"]}, solver={}, manifest={}, duration_ms=3
        )
        self.assertEqual(sqlite_store.latest_run_id(self.connection), run_id)
        rows = self.connection.execute("SELECT name, phase FROM species ORDER BY name").fetchall()
        self.assertEqual(rows, [("A", "gas"), ("B", "gas")])

    def test_no_runs(self):
        self.assertIsNone(sqlite_store.latest_run_id(self.connection))

    def test_output_profile(self):
        project_id = sqlite_store.create_project(self.connection, "decay")
        run_id = sqlite_store.save_run(self.connection, project_id, {}, {}, {})
        options = OutputOptions(active=True, quantities=("t:minute", "n[A]:mmol"))
        output = ChemicalOutput(self.reactions.system, self.reactions, options)
        state = ChemicalState(self.reactions.system, amounts=[1.0, 0.0])
        output.update(state, 0.0)
        state.set_species_amounts([0.5, 0.5])
        output.update(state, 60.0)
        sqlite_store.save_output(self.connection, run_id, output)

        x_values, series, units = sqlite_store.load_profile(self.connection, run_id)
        self.assertEqual(x_values, [0.0, 1.0])
        self.assertEqual(series["n[A]:mmol"], [1000.0, 500.0])
        self.assertEqual(units["t:minute"], "minute")
        self.assertEqual(units["n[A]:mmol"], "mmol")


if __name__ == '__main__':
    unittest.main()
