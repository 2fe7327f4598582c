import unittest
import numpy as np
from simpkinetics.errors import ConfigurationError
from simpkinetics.kinetics import ArrheniusKinetics, PowerLawKinetics
from simpkinetics.models import Reaction, Species
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem


def _aqueous_system():
    return ChemicalSystem(
        [
            Species("H2O(l)", "H2O", phase="aqueous"),
            Species("H+", "H+", phase="aqueous"),
            Species("OH-", "OH-", phase="aqueous"),
            Species("CO2(g)", "CO2", phase="gas"),
            Species("Calcite", "CaCO3", phase="mineral"),
        ]
    )


class TestChemicalSystem(unittest.TestCase):
    def test_elements_and_formula_matrix(self):
        system = _aqueous_system()
        self.assertEqual(system.elements, ("H", "O", "C", "Ca", "Z"))
        self.assertEqual(system.formula_matrix.shape, (5, 5))
        self.assertEqual(system.formula_matrix[system.index_element("Z"), system.index_species("OH-")], -1.0)
        with self.assertRaises(ValueError):
            system.formula_matrix[0, 0] = 3.0

    def test_phases(self):
        system = _aqueous_system()
        self.assertEqual(system.indices_phase("aqueous"), (0, 1, 2))
        self.assertTrue(system.is_condensed("mineral"))
        self.assertFalse(system.is_condensed("gas"))
        with self.assertRaises(ConfigurationError):
            system.indices_phase("liquid")

    def test_aqueous_requires_water(self):
        with self.assertRaises(ConfigurationError):
            ChemicalSystem([Species("H+", "H+", phase="aqueous")])

    def test_duplicates_and_unknown_names(self):
        with self.assertRaises(ConfigurationError):
            ChemicalSystem([Species("A", "C"), Species("A", "C")])
        system = _aqueous_system()
        with self.assertRaises(ConfigurationError):
            system.index_species("Na+")

    def test_activities_are_block_diagonal(self):
        system = _aqueous_system()
        amounts = np.array([55.5, 1e-7, 1e-7, 2.0, 1.0])
        activities = system.activities(298.15, 1.0e5, amounts)
        self.assertAlmostEqual(activities.val[3], 1.0)
        self.assertEqual(activities.val[4], 1.0)
        self.assertTrue(np.all(activities.ddn[:3, 3:] == 0.0))
        self.assertTrue(np.all(activities.ddn[3:, :3] == 0.0))


class TestChemicalState(unittest.TestCase):
    def setUp(self):
        self.system = ChemicalSystem([Species("A", "A", elements={"X": 1.0}), Species("D", "D", elements={"X": 2.0})])

    def test_amounts_are_read_only(self):
        state = ChemicalState(self.system, amounts=[1.0, 2.0])
        with self.assertRaises(ValueError):
            state.amounts[0] = 5.0

    def test_units_and_element_amounts(self):
        state = ChemicalState(self.system)
        state.set_species_amount("A", 500.0, "mmol")
        state.set_species_amount("D", 1.0)
        self.assertAlmostEqual(state.species_amount("A"), 0.5)
        self.assertAlmostEqual(state.element_amount("X"), 2.5)
        self.assertAlmostEqual(state.element_amount_in_phase("X", "gas", "mmol"), 2500.0)

    def test_copy_is_independent(self):
        state = ChemicalState(self.system, amounts=[1.0, 2.0])
        other = state.copy()
        other.set_species_amounts([3.0], [0])
        self.assertEqual(state.amounts[0], 1.0)
        state.assign(other)
        self.assertEqual(state.amounts[0], 3.0)

    def test_validation(self):
        state = ChemicalState(self.system)
        with self.assertRaises(ConfigurationError):
            state.set_temperature(-1.0)
        with self.assertRaises(ConfigurationError):
            state.set_species_amounts([1.0])


class TestReactionSystem(unittest.TestCase):
    def setUp(self):
        self.system = ChemicalSystem([Species("A", "A", elements={"X": 1.0}), Species("D", "D", elements={"X": 2.0})])
        self.kinetics = PowerLawKinetics(ArrheniusKinetics(0.5, 0.0), {"A": 2.0})

    def test_stoichiometric_matrix_and_rates(self):
        reactions = ReactionSystem(
            self.system, [Reaction("dimerization", {"A": -2.0, "D": 1.0}, self.kinetics)]
        )
        np.testing.assert_array_equal(reactions.stoichiometric_matrix, [[-2.0, 1.0]])
        amounts = np.array([2.0, 0.0])
        rates = reactions.rates(300.0, 1.0e5, amounts, self.system.activities(300.0, 1.0e5, amounts))
        self.assertAlmostEqual(rates.val[0], 2.0)
        np.testing.assert_allclose(rates.ddn[0], [2.0, 0.0])
        self.assertEqual(reactions.index_reaction("dimerization"), 0)

    def test_invalid_reactions(self):
        with self.assertRaises(ConfigurationError):
            ReactionSystem(self.system, [Reaction("r", {"A": -1.0, "Q": 1.0}, self.kinetics)])
        with self.assertRaises(ConfigurationError):
            ReactionSystem(self.system, [Reaction("r", {"A": -1.0})])
        with self.assertRaises(ConfigurationError):
            ReactionSystem(
                self.system,
                [Reaction("r", {"A": -1.0}, self.kinetics), Reaction("r", {"D": -1.0}, self.kinetics)],
            )


if __name__ == '__main__':
    unittest.main()
