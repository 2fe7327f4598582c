import unittest
import numpy as np
from simpkinetics.errors import PartitionError
from simpkinetics.models import Species
from simpkinetics.partition import KineticMatrices, Partition
from simpkinetics.system import ChemicalSystem


class TestPartition(unittest.TestCase):
    def setUp(self):
        # A and B only share element Y with nothing else
        self.system = ChemicalSystem(
            [
                Species("M", "M", elements={"X": 1.0}),
                Species("D", "D", elements={"X": 2.0}),
                Species("A", "A", elements={"Y": 1.0}),
                Species("B", "B", elements={"X": 1.0, "Y": 1.0}),
            ]
        )
        self.stoichiometry = np.array([[-1.0, 0.0, -1.0, 1.0]])

    def test_all_equilibrium(self):
        partition = Partition.all_equilibrium(self.system)
        self.assertEqual(partition.equilibrium_species, (0, 1, 2, 3))
        self.assertEqual(partition.kinetic_species, ())
        self.assertEqual(partition.equilibrium_elements, (0, 1))
        self.assertEqual(partition.kinetic_elements, ())

    def test_from_kinetic_species(self):
        partition = Partition.from_kinetic_species(self.system, ["A", "B"])
        self.assertEqual(partition.equilibrium_species, (0, 1))
        self.assertEqual(partition.kinetic_species, (2, 3))
        self.assertEqual(partition.equilibrium_elements, (0,))
        self.assertEqual(partition.kinetic_elements, (1,))
        np.testing.assert_array_equal(partition.formula_matrix_equilibrium(), [[1.0, 2.0]])

    def test_subsets_are_disjoint_and_exhaustive(self):
        partition = Partition.from_string(self.system, "kinetic = B")
        everything = partition.equilibrium_species + partition.kinetic_species
        self.assertEqual(sorted(everything), list(range(self.system.num_species)))
        self.assertFalse(set(partition.equilibrium_species) & set(partition.kinetic_species))

    def test_from_string(self):
        partition = Partition.from_string(self.system, "kinetic: A, B")
        self.assertEqual(partition.kinetic_species, (2, 3))
        partition = Partition.from_string(self.system, "equilibrium = M D")
        self.assertEqual(partition.kinetic_species, (2, 3))
        partition = Partition.from_string(self.system, "kinetic: A\nequilibrium: M D B")
        self.assertEqual(partition.kinetic_species, (2,))

    def test_invalid_partitions(self):
        with self.assertRaises(PartitionError):
            Partition.from_indices(self.system, [0, 1], [1, 2, 3])
        with self.assertRaises(PartitionError):
            Partition.from_indices(self.system, [0, 1], [2])
        with self.assertRaises(PartitionError):
            Partition.from_indices(self.system, [0, 1, 2], [7])
        with self.assertRaises(PartitionError):
            Partition.from_string(self.system, "kinetic: Q")
        with self.assertRaises(PartitionError):
            Partition.from_string(self.system, "kinetic: A; equilibrium: M")
        with self.assertRaises(PartitionError):
            Partition.from_string(self.system, "slow: A")

    def test_kinetic_matrices(self):
        partition = Partition.from_kinetic_species(self.system, ["A", "B"])
        matrices = KineticMatrices.build(partition, self.stoichiometry)
        np.testing.assert_array_equal(matrices.Se, [[-1.0, 0.0]])
        np.testing.assert_array_equal(matrices.Sk, [[-1.0, 1.0]])
        np.testing.assert_array_equal(matrices.A, [[-1.0], [-1.0], [1.0]])
        self.assertEqual((matrices.Ee, matrices.Nk), (1, 2))
        with self.assertRaises(ValueError):
            matrices.A[0, 0] = 1.0

    def test_matrices_are_rebuilt_identically(self):
        partition = Partition.from_kinetic_species(self.system, ["A"])
        first = KineticMatrices.build(partition, self.stoichiometry)
        second = KineticMatrices.build(partition, self.stoichiometry)
        np.testing.assert_array_equal(first.A, second.A)
        np.testing.assert_array_equal(first.We, second.We)


if __name__ == '__main__':
    unittest.main()
