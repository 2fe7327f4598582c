"""SimpKinetics core package."""

from simpkinetics.equilibrium import EquilibriumResult, IdealEquilibriumSolver
from simpkinetics.errors import (
    ConfigurationError,
    EquilibriumConvergenceError,
    IntegrationError,
    PartitionError,
    PathStateError,
    SimpKineticsError,
)
from simpkinetics.kinetics import ArrheniusKinetics, LHHWKinetics, PowerLawKinetics
from simpkinetics.models import Reaction, Species
from simpkinetics.options import EquilibriumOptions, KineticOptions, ODEOptions, OutputOptions
from simpkinetics.output import ChemicalOutput
from simpkinetics.partition import Partition
from simpkinetics.path import KineticPath, PathStatus
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem

__all__ = [
    "ArrheniusKinetics",
    "ChemicalOutput",
    "ChemicalState",
    "ChemicalSystem",
    "ConfigurationError",
    "EquilibriumConvergenceError",
    "EquilibriumOptions",
    "EquilibriumResult",
    "IdealEquilibriumSolver",
    "IntegrationError",
    "KineticOptions",
    "KineticPath",
    "LHHWKinetics",
    "ODEOptions",
    "OutputOptions",
    "Partition",
    "PartitionError",
    "PathStateError",
    "PathStatus",
    "PowerLawKinetics",
    "Reaction",
    "ReactionSystem",
    "SimpKineticsError",
    "Species",
]
