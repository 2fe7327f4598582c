from .aqueous import IdealAqueousActivity
from .base import ActivityModel, ThermoInterface
from .ideal import (
    IdealGasActivity,
    IdealGasThermo,
    IdealSolutionActivity,
    PureCondensedActivity,
    SpeciesProperties,
)

__all__ = [
    "ActivityModel",
    "ThermoInterface",
    "IdealAqueousActivity",
    "IdealGasActivity",
    "IdealGasThermo",
    "IdealSolutionActivity",
    "PureCondensedActivity",
    "SpeciesProperties",
]
