"""Base interfaces for thermodynamic models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from simpkinetics.chemical import ChemicalVector


class ThermoInterface(ABC):
    """Abstract base class for standard-state property packages."""

    @abstractmethod
    def standard_gibbs_energies(self, temperature: float, species: Sequence[str]) -> np.ndarray:
        """Standard molar Gibbs energies (J/mol) of the given species."""
        pass


class ActivityModel(ABC):
    """Abstract base class for the activity model of a single phase.

    ``amounts`` are the molar amounts of the phase species only, in the order
    the phase was declared. The returned vector carries the derivatives of the
    activities with respect to those same amounts.
    """

    @abstractmethod
    def activities(self, temperature: float, pressure: float, amounts: np.ndarray) -> ChemicalVector:
        pass


def mole_fractions(amounts: np.ndarray) -> ChemicalVector:
    """Mole fractions of a phase and their derivatives w.r.t. the phase amounts."""
    size = len(amounts)
    total = float(np.sum(amounts))
    if total == 0.0:
        return ChemicalVector.zeros(size, size)
    x = amounts / total
    # dx_i/dn_j = (delta_ij - x_i) / total
    ddn = (np.eye(size) - x[:, None]) / total
    return ChemicalVector(x, ddn)
