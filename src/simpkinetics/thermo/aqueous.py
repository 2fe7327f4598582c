"""Ideal aqueous activity model.

Solutes use a_i = m_i * x_w, where m_i is the molality of the solute and x_w
the mole fraction of water; water itself has a_w = x_w.
"""

from __future__ import annotations

import numpy as np

from simpkinetics.chemical import ChemicalVector
from simpkinetics.constants import WATER_MOLAR_MASS
from simpkinetics.thermo.base import ActivityModel, mole_fractions


class IdealAqueousActivity(ActivityModel):
    def __init__(self, water_index: int, water_molar_mass: float = WATER_MOLAR_MASS):
        self.water_index = water_index
        self.water_molar_mass = water_molar_mass

    def molalities(self, amounts: np.ndarray) -> ChemicalVector:
        size = len(amounts)
        iw = self.water_index
        n_water = float(amounts[iw])
        if n_water <= 0.0:
            return ChemicalVector.zeros(size, size)
        kg_water = n_water * self.water_molar_mass
        m = amounts / kg_water
        ddn = np.eye(size) / kg_water
        ddn[:, iw] -= m / n_water
        return ChemicalVector(m, ddn)

    def activities(self, temperature: float, pressure: float, amounts: np.ndarray) -> ChemicalVector:
        iw = self.water_index
        x = mole_fractions(amounts)
        m = self.molalities(amounts)
        xw = x.row(iw)
        val = m.val * xw.val
        ddn = m.ddn * xw.val + np.outer(m.val, xw.ddn)
        val[iw] = xw.val
        ddn[iw] = xw.ddn
        return ChemicalVector(val, ddn)
