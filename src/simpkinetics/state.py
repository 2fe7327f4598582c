"""Chemical state: temperature, pressure and species amounts."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from simpkinetics.constants import REFERENCE_PRESSURE, REFERENCE_TEMPERATURE
from simpkinetics.errors import ConfigurationError
from simpkinetics.system import ChemicalSystem
from simpkinetics.units import convert


class ChemicalState:
    """Mutable state of a :class:`ChemicalSystem`.

    The amounts vector is owned by the state; ``amounts`` returns a read-only
    view so callers go through the setters.
    """

    def __init__(
        self,
        system: ChemicalSystem,
        temperature: float = REFERENCE_TEMPERATURE,
        pressure: float = REFERENCE_PRESSURE,
        amounts: Sequence[float] | None = None,
    ):
        self.system = system
        self.temperature = float(temperature)
        self.pressure = float(pressure)
        self._amounts = np.zeros(system.num_species)
        if amounts is not None:
            self.set_species_amounts(amounts)

    @property
    def amounts(self) -> np.ndarray:
        view = self._amounts.view()
        view.flags.writeable = False
        return view

    def set_temperature(self, value: float) -> None:
        if value <= 0.0:
            raise ConfigurationError(f"Temperature must be positive, got {value}")
        self.temperature = float(value)

    def set_pressure(self, value: float) -> None:
        if value <= 0.0:
            raise ConfigurationError(f"Pressure must be positive, got {value}")
        self.pressure = float(value)

    def set_species_amounts(self, values: Sequence[float], indices: Sequence[int] | None = None) -> None:
        values = np.asarray(values, dtype=float)
        if indices is None:
            if values.shape != self._amounts.shape:
                raise ConfigurationError(
                    f"Expected {self._amounts.size} species amounts, got {values.size}"
                )
            self._amounts[:] = values
        else:
            self._amounts[list(indices)] = values

    def set_species_amount(self, name: str, value: float, unit: str = "mol") -> None:
        self._amounts[self.system.index_species(name)] = convert(value, unit, "mol")

    def species_amount(self, name: str, unit: str = "mol") -> float:
        return convert(float(self._amounts[self.system.index_species(name)]), "mol", unit)

    def element_amounts(self) -> np.ndarray:
        return self.system.element_amounts(self._amounts)

    def element_amount(self, name: str, unit: str = "mol") -> float:
        value = self.element_amounts()[self.system.index_element(name)]
        return convert(float(value), "mol", unit)

    def element_amount_in_phase(self, name: str, phase: str, unit: str = "mol") -> float:
        value = self.system.element_amounts_in_phase(self._amounts, phase)[self.system.index_element(name)]
        return convert(float(value), "mol", unit)

    def copy(self) -> ChemicalState:
        return ChemicalState(self.system, self.temperature, self.pressure, self._amounts.copy())

    def assign(self, other: ChemicalState) -> None:
        """Overwrite temperature, pressure and amounts with those of ``other``."""
        self.temperature = other.temperature
        self.pressure = other.pressure
        self._amounts[:] = other._amounts

    def __repr__(self) -> str:
        amounts = ", ".join(f"{n}={v:.6g}" for n, v in zip(self.system.species_names, self._amounts))
        return f"ChemicalState(T={self.temperature} K, P={self.pressure} Pa, {amounts})"
