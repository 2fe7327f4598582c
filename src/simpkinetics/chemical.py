"""Values carrying their derivatives with respect to species amounts.

A :class:`ChemicalScalar` holds a value ``val`` and its gradient ``ddn`` with
respect to the molar amounts of all species in a system. Arithmetic on
scalars propagates the gradient with the usual chain rule, which is how rate
laws obtain their sensitivities without finite differences.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class ChemicalScalar:
    val: float
    ddn: np.ndarray

    @classmethod
    def constant(cls, value: float, num_species: int) -> ChemicalScalar:
        return cls(float(value), np.zeros(num_species))

    @classmethod
    def amount(cls, amounts: np.ndarray, index: int) -> ChemicalScalar:
        """The amount of species ``index`` as a scalar with a unit gradient."""
        ddn = np.zeros(len(amounts))
        ddn[index] = 1.0
        return cls(float(amounts[index]), ddn)

    def _coerce(self, other: ChemicalScalar | float) -> ChemicalScalar:
        if isinstance(other, ChemicalScalar):
            return other
        return ChemicalScalar(float(other), np.zeros_like(self.ddn))

    def __add__(self, other: ChemicalScalar | float) -> ChemicalScalar:
        other = self._coerce(other)
        return ChemicalScalar(self.val + other.val, self.ddn + other.ddn)

    __radd__ = __add__

    def __sub__(self, other: ChemicalScalar | float) -> ChemicalScalar:
        other = self._coerce(other)
        return ChemicalScalar(self.val - other.val, self.ddn - other.ddn)

    def __rsub__(self, other: float) -> ChemicalScalar:
        return self._coerce(other) - self

    def __neg__(self) -> ChemicalScalar:
        return ChemicalScalar(-self.val, -self.ddn)

    def __mul__(self, other: ChemicalScalar | float) -> ChemicalScalar:
        other = self._coerce(other)
        return ChemicalScalar(
            self.val * other.val,
            self.val * other.ddn + other.val * self.ddn,
        )

    __rmul__ = __mul__

    def __truediv__(self, other: ChemicalScalar | float) -> ChemicalScalar:
        other = self._coerce(other)
        val = self.val / other.val
        return ChemicalScalar(val, (self.ddn - val * other.ddn) / other.val)

    def __rtruediv__(self, other: float) -> ChemicalScalar:
        return self._coerce(other) / self

    def __pow__(self, exponent: float) -> ChemicalScalar:
        exponent = float(exponent)
        if exponent == 0.0:
            return ChemicalScalar(1.0, np.zeros_like(self.ddn))
        val = self.val**exponent
        if self.val == 0.0:
            # d(x^p)/dx at x = 0 is 1 for p == 1, 0 for p > 1, unbounded for p < 1
            factor = 1.0 if exponent == 1.0 else 0.0
        else:
            factor = exponent * self.val ** (exponent - 1.0)
        return ChemicalScalar(val, factor * self.ddn)

    def __float__(self) -> float:
        return self.val


@dataclass(frozen=True, eq=False)
class ChemicalVector:
    """A vector of values and their Jacobian with respect to species amounts.

    ``val`` has shape ``(m,)`` and ``ddn`` has shape ``(m, num_species)``.
    """

    val: np.ndarray
    ddn: np.ndarray

    @classmethod
    def zeros(cls, size: int, num_species: int) -> ChemicalVector:
        return cls(np.zeros(size), np.zeros((size, num_species)))

    @classmethod
    def from_scalars(cls, scalars: list[ChemicalScalar], num_species: int) -> ChemicalVector:
        if not scalars:
            return cls.zeros(0, num_species)
        return cls(
            np.array([s.val for s in scalars], dtype=float),
            np.vstack([s.ddn for s in scalars]),
        )

    def __len__(self) -> int:
        return len(self.val)

    def row(self, index: int) -> ChemicalScalar:
        return ChemicalScalar(float(self.val[index]), self.ddn[index].copy())
