"""Small unit conversion table for amounts, times, rates and molalities."""

from __future__ import annotations

from simpkinetics.errors import QuantityError

# unit -> (dimension, factor to the base unit of that dimension)
_UNITS: dict[str, tuple[str, float]] = {
    "mol": ("amount", 1.0),
    "mmol": ("amount", 1.0e-3),
    "umol": ("amount", 1.0e-6),
    "kmol": ("amount", 1.0e3),
    "s": ("time", 1.0),
    "second": ("time", 1.0),
    "seconds": ("time", 1.0),
    "minute": ("time", 60.0),
    "minutes": ("time", 60.0),
    "hour": ("time", 3600.0),
    "hours": ("time", 3600.0),
    "day": ("time", 86400.0),
    "days": ("time", 86400.0),
    "year": ("time", 365.25 * 86400.0),
    "years": ("time", 365.25 * 86400.0),
    "mol/s": ("rate", 1.0),
    "mmol/s": ("rate", 1.0e-3),
    "mol/minute": ("rate", 1.0 / 60.0),
    "mol/hour": ("rate", 1.0 / 3600.0),
    "mol/day": ("rate", 1.0 / 86400.0),
    "molal": ("molality", 1.0),
    "mmolal": ("molality", 1.0e-3),
    "umolal": ("molality", 1.0e-6),
    "K": ("temperature", 1.0),
    "Pa": ("pressure", 1.0),
    "kPa": ("pressure", 1.0e3),
    "bar": ("pressure", 1.0e5),
    "atm": ("pressure", 101325.0),
}


def dimension(unit: str) -> str:
    try:
        return _UNITS[unit][0]
    except KeyError:
        raise QuantityError(f"Unknown unit {unit!r}") from None


def convert(value: float, from_unit: str, to_unit: str) -> float:
    """Convert ``value`` between two units of the same dimension."""
    if from_unit == to_unit:
        return value
    from_dim, from_factor = _UNITS.get(from_unit, (None, 0.0))
    to_dim, to_factor = _UNITS.get(to_unit, (None, 0.0))
    if from_dim is None:
        raise QuantityError(f"Unknown unit {from_unit!r}")
    if to_dim is None:
        raise QuantityError(f"Unknown unit {to_unit!r}")
    if from_dim != to_dim:
        raise QuantityError(f"Cannot convert {from_unit!r} ({from_dim}) to {to_unit!r} ({to_dim})")
    return value * from_factor / to_factor
