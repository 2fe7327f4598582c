"""Physical constants and numerical defaults."""

R_GAS = 8.31446261815324  # J/(mol·K)

REFERENCE_TEMPERATURE = 298.15  # K
REFERENCE_PRESSURE = 1.0e5  # Pa

WATER_MOLAR_MASS = 0.018015268  # kg/mol
WATER_NAME = "H2O(l)"

# Reduced-state entries below this magnitude (mol) are treated as exhausted.
DEPLETION_THRESHOLD = 1.0e-50
