"""
Dose unit normalization.

Internal convention (per drug, see DRUG_DOSES):
- Catecholamines and inotropes: mcg/kg/min
- Vasopressin: U/min
"""

from typing import Dict, Optional, Tuple

from shocksim.core.constants import DRUG_DOSES


_DOSE_UNIT_ALIASES: Dict[str, str] = {
    # Keys are post-rewrite: "mcg" has already become "ug"
    "ug/kg/min": "ug/kg/min",
    "ug/min": "ug/min",
    "ug/kg/h": "ug/kg/hr",
    "ug/kg/hr": "ug/kg/hr",
    "u/min": "u/min",
    "ui/min": "u/min",
    "u/h": "u/hr",
    "u/hr": "u/hr",
    "ui/h": "u/hr",
    "mu/min": "mu/min",
}

# Conversion factors to a canonical unit; "kg" marks per-weight conversion.
_DOSE_CONVERSIONS: Dict[Tuple[str, str], float] = {
    ("ug/kg/min", "ug/kg/min"): 1.0,
    ("ug/kg/hr", "ug/kg/min"): 1.0 / 60.0,
    ("u/min", "u/min"): 1.0,
    ("u/hr", "u/min"): 1.0 / 60.0,
    ("mu/min", "u/min"): 1.0 / 1000.0,
}


def normalize_dose_unit(unit: str) -> str:
    """Normalize dose unit strings to canonical lowercase form."""
    if not unit:
        return ""
    u = unit.strip()
    u = u.replace("µ", "u").replace("μ", "u")
    u = u.replace(" ", "").lower()
    u = u.replace("mcg", "ug")
    return _DOSE_UNIT_ALIASES.get(u, u)


def canonical_unit(drug: str) -> str:
    return normalize_dose_unit(DRUG_DOSES[drug].unit)


def convert_dose(value: float, unit: Optional[str], drug: str, weight: float = 70.0) -> float:
    """
    Dose of `drug` expressed in its canonical unit.

    A missing unit means the value is already canonical. Raises ValueError
    for units that cannot be converted.
    """
    if not unit:
        return value
    from_norm = normalize_dose_unit(unit)
    to_norm = canonical_unit(drug)
    if from_norm == to_norm:
        return value
    if from_norm == "ug/min" and to_norm == "ug/kg/min":
        if weight <= 0:
            raise ValueError(f"Cannot convert {unit} without a positive weight")
        return value / weight
    key = (from_norm, to_norm)
    if key in _DOSE_CONVERSIONS:
        return value * _DOSE_CONVERSIONS[key]
    raise ValueError(f"Unsupported dose unit for {drug}: {unit}")
