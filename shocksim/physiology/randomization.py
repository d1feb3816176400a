"""
Controlled randomization of shock presentations.

Every case of the same archetype looks a little different, but the
diagnostic signature of the archetype always survives the jitter: the
shock-specific constraints are re-applied after the variation, and the lab
relationships are reasserted last.
"""

from dataclasses import replace
from typing import Dict

import numpy as np

from shocksim.core.enums import ShockType
from shocksim.core.utils import make_rng
from .profiles import ShockProfile

# Fractional half-widths: value = base + U(-1, 1) * base * pct
VITAL_JITTER: Dict[str, float] = {
    "heart_rate": 0.12,
    "systolic": 0.10,
    "diastolic": 0.10,
    "spo2": 0.05,
    "respiratory_rate": 0.15,
    "temperature": 0.02,
    "cvp": 0.20,
    "cardiac_output": 0.15,
    "svr": 0.12,
}

HEMODYNAMIC_JITTER: Dict[str, float] = {
    "preload": 0.15,
    "contractility": 0.10,
    "afterload": 0.12,
    "heart_rate": 0.12,
    "stroke_volume": 0.15,
}

LAB_JITTER: Dict[str, float] = {
    "ph": 0.03,
    "pco2": 0.12,
    "po2": 0.15,
    "hco3": 0.15,
    "lactate": 0.20,
    "hemoglobin": 0.15,
    "hematocrit": 0.15,
    "wbc": 0.25,
    "platelets": 0.20,
    "potassium": 0.08,
    "sodium": 0.04,
    "magnesium": 0.12,
    "chloride": 0.06,
    "creatinine": 0.20,
    "urea": 0.25,
}

PROGRESSION_JITTER = 0.08


def randomize_value(base: float, pct: float, rng: np.random.Generator) -> float:
    return base + (rng.random() - 0.5) * 2.0 * base * pct


def _jitter(obj, table: Dict[str, float], rng: np.random.Generator):
    changes = {
        name: randomize_value(getattr(obj, name), pct, rng)
        for name, pct in table.items()
    }
    return replace(obj, **changes)


def constrain_svr(svr: float, shock_type: ShockType) -> float:
    """SVR pinned into the archetype's range."""
    if shock_type == ShockType.HYPOVOLEMIC:
        return max(svr, 1600.0)
    if shock_type == ShockType.DISTRIBUTIVE:
        return min(svr, 800.0)
    if shock_type == ShockType.CARDIOGENIC:
        return max(svr, 1400.0)
    return svr


def apply_shock_constraints(vitals, shock_type: ShockType):
    """Pin the fields that define each archetype's hemodynamic signature."""
    vitals = replace(vitals, svr=constrain_svr(vitals.svr, shock_type))
    if shock_type == ShockType.HYPOVOLEMIC:
        vitals = replace(vitals, cvp=min(vitals.cvp, 5.0))
        if vitals.systolic - vitals.diastolic > 35.0:
            vitals = replace(vitals, diastolic=vitals.systolic - 30.0)
    elif shock_type == ShockType.DISTRIBUTIVE:
        vitals = replace(vitals, cardiac_output=max(vitals.cardiac_output, 4.5))
    elif shock_type == ShockType.CARDIOGENIC:
        vitals = replace(vitals, cvp=max(vitals.cvp, 12.0),
                         cardiac_output=min(vitals.cardiac_output, 4.0))
    elif shock_type == ShockType.OBSTRUCTIVE:
        vitals = replace(vitals, cvp=max(vitals.cvp, 14.0),
                         cardiac_output=min(vitals.cardiac_output, 3.5))
    return vitals.with_map()


def maintain_lab_relationships(labs, shock_type: ShockType, rng: np.random.Generator):
    """Pre-renal urea:creatinine, pCO2/pH coupling and Hct = 3 x Hb."""
    if shock_type == ShockType.HYPOVOLEMIC and labs.creatinine > 0:
        if labs.urea / labs.creatinine < 20.0:
            labs = replace(labs, urea=labs.creatinine * rng.uniform(22.0, 30.0))

    expected_pco2 = 40.0 - (labs.ph - 7.4) * 30.0
    labs = replace(labs, pco2=expected_pco2 + (labs.pco2 - 40.0) * 0.3)
    return labs.with_hematocrit()


def randomize_profile(profile: ShockProfile, shock_type=None, rng=None) -> ShockProfile:
    """
    Jittered copy of a catalog profile.

    `rng` may be a seed or a numpy Generator; the same seed always yields
    the same presentation.
    """
    rng = make_rng(rng)
    shock_type = ShockType.from_label(shock_type or profile.shock_type)

    vitals = apply_shock_constraints(_jitter(profile.vitals, VITAL_JITTER, rng), shock_type)
    hemodynamics = _jitter(profile.hemodynamics, HEMODYNAMIC_JITTER, rng)
    labs = maintain_lab_relationships(_jitter(profile.labs, LAB_JITTER, rng), shock_type, rng)

    return replace(
        profile,
        vitals=vitals,
        hemodynamics=hemodynamics,
        labs=labs,
        degradation_rate=randomize_value(profile.degradation_rate, PROGRESSION_JITTER, rng),
        compensation_capacity=randomize_value(profile.compensation_capacity, PROGRESSION_JITTER, rng),
    )


def variation_description(shock_type) -> str:
    """Teaching note on how much a presentation may vary."""
    shock_type = ShockType.from_label(shock_type)
    if shock_type == ShockType.HYPOVOLEMIC:
        return ("Vital signs vary ±8-12% while keeping low CVP (<5 mmHg), high SVR "
                "(>1600 dyn·s/cm⁻⁵) and a narrow pulse pressure. Labs vary ±15-20% "
                "while keeping a BUN:Cr ratio >20:1 (pre-renal pattern).")
    if shock_type == ShockType.DISTRIBUTIVE:
        return ("Vital signs vary ±8-12% while keeping low SVR (<800 dyn·s/cm⁻⁵), "
                "high/normal CO (>4.5 L/min) and a wide pulse pressure. Labs vary "
                "±15-20% while keeping the lactic acidosis pattern.")
    if shock_type == ShockType.CARDIOGENIC:
        return ("Vital signs vary ±8-12% while keeping high CVP (>12 mmHg), low CO "
                "(<4.0 L/min) and signs of pulmonary congestion.")
    if shock_type == ShockType.OBSTRUCTIVE:
        return ("Vital signs vary ±8-12% while keeping very high CVP (>14 mmHg) and "
                "very low CO (<3.5 L/min). Labs vary ±15-20% based on etiology.")
    return "Vital signs and lab values vary ±8-15% while keeping the shock type characteristics."
