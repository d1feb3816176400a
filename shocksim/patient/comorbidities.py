"""
Comorbidity modifier layer.

Each known condition contributes additive deltas to the presentation and
multiplicative factors to treatment response and deterioration. Deltas are
summed and factors multiplied, so the result does not depend on the order
the conditions are listed in.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Tuple

from shocksim.core.utils import clamp_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComorbidityEffect:
    name: str
    vital_deltas: Dict[str, float] = field(default_factory=dict)
    hemodynamic_deltas: Dict[str, float] = field(default_factory=dict)
    lab_deltas: Dict[str, float] = field(default_factory=dict)

    # Treatment response multipliers (1.0 = normal)
    fluid_response: float = 1.0
    vasopressor_response: float = 1.0
    inotrope_response: float = 1.0
    oxygen_response: float = 1.0

    # Risk multipliers
    deterioration_rate: float = 1.0
    complication_risk: float = 1.0


@dataclass(frozen=True)
class ComorbidityModifiers:
    """Combined multipliers for a patient's comorbidity list."""
    fluid: float = 1.0
    vasopressor: float = 1.0
    inotrope: float = 1.0
    oxygen: float = 1.0
    deterioration_rate: float = 1.0
    complication_risk: float = 1.0


COMORBIDITY_EFFECTS: Dict[str, ComorbidityEffect] = {
    "Insuficiência Cardíaca Prévia": ComorbidityEffect(
        name="Insuficiência Cardíaca Prévia",
        vital_deltas={"cardiac_output": -1.5, "systolic": -10, "respiratory_rate": 4, "spo2": -3,
                      "svr": 200},
        hemodynamic_deltas={"contractility": -20, "preload": 15},
        lab_deltas={"creatinine": 0.3, "urea": 10, "hco3": -2},
        fluid_response=0.4, vasopressor_response=0.9, inotrope_response=1.3, oxygen_response=0.85,
        deterioration_rate=1.4, complication_risk=1.5,
    ),
    "Hipertensão Arterial Sistêmica": ComorbidityEffect(
        name="Hipertensão Arterial Sistêmica",
        vital_deltas={"systolic": 15, "diastolic": 10, "svr": 250},
        hemodynamic_deltas={"afterload": 15, "contractility": -8},
        lab_deltas={"creatinine": 0.2},
        fluid_response=0.7, vasopressor_response=1.1, inotrope_response=0.95, oxygen_response=1.0,
        deterioration_rate=1.1, complication_risk=1.3,
    ),
    "DPOC": ComorbidityEffect(
        name="DPOC",
        vital_deltas={"spo2": -5, "respiratory_rate": 6, "pvr": 1.5},
        hemodynamic_deltas={"contractility": -5},
        lab_deltas={"ph": -0.03, "hco3": 3, "hemoglobin": 1.5},
        fluid_response=0.85, vasopressor_response=0.9, inotrope_response=1.0, oxygen_response=0.6,
        deterioration_rate=1.3, complication_risk=1.4,
    ),
    "Doença Renal Crônica": ComorbidityEffect(
        name="Doença Renal Crônica",
        vital_deltas={"systolic": 12, "diastolic": 8, "svr": 150},
        hemodynamic_deltas={"preload": 10},
        lab_deltas={"creatinine": 2.0, "urea": 40, "potassium": 0.5, "hemoglobin": -3,
                    "ph": -0.05, "hco3": -4},
        fluid_response=0.5, vasopressor_response=1.0, inotrope_response=0.9, oxygen_response=0.9,
        deterioration_rate=1.5, complication_risk=1.6,
    ),
    "Anemia": ComorbidityEffect(
        name="Anemia",
        vital_deltas={"heart_rate": 15, "cardiac_output": 0.8, "spo2": -2, "svr": -100},
        hemodynamic_deltas={"contractility": 5},
        lab_deltas={"hemoglobin": -4},
        fluid_response=0.8, vasopressor_response=0.7, inotrope_response=0.8, oxygen_response=0.5,
        deterioration_rate=1.3, complication_risk=1.2,
    ),
}

# Safety bounds re-applied after the deltas are summed.
VITAL_SAFETY_BOUNDS: Dict[str, Tuple[float, float]] = {
    "heart_rate": (30.0, 200.0),
    "systolic": (50.0, 250.0),
    "diastolic": (30.0, 150.0),
    "spo2": (60.0, 100.0),
    "respiratory_rate": (6.0, 50.0),
    "cardiac_output": (1.5, 12.0),
}

HEMODYNAMIC_SAFETY_BOUNDS: Dict[str, Tuple[float, float]] = {
    "contractility": (10.0, 100.0),
    "preload": (10.0, 100.0),
    "afterload": (20.0, 100.0),
}

LAB_SAFETY_BOUNDS: Dict[str, Tuple[float, float]] = {
    "hemoglobin": (4.0, 20.0),
    "creatinine": (0.3, 15.0),
    "urea": (5.0, 200.0),
    "ph": (6.8, 7.8),
    "hco3": (5.0, 45.0),
    "potassium": (2.0, 8.0),
    "sodium": (115.0, 160.0),
}


def known_effects(conditions: Iterable[str]) -> List[ComorbidityEffect]:
    effects = []
    for condition in conditions or ():
        effect = COMORBIDITY_EFFECTS.get(condition)
        if effect is None:
            logger.debug("Ignoring unknown comorbidity %r", condition)
            continue
        effects.append(effect)
    return effects


def _summed(effects: List[ComorbidityEffect], attr: str) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for effect in effects:
        for name, delta in getattr(effect, attr).items():
            totals[name] = totals.get(name, 0.0) + delta
    return totals


def _add(obj, deltas: Dict[str, float]):
    changes = {}
    for name, delta in deltas.items():
        value = getattr(obj, name)
        if value is None:
            # Optional fields without a baseline stay unknown
            continue
        changes[name] = value + delta
    return replace(obj, **changes) if changes else obj


def apply_to_vitals(vitals, conditions: Iterable[str]):
    effects = known_effects(conditions)
    if not effects:
        return vitals
    modified = clamp_fields(_add(vitals, _summed(effects, "vital_deltas")), VITAL_SAFETY_BOUNDS)
    return modified.with_map()


def apply_to_hemodynamics(hemodynamics, conditions: Iterable[str]):
    effects = known_effects(conditions)
    if not effects:
        return hemodynamics
    return clamp_fields(
        _add(hemodynamics, _summed(effects, "hemodynamic_deltas")), HEMODYNAMIC_SAFETY_BOUNDS
    )


def apply_to_labs(labs, conditions: Iterable[str]):
    effects = known_effects(conditions)
    if not effects:
        return labs
    modified = clamp_fields(_add(labs, _summed(effects, "lab_deltas")), LAB_SAFETY_BOUNDS)
    return modified.with_hematocrit()


def apply_comorbidities(base, conditions: Iterable[str]):
    """
    Apply every known condition to a profile-like object carrying
    `vitals`, `hemodynamics` and `labs`. Returns a modified copy.
    """
    conditions = list(conditions or ())
    return replace(
        base,
        vitals=apply_to_vitals(base.vitals, conditions),
        hemodynamics=apply_to_hemodynamics(base.hemodynamics, conditions),
        labs=apply_to_labs(base.labs, conditions),
    )


def comorbidity_modifiers(conditions: Iterable[str]) -> ComorbidityModifiers:
    """Product of every condition's response and risk multipliers."""
    result = ComorbidityModifiers()
    for effect in known_effects(conditions):
        result = ComorbidityModifiers(
            fluid=result.fluid * effect.fluid_response,
            vasopressor=result.vasopressor * effect.vasopressor_response,
            inotrope=result.inotrope * effect.inotrope_response,
            oxygen=result.oxygen * effect.oxygen_response,
            deterioration_rate=result.deterioration_rate * effect.deterioration_rate,
            complication_risk=result.complication_risk * effect.complication_risk,
        )
    return result
