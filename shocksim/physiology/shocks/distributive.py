"""
Distributive shock (septic, anaphylactic, neurogenic).

Vasodilation drives the picture: SVR falls over time, the heart compensates
with a high output until it tires, vasopressors reverse the process strongly
and fluids only moderately, with diminishing returns beyond about 4 L.
"""

import math
from dataclasses import dataclass, replace
from typing import Dict, Optional

from shocksim.core.enums import DistributiveSubtype, ShockType
from shocksim.core.state import DistributiveState, HemodynamicState, LabValues, VitalSigns
from shocksim.core.utils import clamp
from shocksim.physiology.hemodynamics import calculate_map
from .base import ProgressionFlags, Progression, Response, ShockModel, TreatmentContext


# Output clamps of the progression step.
SVR_RANGE = (280.0, 2000.0)
HR_RANGE = (45.0, 165.0)
CO_RANGE = (2.5, 12.0)
TEMP_RANGE = (35.0, 41.5)
SPO2_RANGE = (75.0, 100.0)


class DistributiveModel(ShockModel):
    shock_type = ShockType.DISTRIBUTIVE

    def progress(self, vitals: VitalSigns, elapsed: float, flags: ProgressionFlags,
                 subtype_state: Optional[DistributiveState] = None, dt: float = 1.0) -> Progression:
        state = subtype_state if isinstance(subtype_state, DistributiveState) else None
        subtype = state.subtype if state else None
        pf = elapsed / 60.0

        svr_d = -65.0 * pf
        hr_d = 8.0 * pf
        co_d = 0.3 * pf
        temp_d = 0.15 * pf
        spo2_d = -1.5 * pf

        # Myocardial depression once compensation runs out
        if elapsed > 360 and not flags.has_vasopressors:
            co_d = -0.8 * pf
            svr_d = -45.0 * pf

        if flags.has_fluids:
            svr_d += 35.0
            co_d += 0.5
            hr_d -= 10.0
            if state and state.fluid_volume_given > 4000:
                spo2_d -= 2.0
        else:
            svr_d -= 20.0
            hr_d += 5.0

        pressure_map = calculate_map(vitals.systolic, vitals.diastolic)
        if flags.has_vasopressors:
            svr_d += 180.0
            if pressure_map < 65:
                svr_d += 60.0
            else:
                spo2_d += 1.0
        elif elapsed > 60 and vitals.map < 65:
            svr_d -= 30.0
            co_d -= 0.3

        if subtype == DistributiveSubtype.SEPTIC:
            if not state.antibiotics_given and elapsed > 60:
                penalty = math.floor(elapsed / 60.0) * 0.1
                svr_d -= 20.0 * penalty
                temp_d += 0.3 * penalty
            if state.antibiotics_given:
                temp_d -= 0.2
                spo2_d += 0.5
            if state.corticosteroids_given and flags.has_vasopressors:
                svr_d += 25.0
            if state.lactate_clearing:
                co_d += 0.4
                spo2_d += 1.0
            elif elapsed > 120:
                co_d -= 0.5
            if state.procalcitonin is not None and state.procalcitonin > 10:
                svr_d -= 15.0
                temp_d += 0.2
        elif subtype == DistributiveSubtype.ANAPHYLACTIC:
            if flags.has_vasopressors and elapsed < 30:
                # Early epinephrine reverses anaphylaxis quickly
                svr_d += 250.0
                spo2_d += 5.0
                hr_d -= 20.0
            if vitals.spo2 < 90:
                spo2_d -= 3.0  # bronchospasm
        elif subtype == DistributiveSubtype.NEUROGENIC:
            # Loss of sympathetic tone: no compensatory tachycardia
            hr_d = -2.0 * pf
            temp_d = -0.1 * pf
            if not flags.has_vasopressors:
                svr_d -= 30.0

        new_vitals = replace(
            vitals,
            svr=clamp(vitals.svr + svr_d * dt, *SVR_RANGE),
            heart_rate=clamp(vitals.heart_rate + hr_d * dt, *HR_RANGE),
            cardiac_output=clamp(vitals.cardiac_output + co_d * dt, *CO_RANGE),
            temperature=clamp(vitals.temperature + temp_d * dt, *TEMP_RANGE),
            spo2=clamp(vitals.spo2 + spo2_d * dt, *SPO2_RANGE),
        )
        return Progression(new_vitals)

    def fluid_effect(self, vitals: VitalSigns, hemo: HemodynamicState, volume: float,
                     context: TreatmentContext) -> Response:
        state = context.subtype_state
        given = state.fluid_volume_given if isinstance(state, DistributiveState) else 0.0
        result = distributive_fluid_response(vitals, volume, given)
        return Response(
            vitals={
                "cardiac_output": result["co"],
                "svr": result["svr"],
                "map": result["map"],
                "cvp": min(12.0, vitals.cvp + volume / 500.0 * 1.5),
            },
            hemodynamics={"preload": min(75.0, hemo.preload + result["preload_increase"])},
        )

    def vasopressor_response(self, vitals: VitalSigns, hemo: HemodynamicState, drug: str,
                             dose: float, context: Optional[TreatmentContext] = None) -> Response:
        state = context.subtype_state if context else None
        result = distributive_vasopressor_response(vitals, drug, dose, state)
        response = Response(vitals={
            "svr": result["svr"],
            "map": result["map"],
            "cardiac_output": result["co"],
            "heart_rate": vitals.heart_rate + result["hr"],
        })
        if drug == "norepinephrine":
            response.hemodynamics["afterload"] = min(100.0, hemo.afterload + dose * 8.0)
        elif drug == "vasopressin":
            response.hemodynamics["afterload"] = min(100.0, hemo.afterload + dose * 600.0)
        elif drug == "epinephrine":
            response.hemodynamics["contractility"] = min(100.0, hemo.contractility + dose * 8.0)
        return response


def distributive_fluid_response(vitals: VitalSigns, bolus_volume: float,
                                cumulative_volume: float = 0.0) -> Dict[str, float]:
    """
    Response to one bolus.

    Fluid responsiveness needs a low CVP and some vascular tone left; the
    effect fades as the cumulative volume approaches 5 L.
    """
    responsive = vitals.cvp < 8 and vitals.svr > 400
    volume_factor = max(0.3, 1.0 - cumulative_volume / 5000.0)
    units = bolus_volume / 500.0

    if responsive:
        co_pct = units * 0.12 * volume_factor
        svr_pct = units * 0.06
    else:
        co_pct = units * 0.04 * volume_factor
        svr_pct = units * 0.02

    new_co = min(12.0, vitals.cardiac_output * (1.0 + co_pct))
    new_svr = min(1200.0, vitals.svr * (1.0 + svr_pct))
    map_gain = new_co * new_svr / 80.0 - vitals.cardiac_output * vitals.svr / 80.0

    return {
        "co": new_co,
        "svr": new_svr,
        "map": vitals.map + map_gain,
        "preload_increase": units * 8.0 * volume_factor,
    }


def distributive_vasopressor_response(vitals: VitalSigns, drug: str, dose: float,
                                      state: Optional[DistributiveState] = None) -> Dict[str, float]:
    """
    Absolute SVR/MAP/CO after one minute of a vasopressor, plus the HR change.

    Vasopressin doses are in U/min, the catecholamines in mcg/kg/min.
    """
    subtype = state.subtype if isinstance(state, DistributiveState) else None
    svr_inc = map_inc = co_change = hr_change = 0.0

    if drug == "norepinephrine":
        svr_inc = dose * 220.0
        map_inc = dose * 15.0
        co_change = dose * 0.15
        hr_change = dose * 4.0
        if subtype == DistributiveSubtype.SEPTIC:
            svr_inc *= 1.15
        if dose > 0.5 and not (state and state.corticosteroids_given):
            # Refractory range
            svr_inc *= 0.85
    elif drug == "vasopressin":
        svr_inc = dose * 4500.0
        map_inc = dose * 350.0
        if vitals.svr < 500:
            svr_inc *= 1.25
    elif drug == "epinephrine":
        svr_inc = dose * 180.0
        map_inc = dose * 18.0
        co_change = dose * 0.6
        hr_change = dose * 18.0
        if subtype == DistributiveSubtype.ANAPHYLACTIC:
            svr_inc *= 1.4
            map_inc *= 1.5
        if dose > 0.2:
            hr_change += 10.0

    if subtype == DistributiveSubtype.NEUROGENIC:
        hr_change *= 0.3

    return {
        "svr": clamp(vitals.svr + svr_inc, 300.0, 2200.0),
        "map": clamp(vitals.map + map_inc, 40.0, 120.0),
        "co": clamp(vitals.cardiac_output + co_change, 2.0, 12.0),
        "hr": hr_change,
    }


@dataclass(frozen=True)
class LactateClearance:
    clearing: bool
    clearance_percent: float
    trend: str  # improving, stable or worsening


def assess_lactate_clearance(initial: float, current: float, minutes: float) -> LactateClearance:
    """Target: at least 10% clearance per 2 hours."""
    if not initial or initial <= 0:
        return LactateClearance(False, 0.0, "stable")
    percent = (initial - current) / initial * 100.0
    expected = minutes / 120.0 * 10.0
    if percent >= expected:
        trend = "improving"
    elif percent > -5:
        trend = "stable"
    else:
        trend = "worsening"
    return LactateClearance(percent > 10, percent, trend)


def sofa_components(vitals: VitalSigns, labs: LabValues, has_vasopressors: bool,
                    vasopressor_dose: float) -> Dict[str, int]:
    """Cardiovascular, respiratory and renal SOFA points (0-4 each)."""
    cardiovascular = 1 if vitals.map < 70 else 0
    if has_vasopressors:
        if vasopressor_dose < 0.1:
            cardiovascular = 2
        elif vasopressor_dose <= 0.5:
            cardiovascular = 3
        else:
            cardiovascular = 4

    # FiO2 assumed 1.0
    ratio = labs.po2 or 80.0
    respiratory = sum(1 for limit in (400, 300, 200, 100) if ratio < limit)

    creatinine = labs.creatinine or 1.0
    renal = sum(1 for limit in (1.2, 2.0, 3.5, 5.0) if creatinine >= limit)

    return {"cardiovascular": cardiovascular, "respiratory": respiratory, "renal": renal}


def evaluate_performance(state: DistributiveState, vitals: VitalSigns, weight: float,
                         vasopressor_dose: float) -> Dict[str, float]:
    """
    Score the resuscitation against the one-hour sepsis bundle (0-100).
    Missing interventions count as 999 minutes.
    """
    time_to_fluids = state.fluid_start_time if state.fluid_start_time is not None else 999.0
    time_to_vaso = state.vasopressor_start_time if state.vasopressor_start_time is not None else 999.0
    time_to_abx = state.antibiotics_time if state.antibiotics_given and state.antibiotics_time is not None else 999.0

    target_volume = weight * 30.0
    appropriate_volume = target_volume * 0.8 <= state.fluid_volume_given <= target_volume * 1.5
    dose_ok = 0.01 <= vasopressor_dose <= 2.0
    map_ok = vitals.map >= 65

    score = 0
    if time_to_fluids <= 60:
        score += 20
    elif time_to_fluids <= 180:
        score += 10
    if state.subtype == DistributiveSubtype.SEPTIC:
        if time_to_abx <= 60:
            score += 25
        elif time_to_abx <= 180:
            score += 10
    if time_to_vaso <= 60:
        score += 15
    elif time_to_vaso <= 120:
        score += 8
    if appropriate_volume:
        score += 15
    if dose_ok:
        score += 10
    if map_ok:
        score += 15

    return {
        "time_to_fluids": time_to_fluids,
        "time_to_vasopressor": time_to_vaso,
        "time_to_antibiotics": time_to_abx,
        "total_fluid_given": state.fluid_volume_given,
        "appropriate_fluid_volume": appropriate_volume,
        "vasopressor_dose_appropriate": dose_ok,
        "target_map_achieved": map_ok,
        "overall_score": min(100, score),
    }
