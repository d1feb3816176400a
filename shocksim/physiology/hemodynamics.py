"""
Hemodynamic formulas shared by the shock models and the orchestrator.

All functions are total: division by zero returns a sentinel instead of
raising, and every output is clamped to its physiological bounds.

Units:
    - MAP, SBP, DBP, CVP: mmHg
    - HR: bpm
    - SV: mL
    - CO: L/min
    - SVR: dyn*s/cm^5 (Wood units x 80)
"""

from dataclasses import replace
from typing import Optional

from shocksim.core.constants import (
    HEMODYNAMIC_BOUNDS, STROKE_VOLUME_SENTINEL, SVR_CONVERSION_FACTOR,
    SVR_SENTINEL, VITAL_BOUNDS,
)
from shocksim.core.state import HemodynamicState, VitalSigns
from shocksim.core.utils import clamp, clamp_fields
from .hemo_config import HemodynamicConfig

DEFAULT_CONFIG = HemodynamicConfig()


def calculate_map(systolic: float, diastolic: float) -> float:
    return diastolic + (systolic - diastolic) / 3.0


def calculate_cardiac_output(heart_rate: float, stroke_volume: float) -> float:
    return heart_rate * stroke_volume / 1000.0


def calculate_svr(map_mmhg: float, cvp: float, cardiac_output: float) -> float:
    if cardiac_output <= 0:
        return SVR_SENTINEL
    return (map_mmhg - cvp) / cardiac_output * SVR_CONVERSION_FACTOR


def calculate_stroke_volume(cardiac_output: float, heart_rate: float) -> float:
    if heart_rate <= 0:
        return STROKE_VOLUME_SENTINEL
    return cardiac_output * 1000.0 / heart_rate


def flow_derived_map(cardiac_output: float, svr: float, cvp: float) -> float:
    """MAP implied by Ohm's law for the circulation."""
    return cardiac_output * svr / SVR_CONVERSION_FACTOR + cvp


def frank_starling(preload: float, contractility: float,
                   config: HemodynamicConfig = DEFAULT_CONFIG) -> float:
    """
    Relative stroke-volume output (0..1) on the Frank-Starling curve.

    Ascending limb below 30, plateau up to 70, then an overload penalty
    capped at 40%.
    """
    c = contractility / 100.0
    if preload < config.fs_low_preload:
        return (preload / config.fs_low_preload) * c * config.fs_low_gain
    if preload <= config.fs_high_preload:
        return c
    penalty = min(config.fs_overload_penalty_max,
                  (preload - config.fs_high_preload) / 100.0)
    return c * (1.0 - penalty)


def _reflex_clamp(value: float, delta: float, limits) -> float:
    low, high = limits
    return clamp(value + delta, min(low, value), max(high, value))


def baroreceptor_compensation(vitals: VitalSigns, dt: float,
                              config: HemodynamicConfig = DEFAULT_CONFIG) -> VitalSigns:
    """
    Rate-limited drift of HR and SVR that pushes MAP toward ~75 mmHg.

    The reflex cannot drive HR or SVR past its limits, but it never pulls
    back a value the shock itself has already taken outside them.
    """
    error = config.baroreflex_target_map - vitals.map
    rate = dt * config.baro_rate_per_min
    hr_delta = clamp(error * config.baro_hr_gain, *config.baro_hr_limits) * rate
    svr_delta = clamp(error * config.baro_svr_gain, *config.baro_svr_limits) * rate
    return replace(
        vitals,
        heart_rate=_reflex_clamp(vitals.heart_rate, hr_delta, config.hr_limits),
        svr=_reflex_clamp(vitals.svr, svr_delta, config.svr_limits),
    )


def respiratory_compensation(respiratory_rate: float, ph: float, dt: float = 1.0,
                             config: HemodynamicConfig = DEFAULT_CONFIG) -> float:
    """Tachypnea for metabolic acidosis, slower breathing for alkalosis."""
    error = config.resp_target_ph - ph
    low, high = config.resp_rr_limits
    if error > 0:
        return min(high, respiratory_rate + error * config.resp_acidosis_gain * dt)
    return max(low, respiratory_rate - abs(error) * config.resp_alkalosis_gain * dt)


def clamp_vitals(vitals: VitalSigns) -> VitalSigns:
    """Clamp every field, then keep MAP consistent with the pressures."""
    bounded = clamp_fields(vitals, VITAL_BOUNDS)
    if bounded.diastolic > bounded.systolic:
        bounded = replace(bounded, diastolic=bounded.systolic)
    bounded = bounded.with_map()
    return clamp_fields(bounded, VITAL_BOUNDS)


def clamp_hemodynamics(hemo: HemodynamicState) -> HemodynamicState:
    return clamp_fields(hemo, HEMODYNAMIC_BOUNDS)


def shift_map(vitals: VitalSigns, delta: float) -> VitalSigns:
    """
    Move MAP by shifting systolic and diastolic together.

    Keeps the pulse pressure, so the change survives a later MAP rebuild.
    """
    return replace(
        vitals,
        systolic=vitals.systolic + delta,
        diastolic=vitals.diastolic + delta,
        map=vitals.map + delta,
    )


def set_map(vitals: VitalSigns, target: float) -> VitalSigns:
    return shift_map(vitals, target - vitals.map)


def recompute_derived(vitals: VitalSigns, hemo: HemodynamicState,
                      config: HemodynamicConfig = DEFAULT_CONFIG):
    """
    Rebuild MAP, pressures and stroke volume from the current flow state.

    MAP is a blend of the pressure-derived and flow-derived estimates;
    systolic/diastolic are then rebuilt around it from an SV-derived
    pulse pressure. Returns (vitals, hemodynamics).
    """
    pressure_map = calculate_map(vitals.systolic, vitals.diastolic)
    flow_map = flow_derived_map(vitals.cardiac_output, vitals.svr, vitals.cvp)
    w = config.map_blend_weight
    blended = w * pressure_map + (1.0 - w) * flow_map

    sv = calculate_stroke_volume(vitals.cardiac_output, vitals.heart_rate)
    pulse_pressure = max(config.pulse_pressure_floor, sv * config.pulse_pressure_sv_factor)

    rebuilt = replace(
        vitals,
        map=blended,
        systolic=blended + 2.0 * pulse_pressure / 3.0,
        diastolic=blended - pulse_pressure / 3.0,
    )
    rebuilt = clamp_vitals(rebuilt)
    hemo = clamp_hemodynamics(
        replace(hemo, heart_rate=rebuilt.heart_rate, stroke_volume=sv)
    )
    return rebuilt, hemo


def cardiac_index(cardiac_output: float, bsa: Optional[float]) -> float:
    if not bsa or bsa <= 0:
        return 0.0
    return cardiac_output / bsa
