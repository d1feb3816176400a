"""
Mechanical ventilation and its coupling to the circulation.

Positive pressure raises intrathoracic pressure: venous return, preload and
output fall (most in hypovolemia and obstruction, while an overfilled
failing heart may even benefit), the CVP reading rises, and high PEEP or
large tidal volumes raise PVR. FiO2 and PEEP improve saturation.

The coupling is kept as offsets recorded on the VentilationState. Each tick
moves the circulation from the offsets already applied to the offsets the
current settings call for, so a steady setting does not compound and
extubation reverses it.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from shocksim.core.constants import VentilatorTuning
from shocksim.core.enums import ShockType
from shocksim.core.state import HemodynamicState, VentilationState, VitalSigns
from shocksim.physiology.hemodynamics import shift_map

logger = logging.getLogger(__name__)

TUNING = VentilatorTuning()

DEFAULT_PVR_WOOD = 1.25
MAX_PVR_WOOD = 6.25
MAX_CO_FRACTION = 0.8

EXTUBATION_OK = "Extubação realizada com sucesso"
EXTUBATION_DENIED = "Paciente não preenche critérios para extubação"


def estimate_peak_pressure(vent: VentilationState, tuning: VentilatorTuning = TUNING) -> float:
    """PIP = VT / compliance + resistance x flow + PEEP."""
    elastic = vent.tidal_volume / tuning.compliance_ml_cmh2o
    resistive = tuning.resistance_cmh2o_l_s * tuning.inspiratory_flow_l_min / 60.0
    return float(round(elastic + resistive + vent.peep))


def estimate_plateau_pressure(vent: VentilationState, tuning: VentilatorTuning = TUNING) -> float:
    return float(round(vent.tidal_volume / tuning.compliance_ml_cmh2o + vent.peep))


def driving_pressure(vent: VentilationState) -> float:
    return (vent.plateau_pressure or 0.0) - vent.peep


def mean_airway_pressure(vent: VentilationState, tuning: VentilatorTuning = TUNING) -> float:
    peak = vent.peak_pressure or estimate_peak_pressure(vent, tuning)
    return vent.peep + (peak - vent.peep) * tuning.mean_paw_fraction


def intubate(vent: VentilationState, vitals: VitalSigns, weight: float,
             tuning: VentilatorTuning = TUNING) -> VentilationState:
    """Lung-protective initial settings, tuned to the current saturation."""
    ibw = weight * tuning.ibw_fraction
    fio2, peep = 0.40, 5.0
    if vitals.spo2 < 88:
        fio2, peep = 1.0, 8.0
    elif vitals.spo2 < 92:
        fio2, peep = 0.60, 8.0
    rate = 16.0 if vitals.respiratory_rate > 25 else 12.0

    logger.info("Intubated: VT %.0f mL, RR %.0f, PEEP %.0f, FiO2 %.2f",
                round(ibw * tuning.protective_vt_ml_kg), rate, peep, fio2)
    return replace(
        vent,
        is_intubated=True,
        mode="VCV",
        tidal_volume=float(round(ibw * tuning.protective_vt_ml_kg)),
        respiratory_rate=rate,
        peep=peep,
        fio2=fio2,
        plateau_pressure=20.0,
        peak_pressure=25.0,
    )


def update_settings(vent: VentilationState, **changes) -> VentilationState:
    """Apply user changes and re-estimate the airway pressures."""
    updated = replace(vent, **changes)
    return replace(
        updated,
        peak_pressure=estimate_peak_pressure(updated),
        plateau_pressure=estimate_plateau_pressure(updated),
    )


def can_extubate(vent: VentilationState, vitals: VitalSigns) -> bool:
    return (vitals.spo2 >= 92 and vitals.respiratory_rate < 30 and vitals.map >= 65
            and vent.fio2 <= 0.4 and vent.peep <= 8)


def extubate(vent: VentilationState, vitals: VitalSigns) -> Tuple[bool, VentilationState, str]:
    """
    Returns (success, ventilation, message). On success the patient is on
    supplemental oxygen; the recorded offsets stay so the next tick can
    reverse them.
    """
    if not can_extubate(vent, vitals):
        logger.info("Extubation declined: criteria not met")
        return False, vent, EXTUBATION_DENIED
    extubated = VentilationState(
        fio2=0.30,
        applied_co_fraction=vent.applied_co_fraction,
        applied_spo2_boost=vent.applied_spo2_boost,
        applied_cvp_offset=vent.applied_cvp_offset,
        applied_preload_offset=vent.applied_preload_offset,
        applied_pvr_offset=vent.applied_pvr_offset,
        applied_hr_offset=vent.applied_hr_offset,
    )
    logger.info("Extubated")
    return True, extubated, EXTUBATION_OK


def ventilator_complications(vent: VentilationState, vitals: VitalSigns,
                             weight: float) -> List[str]:
    warnings: List[str] = []
    if not vent.is_intubated:
        return warnings
    if (vent.plateau_pressure or 0) > 30:
        warnings.append("⚠️ RISCO DE BAROTRAUMA: Pressão de Platô >30 cmH2O")
    if (vent.peak_pressure or 0) > 40:
        warnings.append("⚠️ PRESSÃO DE PICO MUITO ALTA: Risco de pneumotórax")
    ibw = weight * TUNING.ibw_fraction
    if ibw > 0 and vent.tidal_volume / ibw > 8:
        warnings.append("⚠️ RISCO DE VOLUTRAUMA: Volume corrente >8 mL/kg")
    if driving_pressure(vent) > 15:
        warnings.append("⚠️ DRIVING PRESSURE ELEVADA: Risco de lesão pulmonar")
    if vent.peep > 12 and vitals.map < 65:
        warnings.append("⚠️ PEEP ALTA com HIPOTENSÃO: Considerar reduzir PEEP")
    if vent.respiratory_rate > 20 and vent.peep > 8:
        warnings.append("⚠️ RISCO DE AUTO-PEEP: FR alta + PEEP alta")
    return warnings


@dataclass(frozen=True)
class Coupling:
    co_fraction: float = 0.0      # share of output lost (negative = gained)
    spo2_boost: float = 0.0
    cvp_offset: float = 0.0
    preload_offset: float = 0.0   # negative
    pvr_offset: float = 0.0       # Wood units
    hr_offset: float = 0.0


NO_COUPLING = Coupling()


def target_coupling(vent: VentilationState, vitals: VitalSigns, hemo: HemodynamicState,
                    shock_type: ShockType, oxygen_response: float = 1.0) -> Coupling:
    """Offsets the current settings call for."""
    if not vent.is_intubated:
        return NO_COUPLING
    paw = mean_airway_pressure(vent)
    pressure = paw / 20.0

    # Judge congestion on the underlying values, not the ventilated reading
    cvp = vitals.cvp - vent.applied_cvp_offset
    preload = hemo.preload - vent.applied_preload_offset

    if shock_type == ShockType.HYPOVOLEMIC:
        fraction = 0.15 + pressure * 0.25
    elif shock_type == ShockType.CARDIOGENIC:
        if cvp > 12 or preload > 70:
            fraction = -0.05  # afterload relief for a congested ventricle
        else:
            fraction = 0.10 + pressure * 0.15
    elif shock_type == ShockType.DISTRIBUTIVE:
        fraction = 0.05 + pressure * 0.15
    elif shock_type == ShockType.OBSTRUCTIVE:
        fraction = 0.20 + pressure * 0.30
    else:
        fraction = 0.10 + pressure * 0.20
    fraction = min(MAX_CO_FRACTION, fraction)

    pvr_offset = 0.0
    if vent.peep > 10 or vent.tidal_volume > 500:
        increase = (vent.peep - 10.0) * 20.0 + (vent.tidal_volume - 500.0) / 10.0
        pvr_offset = max(0.0, increase) / 80.0

    spo2_boost = ((vent.fio2 - 0.21) * 20.0 + min(10.0, vent.peep / 2.0)) * oxygen_response

    return Coupling(
        co_fraction=fraction,
        spo2_boost=spo2_boost,
        cvp_offset=paw / 7.5 * 0.5,
        preload_offset=-(pressure * 15.0),
        pvr_offset=pvr_offset,
        hr_offset=fraction * 30.0 if fraction > 0.10 else 0.0,
    )


def _shift(value: float, delta: float, low: Optional[float] = None,
           high: Optional[float] = None) -> float:
    """Move by delta without crossing a limit the move heads toward."""
    new = value + delta
    if delta > 0 and high is not None:
        new = max(value, min(high, new))
    elif delta < 0 and low is not None:
        new = min(value, max(low, new))
    return new


def apply_ventilation(vitals: VitalSigns, hemo: HemodynamicState, vent: VentilationState,
                      shock_type: ShockType, oxygen_response: float = 1.0):
    """
    Move the circulation to the coupling the current settings call for.
    Returns (vitals, hemodynamics, ventilation).
    """
    target = target_coupling(vent, vitals, hemo, shock_type, oxygen_response)
    applied = Coupling(vent.applied_co_fraction, vent.applied_spo2_boost, vent.applied_cvp_offset,
                       vent.applied_preload_offset, vent.applied_pvr_offset, vent.applied_hr_offset)
    if target == applied:
        return vitals, hemo, vent

    # Output and the reflexes it drives
    co_before = vitals.cardiac_output
    base_co = co_before / (1.0 - applied.co_fraction)
    co_after = max(1.5, base_co * (1.0 - target.co_fraction)) if target.co_fraction else base_co
    co_fraction = 1.0 - co_after / base_co if base_co > 0 else 0.0
    co_loss = co_before - co_after

    new_vitals = replace(
        vitals,
        cardiac_output=co_after,
        svr=min(2500.0, vitals.svr + co_loss * 100.0),
    )
    new_vitals = shift_map(new_vitals, -co_loss * 8.0)

    hr = _shift(vitals.heart_rate, target.hr_offset - applied.hr_offset, high=160.0)
    spo2 = _shift(vitals.spo2, target.spo2_boost - applied.spo2_boost, high=100.0)
    cvp = _shift(vitals.cvp, target.cvp_offset - applied.cvp_offset, low=0.0, high=20.0)
    new_vitals = replace(new_vitals, heart_rate=hr, spo2=spo2, cvp=cvp)

    pvr_delta = target.pvr_offset - applied.pvr_offset
    pvr_applied = applied.pvr_offset
    if pvr_delta:
        base_pvr = vitals.pvr if vitals.pvr is not None else DEFAULT_PVR_WOOD
        pvr = _shift(base_pvr, pvr_delta, low=0.0, high=MAX_PVR_WOOD)
        new_vitals = replace(new_vitals, pvr=pvr)
        pvr_applied += pvr - base_pvr

    preload = _shift(hemo.preload, target.preload_offset - applied.preload_offset, low=10.0)
    new_hemo = replace(hemo, preload=preload)

    new_vent = replace(
        vent,
        applied_co_fraction=co_fraction,
        applied_spo2_boost=applied.spo2_boost + (spo2 - vitals.spo2),
        applied_cvp_offset=applied.cvp_offset + (cvp - vitals.cvp),
        applied_preload_offset=applied.preload_offset + (preload - hemo.preload),
        applied_pvr_offset=pvr_applied,
        applied_hr_offset=applied.hr_offset + (hr - vitals.heart_rate),
    )
    return new_vitals, new_hemo, new_vent
