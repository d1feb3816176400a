"""
Laboratory kinetics and lab/gasometry orders.

Lactate tracks perfusion, pH tracks lactate, HCO3 and pCO2 follow pH, and
creatinine lags MAP over hours. Values evolve every tick; an order only
stamps the time the results were last drawn.
"""

import logging
from dataclasses import replace
from typing import Tuple

from shocksim.core.constants import (
    GASOMETRY_REFRESH_INTERVAL_SIM, LAB_BOUNDS, LAB_REFRESH_INTERVAL_SIM,
)
from shocksim.core.enums import ShockType
from shocksim.core.state import LabValues, VitalSigns
from shocksim.core.utils import clamp, clamp_fields
from .hemo_config import HemodynamicConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = HemodynamicConfig()

# Hemoglobin rise per 300 mL unit of packed red cells (g/dL).
HB_PER_UNIT = 1.0
ML_PER_UNIT = 300.0


def perfusion_factor(map_mmhg: float, config: HemodynamicConfig = DEFAULT_CONFIG) -> float:
    if map_mmhg < 65:
        return config.perfusion_factor_shock
    if map_mmhg < 70:
        return config.perfusion_factor_border
    return config.perfusion_factor_good


def renal_factor(map_mmhg: float, config: HemodynamicConfig = DEFAULT_CONFIG) -> float:
    if map_mmhg < 65:
        return config.renal_factor_shock
    if map_mmhg < 70:
        return config.renal_factor_border
    return config.renal_factor_good


def update_labs(labs: LabValues, vitals: VitalSigns, dt: float, shock_type=None,
                lactate_delta: float = 0.0,
                config: HemodynamicConfig = DEFAULT_CONFIG) -> LabValues:
    """Advance the labs by dt minutes. `lactate_delta` is an extra direct change."""
    d_lactate = (perfusion_factor(vitals.map, config) - 1.0) * config.lactate_rate_per_hr * dt / 60.0
    lactate = clamp(labs.lactate + d_lactate + lactate_delta, *LAB_BOUNDS["lactate"])
    ph = clamp(labs.ph - (lactate - labs.lactate) * config.ph_per_lactate, *LAB_BOUNDS["ph"])

    if vitals.spo2 < 90:
        po2 = 60.0
    elif vitals.spo2 < 95:
        po2 = 75.0
    else:
        po2 = 90.0

    creatinine = clamp(
        labs.creatinine * renal_factor(vitals.map, config) ** (dt / config.creatinine_horizon_min),
        0.5, 10.0,
    )

    changes = {
        "lactate": lactate,
        "ph": ph,
        "hco3": clamp(24.0 + (ph - 7.4) * 20.0, 8.0, 32.0),
        "pco2": clamp(40.0 - (ph - 7.4) * 30.0, 20.0, 60.0),
        "po2": po2,
        "creatinine": creatinine,
    }
    if shock_type is not None and ShockType.from_label(shock_type) == ShockType.HYPOVOLEMIC:
        # Pre-renal: urea climbs faster than creatinine
        rate = 0.8 if vitals.map < 65 else 0.2
        changes["urea"] = clamp(labs.urea + rate * dt / 60.0, 10.0, 150.0)

    return clamp_fields(replace(labs, **changes), LAB_BOUNDS).with_hematocrit()


def transfuse(labs: LabValues, volume_ml: float) -> LabValues:
    """Hemoglobin after a packed red cell transfusion."""
    hemoglobin = labs.hemoglobin + volume_ml / ML_PER_UNIT * HB_PER_UNIT
    return clamp_fields(replace(labs, hemoglobin=hemoglobin), LAB_BOUNDS).with_hematocrit()


def _due(last: float, now: float, interval: float) -> bool:
    return last == 0 or now - last >= interval


def order_labs(labs: LabValues, now: float,
               interval: float = LAB_REFRESH_INTERVAL_SIM) -> Tuple[LabValues, bool]:
    """
    Draw a full lab panel. Returns (labs, drawn); a request before the
    refresh interval has passed is declined and leaves the labs untouched.
    """
    if not _due(labs.last_lab_time, now, interval):
        logger.info("Lab panel not refreshed: last drawn at %.0f min", labs.last_lab_time)
        return labs, False
    return replace(labs, last_lab_time=now), True


def order_gasometry(labs: LabValues, now: float,
                    interval: float = GASOMETRY_REFRESH_INTERVAL_SIM) -> Tuple[LabValues, bool]:
    if not _due(labs.last_gasometry_time, now, interval):
        logger.info("Blood gas not refreshed: last drawn at %.0f min", labs.last_gasometry_time)
        return labs, False
    return replace(labs, last_gasometry_time=now), True
