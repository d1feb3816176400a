"""
Physiological and Numerical Constants for ShockSim.

This module centralizes the lookup tables shared by the shock models,
the orchestrator and the outcome tracker.

NOTE: Only add constants here that are ACTIVELY IMPORTED elsewhere.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

# Time scaling.

# One tick of the reference driver covers one simulated minute, and the
# simulation runs 12x faster than wall-clock time.
REAL_TO_SIM_RATIO = 12.0
SIM_MINUTES_PER_UPDATE = 1.0
UPDATE_INTERVAL_SEC = 5.0

# Lab/gasometry refresh intervals (real minutes, converted to sim minutes).
LAB_REFRESH_INTERVAL_REAL = 300.0
GASOMETRY_REFRESH_INTERVAL_REAL = 30.0
LAB_REFRESH_INTERVAL_SIM = LAB_REFRESH_INTERVAL_REAL * REAL_TO_SIM_RATIO
GASOMETRY_REFRESH_INTERVAL_SIM = GASOMETRY_REFRESH_INTERVAL_REAL * REAL_TO_SIM_RATIO

# Unit conversions.
SVR_CONVERSION_FACTOR = 80.0  # mmHg*min/L -> dyn*s/cm^5
ML_PER_LITER = 1000.0
INSENSIBLE_LOSS_ML_KG_HR = 0.5
BASELINE_URINE_ML_KG_HR = 0.75
BLOOD_VOLUME_ML_KG = 70.0

# Division-by-zero sentinels.
SVR_SENTINEL = 2000.0
STROKE_VOLUME_SENTINEL = 0.0

# Normal ranges with alarm limits.
NORMAL_RANGES: Dict[str, Dict[str, float]] = {
    "heart_rate": {"min": 60, "max": 100, "critical_low": 40, "critical_high": 140},
    "systolic": {"min": 90, "max": 140, "critical_low": 70, "critical_high": 180},
    "diastolic": {"min": 60, "max": 90, "critical_low": 40, "critical_high": 110},
    "map": {"min": 65, "max": 105, "critical_low": 55, "critical_high": 120},
    "spo2": {"min": 95, "max": 100, "critical_low": 88, "critical_high": 100},
    "respiratory_rate": {"min": 12, "max": 20, "critical_low": 8, "critical_high": 30},
    "temperature": {"min": 36.5, "max": 37.5, "critical_low": 35, "critical_high": 39},
    "cvp": {"min": 2, "max": 8, "critical_low": 0, "critical_high": 15},
}

HEMODYNAMIC_NORMALS: Dict[str, Tuple[float, float]] = {
    "cardiac_output": (4.0, 8.0),
    "cardiac_index": (2.5, 4.0),
    "stroke_volume": (60.0, 100.0),
    "svr": (800.0, 1200.0),
    "pvr": (0.25, 1.6),
    "pcwp": (6.0, 12.0),
}

LAB_NORMALS: Dict[str, Tuple[float, float]] = {
    "ph": (7.35, 7.45),
    "pco2": (35.0, 45.0),
    "po2": (80.0, 100.0),
    "hco3": (22.0, 28.0),
    "lactate": (0.5, 2.0),
    "hemoglobin": (12.0, 16.0),
    "hematocrit": (36.0, 48.0),
    "wbc": (4000.0, 11000.0),
    "platelets": (150000.0, 400000.0),
    "potassium": (3.5, 5.0),
    "sodium": (135.0, 145.0),
    "magnesium": (1.7, 2.2),
    "chloride": (96.0, 106.0),
    "creatinine": (0.6, 1.2),
    "urea": (10.0, 50.0),
}

# Reference normals used to scale initial deviation by difficulty.
SEVERITY_REFERENCE = {
    "heart_rate": 75.0,
    "systolic": 120.0,
    "diastolic": 75.0,
    "spo2": 98.0,
    "respiratory_rate": 16.0,
    "temperature": 37.0,
}

# Absolute bounds enforced on every tick (clamping invariant).
VITAL_BOUNDS: Dict[str, Tuple[float, float]] = {
    "heart_rate": (20.0, 220.0),
    "systolic": (30.0, 260.0),
    "diastolic": (15.0, 160.0),
    "map": (20.0, 200.0),
    "spo2": (50.0, 100.0),
    "respiratory_rate": (4.0, 60.0),
    "temperature": (32.0, 42.0),
    "cvp": (0.0, 30.0),
    "pcwp": (0.0, 40.0),
    "pvr": (0.0, 20.0),  # Wood units
    "cardiac_output": (1.0, 12.0),
    "svr": (250.0, 2500.0),
}

LAB_BOUNDS: Dict[str, Tuple[float, float]] = {
    "ph": (6.8, 7.8),
    "pco2": (15.0, 80.0),
    "po2": (30.0, 500.0),
    "hco3": (5.0, 45.0),
    "lactate": (0.5, 20.0),
    "hemoglobin": (4.0, 20.0),
    "hematocrit": (12.0, 60.0),
    "wbc": (500.0, 60000.0),
    "platelets": (5000.0, 800000.0),
    "potassium": (2.0, 8.0),
    "sodium": (115.0, 160.0),
    "magnesium": (0.5, 4.0),
    "chloride": (80.0, 130.0),
    "creatinine": (0.3, 15.0),
    "urea": (5.0, 200.0),
}

HEMODYNAMIC_BOUNDS: Dict[str, Tuple[float, float]] = {
    "preload": (0.0, 100.0),
    "contractility": (0.0, 100.0),
    "afterload": (0.0, 100.0),
    "heart_rate": (20.0, 220.0),
    "stroke_volume": (0.0, 150.0),
}


@dataclass(frozen=True)
class DifficultyModifiers:
    """Per-difficulty scaling of the case."""
    baseline_severity: float = 1.0
    treatment_efficacy: float = 1.0
    degradation_speed: float = 1.0
    complication_threshold: float = 1.0
    hint_level: int = 1


DIFFICULTY_SETTINGS: Dict[str, DifficultyModifiers] = {
    "Acadêmico": DifficultyModifiers(0.7, 1.5, 0.6, 1.4, 3),
    "Médico": DifficultyModifiers(0.85, 1.2, 0.8, 1.2, 2),
    "Clínico": DifficultyModifiers(1.0, 1.0, 1.0, 1.0, 1),
    "Intensivista": DifficultyModifiers(1.3, 0.8, 1.5, 0.7, 0),
}


def get_difficulty(name: str) -> DifficultyModifiers:
    """Unknown difficulty labels fall back to the neutral setting."""
    return DIFFICULTY_SETTINGS.get(name, DIFFICULTY_SETTINGS["Clínico"])


@dataclass(frozen=True)
class DoseRange:
    min: float
    max: float
    typical: float
    unit: str


DRUG_DOSES: Dict[str, DoseRange] = {
    "norepinephrine": DoseRange(0.01, 3.0, 0.1, "mcg/kg/min"),
    "vasopressin": DoseRange(0.01, 0.04, 0.03, "U/min"),
    "dobutamine": DoseRange(2.5, 20.0, 5.0, "mcg/kg/min"),
    "epinephrine": DoseRange(0.01, 1.0, 0.1, "mcg/kg/min"),
    "milrinone": DoseRange(0.125, 0.75, 0.375, "mcg/kg/min"),
    "dopamine": DoseRange(2.0, 20.0, 5.0, "mcg/kg/min"),
}

FLUID_VOLUMES = {
    "crystalloid_bolus": 500.0,
    "colloid_bolus": 250.0,
    "blood_unit": 300.0,
    "maintenance_rate": 100.0,  # mL/h
}

# Single-dose products run over a fixed infusion window (minutes).
SINGLE_DOSE_INFUSION_MIN = 30.0

ALERT_THRESHOLDS = {
    "critical_hr": (40.0, 150.0),
    "critical_systolic_low": 70.0,
    "critical_map_low": 55.0,
    "critical_spo2": 85.0,
    "critical_temp": (35.0, 39.5),
}

# Vitals/labs considered incompatible with life.
INCOMPATIBLE_VITALS = {
    "map": 40.0,
    "heart_rate": (30.0, 180.0),
    "spo2": 70.0,
    "ph": (6.8, 7.8),
    "lactate": 15.0,
    "cardiac_output": 2.0,
    "potassium": (2.0, 7.5),
}


@dataclass(frozen=True)
class OutcomeTuning:
    """Death/survival timing thresholds (simulation minutes)."""
    contiguous_death_minutes: float = 30.0
    episode_count_threshold: int = 5
    episode_duration_minutes: float = 15.0
    cumulative_death_minutes: float = 60.0
    required_stability_minutes: float = 60.0


@dataclass(frozen=True)
class VentilatorTuning:
    """Lung model used to estimate airway pressures."""
    compliance_ml_cmh2o: float = 50.0
    resistance_cmh2o_l_s: float = 5.0
    inspiratory_flow_l_min: float = 40.0
    mean_paw_fraction: float = 0.33
    ibw_fraction: float = 0.9
    protective_vt_ml_kg: float = 6.5
