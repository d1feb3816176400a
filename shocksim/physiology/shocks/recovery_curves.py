"""
Recovery after a definitive obstructive-shock procedure.

Mechanical relief (pericardiocentesis, chest tube) acts at once and then
settles; thrombolysis ramps up over 60-90 minutes as the clot dissolves.
Each procedure is a list of phases, each phase a set of per-minute rates
toward a cap (rising fields) or a floor (falling fields).
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

import numpy as np

from shocksim.core.enums import DefinitiveProcedure
from shocksim.core.state import VitalSigns

_RAMP_COL_TIME = 0
_RAMP_COL_EFFECT = 1


@dataclass(frozen=True)
class RecoveryPhase:
    until: float                         # minutes after the procedure
    rates: Dict[str, Tuple[float, float]]  # field -> (per-minute change, cap or floor)


FOREVER = float("inf")

RECOVERY_PHASES: Dict[DefinitiveProcedure, List[RecoveryPhase]] = {
    DefinitiveProcedure.PERICARDIOCENTESIS: [
        RecoveryPhase(10.0, {
            "cardiac_output": (0.5, 6.5),
            "cvp": (-3.0, 6.0),
            "systolic": (8.0, 115.0),
            "heart_rate": (-6.0, 75.0),
        }),
        RecoveryPhase(FOREVER, {
            "cardiac_output": (0.2, 7.0),
            "cvp": (-1.0, 5.0),
            "spo2": (1.0, 97.0),
        }),
    ],
    DefinitiveProcedure.CHEST_TUBE: [
        RecoveryPhase(15.0, {
            "spo2": (3.0, 95.0),
            "respiratory_rate": (-4.0, 14.0),
            "cardiac_output": (0.4, 6.0),
            "cvp": (-2.5, 5.0),
        }),
        RecoveryPhase(FOREVER, {
            "spo2": (0.5, 98.0),
            "cardiac_output": (0.15, 6.5),
        }),
    ],
    DefinitiveProcedure.THROMBOLYSIS: [
        # Scaled by the lysis ramp below
        RecoveryPhase(FOREVER, {
            "spo2": (0.8, 94.0),
            "cardiac_output": (0.4, 5.5),
            "svr": (-100.0, 900.0),
            "cvp": (-1.5, 8.0),
        }),
    ],
    DefinitiveProcedure.EMBOLECTOMY: [
        RecoveryPhase(30.0, {
            "cardiac_output": (0.35, 6.0),
            "spo2": (1.8, 96.0),
            "cvp": (-2.0, 7.0),
        }),
        RecoveryPhase(FOREVER, {
            "cardiac_output": (0.15, 6.5),
            "spo2": (0.5, 98.0),
        }),
    ],
}

_DECOMPRESSION = [
    RecoveryPhase(FOREVER, {
        "cardiac_output": (0.25, 5.8),
        "cvp": (-1.5, 6.0),
        "spo2": (0.8, 95.0),
    }),
]
RECOVERY_PHASES[DefinitiveProcedure.ABDOMINAL_DECOMPRESSION] = _DECOMPRESSION
RECOVERY_PHASES[DefinitiveProcedure.BRONCHODILATOR_SEDATION] = _DECOMPRESSION

RAMP_TABLES = {
    # minutes since procedure, fraction of full effect
    DefinitiveProcedure.THROMBOLYSIS: np.array([
        [0.0,  0.0],
        [90.0, 1.0],
    ]),
}


def effect_fraction(procedure: DefinitiveProcedure, minutes: float) -> float:
    table = RAMP_TABLES.get(procedure)
    if table is None:
        return 1.0
    return float(np.interp(minutes, table[:, _RAMP_COL_TIME], table[:, _RAMP_COL_EFFECT]))


def current_phase(procedure: DefinitiveProcedure, minutes: float):
    for phase in RECOVERY_PHASES.get(procedure, ()):
        if minutes < phase.until:
            return phase
    return None


def apply_recovery(vitals: VitalSigns, procedure: DefinitiveProcedure, minutes: float,
                   dt: float = 1.0) -> VitalSigns:
    """Advance the post-procedure recovery by dt minutes."""
    phase = current_phase(procedure, minutes)
    if phase is None:
        return vitals
    scale = effect_fraction(procedure, minutes) * dt
    changes = {}
    for name, (rate, limit) in phase.rates.items():
        value = getattr(vitals, name)
        # A value already past its limit is left alone, never pulled back
        if rate >= 0:
            changes[name] = max(value, min(limit, value + rate * scale))
        else:
            changes[name] = min(value, max(limit, value + rate * scale))
    return replace(vitals, **changes)
