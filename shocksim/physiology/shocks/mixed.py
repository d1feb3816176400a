"""
Mixed shock: several mechanisms at once, with no fixed direction.

The dominant component is classified after the fact from the current
hemodynamic pattern.
"""

from dataclasses import replace
from typing import List, Optional

from shocksim.core.enums import ShockType
from shocksim.core.state import SubtypeState, VitalSigns
from shocksim.physiology.hemodynamics import shift_map
from .base import ProgressionFlags, Progression, ShockModel

# Lactate rise per minute when nothing is being done.
UNTREATED_LACTATE_PER_MIN = 0.3
UNTREATED_MAP_DROP_PER_MIN = 2.0


class MixedModel(ShockModel):
    shock_type = ShockType.MIXED

    def progress(self, vitals: VitalSigns, elapsed: float, flags: ProgressionFlags,
                 subtype_state: Optional[SubtypeState] = None, dt: float = 1.0) -> Progression:
        changes = {}
        if flags.has_fluids:
            if vitals.cvp < 8:
                changes["cardiac_output"] = vitals.cardiac_output + 0.3 * dt
                changes["cvp"] = min(12.0, vitals.cvp + 1.5 * dt)
            elif vitals.cvp > 14:
                changes["spo2"] = max(75.0, vitals.spo2 - 2.0 * dt)

        if flags.has_vasopressors and vitals.svr < 800:
            changes["svr"] = vitals.svr + 150.0 * dt
            changes["systolic"] = vitals.systolic + 8.0 * dt

        if flags.has_inotropes:
            changes["cardiac_output"] = vitals.cardiac_output + 0.4 * dt

        new_vitals = replace(vitals, **changes)
        lactate_delta = 0.0
        if not (flags.has_vasopressors or flags.has_fluids or flags.has_inotropes):
            new_vitals = shift_map(new_vitals, -UNTREATED_MAP_DROP_PER_MIN * dt)
            lactate_delta = UNTREATED_LACTATE_PER_MIN * dt
        return Progression(new_vitals, lactate_delta=lactate_delta)


def identify_dominant_components(vitals: VitalSigns) -> List[str]:
    components = []
    if vitals.cvp < 4 and vitals.svr > 1600:
        components.append("Hipovolêmico")
    if vitals.cvp > 14 and (vitals.pcwp or 0) > 18:
        components.append("Cardiogênico")
    if vitals.svr < 800:
        components.append("Distributivo")
    if (vitals.pvr or 0) > 3.0:
        components.append("Obstrutivo")
    return components or ["Indeterminado"]
