"""
Step stage functions for the simulation engine.

This module contains the per-tick stages that `engine.step` chains
together. Each stage is a pure function of its inputs so the whole tick
stays a pure function of (state, patient, dt).
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from shocksim.core.enums import FluidType, InterventionType, ShockType
from shocksim.core.state import (
    ActiveIntervention, CardiogenicState, DistributiveState, FluidBalance,
    LabValues, SimulationState, SubtypeState, VentilationState,
    VitalSigns,
)
from shocksim.patient.patient import PatientData
from shocksim.physiology.fluids import add_fluid
from shocksim.physiology.labs import transfuse
from shocksim.physiology.shocks.base import ProgressionFlags
from shocksim.physiology.shocks.distributive import assess_lactate_clearance
from shocksim.physiology.shocks.hypovolemic import screen_complications
from shocksim.physiology.treatments import is_mechanical_support, medication_class
from shocksim.physiology.ventilation import ventilator_complications


def _running_medication_classes(interventions: Iterable[ActiveIntervention]) -> set:
    return {
        medication_class(i.name) for i in interventions
        if i.is_running and i.type == InterventionType.MEDICATION
    }


def sync_subtype_flags(subtype_state: Optional[SubtypeState],
                       interventions: Tuple[ActiveIntervention, ...],
                       now: float) -> Optional[SubtypeState]:
    """Mirror the running therapy into the archetype's state."""
    if isinstance(subtype_state, CardiogenicState):
        classes = _running_medication_classes(interventions)
        support = any(
            i.is_running and i.type == InterventionType.PROCEDURE and is_mechanical_support(i.name)
            for i in interventions
        )
        return replace(
            subtype_state,
            has_diuretics="diuretic" in classes,
            has_vasodilators="vasodilator" in classes,
            has_mechanical_support=support,
        )
    if isinstance(subtype_state, DistributiveState):
        if (subtype_state.vasopressor_start_time is None
                and any(i.is_running and i.type == InterventionType.VASOPRESSOR for i in interventions)):
            return replace(subtype_state, vasopressor_start_time=now)
    return subtype_state


def progression_flags(interventions: Tuple[ActiveIntervention, ...], balance: FluidBalance,
                      patient: PatientData, ventilation: VentilationState,
                      now: float) -> ProgressionFlags:
    def running(kind):
        return any(i.is_running and i.type == kind for i in interventions)

    return ProgressionFlags(
        has_vasopressors=running(InterventionType.VASOPRESSOR),
        has_inotropes=running(InterventionType.INOTROPE),
        has_fluids=running(InterventionType.FLUID),
        net_balance=balance.net_balance,
        weight=patient.weight,
        ventilated=ventilation.is_intubated,
        now=now,
    )


def deliver_boluses(balance: FluidBalance, labs: LabValues,
                    subtype_state: Optional[SubtypeState],
                    boluses: Iterable[ActiveIntervention], now: float):
    """Book delivered boluses. Returns (balance, labs, subtype_state)."""
    for item in boluses:
        volume = item.volume or 0.0
        balance = add_fluid(balance, volume, item.fluid_type)
        if item.fluid_type == FluidType.BLOOD:
            labs = transfuse(labs, volume)
        if isinstance(subtype_state, DistributiveState):
            subtype_state = replace(
                subtype_state,
                fluid_volume_given=subtype_state.fluid_volume_given + volume,
                fluid_start_time=(subtype_state.fluid_start_time
                                  if subtype_state.fluid_start_time is not None else now),
            )
    return balance, labs, subtype_state


def update_lactate_clearing(subtype_state: Optional[SubtypeState], labs: LabValues,
                            now: float) -> Optional[SubtypeState]:
    if not isinstance(subtype_state, DistributiveState) or labs.initial_lactate is None:
        return subtype_state
    clearance = assess_lactate_clearance(labs.initial_lactate, labs.lactate, now)
    if clearance.clearing == subtype_state.lactate_clearing:
        return subtype_state
    return replace(subtype_state, lactate_clearing=clearance.clearing)


def tick_complications(state: SimulationState, vitals: VitalSigns, labs: LabValues,
                       balance: FluidBalance, shock_type: ShockType, now: float) -> Tuple[str, ...]:
    """Persistent procedure complications plus the current screen findings."""
    found: List[str] = list(state.procedure_complications)
    if shock_type == ShockType.HYPOVOLEMIC:
        screen = screen_complications(vitals, labs, balance.net_balance, now)
        found += [c for c in screen.complications if c not in found]
    return tuple(found)


def tick_warnings(warnings: List[str], ventilation: VentilationState, vitals: VitalSigns,
                  weight: float) -> Tuple[str, ...]:
    return tuple(warnings + ventilator_complications(ventilation, vitals, weight))


def is_deteriorating(before: VitalSigns, after: VitalSigns, before_labs: LabValues,
                     after_labs: LabValues) -> bool:
    """Falling pressure or rising lactate over the tick."""
    return after.map < before.map - 0.1 or after_labs.lactate > before_labs.lactate + 0.01

