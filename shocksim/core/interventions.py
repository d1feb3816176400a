"""
Intervention API.

Pure functions that turn a user's intent into a new SimulationState, plus
the InterventionControllerMixin that exposes them on the SimulationEngine.

The core performs no dose-range validation: extreme doses simply produce
extreme responses.
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Optional, Tuple

from shocksim.core.constants import FLUID_VOLUMES, SINGLE_DOSE_INFUSION_MIN, get_difficulty
from shocksim.core.enums import FluidType, InterventionStatus, InterventionType
from shocksim.core.state import (
    ActiveIntervention, DistributiveState, HypovolemicState, InterventionRequest,
    ObstructiveState, SimulationState,
)
from shocksim.core.units import convert_dose
from shocksim.patient.comorbidities import comorbidity_modifiers
from shocksim.patient.patient import PatientData
from shocksim.physiology import labs as lab_orders
from shocksim.physiology import ventilation
from shocksim.physiology.shocks.obstructive import definitive_intervention
from shocksim.physiology.treatments import (
    apply_response, fluid_type_for, is_mechanical_support, is_single_dose_product,
    medication_class, resolve_drug, resolve_procedure,
)

if TYPE_CHECKING:
    from .engine import SimulationEngine

logger = logging.getLogger(__name__)

DEFAULT_BOLUS = {
    FluidType.CRYSTALLOID: FLUID_VOLUMES["crystalloid_bolus"],
    FluidType.COLLOID: FLUID_VOLUMES["colloid_bolus"],
    FluidType.BLOOD: FLUID_VOLUMES["blood_unit"],
}

ADJUST_UP = 1.25
ADJUST_DOWN = 0.8


def create_intervention(request: InterventionRequest, now: float, seq: int,
                        weight: float = 70.0) -> ActiveIntervention:
    """Record for a new request; it starts on the next tick."""
    kind = InterventionType(request.type)
    item = ActiveIntervention(
        id=f"{kind.value}-{seq}",
        type=kind,
        name=request.name,
        start_time=now,
        status=InterventionStatus.PENDING,
        rate=request.rate,
        duration=request.duration,
    )

    if kind == InterventionType.FLUID:
        fluid_type = FluidType(request.fluid_type or fluid_type_for(request.name) or FluidType.CRYSTALLOID)
        duration = request.duration
        if duration is None and is_single_dose_product(request.name):
            duration = SINGLE_DOSE_INFUSION_MIN
        volume = request.volume if request.volume is not None else DEFAULT_BOLUS[fluid_type]
        return replace(item, fluid_type=fluid_type, volume=volume, duration=duration)

    if kind in (InterventionType.VASOPRESSOR, InterventionType.INOTROPE):
        dose = request.dose
        if dose is not None:
            dose = convert_dose(dose, request.dose_unit, resolve_drug(request.name, kind), weight)
        return replace(item, dose=dose)

    if kind == InterventionType.PROCEDURE:
        return replace(item, procedure=request.procedure or resolve_procedure(request.name))

    return replace(item, dose=request.dose)


def _find(state: SimulationState, intervention_id: str) -> ActiveIntervention:
    for item in state.interventions:
        if item.id == intervention_id:
            return item
    logger.warning("Unknown intervention id %r", intervention_id)
    raise ValueError(f"Unknown intervention id: {intervention_id!r}")


def _replace_item(state: SimulationState, item: ActiveIntervention) -> SimulationState:
    return replace(state, interventions=tuple(
        item if i.id == item.id else i for i in state.interventions
    ))


def _apply_medication(state: SimulationState, item: ActiveIntervention) -> SimulationState:
    """Sticky effects of a medication on the archetype's state."""
    sub = state.subtype_state
    med = medication_class(item.name)
    if isinstance(sub, DistributiveState):
        if med == "antibiotics" and not sub.antibiotics_given:
            sub = replace(sub, antibiotics_given=True, antibiotics_time=state.sim_time)
        elif med == "corticosteroids":
            sub = replace(sub, corticosteroids_given=True)
    elif isinstance(sub, HypovolemicState) and med == "hemorrhage_control":
        sub = replace(sub, ongoing_loss=False)
        logger.info("Hemorrhage controlled at %.0f min", state.sim_time)
    return replace(state, subtype_state=sub)


def _apply_procedure(state: SimulationState, patient: PatientData, item: ActiveIntervention,
                     rng=None) -> Tuple[SimulationState, ActiveIntervention]:
    if is_mechanical_support(item.name):
        # Runs until stopped; the cardiogenic model reads it from the list
        return state, item

    sub = state.subtype_state
    if item.procedure is None or not isinstance(sub, ObstructiveState):
        logger.info("Procedure %s has no modelled effect in this case", item.name)
        return state, replace(item, status=InterventionStatus.COMPLETED)

    modifiers = comorbidity_modifiers(patient.conditions)
    difficulty = get_difficulty(patient.difficulty)
    scale = modifiers.complication_risk / difficulty.complication_threshold
    result = definitive_intervention(item.procedure, state.vitals, rng, scale)

    vitals, hemo = apply_response(state.vitals, state.hemodynamics, result.response)
    sub = replace(
        sub,
        definitive_intervention_done=True,
        intervention_type=item.procedure,
        intervention_time=state.sim_time,
        intervention_success=result.success,
    )
    state = replace(
        state,
        vitals=vitals,
        hemodynamics=hemo,
        subtype_state=sub,
        procedure_complications=state.procedure_complications + tuple(result.complications),
    )
    return state, replace(item, status=InterventionStatus.COMPLETED)


def start_intervention(state: SimulationState, patient: PatientData,
                       request: InterventionRequest, rng=None) -> Tuple[SimulationState, ActiveIntervention]:
    """
    Append a new intervention. Definitive procedures take effect at once,
    using `rng` for their complication roll.
    Returns (state, intervention).
    """
    item = create_intervention(request, state.sim_time, state.next_intervention_seq, patient.weight)
    state = replace(state, next_intervention_seq=state.next_intervention_seq + 1)

    if item.type == InterventionType.MEDICATION:
        state = _apply_medication(state, item)
    elif item.type == InterventionType.PROCEDURE:
        state, item = _apply_procedure(state, patient, item, rng)

    logger.info("Started %s %s (%s) at %.0f min", item.type.value, item.name, item.id, state.sim_time)
    return replace(state, interventions=state.interventions + (item,)), item


def stop_intervention(state: SimulationState, intervention_id: str) -> SimulationState:
    """Stop an intervention. Raises ValueError for an unknown id."""
    item = _find(state, intervention_id)
    if item.status in (InterventionStatus.STOPPED, InterventionStatus.COMPLETED):
        return state
    logger.info("Stopped %s (%s) at %.0f min", item.name, item.id, state.sim_time)
    return _replace_item(state, replace(item, status=InterventionStatus.STOPPED))


def adjust_intervention(state: SimulationState, intervention_id: str,
                        direction: str) -> SimulationState:
    """
    Step a dose or volume up (x1.25) or down (x0.8). Doses keep two
    decimals, volumes whole millilitres.
    """
    if direction not in ("up", "down"):
        raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
    item = _find(state, intervention_id)
    factor = ADJUST_UP if direction == "up" else ADJUST_DOWN
    changes = {}
    if item.dose:
        changes["dose"] = round(item.dose * factor, 2)
    if item.volume:
        changes["volume"] = float(round(item.volume * factor))
    if not changes:
        return state
    logger.info("Adjusted %s (%s) %s: %s", item.name, item.id, direction, changes)
    return _replace_item(state, replace(item, **changes))


def intubate_patient(state: SimulationState, patient: PatientData) -> SimulationState:
    if state.ventilation.is_intubated:
        return state
    return replace(state, ventilation=ventilation.intubate(
        state.ventilation, state.vitals, patient.weight
    ))


def extubate_patient(state: SimulationState) -> Tuple[SimulationState, bool, str]:
    if not state.ventilation.is_intubated:
        return state, False, ventilation.EXTUBATION_DENIED
    success, vent, message = ventilation.extubate(state.ventilation, state.vitals)
    return replace(state, ventilation=vent), success, message


def set_ventilator(state: SimulationState, **settings) -> SimulationState:
    """Change ventilator settings (tidal_volume, respiratory_rate, peep, fio2, mode)."""
    if not state.ventilation.is_intubated:
        raise ValueError("Patient is not intubated")
    logger.info("Ventilator settings: %s", settings)
    return replace(state, ventilation=ventilation.update_settings(state.ventilation, **settings))


def request_labs(state: SimulationState) -> Tuple[SimulationState, bool]:
    labs, drawn = lab_orders.order_labs(state.labs, state.sim_time)
    return replace(state, labs=labs), drawn


def request_gasometry(state: SimulationState) -> Tuple[SimulationState, bool]:
    labs, drawn = lab_orders.order_gasometry(state.labs, state.sim_time)
    return replace(state, labs=labs), drawn


class InterventionControllerMixin:
    """
    Mixin providing the intervention interface for SimulationEngine.

    Provides methods for:
    - Starting fluids, infusions, medications and procedures
    - Stopping and titrating running interventions
    - Airway management and lab orders
    """

    def start_intervention(self: "SimulationEngine", request: InterventionRequest) -> ActiveIntervention:
        self.state, item = start_intervention(self.state, self.patient, request, self.rng)
        return item

    def give_fluid(self: "SimulationEngine", name: str, volume: Optional[float] = None,
                   fluid_type: Optional[FluidType] = None) -> ActiveIntervention:
        return self.start_intervention(InterventionRequest(
            type=InterventionType.FLUID, name=name, volume=volume, fluid_type=fluid_type,
        ))

    def start_infusion(self: "SimulationEngine", kind: InterventionType, name: str,
                       dose: Optional[float] = None, dose_unit: Optional[str] = None) -> ActiveIntervention:
        return self.start_intervention(InterventionRequest(
            type=kind, name=name, dose=dose, dose_unit=dose_unit,
        ))

    def give_medication(self: "SimulationEngine", name: str) -> ActiveIntervention:
        return self.start_intervention(InterventionRequest(type=InterventionType.MEDICATION, name=name))

    def perform_procedure(self: "SimulationEngine", name: str) -> ActiveIntervention:
        return self.start_intervention(InterventionRequest(type=InterventionType.PROCEDURE, name=name))

    def stop_intervention(self: "SimulationEngine", intervention_id: str):
        self.state = stop_intervention(self.state, intervention_id)

    def adjust_dose(self: "SimulationEngine", intervention_id: str, direction: str):
        self.state = adjust_intervention(self.state, intervention_id, direction)

    def intubate(self: "SimulationEngine"):
        self.state = intubate_patient(self.state, self.patient)

    def extubate(self: "SimulationEngine") -> Tuple[bool, str]:
        self.state, success, message = extubate_patient(self.state)
        return success, message

    def set_ventilator(self: "SimulationEngine", **settings):
        self.state = set_ventilator(self.state, **settings)

    def order_labs(self: "SimulationEngine") -> bool:
        self.state, drawn = request_labs(self.state)
        return drawn

    def order_gasometry(self: "SimulationEngine") -> bool:
        self.state, drawn = request_gasometry(self.state)
        return drawn
