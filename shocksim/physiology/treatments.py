"""
Treatment effect composer.

Walks the intervention list in order and folds each running treatment's
shock-specific response into the circulation. Responses are scaled by the
patient's comorbidity multiplier for that treatment class and by the
difficulty's treatment efficacy.

Infusion responses are defined per simulated minute and carry absolute
caps, so a tick of dt minutes applies int(dt) whole minutes and relaxes
toward one more minute for the remainder. Boluses are delivered once, on
the first tick after their start time.
"""

import logging
import unicodedata
from dataclasses import dataclass, fields, replace
from typing import Callable, Iterable, Optional, Tuple

from shocksim.core.constants import DRUG_DOSES, HEMODYNAMIC_BOUNDS, VITAL_BOUNDS
from shocksim.core.enums import (
    DefinitiveProcedure, FluidType, InterventionStatus, InterventionType,
    ShockType,
)
from shocksim.core.state import ActiveIntervention, DistributiveState, HemodynamicState, VitalSigns
from shocksim.core.utils import clamp_fields
from shocksim.patient.comorbidities import ComorbidityModifiers
from .hemodynamics import set_map
from .shocks.base import Response, TreatmentContext
from .shocks.registry import get_model

logger = logging.getLogger(__name__)


def _key(name: str) -> str:
    """Lowercase, accent-free lookup key."""
    text = unicodedata.normalize("NFKD", name or "")
    return "".join(c for c in text if not unicodedata.combining(c)).strip().lower()


DRUG_ALIASES = {
    "noradrenalina": "norepinephrine",
    "norepinefrina": "norepinephrine",
    "norepinephrine": "norepinephrine",
    "vasopressina": "vasopressin",
    "vasopressin": "vasopressin",
    "adrenalina": "epinephrine",
    "epinefrina": "epinephrine",
    "epinephrine": "epinephrine",
    "dobutamina": "dobutamine",
    "dobutamine": "dobutamine",
    "milrinone": "milrinone",
    "milrinona": "milrinone",
    "dopamina": "dopamine",
    "dopamine": "dopamine",
}

DEFAULT_DRUG = {
    InterventionType.VASOPRESSOR: "epinephrine",
    InterventionType.INOTROPE: "dobutamine",
}

FLUID_PRODUCTS = {
    "soro fisiologico": FluidType.CRYSTALLOID,
    "ringer lactato": FluidType.CRYSTALLOID,
    "albumina": FluidType.COLLOID,
    "concentrado de hemacias": FluidType.BLOOD,
}
# Products given as a single fixed dose over the infusion window.
SINGLE_DOSE_PRODUCTS = {"albumina", "concentrado de hemacias"}

MEDICATION_CLASSES = {
    "antibioticos": "antibiotics",
    "antibiotics": "antibiotics",
    "corticoides": "corticosteroids",
    "corticosteroides": "corticosteroids",
    "hidrocortisona": "corticosteroids",
    "furosemida": "diuretic",
    "diuretico": "diuretic",
    "nitroglicerina": "vasodilator",
    "nitroprussiato": "vasodilator",
    "controle de hemorragia": "hemorrhage_control",
}

MECHANICAL_SUPPORT = {"balao intra-aortico", "iabp", "impella", "ecmo"}

PROCEDURE_NAMES = {
    "pericardiocentese": DefinitiveProcedure.PERICARDIOCENTESIS,
    "drenagem toracica": DefinitiveProcedure.CHEST_TUBE,
    "descompressao toracica": DefinitiveProcedure.CHEST_TUBE,
    "trombolise": DefinitiveProcedure.THROMBOLYSIS,
    "embolectomia": DefinitiveProcedure.EMBOLECTOMY,
    "descompressao abdominal": DefinitiveProcedure.ABDOMINAL_DECOMPRESSION,
    "broncodilatador e sedacao": DefinitiveProcedure.BRONCHODILATOR_SEDATION,
}


def resolve_drug(name: str, kind: InterventionType) -> str:
    drug = DRUG_ALIASES.get(_key(name))
    if drug is None:
        drug = DEFAULT_DRUG.get(kind, "norepinephrine")
        logger.debug("Unknown drug %r treated as %s", name, drug)
    return drug


def medication_class(name: str) -> Optional[str]:
    return MEDICATION_CLASSES.get(_key(name))


def is_mechanical_support(name: str) -> bool:
    return _key(name) in MECHANICAL_SUPPORT


def resolve_procedure(name: str) -> Optional[DefinitiveProcedure]:
    try:
        return DefinitiveProcedure(name)
    except ValueError:
        return PROCEDURE_NAMES.get(_key(name))


def fluid_type_for(name: str) -> Optional[FluidType]:
    return FLUID_PRODUCTS.get(_key(name))


def is_single_dose_product(name: str) -> bool:
    return _key(name) in SINGLE_DOSE_PRODUCTS


def apply_response(vitals: VitalSigns, hemo: HemodynamicState, response: Response):
    """
    Merge a partial update into the state.

    An absolute `map` moves systolic and diastolic with it; explicit
    pressures without a MAP recompute it. Returns (vitals, hemodynamics).
    """
    changes = dict(response.vitals)
    target_map = changes.pop("map", None)
    if changes:
        vitals = replace(vitals, **changes)
        if "systolic" in changes or "diastolic" in changes:
            vitals = vitals.with_map()
    if target_map is not None:
        vitals = set_map(vitals, target_map)
    if response.hemodynamics:
        hemo = replace(hemo, **response.hemodynamics)
    return clamp_fields(vitals, VITAL_BOUNDS), clamp_fields(hemo, HEMODYNAMIC_BOUNDS)


def _blend(current, target, fraction: float):
    changes = {}
    for f in fields(current):
        a, b = getattr(current, f.name), getattr(target, f.name)
        if isinstance(a, (int, float)) and isinstance(b, (int, float)) and a != b:
            changes[f.name] = a + (b - a) * fraction
    return replace(current, **changes) if changes else current


def _per_minute(respond: Callable[[VitalSigns, HemodynamicState], Response],
                vitals: VitalSigns, hemo: HemodynamicState, dt: float):
    whole = int(dt)
    for _ in range(whole):
        vitals, hemo = apply_response(vitals, hemo, respond(vitals, hemo))
    remainder = dt - whole
    if remainder > 1e-9:
        target_v, target_h = apply_response(vitals, hemo, respond(vitals, hemo))
        vitals, hemo = _blend(vitals, target_v, remainder), _blend(hemo, target_h, remainder)
    return vitals, hemo


def resolve_interventions(interventions: Iterable[ActiveIntervention],
                          now: float) -> Tuple[ActiveIntervention, ...]:
    """
    Start due interventions and complete single-dose ones past their duration.

    Anything scheduled after `now` is held as PENDING, whatever status it
    was created with.
    """
    resolved = []
    for item in interventions:
        if now < item.start_time:
            if item.status == InterventionStatus.ACTIVE:
                item = replace(item, status=InterventionStatus.PENDING)
            resolved.append(item)
            continue
        if item.status == InterventionStatus.PENDING:
            item = replace(item, status=InterventionStatus.ACTIVE)
        if (item.status == InterventionStatus.ACTIVE and item.is_single_dose
                and item.elapsed(now) >= item.duration):
            item = replace(item, status=InterventionStatus.COMPLETED)
            logger.info("Intervention %s (%s) completed", item.id, item.name)
        resolved.append(item)
    return tuple(resolved)


def effective_dose(item: ActiveIntervention, drug: str) -> float:
    if item.dose is not None:
        return item.dose
    return DRUG_DOSES[drug].typical


@dataclass(frozen=True)
class ComposedEffect:
    vitals: VitalSigns
    hemodynamics: HemodynamicState
    interventions: Tuple[ActiveIntervention, ...]
    boluses: Tuple[ActiveIntervention, ...] = ()   # delivered during this tick


def compose_treatment_effects(vitals: VitalSigns, hemodynamics: HemodynamicState,
                              interventions: Iterable[ActiveIntervention], shock_type: ShockType,
                              modifiers: Optional[ComorbidityModifiers] = None, *,
                              now: float = 0.0, dt: float = 1.0,
                              context: Optional[TreatmentContext] = None,
                              efficacy: float = 1.0) -> ComposedEffect:
    model = get_model(shock_type)
    modifiers = modifiers or ComorbidityModifiers()
    context = context or TreatmentContext()
    hemo = hemodynamics

    updated = []
    boluses = []
    for item in resolve_interventions(interventions, now):
        if (item.type == InterventionType.FLUID and not item.bolus_given
                and item.status in (InterventionStatus.ACTIVE, InterventionStatus.COMPLETED)):
            volume = (item.volume or 0.0) * modifiers.fluid * efficacy
            response = model.fluid_response(vitals, hemo, item.fluid_type, volume, context)
            vitals, hemo = apply_response(vitals, hemo, response)
            item = replace(item, bolus_given=True)
            boluses.append(item)
            state = context.subtype_state
            if isinstance(state, DistributiveState):
                # Later boluses in the same tick see the cumulative volume
                context = replace(context, subtype_state=replace(
                    state, fluid_volume_given=state.fluid_volume_given + (item.volume or 0.0)))
            logger.debug("Bolus %s: %.0f mL (%.0f mL effective)", item.name, item.volume or 0.0, volume)

        elif item.is_running and item.type == InterventionType.VASOPRESSOR:
            drug = resolve_drug(item.name, item.type)
            dose = effective_dose(item, drug) * modifiers.vasopressor * efficacy
            vitals, hemo = _per_minute(
                lambda v, h: model.vasopressor_response(v, h, drug, dose, context), vitals, hemo, dt
            )

        elif item.is_running and item.type == InterventionType.INOTROPE:
            drug = resolve_drug(item.name, item.type)
            dose = effective_dose(item, drug) * modifiers.inotrope * efficacy
            vitals, hemo = _per_minute(
                lambda v, h: model.inotrope_response(v, h, drug, dose, context), vitals, hemo, dt
            )

        updated.append(item)

    return ComposedEffect(vitals, hemo, tuple(updated), tuple(boluses))


def vasopressor_dose(interventions: Iterable[ActiveIntervention]) -> float:
    """Summed running catecholamine vasopressor dose (mcg/kg/min)."""
    total = 0.0
    for item in interventions:
        if item.is_running and item.type == InterventionType.VASOPRESSOR:
            drug = resolve_drug(item.name, item.type)
            if drug != "vasopressin":
                total += effective_dose(item, drug)
    return total
