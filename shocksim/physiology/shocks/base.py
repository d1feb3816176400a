"""
Common interface of the per-archetype shock models.

A model answers four questions for its archetype:

    progress()            how the untreated circulation drifts over one tick
    fluid_response()      what a single bolus does
    vasopressor_response() what one minute of a running vasopressor does
    inotrope_response()   what one minute of a running inotrope does

Responses return a `Response` holding partial field updates (absolute new
values, not deltas). The treatment composer merges them into the state, so
the models never need to know about clamping order or MAP bookkeeping.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from shocksim.core.enums import FluidType, ShockType
from shocksim.core.state import HemodynamicState, SubtypeState, VitalSigns


@dataclass(frozen=True)
class ProgressionFlags:
    """Treatment context the progression functions depend on."""
    has_vasopressors: bool = False
    has_inotropes: bool = False
    has_fluids: bool = False
    net_balance: float = 0.0    # mL
    weight: float = 70.0        # kg
    ventilated: bool = False
    now: float = 0.0            # unscaled simulation minutes


@dataclass(frozen=True)
class Progression:
    vitals: VitalSigns
    # Lactate change applied by the labs stage (mixed shock only).
    lactate_delta: float = 0.0


@dataclass(frozen=True)
class TreatmentContext:
    subtype_state: Optional[SubtypeState] = None
    weight: float = 70.0
    bsa: float = 1.8


@dataclass
class Response:
    vitals: Dict[str, float] = field(default_factory=dict)
    hemodynamics: Dict[str, float] = field(default_factory=dict)

    def __bool__(self):
        return bool(self.vitals or self.hemodynamics)


class ShockModel:
    """
    Base model. The default responses are the generic ones used by every
    archetype that does not override them.
    """
    shock_type: Optional[ShockType] = None

    def progress(self, vitals: VitalSigns, elapsed: float, flags: ProgressionFlags,
                 subtype_state: Optional[SubtypeState] = None, dt: float = 1.0) -> Progression:
        raise NotImplementedError

    # Fluids

    def fluid_effect(self, vitals: VitalSigns, hemo: HemodynamicState, volume: float,
                     context: TreatmentContext) -> Response:
        """Archetype-specific part of a bolus. Default: no effect."""
        return Response()

    def fluid_response(self, vitals: VitalSigns, hemo: HemodynamicState,
                       fluid_type: Optional[FluidType], volume: float,
                       context: Optional[TreatmentContext] = None) -> Response:
        context = context or TreatmentContext()
        response = self.fluid_effect(vitals, hemo, volume, context)

        if fluid_type == FluidType.COLLOID and "cardiac_output" in response.vitals:
            # Colloids stay intravascular longer
            response.vitals["cardiac_output"] *= 1.2
        elif fluid_type == FluidType.BLOOD:
            response.vitals["spo2"] = min(100.0, vitals.spo2 + 2.0)
        return response

    # Vasopressors

    def vasopressor_response(self, vitals: VitalSigns, hemo: HemodynamicState, drug: str,
                             dose: float, context: Optional[TreatmentContext] = None) -> Response:
        response = Response()
        if drug == "norepinephrine":
            response.vitals["svr"] = min(2000.0, vitals.svr + dose * 150.0)
            response.vitals["map"] = min(110.0, vitals.map + dose * 10.0)
            response.hemodynamics["afterload"] = min(100.0, hemo.afterload + dose * 8.0)
        elif drug == "vasopressin":
            response.vitals["svr"] = min(2200.0, vitals.svr + dose * 3000.0)
            response.vitals["map"] = min(115.0, vitals.map + dose * 250.0)
            response.hemodynamics["afterload"] = min(100.0, hemo.afterload + dose * 600.0)
        elif drug == "epinephrine":
            response.vitals["svr"] = min(2000.0, vitals.svr + dose * 120.0)
            response.vitals["map"] = min(120.0, vitals.map + dose * 12.0)
            response.vitals["heart_rate"] = min(160.0, vitals.heart_rate + dose * 15.0)
            response.vitals["cardiac_output"] = min(9.0, vitals.cardiac_output + dose * 0.5)
            response.hemodynamics["contractility"] = min(100.0, hemo.contractility + dose * 8.0)
        return response

    # Inotropes

    def inotrope_effect(self, vitals: VitalSigns, hemo: HemodynamicState, drug: str,
                        dose: float, context: TreatmentContext) -> Response:
        response = Response()
        v, h = response.vitals, response.hemodynamics
        if drug == "dobutamine":
            v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.12)
            v["heart_rate"] = min(150.0, vitals.heart_rate + dose * 3.0)
            v["svr"] = max(600.0, vitals.svr - dose * 20.0)
            h["stroke_volume"] = min(100.0, hemo.stroke_volume + dose * 2.0)
            h["contractility"] = min(95.0, hemo.contractility + dose * 4.0)
        elif drug == "milrinone":
            v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.18)
            v["heart_rate"] = min(150.0, vitals.heart_rate + dose * 1.5)
            v["svr"] = max(500.0, vitals.svr - dose * 80.0)
            h["stroke_volume"] = min(100.0, hemo.stroke_volume + dose * 3.0)
            h["contractility"] = min(95.0, hemo.contractility + dose * 6.0)
        elif drug == "epinephrine":
            if dose < 0.05:
                # Beta-predominant at low dose
                v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.25)
                v["heart_rate"] = min(160.0, vitals.heart_rate + dose * 25.0)
                v["svr"] = max(600.0, vitals.svr - dose * 30.0)
            else:
                v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.20)
                v["heart_rate"] = min(160.0, vitals.heart_rate + dose * 20.0)
                v["svr"] = min(2200.0, vitals.svr + dose * 150.0)
            h["contractility"] = min(100.0, hemo.contractility + dose * 10.0)
        elif drug == "dopamine":
            if dose < 5.0:
                v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.03)
                v["svr"] = max(700.0, vitals.svr - dose * 10.0)
            elif dose < 10.0:
                v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.06)
                h["contractility"] = min(95.0, hemo.contractility + dose * 3.0)
            else:
                v["cardiac_output"] = min(10.0, vitals.cardiac_output + dose * 0.05)
                v["svr"] = min(2000.0, vitals.svr + dose * 50.0)
            v["heart_rate"] = min(150.0, vitals.heart_rate + dose * 2.0)
        return response

    def inotrope_response(self, vitals: VitalSigns, hemo: HemodynamicState, drug: str,
                          dose: float, context: Optional[TreatmentContext] = None) -> Response:
        response = self.inotrope_effect(vitals, hemo, drug, dose, context or TreatmentContext())
        new_co = response.vitals.get("cardiac_output")
        if new_co is not None:
            # Better flow carries pressure with it
            co_gain = new_co - vitals.cardiac_output
            response.vitals["map"] = min(105.0, vitals.map + co_gain * 8.0)
        return response
