"""
Cardiogenic shock: pump failure.

Low output, high filling pressures and compensatory vasoconstriction feed
each other. Fluids past the congestion threshold worsen oxygenation; only
inotropes and mechanical support reliably raise the output.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from shocksim.core.enums import FluidTolerance, ShockType
from shocksim.core.state import CardiogenicState, HemodynamicState, VitalSigns
from shocksim.core.utils import clamp
from shocksim.physiology.hemodynamics import cardiac_index
from .base import ProgressionFlags, Progression, Response, ShockModel, TreatmentContext

logger = logging.getLogger(__name__)

# Contractility (0-100) to ejection fraction (%).
LVEF_PER_CONTRACTILITY = 0.6

# Output clamps of the progression step.
CO_MIN = 1.5
SPO2_RANGE = (70.0, 100.0)
CVP_RANGE = (4.0, 25.0)
HR_RANGE = (50.0, 160.0)
SVR_RANGE = (800.0, 2500.0)
RR_RANGE = (12.0, 40.0)


class CardiogenicModel(ShockModel):
    shock_type = ShockType.CARDIOGENIC

    def progress(self, vitals: VitalSigns, elapsed: float, flags: ProgressionFlags,
                 subtype_state: Optional[CardiogenicState] = None, dt: float = 1.0) -> Progression:
        state = subtype_state if isinstance(subtype_state, CardiogenicState) else CardiogenicState()
        pf = elapsed / 60.0

        co_d = -0.3 * pf
        spo2_d = -2.0 * pf
        cvp_d = 1.0 * pf
        hr_d = 5.0 * pf
        svr_d = 100.0 * pf
        rr_d = 2.0 * pf

        if flags.net_balance > 500:
            overload = min((flags.net_balance - 500.0) / 1000.0, 2.0)
            spo2_d -= 3.0 * overload
            cvp_d += 2.0 * overload
            rr_d += 3.0 * overload
            co_d -= 0.1 * overload

        if flags.has_inotropes:
            co_d += 0.8
            spo2_d += 3.0
            cvp_d -= 0.5
        if flags.has_vasopressors:
            # Afterload rises with the pressure
            svr_d += 150.0
            co_d -= 0.15
        if state.has_diuretics:
            spo2_d += 2.0
            cvp_d -= 1.5
            rr_d -= 1.0
        if state.has_mechanical_support:
            co_d += 1.2
            spo2_d += 4.0
            cvp_d -= 2.0
            svr_d -= 200.0
        if state.has_vasodilators:
            svr_d -= 250.0
            co_d += 0.3
        if state.rv_failure:
            cvp_d += 1.5
            spo2_d -= 1.0
        if state.active_arrhythmia:
            co_d -= 0.4
            hr_d += 10.0

        new_vitals = replace(
            vitals,
            cardiac_output=max(CO_MIN, vitals.cardiac_output + co_d * dt),
            spo2=clamp(vitals.spo2 + spo2_d * dt, *SPO2_RANGE),
            cvp=clamp(vitals.cvp + cvp_d * dt, *CVP_RANGE),
            heart_rate=clamp(vitals.heart_rate + hr_d * dt, *HR_RANGE),
            svr=clamp(vitals.svr + svr_d * dt, *SVR_RANGE),
            respiratory_rate=clamp(vitals.respiratory_rate + rr_d * dt, *RR_RANGE),
        )
        return Progression(new_vitals)

    def fluid_effect(self, vitals: VitalSigns, hemo: HemodynamicState, volume: float,
                     context: TreatmentContext) -> Response:
        ci = cardiac_index(vitals.cardiac_output, context.bsa)
        pcwp = vitals.pcwp if vitals.pcwp is not None else vitals.cvp * 1.5
        risk = cardiogenic_fluid_risk(vitals.cvp, pcwp, vitals.spo2, ci, volume)

        if risk.tolerance.severity >= FluidTolerance.HIGH_RISK.severity:
            logger.warning("Fluid bolus of %.0f mL in cardiogenic shock: %s",
                           volume, risk.recommendation)

        changes = {
            "cvp": min(25.0, vitals.cvp + risk.cvp_increase),
            "cardiac_output": max(1.5, vitals.cardiac_output + risk.co_change),
        }
        if vitals.pcwp is not None:
            changes["pcwp"] = vitals.pcwp + risk.pcwp_increase
        if risk.edema_risk > 0.5:
            changes["spo2"] = max(75.0, vitals.spo2 - 5.0)
            changes["respiratory_rate"] = min(35.0, vitals.respiratory_rate + 4.0)
        return Response(vitals=changes)

    def inotrope_effect(self, vitals: VitalSigns, hemo: HemodynamicState, drug: str,
                        dose: float, context: TreatmentContext) -> Response:
        lvef = hemo.contractility * LVEF_PER_CONTRACTILITY
        result = cardiogenic_inotrope_response(
            vitals.cardiac_output, hemo.stroke_volume, vitals.svr, lvef, drug, dose
        )
        return Response(
            vitals={
                "cardiac_output": result.co,
                "heart_rate": result.hr,
                "svr": result.svr,
            },
            hemodynamics={
                "stroke_volume": result.sv,
                "contractility": result.lvef / LVEF_PER_CONTRACTILITY,
            },
        )


@dataclass(frozen=True)
class InotropeResult:
    co: float
    sv: float
    hr: float
    svr: float
    lvef: float


def cardiogenic_inotrope_response(co: float, sv: float, svr: float, lvef: float,
                                  drug: str, dose: float) -> InotropeResult:
    """
    One minute of an inotrope on a failing ventricle.

    Dobutamine is a beta-1 agonist, milrinone a PDE-3 inodilator; epinephrine
    and dopamine switch receptor profile with dose.
    """
    boost = hr_inc = svr_change = 0.0
    if drug == "dobutamine":
        boost = dose * 0.08
        hr_inc = dose * 2.0
        svr_change = -dose * 20.0
        if lvef < 20:
            boost *= 0.7
    elif drug == "milrinone":
        boost = dose * 0.15
        hr_inc = dose * 1.0
        svr_change = -dose * 80.0
    elif drug == "epinephrine":
        if dose < 0.05:
            boost, hr_inc, svr_change = dose * 0.25, dose * 25.0, -dose * 30.0
        else:
            boost, hr_inc, svr_change = dose * 0.20, dose * 20.0, dose * 150.0
    elif drug == "dopamine":
        if dose < 5:
            boost, hr_inc, svr_change = dose * 0.03, dose * 1.0, -dose * 10.0
        elif dose < 10:
            boost, hr_inc, svr_change = dose * 0.06, dose * 2.0, 0.0
        else:
            boost, hr_inc, svr_change = dose * 0.05, dose * 3.0, dose * 50.0

    new_lvef = min(55.0, lvef + boost * 100.0)
    new_sv = min(90.0, sv + sv * boost)
    new_hr = clamp(105.0 + hr_inc, 60.0, 140.0)
    new_co = new_hr * new_sv / 1000.0
    return InotropeResult(
        co=min(8.0, new_co),
        sv=new_sv,
        hr=new_hr,
        svr=clamp(svr + svr_change, 600.0, 2200.0),
        lvef=new_lvef,
    )


@dataclass(frozen=True)
class FluidRisk:
    edema_risk: float
    cvp_increase: float
    pcwp_increase: float
    co_change: float
    recommendation: str
    tolerance: FluidTolerance


def cardiogenic_fluid_risk(cvp: float, pcwp: float, spo2: float, ci: float,
                           bolus_ml: float) -> FluidRisk:
    """Pulmonary edema risk of a bolus given to a failing heart."""
    if cvp > 18:
        risk = 0.9
    elif cvp > 15:
        risk = 0.7
    elif cvp > 12:
        risk = 0.5
    elif cvp > 8:
        risk = 0.3
    else:
        risk = 0.2

    if pcwp and pcwp > 0:
        if pcwp > 25:
            risk = max(risk, 0.95)
        elif pcwp > 20:
            risk = max(risk, 0.75)
        elif pcwp > 18:
            risk = max(risk, 0.55)

    risk += bolus_ml / 500.0 * 0.2
    if spo2 < 90:
        risk += 0.15
    if ci < 2.0:
        risk += 0.15
    elif ci < 2.2:
        risk += 0.1
    risk = min(1.0, risk)

    # mmHg per 500 mL on a stiff, full ventricle
    sensitivity = 2.5
    cvp_increase = bolus_ml / 500.0 * sensitivity
    pcwp_increase = bolus_ml / 500.0 * sensitivity * 1.2

    if cvp < 8 and (pcwp or 0) < 15:
        co_change = bolus_ml / 1000.0 * 0.15
    elif 8 <= cvp <= 12:
        co_change = bolus_ml / 1000.0 * 0.05
    else:
        co_change = -bolus_ml / 1000.0 * 0.08

    if risk > 0.8:
        tolerance = FluidTolerance.CONTRAINDICATED
        recommendation = "CONTRAINDICADO: Alto risco de edema pulmonar. Considere diuréticos."
    elif risk > 0.6:
        tolerance = FluidTolerance.HIGH_RISK
        recommendation = "ALTO RISCO: Fluidos provavelmente prejudiciais. Preferir inotrópicos."
    elif risk > 0.4:
        tolerance = FluidTolerance.MODERATE_RISK
        recommendation = "RISCO MODERADO: Monitore cuidadosamente. Considere pequenos bolus (250mL)."
    else:
        tolerance = FluidTolerance.ACCEPTABLE
        recommendation = "Fluidos podem ser tolerados, mas monitorar congestão pulmonar."

    return FluidRisk(risk, cvp_increase, pcwp_increase, co_change, recommendation, tolerance)


@dataclass(frozen=True)
class SCAIStage:
    stage: str
    description: str
    mortality: str


def scai_stage(map_mmhg: float, ci: float, lactate: float, cvp: float,
               hypoperfusion: bool, escalating_support: bool) -> SCAIStage:
    """SCAI shock stage A (at risk) to E (extremis)."""
    if map_mmhg < 50 or ci < 1.8 or lactate > 10:
        return SCAIStage("E", "Extremis - Colapso circulatório", ">80% sem suporte mecânico")
    if (map_mmhg < 60 and escalating_support) or ci < 2.0 or lactate > 6:
        return SCAIStage("D", "Deteriorando - Falha terapêutica", "40-60%")
    if map_mmhg < 65 and hypoperfusion and ci < 2.2:
        return SCAIStage("C", "Clássico - Hipoperfusão presente", "30-50%")
    if map_mmhg < 70 or cvp > 12:
        return SCAIStage("B", "Início - Hemodinâmica comprometida", "10-20%")
    return SCAIStage("A", "Em risco - Sem choque ainda", "<5%")


@dataclass(frozen=True)
class MCSIndication:
    indicated: bool
    urgency: str
    device: str
    reasoning: str


def mcs_indication(map_mmhg: float, ci: float, stage: str,
                   vasopressor_dose: float) -> MCSIndication:
    """Mechanical circulatory support recommendation for a SCAI stage."""
    if stage == "E" or (map_mmhg < 55 and ci < 1.8):
        return MCSIndication(True, "emergent", "ECMO",
                             "Colapso circulatório iminente/presente. ECMO para suporte total.")
    if stage == "D" or (ci < 2.0 and vasopressor_dose > 0.3):
        return MCSIndication(True, "urgent", "Impella",
                             "Choque refratário a vasopressores. Impella para suporte direto de CO.")
    if stage == "C" or (ci < 2.2 and map_mmhg < 65):
        return MCSIndication(True, "consider", "IABP",
                             "Choque cardiogênico clássico. IABP para perfusão coronária.")
    return MCSIndication(False, "not_indicated", "none",
                         "Continuar manejo clínico com otimização de vasopressores/inotrópicos.")
