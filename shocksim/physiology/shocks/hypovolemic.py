"""
Hypovolemic shock: loss of circulating volume.

A weighted CVP/HR/MAP score estimates the deficit, which sets the ATLS
class. The class decides how hard the circulation compensates, down to the
paradoxical bradycardia of class IV. Fluids follow a Frank-Starling shaped
curve keyed to CVP: steep when empty, flat once filled.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from shocksim.core.constants import BLOOD_VOLUME_ML_KG
from shocksim.core.enums import HypovolemicClass, ShockType
from shocksim.core.state import HemodynamicState, HypovolemicState, LabValues, VitalSigns
from shocksim.core.utils import clamp
from .base import ProgressionFlags, Progression, Response, ShockModel, TreatmentContext

ML_PER_DEFICIT_POINT = 350.0
# HR fall per hour of progression once class IV decompensates.
CLASS_IV_BRADYCARDIA = 3.0


class HypovolemicModel(ShockModel):
    shock_type = ShockType.HYPOVOLEMIC

    def progress(self, vitals: VitalSigns, elapsed: float, flags: ProgressionFlags,
                 subtype_state: Optional[HypovolemicState] = None, dt: float = 1.0) -> Progression:
        state = subtype_state if isinstance(subtype_state, HypovolemicState) else HypovolemicState()
        pf = elapsed / 60.0
        balance = flags.net_balance

        estimated = estimate_volume_deficit(vitals.cvp, vitals.heart_rate, vitals.map)
        current = estimated - balance + (state.loss_rate_ml_hr * pf if state.ongoing_loss else 0.0)
        shock_class = classify_hypovolemia(current, flags.weight)

        preload_d = hr_d = co_d = svr_d = spo2_d = rr_d = temp_d = 0.0

        if not flags.has_fluids or balance < estimated * 0.5:
            rate = 1.5 if state.ongoing_loss else 0.8
            preload_d = -4.0 * pf * rate
            hr_d = 2.5 * pf * rate
            co_d = -0.3 * pf * rate
            svr_d = 80.0 * pf * rate
            spo2_d = -1.5 * pf * rate
            rr_d = 2.0 * pf * rate
            temp_d = -0.15 * pf * rate
            if shock_class == HypovolemicClass.CLASS_IV:
                # Decompensation: paradoxical bradycardia, failing vasoconstriction
                hr_d = -CLASS_IV_BRADYCARDIA * pf * rate
                svr_d *= 0.6
                co_d *= 1.4

        if flags.has_fluids and balance > 0:
            adequacy = min(1.2, balance / estimated) if estimated > 0 else 1.2
            preload_d += 35.0 * adequacy
            co_d += 1.8 * adequacy
            if adequacy > 0.5:
                hr_d -= 18.0 * adequacy
                svr_d -= 150.0 * adequacy
                spo2_d += 3.0 * adequacy
                rr_d -= 4.0 * adequacy
                temp_d += 0.2 * adequacy
            if adequacy > 1.0:
                overload = adequacy - 1.0
                spo2_d -= 4.0 * overload
                rr_d += 6.0 * overload
                preload_d += 10.0 * overload

        cvp_d = preload_d * 0.18
        # Changes build up over the first two hours
        weight = min(1.0, pf / 2.0) * dt

        new_vitals = replace(
            vitals,
            cvp=clamp(vitals.cvp + cvp_d * weight, 0.0, 18.0),
            cardiac_output=clamp(vitals.cardiac_output + co_d * weight, 1.0, 8.0),
            heart_rate=clamp(vitals.heart_rate + hr_d * weight, 20.0, 170.0),
            svr=clamp(vitals.svr + svr_d * weight, 800.0, 2400.0),
            spo2=clamp(vitals.spo2 + spo2_d * weight, 60.0, 100.0),
            respiratory_rate=clamp(vitals.respiratory_rate + rr_d * weight, 10.0, 40.0),
            temperature=clamp(vitals.temperature + temp_d * weight, 34.5, 38.0),
        )
        return Progression(new_vitals)

    def fluid_effect(self, vitals: VitalSigns, hemo: HemodynamicState, volume: float,
                     context: TreatmentContext) -> Response:
        result = hypovolemic_fluid_response(
            vitals.cardiac_output, vitals.cvp, hemo.stroke_volume, volume,
            vitals.map, vitals.heart_rate,
        )
        return Response(
            vitals={
                "cardiac_output": result["co"],
                "cvp": result["cvp"],
                "map": result["map"],
                "heart_rate": result["hr"],
                "svr": max(800.0, vitals.svr + result["svr_change"]),
            },
            hemodynamics={
                "stroke_volume": result["sv"],
                "preload": min(85.0, hemo.preload + volume / 500.0 * 15.0),
            },
        )


def estimate_volume_deficit(cvp: float, heart_rate: float, map_mmhg: float) -> float:
    """Deficit in mL from a bedside CVP/HR/MAP score."""
    score = 0
    if cvp < 2:
        score += 4
    elif cvp < 4:
        score += 3
    elif cvp < 6:
        score += 2
    elif cvp < 8:
        score += 1

    if heart_rate > 140:
        score += 3
    elif heart_rate > 120:
        score += 2
    elif heart_rate > 100:
        score += 1

    if map_mmhg < 55:
        score += 3
    elif map_mmhg < 65:
        score += 2
    elif map_mmhg < 70:
        score += 1

    return score * ML_PER_DEFICIT_POINT


def classify_hypovolemia(deficit_ml: float, weight: float) -> HypovolemicClass:
    """ATLS class from the deficit as a share of blood volume."""
    blood_volume = weight * BLOOD_VOLUME_ML_KG
    percent = deficit_ml / blood_volume * 100.0 if blood_volume > 0 else 100.0
    if percent < 15:
        return HypovolemicClass.CLASS_I
    if percent < 30:
        return HypovolemicClass.CLASS_II
    if percent < 40:
        return HypovolemicClass.CLASS_III
    return HypovolemicClass.CLASS_IV


def hypovolemic_fluid_response(co: float, cvp: float, sv: float, bolus_ml: float,
                               map_mmhg: float = 65.0, heart_rate: float = 110.0) -> Dict[str, float]:
    """
    One bolus on the Frank-Starling curve.

    Returns absolute co/cvp/sv/map/hr and the SVR change (`svr_change`).
    """
    liters = bolus_ml / 1000.0
    if cvp < 3:
        responsiveness = 1.3
    elif cvp < 6:
        responsiveness = 1.1
    elif cvp < 10:
        responsiveness = 0.8
    else:
        responsiveness = 0.4

    new_sv = min(90.0, sv + liters * 45.0 * responsiveness)
    co_gain = (new_sv - sv) * heart_rate / 1000.0
    new_co = min(7.5, co + co_gain)
    new_cvp = min(12.0, cvp + liters * 2.8 / responsiveness)
    new_map = min(95.0, map_mmhg + co_gain / max(0.1, co) * 18.0)
    hr_drop = min(15.0, (new_map - map_mmhg) * 0.8)

    return {
        "co": new_co,
        "cvp": new_cvp,
        "sv": new_sv,
        "map": new_map,
        "hr": max(60.0, heart_rate - hr_drop),
        "svr_change": -(new_map - map_mmhg) * 25.0,
    }


@dataclass(frozen=True)
class Predictor:
    score: int
    interpretation: str


@dataclass(frozen=True)
class FluidResponsiveness:
    responsive: bool
    confidence: float
    estimated_svv: float
    predictors: Dict[str, Predictor]
    recommendation: str


def assess_fluid_responsiveness(cvp: float, svr: float, co: float, sv: float,
                                map_mmhg: float, lactate: float = 2.0) -> FluidResponsiveness:
    """Four bedside predictors, 0-3 points each; responsive at 6 of 12."""
    if cvp < 5:
        cvp_p = Predictor(3, "Very low - highly suggests hypovolemia")
    elif cvp < 8:
        cvp_p = Predictor(2, "Low - suggests fluid responsiveness")
    elif cvp < 12:
        cvp_p = Predictor(1, "Normal - uncertain fluid responsiveness")
    else:
        cvp_p = Predictor(0, "Elevated - suggests fluid overload risk")

    svv = (svr - 800.0) / 1600.0 * ((5.0 - co) / 3.0) * 100.0
    if svv > 13:
        svv_p = Predictor(3, "High variability - highly fluid responsive")
    elif svv > 10:
        svv_p = Predictor(2, "Moderate variability - likely responsive")
    else:
        svv_p = Predictor(1, "Low variability - may not be responsive")

    hypoperfused = map_mmhg < 65 or lactate > 2.0 or co < 4.0
    severe = map_mmhg < 60 or lactate > 4.0 or co < 3.5
    if severe and svr > 1400:
        perfusion_p = Predictor(3, "Severe hypoperfusion with compensation - needs fluids")
    elif hypoperfused and svr > 1200:
        perfusion_p = Predictor(2, "Hypoperfusion with compensation - likely needs fluids")
    elif hypoperfused:
        perfusion_p = Predictor(1, "Hypoperfusion without compensation - assess carefully")
    else:
        perfusion_p = Predictor(0, "Adequate perfusion - fluids may not be needed")

    if sv < 50 and co < 4.5 and svr > 1400:
        starling_p = Predictor(3, "Ascending limb - highly responsive")
    elif sv < 60 and co < 5.0:
        starling_p = Predictor(2, "Lower portion - responsive")
    elif sv < 70:
        starling_p = Predictor(1, "Mid-curve - moderately responsive")
    else:
        starling_p = Predictor(0, "Plateau region - may not respond")

    predictors = {
        "cvp": cvp_p,
        "sv_variation": svv_p,
        "perfusion": perfusion_p,
        "frank_starling": starling_p,
    }
    total = sum(p.score for p in predictors.values())

    if total >= 9:
        recommendation = "STRONGLY recommend fluid bolus (500-1000mL crystalloid). Monitor response."
    elif total >= 6:
        recommendation = "Recommend fluid challenge (250-500mL). Reassess after bolus."
    elif total >= 3:
        recommendation = "Uncertain benefit. Consider small fluid challenge (250mL) with close monitoring."
    else:
        recommendation = "AVOID fluids - risk of overload. Consider other interventions."

    return FluidResponsiveness(total >= 6, total / 12.0, round(svv), predictors, recommendation)


@dataclass(frozen=True)
class ComplicationScreen:
    complications: List[str]
    risks: List[str]
    interventions: List[str]


def screen_complications(vitals: VitalSigns, labs: LabValues, fluid_balance: float,
                         elapsed: float) -> ComplicationScreen:
    complications: List[str] = []
    risks: List[str] = []
    interventions: List[str] = []

    if labs.creatinine > 1.5 and vitals.map < 65:
        complications.append("Acute Kidney Injury (pre-renal)")
        interventions.append("Maintain MAP >65 mmHg for renal perfusion")
    if labs.lactate > 4.0:
        complications.append("Severe lactic acidosis (Type A)")
        interventions.append("Aggressive resuscitation to improve tissue perfusion")
        interventions.append("Target lactate clearance >10% per hour")
    if fluid_balance > 5000 or elapsed > 360:
        risks.append("ARDS/TRALI risk")
        interventions.append("Lung-protective ventilation if intubated")
        interventions.append("Monitor for pulmonary edema")
    if fluid_balance > 8000:
        risks.append("Abdominal compartment syndrome")
        interventions.append("Monitor bladder pressures if available")
        interventions.append("Consider balanced resuscitation strategy")
    if vitals.temperature < 35:
        complications.append("Hypothermia")
        interventions.append("Active warming measures")
        interventions.append("Warm all IV fluids and blood products")
    if labs.platelets < 50000:
        complications.append("Thrombocytopenia/Coagulopathy")
        interventions.append("Consider platelet transfusion if platelets <50k")
        interventions.append("Assess for ongoing hemorrhage")
    if labs.chloride > 110 and labs.ph < 7.30:
        complications.append("Hyperchloremic metabolic acidosis")
        interventions.append("Consider balanced crystalloids (LR) instead of NS")

    return ComplicationScreen(complications, risks, interventions)
