"""
Baseline shock profiles.

Each entry bundles the typical presentation of one archetype: vitals,
hemodynamics, labs, deterioration/compensation rates and how strongly the
archetype responds to each treatment class.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from shocksim.core.enums import DistributiveSubtype, ShockType
from shocksim.core.state import HemodynamicState, LabValues, VitalSigns


@dataclass(frozen=True)
class TreatmentResponsiveness:
    fluids: float
    vasopressors: float
    inotropes: float


@dataclass(frozen=True)
class ShockProfile:
    name: str
    shock_type: ShockType
    vitals: VitalSigns
    hemodynamics: HemodynamicState
    labs: LabValues
    degradation_rate: float
    compensation_capacity: float
    responsiveness: TreatmentResponsiveness


def _vitals(hr, sys, dia, spo2, rr, temp, cvp, co, svr) -> VitalSigns:
    v = VitalSigns(
        heart_rate=hr, systolic=sys, diastolic=dia, spo2=spo2,
        respiratory_rate=rr, temperature=temp, cvp=cvp,
        cardiac_output=co, svr=svr,
    )
    return v.with_map()


def _labs(ph, pco2, po2, hco3, lac, hb, hct, wbc, plt, k, na, cr, urea,
          mg=1.9, cl=100.0) -> LabValues:
    return LabValues(
        ph=ph, pco2=pco2, po2=po2, hco3=hco3, lactate=lac,
        hemoglobin=hb, hematocrit=hct, wbc=wbc, platelets=plt,
        potassium=k, sodium=na, creatinine=cr, urea=urea,
        magnesium=mg, chloride=cl,
    )


SEPTIC_PROFILE = ShockProfile(
    name="Choque séptico",
    shock_type=ShockType.DISTRIBUTIVE,
    vitals=_vitals(118, 84, 46, 93, 26, 38.8, 6, 8.2, 480),
    hemodynamics=HemodynamicState(42, 58, 22, 118, 70),
    labs=_labs(7.26, 30, 72, 16, 4.8, 9.8, 30, 19500, 82000, 5.1, 136, 2.2, 64, 1.6, 98),
    degradation_rate=0.82,
    compensation_capacity=0.55,
    responsiveness=TreatmentResponsiveness(0.65, 0.88, 0.35),
)

ANAPHYLACTIC_PROFILE = ShockProfile(
    name="Choque anafilático",
    shock_type=ShockType.DISTRIBUTIVE,
    vitals=_vitals(135, 75, 42, 87, 32, 37.1, 3, 9.5, 380),
    hemodynamics=HemodynamicState(35, 75, 15, 135, 70),
    labs=_labs(7.30, 28, 65, 19, 3.5, 13.5, 41, 9500, 245000, 4.2, 140, 1.1, 35),
    degradation_rate=0.95,
    compensation_capacity=0.4,
    responsiveness=TreatmentResponsiveness(0.75, 0.85, 0.3),
)

NEUROGENIC_PROFILE = ShockProfile(
    name="Choque neurogênico",
    shock_type=ShockType.DISTRIBUTIVE,
    vitals=_vitals(58, 88, 50, 94, 18, 36.2, 4, 4.5, 520),
    hemodynamics=HemodynamicState(40, 70, 28, 58, 78),
    labs=_labs(7.34, 42, 82, 22, 2.4, 12.5, 38, 9000, 220000, 4.0, 140, 1.0, 32),
    degradation_rate=0.45,
    compensation_capacity=0.25,
    responsiveness=TreatmentResponsiveness(0.55, 0.80, 0.25),
)

CARDIOGENIC_PROFILE = ShockProfile(
    name="Choque cardiogênico",
    shock_type=ShockType.CARDIOGENIC,
    vitals=_vitals(105, 80, 55, 88, 28, 36.2, 16, 3.2, 1600),
    hemodynamics=HemodynamicState(85, 25, 80, 105, 30),
    labs=_labs(7.22, 38, 62, 16, 6.5, 11.2, 34, 11000, 180000, 5.2, 135, 2.1, 72, 1.8, 98),
    degradation_rate=0.9,
    compensation_capacity=0.3,
    responsiveness=TreatmentResponsiveness(0.1, 0.5, 0.85),
)

HYPOVOLEMIC_PROFILE = ShockProfile(
    name="Choque hipovolêmico",
    shock_type=ShockType.HYPOVOLEMIC,
    vitals=_vitals(118, 88, 62, 91, 28, 36.2, 1.5, 3.2, 1950),
    hemodynamics=HemodynamicState(22, 78, 92, 118, 27),
    labs=_labs(7.28, 28, 72, 14, 6.2, 9.2, 28, 16500, 115000, 4.8, 148, 2.1, 72, 1.6, 108),
    degradation_rate=0.88,
    compensation_capacity=0.65,
    responsiveness=TreatmentResponsiveness(0.96, 0.25, 0.15),
)

OBSTRUCTIVE_PROFILE = ShockProfile(
    name="Choque obstrutivo",
    shock_type=ShockType.OBSTRUCTIVE,
    vitals=_vitals(122, 82, 54, 84, 34, 37.2, 19, 2.6, 1850),
    hemodynamics=HemodynamicState(78, 68, 88, 122, 21),
    labs=_labs(7.18, 32, 54, 12, 8.5, 13.2, 40, 13500, 185000, 5.8, 137, 2.6, 78, 1.8, 102),
    degradation_rate=0.93,
    compensation_capacity=0.18,
    responsiveness=TreatmentResponsiveness(0.15, 0.25, 0.12),
)

MIXED_PROFILE = ShockProfile(
    name="Choque misto",
    shock_type=ShockType.MIXED,
    vitals=_vitals(105, 92, 58, 90, 24, 37.2, 10, 4.5, 1200),
    hemodynamics=HemodynamicState(50, 60, 70, 105, 50),
    labs=_labs(7.32, 32, 75, 18, 4.5, 10.5, 32, 13000, 150000, 4.5, 138, 1.8, 55, 1.7, 105),
    degradation_rate=0.75,
    compensation_capacity=0.55,
    responsiveness=TreatmentResponsiveness(0.5, 0.5, 0.45),
)

SHOCK_PROFILES: Dict[ShockType, ShockProfile] = {
    ShockType.DISTRIBUTIVE: SEPTIC_PROFILE,
    ShockType.CARDIOGENIC: CARDIOGENIC_PROFILE,
    ShockType.HYPOVOLEMIC: HYPOVOLEMIC_PROFILE,
    ShockType.OBSTRUCTIVE: OBSTRUCTIVE_PROFILE,
    ShockType.MIXED: MIXED_PROFILE,
}

DISTRIBUTIVE_PROFILES: Dict[DistributiveSubtype, ShockProfile] = {
    DistributiveSubtype.SEPTIC: SEPTIC_PROFILE,
    DistributiveSubtype.ANAPHYLACTIC: ANAPHYLACTIC_PROFILE,
    DistributiveSubtype.NEUROGENIC: NEUROGENIC_PROFILE,
}


def get_baseline_profile(shock_type, subtype: Optional[DistributiveSubtype] = None) -> ShockProfile:
    """
    Catalog lookup. Distributive shock defaults to the septic presentation.

    Raises ValueError for labels that are not one of the five archetypes.
    """
    shock_type = ShockType.from_label(shock_type)
    if shock_type == ShockType.DISTRIBUTIVE and subtype is not None:
        return DISTRIBUTIVE_PROFILES[subtype]
    return SHOCK_PROFILES[shock_type]

