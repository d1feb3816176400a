from enum import Enum


class ShockType(Enum):
    """Shock archetypes (values are the labels used in patient files)."""
    DISTRIBUTIVE = "Choque distributivo"
    CARDIOGENIC = "Choque cardiogênico"
    HYPOVOLEMIC = "Choque hipovolêmico"
    OBSTRUCTIVE = "Choque obstrutivo"
    MIXED = "Choque misto"

    @classmethod
    def from_label(cls, label) -> "ShockType":
        if isinstance(label, ShockType):
            return label
        for member in cls:
            if label in (member.value, member.name, member.name.lower()):
                return member
        raise ValueError(f"Unknown shock type: {label!r}")


class DistributiveSubtype(Enum):
    SEPTIC = "septic"
    ANAPHYLACTIC = "anaphylactic"
    NEUROGENIC = "neurogenic"


class ObstructiveSubtype(Enum):
    PULMONARY_EMBOLISM = "pulmonary_embolism"
    CARDIAC_TAMPONADE = "cardiac_tamponade"
    TENSION_PNEUMOTHORAX = "tension_pneumothorax"
    AUTO_PEEP = "auto_peep"
    ABDOMINAL_COMPARTMENT = "abdominal_compartment"


class DefinitiveProcedure(Enum):
    """Procedures that relieve a mechanical obstruction."""
    PERICARDIOCENTESIS = "pericardiocentesis"
    CHEST_TUBE = "chest_tube"
    THROMBOLYSIS = "thrombolysis"
    EMBOLECTOMY = "embolectomy"
    ABDOMINAL_DECOMPRESSION = "abdominal_decompression"
    BRONCHODILATOR_SEDATION = "bronchodilator_sedation"


class InterventionType(Enum):
    FLUID = "fluid"
    VASOPRESSOR = "vasopressor"
    INOTROPE = "inotrope"
    MEDICATION = "medication"
    PROCEDURE = "procedure"


class InterventionStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    STOPPED = "stopped"


class FluidType(Enum):
    CRYSTALLOID = "crystalloid"
    COLLOID = "colloid"
    BLOOD = "blood"


class PatientOutcome(Enum):
    ONGOING = "ONGOING"
    SURVIVED = "SURVIVED"
    DIED = "DIED"


class HypovolemicClass(Enum):
    """ATLS hemorrhagic shock classes."""
    CLASS_I = 1
    CLASS_II = 2
    CLASS_III = 3
    CLASS_IV = 4


class FluidTolerance(Enum):
    ACCEPTABLE = "acceptable"
    MODERATE_RISK = "moderate_risk"
    HIGH_RISK = "high_risk"
    CONTRAINDICATED = "contraindicated"

    @property
    def severity(self) -> int:
        return _FLUID_TOLERANCE_ORDER.index(self)


_FLUID_TOLERANCE_ORDER = [
    FluidTolerance.ACCEPTABLE,
    FluidTolerance.MODERATE_RISK,
    FluidTolerance.HIGH_RISK,
    FluidTolerance.CONTRAINDICATED,
]
