import math
from dataclasses import dataclass, field
from typing import List, Optional

from shocksim.core.enums import DistributiveSubtype, ObstructiveSubtype, ShockType
from shocksim.core.utils import seed_from_identity

VOLEMIA_PRELOAD = {
    "Desidratado": 25.0,
    "Normal": 55.0,
    "Hipervolêmico": 85.0,
}


@dataclass
class PatientData:
    """
    Case setup: demographics, shock type and the user-editable baseline
    hemodynamic parameters.
    """
    initials: str = "A.B.C"
    age: float = 50.0       # years
    weight: float = 70.0    # kg
    conditions: List[str] = field(default_factory=list)
    difficulty: str = "Clínico"     # Acadêmico, Médico, Clínico, Intensivista
    resource_level: str = "Alto"
    shock_type: ShockType = ShockType.DISTRIBUTIVE

    # Baseline parameters
    rvs: float = 1200.0     # systemic vascular resistance, dyn*s/cm^5
    rvp: float = 2.0        # pulmonary vascular resistance, Wood units
    volemia: str = "Desidratado"
    ivs: float = 35.0       # stroke volume, mL
    pvc: float = 10.0       # central venous pressure, mmHg
    poap: float = 8.0       # pulmonary artery occlusion pressure, mmHg

    # Optional etiology refinements
    distributive_subtype: Optional[DistributiveSubtype] = None
    obstructive_subtype: Optional[ObstructiveSubtype] = None
    ongoing_bleeding: bool = False  # hypovolemic: loss continues until controlled

    def __post_init__(self):
        self.shock_type = ShockType.from_label(self.shock_type)
        if isinstance(self.distributive_subtype, str):
            self.distributive_subtype = DistributiveSubtype(self.distributive_subtype)
        if isinstance(self.obstructive_subtype, str):
            self.obstructive_subtype = ObstructiveSubtype(self.obstructive_subtype)
        self.conditions = list(self.conditions or [])

    @property
    def bsa(self) -> float:
        """Body surface area (Mosteller, assuming 170 cm height)."""
        return math.sqrt(max(self.weight, 0.0) * 170.0 / 3600.0)

    @property
    def ideal_body_weight(self) -> float:
        return 0.9 * self.weight

    @property
    def preload_from_volemia(self) -> Optional[float]:
        return VOLEMIA_PRELOAD.get(self.volemia)

    def seed(self) -> int:
        """Stable seed: the same patient setup gets the same presentation."""
        return seed_from_identity(self.initials, self.age, self.weight, self.shock_type.value)
