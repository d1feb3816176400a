import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple, Union

from .enums import (
    DefinitiveProcedure, DistributiveSubtype, FluidType, InterventionStatus,
    InterventionType, ObstructiveSubtype, PatientOutcome,
)


@dataclass
class SimulationConfig:
    """Configuration for the simulation engine."""
    dt: float = 1.0  # Time step in simulation minutes

    # Runtime settings.
    speed_multiplier: float = 1.0  # Scales dt, not tick frequency
    rng_seed: Optional[int] = None
    enable_outcome_tracking: bool = True
    required_stability_minutes: float = 60.0
    record_interval_min: float = 1.0
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.speed_multiplier <= 0:
            raise ValueError(f"speed_multiplier must be positive, got {self.speed_multiplier}")

    @property
    def effective_dt(self) -> float:
        return self.dt * self.speed_multiplier

    @classmethod
    def load_from_env(cls) -> "SimulationConfig":
        """Load settings from SHOCKSIM_* environment variables."""
        seed = os.getenv("SHOCKSIM_RNG_SEED")
        return cls(
            dt=float(os.getenv("SHOCKSIM_DT", 1.0)),
            speed_multiplier=float(os.getenv("SHOCKSIM_SPEED", 1.0)),
            rng_seed=int(seed) if seed not in (None, "") else None,
            enable_outcome_tracking=os.getenv("SHOCKSIM_OUTCOME_TRACKING", "true").lower() == "true",
            required_stability_minutes=float(os.getenv("SHOCKSIM_STABILITY_MINUTES", 60.0)),
            record_interval_min=float(os.getenv("SHOCKSIM_RECORD_INTERVAL", 1.0)),
            log_level=os.getenv("SHOCKSIM_LOG_LEVEL", "WARNING").upper(),
        )


@dataclass(frozen=True)
class VitalSigns:
    heart_rate: float = 75.0        # bpm
    systolic: float = 120.0         # mmHg
    diastolic: float = 75.0         # mmHg
    map: float = 90.0               # mmHg (derived)
    spo2: float = 98.0              # %
    respiratory_rate: float = 16.0  # breaths/min
    temperature: float = 37.0       # Celsius
    cvp: float = 6.0                # mmHg
    cardiac_output: float = 5.0     # L/min
    svr: float = 1000.0             # dyn*s/cm^5
    pcwp: Optional[float] = None    # mmHg
    pvr: Optional[float] = None     # Wood units

    @property
    def pulse_pressure(self) -> float:
        return self.systolic - self.diastolic

    def with_map(self) -> "VitalSigns":
        """Copy with MAP recomputed from systolic/diastolic."""
        return replace(self, map=self.diastolic + (self.systolic - self.diastolic) / 3.0)


@dataclass(frozen=True)
class HemodynamicState:
    preload: float = 50.0        # 0-100 abstract scale
    contractility: float = 65.0  # 0-100
    afterload: float = 60.0      # 0-100
    heart_rate: float = 75.0     # bpm
    stroke_volume: float = 70.0  # mL


@dataclass(frozen=True)
class LabValues:
    # Gasometry.
    ph: float = 7.40
    pco2: float = 40.0     # mmHg
    po2: float = 90.0      # mmHg
    hco3: float = 24.0     # mEq/L
    lactate: float = 1.0   # mmol/L
    last_gasometry_time: float = 0.0

    # Hematology.
    hemoglobin: float = 13.0   # g/dL
    hematocrit: float = 39.0   # %
    wbc: float = 8000.0        # cells/uL
    platelets: float = 250000.0

    # Chemistry.
    potassium: float = 4.0     # mEq/L
    sodium: float = 140.0      # mEq/L
    magnesium: float = 1.9     # mg/dL
    chloride: float = 100.0    # mEq/L
    creatinine: float = 1.0    # mg/dL
    urea: float = 30.0         # mg/dL
    last_lab_time: float = 0.0

    # Sepsis markers (distributive cases only).
    procalcitonin: Optional[float] = None  # ng/mL
    crp: Optional[float] = None            # mg/L
    initial_lactate: Optional[float] = None

    def with_hematocrit(self) -> "LabValues":
        """Copy with hematocrit reasserted as 3x hemoglobin."""
        return replace(self, hematocrit=self.hemoglobin * 3.0)


@dataclass(frozen=True)
class FluidBalance:
    total_input: float = 0.0
    total_output: float = 0.0
    net_balance: float = 0.0
    crystalloids: float = 0.0
    colloids: float = 0.0
    blood: float = 0.0
    urine: float = 0.0
    insensible_loss: float = 0.0


@dataclass(frozen=True)
class InterventionRequest:
    """
    What the user asked for. Built by the caller with explicit values;
    the core keeps no default-dose state of its own.
    """
    type: InterventionType
    name: str
    dose: Optional[float] = None
    dose_unit: Optional[str] = None
    rate: Optional[float] = None
    volume: Optional[float] = None
    fluid_type: Optional[FluidType] = None
    duration: Optional[float] = None
    procedure: Optional[DefinitiveProcedure] = None


@dataclass(frozen=True)
class ActiveIntervention:
    id: str
    type: InterventionType
    name: str
    start_time: float
    status: InterventionStatus = InterventionStatus.ACTIVE
    dose: Optional[float] = None
    rate: Optional[float] = None
    volume: Optional[float] = None
    duration: Optional[float] = None
    fluid_type: Optional[FluidType] = None
    procedure: Optional[DefinitiveProcedure] = None
    bolus_given: bool = False  # fluids: volume already delivered

    @property
    def is_running(self) -> bool:
        return self.status == InterventionStatus.ACTIVE

    @property
    def is_single_dose(self) -> bool:
        return self.duration is not None

    def elapsed(self, now: float) -> float:
        return now - self.start_time


@dataclass(frozen=True)
class VentilationState:
    is_intubated: bool = False
    mode: Optional[str] = None
    tidal_volume: float = 0.0       # mL
    respiratory_rate: float = 0.0   # breaths/min
    peep: float = 0.0               # cmH2O
    fio2: float = 0.21
    plateau_pressure: float = 0.0   # cmH2O
    peak_pressure: float = 0.0      # cmH2O

    # Coupling already applied to the circulation (see ventilation.py).
    applied_co_fraction: float = 0.0
    applied_spo2_boost: float = 0.0
    applied_cvp_offset: float = 0.0
    applied_preload_offset: float = 0.0
    applied_pvr_offset: float = 0.0
    applied_hr_offset: float = 0.0


@dataclass(frozen=True)
class DistributiveState:
    subtype: DistributiveSubtype = DistributiveSubtype.SEPTIC
    source_of_infection: Optional[str] = None
    antibiotics_given: bool = False
    antibiotics_time: Optional[float] = None
    source_control_achieved: bool = False
    corticosteroids_given: bool = False
    fluid_volume_given: float = 0.0     # mL
    fluid_start_time: Optional[float] = None
    vasopressor_start_time: Optional[float] = None
    lactate_clearing: bool = False
    procalcitonin: Optional[float] = None


@dataclass(frozen=True)
class CardiogenicState:
    etiology: str = "AMI"
    rv_failure: bool = False
    active_arrhythmia: bool = False
    has_diuretics: bool = False
    has_vasodilators: bool = False
    has_mechanical_support: bool = False


@dataclass(frozen=True)
class HypovolemicState:
    etiology: str = "hemorrhagic"
    ongoing_loss: bool = False
    loss_rate_ml_hr: float = 200.0


@dataclass(frozen=True)
class ObstructiveState:
    subtype: ObstructiveSubtype = ObstructiveSubtype.PULMONARY_EMBOLISM
    obstruction_severity: float = 1.0
    definitive_intervention_done: bool = False
    intervention_type: Optional[DefinitiveProcedure] = None
    intervention_time: Optional[float] = None
    intervention_success: bool = True
    right_ventricular_dysfunction: bool = True
    troponin_elevated: bool = False
    bnp_elevated: bool = False
    mediastinal_shift: bool = False


SubtypeState = Union[DistributiveState, CardiogenicState, HypovolemicState, ObstructiveState]


@dataclass(frozen=True)
class CriticalStateTracker:
    incompatible_vitals_count: int = 0          # consecutive ticks
    incompatible_vitals_duration: float = 0.0   # cumulative minutes, never decreases
    reasons: Tuple[str, ...] = ()
    time_since_last_recovery: float = 0.0       # contiguous minutes incompatible


@dataclass(frozen=True)
class OutcomeResult:
    outcome: PatientOutcome = PatientOutcome.ONGOING
    time_of_outcome: float = 0.0
    primary_cause: Optional[str] = None
    contributing_factors: Tuple[str, ...] = ()
    quality_metrics: Optional[Dict[str, float]] = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome != PatientOutcome.ONGOING


@dataclass(frozen=True)
class SimulationState:
    """Immutable snapshot of one simulated patient at a given time."""
    vitals: VitalSigns = field(default_factory=VitalSigns)
    labs: LabValues = field(default_factory=LabValues)
    fluid_balance: FluidBalance = field(default_factory=FluidBalance)
    hemodynamics: HemodynamicState = field(default_factory=HemodynamicState)
    interventions: Tuple[ActiveIntervention, ...] = ()

    sim_time: float = 0.0    # simulation minutes
    real_time: float = 0.0   # wall-clock seconds at the reference pace

    is_stable: bool = False
    stability_duration: float = 0.0
    is_deteriorating: bool = False
    critical_alerts: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    complications: Tuple[str, ...] = ()
    procedure_complications: Tuple[str, ...] = ()  # persistent, from definitive procedures

    subtype_state: Optional[SubtypeState] = None
    ventilation: VentilationState = field(default_factory=VentilationState)
    tracker: CriticalStateTracker = field(default_factory=CriticalStateTracker)
    outcome: OutcomeResult = field(default_factory=OutcomeResult)
    next_intervention_seq: int = 1

    def running(self, kind: Optional[InterventionType] = None):
        """Interventions currently in effect, optionally filtered by type."""
        return [
            i for i in self.interventions
            if i.is_running and (kind is None or i.type == kind)
        ]

    def has_running(self, kind: InterventionType) -> bool:
        return any(i.is_running and i.type == kind for i in self.interventions)
