import logging
from collections import deque
from dataclasses import replace
from typing import Optional

from .interventions import InterventionControllerMixin
from .outcome import evaluate_outcome, is_stable, track_stability, update_tracker
from .state import (
    CardiogenicState, DistributiveState, FluidBalance, HypovolemicState, ObstructiveState,
    SimulationConfig, SimulationState,
)
from .step_helpers import (
    deliver_boluses, is_deteriorating, progression_flags, sync_subtype_flags,
    tick_complications, tick_warnings, update_lactate_clearing,
)
from shocksim.core.constants import REAL_TO_SIM_RATIO, SEVERITY_REFERENCE, get_difficulty
from shocksim.core.enums import DistributiveSubtype, ObstructiveSubtype, ShockType
from shocksim.core.recorder import DataRecorder
from shocksim.core.utils import make_rng
from shocksim.monitors.alarms import detect_alerts
from shocksim.patient.comorbidities import (
    apply_to_hemodynamics, apply_to_labs, apply_to_vitals, comorbidity_modifiers,
)
from shocksim.patient.patient import PatientData
from shocksim.physiology.fluids import update_fluid_balance
from shocksim.physiology.hemodynamics import (
    baroreceptor_compensation, clamp_vitals, recompute_derived, respiratory_compensation,
)
from shocksim.physiology.labs import update_labs
from shocksim.physiology.profiles import get_baseline_profile
from shocksim.physiology.randomization import constrain_svr, randomize_profile
from shocksim.physiology.shocks.base import TreatmentContext
from shocksim.physiology.shocks.registry import get_model
from shocksim.physiology.treatments import compose_treatment_effects, resolve_interventions
from shocksim.physiology.ventilation import apply_ventilation

logger = logging.getLogger(__name__)


def _scale_severity(vitals, severity: float):
    """Deviation from normal grows with the difficulty's baseline severity."""
    changes = {
        name: normal + (getattr(vitals, name) - normal) * severity
        for name, normal in SEVERITY_REFERENCE.items()
    }
    return replace(vitals, **changes).with_map()


def initial_subtype_state(patient: PatientData, procalcitonin: Optional[float] = None):
    shock_type = patient.shock_type
    if shock_type == ShockType.DISTRIBUTIVE:
        return DistributiveState(
            subtype=patient.distributive_subtype or DistributiveSubtype.SEPTIC,
            procalcitonin=procalcitonin,
        )
    if shock_type == ShockType.CARDIOGENIC:
        return CardiogenicState()
    if shock_type == ShockType.HYPOVOLEMIC:
        return HypovolemicState(ongoing_loss=patient.ongoing_bleeding)
    if shock_type == ShockType.OBSTRUCTIVE:
        subtype = patient.obstructive_subtype or ObstructiveSubtype.PULMONARY_EMBOLISM
        return ObstructiveState(
            subtype=subtype,
            mediastinal_shift=subtype == ObstructiveSubtype.TENSION_PNEUMOTHORAX,
        )
    return None


def initialize_state(patient: PatientData, rng=None) -> SimulationState:
    """
    Case start: randomized archetype profile, difficulty severity, the
    user's baseline parameters and comorbidities.

    `rng` may be a seed or numpy Generator; by default the seed is derived
    from the patient's identity.
    """
    rng = make_rng(patient.seed() if rng is None else rng)
    shock_type = patient.shock_type
    profile = get_baseline_profile(shock_type, patient.distributive_subtype)
    profile = randomize_profile(profile, shock_type, rng)
    difficulty = get_difficulty(patient.difficulty)

    vitals = _scale_severity(profile.vitals, difficulty.baseline_severity)
    # PVC, POAP and RVP verbatim; RVS still has to look like the archetype
    vitals = replace(
        vitals,
        cvp=patient.pvc,
        pcwp=patient.poap,
        pvr=patient.rvp,
        svr=constrain_svr(patient.rvs, shock_type),
    )
    vitals = clamp_vitals(apply_to_vitals(vitals, patient.conditions))

    hemo = replace(
        profile.hemodynamics,
        preload=patient.preload_from_volemia or profile.hemodynamics.preload,
        stroke_volume=patient.ivs,
    )
    hemo = apply_to_hemodynamics(hemo, patient.conditions)

    labs = replace(profile.labs, initial_lactate=profile.labs.lactate)
    if shock_type == ShockType.DISTRIBUTIVE:
        labs = replace(labs, procalcitonin=float(rng.uniform(5.0, 25.0)),
                       crp=float(rng.uniform(50.0, 200.0)))
    labs = apply_to_labs(labs, patient.conditions)

    critical, warnings = detect_alerts(vitals)
    logger.info("Case initialized: %s, difficulty %s", shock_type.value, patient.difficulty)
    return SimulationState(
        vitals=vitals,
        labs=labs,
        fluid_balance=FluidBalance(),
        hemodynamics=hemo,
        is_deteriorating=True,
        critical_alerts=tuple(critical),
        warnings=tuple(warnings),
        subtype_state=initial_subtype_state(patient, labs.procalcitonin),
    )


def step(state: SimulationState, patient: PatientData, dt: float,
         config: Optional[SimulationConfig] = None) -> SimulationState:
    """
    Advance the case by dt simulated minutes and return the new state.

    Never mutates `state`. A terminal outcome is absorbing: the state is
    returned unchanged. Raises ValueError for dt <= 0.
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    if state.outcome.is_terminal:
        return state
    config = config or SimulationConfig()

    shock_type = patient.shock_type
    modifiers = comorbidity_modifiers(patient.conditions)
    difficulty = get_difficulty(patient.difficulty)
    now = state.sim_time

    # Interventions due now; archetype flags follow the running therapy
    interventions = resolve_interventions(state.interventions, now)
    subtype_state = sync_subtype_flags(state.subtype_state, interventions, now)

    # Untreated course, faster with comorbidities and harder difficulty
    flags = progression_flags(interventions, state.fluid_balance, patient, state.ventilation, now)
    elapsed = now * modifiers.deterioration_rate * difficulty.degradation_speed
    progression = get_model(shock_type).progress(state.vitals, elapsed, flags, subtype_state, dt)

    # Treatment effects
    composed = compose_treatment_effects(
        progression.vitals, state.hemodynamics, interventions, shock_type, modifiers,
        now=now, dt=dt,
        context=TreatmentContext(subtype_state, patient.weight, patient.bsa),
        efficacy=difficulty.treatment_efficacy,
    )
    balance, labs, subtype_state = deliver_boluses(
        state.fluid_balance, state.labs, subtype_state, composed.boluses, now
    )

    vitals, hemo, vent = apply_ventilation(
        composed.vitals, composed.hemodynamics, state.ventilation, shock_type, modifiers.oxygen
    )
    vitals = baroreceptor_compensation(vitals, dt)
    vitals, hemo = recompute_derived(vitals, hemo)

    balance = update_fluid_balance(balance, vitals, patient.weight, dt)
    labs = update_labs(labs, vitals, dt, shock_type, progression.lactate_delta)
    if not vent.is_intubated:
        vitals = replace(vitals, respiratory_rate=respiratory_compensation(
            vitals.respiratory_rate, labs.ph, dt / 60.0
        ))
    subtype_state = update_lactate_clearing(subtype_state, labs, now)

    critical, warnings = detect_alerts(vitals)
    stable = is_stable(vitals, labs)
    new_time = now + dt

    new_state = replace(
        state,
        vitals=vitals,
        labs=labs,
        fluid_balance=balance,
        hemodynamics=hemo,
        interventions=composed.interventions,
        sim_time=new_time,
        real_time=state.real_time + dt * 60.0 / REAL_TO_SIM_RATIO,
        is_stable=stable,
        stability_duration=track_stability(state.stability_duration, stable, dt),
        is_deteriorating=is_deteriorating(state.vitals, vitals, state.labs, labs),
        critical_alerts=tuple(critical),
        warnings=tick_warnings(warnings, vent, vitals, patient.weight),
        complications=tick_complications(state, vitals, labs, balance, shock_type, new_time),
        subtype_state=subtype_state,
        ventilation=vent,
    )

    if config.enable_outcome_tracking:
        new_state = replace(new_state, tracker=update_tracker(new_state.tracker, vitals, labs, dt))
        new_state = replace(new_state, outcome=evaluate_outcome(
            new_state, shock_type, config.required_stability_minutes
        ))

    logger.debug("t=%.0f MAP %.0f HR %.0f CO %.1f lactate %.1f",
                 new_time, vitals.map, vitals.heart_rate, vitals.cardiac_output, labs.lactate)
    return new_state


class SimulationEngine(InterventionControllerMixin):
    """
    Stateful driver around the pure `step`.

    State management:
    - `self.state` is the public snapshot for callers and tests.
    - Every tick replaces it with the new state from `step`; snapshots are
      immutable, so the output buffer holds them directly.
    """
    def __init__(self, patient: PatientData, config: Optional[SimulationConfig] = None, rng=None):
        self.patient = patient
        self.config = config or SimulationConfig()
        if rng is None:
            rng = self.config.rng_seed if self.config.rng_seed is not None else patient.seed()
        self.rng = make_rng(rng)
        self.state = initialize_state(patient, self.rng)
        self.running = False
        self.recorder: Optional[DataRecorder] = None

        # Output buffer (ring buffer for consumers).
        self.output_buffer = deque(maxlen=1000)
        self.output_buffer.append(self.state)

    def start(self):
        """Start the simulation loop."""
        self.running = True

    def stop(self):
        """Stop the simulation."""
        self.running = False

    def step(self, dt: Optional[float] = None) -> SimulationState:
        """
        Advance by dt simulated minutes (config.effective_dt by default).
        Does nothing while stopped or once the outcome is final.
        """
        if dt is None:
            dt = self.config.effective_dt
        if not self.running:
            return self.state

        self.state = step(self.state, self.patient, dt, self.config)
        self.output_buffer.append(self.state)
        if self.recorder is not None:
            self.recorder.log(self.state)
        if self.state.outcome.is_terminal:
            logger.info("Outcome %s at %.0f min", self.state.outcome.outcome.value, self.state.sim_time)
            self.stop()
        return self.state

    def run_for(self, minutes: float, dt: Optional[float] = None) -> SimulationState:
        """Step until `minutes` more have elapsed or the case ends."""
        dt = dt or self.config.effective_dt
        end = self.state.sim_time + minutes
        self.start()
        while self.running and self.state.sim_time < end - 1e-9:
            self.step(min(dt, end - self.state.sim_time))
        return self.state

    def get_latest_state(self) -> SimulationState:
        """Return the most recent state snapshot."""
        return self.state

    def start_recording(self, output_dir: str = ".", sample_interval_min: Optional[float] = None):
        interval = self.config.record_interval_min if sample_interval_min is None else sample_interval_min
        self.recorder = DataRecorder(output_dir, sample_interval_min=interval)
        self.recorder.start()
        self.recorder.log(self.state)

    def stop_recording(self):
        if self.recorder is not None:
            self.recorder.stop()
            self.recorder = None
