"""
Critical-state tracking and the outcome state machine.

The tracker counts how long the vitals have been incompatible with life.
Death is checked before survival on every tick; once the outcome leaves
ONGOING it never changes again.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Tuple

from shocksim.core.constants import INCOMPATIBLE_VITALS, OutcomeTuning
from shocksim.core.enums import PatientOutcome, ShockType
from shocksim.core.state import (
    CriticalStateTracker, LabValues, OutcomeResult, SimulationState, VitalSigns,
)
from shocksim.physiology.hemo_config import HemodynamicConfig

logger = logging.getLogger(__name__)

TUNING = OutcomeTuning()
DEFAULT_CONFIG = HemodynamicConfig()

CAUSE_CONTIGUOUS = "Choque refratário com falência circulatória irreversível"
CAUSE_EPISODES = "Deterioração cardiovascular progressiva e refratária"
CAUSE_CUMULATIVE = "Falência de múltiplos órgãos por hipoperfusão prolongada"
CAUSE_RESOLVED = "Resolução completa do choque com estabilidade hemodinâmica sustentada"


def incompatibility_reasons(vitals: VitalSigns, labs: LabValues) -> List[str]:
    """Every finding incompatible with life, as display strings."""
    limits = INCOMPATIBLE_VITALS
    reasons = []
    if vitals.map < limits["map"]:
        reasons.append(f"PAM crítica ({vitals.map:.0f} < 40 mmHg)")

    hr_low, hr_high = limits["heart_rate"]
    if vitals.heart_rate < hr_low:
        reasons.append(f"Bradicardia extrema (FC {vitals.heart_rate:.0f} < 30 bpm)")
    elif vitals.heart_rate > hr_high:
        reasons.append(f"Taquicardia extrema (FC {vitals.heart_rate:.0f} > 180 bpm)")

    if vitals.spo2 < limits["spo2"]:
        reasons.append(f"Hipoxemia severa (SpO2 {vitals.spo2:.0f}% < 70%)")

    ph_low, ph_high = limits["ph"]
    if labs.ph < ph_low:
        reasons.append(f"Acidemia severa (pH {labs.ph:.2f} < 6.8)")
    elif labs.ph > ph_high:
        reasons.append(f"Alcalemia severa (pH {labs.ph:.2f} > 7.8)")

    if labs.lactate > limits["lactate"]:
        reasons.append(f"Lactato extremo ({labs.lactate:.1f} > 15 mmol/L)")

    if vitals.cardiac_output < limits["cardiac_output"]:
        reasons.append(f"Débito cardíaco crítico ({vitals.cardiac_output:.1f} < 2.0 L/min)")

    k_low, k_high = limits["potassium"]
    if labs.potassium < k_low:
        reasons.append(f"Hipocalemia severa (K {labs.potassium:.1f} < 2.0 mEq/L)")
    elif labs.potassium > k_high:
        reasons.append(f"Hipercalemia severa (K {labs.potassium:.1f} > 7.5 mEq/L)")
    return reasons


def update_tracker(tracker: CriticalStateTracker, vitals: VitalSigns, labs: LabValues,
                   dt: float) -> CriticalStateTracker:
    """
    Count one tick. A compatible tick resets the consecutive counters;
    the cumulative duration only ever grows.
    """
    reasons = incompatibility_reasons(vitals, labs)
    if reasons:
        return CriticalStateTracker(
            incompatible_vitals_count=tracker.incompatible_vitals_count + 1,
            incompatible_vitals_duration=tracker.incompatible_vitals_duration + dt,
            reasons=tuple(reasons),
            time_since_last_recovery=tracker.time_since_last_recovery + dt,
        )
    return CriticalStateTracker(
        incompatible_vitals_duration=tracker.incompatible_vitals_duration,
    )


def check_death(tracker: CriticalStateTracker,
                tuning: OutcomeTuning = TUNING) -> Optional[Tuple[str, List[str]]]:
    """(cause, contributing factors) when any death criterion holds, else None."""
    factors = list(tracker.reasons)
    if tracker.time_since_last_recovery >= tuning.contiguous_death_minutes:
        return CAUSE_CONTIGUOUS, factors + [
            f"Sinais vitais incompatíveis com a vida por {tracker.time_since_last_recovery:.0f} minutos"
        ]
    if (tracker.incompatible_vitals_count >= tuning.episode_count_threshold
            and tracker.incompatible_vitals_duration >= tuning.episode_duration_minutes):
        return CAUSE_EPISODES, factors + [
            f"{tracker.incompatible_vitals_count} episódios de instabilidade crítica"
        ]
    if tracker.incompatible_vitals_duration >= tuning.cumulative_death_minutes:
        return CAUSE_CUMULATIVE, factors + [
            f"Tempo cumulativo de {tracker.incompatible_vitals_duration:.0f} min com sinais vitais críticos"
        ]
    return None


def shock_resolved(vitals: VitalSigns, labs: LabValues, shock_type,
                   initial_lactate: Optional[float] = None) -> bool:
    """Archetype-specific resolution criteria."""
    shock_type = ShockType.from_label(shock_type)
    initial = initial_lactate if initial_lactate is not None else labs.lactate
    map_ok = vitals.map >= 65
    lactate_cleared = labs.lactate < 2.0 or labs.lactate <= initial * 0.5
    perfused = vitals.spo2 >= 92 and vitals.cardiac_output >= 4.0

    if shock_type == ShockType.DISTRIBUTIVE:
        return map_ok and lactate_cleared and perfused and 800 <= vitals.svr <= 1400
    if shock_type == ShockType.CARDIOGENIC:
        pcwp_ok = vitals.pcwp is None or vitals.pcwp <= 18
        return map_ok and perfused and pcwp_ok
    if shock_type == ShockType.HYPOVOLEMIC:
        return (map_ok and lactate_cleared and perfused
                and 5 <= vitals.cvp <= 12 and 60 <= vitals.heart_rate <= 100)
    if shock_type == ShockType.OBSTRUCTIVE:
        return map_ok and perfused and vitals.cardiac_output >= 4.5 and vitals.cvp <= 12
    return map_ok and lactate_cleared and perfused


def is_stable(vitals: VitalSigns, labs: LabValues,
              config: HemodynamicConfig = DEFAULT_CONFIG) -> bool:
    map_low, map_high = config.stable_map
    hr_low, hr_high = config.stable_hr
    ph_low, ph_high = config.stable_ph
    return (map_low <= vitals.map <= map_high
            and hr_low <= vitals.heart_rate <= hr_high
            and vitals.spo2 >= config.stable_spo2_min
            and labs.lactate <= config.stable_lactate_max
            and ph_low <= labs.ph <= ph_high)


def track_stability(duration: float, stable: bool, dt: float) -> float:
    return duration + dt if stable else 0.0


def evaluate_outcome(state: SimulationState, shock_type,
                     required_stability: Optional[float] = None,
                     tuning: OutcomeTuning = TUNING) -> OutcomeResult:
    """
    Outcome after the tracker and stability of `state` are up to date.
    A terminal outcome is returned unchanged.
    """
    if state.outcome.is_terminal:
        return state.outcome
    now = state.sim_time

    death = check_death(state.tracker, tuning)
    if death is not None:
        cause, factors = death
        logger.info("Patient died at %.0f min: %s", now, cause)
        return OutcomeResult(PatientOutcome.DIED, now, cause, tuple(factors))

    required = tuning.required_stability_minutes if required_stability is None else required_stability
    resolved = shock_resolved(state.vitals, state.labs, shock_type, state.labs.initial_lactate)
    if resolved and state.stability_duration >= required:
        vitals, labs = state.vitals, state.labs
        logger.info("Patient survived at %.0f min", now)
        return OutcomeResult(
            PatientOutcome.SURVIVED, now, CAUSE_RESOLVED,
            (
                "PAM mantida ≥ 65 mmHg",
                f"Lactato normalizado ({labs.lactate:.1f} mmol/L)",
                f"Débito cardíaco adequado ({vitals.cardiac_output:.1f} L/min)",
            ),
            quality_metrics={
                "time_to_shock_reversal": now,
                "lactate_cleared": float(labs.lactate < 2.0),
                "final_map": vitals.map,
                "final_lactate": labs.lactate,
                "final_co": vitals.cardiac_output,
            },
        )
    return replace(state.outcome, time_of_outcome=now)


def outcome_feedback(outcome: OutcomeResult) -> str:
    """Debrief text for the end-of-case screen."""
    if outcome.outcome == PatientOutcome.DIED:
        lines = [
            f"❌ **PACIENTE FOI A ÓBITO** ({outcome.time_of_outcome:.0f} min)",
            "",
            f"**Causa primária:** {outcome.primary_cause}",
            "",
            "**Fatores contribuintes:**",
        ]
        lines += [f"  • {factor}" for factor in outcome.contributing_factors]
        lines += [
            "",
            "**Lições aprendidas:**",
            "  • Choque não tratado ou refratário leva à falência multiorgânica",
            "  • PAM < 40 mmHg sustentada é incompatível com a vida",
            "  • Reconhecimento precoce e tratamento agressivo são essenciais",
        ]
        return "\n".join(lines) + "\n"

    if outcome.outcome == PatientOutcome.SURVIVED:
        lines = [
            f"✅ **PACIENTE SOBREVIVEU** ({outcome.time_of_outcome:.0f} min)",
            "",
            f"**Status:** {outcome.primary_cause}",
            "",
            "**Parâmetros finais:**",
        ]
        lines += [f"  • {factor}" for factor in outcome.contributing_factors]
        metrics = outcome.quality_metrics
        if metrics:
            lines += [
                "",
                "**Métricas de qualidade:**",
                f"  • Tempo até reversão do choque: {metrics['time_to_shock_reversal']:.0f} min",
                f"  • Depuração de lactato: {'Sim' if metrics['lactate_cleared'] else 'Não'}",
            ]
        return "\n".join(lines) + "\n"

    return "⏳ **Tratamento em andamento...**\n\nContinue monitorando e ajustando a terapia."
