import pytest
import unittest
from dataclasses import replace

from shocksim.core.constants import OutcomeTuning
from shocksim.core.enums import PatientOutcome, ShockType
from shocksim.core.outcome import (
    CAUSE_CONTIGUOUS, CAUSE_CUMULATIVE, CAUSE_EPISODES, check_death, evaluate_outcome,
    incompatibility_reasons, is_stable, outcome_feedback, shock_resolved, track_stability,
    update_tracker,
)
from shocksim.core.state import (
    CriticalStateTracker, LabValues, OutcomeResult, SimulationState, VitalSigns,
)

CRASHING = VitalSigns(map=35.0)
FINE = VitalSigns()
LABS = LabValues()
RESOLVED_SEPSIS = VitalSigns(cardiac_output=5.0, svr=1000.0)


class TestIncompatibility(unittest.TestCase):

    def test_normal_vitals_are_compatible(self):
        self.assertEqual(incompatibility_reasons(FINE, LABS), [])

    def test_each_finding_listed(self):
        reasons = incompatibility_reasons(
            VitalSigns(map=35.0, heart_rate=190.0, cardiac_output=1.5),
            LabValues(lactate=16.0, potassium=8.0),
        )
        self.assertEqual(len(reasons), 5)
        self.assertIn("PAM crítica", reasons[0])


class TestTracker(unittest.TestCase):

    def test_compatible_tick_resets_consecutive_counters(self):
        t = update_tracker(CriticalStateTracker(), CRASHING, LABS, 1.0)
        t = update_tracker(t, CRASHING, LABS, 1.0)
        self.assertEqual(t.incompatible_vitals_count, 2)
        t = update_tracker(t, FINE, LABS, 1.0)
        self.assertEqual(t.incompatible_vitals_count, 0)
        self.assertEqual(t.time_since_last_recovery, 0.0)
        self.assertEqual(t.incompatible_vitals_duration, 2.0)

    def test_sustained_episode_is_fatal_at_fifteen_minutes(self):
        t = CriticalStateTracker()
        for _ in range(14):
            t = update_tracker(t, CRASHING, LABS, 1.0)
            self.assertIsNone(check_death(t))
        t = update_tracker(t, CRASHING, LABS, 1.0)
        cause, factors = check_death(t)
        self.assertEqual(cause, CAUSE_EPISODES)
        self.assertTrue(factors)

    def test_contiguous_criterion(self):
        t = update_tracker(CriticalStateTracker(), CRASHING, LABS, 30.0)
        self.assertEqual(check_death(t)[0], CAUSE_CONTIGUOUS)

    def test_intermittent_instability_accumulates(self):
        t = CriticalStateTracker()
        for _ in range(59):
            t = update_tracker(t, CRASHING, LABS, 1.0)
            t = update_tracker(t, FINE, LABS, 1.0)
        self.assertIsNone(check_death(t))
        t = update_tracker(t, CRASHING, LABS, 1.0)
        self.assertEqual(check_death(t)[0], CAUSE_CUMULATIVE)

    def test_tuning_override(self):
        t = update_tracker(CriticalStateTracker(), CRASHING, LABS, 5.0)
        strict = OutcomeTuning(contiguous_death_minutes=5.0)
        self.assertEqual(check_death(t, strict)[0], CAUSE_CONTIGUOUS)


class TestResolution:

    def test_distributive_needs_normal_svr(self):
        assert shock_resolved(RESOLVED_SEPSIS, LABS, ShockType.DISTRIBUTIVE)
        assert not shock_resolved(VitalSigns(svr=600.0), LABS, ShockType.DISTRIBUTIVE)

    def test_lactate_halved_counts_as_cleared(self):
        assert shock_resolved(FINE, LabValues(lactate=3.0), "Choque misto", initial_lactate=6.0)
        assert not shock_resolved(FINE, LabValues(lactate=3.0), "Choque misto", initial_lactate=4.0)

    def test_cardiogenic_pcwp(self):
        assert not shock_resolved(VitalSigns(pcwp=22.0), LABS, ShockType.CARDIOGENIC)

    def test_stability_window(self):
        assert is_stable(FINE, LABS)
        assert not is_stable(FINE, LabValues(lactate=5.0))
        assert track_stability(10.0, True, 1.0) == 11.0
        assert track_stability(10.0, False, 1.0) == 0.0


class TestOutcome:

    def test_death_checked_before_survival(self):
        tracker = CriticalStateTracker(incompatible_vitals_duration=60.0)
        state = SimulationState(vitals=RESOLVED_SEPSIS, tracker=tracker, stability_duration=120.0)
        assert evaluate_outcome(state, ShockType.DISTRIBUTIVE).outcome == PatientOutcome.DIED

    def test_survival_needs_sustained_stability(self):
        state = SimulationState(vitals=RESOLVED_SEPSIS, stability_duration=59.0, sim_time=90.0)
        ongoing = evaluate_outcome(state, ShockType.DISTRIBUTIVE)
        assert ongoing.outcome == PatientOutcome.ONGOING
        assert ongoing.time_of_outcome == 90.0

        survived = evaluate_outcome(replace(state, stability_duration=60.0), ShockType.DISTRIBUTIVE)
        assert survived.outcome == PatientOutcome.SURVIVED
        assert survived.quality_metrics["time_to_shock_reversal"] == 90.0

    def test_required_stability_is_configurable(self):
        state = SimulationState(vitals=RESOLVED_SEPSIS, stability_duration=10.0)
        outcome = evaluate_outcome(state, ShockType.DISTRIBUTIVE, required_stability=10.0)
        assert outcome.outcome == PatientOutcome.SURVIVED

    def test_terminal_outcome_is_absorbing(self):
        died = OutcomeResult(PatientOutcome.DIED, 42.0, CAUSE_EPISODES)
        state = SimulationState(vitals=RESOLVED_SEPSIS, stability_duration=500.0, outcome=died)
        assert evaluate_outcome(state, ShockType.DISTRIBUTIVE) is died


class TestFeedback:

    def test_death_debrief(self):
        text = outcome_feedback(OutcomeResult(PatientOutcome.DIED, 42.0, CAUSE_EPISODES, ("PAM baixa",)))
        assert "ÓBITO" in text and "PAM baixa" in text and "42 min" in text

    def test_survival_debrief(self):
        state = SimulationState(vitals=RESOLVED_SEPSIS, stability_duration=60.0, sim_time=75.0)
        text = outcome_feedback(evaluate_outcome(state, ShockType.DISTRIBUTIVE))
        assert "SOBREVIVEU" in text
        assert "75 min" in text

    def test_ongoing(self):
        assert "andamento" in outcome_feedback(OutcomeResult())


@pytest.mark.parametrize("shock_type", list(ShockType))
def test_normal_patient_resolves(shock_type):
    assert shock_resolved(VitalSigns(cvp=8.0, cardiac_output=5.0), LABS, shock_type)
