import pytest
import unittest
from dataclasses import replace

from shocksim.core.enums import (
    DefinitiveProcedure, DistributiveSubtype, FluidTolerance, FluidType, HypovolemicClass,
    ObstructiveSubtype, ShockType,
)
from shocksim.core.state import (
    CardiogenicState, DistributiveState, HemodynamicState, HypovolemicState, LabValues,
    ObstructiveState, VitalSigns,
)
from shocksim.physiology.shocks.base import ProgressionFlags, TreatmentContext
from shocksim.physiology.shocks.cardiogenic import (
    CardiogenicModel, cardiogenic_fluid_risk, cardiogenic_inotrope_response, mcs_indication,
    scai_stage,
)
from shocksim.physiology.shocks.distributive import (
    DistributiveModel, assess_lactate_clearance, distributive_fluid_response,
    distributive_vasopressor_response, evaluate_performance, sofa_components,
)
from shocksim.physiology.shocks.hypovolemic import (
    HypovolemicModel, assess_fluid_responsiveness, classify_hypovolemia,
    estimate_volume_deficit, hypovolemic_fluid_response, screen_complications,
)
from shocksim.physiology.shocks.mixed import MixedModel, identify_dominant_components
from shocksim.physiology.shocks.obstructive import (
    ObstructiveModel, definitive_intervention, detect_obstructive_pattern, pe_severity,
)
from shocksim.physiology.shocks.recovery_curves import apply_recovery, effect_fraction
from shocksim.physiology.shocks.registry import get_model


class TestRegistry(unittest.TestCase):

    def test_lookup_by_label(self):
        self.assertIsInstance(get_model("Choque cardiogênico"), CardiogenicModel)

    def test_unknown_label(self):
        with self.assertRaises(ValueError):
            get_model("nope")

# --- Distributive ---

class TestDistributive:

    def test_untreated_svr_falls(self):
        v = VitalSigns()
        out = DistributiveModel().progress(v, 120.0, ProgressionFlags(), DistributiveState()).vitals
        assert out.svr < v.svr
        assert out.temperature > v.temperature

    def test_neurogenic_has_no_tachycardia(self):
        v = VitalSigns()
        state = DistributiveState(subtype=DistributiveSubtype.NEUROGENIC)
        out = DistributiveModel().progress(v, 60.0, ProgressionFlags(), state).vitals
        assert out.heart_rate < v.heart_rate

    def test_norepinephrine_in_sepsis(self):
        v = VitalSigns(svr=500.0, map=55.0)
        result = distributive_vasopressor_response(v, "norepinephrine", 0.2, DistributiveState())
        assert result["svr"] == pytest.approx(500.0 + 0.2 * 220 * 1.15)
        assert result["map"] == pytest.approx(58.0)

    def test_vasopressor_svr_is_capped(self):
        v = VitalSigns(svr=2150.0)
        result = distributive_vasopressor_response(v, "vasopressin", 0.04, DistributiveState())
        assert result["svr"] == 2200.0

    def test_fluid_response_diminishes(self):
        v = VitalSigns(cvp=4.0, svr=600.0, cardiac_output=6.0)
        first = distributive_fluid_response(v, 500.0, 0.0)
        late = distributive_fluid_response(v, 500.0, 4000.0)
        assert first["co"] > late["co"] > v.cardiac_output

    def test_lactate_clearance(self):
        clearing = assess_lactate_clearance(5.0, 4.0, 60.0)
        assert clearing.clearing and clearing.trend == "improving"
        worse = assess_lactate_clearance(4.0, 5.0, 60.0)
        assert not worse.clearing and worse.trend == "worsening"

    def test_sofa(self):
        scores = sofa_components(VitalSigns(map=60.0), LabValues(po2=90.0, creatinine=2.5), True, 0.3)
        assert scores == {"cardiovascular": 3, "respiratory": 4, "renal": 2}

    def test_bundle_score(self):
        state = DistributiveState(
            antibiotics_given=True, antibiotics_time=30.0, fluid_start_time=10.0,
            vasopressor_start_time=45.0, fluid_volume_given=2100.0,
        )
        perf = evaluate_performance(state, VitalSigns(map=70.0), 70.0, 0.1)
        assert perf["overall_score"] == 100
        assert perf["appropriate_fluid_volume"]

# --- Cardiogenic ---

class TestCardiogenic:

    def test_congested_bolus_is_high_risk(self):
        risk = cardiogenic_fluid_risk(16.0, 0.0, 95.0, 2.5, 1000.0)
        assert risk.tolerance.severity >= FluidTolerance.HIGH_RISK.severity
        assert risk.co_change < 0

    def test_congested_bolus_worsens_oxygenation(self):
        v = VitalSigns(cvp=16.0, spo2=92.0, cardiac_output=3.0)
        response = CardiogenicModel().fluid_response(
            v, HemodynamicState(), FluidType.CRYSTALLOID, 1000.0, TreatmentContext(bsa=1.8)
        )
        assert response.vitals["spo2"] < v.spo2
        assert response.vitals["cvp"] > v.cvp

    def test_dry_ventricle_tolerates_fluid(self):
        risk = cardiogenic_fluid_risk(5.0, 10.0, 96.0, 2.6, 250.0)
        assert risk.tolerance == FluidTolerance.ACCEPTABLE

    def test_dobutamine_raises_output(self):
        result = cardiogenic_inotrope_response(3.0, 30.0, 1600.0, 15.0, "dobutamine", 5.0)
        assert result.co > 3.0
        assert result.svr < 1600.0

    def test_overload_accelerates_congestion(self):
        v = VitalSigns(spo2=92.0)
        dry = CardiogenicModel().progress(v, 60.0, ProgressionFlags(), CardiogenicState()).vitals
        wet = CardiogenicModel().progress(v, 60.0, ProgressionFlags(net_balance=2000.0),
                                          CardiogenicState()).vitals
        assert wet.spo2 < dry.spo2
        assert wet.cvp > dry.cvp

    def test_mechanical_support_helps(self):
        v = VitalSigns(cardiac_output=3.0)
        base = CardiogenicModel().progress(v, 60.0, ProgressionFlags(), CardiogenicState()).vitals
        mcs = CardiogenicModel().progress(v, 60.0, ProgressionFlags(),
                                          CardiogenicState(has_mechanical_support=True)).vitals
        assert mcs.cardiac_output > base.cardiac_output

    def test_scai_and_mcs(self):
        assert scai_stage(45.0, 2.5, 3.0, 10.0, True, False).stage == "E"
        assert scai_stage(80.0, 3.0, 1.0, 5.0, False, False).stage == "A"
        assert mcs_indication(50.0, 1.5, "E", 0.5).device == "ECMO"
        assert not mcs_indication(80.0, 3.0, "A", 0.0).indicated

# --- Hypovolemic ---

class TestHypovolemic:

    def test_atls_classes(self):
        assert classify_hypovolemia(500.0, 70.0) == HypovolemicClass.CLASS_I
        assert classify_hypovolemia(1000.0, 70.0) == HypovolemicClass.CLASS_II
        assert classify_hypovolemia(1700.0, 70.0) == HypovolemicClass.CLASS_III
        assert classify_hypovolemia(2500.0, 70.0) == HypovolemicClass.CLASS_IV

    def test_deficit_score(self):
        assert estimate_volume_deficit(1.0, 145.0, 50.0) == pytest.approx(3500.0)
        assert estimate_volume_deficit(10.0, 80.0, 80.0) == 0.0

    def test_empty_ventricle_responds_more(self):
        empty = hypovolemic_fluid_response(3.0, 2.0, 30.0, 1000.0)
        full = hypovolemic_fluid_response(3.0, 11.0, 30.0, 1000.0)
        assert empty["co"] - 3.0 > full["co"] - 3.0

    def test_fluid_responsiveness(self):
        result = assess_fluid_responsiveness(2.0, 2000.0, 3.0, 30.0, 55.0, 5.0)
        assert result.responsive
        assert "STRONGLY" in result.recommendation

    def test_ongoing_loss_deteriorates_faster(self):
        v = VitalSigns(heart_rate=110.0, cvp=3.0, map=65.0)
        flags = ProgressionFlags()
        stable = HypovolemicModel().progress(v, 60.0, flags, HypovolemicState()).vitals
        bleeding = HypovolemicModel().progress(v, 60.0, flags, HypovolemicState(ongoing_loss=True)).vitals
        assert bleeding.heart_rate > stable.heart_rate > v.heart_rate

    def test_class_iv_paradoxical_bradycardia(self):
        v = VitalSigns(heart_rate=150.0, cvp=1.0, map=50.0, cardiac_output=1.9, spo2=74.0)
        assert classify_hypovolemia(estimate_volume_deficit(1.0, 150.0, 50.0), 70.0) == HypovolemicClass.CLASS_IV
        out = HypovolemicModel().progress(v, 120.0, ProgressionFlags(), HypovolemicState()).vitals
        assert out.heart_rate < v.heart_rate
        # Floors sit below the incompatibility thresholds
        assert out.cardiac_output < 1.9
        assert out.spo2 < 74.0

    def test_complication_screen(self):
        screen = screen_complications(VitalSigns(temperature=34.0), LabValues(lactate=5.0), 6000.0, 30.0)
        assert "Hypothermia" in screen.complications
        assert "Severe lactic acidosis (Type A)" in screen.complications
        assert "ARDS/TRALI risk" in screen.risks

# --- Obstructive ---

class TestObstructive:

    def setup_method(self):
        self.tamponade = VitalSigns(cardiac_output=2.5, cvp=22.0, systolic=75.0, diastolic=55.0,
                                    heart_rate=130.0, spo2=88.0).with_map()

    def test_pericardiocentesis_relieves_tamponade(self):
        result = definitive_intervention(DefinitiveProcedure.PERICARDIOCENTESIS, self.tamponade, 3,
                                         complication_scale=0.0)
        v = result.response.vitals
        assert result.success and not result.complications
        assert v["cardiac_output"] > 2 * self.tamponade.cardiac_output
        assert self.tamponade.cvp - v["cvp"] >= 10

    def test_complication_scale(self):
        result = definitive_intervention(DefinitiveProcedure.PERICARDIOCENTESIS, self.tamponade,
                                         3, complication_scale=10.0)
        assert not result.success
        assert result.complications

    def test_seeded_rolls_repeat(self):
        a = definitive_intervention(DefinitiveProcedure.THROMBOLYSIS, self.tamponade, 11)
        b = definitive_intervention(DefinitiveProcedure.THROMBOLYSIS, self.tamponade, 11)
        assert a.response.vitals == b.response.vitals
        assert a.complications == b.complications

    def test_untreated_deteriorates_fast(self):
        state = ObstructiveState(subtype=ObstructiveSubtype.CARDIAC_TAMPONADE)
        out = ObstructiveModel().progress(self.tamponade, 30.0, ProgressionFlags(), state).vitals
        assert out.map < self.tamponade.map
        assert out.cvp > self.tamponade.cvp

    def test_recovery_after_procedure(self):
        state = ObstructiveState(
            subtype=ObstructiveSubtype.CARDIAC_TAMPONADE, definitive_intervention_done=True,
            intervention_type=DefinitiveProcedure.PERICARDIOCENTESIS, intervention_time=10.0,
        )
        out = ObstructiveModel().progress(self.tamponade, 15.0, ProgressionFlags(now=15.0), state).vitals
        assert out.cardiac_output > self.tamponade.cardiac_output
        assert out.cvp < self.tamponade.cvp

    def test_recovery_never_passes_cap(self):
        v = VitalSigns(cardiac_output=6.4)
        for minute in range(10):
            v = apply_recovery(v, DefinitiveProcedure.PERICARDIOCENTESIS, float(minute))
        assert v.cardiac_output == pytest.approx(6.5)

    def test_thrombolysis_ramps_up(self):
        assert effect_fraction(DefinitiveProcedure.THROMBOLYSIS, 45.0) == pytest.approx(0.5)
        assert effect_fraction(DefinitiveProcedure.CHEST_TUBE, 1.0) == 1.0

    def test_pattern_detection(self):
        v = VitalSigns(cvp=20.0, cardiac_output=2.5, systolic=80.0, diastolic=60.0, svr=1800.0)
        pattern = detect_obstructive_pattern(v)
        assert pattern.likely_etiology == ObstructiveSubtype.CARDIAC_TAMPONADE
        assert pattern.suspicion == "very_high"

    def test_pe_severity(self):
        assert pe_severity(VitalSigns(systolic=80.0), False, False, False).pesi_class == "V"
        assert pe_severity(VitalSigns(), False, False, False).pesi_class == "I"

# --- Mixed ---

class TestMixed:

    def test_untreated_mixed_shock(self):
        v = VitalSigns()
        progression = MixedModel().progress(v, 10.0, ProgressionFlags(), None, dt=1.0)
        assert progression.lactate_delta == pytest.approx(0.3)
        assert progression.vitals.map == pytest.approx(v.map - 2.0)

    def test_treated_mixed_shock_holds(self):
        progression = MixedModel().progress(VitalSigns(), 10.0, ProgressionFlags(has_fluids=True))
        assert progression.lactate_delta == 0.0

    def test_dominant_components(self):
        assert identify_dominant_components(VitalSigns(svr=600.0)) == ["Distributivo"]
        assert identify_dominant_components(replace(VitalSigns(), cvp=6.0)) == ["Indeterminado"]
