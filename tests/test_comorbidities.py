import pytest
import unittest

from shocksim.core.state import HemodynamicState, LabValues, VitalSigns
from shocksim.patient.comorbidities import (
    apply_to_hemodynamics, apply_to_labs, apply_to_vitals, comorbidity_modifiers,
)


class TestComorbidityLayer(unittest.TestCase):

    def setUp(self):
        self.vitals = VitalSigns()

    def test_no_conditions_is_identity(self):
        self.assertIs(apply_to_vitals(self.vitals, []), self.vitals)

    def test_unknown_conditions_are_ignored(self):
        self.assertIs(apply_to_vitals(self.vitals, ["Gota"]), self.vitals)

    def test_heart_failure_deltas(self):
        out = apply_to_vitals(self.vitals, ["Insuficiência Cardíaca Prévia"])
        self.assertAlmostEqual(out.cardiac_output, self.vitals.cardiac_output - 1.5)
        self.assertAlmostEqual(out.svr, self.vitals.svr + 200)
        self.assertAlmostEqual(out.map, out.diastolic + (out.systolic - out.diastolic) / 3)

    def test_order_independent(self):
        a = apply_to_vitals(self.vitals, ["DPOC", "Anemia"])
        b = apply_to_vitals(self.vitals, ["Anemia", "DPOC"])
        self.assertEqual(a, b)
        self.assertEqual(comorbidity_modifiers(["DPOC", "Anemia"]),
                         comorbidity_modifiers(["Anemia", "DPOC"]))

    def test_missing_optional_field_stays_unknown(self):
        # DPOC adds PVR, but there is no baseline to add it to
        self.assertIsNone(apply_to_vitals(self.vitals, ["DPOC"]).pvr)

    def test_safety_bounds(self):
        low = VitalSigns(spo2=62.0)
        out = apply_to_vitals(low, ["DPOC", "Anemia"])
        self.assertEqual(out.spo2, 60.0)


class TestModifiers:

    def test_defaults(self):
        m = comorbidity_modifiers([])
        assert m.fluid == 1.0 and m.deterioration_rate == 1.0

    def test_factors_multiply(self):
        m = comorbidity_modifiers(["Insuficiência Cardíaca Prévia", "Hipertensão Arterial Sistêmica"])
        assert m.fluid == pytest.approx(0.4 * 0.7)
        assert m.complication_risk == pytest.approx(1.5 * 1.3)

    def test_hemodynamics_and_labs(self):
        hemo = apply_to_hemodynamics(HemodynamicState(), ["Insuficiência Cardíaca Prévia"])
        assert hemo.contractility == pytest.approx(45.0)
        labs = apply_to_labs(LabValues(), ["Doença Renal Crônica"])
        assert labs.creatinine == pytest.approx(3.0)
        assert labs.hematocrit == pytest.approx(labs.hemoglobin * 3)
