import json
import pytest
import unittest

from shocksim.core.enums import ObstructiveSubtype, ShockType
from shocksim.core.units import convert_dose, normalize_dose_unit
from shocksim.monitors.alarms import detect_alerts
from shocksim.core.state import VitalSigns
from shocksim.patient.patient import PatientData
from shocksim.patient.patient_io import (
    PatientDataError, export_patient, load_patient, patient_from_dict, patient_to_dict,
    validate_patient_dict,
)

CASE = {
    "initials": "M.A",
    "age": 67,
    "weight": 82,
    "conditions": ["DPOC"],
    "difficulty": "Intensivista",
    "resourceLevel": "Médio",
    "shockType": "Choque obstrutivo",
    "rvs": 1500,
    "rvp": 3.5,
    "volemia": "Normal",
    "ivs": 40,
    "pvc": 18,
    "poap": 10,
    "obstructiveSubtype": "tension_pneumothorax",
}

# --- Patient files ---

class TestPatientFiles(unittest.TestCase):

    def test_valid_case(self):
        self.assertEqual(validate_patient_dict(CASE), [])
        patient = patient_from_dict(CASE)
        self.assertEqual(patient.shock_type, ShockType.OBSTRUCTIVE)
        self.assertEqual(patient.obstructive_subtype, ObstructiveSubtype.TENSION_PNEUMOTHORAX)
        self.assertEqual(patient.resource_level, "Médio")

    def test_snake_case_keys_accepted(self):
        data = dict(CASE)
        data["shock_type"] = data.pop("shockType")
        self.assertEqual(patient_from_dict(data).shock_type, ShockType.OBSTRUCTIVE)

    def test_every_problem_reported(self):
        bad = dict(CASE, weight=0, volemia="Seco", shockType="Choque térmico")
        del bad["pvc"]
        with self.assertRaises(PatientDataError) as ctx:
            patient_from_dict(bad)
        self.assertEqual(len(ctx.exception.problems), 4)

    def test_rejects_non_object(self):
        self.assertEqual(validate_patient_dict([1, 2]), ["Patient data must be a JSON object"])

    def test_booleans_are_not_numbers(self):
        problems = validate_patient_dict(dict(CASE, ivs=True))
        self.assertTrue(any("ivs" in p for p in problems))


class TestFileRoundTrip:

    def test_export_then_load(self, tmp_path):
        path = export_patient(patient_from_dict(CASE), tmp_path / "case.json")
        loaded = load_patient(path)
        assert patient_to_dict(loaded) == patient_to_dict(patient_from_dict(CASE))
        assert json.loads(path.read_text(encoding="utf-8"))["shockType"] == "Choque obstrutivo"

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PatientDataError, match="Malformed JSON"):
            load_patient(path)

    def test_unset_subtypes_omitted(self):
        assert "distributiveSubtype" not in patient_to_dict(PatientData())


class TestPatientData:

    def test_seed_is_stable(self):
        assert PatientData(initials="X").seed() == PatientData(initials="X").seed()
        assert PatientData(initials="X").seed() != PatientData(initials="Y").seed()

    def test_derived_quantities(self):
        patient = PatientData(weight=72.0, volemia="Hipervolêmico")
        assert patient.bsa == pytest.approx(1.8439, abs=1e-3)
        assert patient.ideal_body_weight == pytest.approx(64.8)
        assert patient.preload_from_volemia == 85.0

# --- Units ---

class TestUnits:

    def test_normalization(self):
        assert normalize_dose_unit("µg/kg/min") == "ug/kg/min"
        assert normalize_dose_unit(" UI/h ") == "u/hr"
        assert normalize_dose_unit("mcg/kg/h") == "ug/kg/hr"
        assert normalize_dose_unit("µg/kg/h") == "ug/kg/hr"

    @pytest.mark.parametrize("value, unit, drug, expected", [
        (0.1, None, "norepinephrine", 0.1),
        (7.0, "mcg/min", "norepinephrine", 0.1),
        (6.0, "mcg/kg/h", "dobutamine", 0.1),
        (6.0, "mcg/kg/hr", "dobutamine", 0.1),
        (2.4, "U/h", "vasopressin", 0.04),
        (40.0, "mU/min", "vasopressin", 0.04),
    ])
    def test_conversions(self, value, unit, drug, expected):
        assert convert_dose(value, unit, drug, weight=70.0) == pytest.approx(expected)

    def test_unsupported_unit(self):
        with pytest.raises(ValueError):
            convert_dose(1.0, "mg/h", "norepinephrine")

# --- Monitor alarms ---

class TestAlarms:

    def test_normal_vitals_are_quiet(self):
        assert detect_alerts(VitalSigns()) == ([], [])

    def test_shock_alarms(self):
        critical, warnings = detect_alerts(VitalSigns(heart_rate=150.0, systolic=65.0, map=50.0, spo2=85.0))
        assert critical == ["TAQUICARDIA CRÍTICA", "HIPOTENSÃO SEVERA", "PAM CRÍTICA", "HIPOXEMIA CRÍTICA"]
        assert "PAM abaixo do alvo" in warnings
        assert "Saturação de O2 baixa" in warnings

    def test_temperature(self):
        assert detect_alerts(VitalSigns(temperature=34.0))[0] == ["HIPOTERMIA"]
        assert detect_alerts(VitalSigns(temperature=40.0))[0] == ["HIPERTERMIA SEVERA"]
