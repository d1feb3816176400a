import pytest
import unittest

from shocksim.core.enums import (
    DefinitiveProcedure, FluidType, InterventionStatus, InterventionType, ShockType,
)
from shocksim.core.state import ActiveIntervention, HemodynamicState, VitalSigns
from shocksim.patient.comorbidities import ComorbidityModifiers
from shocksim.physiology.shocks.base import Response
from shocksim.physiology.treatments import (
    apply_response, compose_treatment_effects, fluid_type_for, is_mechanical_support,
    is_single_dose_product, medication_class, resolve_drug, resolve_interventions,
    resolve_procedure, vasopressor_dose,
)


def norepinephrine(dose=0.2, **kw):
    return ActiveIntervention("vasopressor-1", InterventionType.VASOPRESSOR, "Noradrenalina", 0.0,
                              dose=dose, **kw)


def saline(volume=500.0, start=0.0):
    return ActiveIntervention("fluid-1", InterventionType.FLUID, "Soro fisiológico", start,
                              volume=volume, fluid_type=FluidType.CRYSTALLOID)


class TestNameResolution(unittest.TestCase):

    def test_drug_aliases(self):
        self.assertEqual(resolve_drug("Noradrenalina", InterventionType.VASOPRESSOR), "norepinephrine")
        self.assertEqual(resolve_drug("Dobutamina", InterventionType.INOTROPE), "dobutamine")

    def test_unknown_drug_falls_back_per_class(self):
        self.assertEqual(resolve_drug("xyz", InterventionType.VASOPRESSOR), "epinephrine")
        self.assertEqual(resolve_drug("xyz", InterventionType.INOTROPE), "dobutamine")

    def test_accents_ignored(self):
        self.assertEqual(medication_class("Antibióticos"), "antibiotics")
        self.assertEqual(fluid_type_for("Albumina"), FluidType.COLLOID)
        self.assertTrue(is_single_dose_product("Concentrado de Hemácias"))
        self.assertTrue(is_mechanical_support("ECMO"))

    def test_procedures(self):
        self.assertEqual(resolve_procedure("Pericardiocentese"), DefinitiveProcedure.PERICARDIOCENTESIS)
        self.assertEqual(resolve_procedure("chest_tube"), DefinitiveProcedure.CHEST_TUBE)
        self.assertIsNone(resolve_procedure("Apendicectomia"))


class TestApplyResponse:

    def test_map_moves_pressures(self):
        v, _ = apply_response(VitalSigns(), HemodynamicState(), Response(vitals={"map": 70.0}))
        assert v.map == pytest.approx(70.0)
        assert v.systolic < 120.0

    def test_explicit_pressures_recompute_map(self):
        v, _ = apply_response(VitalSigns(), HemodynamicState(), Response(vitals={"systolic": 100.0}))
        assert v.map == pytest.approx(75.0 + 25.0 / 3)

    def test_results_are_clamped(self):
        v, h = apply_response(VitalSigns(), HemodynamicState(),
                              Response(vitals={"svr": 5000.0}, hemodynamics={"preload": 150.0}))
        assert v.svr == 2500.0
        assert h.preload == 100.0


class TestLifecycle:

    def test_pending_starts_when_due(self):
        item = ActiveIntervention("x", InterventionType.MEDICATION, "Antibióticos", 5.0,
                                  status=InterventionStatus.PENDING)
        assert resolve_interventions([item], 4.0)[0].status == InterventionStatus.PENDING
        assert resolve_interventions([item], 5.0)[0].status == InterventionStatus.ACTIVE

    def test_active_item_scheduled_later_is_held(self):
        item = norepinephrine()
        item = ActiveIntervention(item.id, item.type, item.name, 8.0, dose=item.dose)
        assert item.status == InterventionStatus.ACTIVE
        assert resolve_interventions([item], 2.0)[0].status == InterventionStatus.PENDING
        assert resolve_interventions([item], 8.0)[0].status == InterventionStatus.ACTIVE

    def test_single_dose_completes(self):
        item = ActiveIntervention("x", InterventionType.FLUID, "Albumina", 0.0, volume=250.0,
                                  duration=30.0)
        assert resolve_interventions([item], 29.0)[0].is_running
        assert resolve_interventions([item], 30.0)[0].status == InterventionStatus.COMPLETED


class TestComposition:

    def setup_method(self):
        self.vitals = VitalSigns(svr=600.0, cvp=4.0, cardiac_output=6.0)
        self.hemo = HemodynamicState()

    def compose(self, items, dt=1.0, **kw):
        return compose_treatment_effects(self.vitals, self.hemo, items, ShockType.DISTRIBUTIVE,
                                         dt=dt, **kw)

    def test_bolus_delivered_once(self):
        first = self.compose([saline()])
        assert len(first.boluses) == 1
        assert first.interventions[0].bolus_given
        assert first.vitals.cardiac_output > self.vitals.cardiac_output

        second = compose_treatment_effects(first.vitals, first.hemodynamics, first.interventions,
                                           ShockType.DISTRIBUTIVE, now=1.0)
        assert second.boluses == ()
        assert second.vitals == first.vitals

    def test_future_bolus_waits(self):
        result = self.compose([saline(start=10.0)])
        assert result.boluses == ()
        assert result.vitals == self.vitals
        assert result.interventions[0].status == InterventionStatus.PENDING
        assert not result.interventions[0].bolus_given

        due = self.compose(result.interventions, now=10.0)
        assert len(due.boluses) == 1

    def test_future_infusion_waits(self):
        late = ActiveIntervention("vasopressor-1", InterventionType.VASOPRESSOR, "Noradrenalina", 5.0,
                                  dose=0.2)
        result = self.compose([late])
        assert result.vitals == self.vitals
        assert not result.interventions[0].is_running

    def test_infusion_is_per_minute(self):
        once = self.compose([norepinephrine()], dt=2.0)
        one = self.compose([norepinephrine()])
        two = compose_treatment_effects(one.vitals, one.hemodynamics, [norepinephrine()],
                                        ShockType.DISTRIBUTIVE)
        assert once.vitals.svr == pytest.approx(two.vitals.svr)
        assert once.vitals.map == pytest.approx(two.vitals.map)

    def test_partial_minute_is_blended(self):
        half = self.compose([norepinephrine()], dt=0.5).vitals.svr
        full = self.compose([norepinephrine()]).vitals.svr
        assert self.vitals.svr < half < full

    def test_modifiers_and_efficacy_scale_dose(self):
        full = self.compose([norepinephrine()]).vitals.svr
        blunted = self.compose([norepinephrine()],
                               modifiers=ComorbidityModifiers(vasopressor=0.5)).vitals.svr
        weak = self.compose([norepinephrine()], efficacy=0.5).vitals.svr
        assert blunted < full
        assert weak == pytest.approx(blunted)

    def test_stopped_infusion_has_no_effect(self):
        stopped = norepinephrine(status=InterventionStatus.STOPPED)
        assert self.compose([stopped]).vitals == self.vitals


def test_vasopressor_dose_ignores_vasopressin():
    vaso = ActiveIntervention("v2", InterventionType.VASOPRESSOR, "Vasopressina", 0.0, dose=0.03)
    assert vasopressor_dose([norepinephrine(0.2), vaso]) == pytest.approx(0.2)
