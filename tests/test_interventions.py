import pytest
import unittest
from dataclasses import replace

from shocksim.core.enums import (
    DefinitiveProcedure, FluidType, InterventionStatus, InterventionType, ObstructiveSubtype,
    ShockType,
)
from shocksim.core.interventions import (
    adjust_intervention, create_intervention, extubate_patient, intubate_patient,
    request_gasometry, request_labs, set_ventilator, start_intervention, stop_intervention,
)
from shocksim.core.state import (
    DistributiveState, HypovolemicState, InterventionRequest, ObstructiveState, SimulationState,
    VitalSigns,
)
from shocksim.patient.patient import PatientData
from shocksim.physiology.ventilation import EXTUBATION_DENIED


def request(kind, name, **kw):
    return InterventionRequest(type=kind, name=name, **kw)


class TestCreate(unittest.TestCase):

    def test_fluid_defaults_by_product(self):
        item = create_intervention(request(InterventionType.FLUID, "Albumina"), 12.0, 3)
        self.assertEqual(item.id, "fluid-3")
        self.assertEqual(item.status, InterventionStatus.PENDING)
        self.assertEqual(item.fluid_type, FluidType.COLLOID)
        self.assertEqual(item.volume, 250.0)
        self.assertEqual(item.duration, 30.0)
        self.assertEqual(item.start_time, 12.0)

    def test_fluid_type_from_string(self):
        item = create_intervention(request(InterventionType.FLUID, "Bolsa", fluid_type="blood"), 0.0, 1)
        self.assertEqual(item.fluid_type, FluidType.BLOOD)
        self.assertEqual(item.volume, 300.0)

    def test_crystalloid_runs_until_stopped(self):
        item = create_intervention(request(InterventionType.FLUID, "Ringer Lactato", volume=1000.0), 0.0, 1)
        self.assertIsNone(item.duration)
        self.assertEqual(item.volume, 1000.0)

    def test_dose_converted_to_canonical_unit(self):
        item = create_intervention(
            request(InterventionType.VASOPRESSOR, "Noradrenalina", dose=14.0, dose_unit="mcg/min"),
            0.0, 1, weight=70.0,
        )
        self.assertAlmostEqual(item.dose, 0.2)

    def test_procedure_resolved_from_name(self):
        item = create_intervention(request(InterventionType.PROCEDURE, "Trombólise"), 0.0, 1)
        self.assertEqual(item.procedure, DefinitiveProcedure.THROMBOLYSIS)


class TestStartAndStop:

    def setup_method(self):
        self.patient = PatientData()
        self.state = SimulationState(subtype_state=DistributiveState(), sim_time=20.0)

    def test_ids_increase(self):
        state, first = start_intervention(self.state, self.patient, request(InterventionType.FLUID, "Soro"))
        state, second = start_intervention(state, self.patient, request(InterventionType.FLUID, "Soro"))
        assert (first.id, second.id) == ("fluid-1", "fluid-2")
        assert len(state.interventions) == 2

    def test_antibiotics_recorded_once(self):
        state, _ = start_intervention(self.state, self.patient,
                                      request(InterventionType.MEDICATION, "Antibióticos"))
        assert state.subtype_state.antibiotics_given
        assert state.subtype_state.antibiotics_time == 20.0
        later, _ = start_intervention(replace(state, sim_time=50.0), self.patient,
                                      request(InterventionType.MEDICATION, "Antibióticos"))
        assert later.subtype_state.antibiotics_time == 20.0

    def test_hemorrhage_control(self):
        state = SimulationState(subtype_state=HypovolemicState(ongoing_loss=True))
        state, _ = start_intervention(state, PatientData(shock_type=ShockType.HYPOVOLEMIC),
                                      request(InterventionType.MEDICATION, "Controle de hemorragia"))
        assert not state.subtype_state.ongoing_loss

    def test_stop(self):
        state, item = start_intervention(self.state, self.patient,
                                         request(InterventionType.VASOPRESSOR, "Noradrenalina", dose=0.1))
        stopped = stop_intervention(state, item.id)
        assert stopped.interventions[0].status == InterventionStatus.STOPPED
        assert stop_intervention(stopped, item.id) is stopped

    def test_unknown_id(self):
        with pytest.raises(ValueError):
            stop_intervention(self.state, "fluid-99")


class TestProcedures:

    def setup_method(self):
        self.patient = PatientData(shock_type=ShockType.OBSTRUCTIVE,
                                   obstructive_subtype="cardiac_tamponade")
        self.state = SimulationState(
            vitals=VitalSigns(cardiac_output=2.5, cvp=22.0, systolic=75.0, diastolic=55.0).with_map(),
            subtype_state=ObstructiveState(subtype=ObstructiveSubtype.CARDIAC_TAMPONADE),
            sim_time=8.0,
        )

    def test_definitive_procedure_acts_at_once(self):
        state, item = start_intervention(self.state, self.patient,
                                         request(InterventionType.PROCEDURE, "Pericardiocentese"), rng=1)
        sub = state.subtype_state
        assert item.status == InterventionStatus.COMPLETED
        assert sub.definitive_intervention_done
        assert sub.intervention_type == DefinitiveProcedure.PERICARDIOCENTESIS
        assert sub.intervention_time == 8.0
        # Pericardiocentesis fails exactly when it has a complication
        assert sub.intervention_success == (not state.procedure_complications)
        assert state.vitals != self.state.vitals

    def test_procedure_without_obstruction(self):
        state = replace(self.state, subtype_state=DistributiveState())
        new, item = start_intervention(state, PatientData(),
                                       request(InterventionType.PROCEDURE, "Pericardiocentese"))
        assert item.status == InterventionStatus.COMPLETED
        assert new.vitals == state.vitals

    def test_mechanical_support_keeps_running(self):
        state, item = start_intervention(SimulationState(), PatientData(shock_type=ShockType.CARDIOGENIC),
                                         request(InterventionType.PROCEDURE, "ECMO"))
        assert item.status == InterventionStatus.PENDING


class TestAdjust:

    def setup_method(self):
        state = SimulationState()
        state, self.drip = start_intervention(state, PatientData(),
                                              request(InterventionType.VASOPRESSOR, "Noradrenalina", dose=0.2))
        state, self.bolus = start_intervention(state, PatientData(),
                                               request(InterventionType.FLUID, "Soro", volume=500.0))
        state, self.abx = start_intervention(state, PatientData(),
                                             request(InterventionType.MEDICATION, "Antibióticos"))
        self.state = state

    def test_dose_steps(self):
        up = adjust_intervention(self.state, self.drip.id, "up")
        assert up.interventions[0].dose == 0.25
        down = adjust_intervention(self.state, self.drip.id, "down")
        assert down.interventions[0].dose == 0.16

    def test_volume_rounds_to_whole_ml(self):
        up = adjust_intervention(self.state, self.bolus.id, "up")
        assert up.interventions[1].volume == 625.0

    def test_nothing_to_adjust(self):
        assert adjust_intervention(self.state, self.abx.id, "up") is self.state

    def test_bad_direction(self):
        with pytest.raises(ValueError):
            adjust_intervention(self.state, self.drip.id, "sideways")


class TestAirwayAndOrders:

    def test_intubation_is_idempotent(self):
        state = intubate_patient(SimulationState(), PatientData())
        assert state.ventilation.is_intubated
        assert intubate_patient(state, PatientData()) is state

    def test_extubate_when_not_intubated(self):
        state, ok, message = extubate_patient(SimulationState())
        assert not ok and message == EXTUBATION_DENIED

    def test_ventilator_requires_airway(self):
        with pytest.raises(ValueError):
            set_ventilator(SimulationState(), peep=10.0)

    def test_ventilator_settings(self):
        state = set_ventilator(intubate_patient(SimulationState(), PatientData()),
                               tidal_volume=500.0, peep=10.0)
        assert state.ventilation.plateau_pressure == 20.0

    def test_lab_orders(self):
        state = SimulationState(sim_time=30.0)
        state, drawn = request_labs(state)
        assert drawn and state.labs.last_lab_time == 30.0
        state, drawn = request_labs(state)
        assert not drawn
        state, drawn = request_gasometry(state)
        assert drawn and state.labs.last_gasometry_time == 30.0
