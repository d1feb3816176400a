import pytest
import unittest

from shocksim.core.constants import GASOMETRY_REFRESH_INTERVAL_SIM, LAB_REFRESH_INTERVAL_SIM
from shocksim.core.enums import FluidType, ShockType
from shocksim.core.state import FluidBalance, LabValues, VitalSigns
from shocksim.physiology.fluids import (
    add_fluid, insensible_loss, update_fluid_balance, urine_output, urine_rate_ml_kg_hr,
)
from shocksim.physiology.labs import order_gasometry, order_labs, transfuse, update_labs

SHOCKED = VitalSigns(map=60.0)
PERFUSED = VitalSigns(map=90.0)

# --- Labs ---

class TestLabKinetics(unittest.TestCase):

    def test_hypoperfusion_raises_lactate_and_acidifies(self):
        labs = update_labs(LabValues(lactate=2.0), SHOCKED, 60.0)
        self.assertAlmostEqual(labs.lactate, 2.15)
        self.assertLess(labs.ph, 7.40)
        self.assertLess(labs.hco3, 24.0)
        self.assertGreater(labs.pco2, 40.0)

    def test_good_perfusion_clears_lactate(self):
        labs = update_labs(LabValues(lactate=2.0), PERFUSED, 60.0)
        self.assertAlmostEqual(labs.lactate, 1.97)
        self.assertGreater(labs.ph, 7.40)

    def test_lactate_can_pass_the_lethal_threshold(self):
        labs = update_labs(LabValues(lactate=14.9), SHOCKED, 1.0, lactate_delta=1.0)
        self.assertGreater(labs.lactate, 15.0)

    def test_ph_floor_is_the_lab_bound(self):
        labs = update_labs(LabValues(ph=6.85, lactate=10.0), SHOCKED, 1.0, lactate_delta=5.0)
        self.assertAlmostEqual(labs.ph, 6.8)

    def test_direct_lactate_change(self):
        labs = update_labs(LabValues(lactate=2.0), PERFUSED, 1.0, lactate_delta=0.3)
        self.assertAlmostEqual(labs.lactate, 2.0 - 0.3 * 0.1 / 60 + 0.3)

    def test_creatinine_lags_map(self):
        labs = update_labs(LabValues(creatinine=1.0), SHOCKED, 360.0)
        self.assertAlmostEqual(labs.creatinine, 1.3)

    def test_po2_follows_saturation(self):
        self.assertEqual(update_labs(LabValues(), VitalSigns(spo2=88.0), 1.0).po2, 60.0)
        self.assertEqual(update_labs(LabValues(), VitalSigns(spo2=93.0), 1.0).po2, 75.0)

    def test_urea_only_climbs_in_hypovolemia(self):
        base = LabValues(urea=40.0)
        self.assertEqual(update_labs(base, SHOCKED, 60.0).urea, 40.0)
        self.assertAlmostEqual(update_labs(base, SHOCKED, 60.0, ShockType.HYPOVOLEMIC).urea, 40.8)

    def test_hematocrit_follows_hemoglobin(self):
        labs = transfuse(LabValues(hemoglobin=7.0), 600.0)
        self.assertAlmostEqual(labs.hemoglobin, 9.0)
        self.assertAlmostEqual(labs.hematocrit, 27.0)


class TestOrders:

    def test_first_order_always_drawn(self):
        labs, drawn = order_labs(LabValues(), 10.0)
        assert drawn and labs.last_lab_time == 10.0

    def test_refresh_interval(self):
        labs, _ = order_labs(LabValues(), 10.0)
        again, drawn = order_labs(labs, 100.0)
        assert not drawn and again is labs
        _, drawn = order_labs(labs, 10.0 + LAB_REFRESH_INTERVAL_SIM)
        assert drawn

    def test_gasometry_interval_is_shorter(self):
        labs, _ = order_gasometry(LabValues(), 5.0)
        _, early = order_gasometry(labs, 5.0 + GASOMETRY_REFRESH_INTERVAL_SIM - 1)
        _, due = order_gasometry(labs, 5.0 + GASOMETRY_REFRESH_INTERVAL_SIM)
        assert not early and due

# --- Fluids ---

class TestFluidBalance:

    def test_insensible_loss(self):
        assert insensible_loss(70.0, 60.0) == pytest.approx(35.0)

    @pytest.mark.parametrize("vitals, expected", [
        (VitalSigns(), 52.5),
        (VitalSigns(map=60.0), 26.25),
        (VitalSigns(map=50.0, cardiac_output=3.0), 6.3),
    ])
    def test_urine_tracks_perfusion(self, vitals, expected):
        assert urine_output(vitals, 70.0, 60.0) == pytest.approx(expected)

    def test_oliguria_rate(self):
        assert urine_rate_ml_kg_hr(VitalSigns()) == pytest.approx(0.75)

    def test_products_booked_by_class(self):
        balance = FluidBalance()
        balance = add_fluid(balance, 500.0, FluidType.CRYSTALLOID)
        balance = add_fluid(balance, 250.0, FluidType.COLLOID)
        balance = add_fluid(balance, 300.0, FluidType.BLOOD)
        balance = add_fluid(balance, 100.0, None)
        assert (balance.crystalloids, balance.colloids, balance.blood) == (600.0, 250.0, 300.0)
        assert balance.net_balance == balance.total_input == 1150.0

    def test_losses_reduce_net_balance(self):
        balance = update_fluid_balance(add_fluid(FluidBalance(), 1000.0, FluidType.CRYSTALLOID),
                                       VitalSigns(), 70.0, 60.0)
        assert balance.urine == pytest.approx(52.5)
        assert balance.insensible_loss == pytest.approx(35.0)
        assert balance.net_balance == pytest.approx(1000.0 - 87.5)
