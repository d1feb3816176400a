from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from shocksim.core.engine import SimulationEngine
from shocksim.core.enums import ShockType
from shocksim.core.state import SimulationConfig
from shocksim.patient.patient import PatientData


DEFAULT_PATIENT = dict(initials="J.S", age=55, weight=70, difficulty="Clínico")


@pytest.fixture
def patient():
    """Standard septic adult used across most tests."""
    return PatientData(**DEFAULT_PATIENT, shock_type=ShockType.DISTRIBUTIVE)


@pytest.fixture
def engine():
    """Factory: engine for a shock type, started and seeded."""
    def _make(shock_type=ShockType.DISTRIBUTIVE, seed=42, **patient_fields):
        fields = dict(DEFAULT_PATIENT)
        fields.update(patient_fields)
        sim = SimulationEngine(PatientData(shock_type=shock_type, **fields),
                               SimulationConfig(rng_seed=seed))
        sim.start()
        return sim

    return _make


@pytest.fixture
def advance_time():
    """Helper to advance simulations using consistent step handling."""
    def _advance(engine, minutes, dt=1.0):
        if minutes <= 0:
            return
        steps = int(minutes / dt)
        for _ in range(steps):
            engine.step(dt)
        remainder = minutes - steps * dt
        if remainder > 1e-9:
            engine.step(remainder)

    return _advance
