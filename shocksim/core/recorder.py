import csv
import logging
import time
from dataclasses import fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .state import FluidBalance, LabValues, SimulationState, VitalSigns

logger = logging.getLogger(__name__)

# Flat scalar columns; nested records are prefixed by their group.
STATE_COLUMNS = ("sim_time", "real_time", "is_stable", "stability_duration", "is_deteriorating")
GROUPS = (
    ("vitals", VitalSigns),
    ("labs", LabValues),
    ("fluid_balance", FluidBalance),
)
EXTRA_COLUMNS = (
    "intubated", "running_interventions", "incompatible_minutes",
    "outcome", "critical_alerts", "complications",
)


def header() -> List[str]:
    columns = list(STATE_COLUMNS)
    for prefix, cls in GROUPS:
        columns += [f"{prefix}.{f.name}" for f in fields(cls)]
    return columns + list(EXTRA_COLUMNS)


def _cell(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if value is None:
        return ""
    return value


def flatten_state(state: SimulationState) -> Dict[str, Any]:
    """One CSV row keyed by `header()` columns."""
    row = {name: _cell(getattr(state, name)) for name in STATE_COLUMNS}
    for prefix, cls in GROUPS:
        group = getattr(state, prefix)
        for f in fields(cls):
            row[f"{prefix}.{f.name}"] = _cell(getattr(group, f.name))
    row["intubated"] = state.ventilation.is_intubated
    row["running_interventions"] = "|".join(i.name for i in state.running())
    row["incompatible_minutes"] = state.tracker.incompatible_vitals_duration
    row["outcome"] = state.outcome.outcome.value
    row["critical_alerts"] = "|".join(state.critical_alerts)
    row["complications"] = "|".join(state.complications)
    return row


class DataRecorder:
    """
    Records simulation states to CSV, at most one row per sample interval
    (simulated minutes).
    """
    def __init__(self, output_dir: str = ".", sample_interval_min: float = 1.0,
                 filename: Optional[str] = None):
        self.output_dir = Path(output_dir)
        self.filename = filename or f"shocksim_log_{int(time.time())}.csv"
        self.file_path = self.output_dir / self.filename
        self.sample_interval_min = sample_interval_min
        self.file = None
        self.writer = None
        self.is_recording = False
        self.rows_written = 0
        self._last_sample_time: Optional[float] = None

    def start(self):
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.file = open(self.file_path, "w", newline="", encoding="utf-8")
        self.writer = csv.DictWriter(self.file, fieldnames=header())
        self.writer.writeheader()
        self.is_recording = True
        logger.info("Recording to %s", self.file_path)

    def log(self, state: SimulationState):
        if not self.is_recording or not self.writer:
            return
        # Terminal states are always written so the log shows the outcome
        if (self._last_sample_time is not None and not state.outcome.is_terminal
                and state.sim_time - self._last_sample_time < self.sample_interval_min - 1e-9):
            return
        self.writer.writerow(flatten_state(state))
        self._last_sample_time = state.sim_time
        self.rows_written += 1

    def stop(self):
        if self.file:
            self.file.close()
            self.file = None
        self.writer = None
        self.is_recording = False
        logger.info("Recording stopped: %d rows in %s", self.rows_written, self.file_path)


def read_log(path) -> List[Dict[str, str]]:
    """Rows of a recorded CSV as dicts of strings."""
    with open(path, newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))
