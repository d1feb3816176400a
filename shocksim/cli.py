import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List

from shocksim.core.engine import SimulationEngine
from shocksim.core.enums import DefinitiveProcedure, FluidType, InterventionType
from shocksim.core.metrics import summarize_run
from shocksim.core.outcome import outcome_feedback
from shocksim.core.state import InterventionRequest, SimulationConfig
from shocksim.patient.patient import PatientData
from shocksim.patient.patient_io import PatientDataError, load_patient

ACTIONS = ("start", "stop", "adjust", "intubate", "extubate", "ventilator", "labs", "gasometry")


def load_script(path) -> List[Dict[str, Any]]:
    """
    Scripted actions, sorted by time. Each entry has an ``at`` (simulated
    minute) and an ``action``; ``start`` entries carry the intervention
    fields, e.g. ``{"at": 5, "action": "start", "type": "fluid",
    "name": "Ringer Lactato", "volume": 1000}``.
    """
    with open(path, "r", encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError("Intervention script must be a JSON list")
    for entry in entries:
        if entry.get("action", "start") not in ACTIONS:
            raise ValueError(f"Unknown script action: {entry.get('action')!r}")
    return sorted(entries, key=lambda e: float(e.get("at", 0.0)))


def request_from_entry(entry: Dict[str, Any]) -> InterventionRequest:
    return InterventionRequest(
        type=InterventionType(entry["type"]),
        name=entry["name"],
        dose=entry.get("dose"),
        dose_unit=entry.get("dose_unit"),
        rate=entry.get("rate"),
        volume=entry.get("volume"),
        fluid_type=FluidType(entry["fluid_type"]) if entry.get("fluid_type") else None,
        duration=entry.get("duration"),
        procedure=DefinitiveProcedure(entry["procedure"]) if entry.get("procedure") else None,
    )


def apply_action(engine: SimulationEngine, entry: Dict[str, Any]):
    action = entry.get("action", "start")
    if action == "start":
        item = engine.start_intervention(request_from_entry(entry))
        print(f"[{engine.state.sim_time:6.1f} min] started {item.name} ({item.id})")
    elif action == "stop":
        engine.stop_intervention(entry["id"])
    elif action == "adjust":
        engine.adjust_dose(entry["id"], entry.get("direction", "up"))
    elif action == "intubate":
        engine.intubate()
    elif action == "extubate":
        success, message = engine.extubate()
        print(f"[{engine.state.sim_time:6.1f} min] {message}")
    elif action == "ventilator":
        engine.set_ventilator(**entry.get("settings", {}))
    elif action == "labs":
        engine.order_labs()
    elif action == "gasometry":
        engine.order_gasometry()


def run_headless(args):
    """Run a case without UI and print progress lines."""
    print(f"Starting Headless Simulation (Duration: {args.duration} min)...")

    try:
        patient = load_patient(args.patient) if args.patient else PatientData()
    except (OSError, PatientDataError) as e:
        print(f"Error loading patient: {e}")
        sys.exit(1)
    script = load_script(args.interventions) if args.interventions else []

    config = SimulationConfig(dt=args.dt, rng_seed=args.seed, record_interval_min=args.record_interval)
    engine = SimulationEngine(patient, config)
    if args.record:
        engine.start_recording(output_dir=args.record_dir, sample_interval_min=args.record_interval)
    engine.start()

    start_real = time.time()
    history = [engine.state]
    pending = list(script)
    next_print = 0.0
    try:
        while engine.running and engine.state.sim_time < args.duration - 1e-9:
            while pending and float(pending[0].get("at", 0.0)) <= engine.state.sim_time + 1e-9:
                apply_action(engine, pending.pop(0))
            state = engine.step(min(config.effective_dt, args.duration - engine.state.sim_time))
            history.append(state)
            if state.sim_time >= next_print:
                v = state.vitals
                print(f"Time: {state.sim_time:6.1f} min | HR: {v.heart_rate:5.1f} | MAP: {v.map:5.1f} "
                      f"| SpO2: {v.spo2:5.1f} | CO: {v.cardiac_output:4.1f} | Lactate: {state.labs.lactate:4.1f}")
                next_print += args.print_interval
    finally:
        engine.stop_recording()

    final = engine.get_latest_state()
    print(outcome_feedback(final.outcome))
    summary = summarize_run(history)
    print(f"Time in MAP target: {summary['time_in_map_target']:.0f} min "
          f"| Lactate clearance: {summary['lactate_clearance_pct']:.0f}% "
          f"| Minutes incompatible: {summary['minutes_incompatible']:.0f}")
    print(f"Simulation completed in {time.time() - start_real:.2f}s real time.")
    return final


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ShockSim - Shock Physiology Simulator")
    parser.add_argument("--patient", type=Path, help="Path to patient JSON file")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed (default: derived from patient)")
    parser.add_argument("--duration", type=float, default=120.0, help="Simulated minutes to run")
    parser.add_argument("--dt", type=float, default=1.0, help="Simulated minutes per tick")
    parser.add_argument("--interventions", type=Path, help="JSON list of scripted actions")
    parser.add_argument("--print-interval", type=float, default=10.0, help="Minutes between progress lines")
    parser.add_argument("--record", action="store_true", help="Enable CSV recording")
    parser.add_argument("--record-dir", type=str, default="recordings", help="Output directory for recordings")
    parser.add_argument("--record-interval", type=float, default=1.0, help="Sample interval in sim minutes for CSV")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(args)


if __name__ == "__main__":
    main()
