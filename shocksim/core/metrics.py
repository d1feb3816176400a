import numpy as np

from shocksim.core.constants import NORMAL_RANGES


def _arrays(states):
    t = np.array([s.sim_time for s in states], dtype=float)
    map_ = np.array([s.vitals.map for s in states], dtype=float)
    lactate = np.array([s.labs.lactate for s in states], dtype=float)
    return t, map_, lactate


def _interval_weights(t: np.ndarray) -> np.ndarray:
    """Minutes each sample stands for (the interval that ended at it)."""
    if t.size == 0:
        return t
    return np.diff(t, prepend=t[0])


def time_in_range(t, values, low: float, high: float = np.inf) -> float:
    """Minutes spent with `values` inside [low, high]."""
    t = np.asarray(t, dtype=float)
    values = np.asarray(values, dtype=float)
    mask = (values >= low) & (values <= high)
    return float(np.sum(_interval_weights(t)[mask]))


def lactate_clearance(lactate) -> float:
    """Percent fall from the first to the last value (negative if rising)."""
    lactate = np.asarray(lactate, dtype=float)
    if lactate.size < 2 or lactate[0] <= 0:
        return 0.0
    return float((lactate[0] - lactate[-1]) / lactate[0] * 100.0)


def summarize_run(states, map_target: float = None) -> dict:
    """
    Summary metrics for a sequence of SimulationState snapshots.

    Returns:
        dict: {duration, time_in_map_target, fraction_in_map_target,
               lactate_clearance_pct, min_map, max_lactate,
               minutes_incompatible, outcome}
    """
    states = list(states)
    if not states:
        return {
            "duration": 0.0, "time_in_map_target": 0.0, "fraction_in_map_target": 0.0,
            "lactate_clearance_pct": 0.0, "min_map": 0.0, "max_lactate": 0.0,
            "minutes_incompatible": 0.0, "outcome": None,
        }
    if map_target is None:
        map_target = NORMAL_RANGES["map"]["min"]

    t, map_, lactate = _arrays(states)
    duration = float(t[-1] - t[0])
    in_target = time_in_range(t, map_, map_target)
    last = states[-1]
    return {
        "duration": duration,
        "time_in_map_target": in_target,
        "fraction_in_map_target": in_target / duration if duration > 0 else 0.0,
        "lactate_clearance_pct": lactate_clearance(lactate),
        "min_map": float(np.min(map_)),
        "max_lactate": float(np.max(lactate)),
        "minutes_incompatible": float(last.tracker.incompatible_vitals_duration),
        "outcome": last.outcome.outcome.value,
    }
