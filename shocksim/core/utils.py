"""
Shared utility functions for ShockSim.
"""

import zlib
from dataclasses import fields, replace
from typing import Dict, Tuple

import numpy as np


def clamp(value: float, low: float, high: float) -> float:
    """
    Clamp value to the inclusive range [low, high].
    """
    if low > high:
        low, high = high, low
    return max(low, min(high, value))


def clamp01(value: float) -> float:
    """
    Clamp value to the inclusive range [0.0, 1.0].
    """
    return clamp(value, 0.0, 1.0)


def clamp_fields(obj, bounds: Dict[str, Tuple[float, float]]):
    """
    Return a copy of a dataclass with every bounded numeric field clamped.

    Optional fields that are None are left untouched.
    """
    changes = {}
    names = {f.name for f in fields(obj)}
    for name, (low, high) in bounds.items():
        if name not in names:
            continue
        value = getattr(obj, name)
        if value is None:
            continue
        clamped = clamp(value, low, high)
        if clamped != value:
            changes[name] = clamped
    return replace(obj, **changes) if changes else obj


def relax(current: float, target: float, fraction: float) -> float:
    """Move current toward target by fraction (capped at 1.0)."""
    return current + (target - current) * clamp01(fraction)


def seed_from_identity(*parts) -> int:
    """
    Stable 32-bit seed derived from identity fields.

    The same patient setup always yields the same randomization.
    """
    key = "-".join(str(p) for p in parts)
    return zlib.crc32(key.encode("utf-8"))


def make_rng(seed=None) -> np.random.Generator:
    """PCG64 generator; passes an existing Generator through unchanged."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)
