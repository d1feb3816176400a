from dataclasses import dataclass


@dataclass(frozen=True)
class HemodynamicConfig:
    """Centralized coefficients for the per-tick orchestrator."""
    # Baroreflex
    baroreflex_target_map: float = 75.0
    baro_hr_gain: float = 0.3
    baro_hr_limits: tuple = (-20.0, 30.0)
    baro_svr_gain: float = 15.0
    baro_svr_limits: tuple = (-200.0, 400.0)
    baro_rate_per_min: float = 1.0 / 60.0
    hr_limits: tuple = (40.0, 180.0)
    svr_limits: tuple = (300.0, 2200.0)  # reflex stays under the vasopressor ceiling

    # Respiratory compensation of metabolic acidosis
    resp_target_ph: float = 7.4
    resp_acidosis_gain: float = 40.0
    resp_alkalosis_gain: float = 20.0
    resp_rr_limits: tuple = (8.0, 40.0)

    # Derived pressures
    map_blend_weight: float = 0.5        # weight of pressure-derived MAP
    pulse_pressure_sv_factor: float = 0.8
    pulse_pressure_floor: float = 20.0

    # Frank-Starling
    fs_low_preload: float = 30.0
    fs_high_preload: float = 70.0
    fs_low_gain: float = 0.7
    fs_overload_penalty_max: float = 0.4

    # Lactate kinetics (per hour of simulated time)
    lactate_rate_per_hr: float = 0.3
    perfusion_factor_shock: float = 1.5   # MAP < 65
    perfusion_factor_border: float = 1.1  # MAP < 70
    perfusion_factor_good: float = 0.9
    ph_per_lactate: float = 0.02

    # Renal lag (creatinine doubling horizon, minutes)
    creatinine_horizon_min: float = 360.0
    renal_factor_shock: float = 1.3
    renal_factor_border: float = 1.05
    renal_factor_good: float = 0.98

    # Stability window
    stable_map: tuple = (65.0, 110.0)
    stable_hr: tuple = (50.0, 120.0)
    stable_spo2_min: float = 92.0
    stable_lactate_max: float = 4.0
    stable_ph: tuple = (7.25, 7.55)
