"""
Fluid balance bookkeeping: boluses in, urine and insensible losses out.
"""

from dataclasses import replace
from typing import Optional

from shocksim.core.constants import BASELINE_URINE_ML_KG_HR, INSENSIBLE_LOSS_ML_KG_HR
from shocksim.core.enums import FluidType
from shocksim.core.state import FluidBalance, VitalSigns


def insensible_loss(weight: float, dt: float) -> float:
    """Skin and respiratory losses over dt minutes (mL)."""
    return weight * INSENSIBLE_LOSS_ML_KG_HR * dt / 60.0


def urine_output(vitals: VitalSigns, weight: float, dt: float) -> float:
    """
    Urine over dt minutes (mL).

    Falls to a fifth below MAP 55, to half below 65, and by a further 40%
    when the output is below 3.5 L/min.
    """
    rate = BASELINE_URINE_ML_KG_HR
    if vitals.map < 55:
        rate *= 0.2
    elif vitals.map < 65:
        rate *= 0.5
    if vitals.cardiac_output < 3.5:
        rate *= 0.6
    return rate * weight * dt / 60.0


def _with_net(balance: FluidBalance) -> FluidBalance:
    return replace(balance, net_balance=balance.total_input - balance.total_output)


def add_fluid(balance: FluidBalance, volume: float,
              fluid_type: Optional[FluidType]) -> FluidBalance:
    """Account a bolus by product class."""
    changes = {"total_input": balance.total_input + volume}
    if fluid_type == FluidType.COLLOID:
        changes["colloids"] = balance.colloids + volume
    elif fluid_type == FluidType.BLOOD:
        changes["blood"] = balance.blood + volume
    else:
        changes["crystalloids"] = balance.crystalloids + volume
    return _with_net(replace(balance, **changes))


def update_fluid_balance(balance: FluidBalance, vitals: VitalSigns, weight: float,
                         dt: float) -> FluidBalance:
    """Losses over one tick."""
    urine = urine_output(vitals, weight, dt)
    insensible = insensible_loss(weight, dt)
    return _with_net(replace(
        balance,
        urine=balance.urine + urine,
        insensible_loss=balance.insensible_loss + insensible,
        total_output=balance.total_output + urine + insensible,
    ))


def urine_rate_ml_kg_hr(vitals: VitalSigns) -> float:
    """Current urine flow, for the oliguria check."""
    return urine_output(vitals, 1.0, 60.0)
