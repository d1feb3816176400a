from shocksim.core.enums import ShockType
from .base import ShockModel
from .cardiogenic import CardiogenicModel
from .distributive import DistributiveModel
from .hypovolemic import HypovolemicModel
from .mixed import MixedModel
from .obstructive import ObstructiveModel

SHOCK_MODELS = {
    ShockType.DISTRIBUTIVE: DistributiveModel(),
    ShockType.CARDIOGENIC: CardiogenicModel(),
    ShockType.HYPOVOLEMIC: HypovolemicModel(),
    ShockType.OBSTRUCTIVE: ObstructiveModel(),
    ShockType.MIXED: MixedModel(),
}


def get_model(shock_type) -> ShockModel:
    """Model for a shock type or label; ValueError for unknown types."""
    return SHOCK_MODELS[ShockType.from_label(shock_type)]
