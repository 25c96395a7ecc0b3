from .grid import CommissionGrid
from .result import PolicyCommission
from .distribution import CommissionSettings

__all__ = [
    "CommissionGrid",
    "CommissionSettings",
    "PolicyCommission",
]
