from __future__ import annotations

from .adapters import PandasResultAdapter, ResultAdapter
from .data_models import PriceStatistics, ZoneEnergyMix
from .reporter import Reporter

__all__ = [
    "Reporter",
    "ResultAdapter",
    "PandasResultAdapter",
    "PriceStatistics",
    "ZoneEnergyMix",
]
