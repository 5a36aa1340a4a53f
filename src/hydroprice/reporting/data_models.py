from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ZoneEnergyMix:
    """Energy served in one zone over the horizon, by source."""

    zone_id: str
    demand_mwh: float
    thermal_mwh: float
    hydro_mwh: float
    deficit_mwh: float

    @property
    def served_share(self) -> float:
        if self.demand_mwh <= 0:
            return 1.0
        return 1.0 - self.deficit_mwh / self.demand_mwh


@dataclass(frozen=True)
class PriceStatistics:
    """Summary of one location's price series."""

    location_id: str
    granularity: str
    periods: int
    mean: float
    minimum: float
    maximum: float
    std: float
