# hydroprice/pricing.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from hydroprice.config import Config
from hydroprice.extract import ZONAL_BALANCE_GROUP
from hydroprice.input_data import SystemData
from hydroprice.network import compute_nodal_prices
from hydroprice.result_types import DispatchResult

LOGGER = logging.getLogger(__name__)

PRICING_COLUMNS = ["location_id", "zone_id", "period", "granularity", "price"]


class Granularity(str, enum.Enum):
    AUTO = "auto"
    NODAL = "nodal"
    ZONAL = "zonal"


class PricingUnavailable(LookupError):
    """Requested prices cannot be produced from this result."""


class NodalPricingUnavailable(PricingUnavailable):
    pass


@dataclass(frozen=True)
class PricingRecord:
    location_id: str
    period: int
    granularity: Granularity
    price: float
    zone_id: Optional[str]

    def as_tuple(self) -> tuple:
        return (
            self.location_id,
            self.zone_id,
            self.period,
            self.granularity.value,
            self.price,
        )


def bus_zone_map(topology: SystemData) -> dict[str, str]:
    """bus_id -> zone_id, derived once per topology from its generating entities."""
    return topology.bus_zones()


def has_nodal_prices(result: DispatchResult) -> bool:
    return result.nodal_prices is not None and not result.nodal_prices.empty


def _resolve(result: DispatchResult, granularity: Granularity) -> Granularity:
    if granularity is Granularity.AUTO:
        return Granularity.NODAL if has_nodal_prices(result) else Granularity.ZONAL
    if granularity is Granularity.NODAL and not has_nodal_prices(result):
        raise NodalPricingUnavailable(
            "Nodal prices were requested but none were computed for this result."
        )
    return granularity


def _zonal_rows(
    result: DispatchResult,
    periods: Optional[set[int]],
    zones: Optional[set[str]],
) -> list[PricingRecord]:
    duals = result.dual_values.get(ZONAL_BALANCE_GROUP)
    if not result.has_duals or duals is None:
        msg = "No zonal duals available; zonal pricing is empty."
        LOGGER.warning(msg)
        if msg not in result.warnings:
            result.warnings.append(msg)
        return []
    rows = []
    for (zone_id, t), price in duals.items():
        if periods is not None and t not in periods:
            continue
        if zones is not None and zone_id not in zones:
            continue
        zid = str(zone_id)
        rows.append(PricingRecord(zid, int(t), Granularity.ZONAL, float(price), zid))
    return rows


def _nodal_rows(
    result: DispatchResult,
    topology: SystemData,
    periods: Optional[set[int]],
    zones: Optional[set[str]],
) -> list[PricingRecord]:
    lookup = bus_zone_map(topology)
    rows = []
    table = result.nodal_prices[["bus_id", "period", "price"]]
    for bus_id, t, price in table.itertuples(index=False, name=None):
        zone_id = lookup.get(bus_id)
        if periods is not None and int(t) not in periods:
            continue
        if zones is not None and zone_id not in zones:
            continue
        rows.append(
            PricingRecord(str(bus_id), int(t), Granularity.NODAL, float(price), zone_id)
        )
    return rows


def get_pricing(
    result: DispatchResult,
    topology: SystemData,
    granularity: Granularity | str = Granularity.AUTO,
    period_filter: Optional[Iterable[int]] = None,
    zones: Optional[Iterable[str]] = None,
) -> tuple[PricingRecord, ...]:
    """
    Price rows for one result at the requested granularity.

    `auto` returns nodal rows whenever nodal prices are cached on the result
    and zonal rows otherwise. `nodal` raises NodalPricingUnavailable instead
    of substituting zonal data. Nothing is solved here: repeated calls with
    the same arguments return the cached tuple.
    """
    try:
        granularity = Granularity(granularity)
    except ValueError:
        raise ValueError(f"Unknown pricing granularity: {granularity!r}") from None

    resolved = _resolve(result, granularity)
    periods = None if period_filter is None else {int(t) for t in period_filter}
    zone_set = None if zones is None else {str(z) for z in zones}
    key = (
        resolved,
        None if periods is None else tuple(sorted(periods)),
        None if zone_set is None else tuple(sorted(zone_set)),
    )
    cached = result.pricing_cache.get(key)
    if cached is not None:
        return cached

    if resolved is Granularity.NODAL:
        rows = _nodal_rows(result, topology, periods, zone_set)
    else:
        rows = _zonal_rows(result, periods, zone_set)
    rows.sort(key=lambda r: (r.period, r.location_id))
    out = tuple(rows)
    result.pricing_cache[key] = out
    return out


def pricing_frame(rows: Iterable[PricingRecord]) -> pd.DataFrame:
    data = [r.as_tuple() for r in rows]
    if not data:
        return pd.DataFrame(columns=PRICING_COLUMNS)
    return pd.DataFrame(data, columns=PRICING_COLUMNS)


def attach_nodal_prices(
    result: DispatchResult, system: SystemData, cfg: Config
) -> Optional[pd.DataFrame]:
    """
    Run the bus-level sub-solve once per result and cache its prices.
    Any failure is logged and leaves `nodal_prices` as None.
    """
    if result.nodal_attempted:
        return result.nodal_prices
    result.nodal_attempted = True

    if not result.has_solution or result.gap_exceeded:
        LOGGER.info("Skipping nodal prices: no trusted stage-1 solution")
        return None
    if not system.has_network():
        LOGGER.info("Skipping nodal prices: system has no buses/lines")
        return None

    try:
        prices = compute_nodal_prices(result, system, cfg)
    except Exception as exc:
        msg = f"Nodal price computation failed, falling back to zonal: {exc}"
        LOGGER.warning(msg)
        result.warnings.append(msg)
        return None

    result.nodal_prices = prices
    if prices is not None:
        LOGGER.info("Nodal prices computed for %d bus-period(s)", len(prices))
    return prices
