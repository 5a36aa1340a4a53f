from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from hydroprice.input_data import SystemData

from .adapters import ResultAdapter
from .data_models import PriceStatistics, ZoneEnergyMix


def zone_energy_mix(
    res: Any, data: SystemData, adapter: ResultAdapter
) -> list[ZoneEnergyMix]:
    """Per-zone energy by source, from the long primal frame."""
    h = float(data.cfg.PERIOD_HOURS)
    df = adapter.df_primal(res)
    zone_of = {p.id: p.zone_id for p in data.thermal_plants}
    zone_of.update({hp.id: hp.zone_id for hp in data.hydro_plants})
    zone_of.update({z.id: z.id for z in data.zones})

    totals: dict[tuple[str, str], float] = {}
    if not df.empty:
        wanted = df[df["group"].isin(["thermal_generation", "hydro_generation", "deficit"])]
        for group, eid, value in wanted[["group", "entity_id", "value"]].itertuples(
            index=False, name=None
        ):
            zone = zone_of.get(eid)
            if zone is None:
                continue
            totals[(zone, group)] = totals.get((zone, group), 0.0) + float(value) * h

    return [
        ZoneEnergyMix(
            zone_id=z.id,
            demand_mwh=float(sum(z.demand_mw) * h),
            thermal_mwh=totals.get((z.id, "thermal_generation"), 0.0),
            hydro_mwh=totals.get((z.id, "hydro_generation"), 0.0),
            deficit_mwh=totals.get((z.id, "deficit"), 0.0),
        )
        for z in data.zones
    ]


def price_statistics(prices: pd.DataFrame) -> list[PriceStatistics]:
    """One PriceStatistics per location in a pricing frame."""
    if prices.empty:
        return []
    out: list[PriceStatistics] = []
    for (loc, gran), grp in prices.groupby(["location_id", "granularity"], sort=True):
        vals = pd.to_numeric(grp["price"], errors="coerce").to_numpy(dtype=float)
        vals = vals[~np.isnan(vals)]
        if not vals.size:
            continue
        out.append(
            PriceStatistics(
                location_id=str(loc),
                granularity=str(gran),
                periods=int(vals.size),
                mean=float(vals.mean()),
                minimum=float(vals.min()),
                maximum=float(vals.max()),
                std=float(vals.std(ddof=1)) if vals.size > 1 else 0.0,
            )
        )
    return out


def generation_by_period(res: Any, data: SystemData, adapter: ResultAdapter) -> pd.DataFrame:
    """Wide frame: rows = period, columns = thermal / hydro / deficit MW."""
    df = adapter.df_primal(res)
    cols = {"thermal_generation": "thermal", "hydro_generation": "hydro", "deficit": "deficit"}
    periods = pd.Index(list(data.periods), name="period")
    if df.empty:
        return pd.DataFrame(0.0, index=periods, columns=list(cols.values()))
    wide = (
        df[df["group"].isin(cols)]
        .pivot_table(index="period", columns="group", values="value", aggfunc="sum")
        .rename(columns=cols)
        .reindex(index=periods, columns=list(cols.values()))
        .fillna(0.0)
    )
    return wide
