# hydroprice/precheck.py
from __future__ import annotations

import sys
from typing import Any, Dict, List, Tuple

import numpy as np

from hydroprice.config import Config
from hydroprice.input_data import SystemData


def _zone_capacity_mw(data: SystemData, zone_id: str) -> float:
    """Installed thermal + hydro capacity located in one zone."""
    thermal = sum(p.capacity_mw for p in data.thermal_plants if p.zone_id == zone_id)
    hydro = sum(h.capacity_mw for h in data.hydro_plants if h.zone_id == zone_id)
    return float(thermal + hydro)


def _zone_import_mw(data: SystemData, zone_id: str) -> float:
    return float(
        sum(
            ic.capacity_mw
            for ic in data.interconnections
            if zone_id in (ic.from_zone, ic.to_zone)
        )
    )


def _hydro_energy_mwh(data: SystemData) -> float:
    """
    Upper bound on hydro energy over the horizon: usable storage plus inflow,
    converted with each plant's productivity, capped by installed capacity.
    """
    T = len(data.periods)
    h = float(data.cfg.PERIOD_HOURS)
    total = 0.0
    for hp in data.hydro_plants:
        water = (hp.initial_storage - hp.min_storage) + sum(
            hp.inflow_at(t) for t in range(T)
        )
        total += min(water * hp.productivity, hp.capacity_mw * T) * h
    return float(total)


def precheck_capacity(
    cfg: Config,
    data: SystemData,
    *,
    verbose: bool = True,
    examples_per_zone: int = 3,
    stream=None,
) -> Tuple[
    float,  # cap
    float,  # dem
    bool,  # ok_cap
    Dict[str, List[Tuple[int, float, float]]],  # buckets
    Dict[str, Dict[str, Any]],  # zone_stats
]:
    """
    Returns:
      cap: installed-capacity *upper bound* on energy across the horizon (MWh)
      dem: total demand across the horizon (MWh)
      ok_cap: cap >= dem
      buckets[zone]: list of (period, available_mw, demand_mw) where local
                     capacity plus import limits cannot cover demand
      zone_stats[zone]: {
          'demand_mwh', 'capacity_mw', 'import_mw', 'peak_mw',
          'min_slack_mw', 'shortfall_periods', 'deficit_allowed'
      }
    A failed pre-check means load will be shed (deficit) or the model is
    infeasible when deficit is disabled. It does not guarantee feasibility.
    """
    stream = stream or sys.stdout
    h = float(cfg.PERIOD_HOURS)
    T = len(data.periods)

    demand = np.array([z.demand_mw for z in data.zones], dtype=float).reshape(
        len(data.zones), T
    )
    dem = float(demand.sum() * h)
    thermal_cap = sum(p.capacity_mw for p in data.thermal_plants) * T * h
    cap = float(thermal_cap + _hydro_energy_mwh(data))
    ok_cap = cap >= dem

    buckets: Dict[str, List[Tuple[int, float, float]]] = {}
    zone_stats: Dict[str, Dict[str, Any]] = {}
    for i, z in enumerate(data.zones):
        local = _zone_capacity_mw(data, z.id)
        imports = _zone_import_mw(data, z.id)
        available = local + imports
        slack = available - demand[i]
        buckets[z.id] = [
            (t, available, float(demand[i, t])) for t in range(T) if slack[t] < 0
        ]
        zone_stats[z.id] = {
            "demand_mwh": float(demand[i].sum() * h),
            "capacity_mw": local,
            "import_mw": imports,
            "peak_mw": float(demand[i].max()) if T else 0.0,
            "min_slack_mw": float(slack.min()) if T else 0.0,
            "shortfall_periods": len(buckets[z.id]),
            "deficit_allowed": z.allow_deficit,
        }

    if verbose:
        print_precheck_header(cap, dem, ok_cap, stream=stream)
        print_zone_status(
            buckets, stats=zone_stats, examples_per_zone=examples_per_zone, stream=stream
        )

    return cap, dem, ok_cap, buckets, zone_stats


def print_precheck_header(cap: float, dem: float, ok_cap: bool, *, stream=sys.stdout) -> None:
    """Print 'Pre-check' on its own line, then capacity line with ✅/❌"""
    print("\nPre-check:\n", file=stream)
    verdict = "OK" if ok_cap else "NOT OK"
    mark = "✅" if ok_cap else "❌"
    print(
        f"{mark} Energy capacity = {cap:,.1f} MWh | demand = {dem:,.1f} MWh | {verdict}",
        file=stream,
    )
    print(
        "ℹ️  Pre-check only compares installed capacity with demand; commitment, ramp "
        "and water limits may still force load shedding.",
        file=stream,
    )


def print_zone_status(
    buckets: Dict[str, List[Tuple[int, float, float]]],
    *,
    stats: Dict[str, Dict[str, Any]],
    examples_per_zone: int = 3,
    stream=sys.stdout,
) -> None:
    """One line per zone using ✅/❌ only."""
    for zone in sorted(buckets.keys()):
        slots = buckets[zone]
        st = stats[zone]
        suffix = (
            f" | peak {st['peak_mw']:,.1f} MW, local {st['capacity_mw']:,.1f} MW"
            f" + imports {st['import_mw']:,.1f} MW (min slack={st['min_slack_mw']:,.1f})"
        )
        if not slots:
            print(f"✅ {zone} — covered{suffix}", file=stream)
            continue
        n = len(slots)
        sample = ", ".join(
            f"t={t} (have {a:,.0f} < {d:,.0f})" for t, a, d in slots[:examples_per_zone]
        )
        more = f", +{n - examples_per_zone} more" if n > examples_per_zone else ""
        action = "deficit expected" if st["deficit_allowed"] else "infeasible, deficit disabled"
        print(
            f"❌ {zone} — {n} shortfall period(s), {action} — e.g. {sample}{more}{suffix}",
            file=stream,
        )
