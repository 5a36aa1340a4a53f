# system generation
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from hydroprice.entities import Bus, HydroPlant, Interconnection, Line, ThermalPlant, Zone


# ----------------------------
# Configuration container
# ----------------------------
@dataclass(slots=True)
class SystemGenConfig:
    """
    Configuration for generation of a synthetic hydrothermal system.
    """

    periods: int = 24
    zones: Tuple[str, ...] = ("SE", "S", "NE", "N")

    thermal_per_zone: int = 3
    hydro_per_zone: int = 2

    # Thermal marginal costs (currency/MWh) drawn uniformly from this range
    thermal_cost_range: Tuple[float, float] = (80.0, 600.0)
    thermal_capacity_range: Tuple[float, float] = (100.0, 500.0)
    min_generation_share: float = 0.3
    startup_cost_per_mw: float = 40.0

    hydro_capacity_range: Tuple[float, float] = (200.0, 1200.0)
    water_value_range: Tuple[float, float] = (5.0, 60.0)

    # Demand = share of total installed capacity, shaped by a daily profile
    demand_share: float = 0.55
    peak_to_base: float = 1.35

    # One bus per zone plus a ring of lines; each line also bounds the
    # zonal interchange between its two zones
    line_capacity_mw: float = 800.0
    line_reactance: float = 0.05

    seed: Optional[int] = 7

    def validate(self) -> None:
        if self.periods <= 0:
            raise ValueError("periods must be > 0.")
        if not self.zones:
            raise ValueError("zones must not be empty.")
        if self.thermal_per_zone < 0 or self.hydro_per_zone < 0:
            raise ValueError("plant counts must be >= 0.")
        for name in (
            "thermal_cost_range",
            "thermal_capacity_range",
            "hydro_capacity_range",
            "water_value_range",
        ):
            lo, hi = getattr(self, name)
            if not (0.0 <= lo <= hi):
                raise ValueError(f"{name} must satisfy 0 <= low <= high.")
        if not (0.0 <= self.min_generation_share <= 1.0):
            raise ValueError("min_generation_share must be in [0,1].")
        if not (0.0 < self.demand_share <= 1.0):
            raise ValueError("demand_share must be in (0,1].")
        if self.peak_to_base < 1.0:
            raise ValueError("peak_to_base must be >= 1.")
        if self.seed is not None and not isinstance(self.seed, int):
            raise ValueError("seed must be an int or None.")


def _rng(seed: Optional[int]) -> np.random.Generator:
    return np.random.default_rng(seed) if seed is not None else np.random.default_rng()


def daily_profile(periods: int, peak_to_base: float) -> np.ndarray:
    """Normalised load shape (mean 1.0) with an evening peak."""
    t = np.arange(periods) / max(periods, 1)
    shape = 1.0 + (peak_to_base - 1.0) * 0.5 * (1 - np.cos(2 * np.pi * (t - 0.3)))
    return shape / shape.mean()


def create_system(
    cfg: SystemGenConfig,
) -> tuple[
    list[Zone],
    list[ThermalPlant],
    list[HydroPlant],
    list[Bus],
    list[Line],
    list[Interconnection],
]:
    g = _rng(cfg.seed)
    profile = daily_profile(cfg.periods, cfg.peak_to_base)

    thermal: list[ThermalPlant] = []
    hydro: list[HydroPlant] = []
    zones: list[Zone] = []
    buses: list[Bus] = []

    for z in cfg.zones:
        bus_id = f"B_{z}"
        installed = 0.0
        for i in range(cfg.thermal_per_zone):
            cap = float(np.round(g.uniform(*cfg.thermal_capacity_range), 0))
            thermal.append(
                ThermalPlant(
                    id=f"T_{z}_{i + 1:03d}",
                    zone_id=z,
                    bus_id=bus_id,
                    capacity_mw=cap,
                    min_generation_mw=float(np.round(cap * cfg.min_generation_share, 0)),
                    marginal_cost=float(np.round(g.uniform(*cfg.thermal_cost_range), 2)),
                    startup_cost=float(np.round(cap * cfg.startup_cost_per_mw, 0)),
                    ramp_up_mw=cap * 0.5,
                    ramp_down_mw=cap * 0.5,
                )
            )
            installed += cap
        for i in range(cfg.hydro_per_zone):
            cap = float(np.round(g.uniform(*cfg.hydro_capacity_range), 0))
            productivity = float(np.round(g.uniform(0.8, 1.2), 3))
            max_outflow = cap / productivity
            max_storage = max_outflow * cfg.periods * 2.0
            inflow = (max_outflow * g.uniform(0.2, 0.6, size=cfg.periods)).round(2)
            hydro.append(
                HydroPlant(
                    id=f"H_{z}_{i + 1:03d}",
                    zone_id=z,
                    bus_id=bus_id,
                    capacity_mw=cap,
                    productivity=productivity,
                    max_outflow=max_outflow,
                    max_storage=max_storage,
                    initial_storage=max_storage * 0.5,
                    min_storage=max_storage * 0.1,
                    inflow=inflow.tolist(),
                    water_value=float(np.round(g.uniform(*cfg.water_value_range), 2)),
                )
            )
            installed += cap

        demand = (installed * cfg.demand_share * profile).round(1).tolist()
        zones.append(Zone(id=z, demand_mw=demand))
        buses.append(Bus(id=bus_id, zone_id=z, load_mw=demand, name=f"Bus {z}"))

    lines: list[Line] = []
    interconnections: list[Interconnection] = []
    if len(buses) > 1:
        pairs = list(zip(buses, buses[1:]))
        if len(buses) > 2:
            pairs.append((buses[-1], buses[0]))
        for k, (a, b) in enumerate(pairs):
            lines.append(
                Line(
                    id=f"L{k + 1:02d}",
                    from_bus=a.id,
                    to_bus=b.id,
                    reactance=cfg.line_reactance,
                    capacity_mw=cfg.line_capacity_mw,
                )
            )
            interconnections.append(
                Interconnection(
                    from_zone=a.zone_id,
                    to_zone=b.zone_id,
                    capacity_mw=cfg.line_capacity_mw,
                )
            )

    return zones, thermal, hydro, buses, lines, interconnections


def system_summary(
    thermal: list[ThermalPlant], hydro: list[HydroPlant], zones: list[Zone]
) -> dict:
    """Quick numbers for logging/reporting."""
    return {
        "zones": len(zones),
        "thermal_plants": len(thermal),
        "hydro_plants": len(hydro),
        "thermal_capacity_mw": float(sum(p.capacity_mw for p in thermal)),
        "hydro_capacity_mw": float(sum(h.capacity_mw for h in hydro)),
        "peak_demand_mw": float(
            max((sum(vals) for vals in zip(*(z.demand_mw for z in zones))), default=0.0)
        ),
    }
