# tests/conftest.py
from __future__ import annotations

import os
import random
from pathlib import Path
from typing import Callable

import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from hydroprice.config import Config  # noqa: E402
from hydroprice.entities import Bus, HydroPlant, Line, ThermalPlant, Zone  # noqa: E402
from hydroprice.input_data import SystemData  # noqa: E402

CHEAP_COST = 50.0
EXPENSIVE_COST = 120.0
DEFICIT_COST = 1000.0


# -----------------------------
# Global, deterministic seeding
# -----------------------------
@pytest.fixture(autouse=True, scope="session")
def _seed_everything() -> None:
    """
    Make tests deterministic across runs. If you need a different seed in a test,
    override locally.
    """
    seed = int(os.environ.get("PYTEST_SEED", "1234"))
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    if np is not None:  # pragma: no branch
        np.random.seed(seed)


# -----------------------------
# Path helpers
# -----------------------------
@pytest.fixture(scope="session")
def project_root() -> Path:
    """Repository root (where pyproject.toml lives)."""
    return Path(__file__).resolve().parents[1]


# -----------------------------
# Tiny systems
# -----------------------------
def make_cfg(periods: int = 1, **overrides) -> Config:
    params = dict(
        PERIODS=periods,
        TIME_LIMIT_SEC=20.0,
        MIP_GAP=0.0,
        NUM_THREADS=1,
        ENABLE_NODAL_PRICING=False,
        SEED=3,
    )
    params.update(overrides)
    return Config(**params)


def two_plant_system(
    cfg: Config,
    demand: float | list[float] = 150.0,
    *,
    allow_deficit: bool = True,
) -> SystemData:
    """One zone, a cheap and an expensive 100 MW unit, no hydro, no network."""
    return SystemData(
        cfg=cfg,
        zones=[
            Zone(
                id="Z1",
                demand_mw=demand if isinstance(demand, list) else [demand] * cfg.PERIODS,
                deficit_cost=DEFICIT_COST,
                allow_deficit=allow_deficit,
            )
        ],
        thermal_plants=[
            ThermalPlant(id="cheap", zone_id="Z1", capacity_mw=100.0, marginal_cost=CHEAP_COST),
            ThermalPlant(
                id="expensive", zone_id="Z1", capacity_mw=100.0, marginal_cost=EXPENSIVE_COST
            ),
        ],
    )


def networked_system(cfg: Config, demand: float = 150.0) -> SystemData:
    """Two buses in one zone; the cheap unit sits behind a 60 MW line."""
    return SystemData(
        cfg=cfg,
        zones=[Zone(id="Z1", demand_mw=[demand] * cfg.PERIODS, deficit_cost=DEFICIT_COST)],
        thermal_plants=[
            ThermalPlant(
                id="cheap",
                zone_id="Z1",
                capacity_mw=100.0,
                marginal_cost=CHEAP_COST,
                bus_id="B1",
            ),
            ThermalPlant(
                id="expensive",
                zone_id="Z1",
                capacity_mw=200.0,
                marginal_cost=EXPENSIVE_COST,
                bus_id="B2",
            ),
        ],
        buses=[
            Bus(id="B1", zone_id="Z1", load_mw=[0.0] * cfg.PERIODS),
            Bus(id="B2", zone_id="Z1", load_mw=[demand] * cfg.PERIODS),
        ],
        lines=[Line(id="L1", from_bus="B1", to_bus="B2", reactance=0.1, capacity_mw=60.0)],
    )


def hydro_system(cfg: Config) -> SystemData:
    """One zone with a thermal unit and a reservoir."""
    T = cfg.PERIODS
    return SystemData(
        cfg=cfg,
        zones=[Zone(id="Z1", demand_mw=[120.0] * T, deficit_cost=DEFICIT_COST)],
        thermal_plants=[
            ThermalPlant(
                id="gas",
                zone_id="Z1",
                capacity_mw=100.0,
                marginal_cost=EXPENSIVE_COST,
                min_generation_mw=20.0,
                startup_cost=500.0,
                ramp_up_mw=60.0,
                ramp_down_mw=60.0,
            )
        ],
        hydro_plants=[
            HydroPlant(
                id="dam",
                zone_id="Z1",
                capacity_mw=80.0,
                productivity=1.0,
                max_outflow=80.0,
                max_storage=200.0,
                initial_storage=100.0,
                inflow=[10.0] * T,
                water_value=10.0,
            )
        ],
    )


@pytest.fixture
def cfg_factory() -> Callable[..., Config]:
    return make_cfg


@pytest.fixture
def tiny_cfg() -> Config:
    return make_cfg()


@pytest.fixture
def system_factory() -> Callable[..., SystemData]:
    return two_plant_system


@pytest.fixture
def network_factory() -> Callable[..., SystemData]:
    return networked_system


@pytest.fixture
def hydro_factory() -> Callable[..., SystemData]:
    return hydro_system
