from __future__ import annotations

import pytest

from hydroprice.entities import Bus, Line, Zone
from hydroprice.input_data import SystemData
from hydroprice.model import DispatchModel
from hydroprice.network import (
    NODAL_COLUMNS,
    build_network_model,
    compute_nodal_prices,
    network_rule_specs,
)
from hydroprice.pricing import Granularity, get_pricing
from hydroprice.rules.network_balance import (
    BUS_BALANCE_GROUP,
    NetworkBalanceRule,
    bus_loads,
)


def _solved(cfg, data, pricing=False):
    model = DispatchModel(cfg, data)
    model.build()
    return model.solve(pricing=pricing)


def _uncongested_hydro(cfg, hydro_factory):
    data = hydro_factory(cfg)
    data.zones[0].demand_mw = [30.0] * cfg.PERIODS
    data.thermal_plants[0].bus_id = "B1"
    data.hydro_plants[0].bus_id = "B2"
    data.buses = [Bus(id="B1", zone_id="Z1"), Bus(id="B2", zone_id="Z1")]
    data.lines = [Line(id="L1", from_bus="B1", to_bus="B2", reactance=0.1, capacity_mw=10_000.0)]
    return data


def test_zone_demand_is_split_when_buses_carry_no_load(tiny_cfg):
    data = SystemData(
        cfg=tiny_cfg,
        zones=[Zone(id="Z1", demand_mw=[90.0])],
        buses=[Bus(id="A", zone_id="Z1"), Bus(id="B", zone_id="Z1"), Bus(id="C", zone_id="Z1")],
    )
    assert bus_loads(data) == {("A", 0): 30.0, ("B", 0): 30.0, ("C", 0): 30.0}


def test_network_rules_replace_the_zonal_balance():
    classes = [spec.cls for spec in network_rule_specs()]
    assert classes[-1] is NetworkBalanceRule
    assert "SubmarketBalanceRule" not in {c.__name__ for c in classes}


def test_network_model_respects_commitment(cfg_factory, network_factory):
    cfg = cfg_factory()
    data = network_factory(cfg, demand=80.0)
    data.thermal_plants[1].startup_cost = 10.0
    res = _solved(cfg, data)
    # only the cheap unit is needed at 80 MW
    assert res.commitment["thermal_commitment"][("expensive", 0)] == 0.0

    H = build_network_model(res, data, cfg)
    u = H.variable_groups["thermal_commitment"][("expensive", 0)]
    assert u.lb() == u.ub() == 0.0
    assert H.is_linear()
    assert {"line_flow_definition", BUS_BALANCE_GROUP, "thermal_max_gen"} <= set(
        H.constraint_groups
    )
    assert "submarket_balance" not in H.constraint_groups


def test_nodal_prices_frame(cfg_factory, network_factory):
    cfg = cfg_factory()
    data = network_factory(cfg)
    res = _solved(cfg, data)

    prices = compute_nodal_prices(res, data, cfg)

    assert list(prices.columns) == NODAL_COLUMNS
    assert list(prices["bus_id"]) == ["B1", "B2"]
    by_bus = dict(zip(prices["bus_id"], prices["price"]))
    assert by_bus["B1"] == pytest.approx(50.0)
    assert by_bus["B2"] == pytest.approx(120.0)


def test_uncongested_thermal_network_prices_match_zonal(cfg_factory, network_factory):
    cfg = cfg_factory(ENABLE_NODAL_PRICING=True)
    data = network_factory(cfg)
    data.lines[0].capacity_mw = 10_000.0
    res = _solved(cfg, data, pricing=True)

    nodal = get_pricing(res, data, Granularity.NODAL)
    zonal = {r.period: r.price for r in get_pricing(res, data, Granularity.ZONAL)}

    assert zonal[0] == pytest.approx(120.0)
    assert [r.price for r in nodal] == pytest.approx([zonal[0], zonal[0]])


def test_uncongested_hydro_network_prices_match_zonal(cfg_factory, hydro_factory):
    cfg = cfg_factory(periods=3, ENABLE_NODAL_PRICING=True)
    data = _uncongested_hydro(cfg, hydro_factory)
    res = _solved(cfg, data, pricing=True)

    zonal = {r.period: r.price for r in get_pricing(res, data, Granularity.ZONAL)}
    nodal = get_pricing(res, data, Granularity.NODAL)

    # the reservoir is marginal, so prices sit at its water value
    assert list(zonal.values()) == pytest.approx([10.0, 10.0, 10.0])
    assert len(nodal) == 6
    for row in nodal:
        assert row.price == pytest.approx(zonal[row.period])


def test_network_hydro_is_limited_by_the_water_balance(cfg_factory, hydro_factory):
    cfg = cfg_factory(periods=3)
    data = _uncongested_hydro(cfg, hydro_factory)
    res = _solved(cfg, data)

    H = build_network_model(res, data, cfg)

    assert "hydro_water_balance" in H.constraint_groups
    g = H.variable_groups["hydro_generation"][("dam", 0)]
    assert (g.lb(), g.ub()) == (0.0, 80.0)


def test_no_network_gives_none(tiny_cfg, system_factory):
    data = system_factory(tiny_cfg)
    res = _solved(tiny_cfg, data)
    assert compute_nodal_prices(res, data, tiny_cfg) is None
