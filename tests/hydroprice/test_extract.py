from __future__ import annotations

import pytest

from hydroprice.extract import (
    compute_cost_breakdown,
    default_constraint_refs,
    default_entity_refs,
    dual_frame,
    extract_dual,
    extract_primal,
    primal_frame,
    series,
)
from hydroprice.model import DispatchModel


@pytest.fixture
def solved(cfg_factory, hydro_factory):
    cfg = cfg_factory(periods=3)
    data = hydro_factory(cfg)
    model = DispatchModel(cfg, data)
    model.build()
    res = model.solve()
    return model, data, res


def test_cost_breakdown_matches_objective(solved):
    _, _, res = solved
    assert res.cost_breakdown is not None
    assert res.cost_breakdown.total == pytest.approx(res.objective_value, rel=1e-6)
    assert res.cost_breakdown.hydro_water_value > 0
    assert res.cost_breakdown.thermal_startup == pytest.approx(500.0)


def test_missing_group_is_skipped_with_warning(solved):
    model, data, _ = solved
    stage1 = model.last_outcome.stage1
    refs = dict(default_entity_refs(data))
    refs["not_a_group"] = ["x"]
    warnings: list[str] = []

    values = extract_primal(stage1, refs, data.periods, warnings)

    assert "not_a_group" not in values
    assert "thermal_generation" in values
    assert any("not_a_group" in w for w in warnings)


def test_absent_keys_are_skipped(solved):
    model, data, _ = solved
    values = extract_primal(
        model.last_outcome.stage1, {"deficit": ["Z1", "nowhere"]}, data.periods
    )
    assert set(values["deficit"]) == {("Z1", 0), ("Z1", 1), ("Z1", 2)}


def test_duals_come_only_from_the_linear_stage(solved):
    model, data, _ = solved
    with pytest.raises(TypeError):
        extract_dual(model.last_outcome.stage1, default_constraint_refs(data), data.periods)

    duals = extract_dual(
        model.last_outcome.stage2, default_constraint_refs(data), data.periods
    )
    assert set(duals["submarket_balance"]) == {("Z1", t) for t in data.periods}


def test_frames_and_series(solved):
    _, data, res = solved
    df = primal_frame(res)
    assert list(df.columns) == ["group", "entity_id", "period", "value"]
    assert not df.empty
    assert set(dual_frame(res)["group"]) == {"submarket_balance"}
    assert len(series(res, "hydro_generation", "dam", data.periods)) == 3


def test_cost_breakdown_from_plain_values(tiny_cfg, system_factory):
    data = system_factory(tiny_cfg, demand=250.0)
    values = {
        "thermal_generation": {("cheap", 0): 100.0, ("expensive", 0): 100.0},
        "deficit": {("Z1", 0): 50.0},
    }
    breakdown = compute_cost_breakdown(values, data)
    assert breakdown.thermal_fuel == pytest.approx(100 * 50.0 + 100 * 120.0)
    assert breakdown.deficit == pytest.approx(50 * 1000.0)
    assert breakdown.as_dict()["total"] == pytest.approx(breakdown.total)
