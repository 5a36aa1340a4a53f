from __future__ import annotations

import pytest

from hydroprice.model import DispatchModel
from hydroprice.result_types import SolveState, SolveStatus
from hydroprice.rules.base import RuleSpec
from hydroprice.rules.decision_variables import VariablesRule
from hydroprice.rules.ramp import RampRule
from hydroprice.rules.registry import default_rule_specs


def test_solve_before_build_raises(tiny_cfg, system_factory):
    model = DispatchModel(tiny_cfg, system_factory(tiny_cfg))
    with pytest.raises(RuntimeError):
        model.solve()
    assert model.model_stats() is None


def test_unavailable_backend_becomes_solver_error(cfg_factory, system_factory):
    cfg = cfg_factory()
    cfg.MIP_BACKEND = "NO_SUCH_BACKEND"
    model = DispatchModel(cfg, system_factory(cfg))
    model.build()
    res = model.solve()
    assert res.status is SolveStatus.SOLVER_ERROR
    assert res.has_duals is None
    assert res.state is SolveState.STAGE1_INFEASIBLE
    assert "NO_SUCH_BACKEND" in res.warnings[0]


def test_model_stats_and_descriptors(cfg_factory, hydro_factory):
    cfg = cfg_factory(periods=2)
    model = DispatchModel(cfg, hydro_factory(cfg))
    model.build()
    stats = model.model_stats()
    # per period: 4 thermal + 4 hydro + 1 deficit
    assert stats["variables"] == 18
    assert stats["integer_variables"] == 6
    kinds = {d["type"] for d in model.get_report_descriptors()}
    assert kinds == {"thermal_fleet", "zone_demand"}


def test_custom_rules_without_ramps(cfg_factory, hydro_factory):
    cfg = cfg_factory(periods=2)
    specs = [s for s in default_rule_specs() if s.cls is not RampRule]
    model = DispatchModel(cfg, hydro_factory(cfg), rules=specs)
    model.build()
    assert "ramp_up" not in model.handle.constraint_groups
    assert "thermal_max_gen" in model.handle.constraint_groups


def test_rule_without_its_variables_raises_key_error(tiny_cfg, system_factory):
    specs = [RuleSpec(cls=RampRule)]
    model = DispatchModel(tiny_cfg, system_factory(tiny_cfg), rules=specs)
    with pytest.raises(KeyError):
        model.build()


def test_empty_rule_set_fails_build_sanity_check(tiny_cfg, system_factory):
    model = DispatchModel(tiny_cfg, system_factory(tiny_cfg), rules=[])
    with pytest.raises(RuntimeError, match="build sanity"):
        model.build()


def test_variables_only_model_builds_without_constraints(tiny_cfg, system_factory):
    model = DispatchModel(tiny_cfg, system_factory(tiny_cfg), rules=[VariablesRule])
    model.build()
    assert model.handle.stats()["constraints"] == 0


def test_warm_start_from_previous_result(tiny_cfg, system_factory, caplog):
    data = system_factory(tiny_cfg)
    first = DispatchModel(tiny_cfg, data)
    first.build()
    prev = first.solve()

    caplog.set_level("INFO", logger="hydroprice.model")
    second = DispatchModel(tiny_cfg, data, warm_start=prev)
    second.build()
    assert any("Warm start" in r.message for r in caplog.records)
    res = second.solve()
    assert res.objective_value == pytest.approx(prev.objective_value)


def test_result_to_dict_is_plain(tiny_cfg, system_factory):
    model = DispatchModel(tiny_cfg, system_factory(tiny_cfg))
    model.build()
    d = model.solve().to_dict()
    assert d["status"] == "optimal"
    assert d["state"] == "extracted"
    assert d["has_duals"] is True
    assert {"entity_id": "cheap", "period": 0, "value": pytest.approx(100.0)} in d[
        "primal_values"
    ]["thermal_generation"]


def test_compute_iis_on_infeasible_model(tiny_cfg, system_factory):
    model = DispatchModel(tiny_cfg, system_factory(tiny_cfg, demand=250.0, allow_deficit=False))
    model.build()
    res = model.solve()

    iis = model.compute_iis(res)

    assert res.iis is iis
    assert iis.found
    assert iis.conflicts[0].constraint_id == "submarket_balance[Z1,0]"
    assert iis.conflicts[0].category.value == "balance"
    assert len(iis.conflicts) == 1
