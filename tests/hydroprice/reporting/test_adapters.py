from __future__ import annotations

from types import SimpleNamespace

import pytest

from hydroprice.model import DispatchModel
from hydroprice.reporting.adapters import PandasResultAdapter
from hydroprice.result_types import DispatchResult, SolveStatus


def test_adapter_reads_a_dispatch_result(tiny_cfg, system_factory):
    data = system_factory(tiny_cfg)
    model = DispatchModel(tiny_cfg, data)
    model.build()
    res = model.solve()
    adapter = PandasResultAdapter()

    assert adapter.status_name(res) == "optimal"
    assert adapter.has_duals(res) is True
    assert adapter.cost_breakdown(res)["total"] == pytest.approx(res.objective_value)
    assert set(adapter.df_primal(res)["group"]) >= {"thermal_generation", "deficit"}
    prices = adapter.df_prices(res, data)
    assert list(prices["location_id"]) == ["Z1"]


def test_adapter_tolerates_sparse_objects():
    adapter = PandasResultAdapter()
    res = SimpleNamespace(status_name="custom")
    assert adapter.status_name(res) == "custom"
    assert adapter.objective_value(res) is None
    assert adapter.cost_breakdown(res) == {}
    assert adapter.warnings(res) == []
    assert adapter.df_primal(res).empty
    assert adapter.df_prices(res, None).empty


def test_adapter_empty_result():
    res = DispatchResult(status=SolveStatus.INFEASIBLE)
    adapter = PandasResultAdapter()
    assert adapter.has_duals(res) is None
    assert adapter.df_primal(res).empty
