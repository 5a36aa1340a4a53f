from __future__ import annotations

import pandas as pd
import pytest

from hydroprice.model import DispatchModel
from hydroprice.reporting.adapters import PandasResultAdapter
from hydroprice.reporting.metrics import (
    generation_by_period,
    price_statistics,
    zone_energy_mix,
)
from hydroprice.reporting.model_stats import format_model_stats, format_solver_stats


@pytest.fixture
def solved(cfg_factory, system_factory):
    cfg = cfg_factory(periods=2)
    data = system_factory(cfg, demand=[150.0, 250.0])
    model = DispatchModel(cfg, data)
    model.build()
    return data, model.solve()


def test_zone_energy_mix(solved):
    data, res = solved
    (mix,) = zone_energy_mix(res, data, PandasResultAdapter())
    assert mix.zone_id == "Z1"
    assert mix.demand_mwh == pytest.approx(400.0)
    assert mix.thermal_mwh == pytest.approx(350.0)
    assert mix.deficit_mwh == pytest.approx(50.0)
    assert mix.served_share == pytest.approx(350.0 / 400.0)


def test_generation_by_period(solved):
    data, res = solved
    wide = generation_by_period(res, data, PandasResultAdapter())
    assert list(wide.columns) == ["thermal", "hydro", "deficit"]
    assert wide.loc[0, "thermal"] == pytest.approx(150.0)
    assert wide.loc[1, "deficit"] == pytest.approx(50.0)
    assert (wide["hydro"] == 0.0).all()


def test_price_statistics():
    df = pd.DataFrame(
        {
            "location_id": ["B1", "B1", "B2"],
            "zone_id": ["Z", "Z", "Z"],
            "period": [0, 1, 0],
            "granularity": ["nodal"] * 3,
            "price": [10.0, 30.0, 5.0],
        }
    )
    stats = {s.location_id: s for s in price_statistics(df)}
    assert stats["B1"].mean == pytest.approx(20.0)
    assert stats["B1"].maximum == 30.0
    assert stats["B2"].std == 0.0
    assert price_statistics(df.iloc[0:0]) == []


def test_model_and_solver_stats_formatting(solved):
    _, res = solved
    assert format_model_stats(None) is None
    text = format_model_stats(
        {
            "variables": 10,
            "integer_variables": 4,
            "constraints": 7,
            "variable_groups": 2,
            "constraint_groups": 3,
        }
    )
    assert "integers=4, continuous=6" in text
    assert "Constraints: 7" in text

    solver_text = format_solver_stats(res)
    assert "Stage 1: status=optimal" in solver_text
    assert "Stage 2: status=optimal" in solver_text
