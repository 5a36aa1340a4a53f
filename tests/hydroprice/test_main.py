from __future__ import annotations

import pytest

from hydroprice.main import configure_logging, default_input_builder, run_dispatch
from hydroprice.result_types import SolveStatus


def test_run_dispatch_with_explicit_data(tiny_cfg, system_factory):
    res = run_dispatch(tiny_cfg, data=system_factory(tiny_cfg), enable_reporting=False)
    assert res.status is SolveStatus.OPTIMAL
    assert res.has_duals is True


def test_run_dispatch_checks_violations_and_writes_outputs(tmp_path, cfg_factory, system_factory):
    cfg = cfg_factory(OUTPUT_DIR=tmp_path)
    res = run_dispatch(
        cfg,
        data=system_factory(cfg),
        enable_reporting=False,
        check_violations=True,
        write_outputs=True,
    )
    assert res.violation_report is not None and res.violation_report.is_empty
    for name in ("summary.json", "primal.csv", "duals.csv", "prices.csv", "violations.txt"):
        assert (tmp_path / name).exists(), name


def test_run_dispatch_rejects_mismatched_horizon(cfg_factory, system_factory):
    data = system_factory(cfg_factory(periods=2))
    with pytest.raises(ValueError, match="PERIODS"):
        run_dispatch(cfg_factory(periods=3), data=data, enable_reporting=False)


def test_run_dispatch_validates_config(cfg_factory, system_factory):
    cfg = cfg_factory()
    cfg.ROUNDING_THRESHOLD = 2.0
    with pytest.raises(ValueError):
        run_dispatch(cfg, data=system_factory(cfg_factory()), enable_reporting=False)


def test_run_dispatch_uses_input_builder(cfg_factory, system_factory):
    seen = []

    def builder(cfg):
        seen.append(cfg)
        return system_factory(cfg)

    cfg = cfg_factory()
    run_dispatch(cfg, input_builder=builder, enable_reporting=False)
    assert seen == [cfg]


def test_run_dispatch_calls_reporter_hooks(tiny_cfg, system_factory):
    calls = []

    class RecordingReporter:
        def pre_solve(self, model, *, stage="precheck", model_stats=None):
            calls.append(stage)

        def post_solve(self, res, data):
            calls.append("post")

    run_dispatch(tiny_cfg, data=system_factory(tiny_cfg), reporter=RecordingReporter())
    assert calls == ["precheck", "model_stats", "post"]


def test_default_input_builder_uses_config_seed(cfg_factory):
    a = default_input_builder(cfg_factory(periods=4, SEED=5))
    b = default_input_builder(cfg_factory(periods=4, SEED=5))
    assert [z.demand_mw for z in a.zones] == [z.demand_mw for z in b.zones]
    assert len(a.periods) == 4


def test_configure_logging_accepts_names():
    configure_logging("debug")
    configure_logging("not-a-level")


def test_infeasible_run_explains_itself_with_an_iis(tmp_path, cfg_factory, system_factory):
    cfg = cfg_factory(OUTPUT_DIR=tmp_path)
    data = system_factory(cfg, demand=250.0, allow_deficit=False)

    res = run_dispatch(cfg, data=data, enable_reporting=False, write_outputs=True)

    assert res.status is SolveStatus.INFEASIBLE
    assert res.iis is not None
    assert [c.constraint_id for c in res.iis.conflicts] == ["submarket_balance[Z1,0]"]
    assert (tmp_path / "iis.txt").exists()
    assert res.to_dict()["iis"]["status"] == "success"


def test_iis_can_be_switched_off(cfg_factory, system_factory):
    cfg = cfg_factory(COMPUTE_IIS=False)
    data = system_factory(cfg, demand=250.0, allow_deficit=False)
    res = run_dispatch(cfg, data=data, enable_reporting=False)
    assert res.status is SolveStatus.INFEASIBLE
    assert res.iis is None
