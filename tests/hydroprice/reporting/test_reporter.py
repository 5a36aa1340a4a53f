from __future__ import annotations

from types import SimpleNamespace

import pytest

from hydroprice.reporting.reporter import Reporter


class DummyModel:
    def __init__(self, ok=True, data=None):
        self._ok = ok
        self.data = data

    def precheck(self):
        return (10, 5, self._ok, {}, {})


def make_result(has_solution=True):
    return SimpleNamespace(
        status=None,
        status_name="optimal" if has_solution else "infeasible",
        has_solution=has_solution,
    )


def test_pre_solve_skips_when_no_precheck(capfd, tiny_cfg):
    reporter = Reporter(tiny_cfg)
    reporter.pre_solve(object())
    assert "Pre-check" in capfd.readouterr().out


def test_pre_solve_prints_system_summary(capsys, tiny_cfg, system_factory):
    reporter = Reporter(tiny_cfg)
    reporter.pre_solve(DummyModel(ok=True, data=system_factory(tiny_cfg)))
    out = capsys.readouterr().out
    assert "System: 1 zone(s), 2 thermal, 0 hydro" in out
    assert "installed 200 MW" in out


def test_pre_solve_prompts_when_short(monkeypatch, tiny_cfg):
    reporter = Reporter(tiny_cfg)
    monkeypatch.setattr(reporter, "_prompt_yes_no_default_yes", lambda msg: False)
    with pytest.raises(SystemExit):
        reporter.pre_solve(DummyModel(ok=False))


def test_pre_solve_model_stats(capsys, tiny_cfg):
    Reporter(tiny_cfg).pre_solve(
        None, stage="model_stats", model_stats={"variables": 3, "integer_variables": 1}
    )
    assert "Variables: total=3" in capsys.readouterr().out


def test_non_interactive_prompt_defaults_to_yes(monkeypatch, tiny_cfg):
    monkeypatch.setattr("sys.stdin", None)
    assert Reporter(tiny_cfg)._prompt_yes_no_default_yes("Continue?") is True


def test_post_solve_triggers_render_and_plots(monkeypatch, tiny_cfg):
    reporter = Reporter(tiny_cfg, enable_plots=True)
    calls = []
    monkeypatch.setattr("hydroprice.reporting.reporter.ReportDocument.write", lambda self: None)
    monkeypatch.setattr(
        "hydroprice.reporting.reporter.render_text_report",
        lambda *a, **k: calls.append("render"),
    )
    monkeypatch.setattr(
        "hydroprice.reporting.reporter.show_generation_stack",
        lambda *a, **k: calls.append("stack"),
    )
    monkeypatch.setattr(
        "hydroprice.reporting.reporter.show_price_series",
        lambda *a, **k: calls.append("prices"),
    )

    reporter.post_solve(make_result(), None)
    assert calls == ["render", "stack", "prices"]


def test_post_solve_skips_plots_without_solution(monkeypatch, tiny_cfg):
    reporter = Reporter(tiny_cfg, enable_plots=True)
    calls = []
    monkeypatch.setattr("hydroprice.reporting.reporter.ReportDocument.write", lambda self: None)
    monkeypatch.setattr(
        "hydroprice.reporting.reporter.render_text_report",
        lambda *a, **k: calls.append("render"),
    )
    monkeypatch.setattr(
        "hydroprice.reporting.reporter.show_generation_stack",
        lambda *a, **k: calls.append("stack"),
    )
    reporter.post_solve(make_result(has_solution=False), None)
    assert calls == ["render"]


def test_post_solve_writes_pdf(monkeypatch, tmp_path, cfg_factory):
    cfg = cfg_factory(OUTPUT_DIR=tmp_path / "out")
    reporter = Reporter(cfg, enable_plots=False)
    monkeypatch.setattr(
        "hydroprice.reporting.reporter.render_text_report", lambda *a, **k: None
    )
    reporter.post_solve(make_result(), None)
    assert (tmp_path / "out" / "report.pdf").exists()
