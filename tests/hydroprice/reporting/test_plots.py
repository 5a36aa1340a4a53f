from __future__ import annotations

import matplotlib

matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt  # noqa: E402

from hydroprice.model import DispatchModel  # noqa: E402
from hydroprice.reporting.adapters import PandasResultAdapter  # noqa: E402
from hydroprice.reporting.plots import show_generation_stack, show_price_series  # noqa: E402
from hydroprice.reporting.text_report import ReportDocument, set_active_report  # noqa: E402


def test_plots_are_saved_and_attached(monkeypatch, tmp_path, cfg_factory, system_factory):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(plt, "show", lambda *a, **k: None)
    cfg = cfg_factory(periods=3)
    data = system_factory(cfg, demand=[120.0, 150.0, 90.0])
    model = DispatchModel(cfg, data)
    model.build()
    res = model.solve()

    doc = ReportDocument(tmp_path / "report.pdf")
    set_active_report(doc)
    try:
        show_generation_stack(res, data, PandasResultAdapter())
        show_price_series(res, data, PandasResultAdapter())
    finally:
        set_active_report(None)

    assert (tmp_path / "outputs" / "dispatch_stack.png").exists()
    assert (tmp_path / "outputs" / "zonal_prices.png").exists()
    assert len(doc.figures) == 2


def test_plots_disabled_do_nothing(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    show_generation_stack(None, None, PandasResultAdapter(), enable_plot=False)
    show_price_series(None, None, PandasResultAdapter(), enable_plot=False)
    assert not (tmp_path / "outputs").exists()
