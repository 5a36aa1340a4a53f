from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from hydroprice.generate.system import system_summary
from hydroprice.input_data import SystemData
from hydroprice.reporting.adapters import PandasResultAdapter, ResultAdapter
from hydroprice.reporting.model_stats import format_model_stats, format_solver_stats
from hydroprice.reporting.plots import show_generation_stack, show_price_series
from hydroprice.reporting.text_report import (
    ReportDocument,
    render_text_report,
    set_active_report,
)
from hydroprice.result_types import DispatchResult


class Reporter:
    """High-level orchestrator: runs pre-check confirmations and renders reports."""

    def __init__(
        self,
        cfg: Any,
        adapter: ResultAdapter | None = None,
        num_print_examples: int = 6,
        enable_plots: bool = True,
    ) -> None:
        """
        cfg must expose:
          - PERIODS / PERIOD_HOURS
          - OUTPUT_DIR
        """
        self.cfg = cfg
        self.adapter: ResultAdapter = adapter or PandasResultAdapter()
        self.num_print_examples = num_print_examples
        self.enable_plots = enable_plots

    def pre_solve(
        self,
        model: object,
        *,
        stage: str = "precheck",
        model_stats: dict[str, int] | None = None,
    ) -> None:
        """
        Run the capacity pre-check or log model stats depending on the stage.
        stage="precheck"    -> print capacity vs demand, ask before continuing.
        stage="model_stats" -> print model size summary if available.
        """
        if stage == "model_stats":
            summary = format_model_stats(model_stats)
            if summary:
                print("\nModel stats summary:\n" + summary)
            return

        precheck = getattr(model, "precheck", None)
        if not callable(precheck):
            print("Pre-check: (model has no `precheck()`; skipping)")
            return

        data = getattr(model, "data", None)
        if data is not None:
            summary = system_summary(data.thermal_plants, data.hydro_plants, data.zones)
            print(
                f"System: {summary['zones']} zone(s), {summary['thermal_plants']} thermal, "
                f"{summary['hydro_plants']} hydro | installed "
                f"{summary['thermal_capacity_mw'] + summary['hydro_capacity_mw']:,.0f} MW, "
                f"peak demand {summary['peak_demand_mw']:,.0f} MW"
            )

        cap, dem, ok_cap, *_ = precheck()
        if not ok_cap:
            proceed = self._prompt_yes_no_default_yes(
                "Pre-check indicates load shedding or infeasibility. Continue anyway?"
            )
            if not proceed:
                raise SystemExit("Stopped by user after failed pre-check.")

    def render_text_report(self, res: object, data: object) -> None:
        """Public entry point for callers that want text reporting only."""
        render_text_report(
            self.cfg,
            self.adapter,
            res,
            data,  # type: ignore[arg-type]
            num_print_examples=self.num_print_examples,
        )

    def post_solve(self, res: DispatchResult, data: SystemData) -> None:
        """Render textual report (and optional plots) after solving."""
        stats_summary = format_solver_stats(res)
        if stats_summary:
            print("\nSolver stats summary:\n" + stats_summary)

        out_dir = Path(getattr(self.cfg, "OUTPUT_DIR", "outputs"))
        report_doc = ReportDocument(out_dir / "report.pdf")
        set_active_report(report_doc)
        try:
            self.render_text_report(res, data)
            if not self.enable_plots or not getattr(res, "has_solution", False):
                return
            show_generation_stack(res, data, self.adapter, enable_plot=self.enable_plots)
            show_price_series(res, data, self.adapter, enable_plot=self.enable_plots)
        finally:
            set_active_report(None)
            report_doc.write()

    # ---------- helpers ----------

    def _prompt_yes_no_default_yes(self, msg: str) -> bool:
        """Prompt '[Y/n]' and return True for yes (default)."""
        try:
            if not sys.stdin or not sys.stdin.isatty():
                print(f"{msg} [Y/n] (non-interactive -> default: Y)")
                return True

            while True:
                resp = input(f"{msg} [Y/n]: ").strip().lower()
                if resp in ("", "y", "yes"):
                    return True
                if resp in ("n", "no"):
                    return False
                print("Please type 'y' or 'n'.")
        except (EOFError, KeyboardInterrupt):
            print("\nAborted by user.")
            return False
