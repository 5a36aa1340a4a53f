from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

from hydroprice.input_data import SystemData
from hydroprice.precheck import precheck_capacity
from hydroprice.violations import render_iis_report, render_violation_report

from .adapters import ResultAdapter
from .metrics import price_statistics, zone_energy_mix


class ReportDocument:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.lines: list[str] = []
        self.figures: list[plt.Figure] = []

    def add_text(self, text: str) -> None:
        self.lines.append(text)

    def add_figure(self, fig: plt.Figure) -> None:
        self.figures.append(fig)

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with PdfPages(self.path) as pdf:
            if self.lines:
                fig, ax = plt.subplots(figsize=(8.27, 11.69))
                ax.axis("off")
                ax.text(
                    0.01,
                    0.99,
                    "\n".join(self.lines),
                    ha="left",
                    va="top",
                    fontsize=8,
                    family="monospace",
                )
                pdf.savefig(fig, bbox_inches="tight")
                plt.close(fig)
            elif not self.figures:
                fig, ax = plt.subplots(figsize=(8.27, 11.69))
                ax.axis("off")
                ax.text(
                    0.5,
                    0.5,
                    "Report contains no data.",
                    ha="center",
                    va="center",
                    fontsize=12,
                )
                pdf.savefig(fig, bbox_inches="tight")
                plt.close(fig)
            for fig in self.figures:
                pdf.savefig(fig, bbox_inches="tight")
                plt.close(fig)


_ACTIVE_REPORT: Optional[ReportDocument] = None


def set_active_report(doc: Optional[ReportDocument]) -> None:
    global _ACTIVE_REPORT
    _ACTIVE_REPORT = doc


def get_active_report() -> Optional[ReportDocument]:
    return _ACTIVE_REPORT


def _log_print(*args, **kwargs) -> None:
    from io import StringIO

    buf = StringIO()
    kwargs_copy = kwargs.copy()
    kwargs_copy["file"] = buf
    print(*args, **kwargs_copy)
    print(*args, **kwargs)
    if _ACTIVE_REPORT is not None:
        _ACTIVE_REPORT.add_text(buf.getvalue().rstrip("\n"))


def _fmt_float(x: float | None, nd: int = 2, as_pct: bool = False) -> str:
    if x is None:
        return "nan"
    try:
        if pd.isna(x):
            return "nan"
        return f"{float(100 * x):.{nd}f}%" if as_pct else f"{float(x):,.{nd}f}"
    except (TypeError, ValueError):
        return "nan"


def render_text_report(
    cfg: Any,
    adapter: ResultAdapter,
    res: Any,
    data: SystemData,
    *,
    num_print_examples: int = 6,
) -> None:
    status = adapter.status_name(res)
    obj = adapter.objective_value(res)

    _log_print(f"Solver status: {status}")
    if status in ("infeasible", "solver_error"):
        _log_print("No dispatch found.")
        _print_precheck_summary(cfg, data)
        iis = getattr(res, "iis", None)
        if iis is not None:
            _log_print("")
            _log_print(render_iis_report(iis))
        _print_warnings(adapter.warnings(res))
        return
    if getattr(res, "gap_exceeded", False):
        _log_print(
            "⚠️ Time limit reached with an optimality gap above MAX_ACCEPTABLE_GAP; "
            "dispatch is returned but prices were not computed."
        )
    if obj is None:
        _log_print("No trusted solution; exiting.")
        return

    _log_print(f"\nTotal cost (stage 1 objective): {obj:,.2f}")
    breakdown = adapter.cost_breakdown(res)
    if breakdown:
        _log_print("Cost breakdown:")
        for name, value in breakdown.items():
            if name == "total":
                continue
            _log_print(f"  {name:<18} {value:>16,.2f}")
        _log_print(f"  {'recomputed total':<18} {breakdown['total']:>16,.2f}")

    mix = zone_energy_mix(res, data, adapter)
    if mix:
        _log_print("\nEnergy by zone (MWh):")
        df_mix = pd.DataFrame(
            [
                {
                    "zone": m.zone_id,
                    "demand": round(m.demand_mwh, 1),
                    "thermal": round(m.thermal_mwh, 1),
                    "hydro": round(m.hydro_mwh, 1),
                    "deficit": round(m.deficit_mwh, 1),
                    "served": _fmt_float(m.served_share, nd=1, as_pct=True),
                }
                for m in mix
            ]
        )
        _log_print(df_mix.to_string(index=False))

    has_duals = adapter.has_duals(res)
    if not has_duals:
        _log_print(
            "\n⚠️ No valid dual prices: the fixed-commitment linear re-solve did not "
            "finish optimally (or was not run)."
        )
    prices = adapter.df_prices(res, data)
    if prices.empty:
        _log_print("Prices: (none available)")
    else:
        granularity = str(prices["granularity"].iloc[0])
        _log_print(f"\nPrice summary ({granularity}, currency/MWh):")
        stats = price_statistics(prices)
        df_stats = pd.DataFrame(
            [
                {
                    "location": s.location_id,
                    "mean": _fmt_float(s.mean),
                    "min": _fmt_float(s.minimum),
                    "max": _fmt_float(s.maximum),
                    "std": _fmt_float(s.std),
                }
                for s in stats
            ]
        )
        _log_print(df_stats.head(num_print_examples).to_string(index=False))
        if len(stats) > num_print_examples:
            _log_print(f"  … {len(stats) - num_print_examples} more location(s)")

    report = getattr(res, "violation_report", None)
    if report is not None:
        _log_print("")
        _log_print(render_violation_report(report, max_rows=num_print_examples))

    _print_warnings(adapter.warnings(res))


def _print_warnings(warnings: list[str]) -> None:
    if not warnings:
        return
    _log_print("\nWarnings:")
    for w in warnings:
        _log_print(f"  - {w}")


def _print_precheck_summary(cfg: Any, data: SystemData) -> None:
    cap, dem, ok_cap, buckets, stats = precheck_capacity(cfg, data, verbose=False)
    _log_print(
        f"Energy capacity = {cap:,.1f} MWh | demand = {dem:,.1f} MWh | "
        f"cap {'≥' if ok_cap else '<'} demand"
    )
    short = [(zone, info) for zone, info in stats.items() if info["shortfall_periods"] > 0]
    if not short:
        _log_print("No per-zone shortfalls detected in the pre-check.")
        return
    short.sort(key=lambda item: item[1]["min_slack_mw"])
    _log_print("Most constrained zones (based on pre-check):")
    for zone, info in short[:5]:
        _log_print(
            f"  - {zone}: shortfall_periods={info['shortfall_periods']}, "
            f"min_slack={info['min_slack_mw']:,.1f} MW, "
            f"deficit_allowed={info['deficit_allowed']}"
        )
        examples = buckets.get(zone, [])[:5]
        if examples:
            example_str = ", ".join(f"t={t} (have {a:,.0f}/{d:,.0f})" for t, a, d in examples)
            _log_print(f"      e.g. {example_str}")
