from __future__ import annotations

from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt

from hydroprice.input_data import SystemData

from .adapters import ResultAdapter
from .metrics import generation_by_period
from .text_report import get_active_report


def _save_and_show(fig: plt.Figure, filename: str, out_dir: Path = Path("outputs")) -> None:
    """Persist the plot under outputs/ and show it."""
    out_dir.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_dir / filename, dpi=fig.dpi, bbox_inches="tight")
    plt.show()


def show_generation_stack(
    res: Any,
    data: SystemData,
    adapter: ResultAdapter,
    enable_plot: bool = True,
) -> None:
    """Stacked area of thermal / hydro / deficit against total demand."""
    if not enable_plot:
        return
    wide = generation_by_period(res, data, adapter)
    if wide.empty:
        return

    periods = list(wide.index)
    demand = [sum(z.demand_mw[t] for z in data.zones) for t in periods]
    colors = {"thermal": "tab:red", "hydro": "tab:blue", "deficit": "0.6"}

    fig, ax = plt.subplots(figsize=(7.5, 4), dpi=150)
    ax.set_title("Dispatch by source", pad=35)
    ax.stackplot(
        periods,
        *[wide[c].to_numpy() for c in wide.columns],
        labels=list(wide.columns),
        colors=[colors.get(c, None) for c in wide.columns],
        alpha=0.8,
    )
    ax.plot(periods, demand, color="black", linewidth=1.2, label="Demand")
    ax.set_xlabel("Period")
    ax.set_ylabel("MW")
    ax.set_xmargin(0.0)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.legend(loc="upper center", bbox_to_anchor=(0.5, 1.15), ncol=4, borderaxespad=0.3)
    fig.tight_layout(rect=(0, 0, 1, 0.92))
    _save_and_show(fig, "dispatch_stack.png")
    report = get_active_report()
    if report is not None:
        report.add_figure(fig)


def show_price_series(
    res: Any,
    data: SystemData,
    adapter: ResultAdapter,
    enable_plot: bool = True,
    max_locations: int = 8,
) -> None:
    """One line per location (bus or zone) of the resolved price series."""
    if not enable_plot:
        return
    prices = adapter.df_prices(res, data)
    if prices.empty:
        return

    granularity = str(prices["granularity"].iloc[0])
    fig, ax = plt.subplots(figsize=(7.5, 4), dpi=150)
    ax.set_title(f"{granularity.capitalize()} prices", pad=35)
    locations = sorted(prices["location_id"].unique())[:max_locations]
    for loc in locations:
        series = prices[prices["location_id"] == loc].sort_values("period")
        ax.step(series["period"], series["price"], where="post", linewidth=1.3, label=loc)
    ax.set_xlabel("Period")
    ax.set_ylabel("Price (currency/MWh)")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.grid(alpha=0.3)
    ax.legend(
        loc="upper center",
        bbox_to_anchor=(0.5, 1.15),
        ncol=min(len(locations), 4),
        borderaxespad=0.3,
    )
    fig.tight_layout(rect=(0, 0, 1, 0.92))
    _save_and_show(fig, f"{granularity}_prices.png")
    report = get_active_report()
    if report is not None:
        report.add_figure(fig)
