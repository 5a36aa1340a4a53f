from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd

from hydroprice.config import Config
from hydroprice.extract import dual_frame, primal_frame
from hydroprice.input_data import SystemData
from hydroprice.pricing import Granularity, get_pricing, pricing_frame
from hydroprice.result_types import DispatchResult
from hydroprice.violations import write_iis_report, write_violation_report

LOGGER = logging.getLogger(__name__)


def dispatch_hourly(result: DispatchResult, data: SystemData) -> pd.DataFrame:
    """Rows = period, columns = entity: MW generated (or shed) per period."""
    df = primal_frame(result)
    if df.empty:
        return pd.DataFrame(index=pd.Index(list(data.periods), name="period"))
    wanted = df[df["group"].isin(["thermal_generation", "hydro_generation", "deficit"])]
    wide = wanted.pivot_table(
        index="period", columns="entity_id", values="value", aggfunc="sum", fill_value=0.0
    )
    return wide.reindex(index=pd.Index(list(data.periods), name="period"), fill_value=0.0)


def produce_outputs(
    result: DispatchResult, cfg: Config, data: SystemData, out_dir: Path | None = None
) -> list[Path]:
    """
    Persist primal values, duals, prices and a run summary as CSV/JSON.
    Nothing is written for a result without a stage-1 solution apart from
    the summary, any violation report and any IIS report.
    """
    out = Path(out_dir if out_dir is not None else cfg.OUTPUT_DIR)
    out.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    summary_path = out / "summary.json"
    summary_path.write_text(json.dumps(result.to_dict(), indent=2, default=str), encoding="utf-8")
    written.append(summary_path)

    if result.violation_report is not None:
        written.append(write_violation_report(result.violation_report, out / "violations.txt"))
    if result.iis is not None:
        written.append(write_iis_report(result.iis, out / "iis.txt"))

    if not result.has_solution:
        LOGGER.info("No stage-1 solution; only the summary was written to %s", out)
        return written

    primal_path = out / "primal.csv"
    primal_frame(result).to_csv(primal_path, index=False)
    written.append(primal_path)

    hourly_path = out / "dispatch_hourly.csv"
    dispatch_hourly(result, data).to_csv(hourly_path)
    written.append(hourly_path)

    if result.dual_values:
        dual_path = out / "duals.csv"
        dual_frame(result).to_csv(dual_path, index=False)
        written.append(dual_path)

    prices = pricing_frame(get_pricing(result, data, Granularity.AUTO))
    if not prices.empty:
        price_path = out / "prices.csv"
        prices.to_csv(price_path, index=False)
        written.append(price_path)

    LOGGER.info("Wrote %d output file(s) to %s", len(written), out)
    return written
