# hydroprice/extract.py
from __future__ import annotations

import logging
from typing import Hashable, Iterable, Mapping, Optional, Sequence

import pandas as pd

from hydroprice.input_data import SystemData
from hydroprice.outcomes import LpOutcome, MipOutcome
from hydroprice.result_types import CostBreakdown, DispatchResult, GroupValues

LOGGER = logging.getLogger(__name__)

PRIMAL_GROUPS: tuple[str, ...] = (
    "thermal_generation",
    "thermal_commitment",
    "thermal_startup",
    "thermal_shutdown",
    "hydro_generation",
    "hydro_storage",
    "hydro_outflow",
    "hydro_spill",
    "deficit",
)
ZONAL_BALANCE_GROUP = "submarket_balance"
DUAL_GROUPS: tuple[str, ...] = (ZONAL_BALANCE_GROUP,)

_FRAME_COLUMNS = ["group", "entity_id", "period", "value"]


def default_entity_refs(system: SystemData) -> dict[str, list[str]]:
    """Variable group -> entity ids expected in it."""
    thermal = [p.id for p in system.thermal_plants]
    hydro = [h.id for h in system.hydro_plants]
    zones = [z.id for z in system.zones]
    return {
        "thermal_generation": thermal,
        "thermal_commitment": thermal,
        "thermal_startup": thermal,
        "thermal_shutdown": thermal,
        "hydro_generation": hydro,
        "hydro_storage": hydro,
        "hydro_outflow": hydro,
        "hydro_spill": hydro,
        "deficit": zones,
    }


def default_constraint_refs(system: SystemData) -> dict[str, list[str]]:
    return {ZONAL_BALANCE_GROUP: [z.id for z in system.zones]}


def _note_missing(kind: str, group: str, warnings: Optional[list[str]]) -> None:
    msg = f"{kind} group {group!r} not present in model; skipped."
    LOGGER.warning(msg)
    if warnings is not None:
        warnings.append(msg)


def extract_primal(
    outcome: MipOutcome | LpOutcome,
    entity_refs: Mapping[str, Iterable[Hashable]],
    periods: Iterable[int],
    warnings: Optional[list[str]] = None,
) -> GroupValues:
    """
    Read solved values for each (group, entity, period) that exists in the model.

    Absent groups are skipped with a warning; absent keys inside a present
    group are skipped silently.
    """
    if not outcome.has_solution:
        raise RuntimeError(
            f"Cannot extract primal values: no solution (status={outcome.status.value})."
        )
    periods = list(periods)
    groups = outcome.handle.variable_groups
    out: GroupValues = {}
    for group, entities in entity_refs.items():
        members = groups.get(group)
        if members is None:
            _note_missing("Variable", group, warnings)
            continue
        vals: dict[tuple[Hashable, int], float] = {}
        for eid in entities:
            for t in periods:
                var = members.get((eid, t))
                if var is None:
                    continue
                vals[(eid, t)] = float(outcome.values[var.index()])
        out[group] = vals
    return out


def extract_dual(
    outcome: LpOutcome,
    constraint_refs: Mapping[str, Iterable[Hashable]],
    periods: Iterable[int],
    warnings: Optional[list[str]] = None,
) -> GroupValues:
    """Price-convention duals; only a linear outcome carries them."""
    if not isinstance(outcome, LpOutcome):
        raise TypeError(
            f"Duals can only be read from an LpOutcome, got {type(outcome).__name__}."
        )
    if not outcome.has_duals:
        raise RuntimeError(
            f"Cannot extract duals: linear solve status is {outcome.status.value}."
        )
    periods = list(periods)
    groups = outcome.handle.constraint_groups
    out: GroupValues = {}
    for group, entities in constraint_refs.items():
        members = groups.get(group)
        if members is None:
            _note_missing("Constraint", group, warnings)
            continue
        vals: dict[tuple[Hashable, int], float] = {}
        for eid in entities:
            for t in periods:
                if (eid, t) in members:
                    vals[(eid, t)] = outcome.dual(group, (eid, t))
        out[group] = vals
    return out


def series(
    result: DispatchResult, group: str, entity_id: Hashable, periods: Iterable[int]
) -> list[float]:
    vals = result.primal_values.get(group, {})
    return [float(vals.get((entity_id, t), 0.0)) for t in periods]


def _frame(groups: GroupValues) -> pd.DataFrame:
    rows = [
        {"group": g, "entity_id": k[0], "period": int(k[1]), "value": float(v)}
        for g, vals in groups.items()
        for k, v in vals.items()
    ]
    if not rows:
        return pd.DataFrame(columns=_FRAME_COLUMNS)
    return (
        pd.DataFrame(rows)
        .sort_values(["group", "period", "entity_id"])
        .reset_index(drop=True)
    )


def primal_frame(result: DispatchResult) -> pd.DataFrame:
    return _frame(result.primal_values)


def dual_frame(result: DispatchResult) -> pd.DataFrame:
    return _frame(result.dual_values)


def compute_cost_breakdown(
    primal_values: GroupValues, system: SystemData, periods: Sequence[int] | None = None
) -> CostBreakdown:
    """Recompute the objective from extracted values and known unit costs."""
    h = float(system.cfg.PERIOD_HOURS)
    periods = list(system.periods if periods is None else periods)
    out = CostBreakdown()

    gen = primal_values.get("thermal_generation", {})
    starts = primal_values.get("thermal_startup", {})
    stops = primal_values.get("thermal_shutdown", {})
    for p in system.thermal_plants:
        for t in periods:
            out.thermal_fuel += gen.get((p.id, t), 0.0) * p.marginal_cost * h
            out.thermal_startup += starts.get((p.id, t), 0.0) * p.startup_cost
            out.thermal_shutdown += stops.get((p.id, t), 0.0) * p.shutdown_cost

    hydro_gen = primal_values.get("hydro_generation", {})
    for hp in system.hydro_plants:
        for t in periods:
            out.hydro_water_value += hydro_gen.get((hp.id, t), 0.0) * hp.water_value * h

    deficit = primal_values.get("deficit", {})
    for z in system.zones:
        cost = system.deficit_cost(z.id)
        for t in periods:
            out.deficit += deficit.get((z.id, t), 0.0) * cost * h

    return out
