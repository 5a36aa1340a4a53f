# hydroprice/network.py
from __future__ import annotations

import logging
from typing import Optional

import pandas as pd

from hydroprice.build import build_model
from hydroprice.config import Config
from hydroprice.extract import extract_dual
from hydroprice.handle import ModelHandle
from hydroprice.input_data import SystemData
from hydroprice.outcomes import LpOutcome
from hydroprice.result_types import DispatchResult, SolveStatus
from hydroprice.rules.base import RuleSpec
from hydroprice.rules.network_balance import BUS_BALANCE_GROUP, NetworkBalanceRule
from hydroprice.rules.registry import (
    HYDRO_RULE_TEMPLATE,
    RAMP_RULE_TEMPLATE,
    THERMAL_COMMITMENT_RULE_TEMPLATE,
    VARIABLES_RULE_TEMPLATE,
)
from hydroprice.solver import map_status

LOGGER = logging.getLogger(__name__)

NODAL_COLUMNS = ["bus_id", "period", "price"]


class NetworkSolveError(RuntimeError):
    pass


def network_rule_specs() -> list[RuleSpec]:
    """The dispatch rules with the zonal balance swapped for the bus balance."""
    templates = [
        VARIABLES_RULE_TEMPLATE,
        THERMAL_COMMITMENT_RULE_TEMPLATE,
        RAMP_RULE_TEMPLATE,
        HYDRO_RULE_TEMPLATE,
    ]
    specs = [
        RuleSpec(cls=cls, order=order, settings=dict(settings))
        for cls, order, settings in templates
    ]
    specs.append(RuleSpec(cls=NetworkBalanceRule, order=60))
    return specs


def _stage1_discrete(result: DispatchResult, group: str, key) -> float:
    val = result.commitment.get(group, {}).get(key)
    if val is None:
        val = result.primal_values.get(group, {}).get(key, 0.0)
    return 1.0 if val >= 0.5 else 0.0


def build_network_model(
    result: DispatchResult, system: SystemData, cfg: Config
) -> ModelHandle:
    """
    DC power-flow dispatch over all periods as a linear program.

    Thermal, ramp and hydro rows are the ones of the dispatch model, so hydro
    output stays a costed decision limited by the water balance. Every on/off
    variable is fixed to its stage-1 value, as in the linear re-solve.
    """
    skipped = [
        p.id
        for p in [*system.thermal_plants, *system.hydro_plants]
        if p.bus_id is None
    ]
    if skipped:
        LOGGER.warning(
            "%d plant(s) without a bus are left out of the network: %s",
            len(skipped),
            skipped[:5],
        )

    ctx = build_model(cfg, system, rules=network_rule_specs(), name="network")
    H = ctx.handle
    fixed: dict[int, float] = {}
    for group, members in H.variable_groups.items():
        for key, var in members.items():
            if var.integer():
                fixed[var.index()] = _stage1_discrete(result, group, key)
    return H.linear_copy(fixed, backend=cfg.LP_BACKEND.upper())


def compute_nodal_prices(
    result: DispatchResult, system: SystemData, cfg: Config
) -> Optional[pd.DataFrame]:
    """
    Bus-level prices as a DataFrame (bus_id, period, price), or None when the
    system has no network. Raises NetworkSolveError if the LP is not optimal.
    """
    if not system.has_network():
        return None
    H = build_network_model(result, system, cfg)
    raw = H.solve(time_limit_sec=cfg.stage2_time_limit)
    status = map_status(raw)
    if status is not SolveStatus.OPTIMAL:
        raise NetworkSolveError(f"Network LP ended with status {status.value}.")

    outcome = LpOutcome(
        handle=H,
        status=status,
        raw_status=raw,
        objective_value=H.objective_value(),
        solve_seconds=H.wall_seconds,
        values=H.solution_values,
        raw_duals=H.raw_duals,
    )
    duals = extract_dual(
        outcome, {BUS_BALANCE_GROUP: [b.id for b in system.buses]}, system.periods
    )
    rows = [
        {"bus_id": bus, "period": int(t), "price": float(price)}
        for (bus, t), price in duals.get(BUS_BALANCE_GROUP, {}).items()
    ]
    if not rows:
        return pd.DataFrame(columns=NODAL_COLUMNS)
    return pd.DataFrame(rows).sort_values(["period", "bus_id"]).reset_index(drop=True)
