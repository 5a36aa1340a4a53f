# src/hydroprice/build.py
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence, Type

from hydroprice.config import Config
from hydroprice.handle import ModelHandle
from hydroprice.input_data import SystemData
from hydroprice.rules.objective import ObjectiveBuilder
from hydroprice.rules.registry import instantiate_rules, normalize_rule_specs

if TYPE_CHECKING:
    from hydroprice.rules.base import Rule, RuleSpec


class BuildContext:
    """Holds shared state while building the model (used by rules and solver)."""

    def __init__(self, cfg: Config, data: SystemData, handle: ModelHandle) -> None:
        self.cfg: Config = cfg
        self.data: SystemData = data
        self.handle: ModelHandle = handle

        self._objective: ObjectiveBuilder = ObjectiveBuilder()
        self._rules: list["Rule"] = []

    @property
    def rules(self) -> list["Rule"]:
        return list(self._rules)

    def cost(self, value: float) -> float:
        """Objective coefficient for a cost in currency units."""
        return float(value) * self.cfg.COST_SCALE

    def report_descriptors(self) -> list[dict]:
        out: list[dict] = []
        for r in self._rules:
            out.extend(r.report_descriptors())
        return out


def build_model(
    cfg: Config,
    data: SystemData,
    rules: Sequence["RuleSpec" | Type["Rule"]] | None = None,
    name: str = "dispatch",
) -> BuildContext:
    """
    Build the dispatch MILP by running each registered Rule through 3 phases:
      1) declare_vars  2) add_hard  3) contribute_objective
    Then attach the final objective and run sanity checks.
    """
    handle = ModelHandle.create(
        cfg.MIP_BACKEND.upper(),
        name,
        cost_scale=cfg.COST_SCALE,
        period_hours=cfg.PERIOD_HOURS,
    )
    ctx = BuildContext(cfg, data, handle)
    ctx._rules = instantiate_rules(ctx, normalize_rule_specs(rules))

    for r in ctx._rules:
        r.declare_vars()
    for r in ctx._rules:
        r.add_hard()
    for r in ctx._rules:
        ctx._objective.extend(r.contribute_objective())

    handle.minimize(ctx._objective.linear_expr(handle.solver))

    # ---- sanity checks ----
    groups = handle.variable_groups
    if data.thermal_plants and "thermal_generation" not in groups:
        raise RuntimeError(
            "[build sanity] thermal variables missing. Ensure VariablesRule is enabled."
        )
    if data.zones and "deficit" not in groups:
        raise RuntimeError(
            "[build sanity] deficit variables missing. Ensure VariablesRule is enabled."
        )
    return ctx
