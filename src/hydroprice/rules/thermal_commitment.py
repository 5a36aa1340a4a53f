# src/hydroprice/rules/thermal_commitment.py
from __future__ import annotations

from typing import Any

from hydroprice.handle import ConstraintCategory
from hydroprice.rules.base import Rule


class ThermalCommitmentRule(Rule):
    """
    On/off logic for thermal units:
      min_gen * u <= g <= capacity * u
      u[t] - u[t-1] == startup[t] - shutdown[t]
    """

    order = 20
    name = "ThermalCommitment"

    def add_hard(self) -> None:
        H = self.model.handle
        cat = ConstraintCategory.THERMAL
        for p in self.model.data.thermal_plants:
            prev_on = 1.0 if p.initial_on else 0.0
            for t in self.periods:
                g = self.var("thermal_generation", (p.id, t))
                u = self.var("thermal_commitment", (p.id, t))
                v = self.var("thermal_startup", (p.id, t))
                w = self.var("thermal_shutdown", (p.id, t))

                H.add_constraint(
                    "thermal_max_gen", (p.id, t), g - p.capacity_mw * u <= 0, category=cat
                )
                H.add_constraint(
                    "thermal_min_gen",
                    (p.id, t),
                    g - p.min_generation_mw * u >= 0,
                    category=cat,
                )
                if t == 0:
                    logic = u - v + w == prev_on
                else:
                    u_prev = self.var("thermal_commitment", (p.id, t - 1))
                    logic = u - u_prev - v + w == 0
                H.add_constraint("thermal_commitment_logic", (p.id, t), logic, category=cat)

    def contribute_objective(self) -> list:
        cost = self.model.cost
        h = float(self.model.cfg.PERIOD_HOURS)
        terms = []
        for p in self.model.data.thermal_plants:
            for t in self.periods:
                key = (p.id, t)
                terms.append(cost(p.marginal_cost * h) * self.var("thermal_generation", key))
                if p.startup_cost:
                    terms.append(cost(p.startup_cost) * self.var("thermal_startup", key))
                if p.shutdown_cost:
                    terms.append(cost(p.shutdown_cost) * self.var("thermal_shutdown", key))
        return terms

    def report_descriptors(self) -> list[dict[str, Any]]:
        plants = self.model.data.thermal_plants
        return [
            {
                "type": "thermal_fleet",
                "title": "Thermal fleet",
                "units": len(plants),
                "capacity_mw": float(sum(p.capacity_mw for p in plants)),
            }
        ]
