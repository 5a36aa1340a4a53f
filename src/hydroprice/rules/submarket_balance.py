# src/hydroprice/rules/submarket_balance.py
from __future__ import annotations

from typing import Any

from hydroprice.handle import ConstraintCategory
from hydroprice.rules.base import Rule


class SubmarketBalanceRule(Rule):
    """
    Per zone and period:
      thermal + hydro + deficit + imports - exports == demand

    The duals of these rows are the zonal prices.
    """

    order = 60
    name = "SubmarketBalance"

    def add_hard(self) -> None:
        D = self.model.data
        H = self.model.handle
        groups = H.variable_groups
        arcs = groups.get("interchange", {})

        for z in D.zones:
            thermal = [p.id for p in D.thermal_plants if p.zone_id == z.id]
            hydro = [h.id for h in D.hydro_plants if h.zone_id == z.id]
            for t in self.periods:
                supply = [self.var("thermal_generation", (pid, t)) for pid in thermal]
                supply += [self.var("hydro_generation", (hid, t)) for hid in hydro]
                supply.append(self.var("deficit", (z.id, t)))
                for (arc, tt), var in arcs.items():
                    if tt != t:
                        continue
                    src, dst = arc.split("->", 1)
                    if dst == z.id:
                        supply.append(var)
                    elif src == z.id:
                        supply.append(-var)
                H.add_constraint(
                    "submarket_balance",
                    (z.id, t),
                    H.solver.Sum(supply) == z.demand_mw[t],
                    category=ConstraintCategory.BALANCE,
                )

    def contribute_objective(self) -> list:
        D = self.model.data
        h = float(self.model.cfg.PERIOD_HOURS)
        return [
            self.model.cost(D.deficit_cost(z.id) * h) * self.var("deficit", (z.id, t))
            for z in D.zones
            for t in self.periods
        ]

    def report_descriptors(self) -> list[dict[str, Any]]:
        D = self.model.data
        return [
            {
                "type": "zone_demand",
                "title": f"Zone {z.id} demand",
                "peak_mw": float(max(z.demand_mw, default=0.0)),
                "energy_mwh": float(sum(z.demand_mw) * D.cfg.PERIOD_HOURS),
                "deficit_cost": D.deficit_cost(z.id),
            }
            for z in D.zones
        ]
