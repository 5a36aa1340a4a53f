# src/hydroprice/rules/hydro.py
from __future__ import annotations

from hydroprice.handle import ConstraintCategory
from hydroprice.rules.base import Rule


class HydroRule(Rule):
    """
    Reservoir water balance and linear production:
      storage[t] = storage[t-1] + inflow[t] - outflow[t] - spill[t]
      generation[t] = productivity * outflow[t]
    """

    order = 40
    name = "Hydro"

    def add_hard(self) -> None:
        H = self.model.handle
        cat = ConstraintCategory.HYDRO
        for hp in self.model.data.hydro_plants:
            for t in self.periods:
                s = self.var("hydro_storage", (hp.id, t))
                q = self.var("hydro_outflow", (hp.id, t))
                sp = self.var("hydro_spill", (hp.id, t))
                gh = self.var("hydro_generation", (hp.id, t))

                if t == 0:
                    H.add_constraint(
                        "hydro_water_balance",
                        (hp.id, t),
                        s + q + sp == hp.initial_storage + hp.inflow_at(t),
                        category=cat,
                    )
                else:
                    s_prev = self.var("hydro_storage", (hp.id, t - 1))
                    H.add_constraint(
                        "hydro_water_balance",
                        (hp.id, t),
                        s - s_prev + q + sp == hp.inflow_at(t),
                        category=cat,
                    )
                H.add_constraint(
                    "hydro_production", (hp.id, t), gh - hp.productivity * q == 0, category=cat
                )

    def contribute_objective(self) -> list:
        h = float(self.model.cfg.PERIOD_HOURS)
        return [
            self.model.cost(hp.water_value * h) * self.var("hydro_generation", (hp.id, t))
            for hp in self.model.data.hydro_plants
            if hp.water_value
            for t in self.periods
        ]
