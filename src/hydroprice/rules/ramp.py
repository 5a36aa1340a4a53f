from hydroprice.handle import ConstraintCategory
from hydroprice.rules.base import Rule


class RampRule(Rule):
    """
    Ramp limits between consecutive periods. A unit that starts up (or shuts
    down) in period t may jump by its full capacity.
    """

    order = 30
    name = "Ramp"

    def add_hard(self) -> None:
        H = self.model.handle
        cat = ConstraintCategory.RAMP
        for p in self.model.data.thermal_plants:
            for t in self.periods:
                g = self.var("thermal_generation", (p.id, t))
                v = self.var("thermal_startup", (p.id, t))
                w = self.var("thermal_shutdown", (p.id, t))
                if t == 0:
                    g_prev = p.initial_generation_mw
                else:
                    g_prev = self.var("thermal_generation", (p.id, t - 1))

                if p.ramp_up_mw is not None:
                    H.add_constraint(
                        "ramp_up",
                        (p.id, t),
                        g - g_prev - p.capacity_mw * v <= p.ramp_up_mw,
                        category=cat,
                    )
                if p.ramp_down_mw is not None:
                    H.add_constraint(
                        "ramp_down",
                        (p.id, t),
                        g_prev - g - p.capacity_mw * w <= p.ramp_down_mw,
                        category=cat,
                    )
