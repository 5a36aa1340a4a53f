from hydroprice.rules.base import Rule


class VariablesRule(Rule):
    """Define decision variables"""

    order = 0
    name = "Variables"

    def declare_vars(self):
        D = self.model.data
        H = self.model.handle
        T = self.periods

        for p in D.thermal_plants:
            for t in T:
                H.add_variable("thermal_generation", (p.id, t), 0.0, p.capacity_mw)
                H.add_variable("thermal_commitment", (p.id, t), 0, 1, integer=True)
                H.add_variable("thermal_startup", (p.id, t), 0, 1, integer=True)
                H.add_variable("thermal_shutdown", (p.id, t), 0, 1, integer=True)

        for h in D.hydro_plants:
            for t in T:
                H.add_variable("hydro_generation", (h.id, t), 0.0, h.capacity_mw)
                H.add_variable("hydro_outflow", (h.id, t), 0.0, h.max_outflow)
                H.add_variable("hydro_spill", (h.id, t), 0.0, H.solver.infinity())
                H.add_variable("hydro_storage", (h.id, t), h.min_storage, h.max_storage)

        for z in D.zones:
            for t in T:
                ub = z.demand_mw[t] if z.allow_deficit else 0.0
                H.add_variable("deficit", (z.id, t), 0.0, max(ub, 0.0))

        for ic in D.interconnections:
            for t in T:
                H.add_variable(
                    "interchange", (f"{ic.from_zone}->{ic.to_zone}", t), 0.0, ic.capacity_mw
                )
                H.add_variable(
                    "interchange", (f"{ic.to_zone}->{ic.from_zone}", t), 0.0, ic.capacity_mw
                )
