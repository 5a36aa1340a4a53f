# src/hydroprice/rules/network_balance.py
from __future__ import annotations

from typing import Any

from hydroprice.handle import ConstraintCategory
from hydroprice.input_data import SystemData
from hydroprice.rules.base import Rule

BUS_BALANCE_GROUP = "bus_balance"


def bus_loads(system: SystemData) -> dict[tuple[str, int], float]:
    """
    (bus_id, period) -> load in MW. Explicit bus loads win; when no bus in a
    zone carries load, the zone demand is split evenly over the zone's buses.
    """
    loads: dict[tuple[str, int], float] = {}
    for z in system.zones:
        zone_buses = [b for b in system.buses if b.zone_id == z.id]
        if not zone_buses:
            continue
        explicit = any(b.load_mw for b in zone_buses)
        for t in system.periods:
            for b in zone_buses:
                if explicit:
                    loads[(b.id, t)] = b.load_at(t)
                else:
                    loads[(b.id, t)] = z.demand_mw[t] / len(zone_buses)
    return loads


class NetworkBalanceRule(Rule):
    """
    DC power flow in place of the zonal balance:
      flow[l] == (angle[from] - angle[to]) / reactance[l]
      generation[bus] + deficit[bus] + inflows - outflows == load[bus]

    The first bus is the angle reference. The duals of the bus rows are the
    nodal prices.
    """

    order = 60
    name = "NetworkBalance"

    def declare_vars(self) -> None:
        D = self.model.data
        H = self.model.handle
        inf = H.solver.infinity()
        self._loads = bus_loads(D)
        ref_bus = D.buses[0].id if D.buses else None
        zones = {z.id: z for z in D.zones}

        for b in D.buses:
            for t in self.periods:
                load = self._loads.get((b.id, t), 0.0)
                ub = load if zones[b.zone_id].allow_deficit else 0.0
                H.add_variable("bus_deficit", (b.id, t), 0.0, max(ub, 0.0))
                lo, hi = (0.0, 0.0) if b.id == ref_bus else (-inf, inf)
                H.add_variable("bus_angle", (b.id, t), lo, hi)
        for ln in D.lines:
            for t in self.periods:
                H.add_variable("line_flow", (ln.id, t), -ln.capacity_mw, ln.capacity_mw)

    def add_hard(self) -> None:
        D = self.model.data
        H = self.model.handle

        at_bus: dict[str, list[tuple[str, str]]] = {}
        for p in D.thermal_plants:
            if p.bus_id is not None:
                at_bus.setdefault(p.bus_id, []).append(("thermal_generation", p.id))
        for hp in D.hydro_plants:
            if hp.bus_id is not None:
                at_bus.setdefault(hp.bus_id, []).append(("hydro_generation", hp.id))

        for t in self.periods:
            injections: dict[str, list] = {
                b.id: [self.var(group, (pid, t)) for group, pid in at_bus.get(b.id, [])]
                + [self.var("bus_deficit", (b.id, t))]
                for b in D.buses
            }
            for ln in D.lines:
                f = self.var("line_flow", (ln.id, t))
                b_susc = 1.0 / ln.reactance
                H.add_constraint(
                    "line_flow_definition",
                    (ln.id, t),
                    f
                    - b_susc * self.var("bus_angle", (ln.from_bus, t))
                    + b_susc * self.var("bus_angle", (ln.to_bus, t))
                    == 0,
                    category=ConstraintCategory.NETWORK,
                )
                injections[ln.from_bus].append(-f)
                injections[ln.to_bus].append(f)

            for b in D.buses:
                H.add_constraint(
                    BUS_BALANCE_GROUP,
                    (b.id, t),
                    H.solver.Sum(injections[b.id]) == self._loads.get((b.id, t), 0.0),
                    category=ConstraintCategory.BALANCE,
                )

    def contribute_objective(self) -> list:
        D = self.model.data
        h = float(self.model.cfg.PERIOD_HOURS)
        return [
            self.model.cost(D.deficit_cost(b.zone_id) * h) * self.var("bus_deficit", (b.id, t))
            for b in D.buses
            for t in self.periods
        ]

    def report_descriptors(self) -> list[dict[str, Any]]:
        D = self.model.data
        return [
            {
                "type": "network",
                "title": "Transmission network",
                "buses": len(D.buses),
                "lines": len(D.lines),
                "capacity_mw": float(sum(ln.capacity_mw for ln in D.lines)),
            }
        ]
