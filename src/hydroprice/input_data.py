from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from hydroprice.config import Config
from hydroprice.entities import (
    Bus,
    HydroPlant,
    Interconnection,
    Line,
    ThermalPlant,
    Zone,
    _as_profile,
)
from hydroprice.generate.system import SystemGenConfig, create_system

# (entity_id, bus_id, zone_id)
Location = tuple[str, Optional[str], str]


@dataclass
class SystemData:
    """
    Read-only system topology handed to the model builder, the network
    sub-solve and the pricing resolver.
    """

    cfg: Config
    zones: list[Zone]
    thermal_plants: list[ThermalPlant] = field(default_factory=list)
    hydro_plants: list[HydroPlant] = field(default_factory=list)
    buses: list[Bus] = field(default_factory=list)
    lines: list[Line] = field(default_factory=list)
    interconnections: list[Interconnection] = field(default_factory=list)

    _bus_zones: Optional[dict[str, str]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        T = int(self.cfg.PERIODS)
        for z in self.zones:
            z.demand_mw = _as_profile(z.demand_mw, T, f"Zone {z.id} demand")
        self.validate()

    @property
    def periods(self) -> range:
        return range(int(self.cfg.PERIODS))

    def validate(self) -> None:
        zone_ids = {z.id for z in self.zones}
        if len(zone_ids) != len(self.zones):
            raise ValueError("Zone ids must be unique.")
        bus_ids = {b.id for b in self.buses}
        if len(bus_ids) != len(self.buses):
            raise ValueError("Bus ids must be unique.")

        plant_ids = [p.id for p in self.thermal_plants] + [
            p.id for p in self.hydro_plants
        ]
        if len(set(plant_ids)) != len(plant_ids):
            raise ValueError("Plant ids must be unique across thermal and hydro.")

        for plant in [*self.thermal_plants, *self.hydro_plants]:
            if plant.zone_id not in zone_ids:
                raise ValueError(f"Plant {plant.id} refers to unknown zone {plant.zone_id}.")
            if plant.bus_id is not None and bus_ids and plant.bus_id not in bus_ids:
                raise ValueError(f"Plant {plant.id} refers to unknown bus {plant.bus_id}.")
        for bus in self.buses:
            if bus.zone_id not in zone_ids:
                raise ValueError(f"Bus {bus.id} refers to unknown zone {bus.zone_id}.")
        for line in self.lines:
            for end in (line.from_bus, line.to_bus):
                if end not in bus_ids:
                    raise ValueError(f"Line {line.id} refers to unknown bus {end}.")
        for ic in self.interconnections:
            if ic.from_zone not in zone_ids or ic.to_zone not in zone_ids:
                raise ValueError(
                    f"Interconnection {ic.from_zone}->{ic.to_zone} refers to an unknown zone."
                )

    def zone(self, zone_id: str) -> Zone:
        for z in self.zones:
            if z.id == zone_id:
                return z
        raise KeyError(zone_id)

    def deficit_cost(self, zone_id: str) -> float:
        cost = self.zone(zone_id).deficit_cost
        return float(self.cfg.DEFAULT_DEFICIT_COST if cost is None else cost)

    def generator_locations(self) -> list[Location]:
        """(entity_id, bus_id, zone_id) for every generating entity."""
        out: list[Location] = []
        for p in self.thermal_plants:
            out.append((p.id, p.bus_id, p.zone_id))
        for h in self.hydro_plants:
            out.append((h.id, h.bus_id, h.zone_id))
        return out

    def bus_zones(self) -> dict[str, str]:
        """bus_id -> zone_id from every generating entity on a bus. Built once."""
        if self._bus_zones is None:
            out: dict[str, str] = {}
            for _entity, bus_id, zone_id in self.generator_locations():
                if bus_id is not None:
                    out.setdefault(bus_id, zone_id)
            self._bus_zones = out
        return self._bus_zones

    def has_network(self) -> bool:
        return bool(self.buses) and bool(self.lines)


def build_input(cfg: Config, seed: int = 7) -> SystemData:
    """
    Build a synthetic SystemData object for the given Config.

    Parameters:
    cfg (Config): the configuration to use
    seed (int, optional): the random seed to use. Defaults to 7.

    Returns:
    SystemData: the generated system
    """
    gen_cfg = SystemGenConfig(periods=int(cfg.PERIODS), seed=seed)
    gen_cfg.validate()
    zones, thermal, hydro, buses, lines, interconnections = create_system(gen_cfg)
    return SystemData(
        cfg=cfg,
        zones=zones,
        thermal_plants=thermal,
        hydro_plants=hydro,
        buses=buses,
        lines=lines,
        interconnections=interconnections,
    )
