from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence


def _as_profile(values: float | Sequence[float], periods: int, label: str) -> list[float]:
    """Broadcast a scalar to a per-period list, or check an explicit list's length."""
    if isinstance(values, (int, float)):
        return [float(values)] * periods
    out = [float(v) for v in values]
    if len(out) != periods:
        raise ValueError(f"{label}: expected {periods} values, got {len(out)}.")
    return out


@dataclass(slots=True)
class ThermalPlant:
    """
    Committable thermal unit. Generation is zero when off, and within
    [min_generation_mw, capacity_mw] when committed.
    """

    id: str
    zone_id: str
    capacity_mw: float
    marginal_cost: float  # currency per MWh
    min_generation_mw: float = 0.0
    startup_cost: float = 0.0
    shutdown_cost: float = 0.0
    ramp_up_mw: Optional[float] = None  # None = unlimited
    ramp_down_mw: Optional[float] = None
    initial_on: bool = False
    initial_generation_mw: float = 0.0
    bus_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.capacity_mw < 0:
            raise ValueError(f"ThermalPlant {self.id}: capacity_mw must be >= 0.")
        if not (0 <= self.min_generation_mw <= self.capacity_mw):
            raise ValueError(
                f"ThermalPlant {self.id}: require 0 <= min_generation_mw <= capacity_mw."
            )
        for attr in ("ramp_up_mw", "ramp_down_mw"):
            val = getattr(self, attr)
            if val is not None and val < 0:
                raise ValueError(f"ThermalPlant {self.id}: {attr} must be >= 0.")


@dataclass(slots=True)
class HydroPlant:
    """
    Reservoir hydro plant with a single linear production function:
    generation_mw = productivity * outflow.
    """

    id: str
    zone_id: str
    capacity_mw: float
    productivity: float  # MW per unit of outflow
    max_outflow: float
    max_storage: float
    initial_storage: float
    min_storage: float = 0.0
    inflow: list[float] = field(default_factory=list)  # per period, may be empty
    water_value: float = 0.0  # currency per MWh generated
    bus_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.min_storage <= self.initial_storage <= self.max_storage):
            raise ValueError(
                f"HydroPlant {self.id}: require min_storage <= initial_storage <= max_storage."
            )
        if self.productivity <= 0:
            raise ValueError(f"HydroPlant {self.id}: productivity must be > 0.")
        self.inflow = [float(v) for v in self.inflow]

    def inflow_at(self, t: int) -> float:
        if not self.inflow:
            return 0.0
        return self.inflow[t] if t < len(self.inflow) else self.inflow[-1]


@dataclass(slots=True)
class Zone:
    """Submarket with its own energy balance and load-shedding (deficit) cost."""

    id: str
    demand_mw: list[float]
    deficit_cost: Optional[float] = None  # None = Config.DEFAULT_DEFICIT_COST
    allow_deficit: bool = True

    def __post_init__(self) -> None:
        self.demand_mw = [float(v) for v in self.demand_mw]


@dataclass(slots=True)
class Bus:
    id: str
    zone_id: str
    load_mw: list[float] = field(default_factory=list)
    name: str = ""

    def load_at(self, t: int) -> float:
        if not self.load_mw:
            return 0.0
        return self.load_mw[t] if t < len(self.load_mw) else self.load_mw[-1]


@dataclass(slots=True)
class Line:
    """DC-approximated AC line between two buses."""

    id: str
    from_bus: str
    to_bus: str
    reactance: float
    capacity_mw: float

    def __post_init__(self) -> None:
        if self.reactance <= 0:
            raise ValueError(f"Line {self.id}: reactance must be > 0.")
        if self.from_bus == self.to_bus:
            raise ValueError(f"Line {self.id}: from_bus and to_bus must differ.")


@dataclass(slots=True)
class Interconnection:
    """Transfer limit between two zones (both directions)."""

    from_zone: str
    to_zone: str
    capacity_mw: float
