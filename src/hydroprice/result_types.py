# hydroprice/result_types.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Hashable, Optional

import pandas as pd

if TYPE_CHECKING:
    from hydroprice.violations import IISResult, ViolationReport

# group name -> (entity id, period) -> value
GroupValues = dict[str, dict[tuple[Hashable, int], float]]


class SolveStatus(str, enum.Enum):
    OPTIMAL = "optimal"
    FEASIBLE_TIME_LIMIT = "feasible_time_limit"
    INFEASIBLE = "infeasible"
    SOLVER_ERROR = "solver_error"

    @property
    def has_solution(self) -> bool:
        return self in (SolveStatus.OPTIMAL, SolveStatus.FEASIBLE_TIME_LIMIT)


class SolveState(str, enum.Enum):
    NOT_STARTED = "not_started"
    STAGE1_RUNNING = "stage1_running"
    STAGE1_INFEASIBLE = "stage1_infeasible"
    STAGE1_OK = "stage1_ok"
    STAGE2_RUNNING = "stage2_running"
    STAGE2_OK = "stage2_ok"
    STAGE2_DEGENERATE = "stage2_degenerate"
    EXTRACTED = "extracted"


@dataclass
class StageTiming:
    stage1_seconds: float = 0.0
    stage2_seconds: float = 0.0

    @property
    def total_seconds(self) -> float:
        return self.stage1_seconds + self.stage2_seconds


@dataclass
class CostBreakdown:
    """Objective recomputed from extracted primal values, by cost component."""

    thermal_fuel: float = 0.0
    thermal_startup: float = 0.0
    thermal_shutdown: float = 0.0
    deficit: float = 0.0
    hydro_water_value: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.thermal_fuel
            + self.thermal_startup
            + self.thermal_shutdown
            + self.deficit
            + self.hydro_water_value
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "thermal_fuel": self.thermal_fuel,
            "thermal_startup": self.thermal_startup,
            "thermal_shutdown": self.thermal_shutdown,
            "deficit": self.deficit,
            "hydro_water_value": self.hydro_water_value,
            "total": self.total,
        }


@dataclass
class DispatchResult:
    """
    Structured output of one two-stage solve.

    `has_duals` is True only when the linear re-solve ended optimally. It is
    False whenever stage 1 produced a solution but no valid duals exist
    (stage 2 failed, pricing disabled, or the gap flag was raised), and None
    when stage 1 itself has no solution.
    """

    status: SolveStatus
    objective_value: Optional[float] = None
    primal_values: GroupValues = field(default_factory=dict)
    dual_values: GroupValues = field(default_factory=dict)
    nodal_prices: Optional[pd.DataFrame] = None
    has_duals: Optional[bool] = None
    timing: StageTiming = field(default_factory=StageTiming)

    best_bound: Optional[float] = None
    mip_gap: Optional[float] = None
    gap_exceeded: bool = False
    stage2_status: Optional[SolveStatus] = None
    stage2_objective: Optional[float] = None
    commitment: GroupValues = field(default_factory=dict)
    cost_breakdown: Optional[CostBreakdown] = None

    state: SolveState = SolveState.NOT_STARTED
    state_history: list[SolveState] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    violation_report: Optional["ViolationReport"] = None
    iis: Optional["IISResult"] = None
    nodal_attempted: bool = False
    pricing_cache: dict[tuple, tuple] = field(default_factory=dict, repr=False)

    @property
    def status_name(self) -> str:
        return self.status.value

    @property
    def is_optimal(self) -> bool:
        return self.status is SolveStatus.OPTIMAL

    @property
    def has_solution(self) -> bool:
        return self.status.has_solution

    def value(self, group: str, entity_id: Hashable, period: int) -> float:
        return self.primal_values[group][(entity_id, period)]

    def to_dict(self) -> dict[str, Any]:
        """Plain structure with no solver or pandas types in it."""

        def _flat(groups: GroupValues) -> dict[str, list[dict[str, Any]]]:
            return {
                g: [
                    {"entity_id": k[0], "period": int(k[1]), "value": float(v)}
                    for k, v in sorted(vals.items(), key=lambda kv: (kv[0][1], str(kv[0][0])))
                ]
                for g, vals in groups.items()
            }

        nodal = None
        if self.nodal_prices is not None:
            nodal = self.nodal_prices.to_dict(orient="records")

        return {
            "status": self.status.value,
            "objective_value": self.objective_value,
            "best_bound": self.best_bound,
            "mip_gap": self.mip_gap,
            "gap_exceeded": self.gap_exceeded,
            "has_duals": self.has_duals,
            "stage2_status": None if self.stage2_status is None else self.stage2_status.value,
            "stage2_objective": self.stage2_objective,
            "state": self.state.value,
            "state_history": [s.value for s in self.state_history],
            "timing": {
                "stage1_seconds": self.timing.stage1_seconds,
                "stage2_seconds": self.timing.stage2_seconds,
            },
            "primal_values": _flat(self.primal_values),
            "dual_values": _flat(self.dual_values),
            "nodal_prices": nodal,
            "cost_breakdown": None
            if self.cost_breakdown is None
            else self.cost_breakdown.as_dict(),
            "iis": None if self.iis is None else self.iis.to_dict(),
            "warnings": list(self.warnings),
        }
