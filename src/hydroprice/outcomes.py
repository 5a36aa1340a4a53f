# hydroprice/outcomes.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Optional

from hydroprice.handle import ModelHandle
from hydroprice.result_types import GroupValues, SolveState, SolveStatus


@dataclass(frozen=True)
class _StageOutcome:
    handle: ModelHandle
    status: SolveStatus
    raw_status: Optional[int]
    objective_value: Optional[float]
    solve_seconds: float
    values: Optional[tuple[float, ...]]

    @property
    def has_solution(self) -> bool:
        return self.values is not None

    def value(self, group: str, key: tuple[Hashable, int]) -> float:
        if self.values is None:
            raise RuntimeError(f"No solution available (status={self.status.value}).")
        var = self.handle.variable_groups[group][key]
        return self.values[var.index()]


@dataclass(frozen=True)
class MipOutcome(_StageOutcome):
    """Stage-1 (mixed-integer) result. Deliberately exposes no duals."""

    best_bound: Optional[float] = None
    mip_gap: Optional[float] = None


@dataclass(frozen=True)
class LpOutcome(_StageOutcome):
    """Linear solve result: primal snapshot plus raw constraint duals."""

    raw_duals: Optional[tuple[float, ...]] = None

    @property
    def has_duals(self) -> bool:
        return self.status is SolveStatus.OPTIMAL and self.raw_duals is not None

    def dual(self, group: str, key: tuple[Hashable, int]) -> float:
        """
        Marginal cost of the constraint's right-hand side, in currency per MWh.

        Positive when tightening a `==`/`>=` demand row by one MWh raises total
        cost. Raw backend duals are flipped for maximisation models and then
        divided by the handle's cost scale and period length.
        """
        if not self.has_duals:
            raise RuntimeError(f"No duals available (status={self.status.value}).")
        ct = self.handle.constraint_groups[group][key]
        sense = 1.0 if self.handle.minimization() else -1.0
        return sense * self.raw_duals[ct.index()] / self.handle.dual_scale


@dataclass
class TwoStageOutcome:
    stage1: MipOutcome
    stage2: Optional[LpOutcome] = None
    commitment: GroupValues = field(default_factory=dict)
    gap_exceeded: bool = False
    state_history: list[SolveState] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def state(self) -> SolveState:
        return self.state_history[-1] if self.state_history else SolveState.NOT_STARTED

    @property
    def has_duals(self) -> Optional[bool]:
        if not self.stage1.has_solution:
            return None
        return self.stage2 is not None and self.stage2.has_duals

    @property
    def objective_value(self) -> Optional[float]:
        return self.stage1.objective_value
