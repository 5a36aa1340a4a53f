# hydroprice/model.py
from __future__ import annotations

import logging
from typing import Sequence, Type

from hydroprice.build import BuildContext, build_model
from hydroprice.config import Config
from hydroprice.extract import (
    compute_cost_breakdown,
    default_constraint_refs,
    default_entity_refs,
    extract_dual,
    extract_primal,
)
from hydroprice.handle import BackendUnavailable, ModelHandle
from hydroprice.input_data import SystemData
from hydroprice.outcomes import TwoStageOutcome
from hydroprice.precheck import precheck_capacity
from hydroprice.pricing import attach_nodal_prices
from hydroprice.result_types import (
    DispatchResult,
    SolveState,
    SolveStatus,
    StageTiming,
)
from hydroprice.rules.base import Rule, RuleSpec
from hydroprice.solver import solve_two_stage
from hydroprice.violations import (
    IISResult,
    ViolationReport,
    check_violations,
    compute_iis,
)

LOGGER = logging.getLogger(__name__)

WARM_START_GROUPS = ("thermal_commitment", "thermal_generation", "hydro_generation")


class DispatchModel:
    """
    Thin orchestrator around:
      - precheck_capacity()
      - build_model()       -> BuildContext holding the ModelHandle
      - solve_two_stage()   -> MILP, then fixed-commitment LP
      - extraction helpers  -> DispatchResult (+ nodal prices when available)
    """

    def __init__(
        self,
        cfg: Config,
        data: SystemData,
        rules: Sequence[RuleSpec | Type[Rule]] | None = None,
        warm_start: DispatchResult | None = None,
    ):
        self.cfg = cfg
        self.data = data
        self._ctx: BuildContext | None = None
        self._rule_specs = rules
        self._warm_start = warm_start
        self._build_error: str | None = None
        self.last_outcome: TwoStageOutcome | None = None

    # ---------- Precheck ----------
    def precheck(self, verbose: bool = True):
        return precheck_capacity(self.cfg, self.data, verbose=verbose)

    # ---------- Build ----------
    def build(self) -> None:
        try:
            self._ctx = build_model(self.cfg, self.data, rules=self._rule_specs)
        except BackendUnavailable as exc:
            self._build_error = str(exc)
            LOGGER.error("Model not built: %s", exc)
            return
        if self._warm_start is not None and self._warm_start.has_solution:
            hints = {
                g: self._warm_start.primal_values[g]
                for g in WARM_START_GROUPS
                if g in self._warm_start.primal_values
            }
            n = self.handle.set_hints(hints)
            LOGGER.info("Warm start: %d variable hint(s) from a previous result", n)

    @property
    def handle(self) -> ModelHandle:
        if self._ctx is None:
            raise RuntimeError("Call build() before accessing the model handle.")
        return self._ctx.handle

    # ---------- Solve ----------
    def solve(self, pricing: bool | None = None) -> DispatchResult:
        """
        Solve the dispatch model in two stages and extract the results.

        Infeasibility and a failed linear re-solve are reported through the
        returned DispatchResult (status, has_duals, state, warnings); only
        calling solve() before build() raises.

        Parameters:
        pricing (bool, optional): run the linear re-solve for prices.
            Defaults to Config.ENABLE_PRICING.

        Returns:
        DispatchResult: status, stage-1 objective, primal/dual values and
        the solve's state history
        """
        if self._build_error is not None:
            return DispatchResult(
                status=SolveStatus.SOLVER_ERROR,
                state=SolveState.STAGE1_INFEASIBLE,
                state_history=[SolveState.NOT_STARTED, SolveState.STAGE1_INFEASIBLE],
                warnings=[self._build_error],
            )
        if self._ctx is None:
            raise RuntimeError("Call build() before solve().")

        if pricing is None:
            pricing = self.cfg.ENABLE_PRICING
        outcome = solve_two_stage(self.handle, self.cfg, pricing=pricing)
        self.last_outcome = outcome
        result = self._to_result(outcome)

        if pricing and self.cfg.ENABLE_NODAL_PRICING and result.has_solution:
            attach_nodal_prices(result, self.data, self.cfg)
        return result

    def _to_result(self, outcome: TwoStageOutcome) -> DispatchResult:
        s1, s2 = outcome.stage1, outcome.stage2
        D = self.data
        result = DispatchResult(
            status=s1.status,
            objective_value=s1.objective_value,
            has_duals=outcome.has_duals,
            timing=StageTiming(
                stage1_seconds=s1.solve_seconds,
                stage2_seconds=s2.solve_seconds if s2 is not None else 0.0,
            ),
            best_bound=s1.best_bound,
            mip_gap=s1.mip_gap,
            gap_exceeded=outcome.gap_exceeded,
            commitment=outcome.commitment,
            state_history=list(outcome.state_history),
            warnings=list(outcome.warnings),
        )
        if s2 is not None:
            result.stage2_status = s2.status
            result.stage2_objective = s2.objective_value

        if s1.has_solution:
            result.primal_values = extract_primal(
                s1, default_entity_refs(D), D.periods, result.warnings
            )
            result.cost_breakdown = compute_cost_breakdown(result.primal_values, D)
            if s2 is not None and s2.has_duals:
                result.dual_values = extract_dual(
                    s2, default_constraint_refs(D), D.periods, result.warnings
                )
            result.state_history.append(SolveState.EXTRACTED)

        result.state = result.state_history[-1]
        return result

    # ---------- Diagnostics ----------
    def check_violations(
        self,
        result: DispatchResult | None = None,
        *,
        tolerance: float | None = None,
        stage: str = "stage1",
    ) -> ViolationReport:
        """
        Feasibility report for the stage-1 model ("stage1") or the linear
        re-solve ("stage2"). When `result` is given the report is stored on it.
        """
        tol = self.cfg.VIOLATION_TOLERANCE if tolerance is None else tolerance
        if stage == "stage1":
            handle = self.handle
        elif stage == "stage2":
            if self.last_outcome is None or self.last_outcome.stage2 is None:
                raise RuntimeError("No linear re-solve has run for this model.")
            handle = self.last_outcome.stage2.handle
        else:
            raise ValueError(f"stage must be 'stage1' or 'stage2', got {stage!r}")
        report = check_violations(handle, tol)
        if result is not None:
            result.violation_report = report
        return report

    def compute_iis(self, result: DispatchResult | None = None) -> IISResult:
        """
        Irreducible infeasible set of constraints for the stage-1 model.
        When `result` is given the IIS is stored on it.
        """
        iis = compute_iis(
            self.handle,
            backend=self.cfg.LP_BACKEND.upper(),
            time_limit_sec=self.cfg.IIS_TIME_LIMIT_SEC,
        )
        if result is not None:
            result.iis = iis
        return iis

    def get_report_descriptors(self) -> list[dict]:
        if self._ctx is None:
            raise RuntimeError("Call build() before get_report_descriptors().")
        return self._ctx.report_descriptors()

    def model_stats(self) -> dict[str, int] | None:
        if self._ctx is None:
            return None
        return self.handle.stats()
