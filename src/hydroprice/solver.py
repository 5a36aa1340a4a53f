# hydroprice/solver.py
from __future__ import annotations

import logging
import math
import time
from typing import Mapping, Optional

from ortools.linear_solver import pywraplp

from hydroprice.config import Config
from hydroprice.handle import ModelHandle
from hydroprice.outcomes import LpOutcome, MipOutcome, TwoStageOutcome
from hydroprice.result_types import GroupValues, SolveState, SolveStatus

LOGGER = logging.getLogger(__name__)

_STATUS_MAP = {
    pywraplp.Solver.OPTIMAL: SolveStatus.OPTIMAL,
    pywraplp.Solver.FEASIBLE: SolveStatus.FEASIBLE_TIME_LIMIT,
    pywraplp.Solver.INFEASIBLE: SolveStatus.INFEASIBLE,
}


def map_status(raw_status: Optional[int]) -> SolveStatus:
    """UNBOUNDED, ABNORMAL, MODEL_INVALID and NOT_SOLVED all become solver_error."""
    return _STATUS_MAP.get(raw_status, SolveStatus.SOLVER_ERROR)


def relative_gap(objective: Optional[float], bound: Optional[float]) -> Optional[float]:
    if objective is None or bound is None:
        return None
    if math.isinf(bound) or math.isnan(bound):
        return None
    return abs(objective - bound) / max(abs(objective), 1e-9)


def round_discrete(value: float, threshold: float, lb: float, ub: float) -> float:
    """Round to the nearest integer using `threshold` on the fractional part."""
    base = math.floor(value)
    rounded = base + (1.0 if value - base >= threshold else 0.0)
    return float(min(max(rounded, math.ceil(lb)), math.floor(ub)))


def round_commitment(
    handle: ModelHandle, values: tuple[float, ...], threshold: float
) -> dict[int, float]:
    """Variable index -> rounded value, for every integer variable of `handle`."""
    return {
        v.index(): round_discrete(values[v.index()], threshold, v.lb(), v.ub())
        for v in handle.integer_variables()
    }


def _commitment_groups(handle: ModelHandle, fixed: Mapping[int, float]) -> GroupValues:
    out: GroupValues = {}
    for group, members in handle.variable_groups.items():
        for key, var in members.items():
            if var.index() in fixed:
                out.setdefault(group, {})[key] = fixed[var.index()]
    return out


def _run(
    handle: ModelHandle,
    *,
    time_limit_sec: float,
    mip_gap: Optional[float],
    num_threads: int,
) -> tuple[SolveStatus, Optional[int], float]:
    """Solve and time it; exceptions from the backend become solver_error."""
    start = time.perf_counter()
    try:
        raw = handle.solve(
            time_limit_sec=time_limit_sec, mip_gap=mip_gap, num_threads=num_threads
        )
    except Exception:
        LOGGER.exception("Backend failure while solving %s", handle.name)
        return SolveStatus.SOLVER_ERROR, None, time.perf_counter() - start
    return map_status(raw), raw, time.perf_counter() - start


def solve_stage1(handle: ModelHandle, cfg: Config) -> MipOutcome:
    LOGGER.info(
        "Stage 1: solving %s (%d variables, %d integer)",
        handle.name,
        handle.solver.NumVariables(),
        len(handle.integer_variables()),
    )
    status, raw, seconds = _run(
        handle,
        time_limit_sec=cfg.TIME_LIMIT_SEC,
        mip_gap=cfg.MIP_GAP,
        num_threads=cfg.NUM_THREADS,
    )
    objective = handle.objective_value() if status.has_solution else None
    bound = handle.best_bound() if status.has_solution else None
    gap = relative_gap(objective, bound)
    if status is SolveStatus.OPTIMAL and gap is None:
        gap = 0.0
    LOGGER.info(
        "Stage 1 finished: status=%s objective=%s gap=%s (%.2fs)",
        status.value,
        objective,
        gap,
        seconds,
    )
    return MipOutcome(
        handle=handle,
        status=status,
        raw_status=raw,
        objective_value=objective,
        solve_seconds=seconds,
        values=handle.solution_values if status.has_solution else None,
        best_bound=bound,
        mip_gap=gap,
    )


def _failed_lp(handle: ModelHandle, status: SolveStatus = SolveStatus.SOLVER_ERROR) -> LpOutcome:
    return LpOutcome(
        handle=handle,
        status=status,
        raw_status=None,
        objective_value=None,
        solve_seconds=0.0,
        values=None,
    )


def solve_stage2(
    handle: ModelHandle, stage1: MipOutcome, cfg: Config, fixed: Mapping[int, float]
) -> LpOutcome:
    """
    Re-solve a linear copy of `handle` with every integer variable fixed to
    `fixed[index]`. `handle` and `stage1` are not modified.
    """
    try:
        lp = handle.linear_copy(fixed, backend=cfg.LP_BACKEND)
    except RuntimeError as exc:
        LOGGER.warning("Stage 2: could not build linear copy: %s", exc)
        return _failed_lp(handle)

    status, raw, seconds = _run(
        lp, time_limit_sec=cfg.stage2_time_limit, mip_gap=None, num_threads=1
    )
    objective = lp.objective_value() if status.has_solution else None
    LOGGER.info(
        "Stage 2 finished: status=%s objective=%s (%.2fs)", status.value, objective, seconds
    )
    return LpOutcome(
        handle=lp,
        status=status,
        raw_status=raw,
        objective_value=objective,
        solve_seconds=seconds,
        values=lp.solution_values if status.has_solution else None,
        raw_duals=lp.raw_duals if status is SolveStatus.OPTIMAL else None,
    )


def solve_two_stage(
    handle: ModelHandle, cfg: Config, *, pricing: bool | None = None
) -> TwoStageOutcome:
    """
    Mixed-integer solve followed by a fixed-commitment linear re-solve.

    Parameters
    ----------
    handle : ModelHandle
        A built model. It is exclusively used by this call and never mutated
        after stage 1.
    cfg : Config
        Time limits, gap targets, backends and rounding threshold.
    pricing : bool, optional
        Run stage 2. Defaults to `cfg.ENABLE_PRICING`.

    Returns
    -------
    TwoStageOutcome
        Always returned; failures are expressed through statuses and flags.
    """
    if pricing is None:
        pricing = cfg.ENABLE_PRICING

    out_history = [SolveState.NOT_STARTED, SolveState.STAGE1_RUNNING]
    stage1 = solve_stage1(handle, cfg)
    outcome = TwoStageOutcome(stage1=stage1, state_history=out_history)

    if not stage1.status.has_solution:
        out_history.append(SolveState.STAGE1_INFEASIBLE)
        outcome.warnings.append(f"Stage 1 ended with status {stage1.status.value}.")
        LOGGER.warning("Stage 1 ended with status %s; skipping stage 2", stage1.status.value)
        return outcome

    out_history.append(SolveState.STAGE1_OK)
    fixed = round_commitment(handle, stage1.values, cfg.ROUNDING_THRESHOLD)
    outcome.commitment = _commitment_groups(handle, fixed)

    if (
        stage1.status is SolveStatus.FEASIBLE_TIME_LIMIT
        and stage1.mip_gap is not None
        and stage1.mip_gap > cfg.MAX_ACCEPTABLE_GAP
    ):
        outcome.gap_exceeded = True
        msg = (
            f"Stage 1 hit the time limit with gap {stage1.mip_gap:.4f} "
            f"> {cfg.MAX_ACCEPTABLE_GAP:.4f}; prices not computed."
        )
        outcome.warnings.append(msg)
        LOGGER.warning(msg)
        return outcome

    if not pricing:
        LOGGER.info("Pricing disabled; single-stage solve only")
        return outcome

    out_history.append(SolveState.STAGE2_RUNNING)
    stage2 = solve_stage2(handle, stage1, cfg, fixed)
    outcome.stage2 = stage2

    if stage2.has_duals:
        out_history.append(SolveState.STAGE2_OK)
        if stage1.objective_value is not None and stage2.objective_value is not None:
            drift = abs(stage2.objective_value - stage1.objective_value)
            if drift > 1e-6 * max(abs(stage1.objective_value), 1.0):
                LOGGER.info(
                    "Stage 2 objective differs from stage 1 by %.6g (stage 1 is authoritative)",
                    drift,
                )
    else:
        out_history.append(SolveState.STAGE2_DEGENERATE)
        msg = (
            f"Stage 2 ended with status {stage2.status.value}; "
            "no dual prices are available for this solve."
        )
        outcome.warnings.append(msg)
        LOGGER.warning(msg)

    return outcome
