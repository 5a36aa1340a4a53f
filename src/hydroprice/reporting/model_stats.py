from __future__ import annotations

from typing import Any


def format_model_stats(stats: dict[str, int] | None) -> str | None:
    """Summarise ModelHandle.stats() for the pre-solve report."""
    if not stats:
        return None

    total = stats.get("variables")
    if total is None:
        return None

    var_line = f"  Variables: total={total:,}"
    ints = stats.get("integer_variables")
    if ints is not None:
        var_line += f" (integers={ints:,}, continuous={total - ints:,})"

    parts = [var_line]
    constraints = stats.get("constraints")
    if constraints:
        parts.append(f"  Constraints: {constraints:,}")
    groups = stats.get("variable_groups"), stats.get("constraint_groups")
    if all(g is not None for g in groups):
        parts.append(f"  Groups: {groups[0]} variable / {groups[1]} constraint")
    return "\n".join(parts)


def format_solver_stats(res: Any) -> str | None:
    """Stage statuses, gap and timings of a DispatchResult."""
    status = getattr(res, "status", None)
    if status is None:
        return None

    status_name = getattr(status, "value", str(status))
    obj = getattr(res, "objective_value", None)
    bound = getattr(res, "best_bound", None)
    summary = [
        f"  Stage 1: status={status_name}"
        + (f", objective={obj:,.2f}" if obj is not None else "")
        + (f", best_bound={bound:,.2f}" if bound is not None else "")
    ]
    gap = getattr(res, "mip_gap", None)
    if gap is not None:
        flag = " (exceeds acceptable gap)" if getattr(res, "gap_exceeded", False) else ""
        summary.append(f"  MIP gap={100 * gap:.3f}%{flag}")

    s2 = getattr(res, "stage2_status", None)
    if s2 is not None:
        s2_obj = getattr(res, "stage2_objective", None)
        summary.append(
            f"  Stage 2: status={getattr(s2, 'value', s2)}"
            + (f", objective={s2_obj:,.2f}" if s2_obj is not None else "")
        )

    timing = getattr(res, "timing", None)
    if timing is not None:
        summary.append(
            f"  Walltime: stage1={timing.stage1_seconds:,.2f}s, "
            f"stage2={timing.stage2_seconds:,.2f}s"
        )
    return "\n".join(summary)
