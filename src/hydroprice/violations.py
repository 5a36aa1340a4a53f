# hydroprice/violations.py
from __future__ import annotations

import enum
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from ortools.linear_solver import linear_solver_pb2, pywraplp

from hydroprice.handle import BackendUnavailable, ConstraintCategory, ModelHandle

LOGGER = logging.getLogger(__name__)

# First match wins, so overlapping names resolve the same way every time.
CLASSIFICATION_RULES: tuple[tuple[ConstraintCategory, tuple[str, ...]], ...] = (
    (ConstraintCategory.THERMAL, ("thermal",)),
    (ConstraintCategory.HYDRO, ("hydro", "water_balance", "storage")),
    (ConstraintCategory.BALANCE, ("balance", "submarket")),
    (ConstraintCategory.NETWORK, ("network", "flow", "line")),
    (ConstraintCategory.RAMP, ("ramp",)),
)


class DiagnosticError(RuntimeError):
    """The feasibility check cannot run on the given model."""


@dataclass(frozen=True)
class ConstraintViolation:
    constraint_id: str
    category: ConstraintCategory
    magnitude: float  # > 0 above the upper bound, < 0 below the lower bound
    tolerance: float


@dataclass(frozen=True)
class ViolationReport:
    violations: tuple[ConstraintViolation, ...]
    counts_by_category: Mapping[ConstraintCategory, int]
    max_violation: float
    tolerance: float
    model_name: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def checked(self) -> bool:
        return True

    @property
    def is_empty(self) -> bool:
        return not self.violations

    def to_dict(self) -> dict:
        return {
            "model_name": self.model_name,
            "created_at": self.created_at.isoformat(),
            "tolerance": self.tolerance,
            "max_violation": self.max_violation,
            "counts_by_category": {c.value: n for c, n in self.counts_by_category.items()},
            "violations": [
                {
                    "constraint_id": v.constraint_id,
                    "category": v.category.value,
                    "magnitude": v.magnitude,
                }
                for v in self.violations
            ],
        }


def classify_constraint(name: str) -> ConstraintCategory:
    lowered = name.lower()
    for category, needles in CLASSIFICATION_RULES:
        if any(n in lowered for n in needles):
            return category
    return ConstraintCategory.UNKNOWN


def _signed_violation(activity: float, lb: float, ub: float, tol: float) -> Optional[float]:
    if activity > ub + tol:
        return activity - ub
    if activity < lb - tol:
        return activity - lb
    return None


def check_violations(
    handle: ModelHandle, tolerance: float = 1e-6, *, include_bounds: bool = True
) -> ViolationReport:
    """
    Evaluate every constraint (and variable bound) of a solved model at its
    solution and report those outside [lb - tol, ub + tol].

    Raises DiagnosticError when the handle holds no solution.
    """
    if tolerance < 0:
        raise ValueError("tolerance must be non-negative.")
    if not handle.is_solved:
        raise DiagnosticError(
            f"Model {handle.name!r} has no solution to check (status={handle.last_status})."
        )

    values = handle.solution_values
    proto = handle.export_proto()
    found: list[ConstraintViolation] = []

    for idx, ct in enumerate(proto.constraint):
        activity = sum(
            coef * values[vi] for vi, coef in zip(ct.var_index, ct.coefficient)
        )
        mag = _signed_violation(activity, ct.lower_bound, ct.upper_bound, tolerance)
        if mag is None:
            continue
        category = handle.category_of_constraint(idx) or classify_constraint(ct.name)
        found.append(ConstraintViolation(ct.name or f"c{idx}", category, mag, tolerance))

    if include_bounds:
        for idx, var in enumerate(proto.variable):
            mag = _signed_violation(values[idx], var.lower_bound, var.upper_bound, tolerance)
            if mag is None:
                continue
            name = var.name or f"x{idx}"
            found.append(ConstraintViolation(name, classify_constraint(name), mag, tolerance))

    found.sort(key=lambda v: (-abs(v.magnitude), v.constraint_id))
    counts = Counter(v.category for v in found)
    report = ViolationReport(
        violations=tuple(found),
        counts_by_category=MappingProxyType(dict(counts)),
        max_violation=max((abs(v.magnitude) for v in found), default=0.0),
        tolerance=tolerance,
        model_name=handle.name,
    )
    if found:
        LOGGER.warning(
            "%d constraint violation(s) in %s (max %.3g)",
            len(found),
            handle.name,
            report.max_violation,
        )
    return report


def render_violation_report(report: ViolationReport, max_rows: int = 20) -> str:
    lines = [
        "Constraint violation report",
        "=" * 27,
        f"Model: {report.model_name or '-'}",
        f"Created: {report.created_at:%Y-%m-%d %H:%M:%S}",
        f"Tolerance: {report.tolerance:.1e}",
        f"Violations: {len(report.violations)}",
        f"Max violation: {report.max_violation:.6g}",
    ]
    if not report.violations:
        lines.append("")
        lines.append("No constraint violations found.")
        return "\n".join(lines)

    lines.append("")
    lines.append("By category:")
    for category in ConstraintCategory:
        n = report.counts_by_category.get(category, 0)
        if n:
            lines.append(f"  {category.value:<8} {n}")

    lines.append("")
    lines.append(f"Largest violations (top {min(max_rows, len(report.violations))}):")
    for v in report.violations[:max_rows]:
        lines.append(f"  {v.magnitude:+.6g}  [{v.category.value}]  {v.constraint_id}")
    if len(report.violations) > max_rows:
        lines.append(f"  ... {len(report.violations) - max_rows} more")
    return "\n".join(lines)


def write_violation_report(report: ViolationReport, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_violation_report(report) + "\n", encoding="utf-8")
    return out


# ---------- irreducible infeasible subsystem ----------

_IIS_HINTS: dict[ConstraintCategory, str] = {
    ConstraintCategory.THERMAL: "check min/max generation and the initial on/off state",
    ConstraintCategory.HYDRO: "check initial storage, inflows and storage limits",
    ConstraintCategory.BALANCE: "demand cannot be met; allow deficit or add capacity",
    ConstraintCategory.NETWORK: "line limits may block every path to the load",
    ConstraintCategory.RAMP: "ramp limits may be too tight for the initial output",
}


class IISStatus(str, enum.Enum):
    SUCCESS = "success"
    RELAXATION_FEASIBLE = "relaxation_feasible"  # infeasible only through integrality
    TIME_LIMIT = "time_limit"  # conflicts are infeasible but may not be minimal


@dataclass(frozen=True)
class IISConflict:
    constraint_id: str
    category: ConstraintCategory
    lower_bound: Optional[float]
    upper_bound: Optional[float]
    expression: str


@dataclass(frozen=True)
class IISResult:
    status: IISStatus
    conflicts: tuple[IISConflict, ...]
    computation_seconds: float
    solver_used: str
    solves: int
    model_name: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def found(self) -> bool:
        return self.status is not IISStatus.RELAXATION_FEASIBLE

    @property
    def counts_by_category(self) -> Mapping[ConstraintCategory, int]:
        return MappingProxyType(dict(Counter(c.category for c in self.conflicts)))

    def to_dict(self) -> dict:
        return {
            "model_name": self.model_name,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "solver_used": self.solver_used,
            "solves": self.solves,
            "computation_seconds": self.computation_seconds,
            "conflicts": [
                {
                    "constraint_id": c.constraint_id,
                    "category": c.category.value,
                    "lower_bound": c.lower_bound,
                    "upper_bound": c.upper_bound,
                    "expression": c.expression,
                }
                for c in self.conflicts
            ],
        }


def _feasibility_proto(handle: ModelHandle) -> linear_solver_pb2.MPModelProto:
    """Linear relaxation of `handle` with the objective removed."""
    proto = handle.export_proto()
    for var in proto.variable:
        var.is_integer = False
        var.objective_coefficient = 0.0
    proto.objective_offset = 0.0
    return proto


def _relaxation_infeasible(
    proto: linear_solver_pb2.MPModelProto, backend: str, time_limit_sec: float
) -> bool:
    solver = pywraplp.Solver.CreateSolver(backend)
    if solver is None:
        raise BackendUnavailable(backend)
    err = solver.LoadModelFromProto(proto)
    if err:
        raise DiagnosticError(f"Could not load the linear relaxation: {err}")
    solver.SetTimeLimit(max(int(time_limit_sec * 1000), 1))
    return solver.Solve() == pywraplp.Solver.INFEASIBLE


def _expression(proto: linear_solver_pb2.MPModelProto, idx: int, max_terms: int = 8) -> str:
    ct = proto.constraint[idx]
    terms = [
        f"{coef:+g}*{proto.variable[vi].name or f'x{vi}'}"
        for vi, coef in zip(ct.var_index, ct.coefficient)
    ]
    text = " ".join(terms[:max_terms]) or "0"
    if len(terms) > max_terms:
        text += f" ... ({len(terms) - max_terms} more)"
    return text


def _finite(value: float) -> Optional[float]:
    return None if abs(value) == float("inf") else float(value)


def compute_iis(
    handle: ModelHandle, *, backend: str = "GLOP", time_limit_sec: float = 60.0
) -> IISResult:
    """
    Deletion filter over the linear relaxation of `handle`.

    Each constraint is dropped in turn; it stays dropped when the rest is
    still infeasible and is restored otherwise. The survivors form an
    irreducible infeasible set of constraints, with variable bounds always
    in force. `handle` is never modified.

    When the relaxation itself is feasible the model is infeasible only
    through integrality and the result carries no conflicts. When the time
    budget runs out the remaining constraints are kept unchecked, so the set
    is infeasible but may not be minimal.
    """
    if time_limit_sec <= 0:
        raise ValueError("time_limit_sec must be > 0.")
    start = time.perf_counter()
    proto = _feasibility_proto(handle)
    inf = float("inf")
    solves = 1

    if not _relaxation_infeasible(proto, backend, time_limit_sec):
        LOGGER.info("Linear relaxation of %s is feasible; no IIS to report", handle.name)
        return IISResult(
            status=IISStatus.RELAXATION_FEASIBLE,
            conflicts=(),
            computation_seconds=time.perf_counter() - start,
            solver_used=backend,
            solves=solves,
            model_name=handle.name,
        )

    status = IISStatus.SUCCESS
    for ct in proto.constraint:
        remaining = time_limit_sec - (time.perf_counter() - start)
        if remaining <= 0:
            status = IISStatus.TIME_LIMIT
            break
        lb, ub = ct.lower_bound, ct.upper_bound
        if lb == -inf and ub == inf:
            continue
        ct.lower_bound, ct.upper_bound = -inf, inf
        solves += 1
        if not _relaxation_infeasible(proto, backend, remaining):
            ct.lower_bound, ct.upper_bound = lb, ub

    original = handle.export_proto()
    conflicts: list[IISConflict] = []
    for idx, ct in enumerate(proto.constraint):
        if ct.lower_bound == -inf and ct.upper_bound == inf:
            continue
        name = ct.name or f"c{idx}"
        conflicts.append(
            IISConflict(
                constraint_id=name,
                category=handle.category_of_constraint(idx) or classify_constraint(name),
                lower_bound=_finite(original.constraint[idx].lower_bound),
                upper_bound=_finite(original.constraint[idx].upper_bound),
                expression=_expression(original, idx),
            )
        )

    result = IISResult(
        status=status,
        conflicts=tuple(conflicts),
        computation_seconds=time.perf_counter() - start,
        solver_used=backend,
        solves=solves,
        model_name=handle.name,
    )
    LOGGER.warning(
        "IIS for %s: %d conflicting constraint(s) after %d solve(s) (%s)",
        handle.name,
        len(conflicts),
        solves,
        status.value,
    )
    return result


def render_iis_report(result: IISResult) -> str:
    lines = [
        "Infeasibility report (IIS)",
        "=" * 26,
        f"Model: {result.model_name or '-'}",
        f"Created: {result.created_at:%Y-%m-%d %H:%M:%S}",
        f"Solver: {result.solver_used} ({result.solves} solve(s), "
        f"{result.computation_seconds:.3f}s)",
        f"Status: {result.status.value}",
    ]
    if result.status is IISStatus.RELAXATION_FEASIBLE:
        lines.append("")
        lines.append(
            "The linear relaxation is feasible: the model is infeasible only "
            "through its on/off decisions."
        )
        return "\n".join(lines)
    if result.status is IISStatus.TIME_LIMIT:
        lines.append("Time limit reached: the set below is infeasible but may not be minimal.")
    if not result.conflicts:
        lines.append("")
        lines.append("No constraint is involved: the variable bounds conflict on their own.")
        return "\n".join(lines)

    lines.append(f"Conflicting constraints: {len(result.conflicts)}")
    lines.append("")
    lines.append("By category:")
    counts = result.counts_by_category
    for category in ConstraintCategory:
        n = counts.get(category, 0)
        if n:
            hint = _IIS_HINTS.get(category)
            lines.append(f"  {category.value:<8} {n}" + (f"  ({hint})" if hint else ""))

    lines.append("")
    for i, c in enumerate(result.conflicts, start=1):
        lines.append(f"[{i}] {c.constraint_id}  [{c.category.value}]")
        lines.append(f"    {c.expression}")
        bounds = []
        if c.lower_bound is not None:
            bounds.append(f"lower = {c.lower_bound:g}")
        if c.upper_bound is not None:
            bounds.append(f"upper = {c.upper_bound:g}")
        if bounds:
            lines.append("    " + ", ".join(bounds))
    return "\n".join(lines)


def write_iis_report(result: IISResult, path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_iis_report(result) + "\n", encoding="utf-8")
    LOGGER.info("IIS report written to %s", out)
    return out
