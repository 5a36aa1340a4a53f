# hydroprice/handle.py
from __future__ import annotations

import enum
from typing import Hashable, Mapping, Optional, Tuple

from ortools.linear_solver import linear_solver_pb2, pywraplp

# (entity id, period)
Key = Tuple[Hashable, int]

_SOLUTION_STATUSES = (pywraplp.Solver.OPTIMAL, pywraplp.Solver.FEASIBLE)


class BackendUnavailable(RuntimeError):
    def __init__(self, backend: str) -> None:
        super().__init__(f"OR-Tools backend {backend!r} is not available.")
        self.backend = backend


class ConstraintCategory(str, enum.Enum):
    THERMAL = "thermal"
    HYDRO = "hydro"
    BALANCE = "balance"
    NETWORK = "network"
    RAMP = "ramp"
    UNKNOWN = "unknown"


class ModelHandle:
    """
    An optimization model with named, indexed variable and constraint groups.

    The handle owns exactly one pywraplp.Solver. After `solve()` it keeps a
    snapshot of the primal values (and, for purely linear models, the raw
    duals) so later readers never depend on the backend's mutable state.
    """

    def __init__(
        self,
        solver: pywraplp.Solver,
        name: str = "dispatch",
        *,
        cost_scale: float = 1.0,
        period_hours: float = 1.0,
    ) -> None:
        self.solver = solver
        self.name = name
        self.cost_scale = float(cost_scale)
        self.period_hours = float(period_hours)

        self.variable_groups: dict[str, dict[Key, pywraplp.Variable]] = {}
        self.constraint_groups: dict[str, dict[Key, pywraplp.Constraint]] = {}
        self.categories: dict[str, ConstraintCategory] = {}

        # constraint index -> group name, for diagnostics
        self._constraint_group_of: dict[int, str] = {}

        self.last_status: Optional[int] = None
        self.solution_values: Optional[tuple[float, ...]] = None
        self.raw_duals: Optional[tuple[float, ...]] = None
        self.wall_seconds: float = 0.0

    # ---------- construction ----------
    @classmethod
    def create(
        cls,
        backend: str,
        name: str = "dispatch",
        *,
        cost_scale: float = 1.0,
        period_hours: float = 1.0,
    ) -> "ModelHandle":
        solver = pywraplp.Solver.CreateSolver(backend)
        if solver is None:
            raise BackendUnavailable(backend)
        return cls(solver, name, cost_scale=cost_scale, period_hours=period_hours)

    def add_variable(
        self,
        group: str,
        key: Key,
        lb: float,
        ub: float,
        *,
        integer: bool = False,
    ) -> pywraplp.Variable:
        name = f"{group}[{key[0]},{key[1]}]"
        if integer:
            var = self.solver.IntVar(lb, ub, name)
        else:
            var = self.solver.NumVar(lb, ub, name)
        self.variable_groups.setdefault(group, {})[key] = var
        return var

    def add_constraint(
        self,
        group: str,
        key: Key,
        linear_constraint,
        *,
        category: ConstraintCategory | None = None,
    ) -> pywraplp.Constraint:
        """Add `expr <= / >= / == rhs` under a named group."""
        name = f"{group}[{key[0]},{key[1]}]"
        ct = self.solver.Add(linear_constraint, name)
        self.constraint_groups.setdefault(group, {})[key] = ct
        self._constraint_group_of[ct.index()] = group
        if category is not None:
            self.categories[group] = ConstraintCategory(category)
        return ct

    def minimize(self, expr) -> None:
        self.solver.Minimize(expr)

    # ---------- introspection ----------
    def integer_variables(self) -> list[pywraplp.Variable]:
        return [v for v in self.solver.variables() if v.integer()]

    def is_linear(self) -> bool:
        return not self.integer_variables()

    def category_of_constraint(self, index: int) -> Optional[ConstraintCategory]:
        group = self._constraint_group_of.get(index)
        if group is None:
            return None
        return self.categories.get(group)

    def minimization(self) -> bool:
        return bool(self.solver.Objective().minimization())

    @property
    def dual_scale(self) -> float:
        """Factor that turns a balance dual into currency per MWh."""
        return self.cost_scale * self.period_hours

    @property
    def is_solved(self) -> bool:
        return self.last_status in _SOLUTION_STATUSES and self.solution_values is not None

    def export_proto(self) -> linear_solver_pb2.MPModelProto:
        proto = linear_solver_pb2.MPModelProto()
        self.solver.ExportModelToProto(proto)
        return proto

    def stats(self) -> dict[str, int]:
        ints = self.integer_variables()
        return {
            "variables": int(self.solver.NumVariables()),
            "integer_variables": len(ints),
            "constraints": int(self.solver.NumConstraints()),
            "variable_groups": len(self.variable_groups),
            "constraint_groups": len(self.constraint_groups),
        }

    # ---------- solving ----------
    def solve(
        self,
        *,
        time_limit_sec: float | None = None,
        mip_gap: float | None = None,
        num_threads: int = 1,
    ) -> int:
        """Run the backend and snapshot the solution. Returns the raw status."""
        if time_limit_sec is not None:
            self.solver.SetTimeLimit(int(time_limit_sec * 1000))
        if num_threads > 1:
            self.solver.SetNumThreads(int(num_threads))

        params = pywraplp.MPSolverParameters()
        if mip_gap is not None and not self.is_linear():
            params.SetDoubleParam(pywraplp.MPSolverParameters.RELATIVE_MIP_GAP, mip_gap)

        status = self.solver.Solve(params)
        self.last_status = status
        self.wall_seconds = self.solver.wall_time() / 1000.0

        if status in _SOLUTION_STATUSES:
            self.solution_values = tuple(
                v.solution_value() for v in self.solver.variables()
            )
            if status == pywraplp.Solver.OPTIMAL and self.is_linear():
                self.raw_duals = tuple(
                    c.dual_value() for c in self.solver.constraints()
                )
            else:
                self.raw_duals = None
        else:
            self.solution_values = None
            self.raw_duals = None
        return status

    def objective_value(self) -> Optional[float]:
        if not self.is_solved:
            return None
        return self.solver.Objective().Value() / self.cost_scale

    def best_bound(self) -> Optional[float]:
        if not self.is_solved or self.is_linear():
            return None
        return self.solver.Objective().BestBound() / self.cost_scale

    def set_hints(self, hints: Mapping[str, Mapping[Key, float]]) -> int:
        """Warm-start from group -> key -> value. Returns the number of hints set."""
        variables: list[pywraplp.Variable] = []
        values: list[float] = []
        for group, vals in hints.items():
            members = self.variable_groups.get(group, {})
            for key, val in vals.items():
                var = members.get(key)
                if var is not None:
                    variables.append(var)
                    values.append(float(val))
        if variables:
            self.solver.SetHint(variables, values)
        return len(variables)

    # ---------- stage-2 copy ----------
    def linear_copy(
        self, fixed: Mapping[int, float], backend: str = "GLOP"
    ) -> "ModelHandle":
        """
        Independent continuous copy of this model. Every integer variable is
        relaxed; those listed in `fixed` (variable index -> value) get
        lb == ub == value. This handle is left untouched.
        """
        proto = self.export_proto()
        for var_proto in proto.variable:
            var_proto.is_integer = False
        for idx, val in fixed.items():
            var_proto = proto.variable[idx]
            var_proto.lower_bound = float(val)
            var_proto.upper_bound = float(val)

        lp_solver = pywraplp.Solver.CreateSolver(backend)
        if lp_solver is None:
            raise BackendUnavailable(backend)
        err = lp_solver.LoadModelFromProto(proto)
        if err:
            raise RuntimeError(f"Could not load linear copy of {self.name!r}: {err}")

        copy = ModelHandle(
            lp_solver,
            f"{self.name}[lp]",
            cost_scale=self.cost_scale,
            period_hours=self.period_hours,
        )
        variables = lp_solver.variables()
        constraints = lp_solver.constraints()
        for group, members in self.variable_groups.items():
            copy.variable_groups[group] = {
                key: variables[v.index()] for key, v in members.items()
            }
        for group, members in self.constraint_groups.items():
            copy.constraint_groups[group] = {
                key: constraints[c.index()] for key, c in members.items()
            }
        copy.categories = dict(self.categories)
        copy._constraint_group_of = dict(self._constraint_group_of)
        return copy
