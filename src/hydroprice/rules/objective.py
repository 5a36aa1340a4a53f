# src/hydroprice/rules/objective.py
from __future__ import annotations

from typing import Iterable

from ortools.linear_solver import pywraplp


class ObjectiveBuilder:
    """
    Collects cost terms from the rules and emits a single linear expression.

    Usage:
        obj = ObjectiveBuilder()
        obj.add(cost * var)
        handle.minimize(obj.linear_expr(solver))
    """

    __slots__ = ("terms",)

    def __init__(self) -> None:
        self.terms: list = []

    def add(self, term) -> "ObjectiveBuilder":
        self.terms.append(term)
        return self

    def extend(self, terms: Iterable) -> "ObjectiveBuilder":
        self.terms.extend(terms)
        return self

    def linear_expr(self, solver: pywraplp.Solver):
        """Sum of all terms; 0 when nothing was contributed."""
        if not self.terms:
            return 0
        return solver.Sum(self.terms)
