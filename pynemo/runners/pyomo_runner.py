# pynemo/runners/pyomo_runner.py

"""
Pyomo implementation of the solver adapter.

Each variable family is a ``pyo.Var`` over its own ``pyo.Set`` of index
tuples, so referencing an index outside the family's domain raises
``KeyError``. Each constraint family is a ``pyo.ConstraintList`` created on
first use. See Pyomo documentation: https://pyomo.readthedocs.io/
"""

import logging
import numbers
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
import pyomo.environ as pyo

from ..constants import (
    DEFAULT_SOLVER,
    STATUS_ERROR,
    STATUS_INFEASIBLE,
    STATUS_OPTIMAL,
    STATUS_UNBOUNDED,
)
from .base import BINARY, FREE, INTEGER, NONNEGATIVE, SENSES, SolverAdapter

logger = logging.getLogger(__name__)

_DOMAINS = {
    NONNEGATIVE: pyo.NonNegativeReals,
    FREE: pyo.Reals,
    BINARY: pyo.Binary,
    INTEGER: pyo.NonNegativeIntegers,
}


def _is_number(expr: Any) -> bool:
    return isinstance(expr, numbers.Number)


def _holds(lhs: float, sense: str, rhs: float, tol: float = 1e-9) -> bool:
    if sense == "==":
        return abs(lhs - rhs) <= tol
    if sense == "<=":
        return lhs <= rhs + tol
    return lhs >= rhs - tol


class PyomoAdapter(SolverAdapter):
    """
    Build and solve a Pyomo ``ConcreteModel``.

    Parameters
    ----------
    solver : str
        Name passed to ``pyo.SolverFactory`` (e.g. 'highs', 'cbc', 'glpk').
    tee : bool
        Stream solver output.
    options : Dict[str, Any], optional
        Solver options.
    """

    def __init__(self, solver: str = DEFAULT_SOLVER, tee: bool = False,
                 options: Optional[Dict[str, Any]] = None, name: str = "nemo"):
        self.solver_name = solver
        self.tee = tee
        self.options = options or {}
        self.model = pyo.ConcreteModel(name=name)
        self._vars: Dict[str, Tuple[pyo.Var, Tuple[str, ...]]] = {}
        self._constraints: Dict[str, pyo.ConstraintList] = {}
        self.solve_time = 0.0
        self.objective_value: Optional[float] = None

    # ---- variables -------------------------------------------------------

    def add_variable(self, name: str, dims: Sequence[str], index: Iterable[Tuple[str, ...]],
                     kind: str = NONNEGATIVE, bounds: Optional[Tuple[float, float]] = None) -> pyo.Var:
        if name in self._vars:
            raise ValueError(f"Variable family {name} already declared")
        dims = tuple(dims)
        keys = sorted(set(tuple(str(v) for v in k) for k in index))
        if len(dims) == 1:
            members: List[Any] = [k[0] for k in keys]
        else:
            members = keys

        domain_set = pyo.Set(initialize=members, dimen=len(dims), ordered=True)
        self.model.add_component(f"{name}_index", domain_set)
        var = pyo.Var(domain_set, within=_DOMAINS[kind], bounds=bounds)
        self.model.add_component(name, var)
        self._vars[name] = (var, dims)
        logger.debug(f"Declared variable {name} with {len(members)} instances.")
        return var

    def variable(self, name: str) -> pyo.Var:
        return self._vars[name][0]

    def has_variable(self, name: str) -> bool:
        return name in self._vars

    def variable_dims(self, name: str) -> Tuple[str, ...]:
        return self._vars[name][1]

    def variable_names(self) -> List[str]:
        return list(self._vars)

    def variable_size(self, name: str) -> int:
        return len(self._vars[name][0])

    # ---- constraints -----------------------------------------------------

    def add_constraint(self, family: str, lhs: Any, sense: str, rhs: Any) -> bool:
        if sense not in SENSES:
            raise ValueError(f"Unknown constraint sense {sense!r}")

        if _is_number(lhs) and _is_number(rhs):
            if _holds(float(lhs), sense, float(rhs)):
                logger.debug(f"Skipped trivial instance of {family}.")
            else:
                logger.warning(f"Skipped infeasible constant instance of {family}: {lhs} {sense} {rhs}.")
            return False

        if _is_number(lhs):
            lhs = float(lhs)
        if _is_number(rhs):
            rhs = float(rhs)

        clist = self._constraints.get(family)
        if clist is None:
            clist = pyo.ConstraintList()
            self.model.add_component(family, clist)
            self._constraints[family] = clist

        if sense == "==":
            clist.add(lhs == rhs)
        elif sense == "<=":
            clist.add(lhs <= rhs)
        else:
            clist.add(lhs >= rhs)
        return True

    def linear_sum(self, terms: Iterable[Any]) -> Any:
        return pyo.quicksum(terms)

    def constraint_count(self, family: str) -> int:
        clist = self._constraints.get(family)
        return 0 if clist is None else len(clist)

    def constraint_families(self) -> List[str]:
        return list(self._constraints)

    # ---- objective and solve ---------------------------------------------

    def set_objective(self, expr: Any) -> None:
        if self.model.component("objective") is not None:
            self.model.del_component("objective")
        self.model.objective = pyo.Objective(expr=expr, sense=pyo.minimize)

    def solve(self) -> str:
        """
        Solve with the configured Pyomo solver.

        Returns
        -------
        str
            'optimal', 'infeasible', 'unbounded' or 'error'. Solution values
            are only loaded for optimal solves.
        """
        solver = pyo.SolverFactory(self.solver_name)
        if solver is None or not solver.available(exception_flag=False):
            logger.error(f"Solver {self.solver_name} is not available.")
            return STATUS_ERROR
        for key, value in self.options.items():
            solver.options[key] = value

        start = time.time()
        results = solver.solve(self.model, tee=self.tee, load_solutions=False)
        self.solve_time = time.time() - start

        term = results.solver.termination_condition
        logger.info(f"Solver [{self.solver_name}] termination: {term}")

        if term == pyo.TerminationCondition.optimal:
            self.model.solutions.load_from(results)
            self.objective_value = pyo.value(self.model.objective) if self.model.component("objective") is not None else None
            return STATUS_OPTIMAL
        if term in (pyo.TerminationCondition.infeasible, pyo.TerminationCondition.infeasibleOrUnbounded):
            return STATUS_INFEASIBLE
        if term == pyo.TerminationCondition.unbounded:
            return STATUS_UNBOUNDED
        return STATUS_ERROR

    def values(self, name: str) -> pd.DataFrame:
        var, dims = self._vars[name]
        records = []
        for idx in var:
            val = var[idx].value
            if val is None:
                continue
            key = idx if isinstance(idx, tuple) else (idx,)
            records.append(key + (float(val),))
        return pd.DataFrame.from_records(records, columns=list(dims) + ["val"])
