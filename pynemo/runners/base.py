# pynemo/runners/base.py

"""
Solver adapter contract.

Model assembly depends only on this interface: declare variable families,
add linear constraints, set a minimisation objective, solve, and read
values back. One adapter is implemented per supported backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Sequence, Tuple

import pandas as pd

# Variable kinds
NONNEGATIVE = "nonnegative"
FREE = "free"
BINARY = "binary"
INTEGER = "integer"

SENSES = ("==", "<=", ">=")


class SolverAdapter(ABC):
    """
    Abstract base class for solver backends.
    """

    @abstractmethod
    def add_variable(self, name: str, dims: Sequence[str], index: Iterable[Tuple[str, ...]],
                     kind: str = NONNEGATIVE, bounds: Optional[Tuple[float, float]] = None) -> Any:
        """Declare a variable family over ``index`` and return an indexable handle."""
        pass

    @abstractmethod
    def variable(self, name: str) -> Any:
        """Return the handle of a declared family."""
        pass

    @abstractmethod
    def has_variable(self, name: str) -> bool:
        """True if the family has been declared."""
        pass

    @abstractmethod
    def variable_dims(self, name: str) -> Sequence[str]:
        """Index column names of a declared family."""
        pass

    @abstractmethod
    def variable_names(self) -> Sequence[str]:
        """Names of all declared families, in declaration order."""
        pass

    @abstractmethod
    def add_constraint(self, family: str, lhs: Any, sense: str, rhs: Any) -> bool:
        """Add one constraint instance to ``family``; return False if it was trivial."""
        pass

    @abstractmethod
    def linear_sum(self, terms: Iterable[Any]) -> Any:
        """Sum of linear terms."""
        pass

    @abstractmethod
    def constraint_count(self, family: str) -> int:
        """Number of instances in a constraint family."""
        pass

    @abstractmethod
    def set_objective(self, expr: Any) -> None:
        """Set a minimisation objective."""
        pass

    @abstractmethod
    def solve(self) -> str:
        """Solve the model and return a status string."""
        pass

    @abstractmethod
    def values(self, name: str) -> pd.DataFrame:
        """Solution values of a family as a DataFrame of index columns plus ``val``."""
        pass
