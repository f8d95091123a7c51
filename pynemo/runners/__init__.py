from .base import SolverAdapter, NONNEGATIVE, FREE, BINARY, INTEGER
from .pyomo_runner import PyomoAdapter

__all__ = ["SolverAdapter", "PyomoAdapter", "NONNEGATIVE", "FREE", "BINARY", "INTEGER"]
