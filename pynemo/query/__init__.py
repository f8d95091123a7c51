from .catalogue import scenario_queries
from .executor import run_query, run_queries

__all__ = ["scenario_queries", "run_query", "run_queries"]
