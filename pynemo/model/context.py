# pynemo/model/context.py

"""
Assembly context shared by the variable and constraint builders.

The context bundles everything one calculation needs (configuration,
resolved flags, the fact store, query results, dimensions, the time
hierarchy and the solver adapter) and is passed explicitly to each builder.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from ..config import CalculationConfig
from ..flags import ScenarioFlags
from ..runners.base import SolverAdapter
from .keydicts import KeyDicts
from .streaming import Group, consolidate, frame_rows
from .timeslices import TimeHierarchy

logger = logging.getLogger(__name__)

# Dimension abbreviation -> (table, value column, order column)
DIMENSIONS = {
    "r": ("REGION", "val", "val"),
    "t": ("TECHNOLOGY", "val", "val"),
    "l": ("TIMESLICE", "val", "val"),
    "f": ("FUEL", "val", "val"),
    "e": ("EMISSION", "val", "val"),
    "m": ("MODE_OF_OPERATION", "val", "val"),
    "y": ("YEAR", "val", "val"),
    "s": ("STORAGE", "val", "val"),
    "n": ("NODE", "val", "val"),
    "tr": ("TransmissionLine", "id", "id"),
    "tg1": ("TSGROUP1", "name", "[order]"),
    "tg2": ("TSGROUP2", "name", "[order]"),
}

# Index columns that range over another dimension
DIMENSION_ALIASES = {"rr": "r"}


def load_dimensions(store) -> Dict[str, List[str]]:
    """Read every dimension set from the scenario database."""
    return {abbr: store.dimension(table, column, order) for abbr, (table, column, order) in DIMENSIONS.items()}


class ModelContext:
    """
    State shared across one model assembly.

    Parameters
    ----------
    config : CalculationConfig
        Calculation configuration.
    flags : ScenarioFlags
        Resolved scenario flags.
    store : FactStore
        Scenario database.
    adapter : SolverAdapter
        Symbolic model under construction.
    queries : Dict[str, pd.DataFrame]
        Results of the query catalogue.
    dims : Dict[str, List[str]]
        Dimension sets.
    hierarchy : TimeHierarchy
        Time-slice hierarchy.
    workers : int
        Degree of parallelism for index restriction.
    """

    def __init__(self, config: CalculationConfig, flags: ScenarioFlags, store, adapter: SolverAdapter,
                 queries: Dict[str, pd.DataFrame], dims: Dict[str, List[str]], hierarchy: TimeHierarchy,
                 workers: int = 1):
        self.config = config
        self.flags = flags
        self.store = store
        self.adapter = adapter
        self.queries = queries
        self.dims = dims
        self.hierarchy = hierarchy
        self.workers = workers
        self.indices: Dict[str, KeyDicts] = {}
        self.created_families: List[str] = []

    # ---- dimensions ------------------------------------------------------

    def dimension(self, abbr: str) -> List[str]:
        return self.dims[DIMENSION_ALIASES.get(abbr, abbr)]

    @property
    def first_year(self) -> str:
        return self.dims["y"][0]

    @property
    def last_year(self) -> str:
        return self.dims["y"][-1]

    # ---- variables -------------------------------------------------------

    def v(self, name: str) -> Any:
        """Handle of a declared variable family."""
        return self.adapter.variable(name)

    def has(self, name: str) -> bool:
        return self.adapter.has_variable(name)

    def requested(self, name: str) -> bool:
        return self.flags.requested(name)

    # ---- rows --------------------------------------------------------------

    def rows(self, sql: str, params: tuple = ()) -> Iterator:
        return self.store.rows(sql, params)

    def query(self, name: str) -> pd.DataFrame:
        return self.queries[name]

    def query_rows(self, name: str, order: Optional[Sequence[str]] = None) -> Iterator:
        return frame_rows(self.queries[name], order)

    # ---- constraints -------------------------------------------------------

    def lsum(self, terms: Iterable[Any]) -> Any:
        return self.adapter.linear_sum(terms)

    def constrain(self, family: str, lhs: Any, sense: str, rhs: Any) -> bool:
        return self.adapter.add_constraint(family, lhs, sense, rhs)

    def stream(self, family: str, rows: Iterable, key: Callable, term: Optional[Callable],
               build: Callable[[Group], Any]) -> int:
        """
        Consolidate ``rows`` into one constraint per key group.

        ``build(group)`` returns ``(lhs, sense, rhs)`` for the closing group,
        or None to emit nothing for it.
        """
        def emit(group: Group):
            built = build(group)
            if built is not None:
                self.constrain(family, *built)

        return consolidate(rows, key, term, emit)

    def created(self, *families: str) -> None:
        """Log each family that received at least one instance."""
        for family in families:
            if self.adapter.constraint_count(family) > 0:
                self.created_families.append(family)
                logger.info(f"Created constraint {family}.")
