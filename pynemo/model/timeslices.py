# pynemo/model/timeslices.py

"""
Time-slice hierarchy resolver.

A year is partitioned into time-slice group 1 periods (``TSGROUP1``), each
partitioned into group 2 periods (``TSGROUP2``), each holding an ordered run
of time slices (``LTsGroup``). Storage levels are chained along this
hierarchy: the level at the start of a period equals the level at the end of
the preceding period at the same depth, except at the first instant of the
horizon and at the first instant of a later year.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)


class SliceCase(Enum):
    """Position of a time slice within the hierarchy."""
    HORIZON_START = "horizon_start"
    YEAR_START = "year_start"
    GROUP1_START = "group1_start"
    GROUP2_START = "group2_start"
    INTERIOR = "interior"


@dataclass
class TimeHierarchy:
    """
    Ordered time-slice groups and time-slice positions.

    Attributes
    ----------
    tsgroup1 : Dict[int, Tuple[str, float]]
        Group 1 order -> (name, multiplier).
    tsgroup2 : Dict[int, Tuple[str, float]]
        Group 2 order -> (name, multiplier).
    ltsgroup : Dict[Tuple[int, int, int], str]
        (group 1 order, group 2 order, time slice order) -> time slice.
    years : List[str]
        Years of the modelling horizon in order.
    """
    tsgroup1: Dict[int, Tuple[str, float]] = field(default_factory=dict)
    tsgroup2: Dict[int, Tuple[str, float]] = field(default_factory=dict)
    ltsgroup: Dict[Tuple[int, int, int], str] = field(default_factory=dict)
    years: List[str] = field(default_factory=list)

    @classmethod
    def from_store(cls, store, years: List[str]) -> "TimeHierarchy":
        """Load the hierarchy from the ``TSGROUP1``, ``TSGROUP2`` and ``LTsGroup`` tables."""
        tsgroup1 = {int(r.order): (r.name, float(r.multiplier if r.multiplier is not None else 1.0))
                    for r in store.rows("select name, [order] as [order], multiplier from TSGROUP1")}
        tsgroup2 = {int(r.order): (r.name, float(r.multiplier if r.multiplier is not None else 1.0))
                    for r in store.rows("select name, [order] as [order], multiplier from TSGROUP2")}
        ltsgroup = {(int(r.tg1o), int(r.tg2o), int(r.lorder)): r.l for r in store.rows(
            """select ltg.l as l, ltg.lorder as lorder, tg1.[order] as tg1o, tg2.[order] as tg2o
            from LTsGroup ltg, TSGROUP1 tg1, TSGROUP2 tg2
            where ltg.tg1 = tg1.name and ltg.tg2 = tg2.name""")}
        hierarchy = cls(tsgroup1, tsgroup2, ltsgroup, [str(y) for y in years])
        logger.debug(f"Loaded time hierarchy with {len(tsgroup1)} group 1 and {len(tsgroup2)} group 2 periods "
                     f"and {len(ltsgroup)} time slices.")
        return hierarchy

    @property
    def first_year(self) -> str:
        return self.years[0] if self.years else ""

    def classify(self, y: str, tg1o: int, tg2o: int, lo: int) -> SliceCase:
        """Return the hierarchy case of a (year, group 1, group 2, time slice) position."""
        if tg1o == 1 and tg2o == 1 and lo == 1:
            if str(y) == self.first_year:
                return SliceCase.HORIZON_START
            return SliceCase.YEAR_START
        if tg2o == 1 and lo == 1:
            return SliceCase.GROUP1_START
        if lo == 1:
            return SliceCase.GROUP2_START
        return SliceCase.INTERIOR

    @staticmethod
    def starts_group1(case: SliceCase) -> bool:
        return case in (SliceCase.HORIZON_START, SliceCase.YEAR_START, SliceCase.GROUP1_START)

    @staticmethod
    def starts_group2(case: SliceCase) -> bool:
        return case is not SliceCase.INTERIOR

    def group1_name(self, tg1o: int) -> str:
        return self.tsgroup1[tg1o][0]

    def group2_name(self, tg2o: int) -> str:
        return self.tsgroup2[tg2o][0]

    def previous_year(self, y: str) -> str:
        """Year preceding ``y`` in the horizon."""
        y = str(y)
        if y in self.years:
            position = self.years.index(y)
            if position > 0:
                return self.years[position - 1]
        return str(int(y) - 1)

    def previous_group1(self, tg1o: int) -> str:
        """Name of the group 1 period preceding order ``tg1o``."""
        return self.tsgroup1[tg1o - 1][0]

    def previous_group2(self, tg2o: int) -> str:
        """Name of the group 2 period preceding order ``tg2o``."""
        return self.tsgroup2[tg2o - 1][0]

    def previous_timeslice(self, tg1o: int, tg2o: int, lo: int) -> str:
        """Time slice preceding position ``lo`` within the same group 2 period."""
        return self.ltsgroup[(tg1o, tg2o, lo - 1)]

    def last_timeslice(self, tg1o: int, tg2o: int) -> str:
        """Last time slice of a group 2 period within a group 1 period."""
        lo = max(k[2] for k in self.ltsgroup if k[0] == tg1o and k[1] == tg2o)
        return self.ltsgroup[(tg1o, tg2o, lo)]

    def last_group2(self) -> str:
        """Name of the last group 2 period."""
        return self.tsgroup2[max(self.tsgroup2)][0]

    def group1_multiplier(self, name: str) -> float:
        return next(m for n, m in self.tsgroup1.values() if n == name)

    def group2_multiplier(self, name: str) -> float:
        return next(m for n, m in self.tsgroup2.values() if n == name)
