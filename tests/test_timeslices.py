# tests/test_timeslices.py

import pytest

from pynemo.input import FactStore
from pynemo.model.timeslices import SliceCase, TimeHierarchy


@pytest.fixture
def hierarchy():
    """Two group 1 periods; the first has two group 2 periods."""
    return TimeHierarchy(
        tsgroup1={1: ("WINTER", 1.0), 2: ("SUMMER", 2.0)},
        tsgroup2={1: ("WEEKDAY", 1.0), 2: ("WEEKEND", 0.5)},
        ltsgroup={
            (1, 1, 1): "W-WD-DAY",
            (1, 1, 2): "W-WD-NIGHT",
            (1, 2, 1): "W-WE-DAY",
            (2, 1, 1): "S-WD-DAY",
            (2, 1, 2): "S-WD-NIGHT",
        },
        years=["2020", "2025", "2030"],
    )


class TestClassify:
    """Tests for time-slice positions in the hierarchy."""

    def test_horizon_start(self, hierarchy):
        assert hierarchy.classify("2020", 1, 1, 1) is SliceCase.HORIZON_START

    def test_year_start(self, hierarchy):
        assert hierarchy.classify("2025", 1, 1, 1) is SliceCase.YEAR_START

    def test_group1_start(self, hierarchy):
        assert hierarchy.classify("2020", 2, 1, 1) is SliceCase.GROUP1_START

    def test_group2_start(self, hierarchy):
        assert hierarchy.classify("2025", 1, 2, 1) is SliceCase.GROUP2_START

    def test_interior(self, hierarchy):
        assert hierarchy.classify("2020", 1, 1, 2) is SliceCase.INTERIOR

    def test_group_starts(self, hierarchy):
        """Every year or group 1 start also starts a group 2 period."""
        for case in (SliceCase.HORIZON_START, SliceCase.YEAR_START, SliceCase.GROUP1_START):
            assert hierarchy.starts_group1(case)
            assert hierarchy.starts_group2(case)
        assert not hierarchy.starts_group1(SliceCase.GROUP2_START)
        assert hierarchy.starts_group2(SliceCase.GROUP2_START)
        assert not hierarchy.starts_group2(SliceCase.INTERIOR)


class TestPredecessors:
    """Tests for finding the preceding position of each case."""

    def test_previous_year_follows_horizon(self, hierarchy):
        """Years need not be consecutive."""
        assert hierarchy.previous_year("2025") == "2020"
        assert hierarchy.previous_year("2030") == "2025"

    def test_previous_groups(self, hierarchy):
        assert hierarchy.previous_group1(2) == "WINTER"
        assert hierarchy.previous_group2(2) == "WEEKDAY"

    def test_previous_timeslice(self, hierarchy):
        assert hierarchy.previous_timeslice(2, 1, 2) == "S-WD-DAY"

    def test_last_timeslice(self, hierarchy):
        assert hierarchy.last_timeslice(1, 1) == "W-WD-NIGHT"
        assert hierarchy.last_timeslice(1, 2) == "W-WE-DAY"

    def test_multipliers(self, hierarchy):
        assert hierarchy.group1_multiplier("SUMMER") == 2.0
        assert hierarchy.group2_multiplier("WEEKEND") == 0.5


def test_from_store(base_db):
    """The hierarchy is read from the group tables."""
    with FactStore(base_db) as store:
        hierarchy = TimeHierarchy.from_store(store, ["2020", "2021"])
    assert hierarchy.tsgroup1 == {1: ("S1", 1.0)}
    assert hierarchy.ltsgroup == {(1, 1, 1): "DAY", (1, 1, 2): "NIGHT"}
    assert hierarchy.first_year == "2020"
