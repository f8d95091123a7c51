# tests/test_keydicts.py

import pandas as pd
import pytest

from pynemo.model.keydicts import (
    keydicts,
    keydicts_parallel,
    merge_keydicts,
    restricted_index,
    split_blocks,
)


@pytest.fixture
def rtfy():
    """Index rows of a four-dimension family."""
    return pd.DataFrame({
        "r": ["R1", "R1", "R1", "R2", "R2", "R1"],
        "t": ["T1", "T1", "T2", "T1", "T3", "T1"],
        "f": ["ELC", "HEAT", "ELC", "ELC", "ELC", "ELC"],
        "y": ["2020", "2020", "2021", "2020", "2021", "2021"],
    })


# ========== Sequential ==========

class TestKeydicts:
    """Tests for the sequential index restriction algorithm."""

    def test_prefix_levels(self, rtfy):
        """Each level maps a prefix to the values seen in the next column."""
        dicts = keydicts(rtfy, 3)
        assert len(dicts) == 3
        assert dicts[0] == {("R1",): {"T1", "T2"}, ("R2",): {"T1", "T3"}}
        assert dicts[1][("R1", "T1")] == {"ELC", "HEAT"}
        assert dicts[2][("R1", "T1", "ELC")] == {"2020", "2021"}

    def test_restricted_index_matches_distinct_rows(self, rtfy):
        """Expanding the last level yields exactly the distinct input rows."""
        expected = set(rtfy.itertuples(index=False, name=None))
        assert restricted_index(keydicts(rtfy, 3)) == expected

    def test_row_order_irrelevant(self, rtfy):
        """Shuffled rows give the same dictionaries."""
        shuffled = rtfy.sample(frac=1.0, random_state=7)
        assert keydicts(shuffled, 3) == keydicts(rtfy, 3)

    def test_empty_table(self):
        """An empty table gives empty dictionaries and an empty domain."""
        df = pd.DataFrame({"r": [], "t": [], "y": []})
        dicts = keydicts(df, 2)
        assert dicts == [{}, {}]
        assert restricted_index(dicts) == set()

    def test_values_are_strings(self):
        """Numeric columns are keyed as strings."""
        df = pd.DataFrame({"r": ["R1"], "y": [2020]})
        assert keydicts(df, 1) == [{("R1",): {"2020"}}]


# ========== Parallel ==========

class TestKeydictsParallel:
    """Tests for block-parallel index restriction."""

    def test_split_blocks_keeps_remainder(self, rtfy):
        """The last block takes the remainder rows."""
        blocks = split_blocks(rtfy, 4)
        assert [len(b) for b in blocks] == [1, 1, 1, 3]
        assert sum(len(b) for b in blocks) == len(rtfy)

    def test_merge_is_set_union(self, rtfy):
        """Merging per-block results equals the sequential result."""
        results = [keydicts(block, 3) for block in split_blocks(rtfy, 3)]
        assert merge_keydicts(results, 3) == keydicts(rtfy, 3)

    def test_parallel_equals_sequential(self, rtfy):
        """Worker processes produce the same dictionaries as one process."""
        assert keydicts_parallel(rtfy, 3, workers=2, threshold=1) == keydicts(rtfy, 3)

    def test_small_tables_stay_sequential(self, rtfy, monkeypatch):
        """Below the per-worker threshold no pool is started."""
        def fail(*args, **kwargs):
            raise AssertionError("Pool should not be used")
        monkeypatch.setattr("pynemo.model.keydicts.Pool", fail)
        assert keydicts_parallel(rtfy, 3, workers=4) == keydicts(rtfy, 3)
