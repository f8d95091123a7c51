# tests/test_streaming.py

from collections import namedtuple

import numpy as np
import pandas as pd

from pynemo.model.streaming import consolidate, frame_rows, key_of, stream_groups

Row = namedtuple("Row", ["r", "y", "v"])


class TestStreamGroups:
    """Tests for single-pass key group consolidation."""

    def test_one_group_per_key(self):
        """Consecutive rows with equal keys form one group."""
        rows = [Row("R1", "2020", 1.0), Row("R1", "2020", 2.0), Row("R1", "2021", 3.0), Row("R2", "2021", 4.0)]
        groups = list(stream_groups(rows, key_of("r", "y"), lambda row: row.v))
        assert [g.key for g in groups] == [("R1", "2020"), ("R1", "2021"), ("R2", "2021")]
        assert [g.terms for g in groups] == [[1.0, 2.0], [3.0], [4.0]]

    def test_final_group_flushed(self):
        """The last group is emitted without a closing row."""
        rows = [Row("R1", "2020", 1.0), Row("R1", "2020", 2.0)]
        groups = list(stream_groups(rows, key_of("r", "y"), lambda row: row.v))
        assert len(groups) == 1
        assert groups[0].terms == [1.0, 2.0]

    def test_last_row_belongs_to_closing_group(self):
        """Per-group values come from the closing group, not the next one."""
        rows = [Row("R1", "2020", 1.0), Row("R1", "2021", 5.0)]
        groups = list(stream_groups(rows, key_of("y"), lambda row: row.v))
        assert groups[0].last.v == 1.0
        assert groups[1].last.v == 5.0

    def test_none_terms_skipped(self):
        """Rows whose term is None count towards the group but add no term."""
        rows = [Row("R1", "2020", None), Row("R1", "2020", 2.0), Row("R1", "2021", None)]
        groups = list(stream_groups(rows, key_of("r", "y"), lambda row: row.v))
        assert [(g.terms, g.size) for g in groups] == [([2.0], 2), ([], 1)]

    def test_single_column_key_is_tuple(self):
        """A one-column key is still a tuple."""
        groups = list(stream_groups([Row("R1", "2020", 1.0)], key_of("r")))
        assert groups[0].key == ("R1",)

    def test_empty_input(self):
        """No rows, no groups."""
        assert list(stream_groups([], key_of("r"), lambda row: row.v)) == []

    def test_consolidate_counts_groups(self):
        """consolidate emits once per group and returns the count."""
        rows = [Row("R1", "2020", 1.0), Row("R2", "2020", 2.0), Row("R2", "2020", 3.0)]
        emitted = []
        count = consolidate(rows, key_of("r"), lambda row: row.v, lambda g: emitted.append(sum(g.terms)))
        assert count == 2
        assert emitted == [1.0, 5.0]


class TestFrameRows:
    """Tests for iterating query results as rows."""

    def test_missing_values_are_none(self):
        """NaN becomes None."""
        df = pd.DataFrame({"r": ["R1", "R2"], "v": [1.5, np.nan]})
        rows = list(frame_rows(df))
        assert rows[0].v == 1.5
        assert rows[1].v is None

    def test_order(self):
        """Rows are re-sorted by the requested columns."""
        df = pd.DataFrame({"r": ["R2", "R1", "R1"], "y": ["2020", "2021", "2020"]})
        assert [(row.r, row.y) for row in frame_rows(df, order=["r", "y"])] == [
            ("R1", "2020"), ("R1", "2021"), ("R2", "2020")]

    def test_empty_frame(self):
        assert list(frame_rows(pd.DataFrame({"r": []}))) == []
