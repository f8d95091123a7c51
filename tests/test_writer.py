"""
tests/test_writer.py

Unit tests for ResultWriter.
"""
import sqlite3
from datetime import datetime

import pandas as pd
import pytest

from pynemo.errors import PersistenceError
from pynemo.output import ResultWriter, format_solvedtm


@pytest.fixture
def conn(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "results.sqlite"), isolation_level=None)
    yield conn
    conn.close()


@pytest.fixture
def newcapacity():
    return pd.DataFrame({"r": ["R1", "R1", "R1"], "t": ["GAS", "GAS", "IMP"],
                         "y": ["2020", "2021", "2020"], "val": [10.0, 0.0, 2.5]})


def test_format_solvedtm():
    assert format_solvedtm(datetime(2024, 5, 1, 12, 30, 15, 123456)) == "2024-05-01 12:30:15.123"


def test_save_drops_zeros(conn, newcapacity):
    writer = ResultWriter(conn)
    assert writer.save("vnewcapacity", newcapacity, "2024-05-01 12:30:15.123") == 2
    rows = conn.execute("select r, t, y, val, solvedtm from vnewcapacity order by t").fetchall()
    assert rows == [("R1", "GAS", "2020", 10.0, "2024-05-01 12:30:15.123"),
                    ("R1", "IMP", "2020", 2.5, "2024-05-01 12:30:15.123")]


def test_save_reportzeros(conn, newcapacity):
    writer = ResultWriter(conn, reportzeros=True)
    assert writer.save("vnewcapacity", newcapacity, "t") == 3


def test_save_replaces_table(conn, newcapacity):
    writer = ResultWriter(conn)
    writer.save("vnewcapacity", newcapacity, "first")
    writer.save("vnewcapacity", newcapacity.head(1), "second")
    assert conn.execute("select count(*), max(solvedtm) from vnewcapacity").fetchone() == (1, "second")


def test_save_single_dimension(conn):
    writer = ResultWriter(conn)
    writer.save("vmodelperiodcostbyregion", pd.DataFrame({"r": ["R1"], "val": [42.0]}), "t")
    assert conn.execute("select r, val from vmodelperiodcostbyregion").fetchall() == [("R1", 42.0)]


def test_failed_family_rolls_back(conn, newcapacity):
    """A failing family raises PersistenceError; families already written stay."""
    writer = ResultWriter(conn)
    writer.save("vnewcapacity", newcapacity, "t")
    with pytest.raises(PersistenceError, match="Could not save results for bad'family"):
        writer.save("bad'family", newcapacity, "t")
    assert not conn.in_transaction
    assert conn.execute("select count(*) from vnewcapacity").fetchone() == (2,)


def test_save_multiple(conn, newcapacity):
    writer = ResultWriter(conn)
    demand = pd.DataFrame({"r": ["R1"], "l": ["DAY"], "f": ["ELC"], "y": ["2020"], "val": [5.0]})
    written = writer.save_multiple({"vnewcapacity": newcapacity, "vdemandnn": demand}, "t")
    assert written == ["vnewcapacity", "vdemandnn"]
    assert conn.execute("select count(*) from vdemandnn").fetchone() == (1,)
