# tests/test_schema.py

import sqlite3

import pytest

from pynemo.input import (
    FactStore,
    create_default_views,
    create_schema,
    create_temp_tables,
    drop_result_tables,
    drop_temp_tables,
)
from pynemo.constants import DB_VERSION
from pynemo.errors import ScenarioInputError


@pytest.fixture
def prepared(base_db):
    with FactStore(base_db) as store:
        create_default_views(store.conn)
        yield store


class TestDefaultViews:
    """Tests for ``_def`` views over parameter tables."""

    def test_default_expanded(self, prepared):
        """Missing combinations take the column default."""
        rows = prepared.query("select r, t, val from OperationalLife_def order by t")
        assert rows.to_dict("records") == [{"r": "R1", "t": "GAS", "val": 20.0},
                                           {"r": "R1", "t": "IMP", "val": 1.0}]

    def test_no_default_is_plain_copy(self, prepared):
        rows = prepared.query("select * from SpecifiedAnnualDemand_def")
        assert len(rows) == 2

    def test_activity_ratios_not_expanded(self, prepared):
        """Zero-default activity ratios only hold stored rows."""
        assert len(prepared.query("select * from OutputActivityRatio_def")) == 4

    def test_unique_index(self, prepared):
        """Duplicate keys are rejected once views are created."""
        with pytest.raises(sqlite3.IntegrityError):
            prepared.conn.execute("insert into OperationalLife (r, t, val) values ('R1', 'GAS', 5)")

    def test_recreate(self, prepared):
        """Views can be recreated."""
        assert "OperationalLife_def" in create_default_views(prepared.conn, ["OperationalLife"])


class TestWorkingTables:
    """Tests for result and working table housekeeping."""

    def test_drop_result_tables(self, prepared):
        prepared.conn.execute("create table vnewcapacity (r text, val real)")
        dropped = drop_result_tables(prepared.conn)
        assert dropped == ["vnewcapacity"]
        assert prepared.has_table("version")
        assert prepared.read_version() == DB_VERSION

    def test_temp_tables(self, prepared):
        create_temp_tables(prepared.conn)
        assert prepared.has_table("nodalstorage")
        assert prepared.query("select * from nodalstorage").empty
        drop_temp_tables(prepared.conn)
        assert not prepared.has_table("nodalstorage")


class TestFactStore:
    """Tests for scenario database access."""

    def test_missing_database(self, tmp_path):
        with pytest.raises(ScenarioInputError, match="Scenario database not found"):
            FactStore(str(tmp_path / "missing.sqlite"))

    def test_not_a_database(self, tmp_path):
        path = tmp_path / "notes.sqlite"
        path.write_text("not a database " * 20)
        with pytest.raises(ScenarioInputError, match="is not a scenario database"):
            FactStore(str(path))

    def test_rows_are_named(self, base_db):
        with FactStore(base_db) as store:
            rows = list(store.rows("select val as t from TECHNOLOGY order by val"))
        assert [row.t for row in rows] == ["GAS", "IMP"]

    def test_dimension_order(self, base_db):
        with FactStore(base_db) as store:
            assert store.dimension("YEAR") == ["2020", "2021"]
            assert store.dimension("TSGROUP1", "name", "[order]") == ["S1"]
            assert store.dimension("MISSING") == []

    def test_version_without_table(self, tmp_path):
        path = str(tmp_path / "bare.sqlite")
        conn = sqlite3.connect(path)
        conn.execute("create table REGION (val text)")
        conn.close()
        with FactStore(path) as store:
            assert store.read_version() == 0


def test_create_schema_version(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "new.sqlite"))
    create_schema(conn)
    assert conn.execute("select version from version").fetchone()[0] == DB_VERSION
    conn.close()
