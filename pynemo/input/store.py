# pynemo/input/store.py

"""
Read access to a scenario database.

The fact store wraps one SQLite connection. Rows are returned either as a
pandas DataFrame or as an iterator of namedtuples whose fields are the
query's column names, which is the form consumed by the streaming
constraint assembler.
"""

import logging
import os
import sqlite3
from collections import namedtuple
from typing import Iterator, List

import pandas as pd

from ..errors import ScenarioInputError

logger = logging.getLogger(__name__)


def namedtuple_factory(cursor: sqlite3.Cursor, row: tuple):
    """sqlite3 row factory producing namedtuples keyed by column name."""
    fields = [d[0] for d in cursor.description]
    return _row_type(tuple(fields))(*row)


_ROW_TYPES = {}


def _row_type(fields: tuple):
    cls = _ROW_TYPES.get(fields)
    if cls is None:
        cls = namedtuple("Row", fields, rename=True)
        _ROW_TYPES[fields] = cls
    return cls


class FactStore:
    """
    Scenario database connection.

    Parameters
    ----------
    dbpath : str
        Path to an existing SQLite scenario database.

    Raises
    ------
    ScenarioInputError
        If the file does not exist or is not a SQLite database.
    """

    def __init__(self, dbpath: str):
        if not os.path.isfile(dbpath):
            raise ScenarioInputError(f"Scenario database not found: {dbpath}")
        self.dbpath = dbpath
        # Transactions are managed explicitly by the callers that write
        self.conn = sqlite3.connect(dbpath, isolation_level=None)
        try:
            self.conn.execute("select count(*) from sqlite_master").fetchone()
        except sqlite3.DatabaseError as e:
            self.conn.close()
            raise ScenarioInputError(f"{dbpath} is not a scenario database: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self.conn.close()

    def query(self, sql: str, params: tuple = ()) -> pd.DataFrame:
        """Run a read query and return its result as a DataFrame."""
        return pd.read_sql_query(sql, self.conn, params=params)

    def rows(self, sql: str, params: tuple = ()) -> Iterator:
        """Iterate a read query's rows as namedtuples."""
        cursor = self.conn.cursor()
        cursor.row_factory = namedtuple_factory
        cursor.execute(sql, params)
        try:
            for row in cursor:
                yield row
        finally:
            cursor.close()

    def exists(self, sql: str, params: tuple = ()) -> bool:
        """True if the query returns at least one row."""
        return self.conn.execute(sql, params).fetchone() is not None

    def table_names(self) -> List[str]:
        return [r[0] for r in self.conn.execute("select name from sqlite_master where type = 'table' order by name")]

    def has_table(self, name: str) -> bool:
        return self.exists("select 1 from sqlite_master where type in ('table', 'view') and name = ?", (name,))

    def read_version(self) -> int:
        """Schema version recorded in the ``version`` table (0 when absent)."""
        if not self.has_table("version"):
            return 0
        row = self.conn.execute("select version from version").fetchone()
        return int(row[0]) if row is not None and row[0] is not None else 0

    def dimension(self, table: str, column: str = "val", order: str = None) -> List[str]:
        """Values of a dimension table, ordered by ``order`` (default: the column itself)."""
        if not self.has_table(table):
            return []
        order = order or column
        return [str(r[0]) for r in self.conn.execute(f"select {column} from {table} order by {order}")]
