"""
pynemo/output/writer.py

Writes solved variable families back to the scenario database.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Dict, List

import pandas as pd

from ..constants import SOLVEDTM_FORMAT
from ..errors import PersistenceError

logger = logging.getLogger(__name__)


def format_solvedtm(dtm: datetime) -> str:
    """Format a solve timestamp with millisecond precision."""
    return dtm.strftime(SOLVEDTM_FORMAT)[:-3]


class ResultWriter:
    """
    Writes result DataFrames to tables named after their variable family.

    Each family is written in its own transaction: the table is dropped,
    recreated with text index columns plus ``val`` and ``solvedtm``, and
    filled. A failure rolls the family back and raises PersistenceError;
    families already written stay committed.
    """
    def __init__(self, conn: sqlite3.Connection, reportzeros: bool = False):
        self.conn = conn
        self.reportzeros = reportzeros

    def save(self, family: str, df: pd.DataFrame, solvedtm: str) -> int:
        """Writes one family. Returns the number of rows inserted."""
        if not self.reportzeros and not df.empty:
            df = df[df["val"] != 0]
        dims = [c for c in df.columns if c != "val"]
        columns = ", ".join(f"'{d}' text" for d in dims)
        create = f"create table '{family}' ({columns + ', ' if columns else ''}'val' real, 'solvedtm' text)"
        placeholders = ", ".join(["?"] * (len(dims) + 2))
        rows = [tuple(str(v) for v in r[:-1]) + (float(r[-1]), solvedtm)
                for r in df[dims + ["val"]].itertuples(index=False, name=None)]

        try:
            self.conn.execute("BEGIN")
            self.conn.execute(f"drop table if exists '{family}'")
            self.conn.execute(create)
            self.conn.executemany(f"insert into '{family}' values ({placeholders})", rows)
            self.conn.execute("COMMIT")
        except sqlite3.Error as e:
            self.conn.execute("ROLLBACK")
            raise PersistenceError(family, str(e)) from e

        logger.info(f"Saved results for {family} to database.")
        return len(rows)

    def save_multiple(self, data: Dict[str, pd.DataFrame], solvedtm: str) -> List[str]:
        """Writes several families in order. Returns the families written."""
        written = []
        for family, df in data.items():
            self.save(family, df, solvedtm)
            written.append(family)
        return written
