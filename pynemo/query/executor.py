# pynemo/query/executor.py

"""
Parallel execution of the query catalogue.

Each query is executed in its own connection so that queries can run in
worker processes. With more than one worker, the catalogue is distributed
over a pool of ``workers - 1`` processes; the coordinating process only
dispatches and collects. With a single worker, queries run in-process.
"""

import logging
import sqlite3
from multiprocessing import Pool
from typing import Dict, Tuple

import pandas as pd

from ..errors import QueryError

logger = logging.getLogger(__name__)


def run_query(item: Tuple[str, Tuple[str, str]]) -> Tuple[str, pd.DataFrame]:
    """
    Execute one catalogued query.

    Parameters
    ----------
    item : Tuple[str, Tuple[str, str]]
        ``(name, (dbpath, sql))``.

    Returns
    -------
    Tuple[str, pd.DataFrame]
        Query name and result.
    """
    name, (dbpath, sql) = item
    conn = sqlite3.connect(dbpath)
    try:
        df = pd.read_sql_query(sql, conn)
    except Exception as e:
        raise QueryError(name, str(e)) from e
    finally:
        conn.close()
    return name, df


def run_queries(catalogue: Dict[str, Tuple[str, str]], workers: int = 1) -> Dict[str, pd.DataFrame]:
    """
    Execute every query in ``catalogue``.

    Parameters
    ----------
    catalogue : Dict[str, Tuple[str, str]]
        Query name -> (dbpath, SQL), as built by ``scenario_queries``.
    workers : int
        Degree of parallelism. Values above 1 use a process pool.

    Returns
    -------
    Dict[str, pd.DataFrame]
        Query name -> result.

    Raises
    ------
    QueryError
        If any query fails; no partial results are returned.
    """
    items = list(catalogue.items())
    if workers <= 1 or len(items) <= 1:
        results = [run_query(item) for item in items]
    else:
        processes = min(workers - 1, len(items))
        logger.debug(f"Running {len(items)} queries on {processes} worker processes.")
        with Pool(processes) as pool:
            results = pool.map(run_query, items)
    return dict(results)
