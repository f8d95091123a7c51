# pynemo/model/keydicts.py

"""
Index restriction engine.

``keydicts(df, n)`` turns a table whose first ``n + 1`` columns are the
dimensions of a variable family into ``n`` nested dictionaries: dictionary
``i`` maps the tuple of the first ``i + 1`` column values to the set of values
observed in column ``i + 2`` for rows sharing that prefix. The full set of
legal index tuples is then the expansion of the last dictionary.

Example
-------
>>> df = pd.DataFrame({"r": ["R1", "R1"], "t": ["T1", "T2"], "y": ["2020", "2020"]})
>>> dicts = keydicts(df, 2)
>>> dicts[0]
{('R1',): {'T1', 'T2'}}
>>> sorted(restricted_index(dicts))
[('R1', 'T1', '2020'), ('R1', 'T2', '2020')]
"""

import logging
from multiprocessing import Pool
from typing import Dict, List, Set, Tuple

import pandas as pd

from ..constants import KEYDICTS_THRESHOLD

logger = logging.getLogger(__name__)

KeyDicts = List[Dict[Tuple[str, ...], Set[str]]]


def keydicts(df: pd.DataFrame, n: int) -> KeyDicts:
    """
    Build ``n`` prefix dictionaries from the first ``n + 1`` columns of ``df``.

    Parameters
    ----------
    df : pd.DataFrame
        Rows of index values. Row order is irrelevant.
    n : int
        Number of dictionaries (dimensions of the family minus one).

    Returns
    -------
    KeyDicts
        List of ``n`` dictionaries; empty dictionaries for an empty table.
    """
    dicts: KeyDicts = [dict() for _ in range(n)]
    if df.empty:
        return dicts

    columns = df.iloc[:, : n + 1].astype(str)
    for row in columns.itertuples(index=False, name=None):
        for j in range(n):
            dicts[j].setdefault(row[: j + 1], set()).add(row[j + 1])
    return dicts


def split_blocks(df: pd.DataFrame, blocks: int) -> List[pd.DataFrame]:
    """
    Split ``df`` into ``blocks`` contiguous row blocks of equal size.

    The last block also takes the remainder rows.
    """
    rows = len(df)
    size = rows // blocks
    parts = []
    for p in range(blocks):
        start = p * size
        stop = rows if p == blocks - 1 else (p + 1) * size
        parts.append(df.iloc[start:stop])
    return parts


def merge_keydicts(results: List[KeyDicts], n: int) -> KeyDicts:
    """Merge per-block dictionaries level by level with set union."""
    merged: KeyDicts = [dict() for _ in range(n)]
    for result in results:
        for i in range(n):
            level = merged[i]
            for key, values in result[i].items():
                if key in level:
                    level[key] |= values
                else:
                    level[key] = set(values)
    return merged


def _keydicts_star(args):
    return keydicts(*args)


def keydicts_parallel(df: pd.DataFrame, n: int, workers: int,
                      threshold: int = KEYDICTS_THRESHOLD) -> KeyDicts:
    """
    Run ``keydicts`` over contiguous row blocks in worker processes.

    Falls back to the sequential algorithm when ``workers <= 1`` or when
    fewer than ``threshold`` rows would be assigned to each worker.

    Parameters
    ----------
    df : pd.DataFrame
        Rows of index values.
    n : int
        Number of dictionaries.
    workers : int
        Number of worker processes available.
    threshold : int
        Minimum rows per worker before parallelising.
    """
    rows = len(df)
    if workers <= 1 or rows // workers < threshold:
        return keydicts(df, n)

    blocks = split_blocks(df, workers)
    logger.debug(f"Building index dictionaries for {rows} rows in {workers} blocks.")
    with Pool(workers) as pool:
        results = pool.map(_keydicts_star, [(block, n) for block in blocks])
    return merge_keydicts(results, n)


def restricted_index(dicts: KeyDicts) -> Set[Tuple[str, ...]]:
    """Expand the last prefix dictionary into the set of full index tuples."""
    if not dicts:
        return set()
    return {key + (value,) for key, values in dicts[-1].items() for value in values}
