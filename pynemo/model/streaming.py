# pynemo/model/streaming.py

"""
Streaming group consolidation.

Constraint families that aggregate many terms into fewer constraints read
rows sorted by a composite key and emit one constraint per distinct key.
``stream_groups`` detects key boundaries in a single pass: when the key
changes, the group that is closing is yielded together with its last row, so
right-hand sides are always evaluated against the closing group and never
against the row that opened the next one. The final group is flushed after
the loop.

Example
-------
>>> rows = [Row("R1", "2020", 1.0), Row("R1", "2020", 2.0), Row("R1", "2021", 3.0)]
>>> [(g.key, g.terms) for g in stream_groups(rows, attrgetter("r", "y"), attrgetter("v"))]
[(('R1', '2020'), [1.0, 2.0]), (('R1', '2021'), [3.0])]
"""

from collections import namedtuple
from operator import attrgetter
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence

import pandas as pd

Group = namedtuple("Group", ["key", "terms", "last", "size"])
Group.__doc__ = """One consolidated key group.

Attributes
----------
key : tuple
    Key of the group.
terms : list
    Non-None results of the term function for the group's rows.
last : namedtuple
    Last row of the group; carries per-group values for the right-hand side.
size : int
    Number of rows in the group (including rows that contributed no term).
"""


def key_of(*columns: str) -> Callable:
    """Key function returning a tuple of the named row fields."""
    if len(columns) == 1:
        getter = attrgetter(columns[0])
        return lambda row: (getter(row),)
    return attrgetter(*columns)


def stream_groups(rows: Iterable, key: Callable, term: Optional[Callable] = None) -> Iterator[Group]:
    """
    Yield one ``Group`` per run of consecutive rows with equal keys.

    Parameters
    ----------
    rows : Iterable
        Rows sorted by ``key``.
    key : Callable
        Row -> hashable key tuple.
    term : Callable, optional
        Row -> term to accumulate. ``None`` results are skipped, but the row
        still belongs to its group.
    """
    lastkey: Any = None
    last = None
    terms: List[Any] = []
    size = 0
    seen = False

    for row in rows:
        k = key(row)
        if seen and k != lastkey:
            yield Group(lastkey, terms, last, size)
            terms = []
            size = 0
        if term is not None:
            t = term(row)
            if t is not None:
                terms.append(t)
        size += 1
        lastkey = k
        last = row
        seen = True

    # No sentinel row closes the final group
    if seen:
        yield Group(lastkey, terms, last, size)


def consolidate(rows: Iterable, key: Callable, term: Optional[Callable], emit: Callable[[Group], Any]) -> int:
    """
    Stream ``rows`` and call ``emit`` once per key group.

    Returns
    -------
    int
        Number of groups emitted.
    """
    count = 0
    for group in stream_groups(rows, key, term):
        emit(group)
        count += 1
    return count


def frame_rows(df: pd.DataFrame, order: Optional[Sequence[str]] = None) -> Iterator:
    """
    Iterate a query result as namedtuples, optionally re-sorted by ``order``.

    Missing values are returned as None.
    """
    if df.empty:
        return iter(())
    if order:
        df = df.sort_values(list(order), kind="mergesort")
    df = df.astype(object).where(df.notna(), None)
    return df.itertuples(index=False, name="Row")
