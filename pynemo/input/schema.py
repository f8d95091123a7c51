# pynemo/input/schema.py

"""
Scenario database schema and derived views.

Parameter tables are sparse: each row holds a dimension tuple and a ``val``.
A parameter may declare a default through the SQL default of its ``val``
column. ``create_default_views`` exposes every parameter as a ``<Table>_def``
view in which the default is materialised for every combination of the
parameter's dimension sets.

Usage:
    from pynemo.input.schema import create_schema, create_default_views
    create_schema(conn)
    create_default_views(conn)
"""

import logging
import sqlite3
from typing import Dict, List, Optional, Tuple

from ..constants import DB_VERSION

logger = logging.getLogger(__name__)

# Dimension abbreviation -> dimension table
DIMENSION_TABLES: Dict[str, str] = {
    "y": "YEAR",
    "t": "TECHNOLOGY",
    "f": "FUEL",
    "e": "EMISSION",
    "m": "MODE_OF_OPERATION",
    "r": "REGION",
    "rr": "REGION",
    "ls": "SEASON",
    "ld": "DAYTYPE",
    "lh": "DAILYTIMEBRACKET",
    "s": "STORAGE",
    "l": "TIMESLICE",
    "n": "NODE",
}

# Parameter -> (dimension columns, default value or None)
PARAMETERS: Dict[str, Tuple[Tuple[str, ...], Optional[float]]] = {
    "OutputActivityRatio": (("r", "t", "f", "m", "y"), 0),
    "InputActivityRatio": (("r", "t", "f", "m", "y"), 0),
    "ResidualCapacity": (("r", "t", "y"), 0),
    "OperationalLife": (("r", "t"), 1),
    "FixedCost": (("r", "t", "y"), 0),
    "YearSplit": (("l", "y"), None),
    "SpecifiedAnnualDemand": (("r", "f", "y"), None),
    "SpecifiedDemandProfile": (("r", "f", "l", "y"), None),
    "VariableCost": (("r", "t", "m", "y"), 0),
    "DiscountRate": (("r",), 0.05),
    "CapitalCost": (("r", "t", "y"), 0),
    "CapitalCostStorage": (("r", "s", "y"), 0),
    "CapacityFactor": (("r", "t", "l", "y"), 1),
    "CapacityToActivityUnit": (("r", "t"), 1),
    "CapacityOfOneTechnologyUnit": (("r", "t", "y"), None),
    "AvailabilityFactor": (("r", "t", "y"), 1),
    "TradeRoute": (("r", "rr", "f", "y"), None),
    "TechnologyToStorage": (("r", "t", "s", "m"), None),
    "TechnologyFromStorage": (("r", "t", "s", "m"), None),
    "StorageLevelStart": (("r", "s"), None),
    "StorageMaxChargeRate": (("r", "s"), None),
    "StorageMaxDischargeRate": (("r", "s"), None),
    "ResidualStorageCapacity": (("r", "s", "y"), None),
    "MinStorageCharge": (("r", "s", "y"), None),
    "OperationalLifeStorage": (("r", "s"), 1),
    "DepreciationMethod": (("r",), 1),
    "TotalAnnualMaxCapacity": (("r", "t", "y"), None),
    "TotalAnnualMinCapacity": (("r", "t", "y"), None),
    "TotalAnnualMaxCapacityInvestment": (("r", "t", "y"), None),
    "TotalAnnualMinCapacityInvestment": (("r", "t", "y"), None),
    "TotalTechnologyAnnualActivityUpperLimit": (("r", "t", "y"), None),
    "TotalTechnologyAnnualActivityLowerLimit": (("r", "t", "y"), None),
    "TotalTechnologyModelPeriodActivityUpperLimit": (("r", "t"), None),
    "TotalTechnologyModelPeriodActivityLowerLimit": (("r", "t"), None),
    "ReserveMarginTagTechnology": (("r", "t", "y"), None),
    "ReserveMarginTagFuel": (("r", "f", "y"), None),
    "ReserveMargin": (("r", "y"), None),
    "RETagTechnology": (("r", "t", "y"), None),
    "RETagFuel": (("r", "f", "y"), None),
    "REMinProductionTarget": (("r", "y"), None),
    "EmissionActivityRatio": (("r", "t", "e", "m", "y"), None),
    "EmissionsPenalty": (("r", "e", "y"), None),
    "ModelPeriodExogenousEmission": (("r", "e"), None),
    "AnnualExogenousEmission": (("r", "e", "y"), None),
    "AnnualEmissionLimit": (("r", "e", "y"), None),
    "ModelPeriodEmissionLimit": (("r", "e"), None),
    "AccumulatedAnnualDemand": (("r", "f", "y"), None),
    "TotalAnnualMaxCapacityStorage": (("r", "s", "y"), None),
    "TotalAnnualMinCapacityStorage": (("r", "s", "y"), None),
    "TotalAnnualMaxCapacityInvestmentStorage": (("r", "s", "y"), None),
    "TotalAnnualMinCapacityInvestmentStorage": (("r", "s", "y"), None),
    "TransmissionCapacityToActivityUnit": (("f",), 1),
    "StorageFullLoadHours": (("r", "s", "y"), None),
    "RampRate": (("r", "t", "y", "l"), None),
    "RampingReset": (("r",), None),
    "NodalDistributionDemand": (("n", "f", "y"), None),
    "NodalDistributionTechnologyCapacity": (("n", "t", "y"), None),
    "NodalDistributionStorageCapacity": (("n", "s", "y"), None),
}

# Activity ratios are only read where nonzero, so a zero default is not expanded
NO_DEFAULT_EXPANSION = {"OutputActivityRatio", "InputActivityRatio"}

_SIMPLE_DIMENSIONS = ["REGION", "TECHNOLOGY", "TIMESLICE", "FUEL", "EMISSION",
                      "MODE_OF_OPERATION", "YEAR", "SEASON", "DAYTYPE", "DAILYTIMEBRACKET"]

_OTHER_TABLES = [
    "create table STORAGE (val text primary key, desc text, netzerotg1 boolean default 0, "
    "netzerotg2 boolean default 0, netzeroyear boolean default 1)",
    "create table NODE (val text primary key, desc text, r text)",
    "create table TSGROUP1 (name text primary key, desc text, [order] integer unique, multiplier real default 1)",
    "create table TSGROUP2 (name text primary key, desc text, [order] integer unique, multiplier real default 1)",
    "create table LTsGroup (id integer primary key, l text unique, lorder integer, tg2 text, tg1 text)",
    "create table TransmissionModelingEnabled (id integer primary key, r text, f text, y text, type integer default 1)",
    "create table TransmissionLine (id text primary key, n1 text, n2 text, f text, maxflow real, reactance real, "
    "yconstruction integer, capitalcost real, fixedcost real, variablecost real, operationallife integer, "
    "efficiency real)",
    "create table version (version integer)",
]


def dimension_table(abbreviation: str) -> str:
    """Return the dimension table for a dimension column abbreviation."""
    return DIMENSION_TABLES.get(abbreviation, abbreviation)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create an empty scenario database in ``conn``."""
    statements: List[str] = [f"create table {t} (val text primary key, desc text)" for t in _SIMPLE_DIMENSIONS]
    statements.extend(_OTHER_TABLES)
    for name, (dims, default) in PARAMETERS.items():
        columns = ", ".join(f"{d} text" for d in dims)
        val = "val real" if default is None else f"val real default {default}"
        statements.append(f"create table {name} (id integer primary key, {columns}, {val})")

    with conn:
        for stmt in statements:
            conn.execute(stmt)
        conn.execute("insert into version values (?)", (DB_VERSION,))
    logger.debug(f"Created scenario schema version {DB_VERSION}.")


def _table_columns(conn: sqlite3.Connection, table: str):
    return conn.execute(f"PRAGMA table_info('{table}')").fetchall()


def _object_exists(conn: sqlite3.Connection, name: str, kind: str) -> bool:
    row = conn.execute("select 1 from sqlite_master where type = ? and name = ?", (kind, name)).fetchone()
    return row is not None


def default_view_sql(table: str, keys: List[str], default: Optional[str]) -> str:
    """
    Build the ``create view`` statement for ``<table>_def``.

    Parameters
    ----------
    table : str
        Parameter table name.
    keys : List[str]
        Dimension columns of the table.
    default : str, optional
        SQL default of the ``val`` column; None for a plain copy.
    """
    if default is None:
        return f"create view {table}_def as select * from {table}"

    outer = "".join(f"{k}, " for k in keys)
    inner = "".join(f"{k}_tab.val as {k}, " for k in keys) + "t.val as val "
    tables = ", ".join(f"{dimension_table(k)} as {k}_tab" for k in keys)
    join = " and ".join(f"t.{k} = {k}_tab.val" for k in keys)
    return (f"create view {table}_def as select {outer}ifnull(val, {default}) as val "
            f"from (select {inner}from {tables} left join {table} t on {join})")


def create_default_views(conn: sqlite3.Connection, tables: Optional[List[str]] = None) -> List[str]:
    """
    Create unique key indices and ``_def`` views for parameter tables.

    Parameters
    ----------
    conn : sqlite3.Connection
        Scenario database.
    tables : List[str], optional
        Parameter tables to process; defaults to every parameter in
        ``PARAMETERS`` present in the database.

    Returns
    -------
    List[str]
        Names of the views created.
    """
    if tables is None:
        tables = [t for t in PARAMETERS if _object_exists(conn, t, "table")]

    created = []
    with conn:
        for table in tables:
            if _object_exists(conn, f"{table}_def", "view"):
                conn.execute(f"drop view {table}_def")

            keys: List[str] = []
            default = None
            for column in _table_columns(conn, table):
                name, dflt = column[1], column[4]
                if name == "id":
                    continue
                if name == "val":
                    if dflt is not None and not (table in NO_DEFAULT_EXPANSION and str(dflt) == "0"):
                        default = str(dflt)
                else:
                    keys.append(name)

            conn.execute(f"drop index if exists {table}_fks_unique")
            conn.execute(f"create unique index {table}_fks_unique on {table} ({', '.join(keys)})")
            conn.execute(default_view_sql(table, keys, default))
            created.append(f"{table}_def")
    return created


def create_temp_tables(conn: sqlite3.Connection) -> None:
    """Create working tables used during assembly (nodal storage distribution)."""
    with conn:
        conn.execute("drop table if exists nodalstorage")
        conn.execute("""create table nodalstorage as
            select distinct n.r as r, nsc.n as n, nsc.s as s, nsc.y as y, cast(nsc.val as real) as val
            from NodalDistributionStorageCapacity_def nsc, NODE n, TransmissionModelingEnabled tme
            where nsc.val > 0
            and nsc.n = n.val
            and tme.r = n.r and tme.y = nsc.y""")


def drop_temp_tables(conn: sqlite3.Connection) -> None:
    with conn:
        conn.execute("drop table if exists nodalstorage")


def drop_result_tables(conn: sqlite3.Connection) -> List[str]:
    """
    Drop result tables left by earlier calculations.

    Result tables are named after variable families (lowercase ``v`` prefix);
    ``sqlite_stat*`` tables are dropped as well. The ``version`` table is kept.
    """
    names = [row[0] for row in conn.execute("select name from sqlite_master where type = 'table'")]
    dropped = []
    with conn:
        for name in names:
            if (name.startswith("v") and name != "version") or name.startswith("sqlite_stat"):
                conn.execute(f"drop table [{name}]")
                logger.debug(f"Dropped table {name}.")
                dropped.append(name)
    return dropped
