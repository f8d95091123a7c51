# tests/conftest.py

"""
Shared fixtures for pynemo tests.

Provides small scenario databases built with ``create_schema``:
- A two-technology scenario: gas power (GAS) burning imported gas (IMP)
  to meet electricity demand over two years and two time slices
- A storage-only scenario with a fixed starting level and no charging
- A one-technology scenario with a falling capital cost
- The two-technology scenario on two nodes joined by one transmission line
"""

import sqlite3

import pytest
import pyomo.environ as pyo

from pynemo.config import CalculationConfig
from pynemo.input import FactStore, create_schema
from pynemo.model import assemble_model
from pynemo.run import prepare_database
from pynemo.runners import PyomoAdapter

SOLVERS = ("highs", "appsi_highs", "cbc", "glpk")


def insert(conn, table, columns, rows):
    """Insert ``rows`` into ``table``."""
    placeholders = ", ".join(["?"] * len(columns))
    conn.executemany(f"insert into {table} ({', '.join(columns)}) values ({placeholders})", rows)


def _time_structure(conn):
    insert(conn, "REGION", ["val"], [("R1",)])
    insert(conn, "YEAR", ["val"], [("2020",), ("2021",)])
    insert(conn, "TIMESLICE", ["val"], [("DAY",), ("NIGHT",)])
    insert(conn, "TSGROUP1", ["name", "[order]", "multiplier"], [("S1", 1, 1.0)])
    insert(conn, "TSGROUP2", ["name", "[order]", "multiplier"], [("D1", 1, 1.0)])
    insert(conn, "LTsGroup", ["l", "lorder", "tg2", "tg1"], [("DAY", 1, "D1", "S1"), ("NIGHT", 2, "D1", "S1")])
    insert(conn, "YearSplit", ["l", "y", "val"],
           [(l, y, 0.5) for l in ("DAY", "NIGHT") for y in ("2020", "2021")])


def build_base_scenario(path):
    """Two technologies, two fuels, demand of 10 per year."""
    conn = sqlite3.connect(path)
    create_schema(conn)
    with conn:
        _time_structure(conn)
        insert(conn, "TECHNOLOGY", ["val"], [("GAS",), ("IMP",)])
        insert(conn, "FUEL", ["val"], [("ELC",), ("NGS",)])
        insert(conn, "MODE_OF_OPERATION", ["val"], [("1",)])
        years = ("2020", "2021")
        insert(conn, "OutputActivityRatio", ["r", "t", "f", "m", "y", "val"],
               [("R1", "GAS", "ELC", "1", y, 1.0) for y in years]
               + [("R1", "IMP", "NGS", "1", y, 1.0) for y in years])
        insert(conn, "InputActivityRatio", ["r", "t", "f", "m", "y", "val"],
               [("R1", "GAS", "NGS", "1", y, 1.0) for y in years])
        insert(conn, "OperationalLife", ["r", "t", "val"], [("R1", "GAS", 20)])
        insert(conn, "CapitalCost", ["r", "t", "y", "val"], [("R1", "GAS", y, 1000.0) for y in years])
        insert(conn, "VariableCost", ["r", "t", "m", "y", "val"], [("R1", "IMP", "1", y, 2.0) for y in years])
        insert(conn, "SpecifiedAnnualDemand", ["r", "f", "y", "val"], [("R1", "ELC", y, 10.0) for y in years])
        insert(conn, "SpecifiedDemandProfile", ["r", "f", "l", "y", "val"],
               [("R1", "ELC", l, y, 0.5) for l in ("DAY", "NIGHT") for y in years])
    conn.close()
    return str(path)


def build_storage_scenario(path):
    """One storage starting half full of 100 units of residual capacity; charging is disabled."""
    conn = sqlite3.connect(path)
    create_schema(conn)
    with conn:
        _time_structure(conn)
        insert(conn, "STORAGE", ["val"], [("S1",)])
        insert(conn, "StorageLevelStart", ["r", "s", "val"], [("R1", "S1", 0.5)])
        insert(conn, "ResidualStorageCapacity", ["r", "s", "y", "val"],
               [("R1", "S1", "2020", 100.0), ("R1", "S1", "2021", 100.0)])
        insert(conn, "StorageMaxChargeRate", ["r", "s", "val"], [("R1", "S1", 0.0)])
        insert(conn, "StorageMaxDischargeRate", ["r", "s", "val"], [("R1", "S1", 0.0)])
    conn.close()
    return str(path)


def build_capital_scenario(path):
    """One technology T1 whose capital cost falls from 100 in 2020 to 90 in 2021."""
    conn = sqlite3.connect(path)
    create_schema(conn)
    with conn:
        _time_structure(conn)
        insert(conn, "TECHNOLOGY", ["val"], [("T1",)])
        insert(conn, "FUEL", ["val"], [("ELC",)])
        insert(conn, "MODE_OF_OPERATION", ["val"], [("1",)])
        insert(conn, "OutputActivityRatio", ["r", "t", "f", "m", "y", "val"],
               [("R1", "T1", "ELC", "1", y, 1.0) for y in ("2020", "2021")])
        insert(conn, "CapitalCost", ["r", "t", "y", "val"], [("R1", "T1", "2020", 100.0), ("R1", "T1", "2021", 90.0)])
    conn.close()
    return str(path)


def build_transmission_scenario(path, line_type):
    """
    The two-technology scenario split over two nodes: gas power at N1,
    electricity demand at N2, joined by one existing line of ``line_type``.
    """
    build_base_scenario(path)
    conn = sqlite3.connect(path)
    years = ("2020", "2021")
    with conn:
        insert(conn, "NODE", ["val", "r"], [("N1", "R1"), ("N2", "R1")])
        insert(conn, "TransmissionModelingEnabled", ["r", "f", "y", "type"],
               [("R1", "ELC", y, line_type) for y in years])
        insert(conn, "TransmissionLine",
               ["id", "n1", "n2", "f", "maxflow", "reactance", "yconstruction", "operationallife", "efficiency"],
               [("L1", "N1", "N2", "ELC", 100.0, 0.1, 2020, 40, 1.0)])
        insert(conn, "NodalDistributionTechnologyCapacity", ["n", "t", "y", "val"],
               [("N1", "GAS", y, 1.0) for y in years])
        insert(conn, "NodalDistributionDemand", ["n", "f", "y", "val"],
               [("N2", "ELC", y, 1.0) for y in years])
    conn.close()
    return str(path)


@pytest.fixture
def base_db(tmp_path):
    return build_base_scenario(tmp_path / "base.sqlite")


@pytest.fixture
def storage_db(tmp_path):
    return build_storage_scenario(tmp_path / "storage.sqlite")


@pytest.fixture
def capital_db(tmp_path):
    return build_capital_scenario(tmp_path / "capital.sqlite")


@pytest.fixture(params=[1, 2, 3], ids=["dcopf", "dcopf-disjunctive", "pipeline"])
def transmission_db(request, tmp_path):
    """Transmission scenario for each line modelling type; the type is on ``request.param``."""
    return build_transmission_scenario(tmp_path / "transmission.sqlite", request.param), request.param


@pytest.fixture
def assemble():
    """
    Return a function that prepares a database and assembles its model.

    The function returns ``(ctx, adapter)``; stores are closed at teardown.
    """
    stores = []

    def _assemble(dbpath, **kwargs):
        kwargs.setdefault("numprocs", 1)
        config = CalculationConfig(dbpath=dbpath, **kwargs)
        store = FactStore(dbpath)
        stores.append(store)
        prepare_database(store)
        adapter = PyomoAdapter(config.solver)
        ctx = assemble_model(config, store, adapter, workers=1)
        return ctx, adapter

    yield _assemble
    for store in stores:
        store.close()


def _available(name):
    try:
        return pyo.SolverFactory(name).available(exception_flag=False)
    except Exception:
        return False


@pytest.fixture(scope="session")
def solver_name():
    """First installed LP solver; skips the test when there is none."""
    for name in SOLVERS:
        if _available(name):
            return name
    pytest.skip("No LP solver available")
