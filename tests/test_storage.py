# tests/test_storage.py

"""
Storage tests on a scenario with one storage that starts at half of its
100 units of residual capacity and can neither charge nor discharge.
"""

import sqlite3

import pytest
from pyomo.repn import generate_standard_repn

from pynemo import calculate_scenario


class TestStorageAssembly:
    """Tests for storage constraint instances."""

    def test_level_chaining(self, storage_db, assemble):
        """Group starts once per group, time-slice ends once per time slice."""
        _, adapter = assemble(storage_db)
        # One group 1 and one group 2 period per year
        assert adapter.constraint_count("NS3_StorageLevelTsGroup1Start") == 2
        assert adapter.constraint_count("NS4_StorageLevelTsGroup2Start") == 2
        assert adapter.constraint_count("NS5_StorageLevelTimesliceEnd") == 4
        assert adapter.constraint_count("NS8_StorageLevelYearEnd") == 2

    def test_year_end_net_zero(self, storage_db, assemble):
        """Storage nets to zero over the year by default."""
        _, adapter = assemble(storage_db)
        assert adapter.constraint_count("NS8a_StorageLevelYearEndNetZero") == 2
        assert adapter.constraint_count("NS6a_StorageLevelTsGroup2NetZero") == 0

    def test_rate_limits(self, storage_db, assemble):
        _, adapter = assemble(storage_db)
        assert adapter.constraint_count("NS10_StorageChargeLimit") == 4
        assert adapter.constraint_count("NS11_StorageDischargeLimit") == 4

    def test_no_nodal_storage(self, storage_db, assemble):
        _, adapter = assemble(storage_db)
        assert adapter.constraint_count("NS5Tr_StorageLevelTimesliceEnd") == 0
        assert not adapter.has_variable("vstorageleveltsendnodal")


class TestStorageSolve:
    """Tests solving the storage scenario."""

    def test_year_end_level(self, storage_db, solver_name):
        """The level carries the starting level through both years."""
        status = calculate_scenario(storage_db, varstosave=["vstoragelevelyearendnn", "vstorageleveltsendnn"],
                                    numprocs=1, solver=solver_name)
        assert status == "optimal"

        conn = sqlite3.connect(storage_db)
        year_end = conn.execute("select y, val from vstoragelevelyearendnn order by y").fetchall()
        timeslice_end = conn.execute("select val from vstorageleveltsendnn").fetchall()
        conn.close()
        assert [y for y, _ in year_end] == ["2020", "2021"]
        assert [v for _, v in year_end] == pytest.approx([50.0, 50.0])
        assert [v for (v,) in timeslice_end] == pytest.approx([50.0] * 4)


class TestStartingLevel:
    """Tests for the level at the start of each year."""

    @staticmethod
    def _with_minimum_charge(dbpath):
        conn = sqlite3.connect(dbpath)
        with conn:
            # Residual capacity grows by 40 from the year before the horizon
            conn.execute("insert into ResidualStorageCapacity (r, s, y, val) values ('R1', 'S1', '2019', 60)")
            conn.executemany("insert into MinStorageCharge (r, s, y, val) values ('R1', 'S1', ?, 0.5)",
                             [("2020",), ("2021",)])
        conn.close()
        return dbpath

    @staticmethod
    def _group1_start_constant(adapter, y):
        vstart = adapter.variable("vstorageleveltsgroup1startnn")["R1", "S1", "S1", y]
        for con in adapter.model.component("NS3_StorageLevelTsGroup1Start").values():
            repn = generate_standard_repn(con.body)
            if any(var is vstart for var in repn.linear_vars):
                return repn.constant
        raise AssertionError(f"No NS3 instance for {y}")

    def test_horizon_start_ignores_residual_growth(self, storage_db, assemble):
        """The horizon starts from the starting level; residual growth before it adds no charge."""
        _, adapter = assemble(self._with_minimum_charge(storage_db))
        assert self._group1_start_constant(adapter, "2020") == pytest.approx(50.0)

    def test_year_end_counts_residual_growth(self, storage_db, assemble):
        """The first year's closing level adds the minimum charge of residual capacity delivered that year."""
        _, adapter = assemble(self._with_minimum_charge(storage_db))
        vyearend = adapter.variable("vstoragelevelyearendnn")
        constants = []
        for con in adapter.model.component("NS8_StorageLevelYearEnd").values():
            repn = generate_standard_repn(con.body)
            if not any(var is vyearend["R1", "S1", "2021"] for var in repn.linear_vars):
                constants.append(repn.constant)
        # 50 starting level plus 0.5 of the 40 units delivered in 2020
        assert constants == [pytest.approx(70.0)]
