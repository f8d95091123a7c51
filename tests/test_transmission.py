# tests/test_transmission.py

"""
Transmission tests on the two-node scenario: gas power at N1 supplies the
electricity demand at N2 over line L1, for each line modelling type.
"""

import sqlite3

import pytest

from pynemo import calculate_scenario
from pynemo.constants import TRANSMISSION_PIPELINE


# ========== Assembly ==========

class TestTransmissionAssembly:
    """Tests for nodal variable and constraint families."""

    def test_line_families(self, transmission_db, assemble):
        """Line flow spans the line's time slices and years."""
        dbpath, line_type = transmission_db
        _, adapter = assemble(dbpath)
        assert adapter.variable_size("vtransmissionbyline") == 4
        assert adapter.constraint_count("Tr2_TransmissionExists") == 2
        assert adapter.constraint_count("Tr4_MaxFlow") == 4
        assert adapter.constraint_count("Tr5_MinFlow") == 4

    def test_voltage_angles(self, transmission_db, assemble):
        """DC power flow lines couple flow to voltage angles; pipelines do not."""
        dbpath, line_type = transmission_db
        _, adapter = assemble(dbpath)
        if line_type == TRANSMISSION_PIPELINE:
            assert not adapter.has_variable("vvoltageangle")
            assert adapter.constraint_count("Tr3_Flow") == 0
        else:
            assert adapter.variable_size("vvoltageangle") == 8
            assert adapter.constraint_count("Tr3_Flow") == 4
            assert adapter.constraint_count("Tr3a_Flow") == 4

    def test_nodal_balance(self, transmission_db, assemble):
        """Both nodes balance electricity in every time slice and year."""
        dbpath, _ = transmission_db
        ctx, adapter = assemble(dbpath)
        assert adapter.constraint_count("EBa11Tr_EnergyBalanceEachTS5") == 8
        assert adapter.constraint_count("EBb4_EnergyBalanceEachYear") == 4
        assert "EBa11Tr_EnergyBalanceEachTS5" in ctx.created_families

    def test_line_families_persisted(self, transmission_db, assemble):
        dbpath, _ = transmission_db
        ctx, _ = assemble(dbpath, varstosave=["vnewcapacity"])
        assert ctx.requested("vtransmissionbyline")
        assert ctx.requested("vtransmissionexists")


# ========== Solve ==========

class TestTransmissionSolve:
    """Tests solving the two-node scenario."""

    def test_flow_meets_demand(self, transmission_db, solver_name):
        """The line carries all of the demand at N2."""
        dbpath, _ = transmission_db
        status = calculate_scenario(dbpath, varstosave=["vnewcapacity"], numprocs=1, solver=solver_name)
        assert status == "optimal"

        conn = sqlite3.connect(dbpath)
        flows = conn.execute("select tr, l, y, val from vtransmissionbyline order by y, l").fetchall()
        conn.close()
        assert [(tr, l, y) for tr, l, y, _ in flows] == [
            ("L1", "DAY", "2020"), ("L1", "NIGHT", "2020"), ("L1", "DAY", "2021"), ("L1", "NIGHT", "2021"),
        ]
        assert [val for *_, val in flows] == pytest.approx([10.0] * 4)
