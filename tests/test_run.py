# tests/test_run.py

import sqlite3

import pytest

from pynemo import calculate_scenario
from pynemo.run import build_config


def _tables(dbpath):
    conn = sqlite3.connect(dbpath)
    names = {row[0] for row in conn.execute("select name from sqlite_master where type = 'table'")}
    conn.close()
    return names


class TestCalculateScenario:
    """Tests for the scenario calculation entry point."""

    def test_missing_database(self, tmp_path):
        """An unusable database path is reported as an error status."""
        assert calculate_scenario(str(tmp_path / "missing.sqlite"), numprocs=1) == "error"

    def test_unavailable_solver(self, base_db):
        """No results are saved when the model is not solved."""
        status = calculate_scenario(base_db, numprocs=1, solver="nosuchsolver")
        assert status == "error"
        tables = _tables(base_db)
        assert "vnewcapacity" not in tables
        assert "nodalstorage" not in tables

    def test_solve_and_save(self, base_db, solver_name):
        status = calculate_scenario(base_db, varstosave=["vproductionbytechnologyannual", "vnewcapacity"],
                                    numprocs=1, solver=solver_name)
        assert status == "optimal"

        conn = sqlite3.connect(base_db)
        production = dict(((t, f, y), val) for t, f, y, val in conn.execute(
            "select t, f, y, val from vproductionbytechnologyannual"))
        gas_capacity = conn.execute(
            "select val from vnewcapacity where t = 'GAS' and y = '2020'").fetchone()
        conn.close()
        assert production[("GAS", "ELC", "2020")] == pytest.approx(10.0)
        assert production[("GAS", "ELC", "2021")] == pytest.approx(10.0)
        assert production[("IMP", "NGS", "2020")] == pytest.approx(10.0)
        assert gas_capacity[0] == pytest.approx(10.0)

    def test_previous_results_dropped(self, base_db, solver_name):
        conn = sqlite3.connect(base_db)
        with conn:
            conn.execute("create table vdemandnn (r text, val real)")
        conn.close()
        calculate_scenario(base_db, varstosave=["vnewcapacity"], numprocs=1, solver=solver_name)
        tables = _tables(base_db)
        assert "vdemandnn" not in tables
        assert "vnewcapacity" in tables


class TestBuildConfig:
    """Tests for combining arguments with configuration files."""

    def test_config_next_to_database(self, base_db, tmp_path):
        (tmp_path / "nemo.ini").write_text("[calculatescenarioargs]\nvarstosave = vdemandnn\nnumprocs = 2\n")
        config = build_config(base_db, varstosave=["vnewcapacity"])
        assert config.varstosave == ["vnewcapacity", "vdemandnn"]
        assert config.numprocs == 2

    def test_explicit_config_file(self, base_db, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("calculatescenarioargs:\n  reportzeros: true\n")
        config = build_config(base_db, configfile=str(path))
        assert config.reportzeros is True
