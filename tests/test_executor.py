# tests/test_executor.py

import pytest

from pynemo.errors import QueryError
from pynemo.input import FactStore, create_default_views
from pynemo.query import run_queries, run_query, scenario_queries


class TestRunQueries:
    """Tests for executing the query catalogue."""

    def test_run_query(self, base_db):
        name, df = run_query(("technologies", (base_db, "select val from TECHNOLOGY order by val")))
        assert name == "technologies"
        assert df["val"].tolist() == ["GAS", "IMP"]

    def test_parallel_matches_sequential(self, base_db):
        """Worker processes return the same results as in-process execution."""
        catalogue = {
            "technologies": (base_db, "select val from TECHNOLOGY order by val"),
            "fuels": (base_db, "select val from FUEL order by val"),
            "years": (base_db, "select val from YEAR order by val"),
        }
        sequential = run_queries(catalogue, workers=1)
        parallel = run_queries(catalogue, workers=3)
        assert set(parallel) == set(catalogue)
        for name in catalogue:
            assert parallel[name].equals(sequential[name])

    def test_failure_names_query(self, base_db):
        with pytest.raises(QueryError, match="Query 'broken' failed"):
            run_queries({"broken": (base_db, "select * from NOSUCHTABLE")}, workers=1)

    def test_failure_in_worker(self, base_db):
        """Errors raised in worker processes reach the caller."""
        catalogue = {
            "ok": (base_db, "select val from YEAR"),
            "broken": (base_db, "select * from NOSUCHTABLE"),
        }
        with pytest.raises(QueryError, match="broken"):
            run_queries(catalogue, workers=3)


class TestScenarioQueries:
    """Tests for the query catalogue."""

    def test_without_transmission(self, base_db):
        catalogue = scenario_queries(base_db, transmission=False)
        assert "queryvrateofproductionbytechnologynn" in catalogue
        assert not any("nodal" in name or "transmission" in name for name in catalogue)
        assert all(dbpath == base_db for dbpath, _ in catalogue.values())

    def test_nodal_parts_only_when_requested(self, base_db):
        catalogue = scenario_queries(base_db, transmission=True, vproductionbytechnology=True)
        assert "queryvtransmissionbyline" in catalogue
        assert "queryvproductionbytechnologyindices_nodalpart" in catalogue
        assert "queryvusebytechnologyindices_nodalpart" not in catalogue

    def test_restriction_rows(self, base_db):
        """Production rows cover each producing technology in every time slice."""
        with FactStore(base_db) as store:
            create_default_views(store.conn)
        results = run_queries(scenario_queries(base_db, transmission=False), workers=1)
        df = results["queryvrateofproductionbytechnologynn"]
        assert len(df) == 8
        assert set(zip(df["t"], df["f"])) == {("GAS", "ELC"), ("IMP", "NGS")}
