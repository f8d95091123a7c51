# tests/test_config.py

import logging
import os

import pytest

from pynemo.config import (
    CalculationConfig,
    find_config_file,
    parse_bool,
    read_config_file,
    run_include,
    split_names,
)
from pynemo.errors import ScenarioInputError


# ========== Parsing helpers ==========

class TestHelpers:
    """Tests for name and boolean parsing."""

    def test_split_names(self):
        """Blanks and spaces are dropped."""
        assert split_names("vnewcapacity, vtotalcapacityannual,,") == ["vnewcapacity", "vtotalcapacityannual"]
        assert split_names(None) == []
        assert split_names(["a", " b "]) == ["a", "b"]

    @pytest.mark.parametrize("value,expected", [("true", True), ("0", False), ("Yes", True), (False, False)])
    def test_parse_bool(self, value, expected):
        assert parse_bool(value, "quiet") is expected

    def test_parse_bool_invalid(self):
        with pytest.raises(ScenarioInputError, match="Invalid boolean value for quiet"):
            parse_bool("maybe", "quiet")


# ========== CalculationConfig ==========

class TestCalculationConfig:
    """Tests for run-time argument handling."""

    def test_varstosave_string(self):
        """A comma-delimited string is split into family names."""
        config = CalculationConfig(dbpath="x.sqlite", varstosave="vnewcapacity,vdemandnn")
        assert config.varstosave == ["vnewcapacity", "vdemandnn"]

    def test_workers_from_targetprocs(self):
        """Explicit worker ids set the degree of parallelism."""
        config = CalculationConfig(dbpath="x.sqlite", numprocs=8, targetprocs=[2, 3, 4])
        assert config.workers() == 3

    def test_workers_default(self):
        """numprocs 0 uses half the CPUs, at least one."""
        assert CalculationConfig(dbpath="x.sqlite", numprocs=0).workers() >= 1
        assert CalculationConfig(dbpath="x.sqlite", numprocs=5).workers() == 5

    def test_validate_missing_file(self, tmp_path):
        config = CalculationConfig(dbpath=str(tmp_path / "missing.sqlite"))
        with pytest.raises(ScenarioInputError, match="dbpath argument must refer to a file"):
            config.validate()

    def test_merge_appends_and_overrides(self):
        """varstosave and targetprocs are appended; other keys override."""
        config = CalculationConfig(dbpath="x.sqlite", varstosave=["vnewcapacity"], targetprocs=[1])
        merged = config.merge({"varstosave": "vnewcapacity, vdemandnn", "targetprocs": "2",
                               "numprocs": "3", "reportzeros": "true", "solver": "cbc"})
        assert merged.varstosave == ["vnewcapacity", "vdemandnn"]
        assert merged.targetprocs == [1, 2]
        assert merged.numprocs == 3
        assert merged.reportzeros is True
        assert merged.solver == "cbc"
        # The original is unchanged
        assert config.varstosave == ["vnewcapacity"]

    def test_merge_ignores_unknown_keys(self, caplog):
        with caplog.at_level(logging.WARNING):
            merged = CalculationConfig(dbpath="x.sqlite").merge({"colour": "blue"})
        assert merged.numprocs == 0
        assert "Ignoring unknown configuration key colour" in caplog.text

    def test_merge_resolves_includes(self, tmp_path):
        merged = CalculationConfig(dbpath="x.sqlite").merge({}, {"customconstraints": "extra.py"},
                                                            base_dir=str(tmp_path))
        assert merged.customconstraints == os.path.join(str(tmp_path), "extra.py")


# ========== Configuration files ==========

class TestConfigFiles:
    """Tests for reading ini and YAML configuration files."""

    def test_read_ini(self, tmp_path):
        path = tmp_path / "nemo.ini"
        path.write_text("[calculatescenarioargs]\nvarstosave = vdemandnn\nnumprocs = 2\n"
                        "[includes]\ncustomconstraints = extra.py\n")
        args, includes = read_config_file(str(path))
        assert args == {"varstosave": "vdemandnn", "numprocs": "2"}
        assert includes == {"customconstraints": "extra.py"}

    def test_read_yaml(self, tmp_path):
        path = tmp_path / "nemo.yaml"
        path.write_text("calculatescenarioargs:\n  numprocs: 4\n  quiet: true\n")
        args, includes = read_config_file(str(path))
        assert args == {"numprocs": 4, "quiet": True}
        assert includes == {}

    def test_read_yaml_not_mapping(self, tmp_path):
        path = tmp_path / "nemo.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ScenarioInputError, match="must contain a mapping"):
            read_config_file(str(path))

    def test_merge_file(self, tmp_path):
        path = tmp_path / "nemo.yaml"
        path.write_text("calculatescenarioargs:\n  varstosave: vdemandnn\n  restrictvars: false\n")
        config = CalculationConfig(dbpath="x.sqlite", varstosave=["vnewcapacity"]).merge_file(str(path))
        assert config.varstosave == ["vnewcapacity", "vdemandnn"]
        assert config.restrictvars is False

    def test_find_config_file(self, tmp_path):
        assert find_config_file([str(tmp_path)]) is None
        (tmp_path / "nemo.cfg").write_text("[calculatescenarioargs]\n")
        assert find_config_file([str(tmp_path)]) == os.path.join(str(tmp_path), "nemo.cfg")


# ========== Includes ==========

class TestIncludes:
    """Tests for running include files."""

    def test_hook_called(self, tmp_path):
        path = tmp_path / "prepare.py"
        path.write_text("def prepare(calls):\n    calls.append('prepared')\n")
        calls = []
        assert run_include(str(path), "beforescenariocalc", "prepare", calls) is True
        assert calls == ["prepared"]

    def test_failing_include_continues(self, tmp_path, caplog):
        """A failing include is logged and reported as not run."""
        path = tmp_path / "broken.py"
        path.write_text("raise RuntimeError('boom')\n")
        with caplog.at_level(logging.WARNING):
            assert run_include(str(path), "customconstraints", "add_constraints") is False
        assert "Could not perform customconstraints include" in caplog.text

    def test_no_include(self):
        assert run_include(None, "customconstraints", "add_constraints") is False
