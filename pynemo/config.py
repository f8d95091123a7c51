# pynemo/config.py

"""
Calculation configuration.

A ``CalculationConfig`` collects every run-time argument of a scenario
calculation and is passed explicitly to each component. Arguments come from
the caller and may be supplemented by a configuration file (``nemo.ini``,
``nemo.cfg``, ``nemo.yaml`` or ``nemo.yml``) with two sections:

``calculatescenarioargs``
    ``varstosave`` and ``targetprocs`` are appended to the caller's values;
    ``numprocs``, ``restrictvars``, ``reportzeros``, ``continuoustransmission``,
    ``quiet`` and ``solver`` override them.
``includes``
    ``beforescenariocalc`` and ``customconstraints``: paths to Python files
    run before database preparation and after the built-in constraints.

Example
-------
>>> from pynemo.config import CalculationConfig
>>> config = CalculationConfig(dbpath="utopia.sqlite", numprocs=1)
>>> config = config.merge_file("nemo.ini")
"""

import configparser
import importlib.util
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import yaml

from .constants import CONFIG_FILENAMES, DEFAULT_SOLVER, DEFAULT_VARSTOSAVE
from .errors import ScenarioInputError

logger = logging.getLogger(__name__)

ARGS_SECTION = "calculatescenarioargs"
INCLUDES_SECTION = "includes"

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def split_names(value: Any) -> List[str]:
    """Split a comma-delimited string (or list) into names, dropping blanks and spaces."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.replace(" ", "").split(",")
    else:
        parts = [str(v).strip() for v in value]
    return [p for p in parts if p]


def parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ScenarioInputError(f"Invalid boolean value for {key}: {value!r}")


@dataclass
class CalculationConfig:
    """
    Run-time arguments of one scenario calculation.

    Attributes
    ----------
    dbpath : str
        Path to the SQLite scenario database.
    varstosave : List[str]
        Variable families whose results are written back to the database.
    numprocs : int
        Worker processes for parallel steps; 0 means half the logical CPUs.
    targetprocs : List[int]
        Explicit worker ids. When given, their count sets the degree of
        parallelism.
    restrictvars : bool
        Restrict variable domains to combinations present in the data.
    reportzeros : bool
        Persist zero-valued results.
    continuoustransmission : bool
        Relax the transmission build decision to [0, 1].
    quiet : bool
        Only log warnings and errors.
    solver : str
        Pyomo solver name.
    tee : bool
        Stream solver output.
    beforescenariocalc, customconstraints : Optional[str]
        Include files (see module docstring).
    """
    dbpath: str
    varstosave: List[str] = field(default_factory=lambda: list(DEFAULT_VARSTOSAVE))
    numprocs: int = 0
    targetprocs: List[int] = field(default_factory=list)
    restrictvars: bool = True
    reportzeros: bool = False
    continuoustransmission: bool = False
    quiet: bool = False
    solver: str = DEFAULT_SOLVER
    tee: bool = False
    beforescenariocalc: Optional[str] = None
    customconstraints: Optional[str] = None

    def __post_init__(self):
        self.varstosave = split_names(self.varstosave)
        self.targetprocs = [int(p) for p in self.targetprocs]

    def workers(self) -> int:
        """Effective degree of parallelism (always at least 1)."""
        if self.targetprocs:
            return max(len(set(self.targetprocs)), 1)
        if self.numprocs == 0:
            return max((os.cpu_count() or 2) // 2, 1)
        return max(self.numprocs, 1)

    def validate(self) -> None:
        """Raise ScenarioInputError when the database path is unusable."""
        if not self.dbpath or not os.path.isfile(self.dbpath):
            raise ScenarioInputError(f"dbpath argument must refer to a file: {self.dbpath}")

    def merge(self, args: Dict[str, Any], includes: Optional[Dict[str, Any]] = None,
              base_dir: str = ".") -> "CalculationConfig":
        """
        Return a copy updated from configuration-file values.

        Parameters
        ----------
        args : Dict[str, Any]
            Contents of the ``calculatescenarioargs`` section.
        includes : Dict[str, Any], optional
            Contents of the ``includes`` section.
        base_dir : str
            Directory that relative include paths are resolved against.
        """
        updates: Dict[str, Any] = {}
        for key, value in args.items():
            key = key.lower()
            if key == "varstosave":
                extra = [v for v in split_names(value) if v not in self.varstosave]
                updates["varstosave"] = self.varstosave + extra
            elif key == "targetprocs":
                updates["targetprocs"] = self.targetprocs + [int(p) for p in split_names(value)]
            elif key == "numprocs":
                updates["numprocs"] = int(value)
            elif key in ("restrictvars", "reportzeros", "continuoustransmission", "quiet", "tee"):
                updates[key] = parse_bool(value, key)
            elif key == "solver":
                updates["solver"] = str(value).strip()
            else:
                logger.warning(f"Ignoring unknown configuration key {key}.")

        for key, value in (includes or {}).items():
            key = key.lower()
            if key in ("beforescenariocalc", "customconstraints"):
                updates[key] = os.path.normpath(os.path.join(base_dir, str(value)))
            else:
                logger.warning(f"Ignoring unknown include {key}.")

        return replace(self, **updates)

    def merge_file(self, path: str) -> "CalculationConfig":
        """Return a copy updated from an ini/cfg or YAML configuration file."""
        args, includes = read_config_file(path)
        merged = self.merge(args, includes, base_dir=os.getcwd())
        logger.info(f"Read configuration file {path}.")
        return merged


def read_config_file(path: str):
    """
    Read the argument and include sections of a configuration file.

    Returns
    -------
    Tuple[Dict[str, Any], Dict[str, Any]]
        ``(calculatescenarioargs, includes)``; missing sections are empty.
    """
    if not os.path.isfile(path):
        raise ScenarioInputError(f"Configuration file not found: {path}")

    if path.lower().endswith((".yaml", ".yml")):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ScenarioInputError(f"Configuration file {path} must contain a mapping")
        return dict(data.get(ARGS_SECTION) or {}), dict(data.get(INCLUDES_SECTION) or {})

    parser = configparser.ConfigParser()
    try:
        parser.read(path)
    except configparser.Error as e:
        raise ScenarioInputError(f"Could not parse configuration file {path}: {e}") from e
    args = dict(parser[ARGS_SECTION]) if parser.has_section(ARGS_SECTION) else {}
    includes = dict(parser[INCLUDES_SECTION]) if parser.has_section(INCLUDES_SECTION) else {}
    return args, includes


def find_config_file(search_dirs: List[str]) -> Optional[str]:
    """Return the first configuration file found in ``search_dirs``."""
    for directory in search_dirs:
        for name in CONFIG_FILENAMES:
            candidate = os.path.join(directory, name)
            if os.path.isfile(candidate):
                return candidate
    return None


def load_include(path: str, name: str):
    """Import a Python include file as a module."""
    spec = importlib.util.spec_from_file_location(f"pynemo_include_{name}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load include file {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_include(path: Optional[str], name: str, hook: str, *args) -> bool:
    """
    Load include ``path`` and call its ``hook`` function with ``args``.

    A failing include is logged and the calculation continues.

    Returns
    -------
    bool
        True when the include ran.
    """
    if not path:
        return False
    try:
        module = load_include(path, name)
        func = getattr(module, hook, None)
        if func is not None:
            func(*args)
    except Exception as e:
        logger.warning(f"Could not perform {name} include. Error message: {e}. Continuing with calculation.")
        return False
    logger.info(f"Performed {name} include.")
    return True
