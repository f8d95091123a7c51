# pynemo/run.py

"""
Scenario calculation entry point.

``calculate_scenario`` prepares a scenario database, assembles and solves the
model, and writes the requested results back to the database. It never
raises: unexpected failures are logged and reported as the ``"error"``
status.

Example
-------
>>> from pynemo import calculate_scenario
>>> status = calculate_scenario("utopia.sqlite", varstosave=["vnewcapacity"], numprocs=1)
>>> print(status)
optimal
"""

import logging
import os
from datetime import datetime
from typing import Iterable, Optional

from .config import CalculationConfig, find_config_file, run_include
from .constants import DB_VERSION, DEFAULT_SOLVER, DEFAULT_VARSTOSAVE, STATUS_ERROR, STATUS_OPTIMAL
from .input import FactStore, create_default_views, create_temp_tables, drop_result_tables, drop_temp_tables
from .logs.logger import configure_package_logging
from .model import assemble_model, save_results
from .output import format_solvedtm
from .runners import PyomoAdapter

logger = logging.getLogger(__name__)


def build_config(dbpath: str, varstosave: Optional[Iterable[str]] = None, numprocs: int = 0,
                 targetprocs: Optional[Iterable[int]] = None, restrictvars: bool = True,
                 reportzeros: bool = False, continuoustransmission: bool = False, quiet: bool = False,
                 solver: str = DEFAULT_SOLVER, tee: bool = False, configfile: Optional[str] = None,
                 ) -> CalculationConfig:
    """
    Combine caller arguments with a configuration file, if one is found.

    The configuration file is ``configfile`` when given, otherwise the first
    of ``nemo.ini``, ``nemo.cfg``, ``nemo.yaml`` or ``nemo.yml`` found in the
    working directory or next to the database.
    """
    config = CalculationConfig(
        dbpath=dbpath,
        varstosave=list(varstosave) if varstosave is not None else list(DEFAULT_VARSTOSAVE),
        numprocs=numprocs,
        targetprocs=list(targetprocs or []),
        restrictvars=restrictvars,
        reportzeros=reportzeros,
        continuoustransmission=continuoustransmission,
        quiet=quiet,
        solver=solver,
        tee=tee,
    )
    path = configfile or find_config_file([os.getcwd(), os.path.dirname(os.path.abspath(dbpath))])
    if path is not None:
        config = config.merge_file(path)
    return config


def prepare_database(store: FactStore) -> None:
    """Drop old results and create parameter views and working tables."""
    version = store.read_version()
    if version < DB_VERSION:
        logger.warning(f"Scenario database version {version} is older than {DB_VERSION}; "
                       f"it is used without upgrading.")

    drop_result_tables(store.conn)
    logger.info("Dropped pre-existing result tables from database.")
    create_default_views(store.conn)
    create_temp_tables(store.conn)
    logger.info("Created parameter views and indices.")


def calculate_scenario(dbpath: str, varstosave: Optional[Iterable[str]] = None, numprocs: int = 0,
                       targetprocs: Optional[Iterable[int]] = None, restrictvars: bool = True,
                       reportzeros: bool = False, continuoustransmission: bool = False, quiet: bool = False,
                       solver: str = DEFAULT_SOLVER, tee: bool = False, configfile: Optional[str] = None) -> str:
    """
    Calculate a scenario.

    Parameters
    ----------
    dbpath : str
        Path to the SQLite scenario database.
    varstosave : Iterable[str], optional
        Variable families to write back to the database.
    numprocs : int
        Worker processes; 0 means half the logical CPUs.
    targetprocs : Iterable[int], optional
        Explicit worker ids; their count sets the degree of parallelism.
    restrictvars : bool
        Restrict variable domains to combinations present in the data.
    reportzeros : bool
        Write zero-valued results.
    continuoustransmission : bool
        Relax transmission build decisions to [0, 1].
    quiet : bool
        Only log warnings and errors.
    solver : str
        Pyomo solver name.
    tee : bool
        Stream solver output.
    configfile : str, optional
        Configuration file to read instead of searching for one.

    Returns
    -------
    str
        'optimal', 'infeasible', 'unbounded' or 'error'.
    """
    if quiet or not logging.getLogger("pynemo").handlers:
        configure_package_logging(quiet=quiet)
    try:
        config = build_config(dbpath, varstosave, numprocs, targetprocs, restrictvars, reportzeros,
                              continuoustransmission, quiet, solver, tee, configfile)
        if config.quiet and not quiet:
            configure_package_logging(quiet=True)
        config.validate()
        logger.info("Validated run-time arguments.")

        run_include(config.beforescenariocalc, "beforescenariocalc", "prepare", config)

        with FactStore(config.dbpath) as store:
            prepare_database(store)
            try:
                adapter = PyomoAdapter(config.solver, tee=config.tee)
                ctx = assemble_model(config, store, adapter)

                status = adapter.solve()
                solvedtm = format_solvedtm(datetime.now())
                logger.info(f"Solved model. Solver status = {status}.")

                if status == STATUS_OPTIMAL:
                    save_results(ctx, solvedtm)
                    logger.info("Finished saving results to database.")
                else:
                    logger.warning(f"No results saved; solver status is {status}.")
            finally:
                drop_temp_tables(store.conn)

        logger.info("Finished scenario calculation.")
        return status
    except Exception as e:
        logger.exception(f"Scenario calculation failed: {e}")
        return STATUS_ERROR
