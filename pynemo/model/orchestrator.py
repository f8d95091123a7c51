# pynemo/model/orchestrator.py

"""
Model assembly orchestrator.

Runs the assembly steps of one calculation in dependency order: feature
flags, the query catalogue, dimensions and the time hierarchy, variable
families, constraint families (built-in, then the ``customconstraints``
include), and the objective. Solving and persisting are separate steps so
callers and tests can inspect the assembled model first.

Example
-------
>>> with FactStore(config.dbpath) as store:
...     ctx = assemble_model(config, store, PyomoAdapter(config.solver))
...     status = ctx.adapter.solve()
"""

import logging
from typing import List, Optional

from ..config import CalculationConfig, run_include
from ..flags import resolve_flags
from ..output.writer import ResultWriter
from ..query import run_queries, scenario_queries
from ..runners.base import SolverAdapter
from .constraints import add_constraints
from .context import ModelContext, load_dimensions
from .timeslices import TimeHierarchy
from .variables import declare_variables

logger = logging.getLogger(__name__)


def define_objective(ctx: ModelContext) -> None:
    """Minimise total discounted cost over every region and year."""
    vcost = ctx.v("vtotaldiscountedcost")
    years = ctx.dimension("y")
    ctx.adapter.set_objective(ctx.lsum(vcost[r, y] for r in ctx.dimension("r") for y in years))
    logger.info("Defined model objective.")


def assemble_model(config: CalculationConfig, store, adapter: SolverAdapter,
                   workers: Optional[int] = None) -> ModelContext:
    """
    Build the symbolic model of a prepared scenario database.

    Parameters
    ----------
    config : CalculationConfig
        Calculation configuration.
    store : FactStore
        Scenario database with ``_def`` views and working tables in place.
    adapter : SolverAdapter
        Empty model to build into.
    workers : int, optional
        Degree of parallelism; defaults to ``config.workers()``.

    Returns
    -------
    ModelContext
        The assembly context, holding the adapter and the query results.
    """
    workers = workers or config.workers()
    flags = resolve_flags(store, config)

    catalogue = scenario_queries(config.dbpath, flags.transmission,
                                 vproductionbytechnology=flags.requested("vproductionbytechnology"),
                                 vusebytechnology=flags.requested("vusebytechnology"))
    queries = run_queries(catalogue, workers)
    logger.info("Executed core database queries.")

    dims = load_dimensions(store)
    hierarchy = TimeHierarchy.from_store(store, dims["y"])
    logger.info("Defined dimensions.")

    ctx = ModelContext(config, flags, store, adapter, queries, dims, hierarchy, workers=workers)
    declare_variables(ctx)
    add_constraints(ctx)
    run_include(config.customconstraints, "customconstraints", "add_constraints", ctx)
    define_objective(ctx)
    return ctx


def save_results(ctx: ModelContext, solvedtm: str) -> List[str]:
    """
    Write every requested family that exists in the model to the database.

    Requested families that were never created are skipped with a warning.

    Returns
    -------
    List[str]
        Families written.
    """
    writer = ResultWriter(ctx.store.conn, reportzeros=ctx.config.reportzeros)
    written = []
    for family in ctx.flags.varstosave:
        if not ctx.has(family):
            logger.warning(f"Variable {family} is not part of the model; no results saved for it.")
            continue
        writer.save(family, ctx.adapter.values(family), solvedtm)
        written.append(family)
    return written
