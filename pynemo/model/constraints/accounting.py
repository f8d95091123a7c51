# pynemo/model/constraints/accounting.py

"""
Accounting constraints: production and use by technology in energy terms,
annual activity by mode, and total cost per region.
"""

import logging

from ..context import ModelContext
from ..streaming import key_of

logger = logging.getLogger(__name__)


def _by_technology(ctx: ModelContext, family: str, total: str, rate_nn: str, rate_nodal: str,
                   query_nn: str, query_nodal: str) -> None:
    vtotal = ctx.v(total)
    vrate = ctx.v(rate_nn)
    for row in ctx.query_rows(query_nn):
        key = (row.r, row.l, row.t, row.f, row.y)
        ctx.constrain(family, vrate[key] * row.ys, "==", vtotal[key])

    if ctx.flags.transmission:
        vnodal = ctx.v(rate_nodal)
        ctx.stream(family, ctx.query_rows(query_nodal, order=["r", "l", "t", "f", "y"]),
                   key_of("r", "l", "t", "f", "y"),
                   lambda row: vnodal[row.n, row.l, row.t, row.f, row.y] * row.ys,
                   lambda g: (ctx.lsum(g.terms), "==", vtotal[g.key]))
    ctx.created(family)


def production_by_technology(ctx: ModelContext) -> None:
    """Acc1: production by technology in each time slice, nodal production included."""
    _by_technology(ctx, "Acc1_FuelProductionByTechnology", "vproductionbytechnology",
                   "vrateofproductionbytechnologynn", "vrateofproductionbytechnologynodal",
                   "queryvrateofproductionbytechnologynn", "queryvrateofproductionbytechnologynodal")


def use_by_technology(ctx: ModelContext) -> None:
    """Acc2: use by technology in each time slice, nodal use included."""
    _by_technology(ctx, "Acc2_FuelUseByTechnology", "vusebytechnology",
                   "vrateofusebytechnologynn", "vrateofusebytechnologynodal",
                   "queryvrateofusebytechnologynn", "queryvrateofusebytechnologynodal")


def annual_activity_by_mode(ctx: ModelContext) -> None:
    """Acc3: annual activity by mode sums the rate of activity weighted by the year split."""
    family = "Acc3_AverageAnnualRateOfActivity"
    vact = ctx.v("vrateofactivity")
    vannual = ctx.v("vtotalannualtechnologyactivitybymode")
    rows = ctx.rows("""select r.val as r, t.val as t, m.val as m, y.val as y, ys.l as l, cast(ys.val as real) as ys
        from REGION r, TECHNOLOGY t, MODE_OF_OPERATION m, YEAR y, YearSplit_def ys
        where ys.y = y.val
        order by r.val, t.val, m.val, y.val""")
    ctx.stream(family, rows, key_of("r", "t", "m", "y"),
               lambda row: vact[row.r, row.l, row.t, row.m, row.y] * row.ys,
               lambda g: (ctx.lsum(g.terms), "==", vannual[g.key]))
    ctx.created(family)


def model_period_cost(ctx: ModelContext) -> None:
    """Acc4: model period cost of a region."""
    family = "Acc4_ModelPeriodCostByRegion"
    vcost = ctx.v("vtotaldiscountedcost")
    vperiod = ctx.v("vmodelperiodcostbyregion")
    years = ctx.dimension("y")
    for r in ctx.dimension("r"):
        ctx.constrain(family, ctx.lsum(vcost[r, y] for y in years), "==", vperiod[r])
    ctx.created(family)


def add_accounting_constraints(ctx: ModelContext) -> None:
    if ctx.requested("vproductionbytechnology"):
        production_by_technology(ctx)
    if ctx.requested("vusebytechnology"):
        use_by_technology(ctx)
    annual_activity_by_mode(ctx)
    if ctx.requested("vmodelperiodcostbyregion"):
        model_period_cost(ctx)
