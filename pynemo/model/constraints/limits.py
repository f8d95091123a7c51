# pynemo/model/constraints/limits.py

"""
Capacity and activity limits, reserve margin and renewable energy targets.
"""

import logging

from ..context import ModelContext
from ..streaming import key_of

logger = logging.getLogger(__name__)


def _parameter_bound(ctx: ModelContext, family: str, variable: str, sql: str, sense: str) -> None:
    var = ctx.v(variable)
    # Index columns come first, the bound last
    for row in ctx.rows(sql):
        ctx.constrain(family, var[tuple(row[:-1])], sense, row.val)
    ctx.created(family)


def capacity_limits(ctx: ModelContext) -> None:
    """TCC1, TCC2, NCC1 and NCC2: bounds on total and new capacity."""
    _parameter_bound(ctx, "TCC1_TotalAnnualMaxCapacityConstraint", "vtotalcapacityannual",
                     "select r, t, y, cast(val as real) as val from TotalAnnualMaxCapacity_def", "<=")
    _parameter_bound(ctx, "TCC2_TotalAnnualMinCapacityConstraint", "vtotalcapacityannual",
                     "select r, t, y, cast(val as real) as val from TotalAnnualMinCapacity_def where val > 0", ">=")
    _parameter_bound(ctx, "NCC1_TotalAnnualMaxNewCapacityConstraint", "vnewcapacity",
                     "select r, t, y, cast(val as real) as val from TotalAnnualMaxCapacityInvestment_def", "<=")
    _parameter_bound(ctx, "NCC2_TotalAnnualMinNewCapacityConstraint", "vnewcapacity",
                     "select r, t, y, cast(val as real) as val from TotalAnnualMinCapacityInvestment_def "
                     "where val > 0", ">=")


def annual_activity(ctx: ModelContext) -> None:
    """AAC1 to AAC3: annual technology activity and its limits."""
    flags = ctx.flags
    if not flags.annual_activity:
        return

    family = "AAC1_TotalAnnualTechnologyActivity"
    vtotal, vannual = ctx.v("vrateoftotalactivity"), ctx.v("vtotaltechnologyannualactivity")
    rows = ctx.rows("""select r.val as r, t.val as t, ys.y as y, ys.l as l, cast(ys.val as real) as ys
        from REGION r, TECHNOLOGY t, YearSplit_def ys
        order by r.val, t.val, ys.y""")
    ctx.stream(family, rows, key_of("r", "t", "y"),
               lambda row: vtotal[row.r, row.t, row.l, row.y] * row.ys,
               lambda g: (ctx.lsum(g.terms), "==", vannual[g.key]))
    ctx.created(family)

    if flags.annual_activity_upper_limits:
        _parameter_bound(ctx, "AAC2_TotalAnnualTechnologyActivityUpperLimit", "vtotaltechnologyannualactivity",
                         "select r, t, y, cast(val as real) as val from TotalTechnologyAnnualActivityUpperLimit_def",
                         "<=")
    if flags.annual_activity_lower_limits:
        _parameter_bound(ctx, "AAC3_TotalAnnualTechnologyActivityLowerLimit", "vtotaltechnologyannualactivity",
                         "select r, t, y, cast(val as real) as val from TotalTechnologyAnnualActivityLowerLimit_def "
                         "where val > 0", ">=")


def model_period_activity(ctx: ModelContext) -> None:
    """TAC1 to TAC3: model-period technology activity and its limits."""
    flags = ctx.flags
    if not flags.modelperiod_activity:
        return

    family = "TAC1_TotalModelHorizonTechnologyActivity"
    vannual, vperiod = ctx.v("vtotaltechnologyannualactivity"), ctx.v("vtotaltechnologymodelperiodactivity")
    years = ctx.dimension("y")
    for r in ctx.dimension("r"):
        for t in ctx.dimension("t"):
            ctx.constrain(family, ctx.lsum(vannual[r, t, y] for y in years), "==", vperiod[r, t])
    ctx.created(family)

    if flags.modelperiod_activity_upper_limits:
        _parameter_bound(ctx, "TAC2_TotalModelHorizonTechnologyActivityUpperLimit",
                         "vtotaltechnologymodelperiodactivity",
                         "select r, t, cast(val as real) as val from TotalTechnologyModelPeriodActivityUpperLimit_def",
                         "<=")
    if flags.modelperiod_activity_lower_limits:
        _parameter_bound(ctx, "TAC3_TotalModelHorizonTechnologyActivityLowerLimit",
                         "vtotaltechnologymodelperiodactivity",
                         "select r, t, cast(val as real) as val from TotalTechnologyModelPeriodActivityLowerLimit_def "
                         "where val > 0", ">=")


def reserve_margin(ctx: ModelContext) -> None:
    """
    RM1 to RM3: capacity tagged for the reserve margin, in activity units,
    covers tagged production scaled by the reserve margin in every time
    slice.
    """
    capacity, demand, margin = ("RM1_ReserveMargin_TechnologiesIncluded_In_Activity_Units",
                                "RM2_ReserveMargin_FuelsIncluded", "RM3_ReserveMargin_Constraint")
    vcapacity, vreserve = ctx.v("vtotalcapacityannual"), ctx.v("vtotalcapacityinreservemargin")
    vproduction, vneeding = ctx.v("vrateofproduction"), ctx.v("vdemandneedingreservemargin")

    rows = ctx.rows("""select r.val as r, y.val as y, rmt.t as t, cast(rmt.val as real) as rmt, cast(cau.val as real) as cau
        from REGION r, YEAR y, ReserveMarginTagTechnology_def rmt, CapacityToActivityUnit_def cau
        where rmt.r = r.val and rmt.t = cau.t and rmt.y = y.val and rmt.val <> 0
        and cau.r = r.val and cau.val <> 0
        order by r.val, y.val""")
    ctx.stream(capacity, rows, key_of("r", "y"),
               lambda row: vcapacity[row.r, row.t, row.y] * (row.rmt * row.cau),
               lambda g: (ctx.lsum(g.terms), "==", vreserve[g.key]))
    ctx.created(capacity)

    rows = ctx.rows("""select r.val as r, l.val as l, y.val as y, rmf.f as f, cast(rmf.val as real) as rmf
        from REGION r, TIMESLICE l, YEAR y, ReserveMarginTagFuel_def rmf
        where rmf.r = r.val and rmf.y = y.val and rmf.val <> 0
        order by r.val, l.val, y.val""")
    ctx.stream(demand, rows, key_of("r", "l", "y"),
               lambda row: vproduction[row.r, row.l, row.f, row.y] * row.rmf,
               lambda g: (ctx.lsum(g.terms), "==", vneeding[g.key]))
    ctx.created(demand)

    for row in ctx.rows("""select r.val as r, l.val as l, y.val as y, cast(rm.val as real) as rm
        from REGION r, TIMESLICE l, YEAR y, ReserveMargin_def rm
        where rm.r = r.val and rm.y = y.val"""):
        ctx.constrain(margin, vneeding[row.r, row.l, row.y] * row.rm, "<=", vreserve[row.r, row.y])
    ctx.created(margin)


def _annual_by_technology(ctx: ModelContext, family: str, query: str, annual: str, rate_nn: str,
                          rate_nodal: str) -> None:
    vannual, vrate = ctx.v(annual), ctx.v(rate_nn)
    vnodal = ctx.v(rate_nodal) if ctx.flags.transmission else None

    def term(row):
        if row.n is None:
            return vrate[row.r, row.l, row.t, row.f, row.y] * row.ys
        if vnodal is not None:
            return vnodal[row.n, row.l, row.t, row.f, row.y] * row.ys
        return None

    ctx.stream(family, ctx.query_rows(query), key_of("r", "t", "f", "y"), term,
               lambda g: (ctx.lsum(g.terms), "==", vannual[g.key]))
    ctx.created(family)


def production_by_technology_annual(ctx: ModelContext) -> None:
    """RE1: annual production by technology, regional and nodal."""
    _annual_by_technology(ctx, "RE1_FuelProductionByTechnologyAnnual", "queryvproductionbytechnologyannual",
                          "vproductionbytechnologyannual", "vrateofproductionbytechnologynn",
                          "vrateofproductionbytechnologynodal")


def use_by_technology_annual(ctx: ModelContext) -> None:
    """Annual use by technology, regional and nodal."""
    _annual_by_technology(ctx, "FuelUseByTechnologyAnnual", "queryvusebytechnologyannual",
                          "vusebytechnologyannual", "vrateofusebytechnologynn", "vrateofusebytechnologynodal")


def renewable_target(ctx: ModelContext) -> None:
    """
    RE2 to RE4: production of renewable-tagged technologies covers the
    minimum renewable share of production of target fuels.
    """
    included, target, energy = "RE2_TechIncluded", "RE3_FuelIncluded", "RE4_EnergyConstraint"
    vbytech, vrenewable = ctx.v("vproductionbytechnologyannual"), ctx.v("vtotalreproductionannual")
    vproduction, vtarget = ctx.v("vrateofproduction"), ctx.v("vretotalproductionoftargetfuelannual")

    rows = ctx.rows("""select r.val as r, y.val as y, oar.t as t, oar.f as f, cast(ret.val as real) as ret
        from REGION r, YEAR y, RETagTechnology_def ret,
        (select distinct r, t, f, y from OutputActivityRatio_def where val <> 0) oar
        where oar.r = r.val and oar.t = ret.t and oar.y = y.val
        and ret.r = r.val and ret.y = y.val and ret.val <> 0
        order by r.val, y.val""")
    ctx.stream(included, rows, key_of("r", "y"),
               lambda row: vbytech[row.r, row.t, row.f, row.y] * row.ret,
               lambda g: (ctx.lsum(g.terms), "==", vrenewable[g.key]))
    ctx.created(included)

    rows = ctx.rows("""select r.val as r, y.val as y, ys.l as l, rtf.f as f, cast(ys.val as real) as ys,
        cast(rtf.val as real) as rtf
        from REGION r, YEAR y, YearSplit_def ys, RETagFuel_def rtf
        where ys.y = y.val and ys.val <> 0
        and rtf.r = r.val and rtf.y = y.val and rtf.val <> 0
        order by r.val, y.val""")
    ctx.stream(target, rows, key_of("r", "y"),
               lambda row: vproduction[row.r, row.l, row.f, row.y] * (row.ys * row.rtf),
               lambda g: (ctx.lsum(g.terms), "==", vtarget[g.key]))
    ctx.created(target)

    for row in ctx.rows("""select ry.r as r, ry.y as y, cast(rmp.val as real) as rmp
        from (select distinct oar.r as r, oar.y as y
            from OutputActivityRatio_def oar, RETagTechnology_def ret
            where oar.val <> 0
            and ret.r = oar.r and ret.t = oar.t and ret.y = oar.y and ret.val <> 0
            intersect
            select distinct rtf.r as r, rtf.y as y
            from YearSplit_def ys, RETagFuel_def rtf
            where ys.y = rtf.y and rtf.val <> 0) ry, REMinProductionTarget_def rmp
        where rmp.r = ry.r and rmp.y = ry.y"""):
        ctx.constrain(energy, vtarget[row.r, row.y] * row.rmp, "<=", vrenewable[row.r, row.y])
    ctx.created(energy)


def add_limit_constraints(ctx: ModelContext) -> None:
    capacity_limits(ctx)
    annual_activity(ctx)
    model_period_activity(ctx)
    reserve_margin(ctx)
    production_by_technology_annual(ctx)
    use_by_technology_annual(ctx)
    renewable_target(ctx)
