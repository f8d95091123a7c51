# pynemo/model/constraints/capacity.py

"""
Capacity and activity constraints.

Accumulates new capacity over operational lives, links total capacity to
residual capacity, aggregates activity across modes and nodes, bounds
activity by capacity, and limits ramping between consecutive time slices.
"""

import itertools
import logging

from ..context import ModelContext
from ..streaming import key_of
from ...query.catalogue import NODAL_ACTIVITY_SQL

logger = logging.getLogger(__name__)

# Time slices in hierarchy order with the preceding time slice across the year
_LTGS = """ltgs as (select ltg.tg1, tg1.[order] as tg1o, ltg.tg2, tg2.[order] as tg2o, ltg.l, ltg.lorder,
lag(ltg.l) over (order by tg1.[order], tg2.[order], ltg.lorder) as prior_l
from LTsGroup ltg, TSGROUP1 tg1, TSGROUP2 tg2
where ltg.tg1 = tg1.name and ltg.tg2 = tg2.name)"""

# Ramping resets at the start of every group 1 period (1) or every group 2 period (2)
_RAMP_FILTER = """where not (tg1o = 1 and tg2o = 1 and lorder = 1)
and not (rrs >= 1 and tg2o = 1 and lorder = 1)
and not (rrs = 2 and lorder = 1)"""


def total_new_capacity(ctx: ModelContext) -> None:
    """CAa1: accumulated new capacity is the new capacity still within its operational life."""
    family = "CAa1_TotalNewCapacity"
    vnew = ctx.v("vnewcapacity")
    vacc = ctx.v("vaccumulatednewcapacity")
    rows = ctx.rows("""select r.val as r, t.val as t, y.val as y, yy.val as yy
        from REGION r, TECHNOLOGY t, YEAR y, OperationalLife_def ol, YEAR yy
        where ol.r = r.val and ol.t = t.val
        and y.val - yy.val < ol.val and y.val - yy.val >= 0
        order by r.val, t.val, y.val""")
    ctx.stream(family, rows, key_of("r", "t", "y"),
               lambda row: vnew[row.r, row.t, row.yy],
               lambda g: (ctx.lsum(g.terms), "==", vacc[g.key]))
    ctx.created(family)


def total_annual_capacity(ctx: ModelContext) -> None:
    """CAa2: total capacity is accumulated new capacity plus residual capacity."""
    family = "CAa2_TotalAnnualCapacity"
    vacc = ctx.v("vaccumulatednewcapacity")
    vtotal = ctx.v("vtotalcapacityannual")
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y, cast(rc.val as real) as rc
        from REGION r, TECHNOLOGY t, YEAR y
        left join ResidualCapacity_def rc on rc.r = r.val and rc.t = t.val and rc.y = y.val"""):
        rc = row.rc if row.rc is not None else 0.0
        ctx.constrain(family, vacc[row.r, row.t, row.y] + rc, "==", vtotal[row.r, row.t, row.y])
    ctx.created(family)


def rate_of_activity_nodal(ctx: ModelContext) -> None:
    """VRateOfActivity1: regional activity of nodal technologies is the sum of their nodal activity."""
    family = "VRateOfActivity1"
    vnodal = ctx.v("vrateofactivitynodal")
    vact = ctx.v("vrateofactivity")
    rows = ctx.query_rows("queryvrateofactivitynodal", order=["r", "l", "t", "m", "y", "n"])
    ctx.stream(family, rows, key_of("r", "l", "t", "m", "y"),
               lambda row: vnodal[row.n, row.l, row.t, row.m, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vact[g.key]))
    ctx.created(family)


def ramp_rate(ctx: ModelContext) -> None:
    """RampRate: activity may change between consecutive time slices by at most the ramp rate."""
    family = "RampRate"
    vact = ctx.v("vrateofactivity")
    vtotal = ctx.v("vtotalcapacityannual")
    nodal = ""
    nodal_join = ""
    if ctx.flags.transmission:
        # Technologies modelled nodally ramp through RampRateTr instead
        nodal = f", nodal as ({NODAL_ACTIVITY_SQL})"
        nodal_join = ("left join (select distinct r, t, m, y, n from nodal) nd "
                      "on nd.r = rr.r and nd.t = rr.t and nd.y = rr.y and nd.m = m.val")
    sql = f"""with {_LTGS}{nodal}
        select * from (
        select rr.r as r, rr.t as t, rr.y as y, rr.l as l, m.val as m, cast(rr.val as real) as rr,
        ltgs.tg1o as tg1o, ltgs.tg2o as tg2o, ltgs.lorder as lorder, ltgs.prior_l as prior_l,
        case rrs.val when 0 then 0 when 1 then 1 else 2 end as rrs,
        cast(cf.val as real) as cf, cast(cta.val as real) as cta
        {', nd.n as n' if nodal else ', null as n'}
        from RampRate_def rr, ltgs, CapacityFactor_def cf, CapacityToActivityUnit_def cta, MODE_OF_OPERATION m
        left join RampingReset_def rrs on rr.r = rrs.r
        {nodal_join}
        where rr.l = ltgs.l
        and rr.val <> 1.0
        and rr.r = cf.r and rr.t = cf.t and rr.l = cf.l and rr.y = cf.y
        and rr.r = cta.r and rr.t = cta.t)
        {_RAMP_FILTER}
        and n is null"""
    for row in ctx.rows(sql):
        limit = vtotal[row.r, row.t, row.y] * (row.rr * row.cf * row.cta)
        current = vact[row.r, row.l, row.t, row.m, row.y]
        prior = vact[row.r, row.prior_l, row.t, row.m, row.y]
        ctx.constrain(family, current, "<=", prior + limit)
        ctx.constrain(family, current, ">=", prior - limit)
    ctx.created(family)


def ramp_rate_nodal(ctx: ModelContext) -> None:
    """RampRateTr: ramping limit for nodal activity, scaled by the nodal capacity share."""
    family = "RampRateTr"
    vnodal = ctx.v("vrateofactivitynodal")
    vtotal = ctx.v("vtotalcapacityannual")
    sql = f"""with {_LTGS}, nodal as ({NODAL_ACTIVITY_SQL})
        select * from (
        select distinct rr.r as r, nd.n as n, rr.t as t, rr.y as y, rr.l as l, nd.m as m, cast(rr.val as real) as rr,
        ltgs.tg1o as tg1o, ltgs.tg2o as tg2o, ltgs.lorder as lorder, ltgs.prior_l as prior_l,
        case rrs.val when 0 then 0 when 1 then 1 else 2 end as rrs,
        cast(cf.val as real) as cf, cast(cta.val as real) as cta, cast(ntc.val as real) as ntc
        from RampRate_def rr, ltgs, CapacityFactor_def cf, CapacityToActivityUnit_def cta,
        NodalDistributionTechnologyCapacity_def ntc,
        (select distinct n, r, t, m, y from nodal) nd
        left join RampingReset_def rrs on rr.r = rrs.r
        where rr.l = ltgs.l
        and rr.val <> 1.0
        and rr.r = cf.r and rr.t = cf.t and rr.l = cf.l and rr.y = cf.y
        and rr.r = cta.r and rr.t = cta.t
        and nd.r = rr.r and nd.t = rr.t and nd.y = rr.y
        and ntc.n = nd.n and ntc.t = rr.t and ntc.y = rr.y)
        {_RAMP_FILTER}"""
    for row in ctx.rows(sql):
        limit = vtotal[row.r, row.t, row.y] * (row.ntc * row.rr * row.cf * row.cta)
        current = vnodal[row.n, row.l, row.t, row.m, row.y]
        prior = vnodal[row.n, row.prior_l, row.t, row.m, row.y]
        ctx.constrain(family, current, "<=", prior + limit)
        ctx.constrain(family, current, ">=", prior - limit)
    ctx.created(family)


def total_activity(ctx: ModelContext) -> None:
    """CAa3: total activity of a technology is the sum over its modes."""
    family = "CAa3_TotalActivityOfEachTechnology"
    vact = ctx.v("vrateofactivity")
    vtotal = ctx.v("vrateoftotalactivity")
    modes = ctx.dimension("m")
    for r, t, l, y in itertools.product(ctx.dimension("r"), ctx.dimension("t"), ctx.dimension("l"), ctx.dimension("y")):
        ctx.constrain(family, ctx.lsum(vact[r, l, t, m, y] for m in modes), "==", vtotal[r, t, l, y])
    ctx.created(family)


def total_activity_nodal(ctx: ModelContext) -> None:
    """CAa3Tr: total nodal activity of a technology is the sum over its modes."""
    family = "CAa3Tr_TotalActivityOfEachTechnology"
    vnodal = ctx.v("vrateofactivitynodal")
    vtotal = ctx.v("vrateoftotalactivitynodal")
    rows = ctx.query_rows("queryvrateofactivitynodal", order=["n", "t", "l", "y"])
    ctx.stream(family, rows, key_of("n", "t", "l", "y"),
               lambda row: vnodal[row.n, row.l, row.t, row.m, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vtotal[g.key]))
    ctx.created(family)


def capacity_limit(ctx: ModelContext) -> None:
    """CAa4: activity cannot exceed available capacity."""
    family = "CAa4_Constraint_Capacity"
    vtotalact = ctx.v("vrateoftotalactivity")
    vcap = ctx.v("vtotalcapacityannual")
    for row in ctx.rows("""select r.val as r, l.val as l, t.val as t, y.val as y,
        cast(cf.val as real) as cf, cast(cta.val as real) as cta
        from REGION r, TIMESLICE l, TECHNOLOGY t, YEAR y, CapacityFactor_def cf, CapacityToActivityUnit_def cta
        where cf.r = r.val and cf.t = t.val and cf.l = l.val and cf.y = y.val
        and cta.r = r.val and cta.t = t.val"""):
        ctx.constrain(family, vtotalact[row.r, row.t, row.l, row.y], "<=",
                      vcap[row.r, row.t, row.y] * (row.cf * row.cta))
    ctx.created(family)


def capacity_limit_nodal(ctx: ModelContext) -> None:
    """CAa4Tr: nodal activity cannot exceed the node's share of capacity."""
    family = "CAa4Tr_Constraint_Capacity"
    vnodal = ctx.v("vrateoftotalactivitynodal")
    vcap = ctx.v("vtotalcapacityannual")
    for row in ctx.rows("""select ntc.n as n, ntc.t as t, l.val as l, ntc.y as y, n.r as r,
        cast(ntc.val as real) as ntc, cast(cf.val as real) as cf, cast(cta.val as real) as cta
        from NodalDistributionTechnologyCapacity_def ntc, TIMESLICE l, NODE n,
        CapacityFactor_def cf, CapacityToActivityUnit_def cta
        where ntc.val > 0
        and ntc.n = n.val
        and cf.r = n.r and cf.t = ntc.t and cf.l = l.val and cf.y = ntc.y
        and cta.r = n.r and cta.t = ntc.t"""):
        ctx.constrain(family, vnodal[row.n, row.t, row.l, row.y], "<=",
                      vcap[row.r, row.t, row.y] * (row.ntc * row.cf * row.cta))
    ctx.created(family)


def new_capacity_units(ctx: ModelContext) -> None:
    """CAa5: new capacity comes in whole technology units where a unit size is given."""
    family = "CAa5_TotalNewCapacity"
    vunits = ctx.v("vnumberofnewtechnologyunits")
    vnew = ctx.v("vnewcapacity")
    for row in ctx.rows("""select cot.r as r, cot.t as t, cot.y as y, cast(cot.val as real) as cot
        from CapacityOfOneTechnologyUnit_def cot where cot.val <> 0"""):
        ctx.constrain(family, row.cot * vunits[row.r, row.t, row.y], "==", vnew[row.r, row.t, row.y])
    ctx.created(family)


def add_capacity_constraints(ctx: ModelContext) -> None:
    total_new_capacity(ctx)
    total_annual_capacity(ctx)
    if ctx.flags.transmission:
        rate_of_activity_nodal(ctx)
    ramp_rate(ctx)
    if ctx.flags.transmission:
        ramp_rate_nodal(ctx)
    total_activity(ctx)
    if ctx.flags.transmission:
        total_activity_nodal(ctx)
    capacity_limit(ctx)
    if ctx.flags.transmission:
        capacity_limit_nodal(ctx)
    new_capacity_units(ctx)
