# pynemo/model/constraints/transmission.py

"""
Transmission line constraints and the nodal energy balance.

Lines are either built exogenously (construction year given) or are build
options chosen at most once. Flow over a line follows a DC power flow
formulation (types 1 and 2) or a pipeline formulation (type 3); see
``pynemo.constants`` for the type codes.
"""

import logging

from ...constants import DCOPF_BIG_M, TRANSMISSION_DCOPF, TRANSMISSION_DCOPF_DISJUNCTIVE, TRANSMISSION_PIPELINE
from ..context import ModelContext
from ..streaming import key_of

logger = logging.getLogger(__name__)

_NODAL_FLOW_SQL = """select n.val as n, ys.l as l, f.val as f, y.val as y, cast(ys.val as real) as ys,
null as tr, null as trneg, null as eff, tme.type as type, cast(tcta.val as real) as tcta
from NODE n, YearSplit_def ys, FUEL f, YEAR y, TransmissionModelingEnabled tme,
TransmissionCapacityToActivityUnit_def tcta
where ys.y = y.val
and tme.r = n.r and tme.f = f.val and tme.y = y.val
and tcta.f = f.val
and not exists (select 1 from TransmissionLine tl, NODE n2, TransmissionModelingEnabled tme2
    where n.val = tl.n1 and f.val = tl.f and tl.n2 = n2.val
    and n2.r = tme2.r and tl.f = tme2.f and y.val = tme2.y and tme.type = tme2.type)
and not exists (select 1 from TransmissionLine tl, NODE n2, TransmissionModelingEnabled tme2
    where n.val = tl.n2 and f.val = tl.f and tl.n1 = n2.val
    and n2.r = tme2.r and tl.f = tme2.f and y.val = tme2.y and tme.type = tme2.type)
union all
select n.val as n, ys.l as l, f.val as f, y.val as y, cast(ys.val as real) as ys,
tl.id as tr, null as trneg, null as eff, tme.type as type, cast(tcta.val as real) as tcta
from NODE n, YearSplit_def ys, FUEL f, YEAR y, TransmissionModelingEnabled tme,
TransmissionLine tl, NODE n2, TransmissionModelingEnabled tme2, TransmissionCapacityToActivityUnit_def tcta
where ys.y = y.val
and tme.r = n.r and tme.f = f.val and tme.y = y.val
and tcta.f = f.val
and n.val = tl.n1 and f.val = tl.f and tl.n2 = n2.val
and n2.r = tme2.r and tl.f = tme2.f and y.val = tme2.y and tme.type = tme2.type
union all
select n.val as n, ys.l as l, f.val as f, y.val as y, cast(ys.val as real) as ys,
null as tr, tl.id as trneg, cast(tl.efficiency as real) as eff, tme.type as type, cast(tcta.val as real) as tcta
from NODE n, YearSplit_def ys, FUEL f, YEAR y, TransmissionModelingEnabled tme,
TransmissionLine tl, NODE n2, TransmissionModelingEnabled tme2, TransmissionCapacityToActivityUnit_def tcta
where ys.y = y.val
and tme.r = n.r and tme.f = f.val and tme.y = y.val
and tcta.f = f.val
and n.val = tl.n2 and f.val = tl.f and tl.n1 = n2.val
and n2.r = tme2.r and tl.f = tme2.f and y.val = tme2.y and tme.type = tme2.type
order by n, f, y, l"""


def sum_built(ctx: ModelContext) -> None:
    """Tr1: a line is built in at most one year."""
    family = "Tr1_SumBuilt"
    vbuilt = ctx.v("vtransmissionbuilt")
    years = ctx.dimension("y")
    for tr in ctx.dimension("tr"):
        ctx.constrain(family, ctx.lsum(vbuilt[tr, y] for y in years), "<=", 1)
    ctx.created(family)


def transmission_exists(ctx: ModelContext) -> None:
    """
    Tr2: whether a line exists in a year.

    Exogenous lines exist from their construction year for their operational
    life. Endogenous lines exist when they were built within the preceding
    operational life.
    """
    family = "Tr2_TransmissionExists"
    vbuilt = ctx.v("vtransmissionbuilt")
    vexists = ctx.v("vtransmissionexists")
    rows = ctx.rows("""select tl.id as tr, tl.yconstruction as yconstruction, tl.operationallife as ol,
        y.val as y, null as yy
        from TransmissionLine tl, YEAR y
        where tl.yconstruction is not null
        union all
        select tl.id as tr, tl.yconstruction as yconstruction, tl.operationallife as ol, y.val as y, yy.val as yy
        from TransmissionLine tl, YEAR y, YEAR yy
        where tl.yconstruction is null
        and cast(yy.val as integer) + tl.operationallife > cast(y.val as integer)
        and cast(yy.val as integer) <= cast(y.val as integer)
        order by tr, y""")

    def build(g):
        tr, y = g.key
        if g.terms:
            return ctx.lsum(g.terms), "==", vexists[tr, y]
        start = int(g.last.yconstruction)
        exists = 1 if start <= int(y) < start + int(g.last.ol) else 0
        return vexists[tr, y], "==", exists

    ctx.stream(family, rows, key_of("tr", "y"),
               lambda row: vbuilt[row.tr, row.yy] if row.yy is not None else None,
               build)
    ctx.created(family)


def line_flow(ctx: ModelContext) -> None:
    """
    Tr3 to Tr5: flow over each line.

    DC power flow lines carry flow proportional to the voltage angle
    difference over the line's reactance while the line exists; the
    coupling is written in big-M form. Flow on every line type is bounded by
    its maximum flow while it exists.
    """
    flow, flowa, maxflow, minflow = "Tr3_Flow", "Tr3a_Flow", "Tr4_MaxFlow", "Tr5_MinFlow"
    vflow = ctx.v("vtransmissionbyline")
    vexists = ctx.v("vtransmissionexists")
    vangle = ctx.v("vvoltageangle") if ctx.flags.voltage_angles else None

    for row in ctx.query_rows("queryvtransmissionbyline"):
        line = vflow[row.tr, row.l, row.f, row.y]
        exists = vexists[row.tr, row.y]
        if row.type in (TRANSMISSION_DCOPF, TRANSMISSION_DCOPF_DISJUNCTIVE):
            angle = (vangle[row.n1, row.l, row.y] - vangle[row.n2, row.l, row.y]) * (1 / row.reactance)
            ctx.constrain(flow, line - angle, "<=", (1 - exists) * DCOPF_BIG_M)
            ctx.constrain(flowa, line - angle, ">=", (exists - 1) * DCOPF_BIG_M)
        elif row.type != TRANSMISSION_PIPELINE:
            logger.warning(f"Unknown transmission modelling type {row.type} for line {row.tr}.")
            continue
        ctx.constrain(maxflow, line, "<=", exists * row.maxflow)
        ctx.constrain(minflow, line, ">=", -exists * row.maxflow)
    ctx.created(flow, flowa, maxflow, minflow)


def nodal_balance(ctx: ModelContext) -> None:
    """
    EBa11Tr and EBb4: nodal production covers demand, use and net flow out
    of the node; annual net transmission sums the time-slice flows.

    Pipeline flow arriving at a node is reduced by the line's efficiency.
    """
    balance, annual = "EBa11Tr_EnergyBalanceEachTS5", "EBb4_EnergyBalanceEachYear"
    vprod, vdemand, vuse = ctx.v("vproductionnodal"), ctx.v("vdemandnodal"), ctx.v("vusenodal")
    vflow = ctx.v("vtransmissionbyline")
    vannual = ctx.v("vtransmissionannual")
    known = (TRANSMISSION_DCOPF, TRANSMISSION_DCOPF_DISJUNCTIVE, TRANSMISSION_PIPELINE)

    def net_flow(row):
        energy = row.ys * row.tcta
        if row.tr is not None and row.type in known:
            return vflow[row.tr, row.l, row.f, row.y] * energy
        if row.trneg is not None and row.type in known:
            if row.type == TRANSMISSION_PIPELINE:
                energy *= row.eff if row.eff is not None else 1.0
            return -vflow[row.trneg, row.l, row.f, row.y] * energy
        return None

    rows = list(ctx.rows(_NODAL_FLOW_SQL))
    ctx.stream(balance, rows, key_of("n", "l", "f", "y"), net_flow,
               lambda g: (vprod[g.key], ">=", vdemand[g.key] + vuse[g.key] + ctx.lsum(g.terms)))
    ctx.stream(annual, rows, key_of("n", "f", "y"), net_flow,
               lambda g: (vannual[g.key], "==", ctx.lsum(g.terms)))
    ctx.created(balance, annual)


def add_transmission_constraints(ctx: ModelContext) -> None:
    sum_built(ctx)
    transmission_exists(ctx)
    line_flow(ctx)
    nodal_balance(ctx)
