# pynemo/model/constraints/balance.py

"""
Demand, production, use and energy balance constraints.

Production and use are derived from activity through the activity ratios,
first by technology and mode, then by technology, then by fuel. Regions and
fuels modelled nodally are balanced per node instead; their regional rates
are the sums of the nodal rates.
"""

import itertools
import logging

from ..context import ModelContext
from ..streaming import key_of

logger = logging.getLogger(__name__)

DEMAND_SQL = """select sdp.r as r, sdp.f as f, sdp.l as l, sdp.y as y,
cast(sdp.val as real) as sdp, cast(sad.val as real) as sad, cast(ys.val as real) as ys
from SpecifiedDemandProfile_def sdp, SpecifiedAnnualDemand_def sad, YearSplit_def ys
left join TransmissionModelingEnabled tme on tme.r = sad.r and tme.f = sad.f and tme.y = sad.y
where sad.r = sdp.r and sad.f = sdp.f and sad.y = sdp.y
and ys.l = sdp.l and ys.y = sdp.y
and sdp.val <> 0 and sad.val <> 0 and ys.val <> 0
and tme.id is null"""

# Regional rows with the nodes of each region where the fuel is modelled nodally
_REGIONAL_NODES_SQL = """select r.val as r, l.val as l, f.val as f, y.val as y, tme.id as tme, n.val as n
from REGION r, TIMESLICE l, FUEL f, YEAR y, YearSplit_def ys
left join TransmissionModelingEnabled tme on tme.r = r.val and tme.f = f.val and tme.y = y.val
left join NODE n on n.r = r.val
where ys.l = l.val and ys.y = y.val
order by r.val, l.val, f.val, y.val"""

_NODAL_BY_MODE_SQL = """select ntc.n as n, ys.l as l, ntc.t as t, ar.f as f, ntc.y as y, m.val as m,
cast(ar.val as real) as ratio
from NodalDistributionTechnologyCapacity_def ntc, YearSplit_def ys, MODE_OF_OPERATION m, NODE n,
{ratio}_def ar, TransmissionModelingEnabled tme
where ntc.val > 0
and ntc.y = ys.y
and ntc.n = n.val
and ar.r = n.r and ar.t = ntc.t and ar.m = m.val and ar.y = ntc.y
and ar.val > 0
and tme.r = n.r and tme.f = ar.f and tme.y = ntc.y
order by ntc.n, ys.l, ntc.t, ar.f, ntc.y"""


def specified_demand(ctx: ModelContext) -> None:
    """EQ_SpecifiedDemand: rate of demand in each time slice."""
    family = "EQ_SpecifiedDemand"
    vrate = ctx.v("vrateofdemandnn")
    for row in ctx.rows(DEMAND_SQL):
        ctx.constrain(family, row.sad * row.sdp / row.ys, "==", vrate[row.r, row.l, row.f, row.y])
    ctx.created(family)


# ---- production ---------------------------------------------------------

def production_by_mode(ctx: ModelContext) -> None:
    """EBa1: production by technology and mode follows activity and the output ratio."""
    family = "EBa1_RateOfFuelProduction1"
    vact = ctx.v("vrateofactivity")
    vprod = ctx.v("vrateofproductionbytechnologybymodenn")
    for row in ctx.query_rows("queryvrateofproductionbytechnologybymodenn"):
        ctx.constrain(family, vact[row.r, row.l, row.t, row.m, row.y] * row.oar, "==",
                      vprod[row.r, row.l, row.t, row.m, row.f, row.y])
    ctx.created(family)


def production_by_technology(ctx: ModelContext) -> None:
    """EBa2: production by technology sums activity times output ratio over modes."""
    family = "EBa2_RateOfFuelProduction2"
    vact = ctx.v("vrateofactivity")
    vprod = ctx.v("vrateofproductionbytechnologynn")
    ctx.stream(family, ctx.query_rows("queryvrateofproductionbytechnologybymodenn"),
               key_of("r", "l", "t", "f", "y"),
               lambda row: vact[row.r, row.l, row.t, row.m, row.y] * row.oar,
               lambda g: (ctx.lsum(g.terms), "==", vprod[g.key]))
    ctx.created(family)


def production_by_technology_nodal(ctx: ModelContext) -> None:
    """EBa2Tr: nodal production by technology."""
    family = "EBa2Tr_RateOfFuelProduction2"
    vact = ctx.v("vrateofactivitynodal")
    vprod = ctx.v("vrateofproductionbytechnologynodal")
    ctx.stream(family, ctx.rows(_NODAL_BY_MODE_SQL.format(ratio="OutputActivityRatio")),
               key_of("n", "l", "t", "f", "y"),
               lambda row: vact[row.n, row.l, row.t, row.m, row.y] * row.ratio,
               lambda g: (ctx.lsum(g.terms), "==", vprod[g.key]))
    ctx.created(family)


def production(ctx: ModelContext) -> None:
    """EBa3: production of a fuel sums production by technology; zero where no technology produces it."""
    family = "EBa3_RateOfFuelProduction3"
    vbytech = ctx.v("vrateofproductionbytechnologynn")
    vprod = ctx.v("vrateofproductionnn")
    ctx.stream(family, ctx.query_rows("queryvrateofproductionbytechnologynn"),
               key_of("r", "l", "f", "y"),
               lambda row: vbytech[row.r, row.l, row.t, row.f, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vprod[g.key]))

    for row in ctx.rows("""select r.val as r, l.val as l, f.val as f, y.val as y
        from REGION r, TIMESLICE l, FUEL f, YEAR y
        left join TransmissionModelingEnabled tme on tme.r = r.val and tme.f = f.val and tme.y = y.val
        left join (select distinct r, t, f, y from OutputActivityRatio_def where val <> 0) oar
        on oar.r = r.val and oar.f = f.val and oar.y = y.val
        where tme.id is null and oar.t is null"""):
        ctx.constrain(family, 0, "==", vprod[row.r, row.l, row.f, row.y])
    ctx.created(family)


def production_nodal(ctx: ModelContext) -> None:
    """EBa3Tr: nodal production of a fuel; zero at nodes where no distributed technology produces it."""
    family = "EBa3Tr_RateOfFuelProduction3"
    vbytech = ctx.v("vrateofproductionbytechnologynodal")
    vprod = ctx.v("vrateofproductionnodal")
    ctx.stream(family, ctx.query_rows("queryvrateofproductionbytechnologynodal"),
               key_of("n", "l", "f", "y"),
               lambda row: vbytech[row.n, row.l, row.t, row.f, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vprod[g.key]))

    producing = ctx.query("queryvrateofproductionbytechnologynodal")
    covered = set(zip(producing["n"], producing["l"], producing["f"], producing["y"]))
    for row in ctx.rows("""select n.val as n, l.val as l, tme.f as f, tme.y as y
        from NODE n, TIMESLICE l, TransmissionModelingEnabled tme
        where n.r = tme.r"""):
        if (row.n, row.l, row.f, row.y) not in covered:
            ctx.constrain(family, 0, "==", vprod[row.n, row.l, row.f, row.y])
    ctx.created(family)


def _regional_from_nodal(ctx: ModelContext, family: str, total: str, nn: str, nodal: str) -> None:
    vtotal = ctx.v(total)
    vnn = ctx.v(nn)
    if not ctx.flags.transmission:
        for key in itertools.product(ctx.dimension("r"), ctx.dimension("l"), ctx.dimension("f"), ctx.dimension("y")):
            ctx.constrain(family, vtotal[key], "==", vnn[key])
        ctx.created(family)
        return

    vnodal = ctx.v(nodal)

    def term(row):
        if row.tme is not None and row.n is not None:
            return vnodal[row.n, row.l, row.f, row.y]
        return None

    # Fuels not modelled nodally keep their regional rate
    ctx.stream(family, ctx.rows(_REGIONAL_NODES_SQL), key_of("r", "l", "f", "y"), term,
               lambda g: (ctx.lsum(g.terms) if g.terms else vnn[g.key], "==", vtotal[g.key]))
    ctx.created(family)


def regional_production(ctx: ModelContext) -> None:
    """VRateOfProduction1: total regional production combines nodal and non-nodal production."""
    _regional_from_nodal(ctx, "VRateOfProduction1", "vrateofproduction", "vrateofproductionnn", "vrateofproductionnodal")


# ---- use ----------------------------------------------------------------

def use_by_mode(ctx: ModelContext) -> None:
    """EBa4: use by technology and mode follows activity and the input ratio."""
    family = "EBa4_RateOfFuelUse1"
    vact = ctx.v("vrateofactivity")
    vuse = ctx.v("vrateofusebytechnologybymodenn")
    for row in ctx.query_rows("queryvrateofusebytechnologybymodenn"):
        ctx.constrain(family, vact[row.r, row.l, row.t, row.m, row.y] * row.iar, "==",
                      vuse[row.r, row.l, row.t, row.m, row.f, row.y])
    ctx.created(family)


def use_by_technology(ctx: ModelContext) -> None:
    """EBa5: use by technology sums activity times input ratio over modes."""
    family = "EBa5_RateOfFuelUse2"
    vact = ctx.v("vrateofactivity")
    vuse = ctx.v("vrateofusebytechnologynn")
    ctx.stream(family, ctx.query_rows("queryvrateofusebytechnologybymodenn"),
               key_of("r", "l", "t", "f", "y"),
               lambda row: vact[row.r, row.l, row.t, row.m, row.y] * row.iar,
               lambda g: (ctx.lsum(g.terms), "==", vuse[g.key]))
    ctx.created(family)


def use_by_technology_nodal(ctx: ModelContext) -> None:
    """EBa5Tr: nodal use by technology."""
    family = "EBa5Tr_RateOfFuelUse2"
    vact = ctx.v("vrateofactivitynodal")
    vuse = ctx.v("vrateofusebytechnologynodal")
    ctx.stream(family, ctx.rows(_NODAL_BY_MODE_SQL.format(ratio="InputActivityRatio")),
               key_of("n", "l", "t", "f", "y"),
               lambda row: vact[row.n, row.l, row.t, row.m, row.y] * row.ratio,
               lambda g: (ctx.lsum(g.terms), "==", vuse[g.key]))
    ctx.created(family)


def use(ctx: ModelContext) -> None:
    """EBa6: use of a fuel sums use by technology."""
    family = "EBa6_RateOfFuelUse3"
    vbytech = ctx.v("vrateofusebytechnologynn")
    vuse = ctx.v("vrateofusenn")
    ctx.stream(family, ctx.query_rows("queryvrateofusebytechnologynn"),
               key_of("r", "l", "f", "y"),
               lambda row: vbytech[row.r, row.l, row.t, row.f, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vuse[g.key]))
    ctx.created(family)


def use_nodal(ctx: ModelContext) -> None:
    """EBa6Tr: nodal use of a fuel."""
    family = "EBa6Tr_RateOfFuelUse3"
    vbytech = ctx.v("vrateofusebytechnologynodal")
    vuse = ctx.v("vrateofusenodal")
    ctx.stream(family, ctx.query_rows("queryvrateofusebytechnologynodal"),
               key_of("n", "l", "f", "y"),
               lambda row: vbytech[row.n, row.l, row.t, row.f, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vuse[g.key]))
    ctx.created(family)


def regional_use(ctx: ModelContext) -> None:
    """VRateOfUse1: total regional use combines nodal and non-nodal use."""
    _regional_from_nodal(ctx, "VRateOfUse1", "vrateofuse", "vrateofusenn", "vrateofusenodal")


# ---- time-slice balance -------------------------------------------------

def energy_per_timeslice(ctx: ModelContext) -> None:
    """EBa7 and EBa8: production and use in a time slice are rates times the year split."""
    produced, used = "EBa7_EnergyBalanceEachTS1", "EBa8_EnergyBalanceEachTS2"
    vrateprod, vprod = ctx.v("vrateofproductionnn"), ctx.v("vproductionnn")
    vrateuse, vuse = ctx.v("vrateofusenn"), ctx.v("vusenn")
    for row in ctx.rows("""select r.val as r, l.val as l, f.val as f, y.val as y, cast(ys.val as real) as ys
        from REGION r, TIMESLICE l, FUEL f, YEAR y, YearSplit_def ys
        left join TransmissionModelingEnabled tme on tme.r = r.val and tme.f = f.val and tme.y = y.val
        where ys.l = l.val and ys.y = y.val
        and tme.id is null"""):
        key = (row.r, row.l, row.f, row.y)
        ctx.constrain(produced, vrateprod[key] * row.ys, "==", vprod[key])
        ctx.constrain(used, vrateuse[key] * row.ys, "==", vuse[key])
    ctx.created(produced, used)


def energy_per_timeslice_nodal(ctx: ModelContext) -> None:
    """EBa7Tr and EBa8Tr: nodal production and use in a time slice."""
    produced, used = "EBa7Tr_EnergyBalanceEachTS1", "EBa8Tr_EnergyBalanceEachTS2"
    vrateprod, vprod = ctx.v("vrateofproductionnodal"), ctx.v("vproductionnodal")
    vrateuse, vuse = ctx.v("vrateofusenodal"), ctx.v("vusenodal")
    for row in ctx.rows("""select n.val as n, l.val as l, f.val as f, y.val as y, cast(ys.val as real) as ys
        from NODE n, TIMESLICE l, FUEL f, YEAR y, YearSplit_def ys, TransmissionModelingEnabled tme
        where ys.l = l.val and ys.y = y.val
        and tme.r = n.r and tme.f = f.val and tme.y = y.val"""):
        key = (row.n, row.l, row.f, row.y)
        ctx.constrain(produced, vrateprod[key] * row.ys, "==", vprod[key])
        ctx.constrain(used, vrateuse[key] * row.ys, "==", vuse[key])
    ctx.created(produced, used)


def demand(ctx: ModelContext) -> None:
    """EBa9: demand in a time slice is annual demand times the demand profile."""
    family = "EBa9_EnergyBalanceEachTS3"
    vdemand = ctx.v("vdemandnn")
    for row in ctx.rows(DEMAND_SQL):
        ctx.constrain(family, row.sad * row.sdp, "==", vdemand[row.r, row.l, row.f, row.y])
    ctx.created(family)


def demand_nodal(ctx: ModelContext) -> None:
    """EBa9Tr: nodal demand is the node's share of regional demand."""
    family = "EBa9Tr_EnergyBalanceEachTS3"
    vdemand = ctx.v("vdemandnodal")
    for row in ctx.rows("""select sdp.l as l, sdp.f as f, sdp.y as y, ndd.n as n,
        cast(sdp.val as real) as sdp, cast(sad.val as real) as sad, cast(ndd.val as real) as ndd
        from SpecifiedDemandProfile_def sdp, SpecifiedAnnualDemand_def sad, TransmissionModelingEnabled tme,
        NodalDistributionDemand_def ndd, NODE n
        where sad.r = sdp.r and sad.f = sdp.f and sad.y = sdp.y
        and sdp.val <> 0 and sad.val <> 0
        and tme.r = sad.r and tme.f = sad.f and tme.y = sad.y
        and ndd.n = n.val
        and n.r = sad.r and ndd.f = sad.f and ndd.y = sad.y
        and ndd.val > 0"""):
        ctx.constrain(family, row.sad * row.sdp * row.ndd, "==", vdemand[row.n, row.l, row.f, row.y])
    ctx.created(family)


def trade_symmetry(ctx: ModelContext) -> None:
    """EBa10: trade from r to rr is the negative of trade from rr to r."""
    family = "EBa10_EnergyBalanceEachTS4"
    vtrade = ctx.v("vtrade")
    regions = ctx.dimension("r")
    for r, rr, l, f, y in itertools.product(regions, regions, ctx.dimension("l"), ctx.dimension("f"),
                                            ctx.dimension("y")):
        ctx.constrain(family, vtrade[r, rr, l, f, y], "==", -vtrade[rr, r, l, f, y])
    ctx.created(family)


def timeslice_balance(ctx: ModelContext) -> None:
    """EBa11: production covers demand, use and net exports along trade routes."""
    family = "EBa11_EnergyBalanceEachTS5"
    vprod, vdemand, vuse = ctx.v("vproductionnn"), ctx.v("vdemandnn"), ctx.v("vusenn")
    vtrade = ctx.v("vtrade")
    rows = ctx.rows("""select r.val as r, l.val as l, f.val as f, y.val as y, tr.rr as rr,
        cast(tr.val as real) as trv
        from REGION r, TIMESLICE l, FUEL f, YEAR y
        left join TradeRoute_def tr on tr.r = r.val and tr.f = f.val and tr.y = y.val
        left join TransmissionModelingEnabled tme on tme.r = r.val and tme.f = f.val and tme.y = y.val
        where tme.id is null
        order by r.val, l.val, f.val, y.val""")
    ctx.stream(family, rows, key_of("r", "l", "f", "y"),
               lambda row: vtrade[row.r, row.rr, row.l, row.f, row.y] * row.trv if row.rr is not None else None,
               lambda g: (vprod[g.key], ">=", vdemand[g.key] + vuse[g.key] + ctx.lsum(g.terms)))
    ctx.created(family)


# ---- annual balance -----------------------------------------------------

def _annual_sum(ctx: ModelContext, family: str, outer: str, timesliced: str, annual: str) -> None:
    vts = ctx.v(timesliced)
    vannual = ctx.v(annual)
    timeslices = ctx.dimension("l")
    for a, f, y in itertools.product(ctx.dimension(outer), ctx.dimension("f"), ctx.dimension("y")):
        ctx.constrain(family, ctx.lsum(vts[a, l, f, y] for l in timeslices), "==", vannual[a, f, y])
    ctx.created(family)


def annual_sums(ctx: ModelContext) -> None:
    """EBb0 to EBb2: annual demand, production and use sum their time-slice values."""
    _annual_sum(ctx, "EBb0_EnergyBalanceEachYear", "r", "vdemandnn", "vdemandannualnn")
    if ctx.flags.transmission:
        _annual_sum(ctx, "EBb0Tr_EnergyBalanceEachYear", "n", "vdemandnodal", "vdemandannualnodal")
    _annual_sum(ctx, "EBb1_EnergyBalanceEachYear", "r", "vproductionnn", "vproductionannualnn")
    if ctx.flags.transmission:
        _annual_sum(ctx, "EBb1Tr_EnergyBalanceEachYear", "n", "vproductionnodal", "vproductionannualnodal")
    _annual_sum(ctx, "EBb2_EnergyBalanceEachYear", "r", "vusenn", "vuseannualnn")
    if ctx.flags.transmission:
        _annual_sum(ctx, "EBb2Tr_EnergyBalanceEachYear", "n", "vusenodal", "vuseannualnodal")


def annual_trade(ctx: ModelContext) -> None:
    """EBb3: annual trade sums trade over time slices."""
    family = "EBb3_EnergyBalanceEachYear"
    vtrade = ctx.v("vtrade")
    vannual = ctx.v("vtradeannual")
    regions = ctx.dimension("r")
    timeslices = ctx.dimension("l")
    for r, rr, f, y in itertools.product(regions, regions, ctx.dimension("f"), ctx.dimension("y")):
        ctx.constrain(family, ctx.lsum(vtrade[r, rr, l, f, y] for l in timeslices), "==", vannual[r, rr, f, y])
    ctx.created(family)


def annual_balance(ctx: ModelContext) -> None:
    """EBb5: annual production covers annual demand, use, net trade and accumulated annual demand."""
    family = "EBb5_EnergyBalanceEachYear"
    vprod, vdemand, vuse = ctx.v("vproductionannualnn"), ctx.v("vdemandannualnn"), ctx.v("vuseannualnn")
    vtrade = ctx.v("vtradeannual")
    rows = ctx.rows("""select r.val as r, f.val as f, y.val as y, cast(aad.val as real) as aad,
        tr.rr as rr, cast(tr.val as real) as trv
        from REGION r, FUEL f, YEAR y
        left join TradeRoute_def tr on tr.r = r.val and tr.f = f.val and tr.y = y.val
        left join AccumulatedAnnualDemand_def aad on aad.r = r.val and aad.f = f.val and aad.y = y.val
        left join TransmissionModelingEnabled tme on tme.r = r.val and tme.f = f.val and tme.y = y.val
        where tme.id is null
        order by r.val, f.val, y.val""")

    def build(g):
        aad = g.last.aad if g.last.aad is not None else 0.0
        return vprod[g.key], ">=", vdemand[g.key] + vuse[g.key] + ctx.lsum(g.terms) + aad

    ctx.stream(family, rows, key_of("r", "f", "y"),
               lambda row: vtrade[row.r, row.rr, row.f, row.y] * row.trv if row.rr is not None else None,
               build)
    ctx.created(family)


def annual_balance_nodal(ctx: ModelContext) -> None:
    """EBb5Tr: nodal annual balance carrying the node's share of accumulated annual demand."""
    family = "EBb5Tr_EnergyBalanceEachYear"
    vprod, vdemand, vuse = ctx.v("vproductionannualnodal"), ctx.v("vdemandannualnodal"), ctx.v("vuseannualnodal")
    vtrans = ctx.v("vtransmissionannual")
    for row in ctx.rows("""select ndd.n as n, ndd.f as f, ndd.y as y, cast(ndd.val as real) as ndd,
        cast(aad.val as real) as aad
        from NodalDistributionDemand_def ndd, NODE n, TransmissionModelingEnabled tme, AccumulatedAnnualDemand_def aad
        where ndd.n = n.val
        and tme.r = n.r and tme.f = ndd.f and tme.y = ndd.y
        and aad.r = n.r and aad.f = ndd.f and aad.y = ndd.y
        and aad.val > 0"""):
        key = (row.n, row.f, row.y)
        ctx.constrain(family, vprod[key], ">=", vdemand[key] + vuse[key] + vtrans[key] + row.aad * row.ndd)
    ctx.created(family)


def add_production_and_use_constraints(ctx: ModelContext) -> None:
    """Time-slice demand, production, use and balance families."""
    transmission = ctx.flags.transmission
    if ctx.requested("vrateofdemandnn"):
        specified_demand(ctx)
    if ctx.requested("vrateofproductionbytechnologybymodenn"):
        production_by_mode(ctx)
    production_by_technology(ctx)
    if transmission:
        production_by_technology_nodal(ctx)
    production(ctx)
    if transmission:
        production_nodal(ctx)
    regional_production(ctx)
    if ctx.requested("vrateofusebytechnologybymodenn"):
        use_by_mode(ctx)
    use_by_technology(ctx)
    if transmission:
        use_by_technology_nodal(ctx)
    use(ctx)
    if transmission:
        use_nodal(ctx)
    regional_use(ctx)
    energy_per_timeslice(ctx)
    if transmission:
        energy_per_timeslice_nodal(ctx)
    demand(ctx)
    if transmission:
        demand_nodal(ctx)
    trade_symmetry(ctx)
    timeslice_balance(ctx)


def add_annual_balance_constraints(ctx: ModelContext) -> None:
    """Annual demand, production, use, trade and balance families."""
    annual_sums(ctx)
    annual_trade(ctx)
    annual_balance(ctx)
    if ctx.flags.transmission:
        annual_balance_nodal(ctx)
