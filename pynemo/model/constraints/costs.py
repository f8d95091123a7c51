# pynemo/model/constraints/costs.py

"""
Cost constraints: capital investment, salvage value, operating cost and
total discounted cost, for technologies and transmission lines.

All costs are discounted to the first year of the horizon. Operating costs
are discounted to the middle of their year. Transmission line costs are
assigned to the region of the line's first node.
"""

import logging
from typing import List

from ..context import ModelContext
from ..streaming import key_of

logger = logging.getLogger(__name__)

_TECHNOLOGY_DISCOUNT_SQL = """select r.val as r, t.val as t, y.val as y, cast(dr.val as real) as dr
from REGION r, TECHNOLOGY t, YEAR y, DiscountRate_def dr
where dr.r = r.val"""

_LINE_DISCOUNT_SQL = """select tl.id as tr, y.val as y, cast(dr.val as real) as dr
from TransmissionLine tl, NODE n, YEAR y, DiscountRate_def dr
where tl.n1 = n.val
and n.r = dr.r"""


def _discount(rate: float, years: float) -> float:
    return 1 / (1 + rate) ** years


def capital_investment(ctx: ModelContext, technology_rates: List, line_rates: List) -> None:
    """CC1 and CC2: undiscounted and discounted capital investment."""
    family = "CC1_UndiscountedCapitalInvestment"
    vnew, vcapital = ctx.v("vnewcapacity"), ctx.v("vcapitalinvestment")
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y, cast(cc.val as real) as cc
        from REGION r, TECHNOLOGY t, YEAR y, CapitalCost_def cc
        where cc.r = r.val and cc.t = t.val and cc.y = y.val"""):
        key = (row.r, row.t, row.y)
        ctx.constrain(family, vnew[key] * row.cc, "==", vcapital[key])
    ctx.created(family)

    if ctx.flags.transmission:
        family = "CC1Tr_UndiscountedCapitalInvestment"
        vbuilt, vline = ctx.v("vtransmissionbuilt"), ctx.v("vcapitalinvestmenttransmission")
        for row in ctx.rows("""select tl.id as tr, y.val as y, cast(tl.capitalcost as real) as cc
            from TransmissionLine tl, YEAR y
            where tl.capitalcost is not null"""):
            ctx.constrain(family, vbuilt[row.tr, row.y] * row.cc, "==", vline[row.tr, row.y])
        ctx.created(family)

    first = int(ctx.first_year)
    family = "CC2_DiscountingCapitalInvestment"
    vdiscounted = ctx.v("vdiscountedcapitalinvestment")
    for row in technology_rates:
        key = (row.r, row.t, row.y)
        ctx.constrain(family, vcapital[key] * _discount(row.dr, int(row.y) - first), "==", vdiscounted[key])
    ctx.created(family)

    if ctx.flags.transmission:
        family = "CC2Tr_DiscountingCapitalInvestment"
        vline, vdline = ctx.v("vcapitalinvestmenttransmission"), ctx.v("vdiscountedcapitalinvestmenttransmission")
        for row in line_rates:
            key = (row.tr, row.y)
            ctx.constrain(family, vline[key] * _discount(row.dr, int(row.y) - first), "==", vdline[key])
        ctx.created(family)


def salvage_value(ctx: ModelContext, technology_rates: List, line_rates: List) -> None:
    """
    SV1 to SV4: salvage value at the end of the horizon.

    Depreciation method 1 with a positive discount rate leaves the share of
    discounted value remaining at the end of the horizon (SV1). Method 2, or
    method 1 without discounting, leaves the share of operational life
    remaining (SV2). Capacity retiring within the horizon has no salvage
    value (SV3). SV4 discounts salvage value to the first year.
    """
    first, last = int(ctx.first_year), int(ctx.last_year)
    transmission = ctx.flags.transmission
    vnew, vsalvage = ctx.v("vnewcapacity"), ctx.v("vsalvagevalue")
    vbuilt = ctx.v("vtransmissionbuilt") if transmission else None
    vlinesalvage = ctx.v("vsalvagevaluetransmission") if transmission else None

    def remaining_discounted(row) -> float:
        return 1 - ((1 + row.dr) ** (last - int(row.y) + 1) - 1) / ((1 + row.dr) ** row.ol - 1)

    def remaining_life(row) -> float:
        return 1 - (last - int(row.y) + 1) / row.ol

    family = "SV1_SalvageValueAtEndOfPeriod1"
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y, cast(cc.val as real) as cc,
        cast(dr.val as real) as dr, cast(ol.val as real) as ol
        from REGION r, TECHNOLOGY t, YEAR y, DepreciationMethod_def dm, OperationalLife_def ol, DiscountRate_def dr,
        CapitalCost_def cc
        where dm.r = r.val and dm.val = 1
        and ol.r = r.val and ol.t = t.val
        and y.val + ol.val - 1 > ?
        and dr.r = r.val and dr.val > 0
        and cc.r = r.val and cc.t = t.val and cc.y = y.val""", (last,)):
        key = (row.r, row.t, row.y)
        ctx.constrain(family, vsalvage[key], "==", vnew[key] * (row.cc * remaining_discounted(row)))
    ctx.created(family)

    if transmission:
        family = "SV1Tr_SalvageValueAtEndOfPeriod1"
        for row in ctx.rows("""select tl.id as tr, y.val as y, cast(tl.capitalcost as real) as cc,
            cast(tl.operationallife as real) as ol, cast(dr.val as real) as dr
            from TransmissionLine tl, NODE n, YEAR y, DepreciationMethod_def dm, DiscountRate_def dr
            where tl.capitalcost is not null
            and tl.n1 = n.val
            and dm.r = n.r and dr.r = n.r
            and y.val + tl.operationallife - 1 > ?
            and dm.val = 1 and dr.val > 0""", (last,)):
            key = (row.tr, row.y)
            ctx.constrain(family, vlinesalvage[key], "==", vbuilt[key] * (row.cc * remaining_discounted(row)))
        ctx.created(family)

    family = "SV2_SalvageValueAtEndOfPeriod2"
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y, cast(cc.val as real) as cc, cast(ol.val as real) as ol
        from REGION r, TECHNOLOGY t, YEAR y, DepreciationMethod_def dm, OperationalLife_def ol, DiscountRate_def dr,
        CapitalCost_def cc
        where dm.r = r.val and dm.val = 1
        and ol.r = r.val and ol.t = t.val
        and y.val + ol.val - 1 > ?
        and dr.r = r.val and dr.val = 0
        and cc.r = r.val and cc.t = t.val and cc.y = y.val
        union
        select r.val as r, t.val as t, y.val as y, cast(cc.val as real) as cc, cast(ol.val as real) as ol
        from REGION r, TECHNOLOGY t, YEAR y, DepreciationMethod_def dm, OperationalLife_def ol, CapitalCost_def cc
        where dm.r = r.val and dm.val = 2
        and ol.r = r.val and ol.t = t.val
        and y.val + ol.val - 1 > ?
        and cc.r = r.val and cc.t = t.val and cc.y = y.val""", (last, last)):
        key = (row.r, row.t, row.y)
        ctx.constrain(family, vsalvage[key], "==", vnew[key] * (row.cc * remaining_life(row)))
    ctx.created(family)

    if transmission:
        family = "SV2Tr_SalvageValueAtEndOfPeriod2"
        for row in ctx.rows("""select tl.id as tr, y.val as y, cast(tl.capitalcost as real) as cc,
            cast(tl.operationallife as real) as ol
            from TransmissionLine tl, NODE n, YEAR y, DepreciationMethod_def dm, DiscountRate_def dr
            where tl.capitalcost is not null
            and tl.n1 = n.val
            and dm.r = n.r and dr.r = n.r
            and y.val + tl.operationallife - 1 > ?
            and ((dm.val = 1 and dr.val = 0) or dm.val = 2)""", (last,)):
            key = (row.tr, row.y)
            ctx.constrain(family, vlinesalvage[key], "==", vbuilt[key] * (row.cc * remaining_life(row)))
        ctx.created(family)

    family = "SV3_SalvageValueAtEndOfPeriod3"
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y
        from REGION r, TECHNOLOGY t, YEAR y, OperationalLife_def ol
        where ol.r = r.val and ol.t = t.val
        and y.val + ol.val - 1 <= ?""", (last,)):
        ctx.constrain(family, vsalvage[row.r, row.t, row.y], "==", 0)
    ctx.created(family)

    if transmission:
        family = "SV3Tr_SalvageValueAtEndOfPeriod3"
        for row in ctx.rows("""select tl.id as tr, y.val as y
            from TransmissionLine tl, YEAR y
            where tl.capitalcost is not null
            and y.val + tl.operationallife - 1 <= ?""", (last,)):
            ctx.constrain(family, vlinesalvage[row.tr, row.y], "==", 0)
        ctx.created(family)

    family = "SV4_SalvageValueDiscountedToStartYear"
    vdsalvage = ctx.v("vdiscountedsalvagevalue")
    for row in technology_rates:
        key = (row.r, row.t, row.y)
        ctx.constrain(family, vdsalvage[key], "==", vsalvage[key] * _discount(row.dr, last - first + 1))
    ctx.created(family)

    if transmission:
        family = "SV4Tr_SalvageValueDiscountedToStartYear"
        vdline = ctx.v("vdiscountedsalvagevaluetransmission")
        for row in line_rates:
            key = (row.tr, row.y)
            ctx.constrain(family, vdline[key], "==", vlinesalvage[key] * _discount(row.dr, last - first + 1))
        ctx.created(family)


def operating_cost(ctx: ModelContext, technology_rates: List, line_rates: List) -> None:
    """
    OC1 to OC4: variable, fixed and total operating costs and their
    discounted values. OCTr: operating cost of a transmission line is its
    variable cost on flow plus its fixed cost while it exists.
    """
    first = int(ctx.first_year)
    vvariable, vfixed, voperating = (ctx.v("vannualvariableoperatingcost"), ctx.v("vannualfixedoperatingcost"),
                                     ctx.v("voperatingcost"))

    family = "OC1_OperatingCostsVariable"
    vbymode = ctx.v("vtotalannualtechnologyactivitybymode")
    rows = ctx.rows("""select r.val as r, t.val as t, y.val as y, vc.m as m, cast(vc.val as real) as vc
        from REGION r, TECHNOLOGY t, YEAR y, VariableCost_def vc
        where vc.r = r.val and vc.t = t.val and vc.y = y.val
        and vc.val <> 0
        order by r.val, t.val, y.val""")
    ctx.stream(family, rows, key_of("r", "t", "y"),
               lambda row: vbymode[row.r, row.t, row.m, row.y] * row.vc,
               lambda g: (ctx.lsum(g.terms), "==", vvariable[g.key]))
    ctx.created(family)

    family = "OC2_OperatingCostsFixedAnnual"
    vcapacity = ctx.v("vtotalcapacityannual")
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y, cast(fc.val as real) as fc
        from REGION r, TECHNOLOGY t, YEAR y, FixedCost_def fc
        where fc.r = r.val and fc.t = t.val and fc.y = y.val"""):
        key = (row.r, row.t, row.y)
        ctx.constrain(family, vcapacity[key] * row.fc, "==", vfixed[key])
    ctx.created(family)

    family = "OC3_OperatingCostsTotalAnnual"
    for r in ctx.dimension("r"):
        for t in ctx.dimension("t"):
            for y in ctx.dimension("y"):
                ctx.constrain(family, vfixed[r, t, y] + vvariable[r, t, y], "==", voperating[r, t, y])
    ctx.created(family)

    if ctx.flags.transmission:
        family = "OCTr_OperatingCosts"
        vflow, vexists = ctx.v("vtransmissionbyline"), ctx.v("vtransmissionexists")
        vline = ctx.v("voperatingcosttransmission")

        def line_cost(g):
            fc = g.last.fc if g.last.fc is not None else 0.0
            return ctx.lsum(g.terms) + vexists[g.key] * fc, "==", vline[g.key]

        ctx.stream(family, ctx.query_rows("queryvtransmissionbyline", order=["tr", "y"]), key_of("tr", "y"),
                   lambda row: vflow[row.tr, row.l, row.f, row.y] * (row.ys * row.tcta * row.vc)
                   if row.vc is not None else None,
                   line_cost)
        ctx.created(family)

    family = "OC4_DiscountedOperatingCostsTotalAnnual"
    vdoperating = ctx.v("vdiscountedoperatingcost")
    for row in technology_rates:
        key = (row.r, row.t, row.y)
        ctx.constrain(family, voperating[key] * _discount(row.dr, int(row.y) - first + 0.5), "==", vdoperating[key])
    ctx.created(family)

    if ctx.flags.transmission:
        family = "OC4Tr_DiscountedOperatingCostsTotalAnnual"
        vline, vdline = ctx.v("voperatingcosttransmission"), ctx.v("vdiscountedoperatingcosttransmission")
        for row in line_rates:
            key = (row.tr, row.y)
            ctx.constrain(family, vline[key] * _discount(row.dr, int(row.y) - first + 0.5), "==", vdline[key])
        ctx.created(family)


def total_discounted_cost(ctx: ModelContext) -> None:
    """
    TDC1: total discounted cost of a technology. TDCTr: total discounted
    transmission cost of a region. TDC2: total discounted cost of a region,
    which is what the objective minimises.
    """
    family = "TDC1_TotalDiscountedCostByTechnology"
    voperating, vcapital = ctx.v("vdiscountedoperatingcost"), ctx.v("vdiscountedcapitalinvestment")
    vpenalty, vsalvage = ctx.v("vdiscountedtechnologyemissionspenalty"), ctx.v("vdiscountedsalvagevalue")
    vtechnology = ctx.v("vtotaldiscountedcostbytechnology")
    regions, technologies, years = ctx.dimension("r"), ctx.dimension("t"), ctx.dimension("y")
    for r in regions:
        for t in technologies:
            for y in years:
                key = (r, t, y)
                ctx.constrain(family, voperating[key] + vcapital[key] + vpenalty[key] - vsalvage[key],
                              "==", vtechnology[key])
    ctx.created(family)

    transmission = ctx.flags.transmission
    if transmission:
        family = "TDCTr_TotalDiscountedTransmissionCostByRegion"
        vdcapital = ctx.v("vdiscountedcapitalinvestmenttransmission")
        vdsalvage = ctx.v("vdiscountedsalvagevaluetransmission")
        vdoperating = ctx.v("vdiscountedoperatingcosttransmission")
        vregion = ctx.v("vtotaldiscountedtransmissioncostbyregion")
        rows = ctx.rows("""select n.r as r, tl.id as tr, y.val as y
            from TransmissionLine tl, NODE n, YEAR y
            where tl.n1 = n.val
            order by n.r, y.val""")
        ctx.stream(family, rows, key_of("r", "y"),
                   lambda row: vdcapital[row.tr, row.y] - vdsalvage[row.tr, row.y] + vdoperating[row.tr, row.y],
                   lambda g: (ctx.lsum(g.terms), "==", vregion[g.key]))
        ctx.created(family)

    family = "TDC2_TotalDiscountedCost"
    vstorage = ctx.v("vtotaldiscountedstoragecost")
    vtotal = ctx.v("vtotaldiscountedcost")
    storages = ctx.dimension("s")
    for r in regions:
        for y in years:
            terms = [vtechnology[r, t, y] for t in technologies] + [vstorage[r, s, y] for s in storages]
            if transmission:
                terms.append(ctx.v("vtotaldiscountedtransmissioncostbyregion")[r, y])
            ctx.constrain(family, ctx.lsum(terms), "==", vtotal[r, y])
    ctx.created(family)


def add_cost_constraints(ctx: ModelContext) -> None:
    technology_rates = list(ctx.rows(_TECHNOLOGY_DISCOUNT_SQL))
    line_rates = list(ctx.rows(_LINE_DISCOUNT_SQL)) if ctx.flags.transmission else []
    capital_investment(ctx, technology_rates, line_rates)
    salvage_value(ctx, technology_rates, line_rates)
    operating_cost(ctx, technology_rates, line_rates)
    total_discounted_cost(ctx)
