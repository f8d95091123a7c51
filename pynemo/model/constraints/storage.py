# pynemo/model/constraints/storage.py

"""
Storage constraints.

Storage levels are tracked at the end of the first hour of each time slice
and at the start and end of every time-slice group and year; see
``pynemo.model.timeslices`` for how each position finds its predecessor.
Storage distributed to nodes (the ``nodalstorage`` working table) is modelled
with nodal level variables instead of regional ones; level bounds, starting
levels and minimum charges are shared out by the node's capacity share.

Charge and discharge rates are in energy per year; levels are in energy.
"""

import logging

from ...constants import HOURS_PER_YEAR
from ..context import ModelContext
from ..streaming import key_of
from ..timeslices import SliceCase

logger = logging.getLogger(__name__)

# Starting level of each storage: StorageLevelStart scaled by the first year's residual capacity
_START_LEVEL = """left join (select sls.r as r, sls.s as s, sls.val * rsc.val as sls
    from StorageLevelStart_def sls, ResidualStorageCapacity_def rsc
    where sls.r = rsc.r and sls.s = rsc.s and rsc.y = ?) se on se.r = {r} and se.s = {s}"""

# Year-on-year change in residual storage capacity
_RESIDUAL_DELTA = """left join (select r, s, y, val - lag(val) over (partition by r, s order by y) as delta
    from ResidualStorageCapacity) rsc on rsc.r = {r} and rsc.s = {s} and rsc.y = {y}"""

_NOT_NODAL = "left join nodalstorage ns on ns.r = r.val and ns.s = s.val and ns.y = y.val"


def _family(code: str, name: str, nodal: bool) -> str:
    return f"{code}{'Tr' if nodal else ''}_{name}"


def _suffix(nodal: bool) -> str:
    return "nodal" if nodal else "nn"


# ---- charge and discharge -----------------------------------------------

def _charge_rate(ctx: ModelContext, code: str, name: str, link: str, rate: str, nodal: bool) -> None:
    family = _family(code, name, nodal)
    vrate = ctx.v(f"{rate}{_suffix(nodal)}")
    if nodal:
        vact = ctx.v("vrateofactivitynodal")
        rows = ctx.rows(f"""select distinct ns.n as loc, ns.s as s, l.val as l, ns.y as y, ts.m as m, ts.t as t
            from nodalstorage ns, TIMESLICE l, {link}_def ts,
            NodalDistributionTechnologyCapacity_def ntc, TransmissionModelingEnabled tme,
            (select r, t, f, m, y from OutputActivityRatio_def where val <> 0
            union
            select r, t, f, m, y from InputActivityRatio_def where val <> 0) ar
            where ts.r = ns.r and ts.s = ns.s and ts.val = 1
            and ntc.n = ns.n and ntc.t = ts.t and ntc.y = ns.y and ntc.val > 0
            and tme.r = ns.r and tme.f = ar.f and tme.y = ns.y
            and ar.r = ns.r and ar.t = ts.t and ar.m = ts.m and ar.y = ns.y
            order by ns.n, ns.s, l.val, ns.y""")
    else:
        vact = ctx.v("vrateofactivity")
        rows = ctx.rows(f"""select r.val as loc, s.val as s, l.val as l, y.val as y, ts.m as m, ts.t as t
            from REGION r, STORAGE s, TIMESLICE l, YEAR y, {link}_def ts
            {_NOT_NODAL}
            where ts.r = r.val and ts.s = s.val and ts.val = 1
            and ns.r is null
            order by r.val, s.val, l.val, y.val""")
    ctx.stream(family, rows, key_of("loc", "s", "l", "y"),
               lambda row: vact[row.loc, row.l, row.t, row.m, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vrate[g.key]))
    ctx.created(family)


def storage_charge(ctx: ModelContext, nodal: bool = False) -> None:
    """NS1: charging rate is the activity of technologies charging the storage."""
    _charge_rate(ctx, "NS1", "RateOfStorageCharge", "TechnologyToStorage", "vrateofstoragecharge", nodal)


def storage_discharge(ctx: ModelContext, nodal: bool = False) -> None:
    """NS2: discharging rate is the activity of technologies discharging the storage."""
    _charge_rate(ctx, "NS2", "RateOfStorageDischarge", "TechnologyFromStorage", "vrateofstoragedischarge", nodal)


# ---- level chaining -----------------------------------------------------

def _minimum_charge(row, vnew, residual: bool = True) -> object:
    """
    Minimum charge delivered with new endogenous capacity at the start of a
    year, and with new exogenous capacity when ``residual`` is set.
    """
    if row.msc is None:
        return 0
    delivered = row.msc * vnew[row.r, row.s, row.y]
    if residual and row.rsc_delta is not None and row.rsc_delta > 0:
        delivered = delivered + row.msc * row.rsc_delta
    return delivered


def storage_levels(ctx: ModelContext, nodal: bool = False) -> None:
    """
    NS3 to NS5: storage level at the start of each group and at the end of
    each time slice.

    The start of a time slice continues from its predecessor in the time
    hierarchy. At the start of the horizon the level is the starting level
    plus the minimum charge of new capacity; at the start of a later year it
    is the previous year's closing level plus the minimum charge of capacity
    delivered that year.
    """
    group1, group2, slice_end = (_family("NS3", "StorageLevelTsGroup1Start", nodal),
                                 _family("NS4", "StorageLevelTsGroup2Start", nodal),
                                 _family("NS5", "StorageLevelTimesliceEnd", nodal))
    suffix = _suffix(nodal)
    vg1start, vg1end = ctx.v(f"vstorageleveltsgroup1start{suffix}"), ctx.v(f"vstorageleveltsgroup1end{suffix}")
    vg2start, vg2end = ctx.v(f"vstorageleveltsgroup2start{suffix}"), ctx.v(f"vstorageleveltsgroup2end{suffix}")
    vtsend, vyearend = ctx.v(f"vstorageleveltsend{suffix}"), ctx.v(f"vstoragelevelyearend{suffix}")
    vcharge, vdischarge = ctx.v(f"vrateofstoragecharge{suffix}"), ctx.v(f"vrateofstoragedischarge{suffix}")
    vnew = ctx.v("vnewstoragecapacity")
    hierarchy = ctx.hierarchy

    if nodal:
        sql = f"""select ns.r as r, ns.n as loc, ns.s as s, ltg.l as l, ns.y as y, ltg.lorder as lo,
            ltg.tg2 as tg2, tg2.[order] as tg2o, ltg.tg1 as tg1, tg1.[order] as tg1o,
            cast(se.sls * ns.val as real) as sls, cast(msc.val * ns.val as real) as msc,
            cast(rsc.delta * ns.val as real) as rsc_delta
            from nodalstorage ns, LTsGroup ltg, TSGROUP2 tg2, TSGROUP1 tg1
            {_START_LEVEL.format(r="ns.r", s="ns.s")}
            left join MinStorageCharge_def msc on msc.r = ns.r and msc.s = ns.s and msc.y = ns.y
            {_RESIDUAL_DELTA.format(r="ns.r", s="ns.s", y="ns.y")}
            where ltg.tg2 = tg2.name and ltg.tg1 = tg1.name"""
    else:
        sql = f"""select r.val as r, r.val as loc, s.val as s, ltg.l as l, y.val as y, ltg.lorder as lo,
            ltg.tg2 as tg2, tg2.[order] as tg2o, ltg.tg1 as tg1, tg1.[order] as tg1o,
            cast(se.sls as real) as sls, cast(msc.val as real) as msc, cast(rsc.delta as real) as rsc_delta
            from REGION r, STORAGE s, YEAR y, LTsGroup ltg, TSGROUP2 tg2, TSGROUP1 tg1
            {_START_LEVEL.format(r="r.val", s="s.val")}
            {_NOT_NODAL}
            left join MinStorageCharge_def msc on msc.r = r.val and msc.s = s.val and msc.y = y.val
            {_RESIDUAL_DELTA.format(r="r.val", s="s.val", y="y.val")}
            where ltg.tg2 = tg2.name and ltg.tg1 = tg1.name
            and ns.r is null"""

    for row in ctx.rows(sql, (ctx.first_year,)):
        loc, s, y = row.loc, row.s, row.y
        case = hierarchy.classify(y, row.tg1o, row.tg2o, row.lo)
        if case is SliceCase.HORIZON_START:
            start = (row.sls if row.sls is not None else 0) + _minimum_charge(row, vnew, residual=False)
        elif case is SliceCase.YEAR_START:
            start = vyearend[loc, s, hierarchy.previous_year(y)] + _minimum_charge(row, vnew)
        elif case is SliceCase.GROUP1_START:
            start = vg1end[loc, s, hierarchy.previous_group1(row.tg1o), y]
        elif case is SliceCase.GROUP2_START:
            start = vg2end[loc, s, row.tg1, hierarchy.previous_group2(row.tg2o), y]
        else:
            start = vtsend[loc, s, hierarchy.previous_timeslice(row.tg1o, row.tg2o, row.lo), y]

        if hierarchy.starts_group1(case):
            ctx.constrain(group1, start, "==", vg1start[loc, s, row.tg1, y])
        if hierarchy.starts_group2(case):
            ctx.constrain(group2, start, "==", vg2start[loc, s, row.tg1, row.tg2, y])
        ctx.constrain(slice_end,
                      start + (vcharge[loc, s, row.l, y] - vdischarge[loc, s, row.l, y]) / HOURS_PER_YEAR,
                      "==", vtsend[loc, s, row.l, y])
    ctx.created(group1, group2, slice_end)


def group2_end(ctx: ModelContext, nodal: bool = False) -> None:
    """
    NS6: level at the end of a group 2 period, scaling the change over its
    time slices by the period's multiplier. NS6a: optionally the period nets
    to zero.
    """
    family, netzero = (_family("NS6", "StorageLevelTsGroup2End", nodal),
                       _family("NS6a", "StorageLevelTsGroup2NetZero", nodal))
    suffix = _suffix(nodal)
    vstart, vend = ctx.v(f"vstorageleveltsgroup2start{suffix}"), ctx.v(f"vstorageleveltsgroup2end{suffix}")
    vtsend = ctx.v(f"vstorageleveltsend{suffix}")
    if nodal:
        locations = "nodalstorage ns, STORAGE s"
        columns = "ns.n as loc, ns.y as y"
        where = "ns.s = s.val"
    else:
        locations = f"REGION r, YEAR y, STORAGE s {_NOT_NODAL}"
        columns = "r.val as loc, y.val as y"
        where = "ns.r is null"
    for row in ctx.rows(f"""select distinct {columns}, s.val as s, s.netzerotg2 as tg2nz,
        tg1.name as tg1, tg1.[order] as tg1o, tg2.name as tg2, tg2.[order] as tg2o, cast(tg2.multiplier as real) as tg2m
        from {locations}, LTsGroup ltg, TSGROUP1 tg1, TSGROUP2 tg2
        where {where}
        and ltg.tg1 = tg1.name and ltg.tg2 = tg2.name"""):
        key = (row.loc, row.s, row.tg1, row.tg2, row.y)
        last = ctx.hierarchy.last_timeslice(row.tg1o, row.tg2o)
        ctx.constrain(family, vstart[key] + (vtsend[row.loc, row.s, last, row.y] - vstart[key]) * row.tg2m,
                      "==", vend[key])
        if row.tg2nz == 1:
            ctx.constrain(netzero, vstart[key], "==", vend[key])
    ctx.created(family, netzero)


def group1_end(ctx: ModelContext, nodal: bool = False) -> None:
    """
    NS7: level at the end of a group 1 period, scaling the change over its
    group 2 periods by the period's multiplier. NS7a: optionally the period
    nets to zero (not needed when group 2 periods already net to zero).
    """
    family, netzero = (_family("NS7", "StorageLevelTsGroup1End", nodal),
                       _family("NS7a", "StorageLevelTsGroup1NetZero", nodal))
    suffix = _suffix(nodal)
    vstart, vend = ctx.v(f"vstorageleveltsgroup1start{suffix}"), ctx.v(f"vstorageleveltsgroup1end{suffix}")
    vg2end = ctx.v(f"vstorageleveltsgroup2end{suffix}")
    if nodal:
        locations = "nodalstorage ns, STORAGE s"
        columns = "ns.n as loc, ns.y as y"
        group = "ns.n, ns.y"
        where = "ns.s = s.val"
    else:
        locations = f"REGION r, YEAR y, STORAGE s {_NOT_NODAL}"
        columns = "r.val as loc, y.val as y"
        group = "r.val, y.val"
        where = "ns.r is null"
    for row in ctx.rows(f"""select {columns}, s.val as s,
        case s.netzerotg2 when 1 then 0 else s.netzerotg1 end as tg1nz,
        tg1.name as tg1, cast(tg1.multiplier as real) as tg1m, max(tg2.[order]) as maxtg2o
        from {locations}, TSGROUP1 tg1, LTsGroup ltg, TSGROUP2 tg2
        where {where}
        and tg1.name = ltg.tg1 and ltg.tg2 = tg2.name
        group by {group}, s.val, tg1.name, tg1.multiplier"""):
        key = (row.loc, row.s, row.tg1, row.y)
        last = ctx.hierarchy.group2_name(int(row.maxtg2o))
        ctx.constrain(family, vstart[key] + (vg2end[row.loc, row.s, row.tg1, last, row.y] - vstart[key]) * row.tg1m,
                      "==", vend[key])
        if row.tg1nz == 1:
            ctx.constrain(netzero, vstart[key], "==", vend[key])
    ctx.created(family, netzero)


def year_end(ctx: ModelContext, nodal: bool = False) -> None:
    """
    NS8: level at the end of a year is the level at its start plus net
    charging over its time slices. NS8a: optionally the year nets to zero
    (not needed when a time-slice group already nets to zero).
    """
    family, netzero = (_family("NS8", "StorageLevelYearEnd", nodal),
                       _family("NS8a", "StorageLevelYearEndNetZero", nodal))
    suffix = _suffix(nodal)
    vyearend = ctx.v(f"vstoragelevelyearend{suffix}")
    vcharge, vdischarge = ctx.v(f"vrateofstoragecharge{suffix}"), ctx.v(f"vrateofstoragedischarge{suffix}")
    vnew = ctx.v("vnewstoragecapacity")
    ynz = "case s.netzerotg2 when 1 then 0 else case s.netzerotg1 when 1 then 0 else s.netzeroyear end end as ynz"

    if nodal:
        sql = f"""select ns.r as r, ns.n as loc, s.val as s, {ynz},
            ns.y as y, ys.l as l, cast(ys.val as real) as ys,
            cast(se.sls * ns.val as real) as sls, cast(msc.val * ns.val as real) as msc,
            cast(rsc.delta * ns.val as real) as rsc_delta
            from nodalstorage ns, STORAGE s, YearSplit_def ys
            {_START_LEVEL.format(r="ns.r", s="ns.s")}
            left join MinStorageCharge_def msc on msc.r = ns.r and msc.s = s.val and msc.y = ns.y
            {_RESIDUAL_DELTA.format(r="ns.r", s="s.val", y="ns.y")}
            where ns.s = s.val and ns.y = ys.y
            order by ns.n, ns.s, ns.y"""
    else:
        sql = f"""select r.val as r, r.val as loc, s.val as s, {ynz},
            y.val as y, ys.l as l, cast(ys.val as real) as ys,
            cast(se.sls as real) as sls, cast(msc.val as real) as msc, cast(rsc.delta as real) as rsc_delta
            from REGION r, STORAGE s, YEAR y, YearSplit_def ys
            {_START_LEVEL.format(r="r.val", s="s.val")}
            {_NOT_NODAL}
            left join MinStorageCharge_def msc on msc.r = r.val and msc.s = s.val and msc.y = y.val
            {_RESIDUAL_DELTA.format(r="r.val", s="s.val", y="y.val")}
            where y.val = ys.y
            and ns.r is null
            order by r.val, s.val, y.val"""

    def build(g):
        loc, s, y = g.key
        row = g.last
        if y == ctx.first_year:
            start = row.sls if row.sls is not None else 0
        else:
            start = vyearend[loc, s, ctx.hierarchy.previous_year(y)]
        start = start + _minimum_charge(row, vnew)
        if row.ynz == 1:
            ctx.constrain(netzero, start, "==", vyearend[g.key])
        return start + ctx.lsum(g.terms), "==", vyearend[g.key]

    ctx.stream(family, ctx.rows(sql, (ctx.first_year,)), key_of("loc", "s", "y"),
               lambda row: (vcharge[row.loc, row.s, row.l, row.y] - vdischarge[row.loc, row.s, row.l, row.y]) * row.ys,
               build)
    ctx.created(family, netzero)


# ---- capacity and limits ------------------------------------------------

def storage_limits(ctx: ModelContext) -> None:
    """SI1 to SI3: upper and lower storage limits and accumulated new storage capacity."""
    upper, lower, total = "SI1_StorageUpperLimit", "SI2_StorageLowerLimit", "SI3_TotalNewStorage"
    vacc, vnew = ctx.v("vaccumulatednewstoragecapacity"), ctx.v("vnewstoragecapacity")
    vupper, vlower = ctx.v("vstorageupperlimit"), ctx.v("vstoragelowerlimit")

    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y, cast(rsc.val as real) as rsc
        from REGION r, STORAGE s, YEAR y
        left join ResidualStorageCapacity_def rsc on rsc.r = r.val and rsc.s = s.val and rsc.y = y.val"""):
        rsc = row.rsc if row.rsc is not None else 0
        ctx.constrain(upper, vacc[row.r, row.s, row.y] + rsc, "==", vupper[row.r, row.s, row.y])
    ctx.created(upper)

    for row in ctx.rows("""select msc.r as r, msc.s as s, msc.y as y, cast(msc.val as real) as msc
        from REGION r, STORAGE s, YEAR y, MinStorageCharge_def msc
        where msc.r = r.val and msc.s = s.val and msc.y = y.val"""):
        ctx.constrain(lower, row.msc * vupper[row.r, row.s, row.y], "==", vlower[row.r, row.s, row.y])
    ctx.created(lower)

    rows = ctx.rows("""select r.val as r, s.val as s, y.val as y, yy.val as yy
        from REGION r, STORAGE s, YEAR y, OperationalLifeStorage_def ols, YEAR yy
        where ols.r = r.val and ols.s = s.val
        and y.val - yy.val < ols.val and y.val - yy.val >= 0
        order by r.val, s.val, y.val""")
    ctx.stream(total, rows, key_of("r", "s", "y"),
               lambda row: vnew[row.r, row.s, row.yy],
               lambda g: (ctx.lsum(g.terms), "==", vacc[g.key]))
    ctx.created(total)


def _bounded_levels(ctx: ModelContext, code: str, name: str, level: str, columns: str, tables: str,
                    nodal: bool) -> None:
    """Keep a level family between the lower and upper storage limits, shared by capacity share at nodes."""
    lower, upper = _family(f"{code}a", f"{name}LowerLimit", nodal), _family(f"{code}b", f"{name}UpperLimit", nodal)
    vlevel = ctx.v(f"{level}{_suffix(nodal)}")
    vlower, vupper = ctx.v("vstoragelowerlimit"), ctx.v("vstorageupperlimit")
    if nodal:
        sql = f"""select distinct ns.r as r, ns.n as loc, ns.s as s, ns.y as y, cast(ns.val as real) as share, {columns}
            from nodalstorage ns, {tables}"""
    else:
        sql = f"""select distinct r.val as r, r.val as loc, s.val as s, y.val as y, 1.0 as share, {columns}
            from REGION r, STORAGE s, YEAR y, {tables}
            {_NOT_NODAL}
            where ns.r is null"""
    index = [c.split(" as ")[-1].strip() for c in columns.split(",")]
    for row in ctx.rows(sql):
        key = (row.loc, row.s) + tuple(getattr(row, c) for c in index) + (row.y,)
        limits = (row.r, row.s, row.y)
        ctx.constrain(lower, vlower[limits] * row.share, "<=", vlevel[key])
        ctx.constrain(upper, vlevel[key], "<=", vupper[limits] * row.share)
    ctx.created(lower, upper)


def timeslice_level_limits(ctx: ModelContext, nodal: bool = False) -> None:
    """NS9: time-slice levels stay within the storage limits."""
    _bounded_levels(ctx, "NS9", "StorageLevelTs", "vstorageleveltsend", "l.val as l", "TIMESLICE l", nodal)


def group2_level_limits(ctx: ModelContext, nodal: bool = False) -> None:
    """NS12: group 2 closing levels stay within the storage limits."""
    _bounded_levels(ctx, "NS12", "StorageLevelTsGroup2", "vstorageleveltsgroup2end",
                    "ltg.tg1 as tg1, ltg.tg2 as tg2", "(select distinct tg1, tg2 from LTsGroup) ltg", nodal)


def group1_level_limits(ctx: ModelContext, nodal: bool = False) -> None:
    """NS13: group 1 closing levels stay within the storage limits."""
    _bounded_levels(ctx, "NS13", "StorageLevelTsGroup1", "vstorageleveltsgroup1end",
                    "tg1.name as tg1", "TSGROUP1 tg1", nodal)


def _rate_limit(ctx: ModelContext, code: str, name: str, rate: str, parameter: str, nodal: bool) -> None:
    family = _family(code, name, nodal)
    vrate = ctx.v(f"{rate}{_suffix(nodal)}")
    if nodal:
        sql = f"""select ns.n as loc, ns.s as s, l.val as l, ns.y as y, cast(p.val as real) as limit_
            from nodalstorage ns, TIMESLICE l, {parameter}_def p
            where ns.r = p.r and ns.s = p.s"""
    else:
        sql = f"""select r.val as loc, s.val as s, l.val as l, y.val as y, cast(p.val as real) as limit_
            from REGION r, STORAGE s, TIMESLICE l, YEAR y, {parameter}_def p
            {_NOT_NODAL}
            where r.val = p.r and s.val = p.s
            and ns.r is null"""
    for row in ctx.rows(sql):
        ctx.constrain(family, vrate[row.loc, row.s, row.l, row.y], "<=", row.limit_)
    ctx.created(family)


def charge_limit(ctx: ModelContext, nodal: bool = False) -> None:
    """NS10: charging rate is bounded by the maximum charge rate."""
    _rate_limit(ctx, "NS10", "StorageChargeLimit", "vrateofstoragecharge", "StorageMaxChargeRate", nodal)


def discharge_limit(ctx: ModelContext, nodal: bool = False) -> None:
    """NS11: discharging rate is bounded by the maximum discharge rate."""
    _rate_limit(ctx, "NS11", "StorageDischargeLimit", "vrateofstoragedischarge", "StorageMaxDischargeRate", nodal)


def storage_capacity_limits(ctx: ModelContext) -> None:
    """NS14 to NS17: bounds on total storage capacity and on new storage capacity."""
    vupper, vnew = ctx.v("vstorageupperlimit"), ctx.v("vnewstoragecapacity")
    bounds = [
        ("NS14_MaxStorageCapacity", "TotalAnnualMaxCapacityStorage", vupper, "<="),
        ("NS15_MinStorageCapacity", "TotalAnnualMinCapacityStorage", vupper, ">="),
        ("NS16_MaxStorageCapacityInvestment", "TotalAnnualMaxCapacityInvestmentStorage", vnew, "<="),
        ("NS17_MinStorageCapacityInvestment", "TotalAnnualMinCapacityInvestmentStorage", vnew, ">="),
    ]
    for family, parameter, var, sense in bounds:
        for row in ctx.rows(f"select r, s, y, cast(val as real) as val from {parameter}_def"):
            ctx.constrain(family, var[row.r, row.s, row.y], sense, row.val)
        ctx.created(family)


def full_load_hours(ctx: ModelContext) -> None:
    """
    NS18: new storage capacity follows the new capacity of the technologies
    discharging it and the storage's full load hours.

    New technology capacity is in power units; new storage capacity in energy.
    """
    family = "NS18_FullLoadHours"
    vnewcap = ctx.v("vnewcapacity")
    vnewstorage = ctx.v("vnewstoragecapacity")
    rows = ctx.rows("""select distinct sf.r as r, sf.s as s, sf.y as y, tfs.t as t, cast(sf.val as real) as flh,
        cast(cta.val as real) as cta
        from StorageFullLoadHours_def sf, TechnologyFromStorage_def tfs, CapacityToActivityUnit_def cta
        where sf.r = tfs.r and sf.s = tfs.s and tfs.val = 1
        and tfs.r = cta.r and tfs.t = cta.t
        order by sf.r, sf.s, sf.y""")
    ctx.stream(family, rows, key_of("r", "s", "y"),
               lambda row: vnewcap[row.r, row.t, row.y] * row.cta,
               lambda g: (ctx.lsum(g.terms) * (g.last.flh / HOURS_PER_YEAR), "==", vnewstorage[g.key]))
    ctx.created(family)


# ---- investment ---------------------------------------------------------

def storage_investment(ctx: ModelContext) -> None:
    """SI4 to SI10: storage capital investment, salvage value and total discounted cost."""
    vnew = ctx.v("vnewstoragecapacity")
    vcapital, vdiscounted = ctx.v("vcapitalinvestmentstorage"), ctx.v("vdiscountedcapitalinvestmentstorage")
    vsalvage, vdsalvage = ctx.v("vsalvagevaluestorage"), ctx.v("vdiscountedsalvagevaluestorage")
    vtotal = ctx.v("vtotaldiscountedstoragecost")
    first, last = int(ctx.first_year), int(ctx.last_year)

    family = "SI4_UndiscountedCapitalInvestmentStorage"
    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y, cast(ccs.val as real) as ccs
        from REGION r, STORAGE s, YEAR y, CapitalCostStorage_def ccs
        where ccs.r = r.val and ccs.s = s.val and ccs.y = y.val"""):
        ctx.constrain(family, vnew[row.r, row.s, row.y] * row.ccs, "==", vcapital[row.r, row.s, row.y])
    ctx.created(family)

    family = "SI5_DiscountingCapitalInvestmentStorage"
    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y, cast(dr.val as real) as dr
        from REGION r, STORAGE s, YEAR y, DiscountRate_def dr
        where dr.r = r.val"""):
        key = (row.r, row.s, row.y)
        ctx.constrain(family, vcapital[key] * (1 / (1 + row.dr) ** (int(row.y) - first)), "==", vdiscounted[key])
    ctx.created(family)

    family = "SI6_SalvageValueStorageAtEndOfPeriod1"
    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y
        from REGION r, STORAGE s, YEAR y, OperationalLifeStorage_def ols
        where ols.r = r.val and ols.s = s.val
        and y.val + ols.val - 1 <= ?""", (last,)):
        ctx.constrain(family, 0, "==", vsalvage[row.r, row.s, row.y])
    ctx.created(family)

    family = "SI7_SalvageValueStorageAtEndOfPeriod2"
    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y, cast(ols.val as real) as ols
        from REGION r, STORAGE s, YEAR y, DepreciationMethod_def dm, OperationalLifeStorage_def ols, DiscountRate_def dr
        where dm.r = r.val and dm.val = 1
        and ols.r = r.val and ols.s = s.val
        and y.val + ols.val - 1 > ?
        and dr.r = r.val and dr.val = 0
        union
        select r.val as r, s.val as s, y.val as y, cast(ols.val as real) as ols
        from REGION r, STORAGE s, YEAR y, DepreciationMethod_def dm, OperationalLifeStorage_def ols
        where dm.r = r.val and dm.val = 2
        and ols.r = r.val and ols.s = s.val
        and y.val + ols.val - 1 > ?""", (last, last)):
        key = (row.r, row.s, row.y)
        ctx.constrain(family, vcapital[key] * (1 - (last - int(row.y) + 1) / row.ols), "==", vsalvage[key])
    ctx.created(family)

    family = "SI8_SalvageValueStorageAtEndOfPeriod3"
    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y, cast(dr.val as real) as dr,
        cast(ols.val as real) as ols
        from REGION r, STORAGE s, YEAR y, DepreciationMethod_def dm, OperationalLifeStorage_def ols, DiscountRate_def dr
        where dm.r = r.val and dm.val = 1
        and ols.r = r.val and ols.s = s.val
        and y.val + ols.val - 1 > ?
        and dr.r = r.val and dr.val > 0""", (last,)):
        key = (row.r, row.s, row.y)
        factor = 1 - ((1 + row.dr) ** (last - int(row.y) + 1) - 1) / ((1 + row.dr) ** row.ols - 1)
        ctx.constrain(family, vcapital[key] * factor, "==", vsalvage[key])
    ctx.created(family)

    family = "SI9_SalvageValueStorageDiscountedToStartYear"
    for row in ctx.rows("""select r.val as r, s.val as s, y.val as y, cast(dr.val as real) as dr
        from REGION r, STORAGE s, YEAR y, DiscountRate_def dr
        where dr.r = r.val"""):
        key = (row.r, row.s, row.y)
        ctx.constrain(family, vsalvage[key] * (1 / (1 + row.dr) ** (last - first + 1)), "==", vdsalvage[key])
    ctx.created(family)

    family = "SI10_TotalDiscountedCostByStorage"
    for r in ctx.dimension("r"):
        for s in ctx.dimension("s"):
            for y in ctx.dimension("y"):
                ctx.constrain(family, vdiscounted[r, s, y] - vdsalvage[r, s, y], "==", vtotal[r, s, y])
    ctx.created(family)


def add_storage_constraints(ctx: ModelContext) -> None:
    transmission = ctx.flags.transmission
    nodal_variants = (False, True) if transmission else (False,)
    for nodal in nodal_variants:
        storage_charge(ctx, nodal)
    for nodal in nodal_variants:
        storage_discharge(ctx, nodal)
    for nodal in nodal_variants:
        storage_levels(ctx, nodal)
    for nodal in nodal_variants:
        group2_end(ctx, nodal)
    for nodal in nodal_variants:
        group1_end(ctx, nodal)
    for nodal in nodal_variants:
        year_end(ctx, nodal)
    storage_limits(ctx)
    for nodal in nodal_variants:
        timeslice_level_limits(ctx, nodal)
    for nodal in nodal_variants:
        charge_limit(ctx, nodal)
    for nodal in nodal_variants:
        discharge_limit(ctx, nodal)
    for nodal in nodal_variants:
        group2_level_limits(ctx, nodal)
    for nodal in nodal_variants:
        group1_level_limits(ctx, nodal)
    storage_capacity_limits(ctx)
    full_load_hours(ctx)
    storage_investment(ctx)
