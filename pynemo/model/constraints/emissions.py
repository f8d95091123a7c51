# pynemo/model/constraints/emissions.py

"""
Emission accounting, emission penalties and emission limits.
"""

import logging

from ..context import ModelContext
from ..streaming import key_of

logger = logging.getLogger(__name__)

_ACTIVITY_RATIO_SQL = """select r, t, e, y, m, cast(val as real) as ear
from EmissionActivityRatio_def
order by r, t, e, y"""

_PENALTY_SQL = """select distinct ear.r as r, ear.t as t, ear.e as e, ear.y as y, cast(ep.val as real) as ep
from EmissionActivityRatio_def ear, EmissionsPenalty_def ep
where ep.r = ear.r and ep.e = ear.e and ep.y = ear.y
and ep.val <> 0
order by ear.r, ear.t, ear.y"""


def technology_emissions(ctx: ModelContext) -> None:
    """E1 and E2: annual emissions of each technology, by mode and in total."""
    bymode, total = "E1_AnnualEmissionProductionByMode", "E2_AnnualEmissionProduction"
    vactivity = ctx.v("vtotalannualtechnologyactivitybymode")
    vtechnology = ctx.v("vannualtechnologyemission")
    ratios = list(ctx.rows(_ACTIVITY_RATIO_SQL))

    if ctx.requested("vannualtechnologyemissionbymode"):
        vbymode = ctx.v("vannualtechnologyemissionbymode")
        for row in ratios:
            ctx.constrain(bymode, vactivity[row.r, row.t, row.m, row.y] * row.ear,
                          "==", vbymode[row.r, row.t, row.e, row.m, row.y])
        ctx.created(bymode)

    ctx.stream(total, ratios, key_of("r", "t", "e", "y"),
               lambda row: vactivity[row.r, row.t, row.m, row.y] * row.ear,
               lambda g: (ctx.lsum(g.terms), "==", vtechnology[g.key]))
    ctx.created(total)


def emission_penalties(ctx: ModelContext) -> None:
    """E3 to E5: emission penalties by technology and emission, by technology, and discounted."""
    byemission, bytechnology, discounted = ("E3_EmissionsPenaltyByTechAndEmission",
                                            "E4_EmissionsPenaltyByTechnology",
                                            "E5_DiscountedEmissionsPenaltyByTechnology")
    vemission = ctx.v("vannualtechnologyemission")
    vpenalty = ctx.v("vannualtechnologyemissionspenalty")
    penalties = list(ctx.rows(_PENALTY_SQL))

    if ctx.requested("vannualtechnologyemissionpenaltybyemission"):
        vbyemission = ctx.v("vannualtechnologyemissionpenaltybyemission")
        for row in penalties:
            key = (row.r, row.t, row.e, row.y)
            ctx.constrain(byemission, vemission[key] * row.ep, "==", vbyemission[key])
        ctx.created(byemission)

    ctx.stream(bytechnology, penalties, key_of("r", "t", "y"),
               lambda row: vemission[row.r, row.t, row.e, row.y] * row.ep,
               lambda g: (ctx.lsum(g.terms), "==", vpenalty[g.key]))
    ctx.created(bytechnology)

    first = int(ctx.first_year)
    vdiscounted = ctx.v("vdiscountedtechnologyemissionspenalty")
    for row in ctx.rows("""select r.val as r, t.val as t, y.val as y, cast(dr.val as real) as dr
        from REGION r, TECHNOLOGY t, YEAR y, DiscountRate_def dr
        where dr.r = r.val"""):
        key = (row.r, row.t, row.y)
        # Penalties accrue over the year and are discounted from its middle
        ctx.constrain(discounted, vpenalty[key] * (1 / (1 + row.dr) ** (int(row.y) - first + 0.5)),
                      "==", vdiscounted[key])
    ctx.created(discounted)


def emission_accounting(ctx: ModelContext) -> None:
    """
    E6 to E9: annual and model-period emissions, including exogenous
    emissions, and their limits.
    """
    annual, period = "E6_EmissionsAccounting1", "E7_EmissionsAccounting2"
    annual_limit, period_limit = "E8_AnnualEmissionsLimit", "E9_ModelPeriodEmissionsLimit"
    vtechnology = ctx.v("vannualtechnologyemission")
    vannual, vperiod = ctx.v("vannualemissions"), ctx.v("vmodelperiodemissions")

    rows = ctx.rows("""select distinct r, e, y, t
        from EmissionActivityRatio_def
        order by r, e, y""")
    ctx.stream(annual, rows, key_of("r", "e", "y"),
               lambda row: vtechnology[row.r, row.t, row.e, row.y],
               lambda g: (ctx.lsum(g.terms), "==", vannual[g.key]))
    ctx.created(annual)

    years = ctx.dimension("y")
    for row in ctx.rows("""select r.val as r, e.val as e, cast(mpe.val as real) as mpe
        from REGION r, EMISSION e
        left join ModelPeriodExogenousEmission_def mpe on mpe.r = r.val and mpe.e = e.val"""):
        mpe = row.mpe if row.mpe is not None else 0
        ctx.constrain(period, ctx.lsum(vannual[row.r, row.e, y] for y in years),
                      "==", vperiod[row.r, row.e] - mpe)
    ctx.created(period)

    for row in ctx.rows("""select r.val as r, e.val as e, y.val as y, cast(aee.val as real) as aee,
        cast(ael.val as real) as ael
        from REGION r, EMISSION e, YEAR y, AnnualEmissionLimit_def ael
        left join AnnualExogenousEmission_def aee on aee.r = r.val and aee.e = e.val and aee.y = y.val
        where ael.r = r.val and ael.e = e.val and ael.y = y.val"""):
        aee = row.aee if row.aee is not None else 0
        ctx.constrain(annual_limit, vannual[row.r, row.e, row.y] + aee, "<=", row.ael)
    ctx.created(annual_limit)

    for row in ctx.rows("""select r.val as r, e.val as e, cast(mpl.val as real) as mpl
        from REGION r, EMISSION e, ModelPeriodEmissionLimit_def mpl
        where mpl.r = r.val and mpl.e = e.val"""):
        ctx.constrain(period_limit, vperiod[row.r, row.e], "<=", row.mpl)
    ctx.created(period_limit)


def add_emission_constraints(ctx: ModelContext) -> None:
    technology_emissions(ctx)
    emission_penalties(ctx)
    emission_accounting(ctx)
