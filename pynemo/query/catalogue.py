# pynemo/query/catalogue.py

"""
Catalogue of named queries executed before model assembly.

Each query is independent of the others and returns the rows that restrict
the index domain of one or more variable families, or that several
constraint families iterate over. Transmission queries are only catalogued
when transmission modelling is enabled; the by-technology nodal parts only
when the corresponding family is persisted.
"""

from typing import Dict, Tuple

# Technology activity that contributes to a node: the technology is
# distributed to the node and produces or uses a fuel modelled nodally
NODAL_ACTIVITY_SQL = """select distinct ntc.n as n, ys.l as l, ntc.t as t, ar.m as m, ntc.y as y, n.r as r
from NodalDistributionTechnologyCapacity_def ntc, NODE n, TransmissionModelingEnabled tme, YearSplit_def ys,
(select r, t, f, m, y from OutputActivityRatio_def where val <> 0
union
select r, t, f, m, y from InputActivityRatio_def where val <> 0) ar
where ntc.val > 0
and ntc.n = n.val
and tme.r = n.r and tme.f = ar.f and tme.y = ntc.y
and ar.r = n.r and ar.t = ntc.t and ar.y = ntc.y
and ys.y = ntc.y"""


def _bymode_nn(ratio: str, column: str) -> str:
    return f"""select ar.r as r, ys.l as l, ar.t as t, ar.m as m, ar.f as f, ar.y as y, cast(ar.val as real) as {column}
from {ratio}_def ar
join YearSplit_def ys on ys.y = ar.y
left join TransmissionModelingEnabled tme on tme.r = ar.r and tme.f = ar.f and tme.y = ar.y
where ar.val <> 0 and tme.id is null
order by ar.r, ys.l, ar.t, ar.f, ar.y"""


def _bytechnology_nn(ratio: str) -> str:
    return f"""select distinct ar.r as r, ys.l as l, ar.t as t, ar.f as f, ar.y as y, cast(ys.val as real) as ys
from {ratio}_def ar
join YearSplit_def ys on ys.y = ar.y
left join TransmissionModelingEnabled tme on tme.r = ar.r and tme.f = ar.f and tme.y = ar.y
where ar.val <> 0 and tme.id is null
order by ar.r, ys.l, ar.f, ar.y"""


def _bytechnology_nodal_body(ratio: str) -> str:
    return f"""select distinct ntc.n as n, ys.l as l, ntc.t as t, ar.f as f, ntc.y as y, n.r as r, cast(ys.val as real) as ys
from NodalDistributionTechnologyCapacity_def ntc, NODE n, TransmissionModelingEnabled tme, YearSplit_def ys,
(select distinct r, t, f, y from {ratio}_def where val > 0) ar
where ntc.val > 0
and ntc.n = n.val
and tme.r = n.r and tme.f = ar.f and tme.y = ntc.y
and ar.r = n.r and ar.t = ntc.t and ar.y = ntc.y
and ys.y = ntc.y"""


def _bytechnology_nodal(ratio: str) -> str:
    return _bytechnology_nodal_body(ratio) + "\norder by ntc.n, ys.l, ar.f, ntc.y"


def _bytechnology_annual(ratio: str) -> str:
    return f"""select * from (
select distinct ar.r as r, ar.t as t, ar.f as f, ar.y as y, null as n, ys.l as l, cast(ys.val as real) as ys
from {ratio}_def ar
join YearSplit_def ys on ys.y = ar.y
left join TransmissionModelingEnabled tme on tme.r = ar.r and tme.f = ar.f and tme.y = ar.y
where ar.val <> 0 and tme.id is null
union
select distinct n.r as r, ntc.t as t, ar.f as f, ntc.y as y, ntc.n as n, ys.l as l, cast(ys.val as real) as ys
from NodalDistributionTechnologyCapacity_def ntc, NODE n, TransmissionModelingEnabled tme, YearSplit_def ys,
(select distinct r, t, f, y from {ratio}_def where val > 0) ar
where ntc.val > 0
and ntc.n = n.val
and tme.r = n.r and tme.f = ar.f and tme.y = ntc.y
and ar.r = n.r and ar.t = ntc.t and ar.y = ntc.y
and ys.y = ntc.y)
order by r, t, f, y"""


def _bytechnology_nodal_part(ratio: str) -> str:
    return f"""select distinct q.r as r, q.l as l, q.t as t, q.f as f, q.y as y
from ({_bytechnology_nodal_body(ratio)}) q
order by q.r, q.l, q.t, q.f, q.y"""


TRANSMISSION_BY_LINE_SQL = """select tl.id as tr, ys.l as l, tl.f as f, ys.y as y, tl.n1 as n1, tl.n2 as n2,
tme1.type as type, cast(tl.reactance as real) as reactance, cast(tl.maxflow as real) as maxflow,
cast(ys.val as real) as ys, cast(ifnull(tcta.val, 1) as real) as tcta,
cast(tl.variablecost as real) as vc, cast(tl.fixedcost as real) as fc, cast(tl.efficiency as real) as eff
from TransmissionLine tl
join NODE n1 on n1.val = tl.n1
join NODE n2 on n2.val = tl.n2
join TransmissionModelingEnabled tme1 on tme1.r = n1.r and tme1.f = tl.f
join TransmissionModelingEnabled tme2 on tme2.r = n2.r and tme2.f = tl.f and tme2.y = tme1.y and tme2.type = tme1.type
join YearSplit_def ys on ys.y = tme1.y
left join TransmissionCapacityToActivityUnit_def tcta on tcta.f = tl.f
order by tl.id, ys.y"""

STORAGE_LEVEL_TSGROUP1_SQL = """select distinct ns.n as n, ns.s as s, tg1.name as tg1, ns.y as y
from nodalstorage ns, TSGROUP1 tg1
order by ns.n, ns.s, tg1.name, ns.y"""

STORAGE_LEVEL_TSGROUP2_SQL = """select distinct ns.n as n, ns.s as s, ltg.tg1 as tg1, ltg.tg2 as tg2, ns.y as y
from nodalstorage ns, LTsGroup ltg
order by ns.n, ns.s, ltg.tg1, ltg.tg2, ns.y"""

STORAGE_LEVEL_TS_SQL = """select distinct ns.n as n, ns.s as s, l.val as l, ns.y as y
from nodalstorage ns, TIMESLICE l
order by ns.n, ns.s, l.val, ns.y"""


def scenario_queries(dbpath: str, transmission: bool, vproductionbytechnology: bool = False,
                     vusebytechnology: bool = False) -> Dict[str, Tuple[str, str]]:
    """
    Build the query catalogue for one calculation.

    Parameters
    ----------
    dbpath : str
        Scenario database; each query opens its own connection to it.
    transmission : bool
        Include nodal and transmission queries.
    vproductionbytechnology, vusebytechnology : bool
        Include the nodal parts of the combined by-technology domains.

    Returns
    -------
    Dict[str, Tuple[str, str]]
        Query name -> (dbpath, SQL).
    """
    queries = {
        "queryvrateofproductionbytechnologybymodenn": _bymode_nn("OutputActivityRatio", "oar"),
        "queryvrateofproductionbytechnologynn": _bytechnology_nn("OutputActivityRatio"),
        "queryvproductionbytechnologyannual": _bytechnology_annual("OutputActivityRatio"),
        "queryvrateofusebytechnologybymodenn": _bymode_nn("InputActivityRatio", "iar"),
        "queryvrateofusebytechnologynn": _bytechnology_nn("InputActivityRatio"),
        "queryvusebytechnologyannual": _bytechnology_annual("InputActivityRatio"),
    }

    if transmission:
        queries.update({
            "queryvrateofactivitynodal": NODAL_ACTIVITY_SQL + "\norder by ntc.n, ntc.t, ys.l, ntc.y",
            "queryvrateofproductionbytechnologynodal": _bytechnology_nodal("OutputActivityRatio"),
            "queryvrateofusebytechnologynodal": _bytechnology_nodal("InputActivityRatio"),
            "queryvtransmissionbyline": TRANSMISSION_BY_LINE_SQL,
            "queryvstorageleveltsgroup1": STORAGE_LEVEL_TSGROUP1_SQL,
            "queryvstorageleveltsgroup2": STORAGE_LEVEL_TSGROUP2_SQL,
            "queryvstoragelevelts": STORAGE_LEVEL_TS_SQL,
        })
        if vproductionbytechnology:
            queries["queryvproductionbytechnologyindices_nodalpart"] = _bytechnology_nodal_part("OutputActivityRatio")
        if vusebytechnology:
            queries["queryvusebytechnologyindices_nodalpart"] = _bytechnology_nodal_part("InputActivityRatio")

    return {name: (dbpath, sql) for name, sql in queries.items()}
