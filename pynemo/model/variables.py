# pynemo/model/variables.py

"""
Variable family catalogue and declaration.

Every family is described by a ``VariableSpec``: its index dimensions, kind,
bounds, the condition under which it is created, and optionally the query
results that restrict its domain. ``declare_variables`` walks the catalogue
once, in order, and declares each family whose condition holds.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Set, Tuple, Union

import pandas as pd

from ..constants import VOLTAGE_ANGLE_BOUNDS
from ..flags import ScenarioFlags
from ..runners.base import BINARY, FREE, INTEGER, NONNEGATIVE
from .context import ModelContext
from .keydicts import keydicts_parallel, restricted_index

logger = logging.getLogger(__name__)


def _always(flags: ScenarioFlags) -> bool:
    return True


def _requested(name: str) -> Callable[[ScenarioFlags], bool]:
    return lambda flags: flags.requested(name)


def _transmission(flags: ScenarioFlags) -> bool:
    return flags.transmission


@dataclass
class VariableSpec:
    """
    Declaration of one variable family.

    Attributes
    ----------
    name : str
        Family name.
    dims : Tuple[str, ...]
        Index dimension abbreviations.
    kind : str or Callable
        Variable kind, or a function of the flags returning one.
    bounds : Tuple[float, float], optional
        Bounds of every instance.
    when : Callable
        Flags -> whether the family is created.
    restrict : Callable, optional
        Context -> DataFrame whose first columns are the family's index
        values, used when domain restriction is enabled.
    """
    name: str
    dims: Tuple[str, ...]
    kind: Union[str, Callable[[ScenarioFlags], str]] = NONNEGATIVE
    bounds: Optional[Union[Tuple[float, float], Callable[[ScenarioFlags], Optional[Tuple[float, float]]]]] = None
    when: Callable[[ScenarioFlags], bool] = _always
    restrict: Optional[Callable[[ModelContext], pd.DataFrame]] = None

    def resolve_kind(self, flags: ScenarioFlags) -> str:
        return self.kind(flags) if callable(self.kind) else self.kind

    def resolve_bounds(self, flags: ScenarioFlags) -> Optional[Tuple[float, float]]:
        return self.bounds(flags) if callable(self.bounds) else self.bounds


def _columns(query: str, *columns: str) -> Callable[[ModelContext], pd.DataFrame]:
    return lambda ctx: ctx.query(query)[list(columns)].drop_duplicates()


def _bytechnology(query: str, nodalpart: str) -> Callable[[ModelContext], pd.DataFrame]:
    def frame(ctx: ModelContext) -> pd.DataFrame:
        cols = ["r", "l", "t", "f", "y"]
        parts = [ctx.query(query)[cols]]
        if nodalpart in ctx.queries:
            parts.append(ctx.query(nodalpart)[cols])
        return pd.concat(parts, ignore_index=True).drop_duplicates()
    return frame


def _transmission_built_kind(flags: ScenarioFlags) -> str:
    return NONNEGATIVE if flags.continuoustransmission else BINARY


def _transmission_built_bounds(flags: ScenarioFlags) -> Optional[Tuple[float, float]]:
    return (0, 1) if flags.continuoustransmission else None


V = VariableSpec
R_T_Y = ("r", "t", "y")
R_S_Y = ("r", "s", "y")
R_L_F_Y = ("r", "l", "f", "y")
N_L_F_Y = ("n", "l", "f", "y")

CATALOGUE = [
    # Demand
    V("vrateofdemandnn", R_L_F_Y, when=_requested("vrateofdemandnn")),
    V("vdemandnn", R_L_F_Y),
    V("vdemandannualnn", ("r", "f", "y")),
    # Storage
    V("vstorageleveltsgroup1startnn", ("r", "s", "tg1", "y")),
    V("vstorageleveltsgroup1endnn", ("r", "s", "tg1", "y")),
    V("vstorageleveltsgroup2startnn", ("r", "s", "tg1", "tg2", "y")),
    V("vstorageleveltsgroup2endnn", ("r", "s", "tg1", "tg2", "y")),
    V("vstorageleveltsendnn", ("r", "s", "l", "y")),
    V("vstoragelevelyearendnn", R_S_Y),
    V("vrateofstoragechargenn", ("r", "s", "l", "y")),
    V("vrateofstoragedischargenn", ("r", "s", "l", "y")),
    V("vstoragelowerlimit", R_S_Y),
    V("vstorageupperlimit", R_S_Y),
    V("vaccumulatednewstoragecapacity", R_S_Y),
    V("vnewstoragecapacity", R_S_Y),
    V("vcapitalinvestmentstorage", R_S_Y),
    V("vdiscountedcapitalinvestmentstorage", R_S_Y),
    V("vsalvagevaluestorage", R_S_Y),
    V("vdiscountedsalvagevaluestorage", R_S_Y),
    V("vtotaldiscountedstoragecost", R_S_Y),
    # Capacity
    V("vnumberofnewtechnologyunits", R_T_Y, kind=INTEGER),
    V("vnewcapacity", R_T_Y),
    V("vaccumulatednewcapacity", R_T_Y),
    V("vtotalcapacityannual", R_T_Y),
    # Activity
    V("vrateofactivity", ("r", "l", "t", "m", "y")),
    V("vrateoftotalactivity", ("r", "t", "l", "y")),
    V("vtotaltechnologyannualactivity", R_T_Y, when=lambda flags: flags.annual_activity),
    V("vtotalannualtechnologyactivitybymode", ("r", "t", "m", "y")),
    V("vtotaltechnologymodelperiodactivity", ("r", "t"), kind=FREE, when=lambda flags: flags.modelperiod_activity),
    V("vrateofproductionbytechnologybymodenn", ("r", "l", "t", "m", "f", "y"),
      when=_requested("vrateofproductionbytechnologybymodenn"),
      restrict=_columns("queryvrateofproductionbytechnologybymodenn", "r", "l", "t", "m", "f", "y")),
    V("vrateofproductionbytechnologynn", ("r", "l", "t", "f", "y"),
      restrict=_columns("queryvrateofproductionbytechnologynn", "r", "l", "t", "f", "y")),
    V("vproductionbytechnologyannual", ("r", "t", "f", "y"),
      restrict=_columns("queryvproductionbytechnologyannual", "r", "t", "f", "y")),
    V("vrateofproduction", R_L_F_Y),
    V("vrateofproductionnn", R_L_F_Y),
    V("vproductionnn", R_L_F_Y),
    V("vrateofusebytechnologybymodenn", ("r", "l", "t", "m", "f", "y"),
      when=_requested("vrateofusebytechnologybymodenn"),
      restrict=_columns("queryvrateofusebytechnologybymodenn", "r", "l", "t", "m", "f", "y")),
    V("vrateofusebytechnologynn", ("r", "l", "t", "f", "y"),
      restrict=_columns("queryvrateofusebytechnologynn", "r", "l", "t", "f", "y")),
    V("vusebytechnologyannual", ("r", "t", "f", "y"),
      restrict=_columns("queryvusebytechnologyannual", "r", "t", "f", "y")),
    V("vrateofuse", R_L_F_Y),
    V("vrateofusenn", R_L_F_Y),
    V("vusenn", R_L_F_Y),
    V("vtrade", ("r", "rr", "l", "f", "y"), kind=FREE),
    V("vtradeannual", ("r", "rr", "f", "y"), kind=FREE),
    V("vproductionannualnn", ("r", "f", "y")),
    V("vuseannualnn", ("r", "f", "y")),
    # Costing
    V("vcapitalinvestment", R_T_Y),
    V("vdiscountedcapitalinvestment", R_T_Y),
    V("vsalvagevalue", R_T_Y),
    V("vdiscountedsalvagevalue", R_T_Y),
    V("voperatingcost", R_T_Y),
    V("vdiscountedoperatingcost", R_T_Y),
    V("vannualvariableoperatingcost", R_T_Y),
    V("vannualfixedoperatingcost", R_T_Y),
    V("vtotaldiscountedcostbytechnology", R_T_Y),
    V("vtotaldiscountedcost", ("r", "y")),
    V("vmodelperiodcostbyregion", ("r",), when=_requested("vmodelperiodcostbyregion")),
    # Reserve margin
    V("vtotalcapacityinreservemargin", ("r", "y")),
    V("vdemandneedingreservemargin", ("r", "l", "y")),
    # Renewable energy
    V("vtotalreproductionannual", ("r", "y"), kind=FREE),
    V("vretotalproductionoftargetfuelannual", ("r", "y"), kind=FREE),
    # Emissions
    V("vannualtechnologyemissionbymode", ("r", "t", "e", "m", "y"), when=_requested("vannualtechnologyemissionbymode")),
    V("vannualtechnologyemission", ("r", "t", "e", "y")),
    V("vannualtechnologyemissionpenaltybyemission", ("r", "t", "e", "y"),
      when=_requested("vannualtechnologyemissionpenaltybyemission")),
    V("vannualtechnologyemissionspenalty", R_T_Y),
    V("vdiscountedtechnologyemissionspenalty", R_T_Y),
    V("vannualemissions", ("r", "e", "y")),
    V("vmodelperiodemissions", ("r", "e")),
    # Transmission
    V("vrateofactivitynodal", ("n", "l", "t", "m", "y"), when=_transmission,
      restrict=_columns("queryvrateofactivitynodal", "n", "l", "t", "m", "y")),
    V("vrateofproductionbytechnologynodal", ("n", "l", "t", "f", "y"), when=_transmission,
      restrict=_columns("queryvrateofproductionbytechnologynodal", "n", "l", "t", "f", "y")),
    V("vrateofusebytechnologynodal", ("n", "l", "t", "f", "y"), when=_transmission,
      restrict=_columns("queryvrateofusebytechnologynodal", "n", "l", "t", "f", "y")),
    V("vtransmissionbyline", ("tr", "l", "f", "y"), kind=FREE, when=_transmission,
      restrict=_columns("queryvtransmissionbyline", "tr", "l", "f", "y")),
    V("vrateoftotalactivitynodal", ("n", "t", "l", "y"), when=_transmission),
    V("vrateofproductionnodal", N_L_F_Y, when=_transmission),
    V("vrateofusenodal", N_L_F_Y, when=_transmission),
    V("vproductionnodal", N_L_F_Y, when=_transmission),
    V("vproductionannualnodal", ("n", "f", "y"), when=_transmission),
    V("vusenodal", N_L_F_Y, when=_transmission),
    V("vuseannualnodal", ("n", "f", "y"), when=_transmission),
    V("vdemandnodal", N_L_F_Y, when=_transmission),
    V("vdemandannualnodal", ("n", "f", "y"), when=_transmission),
    V("vtransmissionannual", ("n", "f", "y"), kind=FREE, when=_transmission),
    V("vtransmissionbuilt", ("tr", "y"), kind=_transmission_built_kind, bounds=_transmission_built_bounds,
      when=_transmission),
    V("vtransmissionexists", ("tr", "y"), bounds=(0, 1), when=_transmission),
    V("vvoltageangle", ("n", "l", "y"), kind=FREE, bounds=VOLTAGE_ANGLE_BOUNDS,
      when=lambda flags: flags.voltage_angles),
    V("vstorageleveltsgroup1startnodal", ("n", "s", "tg1", "y"), when=_transmission,
      restrict=_columns("queryvstorageleveltsgroup1", "n", "s", "tg1", "y")),
    V("vstorageleveltsgroup1endnodal", ("n", "s", "tg1", "y"), when=_transmission,
      restrict=_columns("queryvstorageleveltsgroup1", "n", "s", "tg1", "y")),
    V("vstorageleveltsgroup2startnodal", ("n", "s", "tg1", "tg2", "y"), when=_transmission,
      restrict=_columns("queryvstorageleveltsgroup2", "n", "s", "tg1", "tg2", "y")),
    V("vstorageleveltsgroup2endnodal", ("n", "s", "tg1", "tg2", "y"), when=_transmission,
      restrict=_columns("queryvstorageleveltsgroup2", "n", "s", "tg1", "tg2", "y")),
    V("vstorageleveltsendnodal", ("n", "s", "l", "y"), when=_transmission,
      restrict=_columns("queryvstoragelevelts", "n", "s", "l", "y")),
    V("vrateofstoragechargenodal", ("n", "s", "l", "y"), when=_transmission,
      restrict=_columns("queryvstoragelevelts", "n", "s", "l", "y")),
    V("vrateofstoragedischargenodal", ("n", "s", "l", "y"), when=_transmission,
      restrict=_columns("queryvstoragelevelts", "n", "s", "l", "y")),
    V("vstoragelevelyearendnodal", ("n", "s", "y"), when=_transmission),
    V("vcapitalinvestmenttransmission", ("tr", "y"), when=_transmission),
    V("vdiscountedcapitalinvestmenttransmission", ("tr", "y"), when=_transmission),
    V("vsalvagevaluetransmission", ("tr", "y"), when=_transmission),
    V("vdiscountedsalvagevaluetransmission", ("tr", "y"), when=_transmission),
    V("voperatingcosttransmission", ("tr", "y"), when=_transmission),
    V("vdiscountedoperatingcosttransmission", ("tr", "y"), when=_transmission),
    V("vtotaldiscountedtransmissioncostbyregion", ("r", "y"), when=_transmission),
    # Combined nodal and non-nodal
    V("vproductionbytechnology", ("r", "l", "t", "f", "y"), when=_requested("vproductionbytechnology"),
      restrict=_bytechnology("queryvrateofproductionbytechnologynn", "queryvproductionbytechnologyindices_nodalpart")),
    V("vusebytechnology", ("r", "l", "t", "f", "y"), when=_requested("vusebytechnology"),
      restrict=_bytechnology("queryvrateofusebytechnologynn", "queryvusebytechnologyindices_nodalpart")),
]

CATALOGUE_BY_NAME = {spec.name: spec for spec in CATALOGUE}


def full_domain(ctx: ModelContext, dims: Sequence[str]) -> Set[Tuple[str, ...]]:
    """Cartesian product of the family's dimension sets."""
    return set(itertools.product(*(ctx.dimension(d) for d in dims)))


def family_domain(ctx: ModelContext, spec: VariableSpec) -> Set[Tuple[str, ...]]:
    """
    Index domain of a family.

    Restricted families use the index restriction engine over their
    supporting query results when restriction is enabled; all other
    families span the full product of their dimensions.
    """
    if spec.restrict is None or not ctx.flags.restrictvars:
        return full_domain(ctx, spec.dims)

    df = spec.restrict(ctx)
    dicts = keydicts_parallel(df, len(spec.dims) - 1, ctx.workers)
    ctx.indices[spec.name] = dicts
    return restricted_index(dicts)


def declare_variables(ctx: ModelContext) -> list:
    """
    Declare every catalogued family whose creation condition holds.

    Returns
    -------
    list
        Names of the declared families.
    """
    declared = []
    for spec in CATALOGUE:
        if not spec.when(ctx.flags):
            continue
        index = family_domain(ctx, spec)
        ctx.adapter.add_variable(spec.name, spec.dims, index, kind=spec.resolve_kind(ctx.flags),
                                 bounds=spec.resolve_bounds(ctx.flags))
        declared.append(spec.name)
    logger.info(f"Defined model variables ({len(declared)} families).")
    return declared
