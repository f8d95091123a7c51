# pynemo/flags.py

"""
Scenario feature flags.

Flags are resolved once, before any model assembly, from the calculation
configuration and a few scans of the scenario database. Every later step
consults the resulting ``ScenarioFlags`` instead of re-scanning data.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .config import CalculationConfig
from .constants import TRANSMISSION_DCOPF, TRANSMISSION_DCOPF_DISJUNCTIVE, TRANSMISSION_VARSTOSAVE

logger = logging.getLogger(__name__)


@dataclass
class ScenarioFlags:
    """
    Process-scoped switches for one calculation.

    Attributes
    ----------
    transmission_types : List[int]
        Distinct transmission modelling types enabled in the scenario.
    restrictvars : bool
        Restrict variable domains to combinations present in the data.
    continuoustransmission : bool
        Relax transmission build decisions to [0, 1].
    annual_activity_upper_limits, annual_activity_lower_limits : bool
        Annual technology activity limits are present.
    modelperiod_activity_upper_limits, modelperiod_activity_lower_limits : bool
        Model-period technology activity limits are present.
    varstosave : List[str]
        Families to persist after solving.
    """
    transmission_types: List[int] = field(default_factory=list)
    restrictvars: bool = True
    continuoustransmission: bool = False
    annual_activity_upper_limits: bool = False
    annual_activity_lower_limits: bool = False
    modelperiod_activity_upper_limits: bool = False
    modelperiod_activity_lower_limits: bool = False
    varstosave: List[str] = field(default_factory=list)

    @property
    def transmission(self) -> bool:
        return len(self.transmission_types) > 0

    @property
    def voltage_angles(self) -> bool:
        return (TRANSMISSION_DCOPF in self.transmission_types
                or TRANSMISSION_DCOPF_DISJUNCTIVE in self.transmission_types)

    @property
    def annual_activity(self) -> bool:
        """vtotaltechnologyannualactivity is needed."""
        return (self.annual_activity_upper_limits or self.annual_activity_lower_limits
                or self.modelperiod_activity
                or self.requested("vtotaltechnologyannualactivity"))

    @property
    def modelperiod_activity(self) -> bool:
        """vtotaltechnologymodelperiodactivity is needed."""
        return (self.modelperiod_activity_upper_limits or self.modelperiod_activity_lower_limits
                or self.requested("vtotaltechnologymodelperiodactivity"))

    def requested(self, family: str) -> bool:
        return family in self.varstosave


def _any_row(store, sql: str) -> bool:
    return store.exists(sql)


def resolve_flags(store, config: CalculationConfig) -> ScenarioFlags:
    """
    Resolve scenario flags from ``config`` and the scenario database.

    Parameters
    ----------
    store : FactStore
        Scenario database with ``_def`` views in place.
    config : CalculationConfig
        Calculation configuration.

    Returns
    -------
    ScenarioFlags
    """
    types = sorted({int(r.type) for r in store.rows(
        "select distinct type from TransmissionModelingEnabled where type is not null")})

    varstosave = list(config.varstosave)
    if types:
        varstosave.extend(v for v in TRANSMISSION_VARSTOSAVE if v not in varstosave)

    flags = ScenarioFlags(
        transmission_types=types,
        restrictvars=config.restrictvars,
        continuoustransmission=config.continuoustransmission,
        # A zero upper limit still binds, so upper limits count when any row exists
        annual_activity_upper_limits=_any_row(
            store, "select 1 from TotalTechnologyAnnualActivityUpperLimit_def limit 1"),
        annual_activity_lower_limits=_any_row(
            store, "select 1 from TotalTechnologyAnnualActivityLowerLimit_def where val > 0 limit 1"),
        modelperiod_activity_upper_limits=_any_row(
            store, "select 1 from TotalTechnologyModelPeriodActivityUpperLimit_def limit 1"),
        modelperiod_activity_lower_limits=_any_row(
            store, "select 1 from TotalTechnologyModelPeriodActivityLowerLimit_def where val > 0 limit 1"),
        varstosave=varstosave,
    )

    logger.info(f"Verified that transmission modeling {'is' if flags.transmission else 'is not'} enabled.")
    return flags
