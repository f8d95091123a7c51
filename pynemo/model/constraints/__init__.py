# pynemo/model/constraints/__init__.py

"""
Constraint families of the NEMO model.

Families are added in a fixed order; each ``add_*_constraints`` function
takes the assembly context and logs every family that received instances.
"""

from ..context import ModelContext
from .accounting import add_accounting_constraints
from .balance import add_annual_balance_constraints, add_production_and_use_constraints
from .capacity import add_capacity_constraints
from .costs import add_cost_constraints
from .emissions import add_emission_constraints
from .limits import add_limit_constraints
from .storage import add_storage_constraints
from .transmission import add_transmission_constraints


def add_constraints(ctx: ModelContext) -> None:
    """Add every constraint family to the model under construction."""
    add_capacity_constraints(ctx)
    add_production_and_use_constraints(ctx)
    if ctx.flags.transmission:
        add_transmission_constraints(ctx)
    add_annual_balance_constraints(ctx)
    add_accounting_constraints(ctx)
    add_storage_constraints(ctx)
    add_cost_constraints(ctx)
    add_limit_constraints(ctx)
    add_emission_constraints(ctx)


__all__ = ["add_constraints"]
