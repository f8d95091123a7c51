# pynemo/__init__.py

"""
pynemo: assembly engine for NEMO energy-system scenarios.

Reads a SQLite scenario database, restricts variable domains to the index
combinations present in the data, builds the linear/mixed-integer model with
Pyomo, solves it, and writes the requested results back to the database.

Subpackages
-----------
input : Scenario database schema, default views and read access
query : Query catalogue and parallel execution
model : Variables, constraints, time hierarchy and assembly orchestration
runners : Solver adapter contract and the Pyomo implementation
output : Result persistence

Example
-------
>>> from pynemo import calculate_scenario
>>> calculate_scenario("utopia.sqlite", varstosave=["vnewcapacity", "vtotaldiscountedcost"])
'optimal'
"""

from .config import CalculationConfig
from .errors import NemoError, PersistenceError, QueryError, ScenarioInputError
from .run import calculate_scenario

__all__ = [
    'calculate_scenario',
    'CalculationConfig',
    'NemoError',
    'ScenarioInputError',
    'QueryError',
    'PersistenceError',
]

__version__ = '0.1.0'
