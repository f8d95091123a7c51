# pynemo/constants.py

"""
Constants shared by the database preparation, model assembly and result
persistence steps.
"""

import math

# Scenario database schema version written by create_schema
DB_VERSION = 9

# Hours per year; storage levels are tracked in energy units per hour
HOURS_PER_YEAR = 8760

# Bounds for voltage angle variables (radians)
VOLTAGE_ANGLE_BOUNDS = (-math.pi, math.pi)

# Big-M used to relax the DC power flow equation on lines that are not built
DCOPF_BIG_M = 500000

# Transmission modelling types (TransmissionModelingEnabled.type)
TRANSMISSION_DCOPF = 1
TRANSMISSION_DCOPF_DISJUNCTIVE = 2
TRANSMISSION_PIPELINE = 3

# Minimum rows per worker before index restriction is parallelised
KEYDICTS_THRESHOLD = 10000

# Solve timestamp format (truncated to milliseconds when written)
SOLVEDTM_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

# Solver used when none is configured
DEFAULT_SOLVER = "highs"

# Families persisted when the caller does not name any
DEFAULT_VARSTOSAVE = [
    "vdemandnn",
    "vnewcapacity",
    "vtotalcapacityannual",
    "vproductionbytechnologyannual",
    "vproductionnn",
    "vusebytechnologyannual",
    "vusenn",
    "vtotaldiscountedcost",
]

# Families added to the persist list when transmission modelling is enabled
TRANSMISSION_VARSTOSAVE = [
    "vtransmissionbuilt",
    "vtransmissionexists",
    "vtransmissionbyline",
    "vtransmissionannual",
]

# Configuration file names searched for calculation arguments
CONFIG_FILENAMES = ("nemo.ini", "nemo.cfg", "nemo.yaml", "nemo.yml")

# Solver statuses returned by calculate_scenario
STATUS_OPTIMAL = "optimal"
STATUS_INFEASIBLE = "infeasible"
STATUS_UNBOUNDED = "unbounded"
STATUS_ERROR = "error"
