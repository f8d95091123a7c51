from .context import ModelContext, load_dimensions
from .orchestrator import assemble_model, define_objective, save_results
from .timeslices import SliceCase, TimeHierarchy
from .variables import CATALOGUE, declare_variables

__all__ = [
    "ModelContext",
    "load_dimensions",
    "assemble_model",
    "define_objective",
    "save_results",
    "SliceCase",
    "TimeHierarchy",
    "CATALOGUE",
    "declare_variables",
]
