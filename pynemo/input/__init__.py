from .store import FactStore
from .schema import (
    PARAMETERS,
    create_schema,
    create_default_views,
    create_temp_tables,
    drop_temp_tables,
    drop_result_tables,
)

__all__ = [
    "FactStore",
    "PARAMETERS",
    "create_schema",
    "create_default_views",
    "create_temp_tables",
    "drop_temp_tables",
    "drop_result_tables",
]
