"""Analytics utilities for fleet tracking dashboards and reports."""

# Re-export lightweight database helpers at the package level. Frame
# conversion lives in ``analytics.frames`` so pandas/numpy are only imported
# by callers that need them.
from .db import (
    connection_scope,
    ensure_global_parameters_table,
    ensure_tracking_tables,
    get_connection,
    get_parameter_value,
    load_analytics_settings,
    set_parameter_value,
)

__all__ = [
    "connection_scope",
    "get_connection",
    "ensure_global_parameters_table",
    "ensure_tracking_tables",
    "get_parameter_value",
    "load_analytics_settings",
    "set_parameter_value",
]
