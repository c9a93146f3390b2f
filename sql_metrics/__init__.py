"""Convenience re-exports for the public API.

Importing this package exposes the validators, the collection pipeline and
its collaborators so consumers can simply ``from sql_metrics import
QueryGuard`` without digging into submodules.

Example:
    >>> from sql_metrics import QueryGuard, QueryRejected
    >>> QueryGuard().validate("SELECT COUNT(*) FROM users")
"""


from importlib import import_module

def _load(name: str):
    module_map = {
        "QueryGuard": "query_guard",
        "validate_query": "query_guard",
        "ConnectionDescriptor": "url_validator",
        "parse_connection_string": "url_validator",
        "validate_connection_string": "url_validator",
        "CollectionPipeline": "pipeline",
        "RunReport": "pipeline",
        "MetricOutcome": "pipeline",
        "MetricDefinition": "config",
        "RunSettings": "config",
        "load_metrics": "config",
        "Deadline": "deadline",
        "SQLDatabase": "db_client",
        "DatadogClient": "datadog_client",
        "ConnectionStringError": "errors",
        "QueryRejected": "errors",
        "ExecutionFailed": "errors",
        "DispatchFailed": "errors",
        "Settings": "logger",
        "init_logger": "logger",
        "log_call": "logger",
    }
    mod = import_module(f".{module_map[name]}", __name__)
    return getattr(mod, name)


__all__ = [
    "QueryGuard",
    "validate_query",
    "ConnectionDescriptor",
    "parse_connection_string",
    "validate_connection_string",
    "CollectionPipeline",
    "RunReport",
    "MetricOutcome",
    "MetricDefinition",
    "RunSettings",
    "load_metrics",
    "Deadline",
    "SQLDatabase",
    "DatadogClient",
    "ConnectionStringError",
    "QueryRejected",
    "ExecutionFailed",
    "DispatchFailed",
    "Settings",
    "init_logger",
    "log_call",
]


def __getattr__(name: str):
    if name in __all__:
        return _load(name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
