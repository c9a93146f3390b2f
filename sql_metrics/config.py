"""Configuration loading: metric definitions from YAML, secrets from env.

A configuration file lists the metrics to collect::

    metrics:
      - name: "custom.metric.api_calls"
        tags: ["env:test", "service:api"]
        host: "server-01"
        query: "SELECT COUNT(*) FROM base_calls;"

Example:
    >>> metrics = load_metrics("config.yaml")
    >>> metrics[0].name
    'custom.metric.api_calls'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple
import os

import yaml

__all__ = ["MetricDefinition", "RunSettings", "load_metrics", "parse_metrics"]


@dataclass(frozen=True)
class MetricDefinition:
    """One metric to collect.

    Attributes:
        name: Datadog metric name, unique within a configuration.
        tags: Tags attached to the point, in configuration order.
        host: Host reported with the point.
        query: Scalar ``SELECT``; empty means the metric is sent as ``0``.
    """

    name: str
    tags: Tuple[str, ...] = ()
    host: str = ""
    query: str = ""


def _as_str(value: Any, field: str, index: int) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"metrics[{index}].{field} must be a string")
    return value


def _parse_one(raw: Any, index: int) -> MetricDefinition:
    if not isinstance(raw, dict):
        raise ValueError(f"metrics[{index}] must be a mapping")
    name = _as_str(raw.get("name"), "name", index).strip()
    if not name:
        raise ValueError(f"metrics[{index}].name is required")

    tags = raw.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValueError(f"metrics[{index}].tags must be a list of strings")

    return MetricDefinition(
        name=name,
        tags=tuple(tags),
        host=_as_str(raw.get("host"), "host", index),
        query=_as_str(raw.get("query"), "query", index),
    )


def parse_metrics(cfg: Any) -> List[MetricDefinition]:
    """Return metric definitions from an already parsed YAML document.

    Raises:
        ValueError: On a malformed document, a missing name or a duplicate name.
    """
    if cfg is None:
        return []
    if not isinstance(cfg, dict):
        raise ValueError("Invalid YAML configuration")
    raw_metrics = cfg.get("metrics") or []
    if not isinstance(raw_metrics, list):
        raise ValueError("'metrics' must be a list")

    metrics: List[MetricDefinition] = []
    seen: Dict[str, int] = {}
    for i, raw in enumerate(raw_metrics):
        metric = _parse_one(raw, i)
        if metric.name in seen:
            raise ValueError(
                f"duplicate metric name {metric.name!r} (metrics[{seen[metric.name]}] and metrics[{i}])"
            )
        seen[metric.name] = i
        metrics.append(metric)
    return metrics


def load_metrics(config_path: str) -> List[MetricDefinition]:
    """Return metric definitions parsed from a YAML configuration file.

    Args:
        config_path: Path to a ``.yaml``/``.yml`` file.

    Raises:
        ValueError: If the file is missing, not YAML or invalid.
    """
    if not str(config_path).lower().endswith((".yaml", ".yml")):
        raise ValueError("Configuration must be a YAML file")
    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            cfg = yaml.safe_load(fh)
    except OSError as exc:
        raise ValueError(f"failed to read config file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValueError("Invalid YAML configuration") from exc
    return parse_metrics(cfg)


@dataclass(frozen=True)
class RunSettings:
    """Process-wide values read once from the environment.

    Attributes:
        database_url: Postgres connection URL (``DATABASE_URL``).
        api_key: Datadog API key (``DATADOG_API_KEY``).
    """

    database_url: str
    api_key: str = ""

    @classmethod
    def from_env(
        cls, dry_run: bool = False, environ: Mapping[str, str] | None = None
    ) -> "RunSettings":
        """Build settings from ``environ`` (default ``os.environ``).

        Raises:
            ValueError: If ``DATABASE_URL`` is unset, or ``DATADOG_API_KEY``
                is unset outside dry-run mode.
        """
        env = os.environ if environ is None else environ
        # Strip whitespace so trailing newlines in env files don't break auth
        api_key = env.get("DATADOG_API_KEY", "").strip()
        if not api_key and not dry_run:
            raise ValueError("DATADOG_API_KEY is not set")
        database_url = env.get("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL is not set")
        return cls(database_url=database_url, api_key=api_key)
