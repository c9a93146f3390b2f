"""Version information printed by ``--version``.

The revision and build stamps are injected by the container build through
``SQL_METRICS_REVISION`` and ``SQL_METRICS_BUILD``.
"""

from __future__ import annotations

import os
from importlib.metadata import PackageNotFoundError, version as _dist_version

__all__ = ["__version__", "version_banner"]

try:
    __version__ = _dist_version("datadog-sql-metrics")
except PackageNotFoundError:  # pragma: no cover - running from a checkout
    __version__ = "dev"


def version_banner() -> str:
    revision = os.getenv("SQL_METRICS_REVISION", "")
    build = os.getenv("SQL_METRICS_BUILD", "")
    return "\n".join(
        [
            f"Version : {__version__}",
            f"Revision: {revision}",
            f"Build   : {build}",
        ]
    )
