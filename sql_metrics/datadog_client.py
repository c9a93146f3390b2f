"""Gauge submission to the Datadog v1 series API.

One :class:`DatadogClient` holds a single ``httpx.Client`` that is reused for
every metric of a run. Failures are raised as :class:`DispatchFailed` whose
kind tells transport problems, timeouts and non-202 responses apart.

Example:
    >>> client = DatadogClient(api_key="...", dry_run=True)
    >>> client.send(Deadline(30), "custom.metric.users", 3.0, ["env:test"], "server-01")
"""

from __future__ import annotations

__all__ = ["DATADOG_API", "DatadogClient", "build_payload"]

import json
import logging
import time
from typing import Any, Dict, Sequence

import httpx

from .deadline import Deadline
from .errors import DispatchErrorKind, DispatchFailed
from .logger import log_call

log = logging.getLogger(__name__)

DATADOG_API = "https://api.datadoghq.com/api/v1/series"
DEFAULT_TIMEOUT = 30.0


def build_payload(
    name: str,
    value: float,
    tags: Sequence[str],
    host: str,
    timestamp: float | None = None,
) -> Dict[str, Any]:
    """Return the JSON body for a single gauge point."""
    ts = float(int(time.time())) if timestamp is None else timestamp
    series: Dict[str, Any] = {
        "metric": name,
        "points": [[ts, value]],
        "type": "gauge",
    }
    if tags:
        series["tags"] = list(tags)
    if host:
        series["host"] = host
    return {"series": [series]}


class DatadogClient:
    """Send metric points to Datadog.

    Attributes:
        api_key: Value of the ``DD-API-KEY`` header.
        dry_run: Log the metric instead of sending it.
        api_url: Series endpoint, overridable for other Datadog sites.
    """

    def __init__(
        self,
        api_key: str = "",
        dry_run: bool = False,
        api_url: str = DATADOG_API,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Instantiate the client.

        Args:
            api_key: Datadog API key; may be empty in dry-run mode.
            dry_run: Skip the HTTP call and only log.
            api_url: Endpoint receiving the series payload.
            http_client: Optional pre-configured client (for testing).
        """
        self.api_key = api_key
        self.dry_run = dry_run
        self.api_url = api_url
        self._http = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "DatadogClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @log_call
    def send(
        self,
        deadline: Deadline,
        name: str,
        value: float,
        tags: Sequence[str],
        host: str,
    ) -> None:
        """Submit one gauge point.

        Raises:
            DispatchFailed: ``TIMEOUT`` when the deadline is spent or the
                request times out, ``TRANSPORT_FAILURE`` for connection
                errors and ``NON_SUCCESS_RESPONSE`` for any status but 202.
        """
        payload = build_payload(name, value, tags, host)
        log.debug(
            "Sending metric to Datadog",
            extra={
                "data": {
                    "metric": name,
                    "value": value,
                    "tags": list(tags),
                    "host": host,
                    "url": self.api_url,
                    "payload": json.dumps(payload),
                }
            },
        )

        if self.dry_run:
            log.info(
                "Dry run mode - skipping metric submission for %s=%s",
                name,
                value,
                extra={"data": {"metric": name, "value": value, "tags": list(tags), "host": host}},
            )
            return

        remaining = deadline.remaining()
        if remaining == 0.0:
            raise DispatchFailed(
                DispatchErrorKind.TIMEOUT,
                "datadog request not started: deadline exceeded or run cancelled",
            )

        try:
            resp = self._http.post(
                self.api_url,
                json=payload,
                headers={"Content-Type": "application/json", "DD-API-KEY": self.api_key},
                timeout=DEFAULT_TIMEOUT if remaining is None else remaining,
            )
        except httpx.TimeoutException as err:
            log.warning(
                "Datadog request timed out",
                extra={"data": {"metric": name, "error": str(err)}},
            )
            raise DispatchFailed(
                DispatchErrorKind.TIMEOUT, f"datadog request timed out: {err}"
            ) from err
        except httpx.HTTPError as err:
            raise DispatchFailed(
                DispatchErrorKind.TRANSPORT_FAILURE, f"failed to send request: {err}"
            ) from err

        if resp.status_code != httpx.codes.ACCEPTED:
            raise DispatchFailed(
                DispatchErrorKind.NON_SUCCESS_RESPONSE,
                f"unexpected response code: {resp.status_code}",
                status_code=resp.status_code,
            )

        log.info(
            "Metric %s sent successfully",
            name,
            extra={"data": {"metric": name, "status": resp.status_code}},
        )
