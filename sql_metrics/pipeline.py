"""Per-metric collection loop.

:class:`CollectionPipeline` walks the configured metrics in order. Each query
is admitted by :class:`~sql_metrics.query_guard.QueryGuard` before it reaches
the database, then its scalar is sent to the metric sender. A failure in one
metric is logged and recorded in the :class:`RunReport`; the loop always
moves on to the next metric.

Example:
    >>> pipeline = CollectionPipeline(db, sender)
    >>> report = pipeline.run(load_metrics("config.yaml"), Deadline(30))
    >>> report.ok
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Sequence
import logging

from .config import MetricDefinition
from .deadline import Deadline
from .errors import (
    DispatchErrorKind,
    DispatchFailed,
    ExecutionErrorKind,
    ExecutionFailed,
    QueryRejected,
    SQLMetricsError,
)
from .query_guard import QueryGuard

__all__ = [
    "CollectionPipeline",
    "MetricOutcome",
    "MetricSender",
    "OutcomeStatus",
    "RunReport",
    "ScalarSource",
]

log = logging.getLogger(__name__)


def _unexpected(err: Exception, wrap: type, kind) -> SQLMetricsError:
    """Return ``err`` unchanged if it is ours, else wrapped as ``wrap(kind)``."""
    if isinstance(err, SQLMetricsError):
        return err
    log.debug("Unexpected collaborator error", exc_info=err)
    wrapped = wrap(kind, f"unexpected error: {type(err).__name__}: {err}")
    wrapped.__cause__ = err
    return wrapped


class ScalarSource(Protocol):
    def execute_scalar(self, deadline: Deadline, query: str) -> float: ...


class MetricSender(Protocol):
    def send(
        self,
        deadline: Deadline,
        name: str,
        value: float,
        tags: Sequence[str],
        host: str,
    ) -> None: ...


class OutcomeStatus(str, Enum):
    SENT = "sent"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class MetricOutcome:
    """Result of processing a single metric.

    Attributes:
        name: Metric name.
        status: What happened to the metric.
        value: Value sent, or fetched before a failed send.
        error: The error that stopped the metric, if any.
    """

    name: str
    status: OutcomeStatus
    value: Optional[float] = None
    error: Optional[SQLMetricsError] = None


@dataclass
class RunReport:
    """All outcomes of one collection pass, in configuration order."""

    outcomes: List[MetricOutcome] = field(default_factory=list)

    @property
    def sent(self) -> List[MetricOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SENT]

    @property
    def failures(self) -> List[MetricOutcome]:
        return [o for o in self.outcomes if o.status is not OutcomeStatus.SENT]

    @property
    def ok(self) -> bool:
        return not self.failures


class CollectionPipeline:
    """Validate, execute and dispatch each configured metric."""

    def __init__(
        self,
        db: ScalarSource,
        sender: MetricSender,
        guard: QueryGuard | None = None,
    ) -> None:
        self.db = db
        self.sender = sender
        self.guard = guard or QueryGuard()

    def run(self, metrics: Iterable[MetricDefinition], deadline: Deadline) -> RunReport:
        """Process ``metrics`` sequentially and return a :class:`RunReport`."""
        report = RunReport()
        for metric in metrics:
            outcome = self.collect(metric, deadline)
            report.outcomes.append(outcome)
        log.info(
            "Collection finished: %d sent, %d failed",
            len(report.sent),
            len(report.failures),
            extra={"data": {"sent": len(report.sent), "failed": len(report.failures)}},
        )
        return report

    def collect(self, metric: MetricDefinition, deadline: Deadline) -> MetricOutcome:
        """Process one metric; collaborator failures end up in the outcome, never raised."""
        value = 0.0
        if metric.query:
            try:
                self.guard.validate(metric.query)
            except QueryRejected as err:
                log.error(
                    "Invalid query for metric %s: %s",
                    metric.name,
                    err,
                    extra={
                        "data": {
                            "metric": metric.name,
                            "query": metric.query,
                            "kind": err.kind.value,
                            "error": str(err),
                        }
                    },
                )
                return MetricOutcome(metric.name, OutcomeStatus.REJECTED, error=err)

            log.debug(
                "Executing SQL query for %s",
                metric.name,
                extra={"data": {"metric": metric.name, "query": metric.query}},
            )
            try:
                value = self.db.execute_scalar(deadline, metric.query)
            except Exception as exc:
                err = _unexpected(exc, ExecutionFailed, ExecutionErrorKind.DRIVER_FAILURE)
                log.error(
                    "Error fetching metric %s from DB: %s",
                    metric.name,
                    err,
                    extra={
                        "data": {
                            "metric": metric.name,
                            "kind": err.kind.value,
                            "error": str(err),
                        }
                    },
                )
                return MetricOutcome(metric.name, OutcomeStatus.FAILED, error=err)
            log.debug(
                "SQL query result for %s: %s",
                metric.name,
                value,
                extra={"data": {"metric": metric.name, "value": value}},
            )

        try:
            self.sender.send(deadline, metric.name, value, list(metric.tags), metric.host)
        except Exception as exc:
            err = _unexpected(exc, DispatchFailed, DispatchErrorKind.TRANSPORT_FAILURE)
            log.error(
                "Failed to send metric %s: %s",
                metric.name,
                err,
                extra={
                    "data": {
                        "metric": metric.name,
                        "kind": err.kind.value,
                        "error": str(err),
                    }
                },
            )
            return MetricOutcome(metric.name, OutcomeStatus.FAILED, value=value, error=err)
        return MetricOutcome(metric.name, OutcomeStatus.SENT, value=value)
