"""Logging, tracing and alerting collaborators

The executor talks to the outside world through three small interfaces:
- RuntimeLogger: a logger scoped to a run/step (MessageContext)
- TraceSink: receives TraceRecord entries and exits
- DeploymentAlerter: receives alerts for steps with ``onError.alert``
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, MutableMapping, Protocol

from pydantic import BaseModel

from brickrun.models.trace import TraceRecord

log = logging.getLogger(__name__)


class MessageContext(BaseModel):
    """Identifies where a log message or error came from."""

    model_config = {"frozen": True}

    run_id: str | None = None
    extension_id: str | None = None
    deployment_id: str | None = None
    brick_id: str | None = None
    brick_version: str | None = None
    label: str | None = None

    def merge(self, **fields: Any) -> "MessageContext":
        return self.model_copy(update={k: v for k, v in fields.items() if v is not None})


class RuntimeLogger(logging.LoggerAdapter):
    """Logger adapter that carries a MessageContext.

    Child loggers inherit the parent context:

        step_logger = pipeline_logger.child(brick_id="@acme/echo", label="Echo")
    """

    def __init__(self, logger: logging.Logger | None = None, context: MessageContext | None = None):
        super().__init__(logger or logging.getLogger("brickrun.pipeline"), {})
        self.context = context or MessageContext()

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["message_context"] = self.context.model_dump(exclude_none=True)
        kwargs["extra"] = extra
        label = self.context.label or self.context.brick_id
        if label:
            msg = f"[{label}] {msg}"
        return msg, kwargs

    def child(self, **fields: Any) -> "RuntimeLogger":
        return RuntimeLogger(self.logger, self.context.merge(**fields))


# =============================================================================
# Traces
# =============================================================================


class TraceSink(Protocol):
    """Receives trace records for step entries and exits."""

    def add_entry(self, record: TraceRecord) -> None: ...

    def add_exit(self, record: TraceRecord) -> None: ...

    def clear(self, extension_id: str | None) -> None: ...


class MemoryTraceSink:
    """Keeps trace records in memory, grouped by run id."""

    def __init__(self) -> None:
        self._records: dict[str, list[TraceRecord]] = defaultdict(list)

    def add_entry(self, record: TraceRecord) -> None:
        self._records[record.run_id].append(record)

    def add_exit(self, record: TraceRecord) -> None:
        self._records[record.run_id].append(record)

    def clear(self, extension_id: str | None) -> None:
        if extension_id is None:
            return
        for run_id in list(self._records):
            self._records[run_id] = [
                r for r in self._records[run_id] if r.extension_id != extension_id
            ]
            if not self._records[run_id]:
                del self._records[run_id]

    def records(self, run_id: str | None = None) -> list[TraceRecord]:
        if run_id is not None:
            return list(self._records.get(run_id, []))
        return [r for records in self._records.values() for r in records]

    def exits(self, run_id: str | None = None) -> list[TraceRecord]:
        return [r for r in self.records(run_id) if r.is_exit]


class LoggingTraceSink:
    """Writes trace records to the log at DEBUG level."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("brickrun.trace")

    def add_entry(self, record: TraceRecord) -> None:
        self.logger.debug("enter %s (run %s)", record.brick_id, record.run_id)

    def add_exit(self, record: TraceRecord) -> None:
        if record.error:
            self.logger.debug("exit %s with error: %s", record.brick_id, record.error.get("message"))
        elif record.skipped_run:
            self.logger.debug("skipped %s (condition not met)", record.brick_id)
        else:
            self.logger.debug("exit %s", record.brick_id)

    def clear(self, extension_id: str | None) -> None:
        pass


# =============================================================================
# Alerts
# =============================================================================


class DeploymentAlert(BaseModel):
    """Alert payload for a failed step in a deployment."""

    deployment_id: str
    brick_id: str
    context: dict[str, Any] = {}
    error: dict[str, Any] = {}


class DeploymentAlerter(Protocol):
    async def send(self, alert: DeploymentAlert) -> None: ...


class LoggingDeploymentAlerter:
    """Alerter that logs alerts instead of delivering them."""

    async def send(self, alert: DeploymentAlert) -> None:
        log.warning(
            "Deployment %s alert for %s: %s",
            alert.deployment_id,
            alert.brick_id,
            alert.error.get("message"),
        )
