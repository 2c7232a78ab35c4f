"""Prometheus instrumentation for inbound email processing.

Provides:
- ``EMAILS_RECEIVED``: Counter of messages routed to a handler, by handler.
- ``MetricsEventSink``: the receiver's observability sink.  Each event bumps
  the counter and is logged with its parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from prometheus_client import Counter

logger = structlog.get_logger()

EMAILS_RECEIVED: Counter = Counter(
    "replymail_emails_received_total",
    "Inbound emails routed to a handler",
    ["handler"],
)


class MetricsEventSink:
    """Record receiver events as Prometheus samples and structured logs.

    Args:
        counter: The counter to increment.  Defaults to the module-level
            ``EMAILS_RECEIVED``; tests pass one bound to a private
            ``CollectorRegistry``.
    """

    def __init__(self, counter: Counter | None = None) -> None:
        self._counter = counter if counter is not None else EMAILS_RECEIVED

    def record_event(self, name: str, params: Mapping[str, Any]) -> None:
        handler = str(params.get("handler") or "unknown")
        self._counter.labels(handler=handler).inc()
        logger.info(name, **dict(params))

