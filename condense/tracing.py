"""OpenTelemetry tracer access.

Spans are created through the OpenTelemetry API only. Without an SDK and
exporter configured by the application they are no-ops.
"""

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

TRACER_NAME = "condense"

_tracer = None


def get_tracer():
    """Get or create the OpenTelemetry tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def mark_span_failed(span, error: BaseException) -> None:
    """Record ``error`` on ``span`` and set its status to ERROR."""
    span.set_status(Status(StatusCode.ERROR, str(error)))
    span.record_exception(error)
