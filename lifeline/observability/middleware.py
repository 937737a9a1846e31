"""
Observability Middleware

Times every HTTP call, tags the active span with the service request it
targets and echoes the trace ID back to the client.
"""

import time
import logging
from flask import Flask, Response, g, request
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

TRACE_HEADER = 'X-Trace-Id'


def _target_request_id():
    """Service request ID from the matched route, if any."""
    return (request.view_args or {}).get('request_id')


def add_observability_middleware(app: Flask):
    """Instrument the app and log one line per handled call."""
    FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def start_timer():
        g.started = time.perf_counter()

        span = trace.get_current_span()
        if not span.is_recording():
            return

        g.trace_id = format(span.get_span_context().trace_id, "032x")
        span.set_attribute("lifeline.endpoint", request.endpoint or "unmatched")
        target = _target_request_id()
        if target:
            span.set_attribute("request.id", target)

    @app.after_request
    def record_outcome(response: Response) -> Response:
        elapsed_ms = round((time.perf_counter() - g.get('started', time.perf_counter())) * 1000, 2)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("lifeline.duration_ms", elapsed_ms)

        logger.info(
            f"{request.method} {request.path} -> {response.status_code}",
            extra={
                "endpoint": request.endpoint,
                "request_id": _target_request_id(),
                "status_code": response.status_code,
                "duration_ms": elapsed_ms
            }
        )

        trace_id = g.get('trace_id')
        if trace_id:
            response.headers[TRACE_HEADER] = trace_id
        return response
