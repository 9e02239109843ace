# SPDX-License-Identifier: Apache-2.0

"""
Observability Middleware

Flask hooks that open a server span per request, time it, and emit one
structured access log line.
"""

import time
import uuid
import logging
from flask import Flask, request, g
from opentelemetry import context, trace
from opentelemetry.trace import SpanKind, Status, StatusCode

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def add_observability_middleware(app: Flask) -> None:
    """Add request spans, timing, and request logging to the Flask app."""

    @app.before_request
    def before_request():
        """Start the server span and timing."""
        g.start_time = time.time()
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex

        route = request.url_rule.rule if request.url_rule else request.path
        span = tracer.start_span(f"{request.method} {route}", kind=SpanKind.SERVER)
        span.set_attributes({
            "http.method": request.method,
            "http.route": route,
            "http.target": request.path,
            "http.user_agent": request.headers.get("User-Agent", ""),
            "request.id": g.request_id
        })
        g.request_span = span
        g.context_token = context.attach(trace.set_span_in_context(span))

        span_context = span.get_span_context()
        g.trace_id = format(span_context.trace_id, "032x") if span_context.is_valid else None

    @app.after_request
    def after_request(response):
        """Log request completion and add response attributes to the span."""
        duration_ms = round((time.time() - g.get('start_time', time.time())) * 1000, 2)

        span = g.get('request_span')
        if span is not None and span.is_recording():
            span.set_attributes({
                "http.status_code": response.status_code,
                "http.duration_ms": duration_ms
            })
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))

        principal = g.get('principal')
        logger.info(
            "HTTP request completed",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "remote_addr": request.remote_addr,
                    "request_id": g.get('request_id'),
                    "user_id": principal.user_id if principal else None
                }
            }
        )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id
        if g.get('request_id'):
            response.headers['X-Request-Id'] = g.request_id

        return response

    @app.teardown_request
    def teardown_request(exc):
        """End the server span opened for this request."""
        token = g.pop('context_token', None)
        if token is not None:
            context.detach(token)
        span = g.pop('request_span', None)
        if span is not None:
            if exc is not None:
                span.record_exception(exc)
            span.end()
