# SPDX-License-Identifier: Apache-2.0

"""
OpenTelemetry Configuration

Sets up distributed tracing and structured JSON logging for the CareConnect API.
"""

import logging
import sys
from typing import Any, Dict

import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

_configured = False


def add_trace_context(logger, method_name, event_dict):
    """Attach the active trace and span ids."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")
    return event_dict


def add_extra_fields(logger, method_name, event_dict):
    """Merge the `extra={"extra_fields": {...}}` context of stdlib log calls."""
    record = event_dict.get("_record")
    extra_fields = getattr(record, "extra_fields", None)
    if isinstance(extra_fields, dict):
        event_dict.update(extra_fields)
    return event_dict


PRE_CHAIN = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    add_trace_context,
    add_extra_fields,
    structlog.processors.format_exc_info,
]


class StructuredFormatter(structlog.stdlib.ProcessorFormatter):
    """Render stdlib log records as single-line JSON with trace correlation."""

    def __init__(self, renderer=None):
        if renderer is None:
            renderers = [structlog.processors.EventRenamer("message"), structlog.processors.JSONRenderer(default=str)]
        else:
            renderers = [renderer]
        super().__init__(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
            foreign_pre_chain=PRE_CHAIN,
        )


def setup_observability(config: Dict[str, Any]) -> None:
    """Initialize tracing and logging from the application configuration."""
    global _configured

    setup_structured_logging(config)

    if not config.get('OTEL_ENABLED') or _configured:
        return

    environment = config.get('ENVIRONMENT', 'development')
    resource = Resource.create({
        "service.name": config.get('OTEL_SERVICE_NAME', 'careconnect-api'),
        "service.version": config.get('SERVICE_VERSION', '1.0.0'),
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=ParentBased(TraceIdRatioBased(config.get('OTEL_TRACES_SAMPLER_ARG', 1.0))),
        resource=resource
    )

    otlp_endpoint = config.get('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint), max_export_batch_size=512)
        )
    elif environment == 'development':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    _configured = True


def setup_structured_logging(config: Dict[str, Any]) -> None:
    """Configure the root logger with JSON or plain text output."""
    root = logging.getLogger()
    root.setLevel(config.get('LOG_LEVEL', 'INFO'))

    handler = logging.StreamHandler(sys.stdout)
    if config.get('LOG_FORMAT', 'json') == 'json':
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(StructuredFormatter(structlog.dev.ConsoleRenderer(colors=False)))

    # Replace handlers installed by earlier calls
    for existing in [h for h in root.handlers if getattr(h, '_careconnect', False)]:
        root.removeHandler(existing)
    handler._careconnect = True
    root.addHandler(handler)

    logging.getLogger('pymongo').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
