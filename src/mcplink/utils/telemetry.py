"""OpenTelemetry tracing helpers for mcplink.

Thin wrapper around the OpenTelemetry API so the client can call
``get_tracer()`` without caring whether the SDK is installed.  Without a
configured SDK the API hands back no-op tracers.

Usage::

    from mcplink.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("mcp.call_tool") as span:
        span.set_attribute(ATTR_TOOL_NAME, "list_items")

Call :func:`configure_telemetry` once at startup to export spans
(requires the ``otel`` extra: ``pip install mcplink[otel]``).
"""

from __future__ import annotations

import importlib
from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys
# ---------------------------------------------------------------------------

ATTR_COMMAND = "mcplink.server.command"
ATTR_PID = "mcplink.server.pid"
ATTR_CONNECTED = "mcplink.connected"
ATTR_ERROR = "mcplink.error"
ATTR_TOOL_NAME = "mcplink.tool.name"
ATTR_TOOL_COUNT = "mcplink.tool.count"
ATTR_REQUEST_ID = "mcplink.request.id"
ATTR_TIMED_OUT = "mcplink.timed_out"

_INSTRUMENTATION_NAME = "mcplink"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def _require(module: str, package: str) -> Any:
    try:
        return importlib.import_module(module)
    except ImportError as exc:
        raise ImportError(f"{package} is not installed; install mcplink[otel]") from exc


def configure_telemetry(*, console: bool = False, otlp_endpoint: str | None = None) -> None:
    """Install an SDK tracer provider for the CLI session.

    Spans go to stdout when *console* is set and to *otlp_endpoint* over
    OTLP/gRPC when one is given.  Raises :class:`ImportError` naming the
    missing package when the ``otel`` extra is not installed.
    """
    sdk_resources = _require("opentelemetry.sdk.resources", "opentelemetry-sdk")
    sdk_trace = _require("opentelemetry.sdk.trace", "opentelemetry-sdk")
    sdk_export = _require("opentelemetry.sdk.trace.export", "opentelemetry-sdk")

    provider = sdk_trace.TracerProvider(
        resource=sdk_resources.Resource.create({"service.name": _INSTRUMENTATION_NAME})
    )
    if console:
        provider.add_span_processor(sdk_export.SimpleSpanProcessor(sdk_export.ConsoleSpanExporter()))
    if otlp_endpoint:
        otlp = _require(
            "opentelemetry.exporter.otlp.proto.grpc.trace_exporter", "opentelemetry-exporter-otlp"
        )
        provider.add_span_processor(
            sdk_export.BatchSpanProcessor(otlp.OTLPSpanExporter(endpoint=otlp_endpoint))
        )
    trace.set_tracer_provider(provider)
