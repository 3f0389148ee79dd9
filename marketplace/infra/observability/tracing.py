"""
OpenTelemetry tracing helpers for the marketplace app.

Spans are created through the global tracer provider. Without an SDK
configured by the deployment they are no-ops.
"""

from opentelemetry import trace


def get_tracer(name: str = "marketplace") -> trace.Tracer:
    """
    Get tracer instance for creating custom spans.

    Example:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("reserve_inventory"):
            ...
    """
    return trace.get_tracer(name)


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """Add custom attributes to a span, stringifying values."""
    for key, value in attributes.items():
        span.set_attribute(key, str(value))
