"""
Monitoring & Observability Layer

Provides monitoring for the file service:
- Structured logging (JSON formatting, context injection)
- Metrics collection (Prometheus-compatible counters and histograms)
"""

# Logging
from .logging import (
    JSONFormatter,
    RequestContextFilter,
    StructuredLogger,
    configure_logging,
    configure_from_preset,
    get_logger,
    set_request_context,
    clear_request_context,
    get_request_id,
    LOGGING_PRESETS,
)

# Metrics
from .metrics import (
    Counter,
    Histogram,
    MetricsRegistry,
    get_registry,
    counter,
    histogram,
)

__all__ = [
    # Logging
    'JSONFormatter',
    'RequestContextFilter',
    'StructuredLogger',
    'configure_logging',
    'configure_from_preset',
    'get_logger',
    'set_request_context',
    'clear_request_context',
    'get_request_id',
    'LOGGING_PRESETS',

    # Metrics
    'Counter',
    'Histogram',
    'MetricsRegistry',
    'get_registry',
    'counter',
    'histogram',
]
