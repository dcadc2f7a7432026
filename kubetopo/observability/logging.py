"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from kubetopo.models.quality import DataQualityWarning
from kubetopo.observability.metrics import data_quality_warnings_total


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def record_warning(log: structlog.stdlib.BoundLogger, warning: DataQualityWarning) -> DataQualityWarning:
    """Log a data quality warning, count it, and hand it back for collection."""
    data_quality_warnings_total.labels(code=warning.code.value).inc()
    log.warning(warning.code.value, resource_id=warning.resource_id, detail=warning.message)
    return warning
