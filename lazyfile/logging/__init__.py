"""Structured logging and metrics for lazyfile."""

from .structured import StructuredLogger, LogLevel, create_logger
from .metrics import PerformanceMetrics, MetricType
from .redaction import DataRedactor

__all__ = [
    "StructuredLogger",
    "LogLevel",
    "create_logger",
    "PerformanceMetrics",
    "MetricType",
    "DataRedactor",
]
