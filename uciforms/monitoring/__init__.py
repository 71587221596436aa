"""
Monitoring module exports.
"""

from uciforms.monitoring.logger import (
    JSONFormatter,
    get_logger,
    log_field_event,
    log_performance_metric,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_field_event",
    "log_performance_metric",
    "JSONFormatter",
]
