"""
Monitoring module exports.
"""

from fleet_report.monitoring.logger import (
    JSONFormatter,
    ReporterLogAdapter,
    get_logger,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "JSONFormatter",
    "ReporterLogAdapter",
]
