"""
Record building, aggregation, persistence and rendering.
"""

from fleet_report.reporting.aggregator import PerFileAggregator
from fleet_report.reporting.master_store import MasterStore
from fleet_report.reporting.record_builder import RecordBuilder
from fleet_report.reporting.renderer import RenderedReport, ReportRenderer, summarize

__all__ = [
    "PerFileAggregator",
    "MasterStore",
    "RecordBuilder",
    "RenderedReport",
    "ReportRenderer",
    "summarize",
]
