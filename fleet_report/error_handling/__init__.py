"""
Error types raised inside the reporter.
"""

from .exceptions import (
    ArtifactError,
    FleetReportError,
    MasterStoreError,
)

__all__ = [
    "FleetReportError",
    "ArtifactError",
    "MasterStoreError",
]
