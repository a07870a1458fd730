"""
Core module exports.
"""

from fleet_report.core.artifacts import FileSystemArtifactStore
from fleet_report.core.interfaces import ArtifactStore
from fleet_report.core.types import (
    Attachment,
    Diagnosis,
    DiagnosisKind,
    MasterData,
    ReportCounts,
    RunEndEvent,
    RunStartEvent,
    RunSummary,
    StepEntry,
    StepKind,
    StepStatus,
    TestCompletionEvent,
    TestErrorInfo,
    TestLocation,
    TestOrigin,
    TestResultRecord,
    TestStatus,
    VideoRef,
)

__all__ = [
    # Interfaces
    "ArtifactStore",
    "FileSystemArtifactStore",
    # Types
    "TestStatus",
    "StepStatus",
    "StepKind",
    "DiagnosisKind",
    "StepEntry",
    "Diagnosis",
    "VideoRef",
    "TestOrigin",
    "TestResultRecord",
    "Attachment",
    "TestErrorInfo",
    "TestLocation",
    "TestCompletionEvent",
    "RunStartEvent",
    "RunEndEvent",
    "MasterData",
    "ReportCounts",
    "RunSummary",
]
