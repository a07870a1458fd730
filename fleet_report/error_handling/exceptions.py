"""
Exception hierarchy for the fleet reporter.

Errors are raised at component seams (artifact store, master store, report
writes) and caught by the run orchestrator, which logs them and substitutes a
safe default so report generation never aborts the enclosing test run.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


class FleetReportError(Exception):
    """Base exception for all reporter errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ArtifactError(FleetReportError):
    """File-system operation on a report artifact failed."""

    def __init__(
        self,
        message: str,
        path: Union[str, Path],
        operation: str,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.path = str(path)
        self.operation = operation
        self.details.update({
            "path": self.path,
            "operation": operation
        })


class MasterStoreError(FleetReportError):
    """The durable master table could not be written."""

    def __init__(self, message: str, path: Union[str, Path], **kwargs):
        super().__init__(message, **kwargs)
        self.path = str(path)
        self.details["path"] = self.path

