"""
Core data models and types for the fleet reporter.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TestStatus(str, Enum):
    """Final status of one test."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Union[str, "TestStatus", None]) -> "TestStatus":
        """Map any framework outcome onto the four known statuses."""
        if isinstance(value, TestStatus):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


class StepStatus(str, Enum):
    """Display status of an extracted step."""

    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"
    INFO = "info"
    SECTION = "section"
    UNCLASSIFIED = "unclassified"


class StepKind(str, Enum):
    """Structural role of an extracted step."""

    SECTION = "section"
    SUBSECTION = "subsection"
    STEP = "step"
    INFO = "info"
    LOG = "log"


class DiagnosisKind(str, Enum):
    """Known failure categories, in classification order."""

    ELEMENT_NOT_VISIBLE = "ElementNotVisible"
    ELEMENT_NOT_HIDDEN = "ElementNotHidden"
    TEXT_MISMATCH = "TextMismatch"
    ELEMENT_NOT_ENABLED = "ElementNotEnabled"
    ELEMENT_NOT_DISABLED = "ElementNotDisabled"
    VALUE_MISMATCH = "ValueMismatch"
    COUNT_MISMATCH = "CountMismatch"
    ASSERTION_FAILED = "AssertionFailed"
    COMPARISON_FAILED = "ComparisonFailed"
    TIMEOUT_ERROR = "TimeoutError"
    CLICK_INTERCEPTED = "ClickIntercepted"
    NAVIGATION_ERROR = "NavigationError"
    MULTIPLE_ELEMENTS_FOUND = "MultipleElementsFound"
    REFERENCE_ERROR = "ReferenceError"
    NETWORK_ERROR = "NetworkError"
    UNKNOWN = "Unknown"

    @property
    def label(self) -> str:
        """Human readable form, e.g. 'Element Not Visible'."""
        words: List[str] = []
        for char in self.value:
            if char.isupper() and words:
                words.append(" ")
            words.append(char)
        return "".join(words)


class StepEntry(BaseModel):
    """One classified line of a test's captured output."""

    ordinal: Optional[int] = Field(None, ge=1, description="Set for kind=step only")
    text: str
    status: StepStatus
    kind: StepKind


class Diagnosis(BaseModel):
    """Structured explanation of a test failure."""

    kind: DiagnosisKind = DiagnosisKind.UNKNOWN
    expected_description: Optional[str] = None
    actual_description: Optional[str] = None
    element_locator: Optional[str] = None
    timeout_value: Optional[str] = Field(None, description="e.g. '30s'")
    suggestion: str = ""
    clean_message: str = Field("", description="First line of the cleaned message")
    full_message: str = ""
    stack_trace: str = ""
    source_file: str = "Unknown"
    source_line: Optional[int] = None


class VideoRef(BaseModel):
    """Pointer to a copied video artifact."""

    relative_path: Optional[str] = Field(
        None, description="Path relative to the output root; None when the copy failed"
    )
    identifier: str


class TestOrigin(BaseModel):
    """Where a test is defined."""

    __test__ = False

    file_path: str
    file_base_name: str
    line_number: Optional[int] = None


class TestResultRecord(BaseModel):
    """Normalized result of one finished test."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    case_number: str
    module: str
    title: str
    description: str
    status: TestStatus
    duration_ms: int = Field(0, ge=0)
    failure_reason: Optional[str] = None
    diagnosis: Optional[Diagnosis] = None
    steps: List[StepEntry] = Field(default_factory=list)
    video_ref: Optional[VideoRef] = None
    origin: TestOrigin
    retry_count: int = Field(0, ge=0)
    started_at: datetime
    ended_at: datetime

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000

    @property
    def video_identifier(self) -> str:
        return self.video_ref.identifier if self.video_ref else "N/A"


class Attachment(BaseModel):
    """Artifact attached to a test by the framework."""

    name: Optional[str] = None
    content_type: Optional[str] = None
    path: Optional[str] = None


class TestErrorInfo(BaseModel):
    """Error raised by a failed test."""

    __test__ = False

    message: str = ""
    stack: str = ""


class TestLocation(BaseModel):
    """Source location reported by the framework."""

    __test__ = False

    file: str
    line: Optional[int] = None


class TestCompletionEvent(BaseModel):
    """A finished test as reported by the framework."""

    __test__ = False

    title: str
    parent_suite_title: Optional[str] = None
    location: TestLocation
    status: TestStatus = TestStatus.OTHER
    duration_ms: int = Field(0, ge=0)
    retry_count: int = Field(0, ge=0)
    attachments: List[Attachment] = Field(default_factory=list)
    stdout_chunks: List[str] = Field(default_factory=list)
    error: Optional[TestErrorInfo] = None
    ended_at: datetime = Field(default_factory=_utcnow)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return TestStatus.coerce(value)

    @field_validator("duration_ms", mode="before")
    @classmethod
    def normalize_duration(cls, value):
        if value is None:
            return 0
        return max(0, int(round(float(value))))

    @field_validator("stdout_chunks", mode="before")
    @classmethod
    def decode_chunks(cls, value):
        if value is None:
            return []
        chunks = []
        for chunk in value:
            if isinstance(chunk, bytes):
                chunk = chunk.decode("utf-8", errors="replace")
            chunks.append(str(chunk))
        return chunks


class RunStartEvent(BaseModel):
    """Start of a test run."""

    started_at: datetime = Field(default_factory=_utcnow)
    total_tests: Optional[int] = None


class RunEndEvent(BaseModel):
    """End of a test run."""

    status: str = "passed"
    ended_at: datetime = Field(default_factory=_utcnow)


class MasterData(BaseModel):
    """On-disk document holding every accumulated record."""

    model_config = ConfigDict(populate_by_name=True)

    last_updated: datetime = Field(default_factory=_utcnow, alias="lastUpdated")
    tests: List[TestResultRecord] = Field(default_factory=list)


class ReportCounts(BaseModel):
    """Summary counts for a set of records."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    pass_rate: str = "0"


class RunSummary(BaseModel):
    """What the orchestrator hands back at the end of a run."""

    current: ReportCounts = Field(default_factory=ReportCounts)
    accumulated: ReportCounts = Field(default_factory=ReportCounts)
    failed_tests: List[TestResultRecord] = Field(default_factory=list)
    report_paths: List[Path] = Field(default_factory=list)
    master_persisted: bool = False
