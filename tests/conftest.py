"""
Shared fixtures for the fleet reporter tests.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from fleet_report.config.settings import Settings
from fleet_report.core.interfaces import ArtifactStore
from fleet_report.core.types import (
    Attachment,
    TestCompletionEvent,
    TestErrorInfo,
    TestLocation,
    TestOrigin,
    TestResultRecord,
    TestStatus,
)
from fleet_report.error_handling.exceptions import ArtifactError

pytest_plugins = ["pytester"]

ENDED_AT = datetime(2026, 3, 14, 9, 30, 0, tzinfo=timezone.utc)


class InMemoryArtifactStore(ArtifactStore):
    """Artifact store backed by dictionaries; paths in fail_writes raise on write."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[Path, str] = {Path(k): v for k, v in (files or {}).items()}
        self.dirs: Set[Path] = set()
        self.copies: List[tuple] = []
        self.fail_writes: Set[Path] = set()

    def exists(self, path: Path) -> bool:
        return Path(path) in self.files

    def ensure_dir(self, path: Path) -> None:
        self.dirs.add(Path(path))

    def copy_file(self, source: Path, destination: Path) -> None:
        source = Path(source)
        if source not in self.files:
            raise ArtifactError(f"Missing {source}", path=source, operation="copy")
        self.files[Path(destination)] = self.files[source]
        self.copies.append((source, Path(destination)))

    def read_text(self, path: Path) -> str:
        try:
            return self.files[Path(path)]
        except KeyError:
            raise ArtifactError(f"Missing {path}", path=path, operation="read")

    def write_text(self, path: Path, content: str) -> None:
        if Path(path) in self.fail_writes:
            raise ArtifactError(f"Disk full writing {path}", path=path, operation="write")
        self.files[Path(path)] = content

    def remove(self, path: Path) -> None:
        self.files.pop(Path(path), None)

    def list_files(self, directory: Path) -> List[Path]:
        directory = Path(directory)
        return sorted(p for p in self.files if p.parent == directory)


@pytest.fixture
def memory_store():
    return InMemoryArtifactStore()


@pytest.fixture
def settings(tmp_path):
    return Settings(output_dir=tmp_path / "reports", _env_file=None)


def make_event(
    title: str = "Vehicle list loads",
    file: str = "tests/TS020_AfterHours.spec.js",
    status: TestStatus = TestStatus.PASSED,
    parent_suite_title: Optional[str] = None,
    message: Optional[str] = None,
    stdout: Optional[List[str]] = None,
    attachments: Optional[List[Attachment]] = None,
    duration_ms: int = 1250,
    line: int = 12,
) -> TestCompletionEvent:
    return TestCompletionEvent(
        title=title,
        parent_suite_title=parent_suite_title,
        location=TestLocation(file=file, line=line),
        status=status,
        duration_ms=duration_ms,
        attachments=attachments or [],
        stdout_chunks=stdout or [],
        error=TestErrorInfo(message=message, stack=f"Error: {message}\n    at {file}:{line}:5")
        if message is not None else None,
        ended_at=ENDED_AT,
    )


def make_record(
    case_number: str = "TS020-A",
    file_base_name: str = "TS020_AfterHours",
    module: str = "After Hours",
    description: str = "Vehicle list loads",
    status: TestStatus = TestStatus.PASSED,
    failure_reason: Optional[str] = None,
    duration_ms: int = 1000,
) -> TestResultRecord:
    return TestResultRecord(
        case_number=case_number,
        module=module,
        title=description,
        description=description,
        status=status,
        duration_ms=duration_ms,
        failure_reason=failure_reason,
        origin=TestOrigin(
            file_path=f"tests/{file_base_name}.spec.js",
            file_base_name=file_base_name,
            line_number=10,
        ),
        started_at=ENDED_AT,
        ended_at=ENDED_AT,
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def record_factory():
    return make_record
