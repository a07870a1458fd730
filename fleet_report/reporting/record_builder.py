"""
Build normalized result records from finished-test events.

Test files follow the ``TS<nnn>_<moduleName>`` naming convention; the module
code drives case numbers (``TS020-A``, ``TS020-B``...) and the suffix drives
the per-file folder name and the fallback module label.
"""

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Collection, List, Optional, Sequence

from fleet_report.analysis.error_classifier import classify_error, first_line, strip_ansi
from fleet_report.analysis.step_extractor import extract_steps
from fleet_report.config.settings import Settings, get_settings
from fleet_report.core.interfaces import ArtifactStore
from fleet_report.core.types import (
    Attachment,
    Diagnosis,
    StepEntry,
    TestCompletionEvent,
    TestOrigin,
    TestResultRecord,
    TestStatus,
    VideoRef,
)
from fleet_report.error_handling.exceptions import ArtifactError
from fleet_report.monitoring.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MODULE_CODE = "TC"

_MODULE_CODE = re.compile(r"^(?:test_)?(TS\d+)")
_MODULE_SUFFIX = re.compile(r"TS\d+_(.+)")
_TITLE_CASE_LETTER = re.compile(r"^TS\d+-([A-Z])")
_TITLE_CASE_PREFIX = re.compile(r"^TS\d+-[A-Z]\s*-?\s*")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def file_base_name(file_path: str, suffixes: Sequence[str] = (".spec.js",)) -> str:
    """Base name of a test file with its first matching suffix removed."""
    name = os.path.basename(file_path)
    for suffix in suffixes:
        if suffix and name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


def module_code(base_name: str) -> str:
    match = _MODULE_CODE.match(base_name)
    return match.group(1) if match else DEFAULT_MODULE_CODE


def case_number(title: str, base_name: str, used: Collection[str] = ()) -> str:
    """
    Derive the case number of a test.

    An explicit 'TS<nnn>-<letter>' title prefix wins unless that number is taken;
    otherwise the next free sequential number is assigned.

    Args:
        title: Test title
        base_name: File base name of the test
        used: Case numbers already assigned in this file during the current run

    Returns:
        Case number such as 'TS020-C' (or 'TS020-27' past the 26th test)
    """
    code = module_code(base_name)

    explicit = _TITLE_CASE_LETTER.match(title)
    if explicit and f"{code}-{explicit.group(1)}" not in used:
        return f"{code}-{explicit.group(1)}"

    index = len(used)
    while True:
        index += 1
        candidate = f"{code}-{chr(64 + index)}" if index <= 26 else f"{code}-{index}"
        if candidate not in used:
            return candidate


def module_name(parent_suite_title: Optional[str], base_name: str) -> str:
    if parent_suite_title and parent_suite_title.strip():
        return parent_suite_title

    match = _MODULE_SUFFIX.search(base_name)
    if match:
        return re.sub(r"([A-Z])", r" \1", match.group(1)).strip()

    return base_name


def extract_description(title: str) -> str:
    description = _TITLE_CASE_PREFIX.sub("", title).strip()
    return description or title


def folder_name(base_name: str) -> str:
    """Folder receiving the per-file report, e.g. 'TS020_AfterHours' -> 'afterHours'."""
    match = _MODULE_SUFFIX.search(base_name)
    if match:
        name = match.group(1)
        return name[:1].lower() + name[1:]
    if "." in base_name:
        return base_name.split(".")[0]
    return re.sub(r"[^a-z0-9]", "", base_name.lower())


def sanitize_title(title: str, max_length: int = 50) -> str:
    return _NON_ALNUM.sub("-", title)[:max_length]


def is_video_attachment(attachment: Attachment) -> bool:
    return bool(
        attachment.name == "video"
        or attachment.content_type == "video/webm"
        or (attachment.path and attachment.path.endswith(".webm"))
    )


class RecordBuilder:
    """Builds one TestResultRecord per finished test. Never raises."""

    def __init__(
        self,
        store: ArtifactStore,
        settings: Optional[Settings] = None,
        output_dir: Optional[Path] = None,
    ) -> None:
        self.settings = (settings or get_settings()).with_output_dir(output_dir)
        self.store = store
        self.output_dir = self.settings.output_dir
        self.videos_dir = self.settings.videos_dir

    def base_name_for(self, file_path: str) -> str:
        return file_base_name(file_path, self.settings.spec_file_suffixes)

    def build(
        self, event: TestCompletionEvent, used_case_numbers: Collection[str] = ()
    ) -> TestResultRecord:
        """
        Build the record for a finished test.

        Args:
            event: Finished-test event from the framework
            used_case_numbers: Case numbers already assigned in the same file this run

        Returns:
            The normalized record
        """
        base_name = self.base_name_for(event.location.file)

        failure_reason, diagnosis = self._failure_details(event)

        ended_at = event.ended_at
        started_at = ended_at - timedelta(milliseconds=event.duration_ms)

        return TestResultRecord(
            case_number=case_number(event.title, base_name, used_case_numbers),
            module=module_name(event.parent_suite_title, base_name),
            title=event.title,
            description=extract_description(event.title),
            status=event.status,
            duration_ms=event.duration_ms,
            failure_reason=failure_reason,
            diagnosis=diagnosis,
            steps=self._steps(event),
            video_ref=self._video_ref(event, base_name),
            origin=TestOrigin(
                file_path=event.location.file,
                file_base_name=base_name,
                line_number=event.location.line,
            ),
            retry_count=event.retry_count,
            started_at=started_at,
            ended_at=ended_at,
        )

    def _failure_details(
        self, event: TestCompletionEvent
    ) -> tuple[Optional[str], Optional[Diagnosis]]:
        if event.status is not TestStatus.FAILED or event.error is None:
            return None, None

        diagnosis = classify_error(event.error, event.location.file, event.location.line)
        reason = diagnosis.clean_message if diagnosis else event.error.message
        reason = first_line(strip_ansi(reason or "Unknown error"))
        return reason[: self.settings.failure_reason_max_length], diagnosis

    def _steps(self, event: TestCompletionEvent) -> List[StepEntry]:
        try:
            return extract_steps(event.stdout_chunks)
        except Exception:
            logger.exception("Could not extract steps for %s", event.title)
            return []

    def _video_ref(self, event: TestCompletionEvent, base_name: str) -> Optional[VideoRef]:
        attachment = next(
            (a for a in event.attachments if a.path and is_video_attachment(a)),
            None,
        )
        if attachment is None:
            return None

        source = Path(attachment.path)
        fallback = VideoRef(relative_path=None, identifier=source.name)
        video_file = f"{base_name}-{sanitize_title(event.title)}.webm"

        try:
            if not self.store.exists(source):
                return fallback
            self.store.ensure_dir(self.videos_dir)
            self.store.copy_file(source, self.videos_dir / video_file)
        except (ArtifactError, OSError) as exc:
            logger.warning(
                "Could not copy video: %s",
                exc,
                extra={"test_file": base_name, "artifact": str(source)},
            )
            return fallback

        logger.debug("Video copied: %s", video_file)
        return VideoRef(
            relative_path=f"{self.settings.videos_dir_name}/{video_file}",
            identifier=video_file,
        )
