"""
Unit tests for result record building.
"""

from pathlib import Path

import pytest

from fleet_report.core.types import Attachment, DiagnosisKind, StepKind, StepStatus, TestStatus
from fleet_report.reporting.record_builder import (
    RecordBuilder,
    case_number,
    extract_description,
    file_base_name,
    folder_name,
    module_code,
    module_name,
    sanitize_title,
)


class TestNamingHelpers:
    """Tests for file, module and case-number derivation."""

    def test_file_base_name(self):
        suffixes = [".spec.js", ".spec.ts", ".py"]

        assert file_base_name("e2e/TS020_AfterHours.spec.js", suffixes) == "TS020_AfterHours"
        assert file_base_name("tests/test_TS031_Geofences.py", suffixes) == "test_TS031_Geofences"
        assert file_base_name("README", suffixes) == "README"

    def test_module_code(self):
        assert module_code("TS020_AfterHours") == "TS020"
        assert module_code("test_TS031_Geofences") == "TS031"
        assert module_code("login.spec") == "TC"

    def test_sequential_case_numbers(self):
        used = []
        for i in range(3):
            used.append(case_number(f"test {i}", "TS020_AfterHours", used))

        assert used == ["TS020-A", "TS020-B", "TS020-C"]

    def test_case_number_past_z(self):
        used = [f"TS020-{chr(65 + i)}" for i in range(26)]

        assert case_number("late test", "TS020_AfterHours", used) == "TS020-27"

    def test_explicit_letter_wins(self):
        assert case_number("TS020-D - Export trips", "TS020_AfterHours") == "TS020-D"

    def test_sequential_skips_explicit_letter(self):
        first = case_number("TS020-B Opens map", "TS020_AfterHours")
        second = case_number("Closes map", "TS020_AfterHours", [first])

        assert first == "TS020-B"
        assert second == "TS020-C"

    def test_taken_explicit_letter_falls_back(self):
        used = ["TS020-A", "TS020-B"]

        assert case_number("TS020-B Reopens map", "TS020_AfterHours", used) == "TS020-C"

    def test_module_name(self):
        assert module_name("Geofence Alerts", "TS020_AfterHours") == "Geofence Alerts"
        assert module_name(None, "TS020_AfterHours") == "After Hours"
        assert module_name("  ", "login") == "login"

    def test_extract_description(self):
        assert extract_description("TS020-D - Export trips") == "Export trips"
        assert extract_description("Export trips") == "Export trips"

    def test_folder_name(self):
        assert folder_name("TS020_AfterHours") == "afterHours"
        assert folder_name("login.smoke") == "login"
        assert folder_name("Vehicle-List 2") == "vehiclelist2"

    def test_sanitize_title(self):
        assert sanitize_title("Export trips (CSV)") == "Export-trips--CSV-"
        assert len(sanitize_title("x" * 80)) == 50


class TestRecordBuilder:
    """Tests for RecordBuilder.build."""

    @pytest.fixture
    def builder(self, memory_store, settings):
        return RecordBuilder(memory_store, settings)

    def test_passed_record(self, builder, event_factory):
        record = builder.build(event_factory(title="Vehicle list loads"))

        assert record.case_number == "TS020-A"
        assert record.module == "After Hours"
        assert record.status == TestStatus.PASSED
        assert record.failure_reason is None
        assert record.diagnosis is None
        assert record.origin.file_base_name == "TS020_AfterHours"
        assert record.origin.line_number == 12
        assert record.duration_seconds == pytest.approx(1.25)
        assert record.video_identifier == "N/A"

    def test_case_numbers_unique_within_file(self, builder, event_factory):
        titles = ["TS020-B - Opens map", "check 1", "check 2"]
        numbers = []
        for title in titles:
            numbers.append(builder.build(event_factory(title=title), numbers).case_number)

        assert numbers == ["TS020-B", "TS020-C", "TS020-D"]
        assert len(set(numbers)) == len(numbers)

    def test_failed_record_end_to_end(self, builder, event_factory):
        record = builder.build(
            event_factory(
                status=TestStatus.FAILED,
                message="Timeout 30000ms exceeded waiting for locator('#submit') to be visible",
                stdout=["=== SECTION A ===", "[PASS] step one", "[FAIL] step two broke"],
            )
        )

        assert record.diagnosis.kind == DiagnosisKind.TIMEOUT_ERROR
        assert record.diagnosis.timeout_value == "30s"
        assert record.failure_reason.startswith("Timeout 30000ms exceeded")
        assert [(s.kind, s.ordinal, s.status) for s in record.steps] == [
            (StepKind.SECTION, None, StepStatus.SECTION),
            (StepKind.STEP, 1, StepStatus.PASSED),
            (StepKind.STEP, 2, StepStatus.FAILED),
        ]

    def test_failure_reason_is_truncated(self, memory_store, tmp_path, event_factory):
        from fleet_report.config.settings import Settings

        settings = Settings(output_dir=tmp_path, failure_reason_max_length=20, _env_file=None)
        builder = RecordBuilder(memory_store, settings)

        record = builder.build(event_factory(status=TestStatus.FAILED, message="x" * 100))

        assert record.failure_reason == "x" * 20

    def test_skipped_has_no_failure_details(self, builder, event_factory):
        record = builder.build(event_factory(status=TestStatus.SKIPPED, message="skipped: flaky"))

        assert record.failure_reason is None
        assert record.diagnosis is None

    def test_video_is_copied(self, builder, memory_store, settings, event_factory):
        memory_store.files[Path("/tmp/pw/video-1.webm")] = "webm-bytes"
        event = event_factory(
            title="Replay route",
            attachments=[Attachment(name="video", content_type="video/webm", path="/tmp/pw/video-1.webm")],
        )

        record = builder.build(event)

        assert record.video_ref.relative_path == "videos/TS020_AfterHours-Replay-route.webm"
        assert record.video_ref.identifier == "TS020_AfterHours-Replay-route.webm"
        assert memory_store.exists(settings.output_dir / "videos" / "TS020_AfterHours-Replay-route.webm")

    def test_missing_video_falls_back_to_identifier(self, builder, event_factory):
        event = event_factory(
            attachments=[Attachment(name="video", content_type="video/webm", path="/gone/abc123.webm")],
        )

        record = builder.build(event)

        assert record.video_ref.relative_path is None
        assert record.video_ref.identifier == "abc123.webm"
        assert record.video_identifier == "abc123.webm"

    def test_non_video_attachments_ignored(self, builder, event_factory):
        event = event_factory(
            attachments=[Attachment(name="screenshot", content_type="image/png", path="/tmp/shot.png")],
        )

        assert builder.build(event).video_ref is None
