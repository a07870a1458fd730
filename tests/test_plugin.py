"""
End-to-end tests for the pytest plugin, run through pytester.
"""

import re
from types import SimpleNamespace

from fleet_report.core.types import DiagnosisKind, MasterData, StepKind, StepStatus, TestStatus
from fleet_report.plugin import PendingTest, error_info, first_doc_line

AFTER_HOURS_TESTS = """
    import pytest


    class TestAfterHours:
        '''After Hours

        Alerts raised outside business hours.
        '''

        def test_banner(self):
            '''Banner shows outside business hours'''
            print("=== SECTION A ===")
            print("[PASS] step one")

        def test_submit(self):
            '''Submit button is visible'''
            print("[PASS] form opened")
            print("[FAIL] step two broke")
            raise Exception("Timeout 30000ms exceeded waiting for locator('#submit') to be visible")

        @pytest.mark.skip(reason="not in this build")
        def test_export(self):
            pass
"""


VIDEO_HREF = re.compile(r'<a href="([^"]+)" class="video-link"')


def run_reported(pytester, *args):
    return pytester.runpytest("-p", "fleet_report.plugin", "--fleet-report", *args)


def load_master(path) -> MasterData:
    return MasterData.model_validate_json((path / "master-data.json").read_text(encoding="utf-8"))


class TestPluginRun:
    """Tests for a reported pytest session."""

    def test_reports_written(self, pytester):
        pytester.makepyfile(test_TS020_AfterHours=AFTER_HOURS_TESTS)
        out = pytester.path / "reports"

        result = run_reported(pytester, f"--fleet-report-dir={out}")

        result.assert_outcomes(passed=1, failed=1, skipped=1)
        for ext in ("html", "csv", "json"):
            assert (out / "afterHours" / f"test-report.{ext}").is_file()
        assert (out / "test-report.html").is_file()
        assert (out / "test-report.csv").is_file()

    def test_records(self, pytester):
        pytester.makepyfile(test_TS020_AfterHours=AFTER_HOURS_TESTS)
        out = pytester.path / "reports"

        run_reported(pytester, f"--fleet-report-dir={out}")
        records = load_master(out).tests

        assert [r.case_number for r in records] == ["TS020-A", "TS020-B", "TS020-C"]
        assert {r.module for r in records} == {"After Hours"}
        banner, submit, export = records

        assert banner.title == "Banner shows outside business hours"
        assert banner.status == TestStatus.PASSED
        assert [s.kind for s in banner.steps] == [StepKind.SECTION, StepKind.STEP]

        assert submit.status == TestStatus.FAILED
        assert submit.diagnosis.kind == DiagnosisKind.TIMEOUT_ERROR
        assert submit.diagnosis.timeout_value == "30s"
        assert submit.diagnosis.element_locator == "#submit"
        assert [(s.ordinal, s.status) for s in submit.steps] == [
            (1, StepStatus.PASSED),
            (2, StepStatus.FAILED),
        ]
        assert submit.origin.file_base_name == "test_TS020_AfterHours"
        assert submit.origin.line_number is not None

        assert export.status == TestStatus.SKIPPED
        assert export.failure_reason is None

    def test_second_run_replaces_only_touched_file(self, pytester):
        out = pytester.path / "reports"
        pytester.makepyfile(test_TS010_Login="""
            def test_login():
                '''Login works'''
        """)
        run_reported(pytester, f"--fleet-report-dir={out}", "test_TS010_Login.py")

        pytester.makepyfile(test_TS020_AfterHours=AFTER_HOURS_TESTS)
        run_reported(pytester, f"--fleet-report-dir={out}", "test_TS020_AfterHours.py")
        run_reported(pytester, f"--fleet-report-dir={out}", "test_TS020_AfterHours.py")

        records = load_master(out).tests
        assert [r.origin.file_base_name for r in records] == [
            "test_TS010_Login",
            "test_TS020_AfterHours",
            "test_TS020_AfterHours",
            "test_TS020_AfterHours",
        ]

    def test_report_attachment_fixture(self, pytester):
        out = pytester.path / "reports"
        pytester.path.joinpath("route.webm").write_bytes(b"webm")
        pytester.makepyfile(test_TS030_Trips="""
            def test_replay(report_attachment):
                '''Replay a trip'''
                report_attachment("video", "route.webm", "video/webm")

            def test_lost_video(report_attachment):
                report_attachment("video", "nowhere/lost.webm")
        """)

        run_reported(pytester, f"--fleet-report-dir={out}")
        replay, lost = load_master(out).tests

        assert replay.video_ref.relative_path == "videos/test_TS030_Trips-Replay-a-trip.webm"
        assert (out / "videos" / "test_TS030_Trips-Replay-a-trip.webm").read_bytes() == b"webm"

        for report in (out / "trips" / "test-report.html", out / "test-report.html"):
            href = VIDEO_HREF.search(report.read_text(encoding="utf-8")).group(1)
            assert (report.parent / href).read_bytes() == b"webm"

        assert lost.title == "test_lost_video"
        assert lost.video_ref.relative_path is None
        assert lost.video_ref.identifier == "lost.webm"

    def test_enabled_from_ini(self, pytester):
        pytester.makeini("""
            [pytest]
            fleet_report = true
            fleet_report_dir = ini-reports
        """)
        pytester.makepyfile(test_TS010_Login="""
            def test_login():
                pass
        """)

        pytester.runpytest("-p", "fleet_report.plugin")

        assert (pytester.path / "ini-reports" / "master-data.json").is_file()

    def test_disabled_by_default(self, pytester):
        pytester.makepyfile(test_TS010_Login="""
            def test_login():
                pass
        """)
        out = pytester.path / "reports"

        result = pytester.runpytest("-p", "fleet_report.plugin", f"--fleet-report-dir={out}")

        result.assert_outcomes(passed=1)
        assert not out.exists()

    def test_reporter_errors_do_not_fail_the_run(self, pytester):
        pytester.makepyfile(test_TS010_Login="""
            def test_login():
                pass
        """)
        blocker = pytester.path / "reports"
        blocker.write_text("a file where the report directory should be")

        result = run_reported(pytester, f"--fleet-report-dir={blocker}")

        result.assert_outcomes(passed=1)
        assert result.ret == 0


class TestHelpers:
    """Tests for phase folding helpers."""

    def test_first_doc_line(self):
        class Suite:
            """

            Geofence Alerts
            more text
            """

        assert first_doc_line(Suite) == "Geofence Alerts"
        assert first_doc_line(None) is None

    def test_pending_status_precedence(self):
        pending = PendingTest()
        assert pending.status == TestStatus.OTHER

        pending.passed = True
        assert pending.status == TestStatus.PASSED

        pending.skipped = True
        assert pending.status == TestStatus.SKIPPED

        pending.failed = True
        assert pending.status == TestStatus.FAILED

    def test_reset_attempt_keeps_retry_count(self):
        pending = PendingTest(duration_s=2.0, retry_count=1, failed=True)

        pending.reset_attempt()

        assert pending.retry_count == 1
        assert pending.duration_s == 0.0
        assert pending.failed is False

    def test_error_info_uses_crash_message(self):
        report = SimpleNamespace(
            longrepr=SimpleNamespace(reprcrash=SimpleNamespace(message="AssertionError: assert 1 == 2")),
            longreprtext="def test_x():\n>   assert 1 == 2",
        )

        info = error_info(report)

        assert info.message == "AssertionError: assert 1 == 2"
        assert info.stack.startswith("def test_x()")
