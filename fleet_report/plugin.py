"""
pytest integration for the fleet reporter.

Registered through the ``pytest11`` entry point and enabled with
``--fleet-report`` (or ``fleet_report = true`` in the ini file).

Hook flow:
    pytest_addoption              - register options and ini keys
    pytest_configure              - register FleetReportPlugin (controller only)
    pytest_runtest_makereport     - stash title, suite and attachments (workers too)
    pytest_sessionstart           - RunOrchestrator.on_run_start
    pytest_collection_modifyitems - RunOrchestrator.note_total_tests
    pytest_runtest_logstart       - RunOrchestrator.on_test_start
    pytest_runtest_logreport      - fold phases, RunOrchestrator.on_test_end
    pytest_sessionfinish          - RunOrchestrator.on_run_end
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from fleet_report.core.types import (
    Attachment,
    RunEndEvent,
    RunStartEvent,
    TestCompletionEvent,
    TestErrorInfo,
    TestLocation,
    TestStatus,
)
from fleet_report.monitoring.logger import get_logger
from fleet_report.orchestration.run_orchestrator import RunOrchestrator

logger = get_logger(__name__)

PLUGIN_NAME = "fleet-report-session"

TITLE_PROPERTY = "fleet_report_title"
SUITE_PROPERTY = "fleet_report_suite"
ATTACHMENT_PROPERTY = "fleet_report_attachment"

EXIT_STATUS_LABELS = {
    pytest.ExitCode.OK: "passed",
    pytest.ExitCode.TESTS_FAILED: "failed",
    pytest.ExitCode.INTERRUPTED: "interrupted",
    pytest.ExitCode.INTERNAL_ERROR: "internal error",
    pytest.ExitCode.USAGE_ERROR: "usage error",
    pytest.ExitCode.NO_TESTS_COLLECTED: "no tests collected",
}


def pytest_addoption(parser):
    group = parser.getgroup("fleet-report", "Fleet Report Options")
    group.addoption(
        "--fleet-report",
        action="store_true",
        dest="fleet_report",
        default=False,
        help="Write per-file and accumulated master test reports",
    )
    group.addoption(
        "--fleet-report-dir",
        action="store",
        dest="fleet_report_dir",
        default=None,
        metavar="DIR",
        help="Base output directory for the reports (default: test-reports/custom)",
    )
    parser.addini(
        "fleet_report", "Enable the fleet reporter", type="bool", default=False
    )
    parser.addini("fleet_report_dir", "Base output directory for the fleet reporter")


def is_enabled(config) -> bool:
    return bool(config.getoption("fleet_report") or config.getini("fleet_report"))


def is_worker(config) -> bool:
    return hasattr(config, "workerinput")


def pytest_configure(config):
    if not is_enabled(config) or is_worker(config):
        return

    output_dir = config.getoption("fleet_report_dir") or config.getini("fleet_report_dir")
    orchestrator = RunOrchestrator(output_dir=Path(output_dir) if output_dir else None)
    config.pluginmanager.register(FleetReportPlugin(orchestrator), PLUGIN_NAME)


def pytest_unconfigure(config):
    plugin = config.pluginmanager.get_plugin(PLUGIN_NAME)
    if plugin is not None:
        config.pluginmanager.unregister(plugin, PLUGIN_NAME)


def first_doc_line(obj: Any) -> Optional[str]:
    doc = getattr(obj, "__doc__", None)
    if not doc:
        return None
    for line in doc.strip().splitlines():
        if line.strip():
            return line.strip()
    return None


def report_title(item) -> str:
    """First docstring line of the test, else its name. Parametrize ids are kept."""
    doc_title = first_doc_line(getattr(item, "function", None))
    if not doc_title:
        return item.name
    callspec = getattr(item, "callspec", None)
    if callspec is not None:
        return f"{doc_title} [{callspec.id}]"
    return doc_title


def suite_title(item) -> Optional[str]:
    cls = getattr(item, "cls", None)
    return first_doc_line(cls) if cls is not None else None


def attachment_property(name: str, path: Any, content_type: Optional[str] = None):
    return (
        ATTACHMENT_PROPERTY,
        {"name": name, "path": str(path), "content_type": content_type},
    )


def _page_video_path(item) -> Optional[str]:
    page = getattr(item, "funcargs", {}).get("page")
    video = getattr(page, "video", None)
    if video is None:
        return None
    try:
        return str(video.path())
    except Exception as exc:
        logger.debug("No video path for %s: %s", item.nodeid, exc)
        return None


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Stash reporter metadata in user_properties so it survives xdist transport."""
    if is_enabled(item.config) and call.when == "setup":
        names = {name for name, _ in item.user_properties}
        if TITLE_PROPERTY not in names:
            item.user_properties.append((TITLE_PROPERTY, report_title(item)))
            item.user_properties.append((SUITE_PROPERTY, suite_title(item)))

    outcome = yield
    report = outcome.get_result()

    if is_enabled(item.config) and call.when == "call":
        video_path = _page_video_path(item)
        if video_path:
            prop = attachment_property("video", video_path, "video/webm")
            item.user_properties.append(prop)
            report.user_properties.append(prop)


@pytest.fixture
def report_attachment(request):
    """
    Attach an artifact to the current test's report.

    Usage:
        def test_route_replay(report_attachment):
            report_attachment("video", "recordings/route.webm", "video/webm")
    """

    def attach(name: str, path: Any, content_type: Optional[str] = None) -> None:
        request.node.user_properties.append(attachment_property(name, path, content_type))

    return attach


@dataclass
class PendingTest:
    """Phase reports of one test folded together until teardown."""

    duration_s: float = 0.0
    retry_count: int = 0
    failed: bool = False
    skipped: bool = False
    passed: bool = False
    error: Optional[TestErrorInfo] = None

    def reset_attempt(self) -> None:
        self.duration_s = 0.0
        self.failed = self.skipped = self.passed = False
        self.error = None

    @property
    def status(self) -> TestStatus:
        if self.failed:
            return TestStatus.FAILED
        if self.skipped:
            return TestStatus.SKIPPED
        if self.passed:
            return TestStatus.PASSED
        return TestStatus.OTHER


def error_info(report) -> TestErrorInfo:
    longrepr = report.longrepr
    crash = getattr(longrepr, "reprcrash", None)
    message = getattr(crash, "message", None) or str(longrepr or "")
    return TestErrorInfo(message=message, stack=report.longreprtext or "")


def completion_event(report, pending: PendingTest) -> TestCompletionEvent:
    """Translate the final phase report plus folded state into a completion event."""
    properties: Dict[str, Any] = {}
    attachments: List[Attachment] = []
    for name, value in report.user_properties:
        if name == ATTACHMENT_PROPERTY:
            attachments.append(Attachment(**value))
        else:
            properties[name] = value

    file_path, line, domain = report.location
    title = properties.get(TITLE_PROPERTY) or domain.split(".")[-1]

    return TestCompletionEvent(
        title=title,
        parent_suite_title=properties.get(SUITE_PROPERTY),
        location=TestLocation(file=file_path, line=None if line is None else line + 1),
        status=pending.status,
        duration_ms=round(pending.duration_s * 1000),
        retry_count=pending.retry_count,
        attachments=attachments,
        stdout_chunks=[report.capstdout] if report.capstdout else [],
        error=pending.error,
        ended_at=datetime.now(timezone.utc),
    )


class FleetReportPlugin:
    """Session plugin forwarding pytest's reporting hooks to a RunOrchestrator."""

    def __init__(self, orchestrator: RunOrchestrator):
        self.orchestrator = orchestrator
        self.pending: Dict[str, PendingTest] = {}
        self.total_noted = False

    def pytest_sessionstart(self, session):
        try:
            self.orchestrator.on_run_start(RunStartEvent())
        except Exception:
            logger.exception("Fleet report could not start the run")

    @pytest.hookimpl(trylast=True)
    def pytest_collection_modifyitems(self, session, config, items):
        self._note_total(len(items))

    @pytest.hookimpl(optionalhook=True)
    def pytest_xdist_node_collection_finished(self, node, ids):
        self._note_total(len(ids))

    def _note_total(self, total: int) -> None:
        if self.total_noted:
            return
        self.total_noted = True
        try:
            self.orchestrator.note_total_tests(total)
        except Exception:
            logger.exception("Fleet report could not print the test total")

    def pytest_runtest_logstart(self, nodeid, location):
        try:
            self.orchestrator.on_test_start(location[2])
        except Exception:
            logger.exception("Fleet report could not announce %s", nodeid)

    def pytest_runtest_logreport(self, report):
        pending = self.pending.setdefault(report.nodeid, PendingTest())

        if report.outcome == "rerun":
            pending.reset_attempt()
            pending.retry_count += 1
            return

        pending.duration_s += report.duration or 0.0
        if report.failed:
            if not pending.failed:
                pending.error = error_info(report)
            pending.failed = True
        elif report.skipped:
            pending.skipped = True
        elif report.when == "call":
            pending.passed = True

        if report.when != "teardown":
            return

        del self.pending[report.nodeid]
        try:
            self.orchestrator.on_test_end(completion_event(report, pending))
        except Exception:
            logger.exception("Fleet report could not record %s", report.nodeid)

    @pytest.hookimpl(trylast=True)
    def pytest_sessionfinish(self, session, exitstatus):
        try:
            status = EXIT_STATUS_LABELS.get(exitstatus, str(exitstatus))
            self.orchestrator.on_run_end(RunEndEvent(status=status))
        except Exception:
            logger.exception("Fleet report could not finish the run")
