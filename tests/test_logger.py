"""
Tests for fleet reporter logging utilities.
"""

import json
import logging

import pytest

from fleet_report.monitoring.logger import JSONFormatter, ReporterLogAdapter, get_logger


@pytest.fixture()
def formatter() -> JSONFormatter:
    return JSONFormatter()


def make_record(msg: str = "Could not copy video: %s", args=("missing",)) -> logging.LogRecord:
    return logging.LogRecord(
        name="fleet_report.reporting.record_builder",
        level=logging.WARNING,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_json_formatter_renders_message(formatter: JSONFormatter) -> None:
    """Formatter should emit one JSON object with the interpolated message."""
    output = json.loads(formatter.format(make_record()))

    assert output["level"] == "WARNING"
    assert output["logger"] == "fleet_report.reporting.record_builder"
    assert output["message"] == "Could not copy video: missing"
    assert output["line"] == 42


def test_json_formatter_includes_reporter_context(formatter: JSONFormatter) -> None:
    record = make_record()
    record.test_file = "TS020_AfterHours"
    record.artifact = "/tmp/video.webm"

    output = json.loads(formatter.format(record))

    assert output["test_file"] == "TS020_AfterHours"
    assert output["artifact"] == "/tmp/video.webm"
    assert "case_number" not in output


def test_get_logger_with_context(caplog) -> None:
    logger = get_logger("fleet_report.tests", test_file="TS010_Login")

    assert isinstance(logger, ReporterLogAdapter)

    with caplog.at_level(logging.INFO, logger="fleet_report.tests"):
        logger.info("Report written")

    assert caplog.records[-1].test_file == "TS010_Login"


def test_get_logger_without_context() -> None:
    assert isinstance(get_logger("fleet_report.tests"), logging.Logger)
