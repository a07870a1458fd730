"""Tests for the fleet-report command line."""

import csv
import io
from unittest.mock import patch

import pytest

from fleet_report.core.artifacts import FileSystemArtifactStore
from fleet_report.core.types import TestStatus
from fleet_report.main import create_parser, main, show_version
from fleet_report.reporting.master_store import MasterStore


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("fleet_report.main.setup_logging") as mock_setup:
        yield mock_setup


@pytest.fixture
def seeded_dir(tmp_path, record_factory):
    store = MasterStore(FileSystemArtifactStore(), tmp_path / "master-data.json")
    store.persist([
        record_factory("TS010-A", "TS010_Login", "Login"),
        record_factory("TS020-A", status=TestStatus.FAILED, failure_reason="boom"),
    ])
    return tmp_path


class TestCLIParser:
    """Test command line parser."""

    def test_parser_creation(self):
        parser = create_parser()

        actions = {action.dest: action for action in parser._actions}
        assert "reset" in actions
        assert "version" in actions
        assert "output" in actions
        assert "log_level" in actions
        assert "log_format" in actions

    def test_reset_and_version_are_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--reset", "--version"])


class TestCommands:
    """Test command behaviour."""

    def test_show_version(self, capsys):
        assert show_version() == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_render_master(self, seeded_dir, capsys):
        result = main(["-o", str(seeded_dir)])

        assert result == 0
        assert (seeded_dir / "test-report.html").is_file()
        rows = list(csv.reader(io.StringIO((seeded_dir / "test-report.csv").read_text())))
        assert [row[0] for row in rows[1:]] == ["TS010-A", "TS020-A"]
        assert "Pass Rate: 50.0%" in capsys.readouterr().out

    def test_render_without_master_data(self, tmp_path):
        assert main(["-o", str(tmp_path)]) == 1
        assert not (tmp_path / "test-report.html").exists()

    def test_reset(self, seeded_dir):
        assert main(["--reset", "-o", str(seeded_dir)]) == 0
        assert not (seeded_dir / "master-data.json").exists()

        assert main(["--reset", "-o", str(seeded_dir)]) == 0

    def test_logging_options_forwarded(self, tmp_path, no_logging_setup):
        main(["-o", str(tmp_path), "--log-level", "DEBUG", "--log-format", "json"])

        kwargs = no_logging_setup.call_args.kwargs
        assert kwargs["log_level"] == "DEBUG"
        assert kwargs["log_format"] == "json"
