"""
Unit tests for configuration management.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from fleet_report.config.settings import Settings, get_settings


class TestSettings:
    """Tests for Settings model."""

    def test_default_settings(self):
        """Test default settings values."""
        settings = Settings(_env_file=None)

        assert settings.output_dir == Path("test-reports/custom")
        assert settings.master_data_file == "master-data.json"
        assert settings.videos_dir_name == "videos"
        assert settings.report_file_prefix == "test-report"
        assert settings.project_name == "Fleet GPS Tracking Platform"
        assert settings.failure_reason_max_length == 500
        assert settings.spec_file_suffixes == [".spec.js", ".spec.ts", ".py"]
        assert settings.log_level == "INFO"
        assert settings.log_format == "text"

    def test_settings_from_env(self):
        """Test loading settings from environment variables."""
        with patch.dict(os.environ, {
            "FLEET_REPORT_OUTPUT_DIR": "/tmp/fleet",
            "FLEET_REPORT_PROJECT_NAME": "Depot Portal",
            "FLEET_REPORT_LOG_LEVEL": "debug",
            "FLEET_REPORT_FAILURE_REASON_MAX_LENGTH": "120",
        }):
            settings = Settings(_env_file=None)

            assert settings.output_dir == Path("/tmp/fleet")
            assert settings.project_name == "Depot Portal"
            assert settings.log_level == "DEBUG"
            assert settings.failure_reason_max_length == 120

    def test_suffixes_from_comma_string(self):
        settings = Settings(spec_file_suffixes=".spec.js, .test.py", _env_file=None)

        assert settings.spec_file_suffixes == [".spec.js", ".test.py"]

    def test_log_level_validation(self):
        """Test log level validation."""
        settings = Settings(log_level="warning", _env_file=None)
        assert settings.log_level == "WARNING"

        with pytest.raises(ValueError, match="Invalid log level"):
            Settings(log_level="LOUD", _env_file=None)

    def test_log_format_validation(self):
        """Test log format validation."""
        assert Settings(log_format="json", _env_file=None).log_format == "json"

        with pytest.raises(ValueError, match="Invalid log format"):
            Settings(log_format="xml", _env_file=None)

    def test_derived_paths(self, tmp_path):
        settings = Settings(output_dir=tmp_path, _env_file=None)

        assert settings.master_data_path == tmp_path / "master-data.json"
        assert settings.videos_dir == tmp_path / "videos"

    def test_with_output_dir(self, tmp_path):
        settings = Settings(project_name="Depot Portal", _env_file=None)

        moved = settings.with_output_dir(tmp_path / "nightly")

        assert moved.master_data_path == tmp_path / "nightly" / "master-data.json"
        assert moved.videos_dir == tmp_path / "nightly" / "videos"
        assert moved.project_name == "Depot Portal"
        assert settings.output_dir != moved.output_dir
        assert settings.with_output_dir(None) is settings
