"""Configuration management for the fleet reporter."""

from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Reporter settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="FLEET_REPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Output layout
    output_dir: Path = Field(
        default=Path("test-reports/custom"),
        description="Base directory for per-file and master reports",
    )
    master_data_file: str = Field(
        default="master-data.json",
        description="File name of the durable master table inside output_dir",
    )
    videos_dir_name: str = Field(
        default="videos", description="Sub-directory receiving copied videos"
    )
    report_file_prefix: str = Field(
        default="test-report",
        description="Base name of generated report files",
    )

    # Report content
    project_name: str = Field(
        default="Fleet GPS Tracking Platform",
        description="Project label shown in report headers",
    )
    failure_reason_max_length: int = Field(
        default=500, ge=1, description="Maximum length of the failure reason"
    )
    spec_file_suffixes: List[str] = Field(
        default_factory=lambda: [".spec.js", ".spec.ts", ".py"],
        description="Suffixes stripped from test file names to get the base name",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path"
    )

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError(f"Invalid log format: {v}")
        return v

    @field_validator("spec_file_suffixes", mode="before")
    @classmethod
    def coerce_suffixes(cls, raw: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(raw, str):
            return [item.strip() for item in raw.split(",") if item.strip()]
        return raw

    def with_output_dir(self, output_dir: Optional[Path]) -> "Settings":
        """Copy of these settings rooted at another output directory."""
        if output_dir is None:
            return self
        return self.model_copy(update={"output_dir": Path(output_dir)})

    @property
    def master_data_path(self) -> Path:
        return self.output_dir / self.master_data_file

    @property
    def videos_dir(self) -> Path:
        return self.output_dir / self.videos_dir_name


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    # Load .env file if it exists
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    return Settings()
