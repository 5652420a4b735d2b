"""
Configuration and parameter loading using Pydantic.

This module provides centralized configuration management for the entire application.
All parameters are loaded from YAML and validated using Pydantic models.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from daily_health_log.utils.exceptions import ConfigurationError


class CalendarConfig(BaseModel):
    """Calendar day and sleep window configuration."""

    timezone: str = "UTC"
    sleep_window_start_hour: int = Field(20, ge=0, le=23)
    sleep_window_end_hour: int = Field(12, ge=0, le=23)


class StorageConfig(BaseModel):
    """Record store configuration."""

    database_url: str = "sqlite:///data/daily_health_log.sqlite"
    echo: bool = False


class CSVConfig(BaseModel):
    """CSV sample export parsing configuration."""

    encodings: list[str] = Field(default_factory=lambda: ["utf-8", "utf-8-sig", "latin-1"])
    delimiters: list[str] = Field(default_factory=lambda: [",", ";", "\t"])
    column_mappings: dict[str, str] = Field(default_factory=dict)
    kind_mappings: dict[str, str] = Field(default_factory=dict)
    stage_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "HKCategoryValueSleepAnalysisInBed": "in_bed",
            "HKCategoryValueSleepAnalysisAwake": "awake",
            "HKCategoryValueSleepAnalysisAsleep": "asleep",
            "HKCategoryValueSleepAnalysisAsleepUnspecified": "asleep_unspecified",
            "HKCategoryValueSleepAnalysisAsleepCore": "asleep_core",
            "HKCategoryValueSleepAnalysisAsleepDeep": "asleep_deep",
            "HKCategoryValueSleepAnalysisAsleepREM": "asleep_rem",
        }
    )
    # Multipliers into liters (water) and kilograms (weight)
    unit_factors: dict[str, float] = Field(
        default_factory=lambda: {
            "l": 1.0,
            "dl": 0.1,
            "cl": 0.01,
            "ml": 0.001,
            "kg": 1.0,
            "g": 0.001,
        }
    )


class FITConfig(BaseModel):
    """FIT scale file parsing configuration."""

    message_types: list[str] = Field(default_factory=lambda: ["weight_scale"])
    field_mappings: dict[str, str] = Field(default_factory=lambda: {"weight": "weight_kg"})


class ProviderConfig(BaseModel):
    """Health sample provider configuration."""

    sample_files: list[str] = Field(default_factory=list)
    asleep_stages: list[str] = Field(
        default_factory=lambda: ["asleep", "asleep_core", "asleep_unspecified"]
    )


class SyncConfig(BaseModel):
    """Automatic reconciliation configuration."""

    days_back: int = Field(30, ge=0)


class InsightsConfig(BaseModel):
    """Trend statistics configuration."""

    trailing_window_days: int = Field(30, ge=1)


class OutputFilesConfig(BaseModel):
    """Output file names configuration."""

    day_summaries_csv: str = "day_summaries.csv"
    day_summaries_parquet: str = "day_summaries.parquet"
    statistics: str = "statistics.json"
    report: str = "report.txt"


class ParquetConfig(BaseModel):
    """Parquet output configuration."""

    compression: str = "snappy"
    engine: str = "pyarrow"


class OutputConfig(BaseModel):
    """Output configuration."""

    dir: str = "output"
    files: OutputFilesConfig = Field(default_factory=OutputFilesConfig)
    formats: list[str] = Field(default_factory=lambda: ["csv"])
    parquet: ParquetConfig = Field(default_factory=ParquetConfig)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    console: bool = True


class AppConfig(BaseSettings):
    """Main application configuration."""

    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    csv: CSVConfig = Field(default_factory=CSVConfig)
    fit: FITConfig = Field(default_factory=FITConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    insights: InsightsConfig = Field(default_factory=InsightsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_prefix="DHL_", case_sensitive=False)


class ParameterLoader:
    """
    Centralized parameter loader for the application.

    Loads and validates configuration from YAML files using Pydantic models.
    Provides type-safe access to all configuration parameters.
    """

    def __init__(self, config_path: str = "config/config.yaml") -> None:
        """
        Initialize parameter loader.

        Args:
            config_path: Path to the YAML configuration file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        self.config_path = Path(config_path)
        self.config: AppConfig
        self._load_config()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, encoding="utf-8") as f:
                config_dict = yaml.safe_load(f) or {}

            self.config = AppConfig(**config_dict)

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def get_calendar_config(self) -> CalendarConfig:
        """Get calendar configuration."""
        return self.config.calendar

    def get_storage_config(self) -> StorageConfig:
        """Get record store configuration."""
        return self.config.storage

    def get_provider_config(self) -> ProviderConfig:
        """Get health sample provider configuration."""
        return self.config.provider

    def get_csv_config(self) -> CSVConfig:
        """Get CSV parsing configuration."""
        return self.config.csv

    def get_fit_config(self) -> FITConfig:
        """Get FIT parsing configuration."""
        return self.config.fit

    def get_sync_config(self) -> SyncConfig:
        """Get automatic reconciliation configuration."""
        return self.config.sync

    def get_insights_config(self) -> InsightsConfig:
        """Get trend statistics configuration."""
        return self.config.insights

    def get_output_config(self) -> OutputConfig:
        """Get output configuration."""
        return self.config.output

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration."""
        return self.config.logging
