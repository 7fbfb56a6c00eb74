"""Index tunables loaded with Pydantic Settings and snapshotted per handle."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from record_index.errors import ConfigurationError
from record_index.observability import configure_logging, init_metrics, init_tracing


class IndexSettings(BaseSettings):
    """Process-wide tunables read from ``RECORD_INDEX_*`` environment variables.

    Handles never keep a reference to a settings object: each one takes an
    :class:`IndexConfig` snapshot at creation time, so changing the
    environment later only affects handles created afterwards.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORD_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    optimize_frequency: int = Field(default=1, ge=1, description="Updates accumulated before an optimize cycle")
    merge_factor: int = Field(default=10, ge=2, description="Segment count that triggers a merge on commit")
    compound_file: bool = Field(default=True, description="Pack segment files into a single compound file")
    ram_buffer_size_mb: float = Field(default=16.0, gt=0, description="Writer memory limit in megabytes")
    optimize_max_segments: int = Field(default=1, ge=1, description="Segments left after an optimize cycle")
    content_enabled: bool = Field(
        default=True,
        description="Maintain the aggregate content field used as the implicit search target",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    def snapshot(self) -> IndexConfig:
        """Freeze the index tunables into an :class:`IndexConfig`."""
        return IndexConfig(
            optimize_frequency=self.optimize_frequency,
            merge_factor=self.merge_factor,
            compound_file=self.compound_file,
            ram_buffer_size_mb=self.ram_buffer_size_mb,
            optimize_max_segments=self.optimize_max_segments,
            content_enabled=self.content_enabled,
        )

    def configure_observability(self, service_name: str = "record-index") -> None:
        """Install logging, metrics, and tracing using these settings."""
        configure_logging(level=self.log_level, json_output=self.log_json)
        init_metrics(service_name=service_name)
        init_tracing(service_name=service_name)


@dataclass(frozen=True, slots=True)
class IndexConfig:
    """Immutable configuration owned by a single index handle."""

    optimize_frequency: int = 1
    merge_factor: int = 10
    compound_file: bool = True
    ram_buffer_size_mb: float = 16.0
    optimize_max_segments: int = 1
    content_enabled: bool = True

    def __post_init__(self) -> None:
        if self.optimize_frequency < 1:
            raise ConfigurationError(f"optimize_frequency must be >= 1, got {self.optimize_frequency}")
        if self.merge_factor < 2:
            raise ConfigurationError(f"merge_factor must be >= 2, got {self.merge_factor}")
        if self.optimize_max_segments < 1:
            raise ConfigurationError(f"optimize_max_segments must be >= 1, got {self.optimize_max_segments}")
        if self.ram_buffer_size_mb <= 0:
            raise ConfigurationError(f"ram_buffer_size_mb must be positive, got {self.ram_buffer_size_mb}")

    @classmethod
    def from_settings(cls, settings: IndexSettings | None = None) -> IndexConfig:
        """Build a snapshot from ``settings``, reading the environment when omitted."""
        if settings is None:
            settings = IndexSettings()
        return settings.snapshot()
