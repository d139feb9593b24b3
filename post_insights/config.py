"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

from post_insights.ingest import Limits


class Settings(BaseSettings):
    app_port: int = 8050
    log_level: str = "info"

    # Upload limits (each enforced independently)
    max_upload_size_mb: int = 12
    max_rows_per_file: int = 120_000
    max_files_per_upload: int = 6

    # Optional JSON snapshot of loaded rows; unset keeps state in memory only
    state_file: Path | None = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("max_upload_size_mb", "max_rows_per_file", "max_files_per_upload")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero or negative limits at startup rather than on first upload."""
        if v <= 0:
            raise ValueError(f"Upload limits must be positive integers, got {v}.")
        return v

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def limits(self) -> Limits:
        return Limits(
            max_file_size_bytes=self.max_upload_size_bytes,
            max_rows_per_file=self.max_rows_per_file,
            max_files_per_upload=self.max_files_per_upload,
        )


settings = Settings()
