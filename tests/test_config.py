"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from post_insights.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STATE_FILE", raising=False)
        settings = Settings(_env_file=None)
        assert settings.max_upload_size_mb == 12
        assert settings.state_file is None
        limits = settings.limits
        assert limits.max_file_size_bytes == 12 * 1024 * 1024
        assert limits.max_rows_per_file == 120_000
        assert limits.max_files_per_upload == 6

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MAX_FILES_PER_UPLOAD", "2")
        monkeypatch.setenv("STATE_FILE", str(tmp_path / "state.json"))
        settings = Settings(_env_file=None)
        assert settings.limits.max_files_per_upload == 2
        assert settings.state_file == tmp_path / "state.json"

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_non_positive_limits_rejected(self, monkeypatch, value):
        monkeypatch.setenv("MAX_ROWS_PER_FILE", value)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
