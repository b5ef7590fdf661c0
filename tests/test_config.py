"""Tests for settings."""

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from config import Settings


class TestSettings:
    """Test Settings defaults, env overrides and validation."""

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.completion_threshold == 90.0
        assert s.default_template == "default-prd-template.json"
        assert s.session_removal < s.session_timeout

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PRD_ASSISTANT_SESSION_TIMEOUT_MINUTES", "180")
        monkeypatch.setenv("PRD_ASSISTANT_CLEANUP_INTERVAL_MINUTES", "5")
        s = Settings(_env_file=None)
        assert s.session_timeout == timedelta(minutes=180)
        assert s.cleanup_interval == timedelta(minutes=5)

    def test_removal_window_must_be_shorter(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, session_timeout_minutes=30, session_removal_minutes=45)

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, temperature=1.5)

    def test_template_path(self):
        s = Settings(_env_file=None, template_dir="/tmp/templates")
        assert s.get_template_path() == Path("/tmp/templates")
