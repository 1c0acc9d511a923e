"""Tests for environment-backed settings."""

import pytest

from pdeforge.config import GPU_POWER_REWRITE_ENV, RewriteSettings


class TestRewriteSettings:
    """Test RewriteSettings.from_env."""

    def test_default_off(self):
        settings = RewriteSettings.from_env(load_dotenv_file=False)
        assert settings.force_power_rewrite is False

    def test_enabled_by_literal_one(self, monkeypatch):
        monkeypatch.setenv(GPU_POWER_REWRITE_ENV, "1")

        settings = RewriteSettings.from_env(load_dotenv_file=False)
        assert settings.force_power_rewrite is True

    @pytest.mark.parametrize("value", ["0", "true", "yes", "", " 1"])
    def test_other_values_disabled(self, monkeypatch, value):
        monkeypatch.setenv(GPU_POWER_REWRITE_ENV, value)

        settings = RewriteSettings.from_env(load_dotenv_file=False)
        assert settings.force_power_rewrite is False

    def test_dotenv_file(self, monkeypatch, tmp_path):
        """A .env file in the working directory is honored."""
        (tmp_path / ".env").write_text(f"{GPU_POWER_REWRITE_ENV}=1\n")
        monkeypatch.chdir(tmp_path)
        # Registers the variable so the value loaded from .env is undone
        monkeypatch.setenv(GPU_POWER_REWRITE_ENV, "0")
        monkeypatch.delenv(GPU_POWER_REWRITE_ENV)

        settings = RewriteSettings.from_env()
        assert settings.force_power_rewrite is True
