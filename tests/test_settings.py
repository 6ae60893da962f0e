"""Tests for environment-driven process settings."""

from datetime import timedelta

from workforce_payroll.config import Settings


class TestSettingsFromEnv:
    """Test parsing of process settings from the environment."""

    def test_month_lock_ttl_default(self, monkeypatch):
        monkeypatch.delenv("MONTH_LOCK_TTL_SECONDS", raising=False)

        settings = Settings.from_env()

        assert settings.month_lock_ttl == timedelta(minutes=15)

    def test_month_lock_ttl_override(self, monkeypatch):
        monkeypatch.setenv("MONTH_LOCK_TTL_SECONDS", "120")

        assert Settings.from_env().month_lock_ttl == timedelta(seconds=120)

    def test_write_chunk_size_is_capped(self, monkeypatch):
        monkeypatch.setenv("WRITE_CHUNK_SIZE", "5000")
        monkeypatch.setenv("PAYROLL_BATCH_SIZE", "0")

        settings = Settings.from_env()

        assert settings.write_chunk_size == 500
        assert settings.payroll_batch_size == 1
