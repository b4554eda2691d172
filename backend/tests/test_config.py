"""
Settings loaded from the environment
"""
from config import Settings, load_settings


class TestLoadSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "ALERT_CHECK_INTERVAL_SECONDS",
            "ALERT_RECENCY_HOURS",
            "ALERT_EMAIL_DELAY_SECONDS",
            "ALERT_SCHEDULER_ENABLED",
            "ALERT_TOAST_HISTORY",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        assert load_settings() == Settings()
        assert Settings().check_interval_seconds == 300

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("ALERT_CHECK_INTERVAL_SECONDS", "60")
        monkeypatch.setenv("ALERT_RECENCY_HOURS", "12")
        monkeypatch.setenv("ALERT_SCHEDULER_ENABLED", "false")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = load_settings()
        assert settings.check_interval_seconds == 60
        assert settings.recency_hours == 12
        assert settings.scheduler_enabled is False
        assert settings.log_level == "DEBUG"

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("ALERT_CHECK_INTERVAL_SECONDS", "soon")
        monkeypatch.setenv("ALERT_EMAIL_DELAY_SECONDS", "-3")
        settings = load_settings()
        assert settings.check_interval_seconds == 300
        assert settings.email_delay_seconds == 1.0

    def test_zero_interval_falls_back(self, monkeypatch):
        monkeypatch.setenv("ALERT_CHECK_INTERVAL_SECONDS", "0")
        assert load_settings().check_interval_seconds == 300
