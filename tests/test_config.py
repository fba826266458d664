import pytest

from grooming_reports.config import DEFAULT_CARD_FEE_RATE, DEFAULT_COGS_RATE, Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "GROOMING_REPORTS_COGS_RATE",
            "GROOMING_REPORTS_CARD_FEE_RATE",
            "GROOMING_REPORTS_CARD_FEE_FIXED_CENTS",
            "GROOMING_REPORTS_WORKDAY_HOURS",
            "GROOMING_REPORTS_TIMEZONE",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.cogs_rate == DEFAULT_COGS_RATE
        assert settings.card_fee_rate == DEFAULT_CARD_FEE_RATE
        assert settings.card_fee_fixed_cents == 30
        assert settings.workday_minutes == 480
        assert settings.timezone == "UTC"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("GROOMING_REPORTS_WORKDAY_HOURS", "10")
        monkeypatch.setenv("GROOMING_REPORTS_TIMEZONE", "America/Chicago")
        settings = Settings.from_env()
        assert settings.workday_minutes == 600
        assert settings.timezone == "America/Chicago"

    @pytest.mark.parametrize(
        "name, value",
        [
            ("GROOMING_REPORTS_COGS_RATE", "abc"),
            ("GROOMING_REPORTS_COGS_RATE", "1.5"),
            ("GROOMING_REPORTS_CARD_FEE_FIXED_CENTS", "-1"),
            ("GROOMING_REPORTS_WORKDAY_HOURS", "0"),
        ],
    )
    def test_invalid_values_raise(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError):
            Settings.from_env()
