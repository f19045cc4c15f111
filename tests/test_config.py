import logging

from ledger.config import get_settings
from ledger.ranges import DateFilter


def test_defaults(monkeypatch):
    for name in ("LEDGER_SEED_PATH", "LEDGER_LOG_LEVEL", "LEDGER_CURRENCY", "LEDGER_DEFAULT_FILTER"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.seed_path == "data/seed.json"
    assert settings.log_level == logging.INFO
    assert settings.currency == "RUB"
    assert settings.default_filter is DateFilter.MONTH


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER_SEED_PATH", "/tmp/seed.json")
    monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")
    monkeypatch.setenv("LEDGER_CURRENCY", "EUR")
    monkeypatch.setenv("LEDGER_DEFAULT_FILTER", "Week")

    settings = get_settings()

    assert settings.seed_path == "/tmp/seed.json"
    assert settings.log_level == logging.DEBUG
    assert settings.currency == "EUR"
    assert settings.default_filter is DateFilter.WEEK


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("LEDGER_LOG_LEVEL", "chatty")
    monkeypatch.setenv("LEDGER_DEFAULT_FILTER", "fortnight")

    settings = get_settings()

    assert settings.log_level == logging.INFO
    assert settings.default_filter is DateFilter.MONTH
