"""Tests for centralized logging configuration."""

import logging

import pytest
from pydantic import ValidationError

from config import Settings
from logging_config import NOISY_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


class TestSetupLogging:
    def test_root_logger_level_default_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        monkeypatch.setattr("logging_config.settings", Settings(_env_file=None))

        setup_logging()

        assert logging.getLogger().level == logging.INFO

    def test_root_logger_level_from_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setattr("logging_config.settings", Settings(_env_file=None))

        setup_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setattr("logging_config.settings", Settings(_env_file=None))

        setup_logging("warning")

        assert logging.getLogger().level == logging.WARNING

    def test_third_party_loggers_suppressed(self):
        setup_logging("DEBUG")

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING, (
                f"{name} logger not suppressed"
            )
        assert "httpx" in NOISY_LOGGERS
        assert "yfinance" in NOISY_LOGGERS

    def test_invalid_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "VERBOS")
        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            Settings(_env_file=None)

    def test_log_level_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings(_env_file=None).LOG_LEVEL == "DEBUG"
