"""Tests for logging setup."""

import logging

from paketdash.utils.logging import NOISY_LOGGERS, resolve_level, setup_logging


class TestSetupLogging:
    def test_resolve_level(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level("WARNING") == logging.WARNING
        assert resolve_level("chatty") == logging.INFO

    def test_http_loggers_stay_quiet_at_debug(self):
        assert setup_logging("debug") == logging.DEBUG
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_http_loggers_follow_stricter_levels(self):
        assert setup_logging("error") == logging.ERROR
        assert logging.getLogger("httpx").level == logging.ERROR
        setup_logging("info")

    def test_level_from_config(self, monkeypatch):
        monkeypatch.setenv("PAKETDASH_LOG_LEVEL", "warning")
        assert setup_logging() == logging.WARNING
        setup_logging("info")
