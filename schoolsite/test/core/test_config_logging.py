"""
Tests for configuration helpers and logging setup
(schoolsite/core/config.py, schoolsite/core/logging.py)
"""

import json
import logging
from unittest.mock import patch

from schoolsite.core import config
from schoolsite.core.logging import JsonFormatter, setup_logging


class TestConfigHelpers:
    """Tests for config helper functions."""

    def test_remote_not_configured_when_url_empty(self):
        with patch("schoolsite.core.config.API_BASE_URL", ""):
            assert config.is_remote_configured() is False

    def test_remote_configured_when_url_set(self):
        with patch("schoolsite.core.config.API_BASE_URL", "http://localhost:3001/api"):
            assert config.is_remote_configured() is True

    def test_get_api_url_joins_slashes(self):
        """Test that duplicate slashes between base and endpoint are removed."""
        with patch("schoolsite.core.config.API_BASE_URL", "http://localhost:3001/api/"):
            assert config.get_api_url("/news") == "http://localhost:3001/api/news"

    def test_backoff_delay_grows_and_caps(self):
        """Test exponential growth up to the maximum delay."""
        with patch("schoolsite.core.config.BACKOFF_BASE_DELAY", 1), \
                patch("schoolsite.core.config.BACKOFF_MULTIPLIER", 2), \
                patch("schoolsite.core.config.BACKOFF_MAX_DELAY", 10):
            assert config.calculate_backoff_delay(0) == 1
            assert config.calculate_backoff_delay(1) == 2
            assert config.calculate_backoff_delay(3) == 8
            assert config.calculate_backoff_delay(4) == 10

    def test_config_object_mirrors_constants(self):
        assert config.config.cache_key == config.CACHE_KEY
        assert config.config.data_key == config.DATA_KEY


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_handler_and_level(self):
        logger = setup_logging("schoolsite.test.console", level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_no_duplicate_handlers(self):
        """Test that calling setup twice does not stack handlers."""
        setup_logging("schoolsite.test.twice")
        logger = setup_logging("schoolsite.test.twice")
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        """Test that a log file is created in the log directory."""
        logger = setup_logging("schoolsite.test.file", log_file="run.log", log_dir=tmp_path, console=False)
        logger.info("written")
        for handler in logger.handlers:
            handler.flush()
        assert "written" in (tmp_path / "run.log").read_text(encoding="utf-8")

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCHOOLSITE_LOG_LEVEL", "WARNING")
        logger = setup_logging("schoolsite.test.env")
        assert logger.level == logging.WARNING

    def test_json_format_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCHOOLSITE_LOG_FORMAT", "json")
        logger = setup_logging("schoolsite.test.json")
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_text_format_uses_default_layout(self, monkeypatch):
        monkeypatch.setenv("SCHOOLSITE_LOG_FORMAT", "text")
        logger = setup_logging("schoolsite.test.text")
        assert not isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_log_file_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SCHOOLSITE_LOG_FILE", "server.log")
        monkeypatch.setenv("SCHOOLSITE_LOG_DIR", str(tmp_path / "var"))
        logger = setup_logging("schoolsite.test.envfile", console=False)
        assert isinstance(logger.handlers[0], logging.FileHandler)
        assert (tmp_path / "var").is_dir()

    def test_custom_format_string(self, monkeypatch):
        monkeypatch.setenv("SCHOOLSITE_LOG_FORMAT", "%(levelname)s %(message)s")
        logger = setup_logging("schoolsite.test.custom")
        assert logger.handlers[0].formatter._fmt == "%(levelname)s %(message)s"


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_record_is_one_json_object(self):
        record = logging.LogRecord("schoolsite", logging.WARNING, __file__, 1, "remote %s", ("down",), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["message"] == "remote down"
        assert payload["logger"] == "schoolsite"
