"""Unit tests for convergent logging configuration."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from unittest import mock

import convergent
from convergent.logging_config import LOGGER_NAME, _get_level, _get_logger


class TestSilentByDefault:
    """The library produces no output unless asked to."""

    def test_import_produces_no_log_output(self, capfd):
        import importlib

        importlib.reload(convergent)

        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_logger_has_null_handler(self):
        logger = logging.getLogger(LOGGER_NAME)
        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)

    def test_gc_is_silent_without_handlers(self, capfd):
        s = convergent.ORSet("node-a")
        s.add("x")
        s.gc("node-a", 1)
        assert capfd.readouterr().err == ""


class TestEnableConsoleLogging:
    """Tests for enable_console_logging."""

    def test_sets_level(self):
        convergent.enable_console_logging(level="DEBUG")
        assert _get_logger().level == logging.DEBUG

    def test_outputs_library_records_to_stderr(self, capfd):
        convergent.enable_console_logging(level="DEBUG")

        counter = convergent.PNCounter("node-a")
        counter.increase(2, source="node-b")
        counter.gc("node-b")

        assert "Collected node node-b" in capfd.readouterr().err

    def test_custom_format(self, capfd):
        convergent.enable_console_logging(level="INFO", format="[CUSTOM] %(message)s")

        logging.getLogger(f"{LOGGER_NAME}.test").info("hello")

        assert "[CUSTOM] hello" in capfd.readouterr().err


class TestEnableFileLogging:
    """Tests for the rotating file handler."""

    def test_creates_parent_directories(self, tmp_path):
        log_file = tmp_path / "subdir" / "nested" / "replica.log"
        convergent.enable_file_logging(log_file)
        assert log_file.parent.exists()

    def test_writes_reload_warning_to_file(self, tmp_path):
        log_file = tmp_path / "replica.log"
        convergent.enable_file_logging(log_file, level="WARNING")

        convergent.ORSet.from_dict(
            {"node_identity": "node-a", "token_counter": 0, "items": {"x": {"observed": [["node-a", 4]], "removed": []}}}
        )
        for handler in _get_logger().handlers:
            handler.flush()

        assert "token_counter 0 is behind issued token 4" in log_file.read_text()

    def test_rotation_settings(self, tmp_path):
        handler = convergent.enable_file_logging(tmp_path / "r.log", max_bytes=1024, backup_count=2)
        assert handler.maxBytes == 1024
        assert handler.backupCount == 2


class TestConfigureFromEnv:
    """Tests for configure_from_env."""

    def test_level_from_env(self):
        with mock.patch.dict(os.environ, {"CONVERGENT_LOGGING": "DEBUG"}, clear=True):
            convergent.configure_from_env()
        assert _get_logger().level == logging.DEBUG

    def test_file_from_env_defaults_to_info(self, tmp_path):
        with mock.patch.dict(os.environ, {"CONVERGENT_LOG_FILE": str(tmp_path / "env.log")}, clear=True):
            convergent.configure_from_env()

        handlers = [h for h in _get_logger().handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert _get_logger().level == logging.INFO

    def test_does_nothing_without_env(self):
        initial_count = len(_get_logger().handlers)

        with mock.patch.dict(os.environ, {}, clear=True):
            convergent.configure_from_env()

        assert len(_get_logger().handlers) == initial_count


class TestLevels:
    """Tests for set_level and disable_logging."""

    def test_set_level_by_string(self):
        convergent.set_level("WARNING")
        assert _get_logger().level == logging.WARNING

    def test_set_level_by_int(self):
        convergent.set_level(logging.ERROR)
        assert _get_logger().level == logging.ERROR

    def test_get_level(self):
        assert _get_level("debug") == logging.DEBUG
        assert _get_level(logging.ERROR) == logging.ERROR
        assert _get_level("INVALID") == logging.INFO

    def test_disable_logging(self, capfd):
        convergent.enable_console_logging(level="DEBUG")
        convergent.disable_logging()

        logging.getLogger(f"{LOGGER_NAME}.test").critical("this should not appear")

        assert "this should not appear" not in capfd.readouterr().err
        assert all(isinstance(h, logging.NullHandler) for h in _get_logger().handlers)
