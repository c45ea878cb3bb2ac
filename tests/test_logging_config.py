"""Tests for logging configuration."""

import logging
import sys

import pytest

from core.logging_config import ApiKeyRedactingFilter, configure_logging, redact_api_key


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    excepthook = sys.excepthook
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)
    sys.excepthook = excepthook


def test_configure_logging_writes_rotating_file(tmp_path, restore_logging):
    log_file = configure_logging(tmp_path, file_level="DEBUG", console_level="WARNING")

    logging.getLogger("core.test").debug("hello from test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_file == tmp_path / "paperchat.log"
    assert "hello from test" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger().level == logging.DEBUG


def test_levels_come_from_environment(tmp_path, monkeypatch, restore_logging):
    monkeypatch.setenv("PAPERCHAT_LOG_FILE_LEVEL", "error")
    monkeypatch.setenv("PAPERCHAT_LOG_CONSOLE_LEVEL", "bogus")

    configure_logging(tmp_path)

    levels = sorted(handler.level for handler in logging.getLogger().handlers)
    assert levels == [logging.INFO, logging.ERROR]


def test_redact_api_key_masks_every_key_parameter():
    url = "https://host/v1beta/models/m:streamGenerateContent?alt=sse&key=AIzaSecret&x=1"

    assert redact_api_key(url) == (
        "https://host/v1beta/models/m:streamGenerateContent?alt=sse&key=***&x=1"
    )
    assert redact_api_key("/upload?key=abc def?key=ghi") == "/upload?key=*** def?key=***"
    assert redact_api_key("no credentials here") == "no credentials here"


def test_filter_rewrites_formatted_arguments():
    record = logging.LogRecord(
        "httpx", logging.INFO, __file__, 1,
        'HTTP Request: %s %s "%s"', ("POST", "https://host/files?key=AIzaSecret", "HTTP/1.1 200 OK"),
        None,
    )

    assert ApiKeyRedactingFilter().filter(record) is True
    assert record.getMessage() == 'HTTP Request: POST https://host/files?key=*** "HTTP/1.1 200 OK"'


def test_request_lines_reach_log_file_without_key(tmp_path, restore_logging):
    log_file = configure_logging(tmp_path, file_level="INFO", console_level="ERROR")

    logging.getLogger("httpx").info(
        "HTTP Request: %s %s", "POST", "https://host/upload/v1beta/files?key=AIzaSecret"
    )
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "key=***" in text
    assert "AIzaSecret" not in text
