"""Test unified logging configuration.

Tests for respimg.utils.logging_config:
    - File output in human and JSON formats
    - Idempotency (repeated setup doesn't duplicate handlers)
    - Context fields pushed/popped
    - Rotation modes and invalid options

Run:
    pytest tests/test_logging_config.py -v
"""
import json
import logging
import logging.handlers
import sys

import pytest

from respimg.utils import logging_config


pytestmark = pytest.mark.usefixtures("clean_logging")


def _read_lines(path):
    return [line for line in path.read_text().splitlines() if line]


def test_json_file_output(tmp_path):
    log_path = tmp_path / "picture.log"
    logging_config.setup_logging(
        log_file=str(log_path), json=True, to_stderr=False, context={"app": "picture"}
    )
    logging_config.get_logger("respimg.test").info("Generating %s", "/g/a-1x1-abc123.png")

    record = json.loads(_read_lines(log_path)[-1])
    assert record["lvl"] == "INFO"
    assert record["app"] == "picture"
    assert record["name"] == "respimg.test"
    assert record["msg"] == "Generating /g/a-1x1-abc123.png"


def test_human_file_output(tmp_path):
    log_path = tmp_path / "picture.log"
    logging_config.setup_logging(log_file=str(log_path), to_stderr=False, context={"preset": "thumb"})
    logging_config.get_logger("respimg.test").warning("too small")

    line = _read_lines(log_path)[-1]
    assert "| WARNING  |" in line
    assert "preset=thumb" in line
    assert line.endswith("too small")


def test_idempotent(tmp_path):
    log_path = tmp_path / "picture.log"
    for _ in range(3):
        handlers = logging_config.setup_logging(log_file=str(log_path), to_stderr=False)
    assert len(handlers) == 1
    assert sum(h in logging.getLogger().handlers for h in handlers) == 1

    logging_config.get_logger("respimg.test").info("once")
    assert len(_read_lines(log_path)) == 1


def test_stderr_handler(tmp_path):
    handlers = logging_config.setup_logging(color=False)
    assert len(handlers) == 1
    assert handlers[0].stream is sys.stderr


def test_level_applied(tmp_path):
    log_path = tmp_path / "picture.log"
    logging_config.setup_logging(log_level="warning", log_file=str(log_path), to_stderr=False)
    logger = logging_config.get_logger("respimg.test")
    logger.info("hidden")
    logger.error("shown")
    assert [line.split("| ")[-1] for line in _read_lines(log_path)] == ["shown"]


def test_unknown_level():
    with pytest.raises(ValueError, match="LOUD"):
        logging_config.setup_logging(log_level="LOUD", to_stderr=False)


def test_quiet_libs():
    logging_config.setup_logging(log_level="DEBUG", to_stderr=False)
    assert logging.getLogger("PIL").level == logging.WARNING


def test_context_push_pop():
    logging_config.push_context(app="picture", image="a.jpg")
    logging_config.pop_context(["image"])
    formatter = logging_config.ContextFormatter("json", use_color=False)
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    data = json.loads(formatter.format(record))
    assert data["app"] == "picture"
    assert "image" not in data

    logging_config.pop_context()
    assert "app" not in json.loads(formatter.format(record))


def test_exception_formatted():
    formatter = logging_config.ContextFormatter("human", use_color=False)
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    text = formatter.format(record)
    assert "failed" in text
    assert "RuntimeError: boom" in text


def test_unknown_format_mode():
    with pytest.raises(ValueError):
        logging_config.ContextFormatter("xml")


@pytest.mark.parametrize("rotate,handler_type", [
    ({"mode": "size", "max_bytes": 1000, "backup_count": 2}, logging.handlers.RotatingFileHandler),
    ({"mode": "time", "when": "D"}, logging.handlers.TimedRotatingFileHandler),
])
def test_rotation(tmp_path, rotate, handler_type):
    handlers = logging_config.setup_logging(
        log_file=str(tmp_path / "logs" / "picture.log"), to_stderr=False, rotate=rotate
    )
    assert isinstance(handlers[0], handler_type)


def test_unknown_rotation(tmp_path):
    with pytest.raises(ValueError, match="rotation"):
        logging_config.setup_logging(
            log_file=str(tmp_path / "picture.log"), to_stderr=False, rotate={"mode": "weekly"}
        )


def test_excepthook_logs(tmp_path):
    log_path = tmp_path / "picture.log"
    logging_config.setup_logging(log_file=str(log_path), to_stderr=False)
    logging_config.install_excepthook()
    try:
        raise KeyError("missing")
    except KeyError:
        sys.excepthook(*sys.exc_info())
    text = log_path.read_text()
    assert "CRITICAL" in text
    assert "Uncaught exception" in text
