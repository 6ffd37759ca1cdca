import io
import json
import logging

import pytest

from sbombastic.logsetup import JsonFormatter, new_logger, parse_log_level


@pytest.mark.parametrize(
    "text, expected",
    [
        ("debug", logging.DEBUG),
        ("info", logging.INFO),
        ("INFO", logging.INFO),
        ("warn", logging.WARNING),
        ("error", logging.ERROR),
    ],
)
def test_parse_log_level_names(text, expected):
    assert parse_log_level(text) == expected


def test_parse_log_level_offset():
    assert parse_log_level("info+2") == logging.INFO + 2
    assert parse_log_level("error-1") == logging.ERROR - 1


@pytest.mark.parametrize("text", ["verbose", "", "info+", "info+x"])
def test_parse_log_level_rejects(text):
    with pytest.raises(ValueError, match="unable to parse log level"):
        parse_log_level(text)


def _lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_new_logger_writes_json_with_component():
    stream = io.StringIO()
    logger = new_logger("worker", "info", stream)
    logger.info("Starting worker")
    (entry,) = _lines(stream)
    assert entry["msg"] == "Starting worker"
    assert entry["component"] == "worker"
    assert entry["level"] == "INFO"
    assert "time" in entry


def test_new_logger_filters_below_level():
    stream = io.StringIO()
    logger = new_logger("controller", logging.INFO, stream)
    logger.debug("hidden")
    logger.error("shown")
    entries = _lines(stream)
    assert [e["msg"] for e in entries] == ["shown"]
    assert entries[0]["level"] == "ERROR"


def test_new_logger_includes_extra_fields():
    stream = io.StringIO()
    logger = new_logger("worker", "debug", stream)
    logger.debug("Error creating subscription", extra={"error": "boom"})
    (entry,) = _lines(stream)
    assert entry["error"] == "boom"
    assert entry["level"] == "DEBUG"


def test_new_logger_called_twice_writes_once():
    first, second = io.StringIO(), io.StringIO()
    new_logger("storage", "info", first)
    logger = new_logger("storage", "info", second)
    logger.info("hello")
    assert first.getvalue() == ""
    assert len(_lines(second)) == 1


def test_formatter_offset_level_name():
    record = logging.makeLogRecord({"msg": "m", "levelno": logging.INFO + 2})
    entry = json.loads(JsonFormatter().format(record))
    assert entry["level"] == "INFO+2"
    assert entry["msg"] == "m"


def test_formatter_below_debug():
    record = logging.makeLogRecord({"msg": "m", "levelno": logging.DEBUG - 2})
    entry = json.loads(JsonFormatter().format(record))
    assert entry["level"] == "DEBUG-2"