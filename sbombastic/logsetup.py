"""JSON logging for the controller and worker commands."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime
from typing import IO

_LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

_LEVEL_RE = re.compile(r"^([A-Za-z]+)(?:([+-]\d+))?$")

_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}


def parse_log_level(text: str) -> int:
    """Parse a level such as "debug", "INFO" or "warn+2" into a logging level."""
    match = _LEVEL_RE.match(text)
    if match is None:
        raise ValueError(f"unable to parse log level: level string {text!r}: invalid syntax")
    name, offset = match.groups()
    base = _LEVEL_NAMES.get(name.upper())
    if base is None:
        raise ValueError(f"unable to parse log level: level string {text!r}: unknown name")
    return base + (int(offset) if offset else 0)


def _level_name(levelno: int) -> str:
    if levelno < logging.INFO:
        name, base = "DEBUG", logging.DEBUG
    elif levelno < logging.WARNING:
        name, base = "INFO", logging.INFO
    elif levelno < logging.ERROR:
        name, base = "WARN", logging.WARNING
    else:
        name, base = "ERROR", logging.ERROR
    diff = levelno - base
    if diff == 0:
        return name
    return f"{name}{diff:+d}"


class JsonFormatter(logging.Formatter):
    """Format each record as one JSON object with time, level, msg and extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "time": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": _level_name(record.levelno),
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _ComponentFilter(logging.Filter):
    def __init__(self, component: str) -> None:
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        record.component = self.component
        return True


def new_logger(
    component: str, level: int | str = logging.INFO, stream: IO[str] | None = None
) -> logging.Logger:
    """Return a logger that writes JSON lines tagged with the component."""
    if isinstance(level, str):
        level = parse_log_level(level)
    logger = logging.getLogger(f"sbombastic.{component}")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for old_filter in list(logger.filters):
        logger.removeFilter(old_filter)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.addFilter(_ComponentFilter(component))
    logger.setLevel(level)
    logger.propagate = False
    return logger