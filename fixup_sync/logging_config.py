"""
Logging Configuration — stderr logging for the CLI and the scheduler.

Two formats:
- json: one object per line, for log shippers
- text: short human lines, coloured when stderr is a terminal

Records logged through a CycleLogger carry ``cycle_id`` and
``pass_kind``; both formats print them.

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARN/WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

The config file's log_level/log_format win once it has been loaded.

## Usage

    from fixup_sync.logging_config import setup_logging

    setup_logging()                      # early, from the environment
    setup_logging(config.log_level, config.log_format)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Tuple

CYCLE_FIELDS = ("cycle_id", "pass_kind")


class CycleLogger(logging.LoggerAdapter):
    """Attach the running pass's cycle_id and kind to every record."""

    def __init__(self, logger: logging.Logger, cycle_id: str, pass_kind: str):
        super().__init__(logger, {"cycle_id": cycle_id, "pass_kind": pass_kind})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


class JSONFormatter(logging.Formatter):
    """
    {"ts": "...", "level": "...", "logger": "...", "message": "...",
     "cycle_id": "...", "pass_kind": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CYCLE_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class HumanFormatter(logging.Formatter):
    """
    12:34:56 INFO    [passes      ] [sync S-20260102T100000-1A2B3C] message
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:7}"
        if self.color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        module = record.name.rsplit(".", 1)[-1][:12]
        line = f"{datetime.now():%H:%M:%S} {level} [{module:12}] "

        cycle_id = getattr(record, "cycle_id", None)
        if cycle_id:
            line += f"[{getattr(record, 'pass_kind', '?')} {cycle_id}] "

        line += record.getMessage()
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _normalize_level(level: str) -> str:
    level = level.strip().upper()
    return "WARNING" if level == "WARN" else level


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
) -> None:
    """
    Install a single stderr handler on the root logger.

    Args:
        level: DEBUG, INFO, WARN/WARNING or ERROR; falls back to LOG_LEVEL,
               then INFO.
        format_type: json or text; falls back to LOG_FORMAT, then text.
    """
    log_level = _normalize_level(level or os.environ.get("LOG_LEVEL", "INFO"))
    log_format = (format_type or os.environ.get("LOG_FORMAT", "text")).strip().lower()
    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = HumanFormatter(color=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    logging.getLogger(__name__).debug(f"Logging configured: level={log_level}, format={log_format}")
