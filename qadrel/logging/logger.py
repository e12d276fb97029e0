# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for qadrel.

Every pipeline step reports through this logger so that a CI log can be
grepped or parsed line by line. Each record becomes one JSON object:

  {"ts": "2026-...", "level": "ERROR", "module": "qadrel.release.validation.validator",
   "msg": "XML validation failed", "file": "configs/bad.xml", "reason": "..."}

Validation failures always carry the offending file and the reason as extra
fields, which is the only diagnostic a failed run leaves behind.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO

# Attributes every LogRecord carries. Anything else on the record came in
# through `extra=` and belongs in the JSON payload.
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "relativeCreated",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "pathname",
        "filename",
        "module",
        "levelno",
        "levelname",
        "processName",
        "process",
        "threadName",
        "thread",
        "message",
        "msecs",
        "taskName",
    }
)

_VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class JsonFormatter(logging.Formatter):
    """
    Render a log record as a single JSON line.

    Mandatory keys are ts, level, module and msg. Extra context is merged in
    as-is; values that json can't encode are stringified. When the record
    carries exception info, the formatted traceback lands under "exc".
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key.startswith("_"):
                continue
            entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _resolve_log_level(level_name: str) -> int:
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Return a JSON logger for the given name.

    Calling this again for a name that already has handlers only updates the
    level, so module-level loggers can be re-leveled by the CLI once the
    --log-level flag is known.

    Args:
        name: Logger name, normally the caller's __name__.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional file that receives the same JSON lines.
        stream: Console stream, stdout when omitted.

    Returns:
        The configured logging.Logger.

    Raises:
        ValueError: If log_level isn't a recognised level name.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = JsonFormatter()

    console = logging.StreamHandler(stream=stream if stream is not None else sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def configure_package_logging(log_level: str, log_file: Optional[Path] = None) -> None:
    """
    Re-level every qadrel logger created so far and optionally tee them all
    into log_file. The CLI calls this once the config and flags are known.
    """
    level = _resolve_log_level(log_level)
    file_handler: Optional[logging.FileHandler] = None
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(JsonFormatter())

    for name in list(logging.Logger.manager.loggerDict):
        if name != "qadrel" and not name.startswith("qadrel."):
            continue
        existing = logging.getLogger(name)
        if not existing.handlers:
            continue
        existing.setLevel(level)
        for handler in existing.handlers:
            handler.setLevel(level)
        if file_handler is not None:
            existing.addHandler(file_handler)
