"""Structured logging. API keys never reach log output."""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

_SENSITIVE_KEYS = ("api_key", "x-api-key", "authorization", "token", "secret", "password")
_SECRET_VALUE = re.compile(r"(sk-ant-[A-Za-z0-9_\-]+|bearer\s+\S+)", re.IGNORECASE)

_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
        "asctime",
    )
)


def _redact(obj: Any, key: str = "") -> Any:
    if key and key.lower() in _SENSITIVE_KEYS:
        return "[REDACTED]"
    if isinstance(obj, dict):
        return {k: _redact(v, str(k)) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_redact(v) for v in obj]
    if isinstance(obj, str):
        return _SECRET_VALUE.sub("[REDACTED]", obj)
    return obj


class StructuredFormatter(logging.Formatter):
    """JSON or key=value format; redacts credentials in messages and extras."""

    def __init__(self, use_json: bool = True) -> None:
        super().__init__()
        self.use_json = use_json

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": _redact(record.getMessage()),
        }
        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_dict[key] = _redact(value, key)
        if self.use_json:
            return json.dumps(log_dict, default=str)
        return " ".join(f"{k}={v!r}" for k, v in log_dict.items())


def setup_logging(level: str = "INFO", use_json: bool = True) -> None:
    """Install a stderr handler on the root logger once. Stdout stays free for streamed text."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter(use_json=use_json))
        root.addHandler(handler)
