# streamgate/core/logger.py
from __future__ import annotations

"""
StreamGate — Logging (Loguru)
-----------------------------
Configured once at import (`configure_logging()`); everything logs through
`from loguru import logger`.

- Console sink: pretty by default, one JSON object per line with `LOG_JSON=1`
- Optional rotating JSON file sink (`LOG_TO_FILE=1`)
- Every line carries the `request_id` bound by RequestIDMiddleware
- stdlib loggers (uvicorn, sqlalchemy, slowapi, ...) are routed into Loguru
- Bound extras that look like credentials (`*token*`, `*secret*`,
  `authorization`) are masked before they reach a sink

Env
---
LOG_LEVEL=INFO|DEBUG|WARNING|ERROR (default: INFO)
LOG_JSON=1
LOG_TO_FILE=1, LOG_DIR=logs, LOG_FILE=streamgate.log, LOG_ROTATION=10 MB
APP_DEBUG=1 (backtrace/diagnose on the console sink)
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

_TRUTHY = {"1", "true", "yes"}
_MASK = "***"
_SENSITIVE_MARKERS = ("token", "secret", "authorization", "password")

INTERCEPTED_LOGGERS: Iterable[str] = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "starlette",
    "sqlalchemy.engine",
    "slowapi",
)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUTHY


# ─────────────────────────────────────────────────────────────
# 🧾 Formatters
# ─────────────────────────────────────────────────────────────
def _is_sensitive(key: str) -> bool:
    k = key.lower()
    return any(marker in k for marker in _SENSITIVE_MARKERS)


def _scalar(value: Any) -> Any:
    return value if isinstance(value, (str, int, float, bool, type(None))) else str(value)


def _pretty(record) -> str:
    record["extra"].setdefault("request_id", "-")
    where = f"{record['name']}:{record['function']}".replace("<", "[").replace(">", "]")
    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        f"<cyan>{where}</cyan>:<cyan>{{line}}</cyan> | "
        "rid={extra[request_id]} - <level>{message}</level>\n{exception}"
    )


def to_json(record) -> str:
    """One log record as a JSON line body (no trailing newline)."""
    extra = record["extra"]
    payload: Dict[str, Any] = {
        "ts": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "line": record["line"],
        "msg": record["message"],
        "request_id": extra.get("request_id"),
    }
    for key, value in extra.items():
        if key in payload or key == "_json":
            continue
        payload[key] = _MASK if _is_sensitive(key) else _scalar(value)
    if record["exception"] is not None:
        payload["exc"] = repr(record["exception"].value)
    return json.dumps(payload, ensure_ascii=False, default=str)


def _json(record) -> str:
    # The returned string is itself a format template.
    record["extra"]["_json"] = to_json(record)
    return "{extra[_json]}\n"


# ─────────────────────────────────────────────────────────────
# 🔁 stdlib → Loguru
# ─────────────────────────────────────────────────────────────
class InterceptHandler(logging.Handler):
    """Forward a stdlib record to Loguru from the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# ─────────────────────────────────────────────────────────────
# ⚙️ Setup
# ─────────────────────────────────────────────────────────────
def configure_logging(
    level: str | None = None,
    *,
    json_logs: bool | None = None,
    to_file: bool | None = None,
) -> None:
    """(Re)install sinks and stdlib interception. Arguments override env."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    json_logs = _env_flag("LOG_JSON") if json_logs is None else json_logs
    to_file = _env_flag("LOG_TO_FILE") if to_file is None else to_file
    debug = _env_flag("APP_DEBUG")

    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format=_json if json_logs else _pretty,
        backtrace=debug,
        diagnose=debug,
    )
    if to_file:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / os.getenv("LOG_FILE", "streamgate.log")),
            rotation=os.getenv("LOG_ROTATION", "10 MB"),
            level=level,
            format=_json,
            enqueue=True,
            backtrace=False,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        std = logging.getLogger(name)
        std.handlers = [InterceptHandler()]
        std.setLevel(level)
        std.propagate = False


configure_logging()

__all__ = ["logger", "InterceptHandler", "configure_logging", "to_json"]
