from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from lms.config import settings

LOGGER_NAME = "lms"
REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")

_FORMAT = (
    "%(asctime)s %(levelname)-8s %(name)s "
    "pid=%(process)d request_id=%(request_id)s src=%(filename)s:%(lineno)d "
    "%(message)s"
)
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (shadow built-in name)
        record.request_id = REQUEST_ID.get("-")
        return True


def _parse_level(level: str) -> int:
    lvl = (level or "INFO").upper()
    return logging.getLevelNamesMapping().get(lvl, logging.INFO)


def _console_enabled() -> bool:
    return os.getenv("LOG_CONSOLE", "").lower() in ("1", "true", "yes")


def configure_logging(
    *,
    log_dir: str | Path | None = None,
    log_file: str = "lms.log",
    level: str | None = None,
) -> logging.Logger:
    """
    Configure the "lms" logger: rotating file under LOG_DIR, plus stdout when LOG_CONSOLE=1.
    Idempotent: every module calls this at import time and gets the same logger.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger

    numeric_level = _parse_level(level or settings.log_level)
    log_dir = Path(log_dir or settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.setLevel(numeric_level)
    logger.propagate = False

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
    request_filter = RequestIdFilter()

    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            filename=str(log_dir / log_file),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10,
            encoding="utf-8",
        )
    ]
    if _console_enabled():
        handlers.append(logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        handler.addFilter(request_filter)
        logger.addHandler(handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or uuid.uuid4().hex
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


class log_request:
    """
    Times an outbound call and logs its outcome:
      with log_request(logger, "gateway.create_transaction order_id=TRX-..."):
          ...
    Exceptions propagate; the failure is logged with the elapsed time.
    """

    def __init__(self, logger: logging.Logger, name: str):
        self.logger = logger
        self.name = name
        self.start = 0.0
        self.duration_ms = 0

    def __enter__(self):
        self.start = time.perf_counter()
        self.logger.debug("start %s", self.name)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.duration_ms = int((time.perf_counter() - self.start) * 1000)
        if exc is None:
            self.logger.info("%s ok duration_ms=%s", self.name, self.duration_ms)
        else:
            self.logger.warning("%s failed duration_ms=%s error=%r", self.name, self.duration_ms, exc)
        return False
